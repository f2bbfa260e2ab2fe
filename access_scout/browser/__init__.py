"""access_scout.browser: contract and bindings of the browser-automation collaborator."""

from access_scout.browser.base import BrowserPage, ClipRect, NavigationResponse

__all__ = ["BrowserPage", "ClipRect", "NavigationResponse"]
