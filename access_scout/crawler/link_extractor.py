# access_scout/crawler/link_extractor.py
"""
Link extraction, URL normalization and scope policies.
"""
from __future__ import annotations

import logging
import posixpath
from typing import Iterable, List, Sequence
from urllib.parse import parse_qsl, quote, unquote, urlencode, urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup
from bs4.element import Tag

__all__ = ("extract_links", "normalize_url", "in_scope")

logger = logging.getLogger("AccessScout")

_DEFAULT_PORTS = {"http": 80, "https": 443}
_SKIP_SCHEMES = ("mailto:", "javascript:", "tel:", "data:", "#")


def normalize_url(url: str, keep_query: bool = True) -> str:
    """
    Canonical form used for dedup: lower-case scheme and host, default port
    dropped, dot segments resolved, fragment stripped, query sorted (or
    removed when *keep_query* is False).
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()
    netloc = host
    if parsed.port and _DEFAULT_PORTS.get(scheme) != parsed.port:
        netloc = f"{host}:{parsed.port}"

    path = unquote(parsed.path or "/")
    norm = posixpath.normpath(path)
    if parsed.path.endswith("/") and not norm.endswith("/"):
        norm += "/"
    if not norm.startswith("/"):
        norm = "/" + norm
    norm = quote(norm.replace("//", "/"), safe="/:@!$&'()*+,;=-._~")

    query = ""
    if keep_query and parsed.query:
        qs = parse_qsl(parsed.query, keep_blank_values=True)
        qs.sort()
        query = urlencode(qs, doseq=True)
    return urlunparse((scheme, netloc, norm, "", query, ""))


def extract_links(html: str, base_url: str, include_iframes: bool = False) -> List[str]:
    """
    Absolute HTTP(S) hrefs of ``<a>``/``<area>`` (and ``<iframe src>``) in
    document order, duplicates removed. ``<base href>`` is honoured.
    """
    soup = BeautifulSoup(html, "html.parser")
    base = base_url
    base_tag = soup.find("base", href=True)
    if isinstance(base_tag, Tag) and isinstance(base_tag.get("href"), str):
        try:
            base = urljoin(base_url, base_tag["href"].strip())
        except ValueError as exc:
            logger.debug("Ignoring malformed <base href>: %s", exc)

    names: List[str] = ["a", "area", "iframe"] if include_iframes else ["a", "area"]
    links: List[str] = []
    for tag in soup.find_all(names):
        if not isinstance(tag, Tag):
            continue
        attr = "src" if tag.name == "iframe" else "href"
        value = tag.get(attr)
        if not isinstance(value, str):
            continue
        raw = value.strip()
        if not raw or raw.lower().startswith(_SKIP_SCHEMES):
            continue
        try:
            absolute = urljoin(base, raw)
            parsed = urlparse(absolute)
            parsed.port  # raises on out-of-range ports
        except ValueError as exc:
            logger.debug("Skipping malformed link %r: %s", raw, exc)
            continue
        if parsed.scheme in ("http", "https"):
            links.append(absolute)
    return list(dict.fromkeys(links))


def _host_in(host: str, domains: Iterable[str]) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


def in_scope(url: str, start_url: str, scope: str, allowed_domains: Sequence[str] = ()) -> bool:
    """Whether *url* may be crawled from *start_url* under *scope*."""
    target, seed = urlparse(url), urlparse(start_url)
    if target.scheme not in ("http", "https"):
        return False
    host = (target.hostname or "").lower()
    if scope == "same-origin":
        return (
            target.scheme == seed.scheme
            and host == (seed.hostname or "").lower()
            and (target.port or _DEFAULT_PORTS.get(target.scheme)) == (seed.port or _DEFAULT_PORTS.get(seed.scheme))
        )
    if scope == "same-site":
        return host == (seed.hostname or "").lower()
    if scope == "domain-allowlist":
        return _host_in(host, [d.lower() for d in allowed_domains])
    raise ValueError(f"unknown scope policy: {scope}")
