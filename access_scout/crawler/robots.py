# access_scout/crawler/robots.py
"""
robots.txt rules for the crawled origin.

Only the ``User-agent: *`` group is consulted. Disallow/Allow values are
path prefixes; ``*`` and a trailing ``$`` are honoured, the longest
matching rule wins. ``Sitemap:`` lines are collected for seeding.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse, urlunparse

from aiohttp import ClientError, ClientSession

from access_scout.errors import RobotsFetchFailure

__all__ = ("RobotsRuleSet", "fetch_robots", "robots_url_for")

logger = logging.getLogger("AccessScout")


class RobotsRuleSet:
    """Parsed robots.txt; read-only after construction."""

    _WILDCARD_RE = re.compile(r"(\*|\$)")

    def __init__(self, text: str = "") -> None:
        self._directives: List[Tuple[str, str]] = []
        self.sitemaps: List[str] = []
        self._regex_cache: Dict[str, re.Pattern[str]] = {}
        self._parse(text)

    @classmethod
    def empty(cls) -> "RobotsRuleSet":
        return cls("")

    @property
    def disallow_prefixes(self) -> List[str]:
        return [p for d, p in self._directives if d == "disallow"]

    def allows(self, url_or_path: str) -> bool:
        """True when the wildcard group permits fetching *url_or_path*."""
        parsed = urlparse(url_or_path)
        path = parsed.path or "/"
        if parsed.query:
            path += "?" + parsed.query
        best_len = -1
        allow: Optional[bool] = None
        for directive, pattern in self._directives:
            if not self._match_path(path, pattern):
                continue
            length = self._rule_len(pattern)
            if length > best_len or (length == best_len and directive == "allow" and allow is False):
                best_len = length
                allow = directive == "allow"
        return True if allow is None else allow

    def _parse(self, text: str) -> None:
        in_wildcard = False
        seen_rule = False
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            key, _, val = line.partition(":")
            key = key.lower().strip()
            val = val.strip()
            if key == "sitemap":
                if val:
                    self.sitemaps.append(val)
            elif key == "user-agent":
                # consecutive User-agent lines share one group
                if seen_rule:
                    in_wildcard = False
                    seen_rule = False
                in_wildcard = in_wildcard or val == "*"
            elif key in ("allow", "disallow"):
                seen_rule = True
                if not in_wildcard or not val:
                    # empty Disallow allows everything
                    continue
                self._directives.append((key, val))

    def _match_path(self, path: str, pattern: str) -> bool:
        if pattern not in self._regex_cache:
            esc = re.escape(pattern).replace(r"\*", ".*")
            if pattern.endswith("$"):
                esc = esc[:-2] + "$"
            self._regex_cache[pattern] = re.compile(f"^{esc}")
        return bool(self._regex_cache[pattern].match(path))

    @classmethod
    def _rule_len(cls, pattern: str) -> int:
        return len(cls._WILDCARD_RE.sub("", pattern))


def robots_url_for(url: str) -> str:
    parsed = urlparse(url)
    return urlunparse((parsed.scheme, parsed.netloc, "/robots.txt", "", "", ""))


async def fetch_robots(session: ClientSession, start_url: str) -> RobotsRuleSet:
    """Fetch robots.txt of *start_url*'s origin.

    A non-200 answer is an empty rule set. Network errors raise
    :class:`RobotsFetchFailure`; the caller falls back to an empty set.
    """
    url = robots_url_for(start_url)
    try:
        async with session.get(url) as resp:
            if resp.status != 200:
                logger.debug("robots.txt %s -> HTTP %s", url, resp.status)
                return RobotsRuleSet.empty()
            # undeclared or legacy charsets are common in robots.txt
            text = await resp.text(errors="replace")
    except (ClientError, TimeoutError) as exc:
        raise RobotsFetchFailure(f"cannot fetch robots.txt: {exc or type(exc).__name__}", url=url) from exc
    rules = RobotsRuleSet(text)
    logger.debug("robots.txt: %d disallow rule(s), %d sitemap(s)", len(rules.disallow_prefixes), len(rules.sitemaps))
    return rules
