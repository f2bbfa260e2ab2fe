# access_scout/crawler/sitemap.py
"""access_scout.crawler.sitemap: sitemap.xml parsing and discovery."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence
from urllib.parse import urljoin

from aiohttp import ClientError, ClientSession
from lxml import etree

logger = logging.getLogger("AccessScout")


@dataclass(slots=True)
class Sitemap:
    """Flat content of one sitemap document."""

    urls: List[str] = field(default_factory=list)
    children: List[str] = field(default_factory=list)  # <sitemapindex> entries

    @property
    def is_index(self) -> bool:
        return bool(self.children)


def parse_sitemap(xml_content: str) -> Sitemap:
    """Parse a ``<urlset>`` or ``<sitemapindex>`` document.

    Args:
        xml_content: the sitemap XML as text.

    Returns:
        A :class:`Sitemap` with page URLs or child sitemap URLs.

    Example:
    ```python
    from access_scout.crawler.sitemap import parse_sitemap

    sm = parse_sitemap(open("sitemap.xml", encoding="utf-8").read())
    print(sm.urls)
    ```
    """
    parser = etree.XMLParser(ns_clean=True, recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(xml_content.encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as exc:
        logger.warning("Unparseable sitemap: %s", exc)
        return Sitemap()
    if root is None:
        return Sitemap()
    locs = [loc.text.strip() for loc in root.findall(".//{*}loc") if loc.text and loc.text.strip()]
    if etree.QName(root).localname == "sitemapindex":
        return Sitemap(children=locs)
    return Sitemap(urls=locs)


async def _fetch_text(session: ClientSession, url: str) -> str:
    try:
        async with session.get(url) as resp:
            if resp.status != 200:
                logger.debug("sitemap %s -> HTTP %s", url, resp.status)
                return ""
            return await resp.text(errors="replace")
    except (ClientError, TimeoutError) as exc:
        logger.warning("sitemap %s unavailable: %s", url, exc or type(exc).__name__)
        return ""


async def discover_sitemap_urls(
    session: ClientSession,
    start_url: str,
    candidates: Sequence[str] = (),
) -> List[str]:
    """Page URLs from the first sitemap that yields any.

    *candidates* (robots.txt ``Sitemap:`` lines, configured URL) are tried
    before ``/sitemap.xml``; an index is followed one level deep.
    """
    tried: List[str] = []
    for url in [*candidates, urljoin(start_url, "/sitemap.xml")]:
        if url in tried:
            continue
        tried.append(url)
        text = await _fetch_text(session, url)
        if not text:
            continue
        sitemap = parse_sitemap(text)
        urls = list(sitemap.urls)
        for child in sitemap.children:
            child_text = await _fetch_text(session, child)
            if child_text:
                urls.extend(parse_sitemap(child_text).urls)
        if urls:
            logger.info("Sitemap %s: %d URL(s)", url, len(urls))
            return urls
    return []
