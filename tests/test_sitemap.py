# File: tests/test_sitemap.py
from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import ClientSession, web

from access_scout.crawler.sitemap import discover_sitemap_urls, parse_sitemap

URLSET = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>{base}/a</loc></url>
  <url><loc> {base}/b </loc></url>
</urlset>"""

INDEX = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>{base}/sitemap-pages.xml</loc></sitemap>
</sitemapindex>"""


def test_parse_urlset():
    sitemap = parse_sitemap(URLSET.format(base="https://example.org"))
    assert sitemap.urls == ["https://example.org/a", "https://example.org/b"]
    assert not sitemap.is_index


def test_parse_index():
    sitemap = parse_sitemap(INDEX.format(base="https://example.org"))
    assert sitemap.is_index
    assert sitemap.children == ["https://example.org/sitemap-pages.xml"]


@pytest.mark.parametrize("text", ["", "not xml at all", "<urlset><url><loc>x"])
def test_garbage_does_not_raise(text):
    assert parse_sitemap(text).urls in ([], ["x"])


@pytest_asyncio.fixture
async def sitemap_server(unused_tcp_port: int, serve_app) -> AsyncIterator[str]:
    app = web.Application()
    base = f"http://localhost:{unused_tcp_port}"

    async def handle_index(_):
        return web.Response(text=INDEX.format(base=base), content_type="application/xml")

    async def handle_pages(_):
        return web.Response(text=URLSET.format(base=base), content_type="application/xml")

    async def handle_latin1(_):
        xml = f"<urlset><!-- Seiten für alle --><url><loc>{base}/c</loc></url></urlset>"
        return web.Response(body=xml.encode("latin-1"), content_type="application/xml")

    app.router.add_get("/sitemap.xml", handle_index)
    app.router.add_get("/sitemap-pages.xml", handle_pages)
    app.router.add_get("/latin1.xml", handle_latin1)
    async for url in serve_app(app, unused_tcp_port):
        yield url


@pytest.mark.asyncio()
async def test_discover_follows_index(sitemap_server: str):
    async with ClientSession() as session:
        urls = await discover_sitemap_urls(session, sitemap_server + "/")
    assert urls == [f"{sitemap_server}/a", f"{sitemap_server}/b"]


@pytest.mark.asyncio()
async def test_candidates_tried_first(sitemap_server: str):
    async with ClientSession() as session:
        urls = await discover_sitemap_urls(
            session, sitemap_server + "/", [sitemap_server + "/missing.xml", sitemap_server + "/sitemap-pages.xml"]
        )
    assert urls == [f"{sitemap_server}/a", f"{sitemap_server}/b"]


@pytest.mark.asyncio()
async def test_non_utf8_sitemap_is_read(sitemap_server: str):
    async with ClientSession() as session:
        urls = await discover_sitemap_urls(session, sitemap_server + "/", [sitemap_server + "/latin1.xml"])
    assert urls == [f"{sitemap_server}/c"]
