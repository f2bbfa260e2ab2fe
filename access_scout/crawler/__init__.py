"""access_scout.crawler: frontier, robots, sitemap and download handling."""

from access_scout.crawler.crawler import AuditCrawler, VisitedSet
from access_scout.crawler.downloads import DocumentInspector, classify_download, is_download
from access_scout.crawler.link_extractor import extract_links, in_scope, normalize_url
from access_scout.crawler.robots import RobotsRuleSet, fetch_robots
from access_scout.crawler.sitemap import discover_sitemap_urls, parse_sitemap

__all__ = [
    "AuditCrawler",
    "VisitedSet",
    "DocumentInspector",
    "classify_download",
    "is_download",
    "extract_links",
    "in_scope",
    "normalize_url",
    "RobotsRuleSet",
    "fetch_robots",
    "discover_sitemap_urls",
    "parse_sitemap",
]
