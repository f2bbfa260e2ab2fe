# access_scout/crawler/downloads.py
"""
Linked documents: classification and a HEAD-based inspection.

Document links never enter the page frontier; they are collected as
:class:`DownloadRecord` entries for a downstream document checker.
"""
from __future__ import annotations

import logging
import posixpath
from typing import Dict, List, Optional, Sequence
from urllib.parse import urlparse

from aiohttp import ClientError, ClientSession

from access_scout.config import DownloadsConfig
from access_scout.errors import DownloadFetchFailure, FailureRecord
from access_scout.models import DownloadRecord

__all__ = ("classify_download", "download_extension", "is_download", "DocumentInspector", "LEGACY_LABELS")

CONTENT_TYPE_LABELS: Dict[str, str] = {
    "application/pdf": "PDF",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "DOCX",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "PPTX",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "XLSX",
    "text/csv": "CSV",
    "text/plain": "TXT",
    "application/vnd.oasis.opendocument.text": "ODT",
    "application/vnd.oasis.opendocument.spreadsheet": "ODS",
    "application/vnd.oasis.opendocument.presentation": "ODP",
    "application/msword": "DOC",
    "application/vnd.ms-excel": "XLS",
    "application/vnd.ms-powerpoint": "PPT",
    "application/zip": "ZIP",
}

EXTENSION_LABELS: Dict[str, str] = {
    "pdf": "PDF",
    "docx": "DOCX",
    "pptx": "PPTX",
    "xlsx": "XLSX",
    "csv": "CSV",
    "txt": "TXT",
    "odt": "ODT",
    "ods": "ODS",
    "odp": "ODP",
    "doc": "DOC",
    "xls": "XLS",
    "ppt": "PPT",
    "zip": "ZIP",
}

# Binary office formats that cannot be checked automatically.
LEGACY_LABELS = frozenset({"DOC", "XLS", "PPT"})

logger = logging.getLogger("AccessScout")


def download_extension(url: str) -> str:
    ext = posixpath.splitext(urlparse(url).path)[1]
    return ext.lstrip(".").lower()


def classify_download(url: str, content_type: Optional[str] = None) -> str:
    """Label from the content type first, then from the URL extension."""
    ct = (content_type or "").split(";", 1)[0].strip().lower()
    if ct in CONTENT_TYPE_LABELS:
        return CONTENT_TYPE_LABELS[ct]
    return EXTENSION_LABELS.get(download_extension(url), "Unknown")


def is_download(url: str, types: Sequence[str], content_type: Optional[str] = None) -> bool:
    """True when *url* (or its response *content_type*) is in the configured type set."""
    wanted = {t.lower() for t in types}
    if download_extension(url) in wanted:
        return True
    if content_type:
        label = classify_download("", content_type)
        return label != "Unknown" and label.lower() in wanted
    return False


class DocumentInspector:
    """Probes linked documents with HEAD requests, at most ``max_count`` of them."""

    def __init__(self, session: ClientSession, config: DownloadsConfig) -> None:
        self.session = session
        self.config = config
        self.inspected = 0
        self.failures: List[FailureRecord] = []

    async def inspect(self, url: str, source_page: str, content_type: str = "") -> DownloadRecord:
        record = DownloadRecord(url=url, source_page=source_page, label=classify_download(url, content_type),
                                content_type=content_type)
        if record.label in LEGACY_LABELS:
            record.status = "manual-review"
            record.note = "Legacy binary office format; convert to DOCX/XLSX/PPTX or PDF/UA for automated checks"
            return record
        if self.inspected >= self.config.max_count:
            record.status = "skipped"
            record.note = f"inspection limit of {self.config.max_count} documents reached"
            return record

        self.inspected += 1
        try:
            content_type, size = await self._head(url)
        except DownloadFetchFailure as exc:
            logger.warning("Download %s: %s", url, exc.message)
            self.failures.append(exc.to_record())
            record.status = "skipped"
            record.note = exc.message
            return record

        record.content_type = content_type or record.content_type
        record.label = classify_download(url, record.content_type)
        record.size_bytes = size
        if record.label in LEGACY_LABELS:
            record.status = "manual-review"
            record.note = "Legacy binary office format; convert to DOCX/XLSX/PPTX or PDF/UA for automated checks"
        elif size is not None and size > self.config.max_bytes:
            record.status = "skipped"
            record.note = f"{size} bytes exceeds the limit of {self.config.max_bytes}"
        else:
            record.status = "queued"
        return record

    async def _head(self, url: str) -> tuple[str, Optional[int]]:
        try:
            async with self.session.head(url, allow_redirects=True) as resp:
                if resp.status >= 400:
                    raise DownloadFetchFailure(f"HTTP {resp.status}", url=url)
                ct = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                length = resp.headers.get("Content-Length")
        except (ClientError, TimeoutError) as exc:
            raise DownloadFetchFailure(f"request failed: {exc or type(exc).__name__}", url=url) from exc
        size = int(length) if length and length.isdigit() else None
        return ct, size
