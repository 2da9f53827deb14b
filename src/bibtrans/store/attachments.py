"""Attachment acquisition: links, URL downloads and local file imports.

Imported files live under ``<storage_dir>/<item id>/``; the item's ``path``
column holds the file name inside that directory. Linked files keep their
absolute path.
"""

from __future__ import annotations

import logging
import mimetypes
import re
import shutil
import tempfile
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import requests

from ..utils.http import session_with_retries
from .items import LibraryStore
from .models import Item

logger = logging.getLogger(__name__)

LINK_MODE_IMPORTED_FILE = 0
LINK_MODE_IMPORTED_URL = 1
LINK_MODE_LINKED_FILE = 2
LINK_MODE_LINKED_URL = 3


def _safe_filename(base: str) -> str:
    return "".join(ch if ch.isalnum() or ch in ("-", "_", ".", " ") else "_" for ch in base).strip()[:128]


class AttachmentStore:
    def __init__(
        self,
        library: LibraryStore,
        storage_dir: Path,
        http: Optional[requests.Session] = None,
        max_mb: float = 60.0,
    ):
        self.library = library
        self.storage_dir = Path(storage_dir)
        self.http = http
        self.max_bytes = int(max_mb * 1024 * 1024)

    def _session(self) -> requests.Session:
        if self.http is None:
            self.http = session_with_retries()
        return self.http

    def _new_attachment(
        self,
        link_mode: int,
        parent_id: Optional[int],
        title: Optional[str] = None,
        url: Optional[str] = None,
        path: Optional[str] = None,
        mime_type: Optional[str] = None,
        charset: Optional[str] = None,
    ) -> Item:
        item = self.library.add_item("attachment", parent_id=parent_id)
        item.link_mode = link_mode
        item.path = path
        item.mime_type = mime_type
        item.charset = charset
        if title:
            self.library.set_field(item, "title", title)
        if url:
            self.library.set_field(item, "url", url)
        return item

    def _item_dir(self, item: Item) -> Path:
        d = self.storage_dir / str(item.id)
        d.mkdir(parents=True, exist_ok=True)
        return d

    def link_from_url(
        self,
        url: str,
        parent_id: Optional[int],
        mime_type: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Item:
        scheme = urlparse(url).scheme.lower()
        if scheme not in ("http", "https"):
            raise ValueError(f"Invalid URL for link attachment: {url}")
        item = self._new_attachment(
            LINK_MODE_LINKED_URL, parent_id, title=title or url, url=url, mime_type=mime_type,
        )
        logger.debug(f"Linked URL attachment {item.id} -> {url}")
        return item

    def import_from_url(
        self,
        url: str,
        parent_id: Optional[int],
        title: Optional[str] = None,
        file_base_name: Optional[str] = None,
    ) -> Item:
        resp = self._session().get(url, stream=True)
        resp.raise_for_status()
        length = resp.headers.get("Content-Length")
        if length and length.isdigit() and int(length) > self.max_bytes:
            resp.close()
            raise ValueError(f"Attachment {url} is {length} bytes, over the {self.max_bytes} byte limit")
        mime_type = (resp.headers.get("Content-Type") or "").split(";")[0].strip() or None
        name = _safe_filename(file_base_name) if file_base_name else ""
        if name:
            ext = mimetypes.guess_extension(mime_type or "") or Path(urlparse(url).path).suffix
            name = f"{name}{ext or ''}"
        else:
            name = _safe_filename(unquote(Path(urlparse(url).path).name)) or "attachment"

        self.storage_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=self.storage_dir, suffix=".part", delete=False) as f:
            partial = Path(f.name)
            written = 0
            try:
                for chunk in resp.iter_content(chunk_size=65536):
                    if not chunk:
                        continue
                    written += len(chunk)
                    if written > self.max_bytes:
                        break
                    f.write(chunk)
            except Exception:
                f.close()
                partial.unlink()
                raise
        if written > self.max_bytes:
            partial.unlink()
            resp.close()
            raise ValueError(f"Attachment {url} exceeds the {self.max_bytes} byte limit")

        item = self._new_attachment(
            LINK_MODE_IMPORTED_URL, parent_id, title=title or name, url=url,
            path=name, mime_type=mime_type, charset=resp.encoding,
        )
        shutil.move(str(partial), str(self._item_dir(item) / name))
        logger.debug(f"Imported {written} bytes from {url} into attachment {item.id}")
        return item

    def import_from_file(self, path: Path, parent_id: Optional[int]) -> Item:
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        item = self._new_attachment(
            LINK_MODE_IMPORTED_FILE, parent_id, title=path.name, path=path.name, mime_type=mime_type,
        )
        shutil.copy2(path, self._item_dir(item) / path.name)
        return item

    def import_snapshot_from_file(
        self,
        path: Path,
        url: str,
        title: Optional[str],
        mime_type: Optional[str],
        charset: Optional[str],
        parent_id: Optional[int],
    ) -> Item:
        path = Path(path)
        item = self._new_attachment(
            LINK_MODE_IMPORTED_URL, parent_id, title=title or path.name, url=url,
            path=path.name, mime_type=mime_type or mimetypes.guess_type(path.name)[0], charset=charset,
        )
        shutil.copy2(path, self._item_dir(item) / path.name)
        return item

    def create_missing_attachment(
        self,
        link_mode: int,
        path: Path,
        url: Optional[str],
        title: Optional[str],
        mime_type: Optional[str],
        charset: Optional[str],
        parent_id: Optional[int],
    ) -> Item:
        """Record an attachment whose source file does not exist."""
        path = Path(path)
        item = self._new_attachment(
            link_mode, parent_id, title=title or path.name, url=url,
            path=path.name, mime_type=mime_type, charset=charset,
        )
        logger.info(f"Created placeholder attachment {item.id} for missing file {path}")
        return item

    def import_from_document(self, document, parent_id: Optional[int], title: Optional[str] = None) -> Item:
        name = _safe_filename(title or document.title or "snapshot") or "snapshot"
        name = re.sub(r"\.html?$", "", name) + ".html"
        item = self._new_attachment(
            LINK_MODE_IMPORTED_URL, parent_id, title=title or document.title, url=document.url,
            path=name, mime_type=document.content_type or "text/html", charset="utf-8",
        )
        (self._item_dir(item) / name).write_text(document.html, encoding="utf-8")
        return item

    def get_file(self, item: Item) -> Optional[Path]:
        if item.link_mode == LINK_MODE_LINKED_URL or not item.path:
            return None
        if item.link_mode == LINK_MODE_LINKED_FILE:
            return Path(item.path)
        return self.storage_dir / str(item.id) / item.path

    def get_storage_directory(self, item: Item) -> Path:
        return self.storage_dir / str(item.id)

    def get_file_base_name(self, item_id: int) -> str:
        """``<first creator> - <year> - <title>``, skipping missing parts."""
        item = self.library.get_item(item_id)
        if item is None:
            return "attachment"
        fields = self.library.get_fields(item)
        parts = []
        creators = self.library.get_creators(item)
        if creators:
            parts.append(creators[0]["lastName"] or creators[0]["firstName"])
        year = re.search(r"\d{4}", fields.get("date", ""))
        if year:
            parts.append(year.group(0))
        if fields.get("title"):
            parts.append(fields["title"][:80])
        return _safe_filename(" - ".join(p for p in parts if p)) or "attachment"
