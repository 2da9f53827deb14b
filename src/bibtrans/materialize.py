"""Folding scraped records into library entities.

One ``ItemSaver`` serves one operation. It owns the ID map from
translator-local ``itemID`` values to library IDs, so see-also links and
collection membership can refer to records saved earlier in the same run.
See-also links are applied in a second pass (``resolve_see_also``) so that
forward references resolve too.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import requests

from .config import Preferences
from .errors import ValidationError
from .store import schema
from .store.attachments import (
    LINK_MODE_IMPORTED_FILE,
    LINK_MODE_IMPORTED_URL,
    AttachmentStore,
)
from .store.items import LibraryStore
from .store.models import Collection, Item

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"(([A-Za-z]+)://[^\s]*)")

# keys that are structure rather than item fields
_STRUCTURAL_KEYS = frozenset({
    "itemType", "creators", "notes", "note", "tags", "seeAlso", "attachments",
    "itemID", "complete", "uniqueFields",
})
_ATTACHMENT_KEYS = frozenset({"path", "mimeType", "charset", "snapshot", "downloadable", "document", "linkMode"})


def synthesize_short_title(title: Optional[str]) -> Optional[str]:
    """Short title for ``title``, or None when nothing would be shortened.

    Cut at the first colon; otherwise keep through the first question mark
    when more text follows it.
    """
    if not title:
        return None
    changed = False
    index = title.find(":")
    if index != -1:
        title = title[:index]
        changed = True
    index = title.find("?")
    if index != -1 and index + 1 != len(title):
        title = title[:index + 1]
        changed = True
    return title if changed else None


def _local_path(path: str, base_dir: Optional[Path]) -> Path:
    if path.lower().startswith("file:"):
        return Path(url2pathname(unquote(urlparse(path).path)))
    p = Path(path)
    if not p.is_absolute() and base_dir is not None:
        p = base_dir / p
    return p


class ItemSaver:
    def __init__(
        self,
        library: LibraryStore,
        attachments: Optional[AttachmentStore],
        mode: str,
        preferences: Optional[Preferences] = None,
        save_attachments: bool = True,
        base_dir: Optional[Path] = None,
    ):
        self.library = library
        self.attachments = attachments
        self.mode = mode
        self.preferences = preferences or Preferences()
        self.save_attachments = save_attachments
        self.base_dir = base_dir
        self.id_map: Dict[str, int] = {}
        self.new_collections: List[int] = []
        self._pending_see_also: List[Tuple[int, List[Any]]] = []

    # items

    def save_item(self, record: Mapping[str, Any], attached_to: Optional[int] = None) -> Optional[int]:
        """Save one record (and what hangs off it). Returns the new item ID."""
        item = dict(record)
        item_type = item.get("itemType") or "webpage"

        if item_type == "note":
            new_item = self.library.add_item("note", parent_id=attached_to)
            self.library.set_note(new_item, item.get("note") or "")
        else:
            if not item.get("title") and self.mode == "web":
                raise ValidationError("Item has no title")

            if item_type == "attachment":
                new_item = self._save_standalone_attachment(item, attached_to)
                if new_item is None:
                    return None
                if item.get("note"):
                    self.library.set_note(new_item, item["note"])
            else:
                if not schema.is_item_type(item_type):
                    raise ValidationError(f"Invalid item type {item_type!r}")
                new_item = self.library.add_item(item_type, parent_id=attached_to)

            if item.get("url") and not item.get("accessDate") and self.mode == "web":
                item["accessDate"] = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

            self._assign_fields(new_item, item, item_type)

            if (
                self.mode in ("web", "search")
                and "shortTitle" not in item
                and schema.is_valid_for_type("shortTitle", item_type)
            ):
                short = synthesize_short_title(self.library.get_field(new_item, "title"))
                if short:
                    self.library.set_field(new_item, "shortTitle", short)

            self._save_notes(new_item, item.get("notes"))
            self._save_child_attachments(new_item, item.get("attachments"))

        self._register(item, new_item)
        return new_item.id

    def _assign_fields(self, new_item: Item, item: Dict[str, Any], item_type: str) -> None:
        for field, value in item.items():
            if not value or field in _STRUCTURAL_KEYS:
                continue
            if field == "creators":
                continue
            if item_type == "attachment" and field in _ATTACHMENT_KEYS:
                continue
            if not schema.is_field(field):
                logger.info(f"Discarded field {field}: unknown field")
                continue

            target = field
            if schema.is_base_field(field):
                target = schema.field_from_type_and_base(item_type, field)
                if target and target != field:
                    logger.debug(f"Mapping {field} to {target}")

            if target and schema.is_valid_for_type(target, item_type):
                self.library.set_field(new_item, target, value)
            else:
                logger.info(f"Discarded field {field} for item: field not valid for type {item_type}")

        creators = item.get("creators")
        if creators:
            self._set_creators(new_item, creators)

    def _set_creators(self, new_item: Item, creators: Iterable[Any]) -> None:
        for index, data in enumerate(creators):
            if not isinstance(data, Mapping):
                logger.info(f"Discarded creator {index}: not a mapping")
                continue
            declared = data.get("creatorType")
            type_id = schema.creator_type_id(declared)
            if declared and type_id is None:
                logger.info(f"Invalid creator type {declared} for creator index {index}")
            creator = self.library.get_or_create_creator(data.get("firstName"), data.get("lastName"))
            self.library.set_creator(new_item, index, creator, type_id or schema.creator_type_id(schema.DEFAULT_CREATOR_TYPE))

    def _save_notes(self, parent: Item, notes: Optional[Iterable[Any]]) -> None:
        for note in notes or []:
            data = {"note": note} if isinstance(note, str) else dict(note)
            data["itemType"] = "note"
            self.save_item(data, attached_to=parent.id)

    # attachments

    def _save_standalone_attachment(self, item: Dict[str, Any], attached_to: Optional[int]) -> Optional[Item]:
        if self.mode != "import":
            logger.warning("Discarding standalone attachment")
            return None
        if self.attachments is None:
            logger.warning("Discarding attachment: no attachment storage configured")
            return None

        url, path = item.get("url"), item.get("path")
        if not url and not path:
            logger.warning("Ignoring attachment: no path or URL specified")
            return None

        if not path:
            m = _URL_RE.search(url)
            protocol = m.group(2).lower() if m else ""
            if protocol == "file":
                path, url = url, None
                item["url"] = None
            elif protocol not in ("http", "https"):
                logger.warning(f"Unrecognized protocol {protocol}")
                return None

        mime_type, title, charset = item.get("mimeType"), item.get("title"), item.get("charset")
        if not path:
            try:
                return self.attachments.link_from_url(url, attached_to, mime_type, title)
            except ValueError as e:
                logger.warning(f"Error adding attachment {url}: {e}")
                return None

        file = _local_path(path, self.base_dir)
        if not file.exists():
            link_mode = LINK_MODE_IMPORTED_URL if url else LINK_MODE_IMPORTED_FILE
            return self.attachments.create_missing_attachment(
                link_mode, file, url, title or file.name, mime_type, charset, attached_to,
            )
        if url:
            return self.attachments.import_snapshot_from_file(file, url, title, mime_type, charset, attached_to)
        return self.attachments.import_from_file(file, attached_to)

    def _save_child_attachments(self, parent: Item, attachments: Optional[Iterable[Any]]) -> None:
        if not attachments or not self.save_attachments:
            return
        prefs = self.preferences
        if not (self.mode == "import" or prefs.automatic_snapshots or prefs.download_associated_files):
            return
        for attachment in attachments:
            data = dict(attachment)
            if self.mode == "import":
                data["itemType"] = "attachment"
                self.save_item(data, attached_to=parent.id)
            elif self.mode in ("web", "search"):
                self._capture_attachment(parent, data)

    def _capture_attachment(self, parent: Item, attachment: Dict[str, Any]) -> None:
        if self.attachments is None:
            return
        prefs = self.preferences
        url = attachment.get("url")
        document = attachment.get("document")
        mime_type = attachment.get("mimeType")
        title = attachment.get("title")
        if not url and document is None:
            logger.warning("Not adding attachment: no URL specified")
            return

        try:
            if attachment.get("snapshot") is False:
                # explicit opt-out of snapshotting: link only
                if not prefs.automatic_snapshots:
                    return
                if document is not None:
                    self.attachments.link_from_url(
                        document.url, parent.id, mime_type or document.content_type, title or document.title,
                    )
                else:
                    if not mime_type or not title:
                        logger.debug("Either mimeType or title is missing for linked attachment")
                    self.attachments.link_from_url(url, parent.id, mime_type, title)
            elif document is not None or mime_type == "text/html" or prefs.download_associated_files:
                if document is not None:
                    self.attachments.import_from_document(document, parent.id, title)
                elif prefs.automatic_snapshots or mime_type != "text/html":
                    base_name = self.attachments.get_file_base_name(parent.id)
                    self.attachments.import_from_url(url, parent.id, title, base_name)
        except (ValueError, OSError, requests.RequestException) as e:
            logger.warning(f"Error adding attachment {url or document}: {e}")

    # ID map, see also, tags

    def _register(self, item: Dict[str, Any], new_item: Item) -> None:
        if item.get("itemID") is not None:
            self.id_map[str(item["itemID"])] = new_item.id
        if item.get("seeAlso"):
            self._pending_see_also.append((new_item.id, list(item["seeAlso"])))
        if item.get("tags") and (self.mode == "import" or self.preferences.automatic_tags):
            for tag_type, names in self.tag_buckets(item["tags"]).items():
                self.library.add_tags(new_item, names, tag_type)

    def tag_buckets(self, tags: Iterable[Any]) -> Dict[int, List[str]]:
        """Group tags by kind: 0 is a user tag, 1 an automatic one.

        Import trusts the kind a tag object declares; capture makes every tag
        automatic.
        """
        buckets: Dict[int, List[str]] = {0: [], 1: []}
        for tag in tags:
            if isinstance(tag, str):
                buckets[0 if self.mode == "import" else 1].append(tag)
            elif isinstance(tag, Mapping) and tag.get("tag"):
                if self.mode == "import":
                    try:
                        kind = int(tag.get("type") or 0)
                    except (TypeError, ValueError):
                        logger.info(f"Discarded tag {tag!r}: invalid type")
                        continue
                    buckets.setdefault(kind, []).append(tag["tag"])
                else:
                    buckets[1].append(tag["tag"])
            else:
                logger.info(f"Discarded tag {tag!r}")
        return {kind: names for kind, names in buckets.items() if names}

    def resolve_see_also(self) -> int:
        """Link see-also references through the ID map; unresolved ones are logged."""
        linked = 0
        pending, self._pending_see_also = self._pending_see_also, []
        for item_id, refs in pending:
            for ref in refs:
                related = self.id_map.get(str(ref))
                if related is None:
                    logger.info(f"Could not resolve see-also reference {ref} for item {item_id}")
                    continue
                if self.library.add_related(item_id, related):
                    linked += 1
        return linked

    # collections

    def save_collection(self, record: Mapping[str, Any], parent_id: Optional[int] = None) -> Collection:
        collection = self.library.add_collection(record.get("name") or "Untitled", parent_id)
        self.new_collections.append(collection.id)

        for child in record.get("children") or []:
            if child.get("type") == "collection":
                self.save_collection(child, collection.id)
                continue
            item_id = self.id_map.get(str(child.get("id")))
            if item_id is None:
                logger.warning(f"Could not map {child.get('id')} to an imported item")
                continue
            logger.debug(f"Adding {item_id} to collection {collection.id}")
            self.library.add_item_to_collection(collection, item_id)
        return collection
