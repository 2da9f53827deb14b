"""Export-side item access: what ``bib.next_item()`` and ``bib.next_collection()`` return.

Items are handed out as plain dicts. Besides the stored fields every dict has
``uniqueFields``: each field under its base name when the type maps it onto
one (``websiteTitle`` becomes ``publicationTitle``), otherwise under its own
name. An exporter that writes ``uniqueFields`` loses nothing on re-import.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from .errors import ValidationError
from .store import schema
from .store.attachments import LINK_MODE_LINKED_FILE, LINK_MODE_LINKED_URL, AttachmentStore
from .store.items import LibraryStore
from .store.models import Collection, Item

logger = logging.getLogger(__name__)


class ItemExporter:
	def __init__(
		self,
		library: LibraryStore,
		attachments: Optional[AttachmentStore] = None,
		items: Optional[Sequence[Item]] = None,
		collection: Optional[Collection] = None,
		get_collections: bool = False,
		file_directory: Optional[Path] = None,
		on_item: Optional[Callable[[Item], Any]] = None,
	):
		self.library = library
		self.attachments = attachments
		self.get_collections = get_collections
		self.file_directory = Path(file_directory) if file_directory else None
		self.on_item = on_item
		self._items_left: List[Item] = []
		self._collections_left: List[Collection] = []
		self._select(items, collection)

	def _select(self, items: Optional[Sequence[Item]], collection: Optional[Collection]) -> None:
		lib = self.library
		if items is not None:
			self._items_left = list(items)
		elif collection is not None:
			self._items_left = lib.collection_items(collection)
			if self.get_collections:
				descendants = lib.all_collections(collection)
				if descendants:
					# the parent only counts when it actually has children
					self._collections_left = [collection] + descendants
				for child in descendants:
					self._items_left.extend(lib.collection_items(child))
		else:
			self._items_left = lib.top_level_items()
			if self.get_collections:
				self._collections_left = lib.all_collections()

		seen = set()
		unique = []
		for item in self._items_left:
			if item.id not in seen:
				seen.add(item.id)
				unique.append(item)
		self._items_left = unique
		logger.debug(f"Exporting {len(self._items_left)} items, {len(self._collections_left)} collections")

	def next_item(self) -> Optional[Dict[str, Any]]:
		while self._items_left:
			item = self._items_left.pop(0)
			if item.item_type == "attachment":
				data = self.attachment_to_dict(item)
			else:
				data = self.item_to_dict(item)
				data["attachments"] = [
					self.attachment_to_dict(a) for a in self.library.child_items(item, "attachment")
				]
			if self.on_item:
				self.on_item(item)
			return data
		return None

	def next_collection(self) -> Optional[Dict[str, Any]]:
		if not self.get_collections:
			raise ValidationError("getCollections configure option not set; cannot retrieve collection")
		if self._collections_left:
			return self.collection_to_dict(self._collections_left.pop(0))
		return None

	def item_to_dict(self, item: Item) -> Dict[str, Any]:
		lib = self.library
		fields = lib.get_fields(item)
		data: Dict[str, Any] = {"itemID": item.id, "itemType": item.item_type}
		data.update(fields)
		data["creators"] = lib.get_creators(item)
		data["tags"] = lib.get_tags(item)
		data["seeAlso"] = lib.get_related(item)
		data["notes"] = [
			{
				"itemID": n.id,
				"note": n.note or "",
				"tags": lib.get_tags(n),
				"seeAlso": lib.get_related(n),
			}
			for n in lib.child_items(item, "note")
		]
		if item.note:
			data["note"] = item.note
		if item.date_added:
			data["dateAdded"] = item.date_added.replace(tzinfo=None).isoformat(sep=" ", timespec="seconds")
		if item.date_modified:
			data["dateModified"] = item.date_modified.replace(tzinfo=None).isoformat(sep=" ", timespec="seconds")

		unique: Dict[str, Any] = {}
		for field in schema.type_fields(item.item_type):
			if field not in fields:
				continue
			base = schema.base_from_type_and_field(item.item_type, field)
			if base:
				data[base] = fields[field]
				unique[base] = fields[field]
			else:
				unique[field] = fields[field]
		if data.get("note"):
			unique["note"] = data["note"]
		data["uniqueFields"] = unique
		return data

	def attachment_to_dict(self, attachment: Item) -> Dict[str, Any]:
		data = self.item_to_dict(attachment)
		data["itemType"] = "attachment"
		data["linkMode"] = attachment.link_mode
		data["mimeType"] = data["uniqueFields"]["mimeType"] = attachment.mime_type
		data["charset"] = data["uniqueFields"]["charset"] = attachment.charset

		if attachment.link_mode != LINK_MODE_LINKED_URL and self.file_directory is not None and self.attachments:
			file = self.attachments.get_file(attachment)
			if file is not None:
				data["path"] = f"files/{attachment.id}/{file.name}"
				if not self._copy_file_data(attachment, file):
					data["path"] = None
		return data

	def _copy_file_data(self, attachment: Item, file: Path) -> bool:
		target = self.file_directory / str(attachment.id)
		try:
			if attachment.link_mode == LINK_MODE_LINKED_FILE:
				target.mkdir(parents=True, exist_ok=True)
				shutil.copy2(file, target / file.name)
			else:
				shutil.copytree(self.attachments.get_storage_directory(attachment), target, dirs_exist_ok=True)
		except OSError as e:
			logger.warning(f"Could not copy file data for attachment {attachment.id}: {e}")
			return False
		return True

	def collection_to_dict(self, collection: Collection) -> Dict[str, Any]:
		lib = self.library
		children: List[Dict[str, Any]] = [{"type": "item", "id": i.id} for i in lib.collection_items(collection)]
		children.extend(self.collection_to_dict(c) for c in lib.child_collections(collection))
		return {
			"type": "collection",
			"id": collection.id,
			"name": collection.name,
			"parent": collection.parent_id,
			"children": children,
		}
