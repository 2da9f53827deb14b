"""Records built by translator code: items, notes, attachments, collections.

Records are loosely typed. Any public attribute set on a ``ScrapedItem`` is
treated as a field; the engine decides later what survives. ``complete()``
hands the record to whatever the owning operation bound as its callback.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import ValidationError

RECORD_LISTS = ("creators", "notes", "tags", "seeAlso", "attachments")


class ScrapedItem:
	def __init__(self, item_type: Optional[str] = None, on_complete: Optional[Callable[["ScrapedItem"], Any]] = None):
		self.itemType = item_type
		self.creators: List[Any] = []
		self.notes: List[Any] = []
		self.tags: List[Any] = []
		self.seeAlso: List[Any] = []
		self.attachments: List[Any] = []
		self._on_complete = on_complete

	def complete(self) -> None:
		if self._on_complete is None:
			raise ValidationError("Item cannot be completed outside of a translation")
		self._on_complete(self)

	def rebind(self, on_complete: Callable[["ScrapedItem"], Any]) -> None:
		self._on_complete = on_complete

	def __getitem__(self, key: str) -> Any:
		if key.startswith("_"):
			raise KeyError(key)
		return getattr(self, key, None)

	def __setitem__(self, key: str, value: Any) -> None:
		if key.startswith("_"):
			raise ValidationError(f"Invalid field name {key!r}")
		setattr(self, key, value)

	def get(self, key: str, default: Any = None) -> Any:
		if key.startswith("_"):
			return default
		return getattr(self, key, default)

	def to_dict(self) -> Dict[str, Any]:
		return record_to_dict(self)

	def __repr__(self) -> str:
		return f"<ScrapedItem {self.itemType} {getattr(self, 'title', '')!r}>"


class ScrapedCollection:
	def __init__(self, name: Optional[str] = None, on_complete: Optional[Callable[["ScrapedCollection"], Any]] = None):
		self.name = name
		self.children: List[Any] = []
		self._on_complete = on_complete

	def complete(self) -> None:
		if self._on_complete is None:
			raise ValidationError("Collection cannot be completed outside of a translation")
		self._on_complete(self)

	def to_dict(self) -> Dict[str, Any]:
		return record_to_dict(self)


def _child_to_dict(child: Any) -> Dict[str, Any]:
	if isinstance(child, ScrapedCollection):
		data = record_to_dict(child)
		data["type"] = "collection"
		return data
	if isinstance(child, ScrapedItem):
		return {"type": "item", "id": child.get("itemID")}
	if isinstance(child, Mapping):
		data = dict(child)
		if data.get("type") == "collection":
			data["children"] = [_child_to_dict(c) for c in data.get("children") or []]
		else:
			data.setdefault("type", "item")
		return data
	# a bare identifier names an item
	return {"type": "item", "id": child}


def record_to_dict(record: Any) -> Dict[str, Any]:
	"""Public attributes of a record as a plain dict."""
	if isinstance(record, Mapping):
		data = dict(record)
	else:
		data = {k: v for k, v in vars(record).items() if not k.startswith("_")}
	if "children" in data:
		data["children"] = [_child_to_dict(c) for c in data["children"] or []]
	for key in RECORD_LISTS:
		if key in data and data[key] is None:
			data[key] = []
	return data


def item_factory(on_complete: Callable[[ScrapedItem], Any]) -> Callable[..., ScrapedItem]:
	def Item(item_type: Optional[str] = None) -> ScrapedItem:
		return ScrapedItem(item_type, on_complete)
	return Item


def collection_factory(on_complete: Callable[[ScrapedCollection], Any]) -> Callable[..., ScrapedCollection]:
	def Collection(name: Optional[str] = None) -> ScrapedCollection:
		return ScrapedCollection(name, on_complete)
	return Collection
