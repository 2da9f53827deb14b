from datetime import datetime, timezone

import pytest

from bibtrans.errors import ValidationError
from bibtrans.export import ItemExporter
from bibtrans.materialize import ItemSaver


@pytest.fixture
def saver(library, attachments, preferences):
	return ItemSaver(library, attachments, "import", preferences)


def _drain(exporter):
	items = []
	item = exporter.next_item()
	while item is not None:
		items.append(item)
		item = exporter.next_item()
	return items


class TestItems:
	def test_unique_fields_use_base_names(self, library, saver):
		saver.save_item({"itemType": "webpage", "title": "Home", "websiteTitle": "Example Site"})
		(data,) = _drain(ItemExporter(library))
		assert data["websiteTitle"] == "Example Site"
		assert data["publicationTitle"] == "Example Site"
		assert data["uniqueFields"] == {"title": "Home", "publicationTitle": "Example Site"}

	def test_item_contents(self, library, saver):
		other = saver.save_item({"itemType": "book", "title": "Other", "itemID": "o"})
		saver.save_item({
			"itemType": "journalArticle", "title": "Paper", "volume": "3",
			"creators": [{"firstName": "Jane", "lastName": "Doe", "creatorType": "author"}],
			"tags": ["rust"], "notes": ["a note"], "seeAlso": ["o"],
		})
		saver.resolve_see_also()

		items = _drain(ItemExporter(library))
		assert [i["title"] for i in items] == ["Other", "Paper"]
		paper = items[1]
		assert paper["itemType"] == "journalArticle"
		assert paper["creators"] == [{"firstName": "Jane", "lastName": "Doe", "creatorType": "author"}]
		assert paper["tags"] == [{"tag": "rust", "type": 0}]
		assert [n["note"] for n in paper["notes"]] == ["a note"]
		assert paper["seeAlso"] == [other]
		assert paper["attachments"] == []
		assert paper["dateAdded"]

	def test_timestamps_are_utc_without_offset(self, library, saver):
		before = datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None)
		saver.save_item({"itemType": "book", "title": "Stamped"})
		(item,) = _drain(ItemExporter(library))
		for key in ("dateAdded", "dateModified"):
			stamp = datetime.strptime(item[key], "%Y-%m-%d %H:%M:%S")
			assert before <= stamp <= datetime.now(timezone.utc).replace(tzinfo=None)

	def test_explicit_item_selection(self, library, saver):
		saver.save_item({"itemType": "book", "title": "A"})
		b = saver.save_item({"itemType": "book", "title": "B"})
		items = _drain(ItemExporter(library, items=[library.get_item(b), library.get_item(b)]))
		assert [i["title"] for i in items] == ["B"]

	def test_item_callback(self, library, saver):
		saver.save_item({"itemType": "book", "title": "A"})
		seen = []
		_drain(ItemExporter(library, on_item=seen.append))
		assert [i.item_type for i in seen] == ["book"]

	def test_standalone_note(self, library):
		note = library.add_item("note")
		library.set_note(note, "<p>hi</p>")
		(data,) = _drain(ItemExporter(library))
		assert data["itemType"] == "note"
		assert data["note"] == "<p>hi</p>"
		assert data["uniqueFields"] == {"note": "<p>hi</p>"}


class TestCollections:
	def _tree(self, library, saver):
		a = saver.save_item({"itemType": "book", "title": "A", "itemID": "a"})
		b = saver.save_item({"itemType": "book", "title": "B", "itemID": "b"})
		saver.save_item({"itemType": "book", "title": "Loose"})
		shelf = saver.save_collection({
			"name": "Shelf",
			"children": [
				{"type": "item", "id": "a"},
				{"type": "collection", "name": "Sub", "children": [{"type": "item", "id": "b"}]},
			],
		})
		return shelf, a, b

	def test_collection_selection_includes_descendants(self, library, saver):
		shelf, a, b = self._tree(library, saver)
		exporter = ItemExporter(library, collection=shelf, get_collections=True)
		assert [i["title"] for i in _drain(exporter)] == ["A", "B"]
		first = exporter.next_collection()
		assert first["name"] == "Shelf"
		assert first["children"][0] == {"type": "item", "id": a}
		assert first["children"][1]["name"] == "Sub"
		assert exporter.next_collection()["name"] == "Sub"
		assert exporter.next_collection() is None

	def test_collection_without_subcollections(self, library, saver):
		shelf, a, b = self._tree(library, saver)
		(sub,) = library.child_collections(shelf)
		exporter = ItemExporter(library, collection=sub, get_collections=True)
		assert [i["itemID"] for i in _drain(exporter)] == [b]
		assert exporter.next_collection() is None

	def test_whole_library(self, library, saver):
		self._tree(library, saver)
		exporter = ItemExporter(library, get_collections=True)
		assert [i["title"] for i in _drain(exporter)] == ["A", "B", "Loose"]
		assert [exporter.next_collection()["name"] for _ in range(2)] == ["Shelf", "Sub"]

	def test_collections_require_option(self, library, saver):
		self._tree(library, saver)
		with pytest.raises(ValidationError, match="getCollections"):
			ItemExporter(library).next_collection()


class TestFileData:
	def test_stored_files_are_copied(self, library, attachments, saver, tmp_path):
		source = tmp_path / "paper.pdf"
		source.write_bytes(b"%PDF-1.4")
		parent = saver.save_item({"itemType": "book", "title": "T"})
		attachment = attachments.import_from_file(source, parent)
		attachments.link_from_url("https://example.org/", parent, "text/html", "Link")

		files = tmp_path / "out" / "files"
		exporter = ItemExporter(library, attachments, file_directory=files)
		(data,) = _drain(exporter)
		stored, linked = data["attachments"]
		assert stored["path"] == f"files/{attachment.id}/paper.pdf"
		assert stored["mimeType"] == "application/pdf"
		assert (files / str(attachment.id) / "paper.pdf").read_bytes() == b"%PDF-1.4"
		assert "path" not in linked
		assert linked["url"] == "https://example.org/"

	def test_without_file_directory_no_paths(self, library, attachments, saver, tmp_path):
		source = tmp_path / "paper.pdf"
		source.write_bytes(b"%PDF-1.4")
		parent = saver.save_item({"itemType": "book", "title": "T"})
		attachments.import_from_file(source, parent)
		(data,) = _drain(ItemExporter(library, attachments))
		assert "path" not in data["attachments"][0]
