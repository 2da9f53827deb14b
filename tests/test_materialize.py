import logging

import pytest
from sqlalchemy import func, select

from bibtrans.config import Preferences
from bibtrans.errors import ValidationError
from bibtrans.materialize import ItemSaver, synthesize_short_title
from bibtrans.store.attachments import (
	AttachmentStore,
	LINK_MODE_IMPORTED_FILE,
	LINK_MODE_IMPORTED_URL,
	LINK_MODE_LINKED_URL,
)
from bibtrans.store.models import Creator
from bibtrans.web import WebDocument


class TestShortTitle:
	@pytest.mark.parametrize("title, expected", [
		("Corrosion: a field study", "Corrosion"),
		("Why bridges fail? A review", "Why bridges fail?"),
		("Why bridges fail?", None),
		("Plain title", None),
		("Cut here: does it? Yes", "Cut here"),
		("", None),
		(None, None),
	])
	def test_synthesize(self, title, expected):
		assert synthesize_short_title(title) == expected

	def test_web_capture_adds_short_title(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "web", preferences)
		item = library.get_item(saver.save_item({"itemType": "journalArticle", "title": "Rust: the hidden cost"}))
		assert library.get_field(item, "shortTitle") == "Rust"

	def test_explicit_short_title_wins(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "web", preferences)
		item_id = saver.save_item({"itemType": "book", "title": "Rust: the hidden cost", "shortTitle": "Hidden cost"})
		assert library.get_field(library.get_item(item_id), "shortTitle") == "Hidden cost"

	def test_import_leaves_short_title_alone(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		item_id = saver.save_item({"itemType": "book", "title": "Rust: the hidden cost"})
		assert library.get_field(library.get_item(item_id), "shortTitle") is None


class TestFields:
	def test_base_field_is_mapped_to_type_field(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		item = library.get_item(saver.save_item({
			"itemType": "webpage", "title": "Home", "publicationTitle": "Example Site",
		}))
		assert library.get_fields(item) == {"title": "Home", "websiteTitle": "Example Site"}

	def test_unknown_and_invalid_fields_are_discarded(self, library, attachments, preferences, caplog):
		caplog.set_level(logging.INFO, logger="bibtrans.materialize")
		saver = ItemSaver(library, attachments, "import", preferences)
		item = library.get_item(saver.save_item({
			"itemType": "journalArticle", "title": "T", "ISBN": "123", "flavour": "salty", "volume": "",
		}))
		assert library.get_fields(item) == {"title": "T"}
		assert "Discarded field flavour" in caplog.text
		assert "not valid for type journalArticle" in caplog.text

	def test_unknown_item_type(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		with pytest.raises(ValidationError):
			saver.save_item({"itemType": "spaceship", "title": "T"})

	def test_web_item_requires_title(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "web", preferences)
		with pytest.raises(ValidationError, match="no title"):
			saver.save_item({"itemType": "book"})

	def test_web_item_with_url_gets_access_date(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "web", preferences)
		item = library.get_item(saver.save_item({"itemType": "webpage", "title": "T", "url": "https://example.org/"}))
		assert library.get_field(item, "accessDate")

	def test_child_notes(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		item = library.get_item(saver.save_item({
			"itemType": "book", "title": "T", "notes": ["first", {"note": "second"}],
		}))
		notes = library.child_items(item, "note")
		assert [n.note for n in notes] == ["first", "second"]


class TestCreators:
	def test_creators_are_shared_between_items(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		for title in ("One", "Two"):
			saver.save_item({
				"itemType": "book", "title": title,
				"creators": [{"firstName": "Jane", "lastName": "Doe  ", "creatorType": "author"}],
			})
		count = library.session.execute(select(func.count()).select_from(Creator)).scalar()
		assert count == 1

	def test_order_and_roles(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		item = library.get_item(saver.save_item({
			"itemType": "book", "title": "T",
			"creators": [
				{"firstName": "A", "lastName": "Writer", "creatorType": "author"},
				{"firstName": "B", "lastName": "Editor", "creatorType": "editor"},
				{"firstName": "C", "lastName": "Odd", "creatorType": "juggler"},
				"not a creator",
			],
		}))
		assert library.get_creators(item) == [
			{"firstName": "A", "lastName": "Writer", "creatorType": "author"},
			{"firstName": "B", "lastName": "Editor", "creatorType": "editor"},
			{"firstName": "C", "lastName": "Odd", "creatorType": "author"},
		]


class TestTags:
	def test_import_keeps_declared_kinds(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		item = library.get_item(saver.save_item({
			"itemType": "book", "title": "T",
			"tags": ["manual", {"tag": "auto", "type": 1}, {"tag": "plain"}],
		}))
		assert library.get_tags(item) == [
			{"tag": "auto", "type": 1},
			{"tag": "manual", "type": 0},
			{"tag": "plain", "type": 0},
		]

	def test_invalid_kind_discards_only_that_tag(self, library, attachments, preferences, caplog):
		caplog.set_level(logging.INFO, logger="bibtrans.materialize")
		saver = ItemSaver(library, attachments, "import", preferences)
		item = library.get_item(saver.save_item({
			"itemType": "book", "title": "T",
			"tags": ["manual", {"tag": "odd", "type": "automatic"}, {"tag": "auto", "type": "1"}],
		}))
		assert library.get_tags(item) == [
			{"tag": "auto", "type": 1},
			{"tag": "manual", "type": 0},
		]
		assert "Discarded tag" in caplog.text
		assert "odd" in caplog.text

	def test_capture_makes_every_tag_automatic(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "web", preferences)
		assert saver.tag_buckets(["a", {"tag": "b", "type": 0}, 42]) == {1: ["a", "b"]}

	def test_capture_without_automatic_tags(self, library, attachments):
		saver = ItemSaver(library, attachments, "web", Preferences(automatic_tags=False))
		item = library.get_item(saver.save_item({"itemType": "book", "title": "T", "tags": ["a"]}))
		assert library.get_tags(item) == []


class TestSeeAlso:
	def test_forward_references_resolve(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		first = saver.save_item({"itemType": "book", "title": "A", "itemID": "a", "seeAlso": ["b"]})
		second = saver.save_item({"itemType": "book", "title": "B", "itemID": "b"})
		assert library.get_related(library.get_item(first)) == []
		assert saver.resolve_see_also() == 1
		assert library.get_related(library.get_item(first)) == [second]

	def test_unresolved_reference_is_logged(self, library, attachments, preferences, caplog):
		caplog.set_level(logging.INFO, logger="bibtrans.materialize")
		saver = ItemSaver(library, attachments, "import", preferences)
		saver.save_item({"itemType": "book", "title": "A", "seeAlso": ["ghost"]})
		assert saver.resolve_see_also() == 0
		assert "ghost" in caplog.text


class TestCollections:
	def test_nested_collections_with_mapped_items(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		a = saver.save_item({"itemType": "book", "title": "A", "itemID": "a"})
		b = saver.save_item({"itemType": "book", "title": "B", "itemID": "b"})
		shelf = saver.save_collection({
			"name": "Shelf",
			"children": [
				{"type": "item", "id": "a"},
				{"type": "collection", "name": "Sub", "children": [{"type": "item", "id": "b"}]},
				{"type": "item", "id": "missing"},
			],
		})
		assert [i.id for i in library.collection_items(shelf)] == [a]
		(sub,) = library.child_collections(shelf)
		assert sub.name == "Sub"
		assert [i.id for i in library.collection_items(sub)] == [b]
		assert saver.new_collections == [shelf.id, sub.id]


class TestStandaloneAttachments:
	def test_discarded_outside_import(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "web", preferences)
		assert saver.save_item({"itemType": "attachment", "title": "PDF", "url": "https://example.org/a.pdf"}) is None

	def test_needs_path_or_url(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		assert saver.save_item({"itemType": "attachment", "title": "Nothing"}) is None

	def test_unrecognized_protocol(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		assert saver.save_item({"itemType": "attachment", "url": "ftp://example.org/a.pdf"}) is None

	def test_web_url_becomes_link(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		item = library.get_item(saver.save_item({
			"itemType": "attachment", "url": "https://example.org/a.pdf", "title": "Full text",
		}))
		assert item.link_mode == LINK_MODE_LINKED_URL
		assert library.get_field(item, "url") == "https://example.org/a.pdf"

	def test_relative_path_is_resolved_against_source(self, library, attachments, preferences, tmp_path):
		source_dir = tmp_path / "export"
		(source_dir / "files").mkdir(parents=True)
		(source_dir / "files" / "paper.pdf").write_bytes(b"%PDF-1.4")
		saver = ItemSaver(library, attachments, "import", preferences, base_dir=source_dir)
		item = library.get_item(saver.save_item({"itemType": "attachment", "path": "files/paper.pdf"}))
		assert item.link_mode == LINK_MODE_IMPORTED_FILE
		assert attachments.get_file(item).read_bytes() == b"%PDF-1.4"

	def test_file_url_is_treated_as_path(self, library, attachments, preferences, tmp_path):
		source = tmp_path / "notes.txt"
		source.write_text("hello", encoding="utf-8")
		saver = ItemSaver(library, attachments, "import", preferences)
		item = library.get_item(saver.save_item({"itemType": "attachment", "url": source.as_uri()}))
		assert item.link_mode == LINK_MODE_IMPORTED_FILE
		assert library.get_field(item, "url") is None

	def test_missing_file_leaves_placeholder(self, library, attachments, preferences, tmp_path):
		saver = ItemSaver(library, attachments, "import", preferences, base_dir=tmp_path)
		item = library.get_item(saver.save_item({
			"itemType": "attachment", "path": "gone.html", "url": "https://example.org/", "title": "Snapshot",
		}))
		assert item.link_mode == LINK_MODE_IMPORTED_URL
		assert item.path == "gone.html"
		assert not attachments.get_file(item).exists()

	def test_child_attachment_on_import(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "import", preferences)
		parent = library.get_item(saver.save_item({
			"itemType": "book", "title": "T",
			"attachments": [{"url": "https://example.org/t.pdf", "title": "PDF"}],
		}))
		(child,) = library.child_items(parent, "attachment")
		assert child.link_mode == LINK_MODE_LINKED_URL


class TestCapturedAttachments:
	def test_document_snapshot(self, library, attachments):
		saver = ItemSaver(library, attachments, "web", Preferences(automatic_snapshots=True))
		doc = WebDocument("https://example.org/p", "<html><title>Page</title></html>")
		parent = library.get_item(saver.save_item({
			"itemType": "webpage", "title": "Page",
			"attachments": [{"document": doc, "title": "Snapshot"}],
		}))
		(child,) = library.child_items(parent, "attachment")
		assert child.link_mode == LINK_MODE_IMPORTED_URL
		assert "<title>Page</title>" in attachments.get_file(child).read_text(encoding="utf-8")

	def test_disabled_by_preferences(self, library, attachments, preferences):
		saver = ItemSaver(library, attachments, "web", preferences)
		parent = library.get_item(saver.save_item({
			"itemType": "webpage", "title": "Page",
			"attachments": [{"url": "https://example.org/a.pdf", "mimeType": "application/pdf"}],
		}))
		assert library.child_items(parent) == []

	def test_link_only_attachment(self, library, attachments):
		saver = ItemSaver(library, attachments, "web", Preferences(automatic_snapshots=True))
		parent = library.get_item(saver.save_item({
			"itemType": "webpage", "title": "Page",
			"attachments": [{"url": "https://example.org/x", "snapshot": False, "title": "Link", "mimeType": "text/html"}],
		}))
		(child,) = library.child_items(parent, "attachment")
		assert child.link_mode == LINK_MODE_LINKED_URL

	def test_download_uses_session(self, library, tmp_path, http, response):
		http.routes["https://example.org/a.pdf"] = response("%PDF", headers={"Content-Type": "application/pdf"})
		store = AttachmentStore(library, tmp_path / "files", http=http)
		saver = ItemSaver(library, store, "web", Preferences(download_associated_files=True))
		parent = library.get_item(saver.save_item({
			"itemType": "journalArticle", "title": "Paper",
			"attachments": [{"url": "https://example.org/a.pdf", "mimeType": "application/pdf", "title": "PDF"}],
		}))
		(child,) = library.child_items(parent, "attachment")
		assert child.mime_type == "application/pdf"
		assert store.get_file(child).read_bytes() == b"%PDF"

	@pytest.mark.parametrize("headers", [
		{"Content-Type": "application/pdf"},
		{"Content-Type": "application/pdf", "Content-Length": "4096"},
	])
	def test_oversized_download_is_dropped(self, library, tmp_path, http, response, caplog, headers):
		caplog.set_level(logging.WARNING, logger="bibtrans.materialize")
		http.routes["https://example.org/big.pdf"] = response("%PDF" + "x" * 4092, headers=headers)
		store = AttachmentStore(library, tmp_path / "files", http=http, max_mb=1 / 1024)
		saver = ItemSaver(library, store, "web", Preferences(download_associated_files=True))
		parent = library.get_item(saver.save_item({
			"itemType": "journalArticle", "title": "Paper",
			"attachments": [{"url": "https://example.org/big.pdf", "mimeType": "application/pdf", "title": "PDF"}],
		}))
		assert library.child_items(parent) == []
		assert "byte limit" in caplog.text
		stored = tmp_path / "files"
		assert not stored.exists() or list(stored.rglob("*")) == []

	def test_download_at_limit_is_kept(self, library, tmp_path, http, response):
		http.routes["https://example.org/fits.pdf"] = response("x" * 1024, headers={"Content-Type": "application/pdf"})
		store = AttachmentStore(library, tmp_path / "files", http=http, max_mb=1 / 1024)
		item = store.import_from_url("https://example.org/fits.pdf", None)
		assert store.get_file(item).read_bytes() == b"x" * 1024
		assert list((tmp_path / "files").glob("*.part")) == []
