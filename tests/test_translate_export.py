import pytest

from bibtrans.errors import ValidationError
from bibtrans.materialize import ItemSaver
from bibtrans.store import open_library
from bibtrans.store.attachments import AttachmentStore
from bibtrans.translate import Environment, Translation
from bibtrans.translators import TranslatorRegistry

RIS_ID = "32d59d2d-b65a-4da4-b0a3-bdd3cfb979e7"
GRAPH_ID = "14763d24-8ba0-45df-8f52-b8d1108e7ac9"

ARTICLE_RIS = (
	"TY  - JOUR\r\n"
	"AU  - Doe, Jane\r\n"
	"TI  - Rust\r\n"
	"T2  - Corrosion Science\r\n"
	"VL  - 12\r\n"
	"PY  - 2019\r\n"
	"SP  - 100\r\n"
	"EP  - 120\r\n"
	"SN  - 0010-938X\r\n"
	"KW  - steel\r\n"
	"N1  - checked\r\n"
	"ER  - \r\n\r\n"
)


@pytest.fixture
def article(library, attachments, preferences):
	saver = ItemSaver(library, attachments, "import", preferences)
	item_id = saver.save_item({
		"itemType": "journalArticle",
		"title": "Rust",
		"publicationTitle": "Corrosion Science",
		"volume": "12",
		"pages": "100-120",
		"date": "2019",
		"ISSN": "0010-938X",
		"creators": [{"firstName": "Jane", "lastName": "Doe", "creatorType": "author"}],
		"tags": ["steel"],
		"notes": ["checked"],
	})
	library.commit()
	return library.get_item(item_id)


@pytest.fixture
def shelf(library, attachments, preferences):
	"""Two items and a webpage in a Shelf/Sub collection tree with a see-also link."""
	saver = ItemSaver(library, attachments, "import", preferences)
	saver.save_item({
		"itemType": "journalArticle", "itemID": "a", "title": "Rust", "volume": "12",
		"creators": [
			{"firstName": "Jane", "lastName": "Doe", "creatorType": "author"},
			{"firstName": "", "lastName": "Consortium", "creatorType": "editor"},
		],
		"tags": ["steel", {"tag": "auto", "type": 1}],
		"notes": ["checked"],
		"seeAlso": ["b"],
	})
	saver.save_item({"itemType": "book", "itemID": "b", "title": "Metals", "ISBN": "978-0-00-000000-0"})
	saver.save_item({"itemType": "webpage", "itemID": "c", "title": "Blog", "websiteTitle": "Rusty"})
	saver.save_collection({
		"name": "Shelf",
		"children": [
			{"type": "item", "id": "a"},
			{"type": "collection", "name": "Sub", "children": [{"type": "item", "id": "b"}]},
		],
	})
	saver.resolve_see_also()
	library.commit()


def _export(env, translator_id=RIS_ID, location=None, options=None):
	translation = Translation("export", env)
	translation.set_translator(translator_id)
	if location is not None:
		translation.set_location(location)
	if options:
		translation.set_display_options(options)
	return translation


class TestRisExport:
	def test_to_string(self, bundled_env, article):
		translation = _export(bundled_env)
		exported = []
		translation.set_handler("itemDone", lambda obj, item: exported.append(item.id))
		assert translation.translate() is True
		assert translation.output == ARTICLE_RIS
		assert exported == [article.id]

	def test_to_file_with_bom(self, bundled_env, article, tmp_path):
		out = tmp_path / "out.ris"
		assert _export(bundled_env, location=out).translate() is True
		assert out.read_bytes() == b"\xef\xbb\xbf" + ARTICLE_RIS.encode("utf-8")

	def test_charset_without_bom(self, bundled_env, article, tmp_path):
		out = tmp_path / "out.ris"
		assert _export(bundled_env, location=out, options={"exportCharset": "UTF-8xBOM"}).translate() is True
		assert out.read_bytes() == ARTICLE_RIS.encode("utf-8")

	def test_selected_items_only(self, bundled_env, library, article):
		other = library.add_item("book")
		library.set_field(other, "title", "Other")
		translation = _export(bundled_env)
		translation.set_items([article])
		assert translation.translate() is True
		assert "TI  - Other" not in translation.output
		assert "TI  - Rust" in translation.output

	def test_file_data_layout(self, bundled_env, attachments, article, tmp_path):
		source = tmp_path / "paper.pdf"
		source.write_bytes(b"%PDF-1.4")
		attachment = attachments.import_from_file(source, article.id)

		target = tmp_path / "export" / "My Library.ris"
		translation = _export(bundled_env, location=target, options={"exportFileData": True})
		assert translation.translate() is True
		folder = tmp_path / "export" / "My Library"
		assert translation.path == str(folder / "My Library.ris")
		assert (folder / "My Library.ris").read_bytes().startswith(b"\xef\xbb\xbfTY  - JOUR")
		assert (folder / "files" / str(attachment.id) / "paper.pdf").read_bytes() == b"%PDF-1.4"


class TestExportFailures:
	def test_collections_need_option(self, env, article, make_translator):
		make_translator("Collector", 2, "def do_export():\n    bib.next_collection()\n")
		translation = _export(env, "collector")
		errors = []
		translation.set_handler("error", lambda obj, err: errors.append(err))
		assert translation.translate() is False
		assert isinstance(errors[0], ValidationError)

	def test_no_library(self, translator_dir, make_translator):
		make_translator("Writer", 2, "def do_export():\n    pass\n")
		translation = _export(Environment(TranslatorRegistry(translator_dir)), "writer")
		with pytest.raises(ValueError, match="no library"):
			translation.translate()

	def test_read_only_io_in_graph_mode(self, env, article, make_translator):
		make_translator("Graph Writer", 2, """
bib.configure("dataMode", "rdf")

def do_export():
    bib.write("text")
""")
		translation = _export(env, "graph-writer")
		assert translation.translate() is False


class TestGraphRoundTrip:
	def test_library_survives_export_and_import(self, bundled_env, library, shelf, tmp_path, preferences):
		out = tmp_path / "library.rdf"
		assert _export(bundled_env, GRAPH_ID, location=out).translate() is True
		assert "http://purl.org/bibtrans/terms#" in out.read_text(encoding="utf-8")

		second = open_library(tmp_path / "second.sqlite")
		try:
			env = Environment(
				bundled_env.registry,
				library=second,
				attachments=AttachmentStore(second, tmp_path / "second-storage"),
				preferences=preferences,
			)
			translation = Translation("import", env)
			translation.set_location(out)
			found = translation.get_translators()
			assert [t.label for t in found] == ["Bibliographic Graph"]
			translation.set_translator(found[0])
			assert translation.translate() is True

			items = {second.get_field(i, "title"): i for i in second.top_level_items()}
			assert sorted(items) == ["Blog", "Metals", "Rust"]
			rust, metals, blog = items["Rust"], items["Metals"], items["Blog"]

			assert second.get_fields(rust) == {"title": "Rust", "volume": "12"}
			assert second.get_creators(rust) == [
				{"firstName": "Jane", "lastName": "Doe", "creatorType": "author"},
				{"firstName": "", "lastName": "Consortium", "creatorType": "editor"},
			]
			assert second.get_tags(rust) == [{"tag": "auto", "type": 1}, {"tag": "steel", "type": 0}]
			assert [n.note for n in second.child_items(rust, "note")] == ["checked"]
			assert second.get_related(rust) == [metals.id]
			assert second.get_field(metals, "ISBN") == "978-0-00-000000-0"
			assert second.get_fields(blog) == {"title": "Blog", "websiteTitle": "Rusty"}

			(top,) = second.child_collections(None)
			assert top.name == "Shelf"
			assert [i.id for i in second.collection_items(top)] == [rust.id]
			(sub,) = second.child_collections(top)
			assert sub.name == "Sub"
			assert [i.id for i in second.collection_items(sub)] == [metals.id]
		finally:
			second.close()

	def test_export_to_string(self, bundled_env, shelf):
		translation = _export(bundled_env, GRAPH_ID)
		assert translation.translate() is True
		assert "urn:bibtrans:item:" in translation.output
		assert "Shelf" in translation.output
