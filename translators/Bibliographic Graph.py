{
	"translatorID": "14763d24-8ba0-45df-8f52-b8d1108e7ac9",
	"translatorType": 3,
	"label": "Bibliographic Graph",
	"creator": "bibtrans",
	"target": "rdf",
	"minVersion": "0.3",
	"lastUpdated": "2026-09-30 12:00:00",
	"inRepository": true
}

bib.configure("dataMode", "graph")
bib.configure("getCollections", True)

NS = "http://purl.org/bibtrans/terms#"
RDF = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
ITEM_PREFIX = "urn:bibtrans:item:"
COLLECTION_PREFIX = "urn:bibtrans:collection:"

# arcs that carry structure rather than field values
STRUCTURAL = ("itemType", "creators", "tag", "seeAlso", "hasNote", "hasAttachment")


def item_uri(item_id):
	return ITEM_PREFIX + str(item_id)


def collection_uri(collection_id):
	return COLLECTION_PREFIX + str(collection_id)


def literal(graph, about, name):
	values = graph.get_targets(about, NS + name)
	return values[0] if values else None


def types_of(graph, about):
	return [str(t) for t in graph.get_targets(about, RDF + "type") or []]


# export

def write_fields(graph, about, fields):
	for field, value in fields.items():
		if value is not None and value != "":
			graph.add_statement(about, NS + field, value, True)


def write_attachment(graph, attachment):
	about = item_uri(attachment["itemID"])
	graph.add_statement(about, RDF + "type", NS + "Attachment")
	write_fields(graph, about, attachment["uniqueFields"])
	if attachment.get("path"):
		graph.add_statement(about, NS + "path", attachment["path"], True)
	return about


def write_item(graph, item):
	about = item_uri(item["itemID"])
	if item["itemType"] == "note":
		graph.add_statement(about, RDF + "type", NS + "Note")
		graph.add_statement(about, NS + "note", item.get("note") or "", True)
		return
	graph.add_statement(about, RDF + "type", NS + "Item")
	graph.add_statement(about, NS + "itemType", item["itemType"], True)
	write_fields(graph, about, item["uniqueFields"])
	if item.get("path"):
		graph.add_statement(about, NS + "path", item["path"], True)

	if item["creators"]:
		seq = graph.new_container("seq")
		graph.add_statement(about, NS + "creators", seq)
		for creator in item["creators"]:
			node = graph.new_resource()
			if creator["firstName"]:
				graph.add_statement(node, NS + "firstName", creator["firstName"], True)
			graph.add_statement(node, NS + "lastName", creator["lastName"], True)
			graph.add_statement(node, NS + "creatorType", creator["creatorType"], True)
			graph.add_container_element(seq, node)

	for tag in item["tags"]:
		node = graph.new_resource()
		graph.add_statement(node, NS + "name", tag["tag"], True)
		graph.add_statement(node, NS + "type", tag["type"], True)
		graph.add_statement(about, NS + "tag", node)

	for related in item["seeAlso"]:
		graph.add_statement(about, NS + "seeAlso", item_uri(related))

	for note in item["notes"]:
		note_about = item_uri(note["itemID"])
		graph.add_statement(note_about, RDF + "type", NS + "Note")
		graph.add_statement(note_about, NS + "note", note["note"], True)
		graph.add_statement(about, NS + "hasNote", note_about)

	for attachment in item.get("attachments") or []:
		graph.add_statement(about, NS + "hasAttachment", write_attachment(graph, attachment))


def write_collection(graph, collection):
	about = collection_uri(collection["id"])
	graph.add_statement(about, RDF + "type", NS + "Collection")
	graph.add_statement(about, NS + "name", collection["name"], True)
	for child in collection["children"]:
		if child["type"] == "collection":
			graph.add_statement(about, NS + "hasPart", collection_uri(child["id"]))
		else:
			graph.add_statement(about, NS + "hasPart", item_uri(child["id"]))


def do_export():
	graph = bib.graph
	graph.add_namespace("bt", NS)
	item = bib.next_item()
	while item:
		write_item(graph, item)
		item = bib.next_item()
	collection = bib.next_collection()
	while collection:
		write_collection(graph, collection)
		collection = bib.next_collection()


# import

def detect_import():
	return bool(bib.graph.get_sources(NS + "Item", RDF + "type"))


def read_item(graph, about):
	item = bib.Item(literal(graph, about, "itemType") or "document")
	item.itemID = str(about)
	for arc in graph.get_arcs_out(about):
		name = str(arc)
		if not name.startswith(NS):
			continue
		field = name[len(NS):]
		if field in STRUCTURAL:
			continue
		item[field] = literal(graph, about, field)

	for seq in graph.get_targets(about, NS + "creators") or []:
		for node in graph.get_container_elements(seq):
			item.creators.append({
				"firstName": literal(graph, node, "firstName") or "",
				"lastName": literal(graph, node, "lastName") or "",
				"creatorType": literal(graph, node, "creatorType") or "author",
			})

	for node in graph.get_targets(about, NS + "tag") or []:
		name = literal(graph, node, "name")
		if name:
			item.tags.append({"tag": name, "type": int(literal(graph, node, "type") or 0)})

	for related in graph.get_targets(about, NS + "seeAlso") or []:
		item.seeAlso.append(str(related))

	for note in graph.get_targets(about, NS + "hasNote") or []:
		item.notes.append({"note": literal(graph, note, "note") or "", "itemID": str(note)})

	for node in graph.get_targets(about, NS + "hasAttachment") or []:
		attachment = {}
		for field in ("title", "url", "path", "mimeType", "charset"):
			value = literal(graph, node, field)
			if value:
				attachment[field] = value
		item.attachments.append(attachment)

	item.complete()


def read_collection(graph, about):
	collection = bib.Collection(literal(graph, about, "name"))
	for part in graph.get_targets(about, NS + "hasPart") or []:
		if NS + "Collection" in types_of(graph, part):
			collection.children.append(read_collection(graph, part))
		else:
			collection.children.append(str(part))
	return collection


def do_import():
	graph = bib.graph
	for about in graph.get_sources(NS + "Item", RDF + "type") or []:
		read_item(graph, about)

	for about in graph.get_sources(NS + "Note", RDF + "type") or []:
		if not graph.get_sources(about, NS + "hasNote"):
			note = bib.Item("note")
			note.note = literal(graph, about, "note") or ""
			note.itemID = str(about)
			note.complete()

	collections = graph.get_sources(NS + "Collection", RDF + "type") or []
	nested = []
	for about in collections:
		nested.extend(str(part) for part in graph.get_targets(about, NS + "hasPart") or [])
	for about in collections:
		if str(about) not in nested:
			read_collection(graph, about).complete()
