{
	"translatorID": "32d59d2d-b65a-4da4-b0a3-bdd3cfb979e7",
	"translatorType": 3,
	"label": "RIS",
	"creator": "bibtrans",
	"target": "ris",
	"minVersion": "0.3",
	"lastUpdated": "2026-09-30 12:00:00",
	"inRepository": true
}

import re

bib.configure("dataMode", "line")
bib.add_option("exportCharset", "UTF-8")

RIS_TYPES = {
	"JOUR": "journalArticle",
	"MGZN": "magazineArticle",
	"NEWS": "newspaperArticle",
	"BOOK": "book",
	"CHAP": "bookSection",
	"THES": "thesis",
	"RPRT": "report",
	"CONF": "conferencePaper",
	"ELEC": "webpage",
	"GEN": "document",
}
EXPORT_TYPES = {item_type: ris for ris, item_type in RIS_TYPES.items()}

SIMPLE_TAGS = {
	"TI": "title",
	"T1": "title",
	"T2": "publicationTitle",
	"JO": "publicationTitle",
	"JF": "publicationTitle",
	"BT": "publicationTitle",
	"VL": "volume",
	"IS": "issue",
	"AB": "abstractNote",
	"N2": "abstractNote",
	"DO": "DOI",
	"UR": "url",
	"PB": "publisher",
	"CY": "place",
	"LA": "language",
	"ET": "edition",
	"ID": "itemID",
}
EXPORT_TAGS = [
	("TI", "title"),
	("T2", "publicationTitle"),
	("VL", "volume"),
	("IS", "issue"),
	("ET", "edition"),
	("PB", "publisher"),
	("CY", "place"),
	("AB", "abstractNote"),
	("DO", "DOI"),
	("UR", "url"),
	("LA", "language"),
]

LINE_RE = re.compile(r"^([A-Z][A-Z0-9])  -(?: (.*))?$")


def detect_import():
	seen = 0
	line = bib.read()
	while line is not None and seen < 20:
		if LINE_RE.match(line) and line.startswith("TY  - "):
			return True
		if line.strip():
			seen += 1
		line = bib.read()
	return False


def apply_tag(item, tag, value):
	if not value:
		return
	if tag in SIMPLE_TAGS:
		item[SIMPLE_TAGS[tag]] = value
	elif tag in ("AU", "A1"):
		item.creators.append(bib.utilities.clean_author(value, "author", "," in value))
	elif tag in ("A2", "ED"):
		item.creators.append(bib.utilities.clean_author(value, "editor", "," in value))
	elif tag in ("PY", "Y1", "DA"):
		item.date = value.rstrip("/")
	elif tag == "SP":
		item.pages = value
	elif tag == "EP":
		item.pages = (item.get("pages") or "") + "-" + value
	elif tag == "SN":
		if item.itemType in ("book", "bookSection"):
			item.ISBN = value
		else:
			item.ISSN = value
	elif tag == "KW":
		item.tags.append(value)
	elif tag == "N1":
		item.notes.append({"note": value})
	elif tag in ("L1", "L2"):
		item.attachments.append({"path": value, "title": "Attachment"})
	else:
		bib.debug("Discarding unknown RIS tag " + tag)


def do_import():
	item = None
	line = bib.read()
	while line is not None:
		m = LINE_RE.match(line)
		if m:
			tag, value = m.group(1), (m.group(2) or "").strip()
			if tag == "TY":
				item = bib.Item(RIS_TYPES.get(value, "document"))
			elif tag == "ER":
				if item is not None:
					item.complete()
				item = None
			elif item is not None:
				apply_tag(item, tag, value)
		line = bib.read()
	if item is not None:
		item.complete()


def write_tag(tag, value):
	if value:
		bib.write(tag + "  - " + str(value) + "\r\n")


def write_item(item):
	write_tag("TY", EXPORT_TYPES.get(item["itemType"], "GEN"))
	for creator in item["creators"]:
		tag = "ED" if creator["creatorType"] == "editor" else "AU"
		if creator["firstName"]:
			write_tag(tag, creator["lastName"] + ", " + creator["firstName"])
		else:
			write_tag(tag, creator["lastName"])
	for tag, field in EXPORT_TAGS:
		write_tag(tag, item.get(field))
	write_tag("PY", item.get("date"))
	pages = item.get("pages")
	if pages:
		start, sep, end = pages.partition("-")
		write_tag("SP", start)
		write_tag("EP", end)
	if item["itemType"] in ("book", "bookSection"):
		write_tag("SN", item.get("ISBN"))
	else:
		write_tag("SN", item.get("ISSN"))
	for tag in item["tags"]:
		write_tag("KW", tag["tag"])
	for note in item["notes"]:
		write_tag("N1", note["note"])
	bib.write("ER  - \r\n\r\n")


def do_export():
	item = bib.next_item()
	while item:
		if item["itemType"] not in ("note", "attachment"):
			write_item(item)
		item = bib.next_item()
