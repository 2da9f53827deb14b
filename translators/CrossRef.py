{
	"translatorID": "11645bd1-0420-45c1-badb-53fb41eeb753",
	"translatorType": 8,
	"label": "CrossRef",
	"creator": "bibtrans",
	"target": "^https://api\\.crossref\\.org/",
	"minVersion": "0.3",
	"lastUpdated": "2026-09-30 12:00:00",
	"inRepository": true
}

import json
from urllib.parse import quote

API_URL = "https://api.crossref.org/works/"

TYPES = {
	"journal-article": "journalArticle",
	"book": "book",
	"monograph": "book",
	"book-chapter": "bookSection",
	"proceedings-article": "conferencePaper",
	"report": "report",
	"dissertation": "thesis",
	"posted-content": "document",
}


def detect_search(query):
	return bool(bib.utilities.clean_doi(query.get("DOI") or ""))


def first(values):
	return values[0] if values else None


def parse_work(text):
	data = json.loads(text).get("message") or {}
	item = bib.Item(TYPES.get(data.get("type"), "journalArticle"))
	item.title = first(data.get("title"))
	item.publicationTitle = first(data.get("container-title"))
	item.journalAbbreviation = first(data.get("short-container-title"))

	for author in data.get("author") or []:
		item.creators.append({
			"firstName": author.get("given") or "",
			"lastName": author.get("family") or author.get("name") or "",
			"creatorType": "author",
		})
	for editor in data.get("editor") or []:
		item.creators.append({
			"firstName": editor.get("given") or "",
			"lastName": editor.get("family") or editor.get("name") or "",
			"creatorType": "editor",
		})

	parts = first((data.get("issued") or {}).get("date-parts"))
	if parts and parts[0]:
		item.date = "-".join(str(p).zfill(2) for p in parts)

	item.volume = data.get("volume")
	item.issue = data.get("issue")
	item.pages = data.get("page")
	item.publisher = data.get("publisher")
	item.DOI = data.get("DOI")
	item.url = data.get("URL")
	item.ISSN = first(data.get("ISSN"))
	item.ISBN = first(data.get("ISBN"))
	if data.get("abstract"):
		item.abstractNote = bib.utilities.trim_internal(bib.utilities.clean_tags(data["abstract"]))
	for subject in data.get("subject") or []:
		item.tags.append(subject)
	item.complete()


def do_search(query):
	doi = bib.utilities.clean_doi(query.get("DOI") or "")
	if not doi:
		return
	bib.wait()
	bib.utilities.do_get(
		API_URL + quote(doi),
		lambda text, response: parse_work(text),
		lambda: bib.done(),
	)
