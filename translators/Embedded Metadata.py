{
	"translatorID": "951c027d-74ac-47d4-a107-9c3069ab7b48",
	"translatorType": 4,
	"label": "Embedded Metadata",
	"creator": "bibtrans",
	"target": "",
	"minVersion": "0.3",
	"lastUpdated": "2026-09-30 12:00:00",
	"inRepository": true
}

TYPE_HINTS = [
	("citation_journal_title", "journalArticle"),
	("citation_conference_title", "conferencePaper"),
	("citation_dissertation_institution", "thesis"),
	("citation_technical_report_institution", "report"),
	("citation_inbook_title", "bookSection"),
	("citation_isbn", "book"),
]


def first(doc, *names):
	for name in names:
		values = doc.meta(name)
		if values:
			return values[0]
	return None


def guess_type(doc):
	for name, item_type in TYPE_HINTS:
		if doc.meta(name):
			return item_type
	return "webpage"


def detect_web(doc, url):
	if first(doc, "citation_title", "dc.title", "DC.title"):
		return guess_type(doc)
	return False


def do_web(doc, url):
	item = bib.Item(guess_type(doc))
	item.title = first(doc, "citation_title", "dc.title", "DC.title", "og:title") or doc.title

	for author in doc.meta("citation_author") or doc.meta("dc.creator"):
		item.creators.append(bib.utilities.clean_author(author, "author", "," in author))

	item.date = first(doc, "citation_publication_date", "citation_date", "dc.date")
	item.publicationTitle = first(
		doc, "citation_journal_title", "citation_conference_title", "citation_inbook_title", "og:site_name",
	)
	item.volume = first(doc, "citation_volume")
	item.issue = first(doc, "citation_issue")
	start, end = first(doc, "citation_firstpage"), first(doc, "citation_lastpage")
	if start:
		item.pages = start + "-" + end if end else start
	doi = first(doc, "citation_doi")
	if doi:
		item.DOI = bib.utilities.clean_doi(doi)
	item.ISSN = first(doc, "citation_issn")
	item.ISBN = first(doc, "citation_isbn")
	item.publisher = first(doc, "citation_publisher", "dc.publisher")
	item.language = first(doc, "citation_language", "dc.language")
	item.abstractNote = first(doc, "citation_abstract", "dc.description", "description", "og:description")
	item.url = first(doc, "citation_abstract_html_url") or url

	for keywords in doc.meta("citation_keywords"):
		for keyword in keywords.split(";"):
			if keyword.strip():
				item.tags.append(keyword.strip())

	pdf = first(doc, "citation_pdf_url")
	if pdf:
		item.attachments.append({"url": pdf, "title": "Full Text PDF", "mimeType": "application/pdf"})
	item.attachments.append({"document": doc, "title": "Snapshot"})
	item.complete()
