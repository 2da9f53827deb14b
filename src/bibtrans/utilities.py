"""Helpers exposed to translator code as ``bib.utilities``.

String cleanup mirrors what the scrapers do when they normalize metadata.
Network helpers never block the translator: each request is queued on the
operation's callback queue and runs when the queue is drained, so a
translator that uses them must call ``bib.wait()`` and later ``bib.done()``.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import requests

from .utils.http import session_with_retries
from .web import WebDocument

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_DOI_RE = re.compile(r"10\.\d{4,9}/[^\s\"<>]+")
_ALLCAPS_RE = re.compile(r"^[A-ZÀ-Þ\-\s.']+$")


def trim_internal(s: Optional[str]) -> str:
	"""Collapse runs of whitespace and strip the ends."""
	if not s:
		return ""
	return re.sub(r"\s+", " ", s).strip()


def clean_tags(s: Optional[str]) -> str:
	if not s:
		return ""
	return trim_internal(_TAG_RE.sub(" ", s))


def unescape_html(s: Optional[str]) -> str:
	return html.unescape(s or "")


def clean_doi(s: Optional[str]) -> Optional[str]:
	if not s:
		return None
	m = _DOI_RE.search(s)
	return m.group(0).rstrip(".,;") if m else None


def _fix_case(name: str) -> str:
	if name and _ALLCAPS_RE.match(name):
		return " ".join(part.capitalize() for part in name.split(" "))
	return name


def clean_author(author: str, creator_type: str = "author", use_comma: bool = False) -> Dict[str, str]:
	"""Split a display name into first and last name.

	With ``use_comma`` the name is read as ``Last, First``; otherwise the last
	word is the last name. All-caps names are title-cased.
	"""
	author = trim_internal(re.sub(r"^[\s.,;:]+|[\s,;:]+$", "", author or ""))
	if use_comma and "," in author:
		last, first = (p.strip() for p in author.split(",", 1))
	else:
		parts = author.split(" ")
		last = parts.pop() if parts else ""
		first = " ".join(parts)
	return {
		"firstName": _fix_case(first),
		"lastName": _fix_case(last),
		"creatorType": creator_type,
	}


class Utilities:
	"""Bound to one operation; network callbacks go through its queue."""

	def __init__(self, translation):
		self._translation = translation

	# strings

	def trim_internal(self, s):
		return trim_internal(s)

	def clean_tags(self, s):
		return clean_tags(s)

	def unescape_html(self, s):
		return unescape_html(s)

	def clean_doi(self, s):
		return clean_doi(s)

	def clean_author(self, author, creator_type="author", use_comma=False):
		return clean_author(author, creator_type, use_comma)

	# documents

	def xpath(self, document: WebDocument, expr: str) -> List[str]:
		return document.xpath(expr)

	def xpath_text(self, document: WebDocument, expr: str) -> Optional[str]:
		values = [trim_internal(v) for v in document.xpath(expr)]
		values = [v for v in values if v]
		return " ".join(values) if values else None

	def get_item_array(self, document: WebDocument, link_pattern: Optional[str] = None) -> Dict[str, str]:
		"""Map absolute link URLs to link text, for ``select_items``."""
		regexp = re.compile(link_pattern) if link_pattern else None
		found: Dict[str, str] = {}
		for a in document.soup.find_all("a", href=True):
			url = document.resolve(a["href"])
			if regexp and not regexp.search(url):
				continue
			text = trim_internal(a.get_text(" "))
			if text and url not in found:
				found[url] = text
		return found

	# deferred work

	def defer(self, fn: Callable[..., Any], *args) -> None:
		self._translation.queue.call_soon(fn, *args)

	def _session(self) -> requests.Session:
		env = self._translation.env
		if env.http is None:
			env.http = session_with_retries()
		return env.http

	def do_get(
		self,
		urls: Union[str, Iterable[str]],
		processor: Optional[Callable[[str, Any], Any]] = None,
		done: Optional[Callable[[], Any]] = None,
	) -> None:
		"""GET each URL in turn, calling ``processor(text, response)`` for each and ``done()`` at the end."""
		urls = [urls] if isinstance(urls, str) else list(urls)

		def run() -> None:
			for url in urls:
				logger.debug(f"GET {url}")
				resp = self._session().get(url)
				resp.raise_for_status()
				if processor:
					processor(resp.text, resp)
			if done:
				done()

		self.defer(run)

	def do_post(self, url: str, body: Any, on_done: Optional[Callable[[str, Any], Any]] = None) -> None:
		def run() -> None:
			logger.debug(f"POST {url}")
			resp = self._session().post(url, data=body)
			resp.raise_for_status()
			if on_done:
				on_done(resp.text, resp)

		self.defer(run)

	def process_documents(
		self,
		urls: Union[str, Iterable[str]],
		processor: Callable[[WebDocument], Any],
		done: Optional[Callable[[], Any]] = None,
	) -> None:
		"""Fetch each URL as a ``WebDocument`` and hand it to ``processor``."""
		urls = [urls] if isinstance(urls, str) else list(urls)

		def run() -> None:
			for url in urls:
				processor(WebDocument.fetch(url, self._session()))
			if done:
				done()

		self.defer(run)

	def retrieve_source(self, url: str) -> str:
		"""Blocking GET; returns the response body."""
		resp = self._session().get(url)
		resp.raise_for_status()
		return resp.text
