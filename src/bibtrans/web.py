"""Web documents handed to web translators.

A ``WebDocument`` wraps fetched HTML. Parsing is lazy: BeautifulSoup (lxml
parser) for tree access and a Scrapy ``Selector`` for XPath and CSS queries,
the same pair the scrapers use for metadata extraction.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup
from scrapy.selector import Selector

from .utils.http import get_text, session_with_retries

logger = logging.getLogger(__name__)


class WebDocument:
	def __init__(self, url: str, html: str, content_type: Optional[str] = "text/html"):
		self.url = url
		self.html = html or ""
		self.content_type = content_type
		self._soup: Optional[BeautifulSoup] = None
		self._selector: Optional[Selector] = None

	@classmethod
	def fetch(cls, url: str, session: Optional[requests.Session] = None) -> "WebDocument":
		session = session or session_with_retries()
		resp = get_text(session, url)
		content_type = (resp.headers.get("Content-Type") or "text/html").split(";")[0].strip()
		logger.debug(f"Fetched {url} ({content_type}, {len(resp.content)} bytes)")
		return cls(resp.url or url, resp.text, content_type)

	@property
	def location(self) -> str:
		return self.url

	@property
	def soup(self) -> BeautifulSoup:
		if self._soup is None:
			self._soup = BeautifulSoup(self.html, "lxml")
		return self._soup

	@property
	def selector(self) -> Selector:
		if self._selector is None:
			self._selector = Selector(text=self.html or "<html></html>")
		return self._selector

	@property
	def title(self) -> str:
		tag = self.soup.title
		return tag.get_text(strip=True) if tag else ""

	def xpath(self, expr: str) -> List[str]:
		return self.selector.xpath(expr).getall()

	def xpath_first(self, expr: str) -> Optional[str]:
		return self.selector.xpath(expr).get()

	def css(self, expr: str) -> List[str]:
		return self.selector.css(expr).getall()

	def meta(self, name: str) -> List[str]:
		"""Content of every ``<meta name=...>`` (or ``property=...``) tag with that name."""
		values = self.selector.xpath(f'//meta[@name="{name}" or @property="{name}"]/@content').getall()
		return [v.strip() for v in values if v and v.strip()]

	def resolve(self, href: str) -> str:
		return urljoin(self.url, href)

	def __repr__(self) -> str:
		return f"<WebDocument {self.url}>"
