"""Shared fixtures: a throwaway library, translator directories, fake HTTP."""

import json
import textwrap
from pathlib import Path

import pytest
import requests

from bibtrans.config import Preferences
from bibtrans.store import open_library
from bibtrans.store.attachments import AttachmentStore
from bibtrans.translate import Environment
from bibtrans.translators import TranslatorRegistry

BUNDLED_TRANSLATORS = Path(__file__).resolve().parent.parent / "translators"


class FakeResponse:
	def __init__(self, text="", status_code=200, url=None, headers=None):
		self.text = text
		self.content = text.encode("utf-8")
		self.status_code = status_code
		self.url = url
		self.headers = headers or {"Content-Type": "text/html; charset=utf-8"}
		self.encoding = "utf-8"

	def raise_for_status(self):
		if self.status_code >= 400:
			raise requests.HTTPError(f"{self.status_code} for {self.url}", response=self)

	def iter_content(self, chunk_size=65536):
		yield self.content

	def close(self):
		pass


class FakeSession:
	"""Answers GETs from a URL -> FakeResponse map; everything else is a 404."""

	def __init__(self, routes=None):
		self.routes = dict(routes or {})
		self.requests = []

	def get(self, url, **kwargs):
		self.requests.append(("GET", url, kwargs))
		resp = self.routes.get(url)
		if resp is None:
			return FakeResponse("not found", status_code=404, url=url)
		if resp.url is None:
			resp.url = url
		return resp

	def post(self, url, data=None, **kwargs):
		self.requests.append(("POST", url, data))
		return FakeResponse("", url=url)


def write_translator(directory, label, translator_type, code, target="", translator_id=None, **extra):
	info = {
		"translatorID": translator_id or label.lower().replace(" ", "-"),
		"translatorType": translator_type,
		"label": label,
		"target": target,
		"lastUpdated": "2026-01-01 00:00:00",
	}
	info.update(extra)
	path = Path(directory) / f"{label}.py"
	path.write_text(json.dumps(info, indent="\t") + "\n\n" + textwrap.dedent(code), encoding="utf-8")
	return path


@pytest.fixture
def library(tmp_path):
	lib = open_library(tmp_path / "library.sqlite")
	yield lib
	lib.close()


@pytest.fixture
def attachments(library, tmp_path):
	return AttachmentStore(library, tmp_path / "storage")


@pytest.fixture
def preferences():
	return Preferences(
		automatic_snapshots=False,
		download_associated_files=False,
		import_charset="UTF-8",
	)


@pytest.fixture
def http():
	return FakeSession()


@pytest.fixture
def translator_dir(tmp_path):
	d = tmp_path / "translators"
	d.mkdir()
	return d


@pytest.fixture
def make_translator(translator_dir):
	def _make(label, translator_type, code, target="", **kwargs):
		return write_translator(translator_dir, label, translator_type, code, target, **kwargs)
	return _make


@pytest.fixture
def env(translator_dir, library, attachments, preferences, http):
	"""Environment over the temporary translator directory."""
	return Environment(
		TranslatorRegistry(translator_dir),
		library=library,
		attachments=attachments,
		preferences=preferences,
		http=http,
	)


@pytest.fixture
def bundled_env(library, attachments, preferences, http):
	"""Environment over the translators shipped with the project."""
	return Environment(
		TranslatorRegistry(BUNDLED_TRANSLATORS),
		library=library,
		attachments=attachments,
		preferences=preferences,
		http=http,
	)


@pytest.fixture
def response():
	"""Factory for canned HTTP responses to register on the ``http`` fixture."""
	return FakeResponse
