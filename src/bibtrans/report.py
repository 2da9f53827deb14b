"""Failure diagnostics: the error string written to the log and, for web
captures with the preference enabled, posted to the report endpoint."""

from __future__ import annotations

import logging
import platform
import sys
from pathlib import Path
from typing import Any, Optional, Union

import requests

from .config import Preferences
from .constants import REPORT_URL
from .translators import Translator
from .utils.http import post_form

logger = logging.getLogger(__name__)


def generate_error_string(
	error: Any,
	path: Optional[Union[str, Path]],
	preferences: Optional[Preferences] = None,
) -> str:
	prefs = preferences or Preferences()
	lines = []
	if isinstance(error, str):
		lines.append(f"thrown exception => {error}")
	elif isinstance(error, BaseException):
		lines.append(f"name => {type(error).__name__}")
		lines.append(f"message => {error}")
		cause = error.__cause__
		if cause is not None:
			lines.append(f"cause => {type(cause).__name__}: {cause}")
	elif error is not None:
		lines.append(f"thrown exception => {error!r}")

	lines.append(f"url => {path}")
	lines.append(f"downloadAssociatedFiles => {prefs.download_associated_files}")
	lines.append(f"automaticSnapshots => {prefs.automatic_snapshots}")
	return "\n".join(lines)


def system_info() -> str:
	from . import __version__

	return (
		f"bibtrans {__version__}; Python {platform.python_version()} "
		f"({sys.implementation.name}); {platform.platform()}"
	)


def report_translation_failure(
	translator: Optional[Translator],
	error_string: str,
	preferences: Preferences,
	session: Optional[requests.Session],
	url: str = REPORT_URL,
) -> bool:
	"""POST a failure report when the translator is from the repository and
	the user opted in. Returns whether a report was sent."""
	if translator is None or not translator.in_repository or not preferences.report_translation_failure:
		return False
	if session is None:
		logger.debug("No HTTP session; translation failure not reported")
		return False
	data = {
		"id": translator.id,
		"lastUpdated": translator.last_updated,
		"diagnostic": system_info(),
		"errorData": error_string,
	}
	try:
		post_form(session, url, data)
	except requests.RequestException as e:
		logger.warning(f"Could not report translation failure for {translator.label}: {e}")
		return False
	logger.info(f"Reported translation failure for {translator.label}")
	return True
