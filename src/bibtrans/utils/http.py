from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from ..constants import DEFAULT_UA, DEFAULT_TIMEOUT_SEC, MAX_RETRIES


class TimeoutSession(requests.Session):
	"""Session that applies a default timeout to every request."""

	def __init__(self, timeout_sec: int = DEFAULT_TIMEOUT_SEC):
		super().__init__()
		self.timeout_sec = timeout_sec

	def request(self, method, url, **kwargs):
		kwargs.setdefault("timeout", self.timeout_sec)
		return super().request(method, url, **kwargs)


def build_retry(total: int = MAX_RETRIES) -> Retry:
	# POST is left out: failure reports must not be sent twice
	return Retry(
		total=total,
		backoff_factor=0.5,
		status_forcelist=[429, 500, 502, 503, 504],
		allowed_methods=frozenset(["GET", "HEAD"]),
		respect_retry_after_header=True,
	)


def session_with_retries(
	user_agent: Optional[str] = None,
	timeout_sec: int = DEFAULT_TIMEOUT_SEC,
	retries: int = MAX_RETRIES,
) -> requests.Session:
	s = TimeoutSession(timeout_sec)
	adapter = HTTPAdapter(max_retries=build_retry(retries))
	s.mount("http://", adapter)
	s.mount("https://", adapter)
	s.headers.update({"User-Agent": user_agent or DEFAULT_UA, "Accept": "*/*"})
	return s


def session_from_config(config) -> requests.Session:
	return session_with_retries(user_agent=config.user_agent, timeout_sec=config.timeout_sec)


def get_text(session: requests.Session, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
	resp = session.get(url, params=params or {})
	resp.raise_for_status()
	return resp


def post_form(session: requests.Session, url: str, data: Dict[str, Any]) -> requests.Response:
	resp = session.post(url, data=data)
	resp.raise_for_status()
	return resp
