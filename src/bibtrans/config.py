"""Configuration loading and validation.

The config file is YAML. Only ``translators_dir`` is required; everything else
falls back to the defaults below so that a minimal config stays small.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .constants import DEFAULT_TIMEOUT_SEC, DEFAULT_UA, REPORT_URL


@dataclass
class Preferences:
	automatic_snapshots: bool = True
	download_associated_files: bool = True
	automatic_tags: bool = True
	report_translation_failure: bool = False
	import_charset: str = "auto"

	@classmethod
	def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Preferences":
		known = {f.name for f in fields(cls)}
		return cls(**{k: v for k, v in (data or {}).items() if k in known})


@dataclass
class Config:
	translators_dir: Path
	db_path: Path = Path("data") / "bibtrans.sqlite"
	storage_dir: Path = Path("data") / "storage"
	report_url: str = REPORT_URL
	user_agent: str = DEFAULT_UA
	timeout_sec: int = DEFAULT_TIMEOUT_SEC
	preferences: Preferences = field(default_factory=Preferences)

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "Config":
		validate_config(data)
		return cls(
			translators_dir=Path(data["translators_dir"]),
			db_path=Path(data.get("db_path", cls.db_path)),
			storage_dir=Path(data.get("storage_dir", cls.storage_dir)),
			report_url=data.get("report_url", REPORT_URL),
			user_agent=data.get("user_agent", DEFAULT_UA),
			timeout_sec=int(data.get("timeout_sec", DEFAULT_TIMEOUT_SEC)),
			preferences=Preferences.from_dict(data.get("preferences")),
		)


def load_config(config_path: Path) -> Dict[str, Any]:
	if not config_path.exists():
		raise FileNotFoundError(f"Config not found: {config_path}")
	with config_path.open("r", encoding="utf-8") as f:
		data = yaml.safe_load(f) or {}
	return data


def validate_config(data: Dict[str, Any]) -> None:
	required_keys = ["translators_dir"]
	missing = [k for k in required_keys if k not in data]
	if missing:
		raise ValueError(f"Missing required config keys: {', '.join(missing)}")
	if not isinstance(data["translators_dir"], str) or not data["translators_dir"]:
		raise ValueError("translators_dir must be a non-empty string")
	prefs = data.get("preferences")
	if prefs is not None and not isinstance(prefs, dict):
		raise ValueError("preferences must be a mapping")
	if "timeout_sec" in data:
		try:
			if int(data["timeout_sec"]) <= 0:
				raise ValueError
		except (TypeError, ValueError):
			raise ValueError("timeout_sec must be a positive integer")


def read_config(config_path: Path) -> Config:
	return Config.from_dict(load_config(config_path))
