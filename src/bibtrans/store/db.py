"""Database engines for the library store.

The library lives in a local SQLite file; the schema is created from model
metadata on open.
"""
from __future__ import annotations

from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .models import Base


def create_sqlite_engine(db_path: Path):
	db_path.parent.mkdir(parents=True, exist_ok=True)
	engine = create_engine(f"sqlite:///{db_path}", future=True)
	SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
	return engine, SessionLocal


def init_db(db_path: Path) -> None:
	engine, _ = create_sqlite_engine(db_path)
	Base.metadata.create_all(engine)


def open_library(db_path: Path):
	"""Create the schema if needed and return a LibraryStore over a new session."""
	from .items import LibraryStore

	engine, SessionLocal = create_sqlite_engine(db_path)
	Base.metadata.create_all(engine)
	return LibraryStore(SessionLocal())
