"""bibtrans CLI: run translators against files, pages and identifiers.

Usage examples:
- List the installed translators: ``bibtrans translators``
- Import a RIS file into the library: ``bibtrans import refs.ris``
- Export the library as RIS: ``bibtrans export out.ris --translator <id>``
- Capture a page: ``bibtrans capture https://example.org/article/1``
- Look up a DOI: ``bibtrans search --doi 10.1000/xyz``
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Tuple

from rich.console import Console
from rich.table import Table

from .config import Config, load_config, read_config, validate_config
from .store import init_db, open_library
from .store.items import LibraryStore
from .translate import Environment, Translation
from .translators import TranslatorRegistry
from .web import WebDocument


console = Console()

DEFAULT_CONFIG = str(Path("config") / "config.yaml")


def _open_env(args: argparse.Namespace) -> Tuple[Config, LibraryStore, Environment]:
	config = read_config(Path(args.config))
	db_path = Path(args.db) if getattr(args, "db", None) else config.db_path
	library = open_library(db_path)
	return config, library, Environment.from_config(config, library)


def _print_items(translation: Translation, title: str) -> None:
	table = Table(title=title)
	table.add_column("ID")
	table.add_column("Type")
	table.add_column("Title")
	library = translation.env.library
	for item_id in translation.new_items:
		item = library.get_item(item_id)
		table.add_row(str(item_id), item.item_type, library.get_field(item, "title") or "")
	console.print(table)


def _run(translation: Translation, translator_id: Optional[str], what: str) -> bool:
	if translator_id:
		translation.set_translator(translator_id)
	else:
		found = translation.get_translators() or []
		if not found:
			console.print(f"[red]No translator found for {what}[/red]")
			return False
		console.print(f"Using [bold]{found[0].label}[/bold]")
		if translation.mode == "search":
			translation.set_translator(found)
		else:
			translation.set_translator(found[0])
	translation.set_handler("error", lambda obj, err: console.print(f"[red]Translation failed:[/red] {err}"))
	return bool(translation.translate())


def cmd_config_validate(args: argparse.Namespace) -> int:
	config_path = Path(args.config)
	try:
		data = load_config(config_path)
		validate_config(data)
		config = Config.from_dict(data)
		table = Table(title="bibtrans Config Summary")
		table.add_column("Field")
		table.add_column("Value")
		table.add_row("config_path", str(config_path))
		table.add_row("translators_dir", str(config.translators_dir))
		table.add_row("db_path", str(config.db_path))
		table.add_row("storage_dir", str(config.storage_dir))
		table.add_row("timeout_sec", str(config.timeout_sec))
		for name, value in vars(config.preferences).items():
			table.add_row(f"preferences.{name}", str(value))
		console.print(table)
		console.print("[green]Config validation passed.[/green]")
		return 0
	except Exception as e:
		console.print(f"[red]Config validation failed:[/red] {e}")
		return 1


def cmd_db_init(args: argparse.Namespace) -> int:
	db_path = Path(args.db)
	init_db(db_path)
	console.print(f"[green]Initialized DB:[/green] {db_path}")
	return 0


def cmd_translators(args: argparse.Namespace) -> int:
	config = read_config(Path(args.config))
	registry = TranslatorRegistry(config.translators_dir)
	modes = [args.mode] if args.mode else ["import", "export", "web", "search"]
	table = Table(title=f"Translators in {config.translators_dir}")
	table.add_column("Label")
	table.add_column("ID")
	table.add_column("Types")
	table.add_column("Target")
	seen = set()
	for mode in modes:
		for t in registry.get_all_for_type(mode):
			if t.id in seen:
				continue
			seen.add(t.id)
			types = ",".join(m for m in ("import", "export", "web", "search") if t.supports(m))
			table.add_row(t.label, t.id, types, t.target or "")
	console.print(table)
	return 0


def cmd_import(args: argparse.Namespace) -> int:
	_, library, env = _open_env(args)
	try:
		translation = Translation("import", env)
		translation.set_location(Path(args.file))
		if args.charset:
			translation.set_charset(args.charset)
		if not _run(translation, args.translator, args.file):
			return 1
		_print_items(translation, f"Imported from {args.file}")
		console.print(f"[green]Imported {len(translation.new_items)} items, {len(translation.new_collections)} collections[/green]")
		return 0
	finally:
		library.close()


def cmd_export(args: argparse.Namespace) -> int:
	_, library, env = _open_env(args)
	try:
		translation = Translation("export", env)
		translation.set_translator(args.translator)
		if args.output != "-":
			translation.set_location(Path(args.output))
		if args.collection is not None:
			collection = library.get_collection(args.collection)
			if collection is None:
				console.print(f"[red]No collection with ID {args.collection}[/red]")
				return 1
			translation.set_collection(collection)
		options = {}
		if args.export_file_data:
			options["exportFileData"] = True
		if args.charset:
			options["exportCharset"] = args.charset
		if options:
			translation.set_display_options(options)
		translation.set_handler("error", lambda obj, err: console.print(f"[red]Export failed:[/red] {err}"))
		if not translation.translate():
			return 1
		if translation.output is not None:
			sys.stdout.write(translation.output)
		else:
			console.print(f"[green]Exported to[/green] {translation.path}")
		return 0
	finally:
		library.close()


def cmd_capture(args: argparse.Namespace) -> int:
	_, library, env = _open_env(args)
	try:
		document = WebDocument.fetch(args.url, env.http)
		translation = Translation("web", env)
		translation.set_document(document)
		if not _run(translation, args.translator, args.url):
			return 1
		_print_items(translation, f"Captured from {args.url}")
		return 0
	finally:
		library.close()


def cmd_search(args: argparse.Namespace) -> int:
	_, library, env = _open_env(args)
	try:
		translation = Translation("search", env)
		translation.set_search({"DOI": args.doi})
		if not _run(translation, args.translator, args.doi):
			console.print(f"[yellow]No result for {args.doi}[/yellow]")
			return 1
		_print_items(translation, f"Found for {args.doi}")
		return 0
	finally:
		library.close()


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="bibtrans", description="Bibliographic translator engine")
	parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
	sub = parser.add_subparsers(dest="command")

	def _common(p: argparse.ArgumentParser) -> None:
		p.add_argument("--config", default=DEFAULT_CONFIG, help="Path to config.yaml")
		p.add_argument("--db", default=None, help="SQLite DB file (overrides db_path from config)")
		p.add_argument("--translator", default=None, help="Translator ID; detected when omitted")

	# config-validate
	p_validate = sub.add_parser("config-validate", help="Validate and summarize a config.yaml")
	p_validate.add_argument("--config", default=DEFAULT_CONFIG, help="Path to config.yaml")
	p_validate.set_defaults(func=cmd_config_validate)

	# db-init
	p_db = sub.add_parser("db-init", help="Initialize SQLite library schema")
	p_db.add_argument("--db", default=str(Path("data") / "bibtrans.sqlite"), help="Path to SQLite DB file")
	p_db.set_defaults(func=cmd_db_init)

	# translators
	p_tr = sub.add_parser("translators", help="List installed translators")
	p_tr.add_argument("--config", default=DEFAULT_CONFIG, help="Path to config.yaml")
	p_tr.add_argument("--mode", choices=["import", "export", "web", "search"], default=None)
	p_tr.set_defaults(func=cmd_translators)

	# import
	p_imp = sub.add_parser("import", help="Import a file into the library")
	p_imp.add_argument("file", help="File to import")
	p_imp.add_argument("--charset", default=None, help="Input character set (default: detect)")
	_common(p_imp)
	p_imp.set_defaults(func=cmd_import)

	# export
	p_exp = sub.add_parser("export", help="Export library items")
	p_exp.add_argument("output", help="Output file, or - for stdout")
	p_exp.add_argument("--collection", type=int, default=None, help="Export only this collection")
	p_exp.add_argument("--export-file-data", action="store_true", help="Copy attachment files next to the output")
	p_exp.add_argument("--charset", default=None, help="Output character set")
	_common(p_exp)
	p_exp.set_defaults(func=cmd_export)

	# capture
	p_cap = sub.add_parser("capture", help="Capture a web page")
	p_cap.add_argument("url", help="Page URL")
	_common(p_cap)
	p_cap.set_defaults(func=cmd_capture)

	# search
	p_search = sub.add_parser("search", help="Look up an identifier")
	p_search.add_argument("--doi", required=True, help="DOI to look up")
	_common(p_search)
	p_search.set_defaults(func=cmd_search)

	return parser


def main(argv: Any = None) -> int:
	parser = build_parser()
	args = parser.parse_args(argv)
	logging.basicConfig(
		level=logging.DEBUG if args.verbose else logging.INFO,
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)
	if not hasattr(args, "func"):
		parser.print_help()
		return 0
	if args.command == "export" and not args.translator:
		console.print("[red]--translator is required for export[/red]")
		return 2
	return int(args.func(args))


if __name__ == "__main__":
	sys.exit(main())
