from pathlib import Path

import pytest
import yaml

from bibtrans.cli import main

TRANSLATORS = Path(__file__).resolve().parent.parent / "translators"
RIS_ID = "32d59d2d-b65a-4da4-b0a3-bdd3cfb979e7"


@pytest.fixture
def config_file(tmp_path):
	path = tmp_path / "config.yaml"
	path.write_text(yaml.safe_dump({
		"translators_dir": str(TRANSLATORS),
		"db_path": str(tmp_path / "lib.sqlite"),
		"storage_dir": str(tmp_path / "storage"),
		"preferences": {
			"automatic_snapshots": False,
			"download_associated_files": False,
			"import_charset": "UTF-8",
		},
	}), encoding="utf-8")
	return str(path)


@pytest.fixture
def ris_file(tmp_path):
	path = tmp_path / "refs.ris"
	path.write_text("TY  - BOOK\nTI  - Rust\nAU  - Doe, Jane\nER  - \n", encoding="utf-8")
	return str(path)


class TestCommands:
	def test_import_then_export(self, config_file, ris_file, capsys):
		assert main(["import", ris_file, "--config", config_file]) == 0
		out = capsys.readouterr().out
		assert "Using RIS" in out
		assert "Imported 1 items" in out

		assert main(["export", "-", "--config", config_file, "--translator", RIS_ID]) == 0
		out = capsys.readouterr().out
		assert "TY  - BOOK" in out
		assert "AU  - Doe, Jane" in out

	def test_export_to_file(self, config_file, ris_file, tmp_path):
		assert main(["import", ris_file, "--config", config_file, "--translator", RIS_ID]) == 0
		out = tmp_path / "out.ris"
		assert main(["export", str(out), "--config", config_file, "--translator", RIS_ID]) == 0
		assert b"TI  - Rust" in out.read_bytes()

	def test_export_requires_translator(self, config_file):
		assert main(["export", "-", "--config", config_file]) == 2

	def test_unknown_collection(self, config_file):
		assert main(["export", "-", "--config", config_file, "--translator", RIS_ID, "--collection", "99"]) == 1

	def test_import_without_matching_translator(self, config_file, tmp_path, capsys):
		path = tmp_path / "notes.txt"
		path.write_text("nothing bibliographic here\n", encoding="utf-8")
		assert main(["import", str(path), "--config", config_file]) == 1
		assert "No translator found" in capsys.readouterr().out

	def test_translators(self, config_file, capsys):
		assert main(["translators", "--config", config_file]) == 0
		out = capsys.readouterr().out
		assert "RIS" in out
		assert "CrossRef" in out

	def test_db_init(self, tmp_path):
		db = tmp_path / "nested" / "lib.sqlite"
		assert main(["db-init", "--db", str(db)]) == 0
		assert db.exists()


class TestConfigValidate:
	def test_valid(self, config_file, capsys):
		assert main(["config-validate", "--config", config_file]) == 0
		assert "Config validation passed" in capsys.readouterr().out

	def test_invalid(self, tmp_path, capsys):
		path = tmp_path / "bad.yaml"
		path.write_text("timeout_sec: 5\n", encoding="utf-8")
		assert main(["config-validate", "--config", str(path)]) == 1
		assert "Config validation failed" in capsys.readouterr().out

	def test_missing_file(self, tmp_path):
		assert main(["config-validate", "--config", str(tmp_path / "absent.yaml")]) == 1
