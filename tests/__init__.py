"""Test suite for bibtrans.

Test organization:
- tests/test_io_*.py: byte order marks, readers, writers, graph I/O
- tests/test_registry.py, test_sandbox.py: translator loading and isolation
- tests/test_search.py: translator detection
- tests/test_materialize.py, test_export.py: record folding and export access
- tests/test_records_utilities.py: translator records and bib.utilities
- tests/test_translate_*.py: whole operations through the orchestrator
- tests/test_config.py, test_report.py, test_cli.py: config, failure reports, command line
"""
