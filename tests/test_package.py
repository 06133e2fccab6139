"""Smoke tests for the top-level package."""

import markscheme_toolkit
from markscheme_toolkit.importer import normalize_batch


def test_version_when_running_from_source_then_matches_pyproject():
    assert markscheme_toolkit.__version__ == "0.3.1"


def test_public_entry_point_when_imported_then_callable():
    assert callable(normalize_batch)
