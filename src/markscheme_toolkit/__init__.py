"""Top-level package for the Mark Scheme Toolkit.

Provides subpackages:
- markscheme_toolkit.core – immutable models and JSON schemas
- markscheme_toolkit.answers – alternative/operator parsing, structure checks, requirement codes
- markscheme_toolkit.curriculum – unit/topic/subtopic auto-mapping
- markscheme_toolkit.importer – batch ingestion and normalisation pipeline
"""

from __future__ import annotations


def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    # In dev mode, read directly from pyproject.toml
    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        for line in pyproject.read_text(encoding="utf-8").splitlines():
            if line.strip().startswith("version"):
                # Parse: version = "0.3.1"
                return line.split("=")[1].strip().strip('"').strip("'")

    # Fallback to importlib.metadata for installed package
    from importlib.metadata import PackageNotFoundError, version as pkg_version
    try:
        return pkg_version("markscheme-toolkit")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _get_version()
__all__: list[str] = ["__version__"]
