"""
Module: common.text

Purpose:
    Text normalisation helpers shared by the answer parsers, the
    curriculum matcher and the ingestion layer.

Key Functions:
    - normalize_text(): Lowercase, trim and collapse whitespace
    - loose_key(): normalize_text() with punctuation and numbering removed
    - split_name_candidates(): Split free-text classification into names
    - dedupe_casefold(): Order-preserving case-insensitive de-duplication
    - match_variants(): Comparison keys for MCQ option/answer matching

Dependencies:
    - re, unicodedata (std)

Used By:
    - curriculum.matcher
    - importer.ingest
    - answers.alternatives
"""

from __future__ import annotations

import re
import unicodedata
from functools import lru_cache
from typing import Any, Iterable, List, Set, Tuple


__all__ = [
    "normalize_text",
    "loose_key",
    "split_name_candidates",
    "dedupe_casefold",
    "match_variants",
]


_WHITESPACE_RE = re.compile(r"\s+")
_PUNCT_RE = re.compile(r"[^\w\s]+")
_NUMBERING_RE = re.compile(r"^\s*\d+(?:\.\d+)*[\.)\]]?\s+")
_OPTION_LABEL_RE = re.compile(r"^\s*\(?([A-Za-z]|\d{1,2})[\.)\]:]\s+")
_NAME_SPLIT_RE = re.compile(r"[,/]")


@lru_cache(maxsize=4096)
def _normalize(value: str) -> str:
    value = unicodedata.normalize("NFKC", value)
    return _WHITESPACE_RE.sub(" ", value).strip().lower()


def normalize_text(value: Any) -> str:
    """
    Normalise a value for comparison.

    Example:
        >>> normalize_text("  Forces   and Motion ")
        'forces and motion'
        >>> normalize_text(None)
        ''
    """
    if value is None:
        return ""
    return _normalize(str(value))


def loose_key(value: Any) -> str:
    """
    Looser comparison key: numbering prefixes and punctuation dropped.

    Example:
        >>> loose_key("1.2 Forces & Motion!")
        'forces motion'
    """
    text = _NUMBERING_RE.sub("", normalize_text(value))
    return _WHITESPACE_RE.sub(" ", _PUNCT_RE.sub(" ", text)).strip()


def dedupe_casefold(items: Iterable[str]) -> List[str]:
    """Drop blanks and case-insensitive duplicates, keeping first occurrences."""
    seen: Set[str] = set()
    out: List[str] = []
    for item in items:
        text = item.strip() if isinstance(item, str) else ""
        key = text.casefold()
        if not text or key in seen:
            continue
        seen.add(key)
        out.append(text)
    return out


def split_name_candidates(value: Any) -> Tuple[str, ...]:
    """
    Turn a free-text classification value into candidate names.

    Accepts a string, a number, a ``{"name": ...}`` dict or a list of any
    of those. Strings are split on ``,`` and ``/``.

    Example:
        >>> split_name_candidates("Forces, Motion / Energy")
        ('Forces', 'Motion', 'Energy')
        >>> split_name_candidates(["Waves", {"name": "Light"}, "waves"])
        ('Waves', 'Light')
    """
    if value is None:
        return ()
    if isinstance(value, dict):
        value = value.get("name") or value.get("title") or ""
    if isinstance(value, (list, tuple)):
        parts: List[str] = []
        for item in value:
            parts.extend(split_name_candidates(item))
        return tuple(dedupe_casefold(parts))
    if isinstance(value, bool):
        return ()
    return tuple(dedupe_casefold(_NAME_SPLIT_RE.split(str(value))))


def match_variants(value: Any) -> Set[str]:
    """
    Comparison keys for loosely matching an answer to an MCQ option.

    Includes the normalised text, the text with any leading option label
    ("B.", "(c)") removed, and the text without trailing punctuation.

    Example:
        >>> sorted(match_variants("B. Mitochondria."))
        ['b. mitochondria', 'b. mitochondria.', 'mitochondria', 'mitochondria.']
    """
    base = normalize_text(value)
    if not base:
        return set()
    variants = {base}
    stripped = _OPTION_LABEL_RE.sub("", base)
    variants.add(stripped)
    for v in list(variants):
        variants.add(v.rstrip(".;:!"))
    variants.discard("")
    return variants
