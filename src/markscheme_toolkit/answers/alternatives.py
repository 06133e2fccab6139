"""
Module: answers.alternatives

Purpose:
    Split delimiter-separated answer text ("oxygen/O2") into individual
    accepted alternatives and expand a node's imported answer entries
    into AnswerAlternative records.

    Splitting never happens inside protected spans:
    - anything enclosed in (), [] or {}
    - numeric fractions ("1/2", "3 / 4")
    - "and/or"
    - compound units ("m/s", "kg/m3", "J/kg")

Key Functions:
    - parse_alternatives(): Split one text on the delimiter
    - expand_answers(): Turn RawAnswer entries into linked AnswerAlternatives

Dependencies:
    - re (std)
    - answers.markers: ORA/OWTTE/ECF flag detection

Used By:
    - importer.pipeline
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from markscheme_toolkit.core.models import AnswerAlternative, RawAnswer, ValidationIssue
from .markers import detect_markers

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = "/"

_OPEN = "([{"
_CLOSE = ")]}"

_UNIT = r"(?:[kcmdnµμ]?(?:m|g|s|mol|J|N|W|V|A|Pa|L|l|Hz)|h|hr|min|K|°C)"
_PROTECTED_SLASH_PATTERNS = (
    re.compile(r"\d+(?:\.\d+)?\s*/\s*\d+(?:\.\d+)?"),
    re.compile(r"\band\s*/\s*or\b", re.IGNORECASE),
    re.compile(rf"(?<![\w/]){_UNIT}[0-9²³]?\s*/\s*{_UNIT}[0-9²³\-]*(?![\w/])"),
)


@dataclass(frozen=True)
class AlternativeParse:
    """
    Result of splitting one answer text.

    Attributes:
        has_delimiter: At least one split point was found
        alternatives: Trimmed, de-duplicated alternatives (the whole
            trimmed text when nothing was split)
        validation_errors: Problems noticed while splitting
    """

    has_delimiter: bool
    alternatives: Tuple[str, ...]
    validation_errors: Tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.alternatives)


def _protected_spans(text: str, delimiter: str) -> List[Tuple[int, int]]:
    if delimiter != "/":
        return []
    spans = []
    for pattern in _PROTECTED_SLASH_PATTERNS:
        spans.extend(m.span() for m in pattern.finditer(text))
    return spans


def _is_protected(index: int, spans: Sequence[Tuple[int, int]]) -> bool:
    return any(start <= index < end for start, end in spans)


def parse_alternatives(text: Optional[str], delimiter: str = DEFAULT_DELIMITER) -> AlternativeParse:
    """
    Split answer text on ``delimiter`` outside protected spans.

    Args:
        text: Raw answer text (None is treated as empty)
        delimiter: Alternative separator, "/" unless configured otherwise

    Returns:
        AlternativeParse with alternatives in original order

    Example:
        >>> parse_alternatives("oxygen/O2").alternatives
        ('oxygen', 'O2')
        >>> parse_alternatives("speed in m/s").has_delimiter
        False
        >>> parse_alternatives("a//b").validation_errors
        ('empty alternative at position 2',)
    """
    if not delimiter:
        raise ValueError("delimiter must be a non-empty string")
    raw = text or ""
    spans = _protected_spans(raw, delimiter)

    cuts: List[int] = []
    errors: List[str] = []
    depth = 0
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch in _OPEN:
            depth += 1
        elif ch in _CLOSE:
            if depth == 0:
                errors.append(f"unbalanced closing bracket at offset {i}")
            depth = max(0, depth - 1)
        elif depth == 0 and raw.startswith(delimiter, i) and not _is_protected(i, spans):
            cuts.append(i)
            i += len(delimiter)
            continue
        i += 1
    if depth > 0:
        errors.append("unbalanced opening bracket")

    if not cuts:
        return AlternativeParse(False, (raw.strip(),), tuple(errors))

    segments = []
    start = 0
    for cut in cuts:
        segments.append(raw[start:cut])
        start = cut + len(delimiter)
    segments.append(raw[start:])

    seen = set()
    alternatives: List[str] = []
    for position, segment in enumerate(segments, start=1):
        value = segment.strip()
        if not value:
            errors.append(f"empty alternative at position {position}")
            continue
        key = value.casefold()
        if key in seen:
            continue
        seen.add(key)
        alternatives.append(value)

    return AlternativeParse(True, tuple(alternatives), tuple(errors))


# ─────────────────────────────────────────────────────────────────────────────
# Expansion into AnswerAlternative records
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AnswerExpansion:
    """
    Expanded answers for one node.

    Attributes:
        alternatives: AnswerAlternatives with 1-based sequential IDs
        split_count: Alternatives produced by delimiter splits
        has_delimiter: Any entry contained a split point
        issues: Parse warnings raised while splitting
    """

    alternatives: Tuple[AnswerAlternative, ...]
    split_count: int = 0
    has_delimiter: bool = False
    issues: Tuple[ValidationIssue, ...] = ()


def fallback_marks(node_marks: Optional[int], answer_count: int) -> int:
    """Marks for an entry without its own marks: an even share, at least 1."""
    if not node_marks or answer_count <= 0:
        return 1
    return max(1, round(node_marks / answer_count))


def _declared_ids_usable(entries: Sequence[RawAnswer], parses: Sequence[AlternativeParse]) -> bool:
    ids = [e.alternative_id for e in entries]
    if any(i is None or i < 1 for i in ids) or len(set(ids)) != len(ids):
        return False
    return not any(p.has_delimiter and p.count > 1 for p in parses)


def expand_answers(
    entries: Sequence[RawAnswer],
    *,
    node_marks: Optional[int] = None,
    delimiter: str = DEFAULT_DELIMITER,
) -> AnswerExpansion:
    """
    Split every answer entry and build linked AnswerAlternative records.

    Alternatives that come from the same split are typed
    ``one_required`` and linked to each other. When no entry splits and
    the import carried unique alternative IDs, those IDs and their
    declared links are kept.
    """
    parses = [parse_alternatives(e.text, delimiter) for e in entries]
    keep_ids = _declared_ids_usable(entries, parses)
    known_ids = {e.alternative_id for e in entries} if keep_ids else set()
    share = fallback_marks(node_marks, len(entries))

    alternatives: List[AnswerAlternative] = []
    issues: List[ValidationIssue] = []
    split_count = 0
    next_id = 1

    for entry, parse in zip(entries, parses):
        for message in parse.validation_errors:
            issues.append(ValidationIssue("warning", "ALTERNATIVE_PARSE", message,
                                          field="correct_answers", kind="parse"))
        marks = entry.marks if entry.marks is not None else share
        is_group = parse.has_delimiter and parse.count > 1
        group_ids = tuple(range(next_id, next_id + parse.count))
        if parse.has_delimiter:
            split_count += parse.count

        for offset, text in enumerate(parse.alternatives):
            if keep_ids:
                alt_id = entry.alternative_id
                linked = tuple(i for i in entry.linked_alternatives if i in known_ids and i != alt_id)
            else:
                alt_id = group_ids[offset]
                linked = tuple(i for i in group_ids if i != alt_id) if is_group else ()
            flags = detect_markers(text)
            alternatives.append(AnswerAlternative(
                text=text,
                marks=marks,
                alternative_id=alt_id,
                linked_alternative_ids=linked,
                alternative_type=entry.alternative_type or ("one_required" if is_group else None),
                context=entry.context,
                unit=entry.unit,
                accepts_equivalent_phrasing=flags.phrasing_flag(entry.accepts_equivalent_phrasing),
                accepts_reverse_argument=flags.reverse_flag(entry.accepts_reverse_argument),
                error_carried_forward=flags.ecf_flag(entry.error_carried_forward),
                acceptable_variations=entry.acceptable_variations + flags.accepted,
            ))
        next_id += parse.count

    if not keep_ids and any(e.linked_alternatives for e in entries):
        logger.debug("Declared alternative links dropped: IDs were reassigned after splitting")

    return AnswerExpansion(
        alternatives=tuple(alternatives),
        split_count=split_count,
        has_delimiter=any(p.has_delimiter for p in parses),
        issues=tuple(issues),
    )
