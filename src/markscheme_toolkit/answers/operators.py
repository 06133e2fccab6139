"""
Module: answers.operators

Purpose:
    Classify the logical shape of answer text: "A and B" (all required),
    "A or B" (any accepted), "any two from: A, B, C" (any N) or a nested
    mix that needs a human to read it.

    Rules, highest priority first:
        1. enumeration  – "any N from/of: a, b, c" → any_accepted, N required
        2. and_pair     – exactly two clauses joined by "and" → all_required
        3. or_pair      – exactly two clauses joined by "or" → any_accepted
        4. nested       – both "and" and "or" present → complex (+ warning)
        5. many_clauses – one connective, more than two clauses → simple (+ warning)
        6. plain        – simple

    "and/or" reads as "or"; a leading "both" / "either" is dropped from
    the first clause.

Key Functions:
    - parse_operators(): Classify one answer text
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cached_property
from typing import List, Optional, Tuple

from markscheme_toolkit.core.models import AnswerLogic
from .rules import Rule, RuleTable


NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

_AND_OR_RE = re.compile(r"\band\s*/\s*or\b", re.IGNORECASE)
_AND_RE = re.compile(r"\band\b", re.IGNORECASE)
_OR_RE = re.compile(r"\bor\b", re.IGNORECASE)
_LEAD_RE = re.compile(r"^\s*(?:both|either)\b[\s,:]*", re.IGNORECASE)
_ENUMERATION_RE = re.compile(
    r"\bany\s+(?P<n>\d+|" + "|".join(NUMBER_WORDS) + r")\s+(?:from|of)\b\s*(?:the\s+following)?\s*:?\s*(?P<items>.*)$",
    re.IGNORECASE | re.DOTALL,
)
_ITEM_SPLIT_RE = re.compile(r"\s*(?:[,;\n]|\bor\b|\band\b)\s*", re.IGNORECASE)

COMPLEX_WARNING = "complex answer logic: verify manually"


@dataclass(frozen=True)
class OperatorParse:
    """
    Logical breakdown of one answer text.

    Attributes:
        has_operators: Any connective (and/or/both/either/any N) was seen
        logic_type: SIMPLE, ALL_REQUIRED, ANY_ACCEPTED or COMPLEX
        required_components: Clauses that must all be present
        optional_components: Clauses of which some subset is accepted
        required_count: How many optional components are needed, if known
        validation_errors: Warnings for a human reviewer
    """

    has_operators: bool
    logic_type: AnswerLogic
    required_components: Tuple[str, ...] = ()
    optional_components: Tuple[str, ...] = ()
    required_count: Optional[int] = None
    validation_errors: Tuple[str, ...] = ()


def _clean_clause(value: str) -> str:
    return _LEAD_RE.sub("", value).strip().strip(".,;:").strip()


def _split_clauses(pattern: re.Pattern, text: str) -> List[str]:
    return [_clean_clause(part) for part in pattern.split(text)]


def count_from_word(value: str) -> Optional[int]:
    """Parse "2" or "two" (case-insensitive); None otherwise."""
    value = value.strip().lower()
    if value.isdigit():
        return int(value)
    return NUMBER_WORDS.get(value)


@dataclass(frozen=True)
class _Scan:
    """Pre-computed view of the text the rules inspect."""

    text: str

    @cached_property
    def enumeration(self) -> Optional[re.Match]:
        return _ENUMERATION_RE.search(self.text)

    @cached_property
    def has_and(self) -> bool:
        return bool(_AND_RE.search(self.text))

    @cached_property
    def has_or(self) -> bool:
        return bool(_OR_RE.search(self.text))

    @cached_property
    def has_lead(self) -> bool:
        return bool(_LEAD_RE.match(self.text))

    @cached_property
    def and_clauses(self) -> List[str]:
        return _split_clauses(_AND_RE, self.text)

    @cached_property
    def or_clauses(self) -> List[str]:
        return _split_clauses(_OR_RE, self.text)


def _enumeration(scan: _Scan) -> OperatorParse:
    match = scan.enumeration
    items = tuple(i for i in (_clean_clause(p) for p in _ITEM_SPLIT_RE.split(match.group("items"))) if i)
    return OperatorParse(
        has_operators=True,
        logic_type=AnswerLogic.ANY_ACCEPTED,
        optional_components=items,
        required_count=count_from_word(match.group("n")),
    )


def _pair(clauses: List[str]) -> bool:
    return len(clauses) == 2 and all(clauses)


def _nested(scan: _Scan) -> OperatorParse:
    branches = tuple(c for c in scan.or_clauses if c)
    return OperatorParse(
        has_operators=True,
        logic_type=AnswerLogic.COMPLEX,
        optional_components=branches,
        validation_errors=(COMPLEX_WARNING,),
    )


def _many_clauses(scan: _Scan) -> OperatorParse:
    word = "and" if scan.has_and else "or"
    clauses = scan.and_clauses if scan.has_and else scan.or_clauses
    return OperatorParse(
        has_operators=True,
        logic_type=AnswerLogic.SIMPLE,
        validation_errors=(f"'{word}' joins {len(clauses)} clauses: verify manually",),
    )


OPERATOR_RULES: RuleTable[_Scan, OperatorParse] = RuleTable([
    Rule("enumeration", lambda s: s.enumeration is not None, _enumeration),
    Rule(
        "and_pair",
        lambda s: s.has_and and not s.has_or and _pair(s.and_clauses),
        lambda s: OperatorParse(True, AnswerLogic.ALL_REQUIRED, required_components=tuple(s.and_clauses)),
    ),
    Rule(
        "or_pair",
        lambda s: s.has_or and not s.has_and and _pair(s.or_clauses),
        lambda s: OperatorParse(True, AnswerLogic.ANY_ACCEPTED, optional_components=tuple(s.or_clauses),
                                required_count=1),
    ),
    Rule("nested", lambda s: s.has_and and s.has_or, _nested),
    Rule(
        "many_clauses",
        lambda s: (s.has_and and len([c for c in s.and_clauses if c]) > 2)
        or (s.has_or and len([c for c in s.or_clauses if c]) > 2),
        _many_clauses,
    ),
    Rule(
        "plain",
        lambda s: True,
        lambda s: OperatorParse(s.has_and or s.has_or or s.has_lead, AnswerLogic.SIMPLE),
    ),
])


def parse_operators(text: Optional[str]) -> OperatorParse:
    """
    Classify the and/or structure of ``text``.

    Example:
        >>> parse_operators("red and blue").logic_type
        <AnswerLogic.ALL_REQUIRED: 'all_required'>
        >>> parse_operators("any two from: mitosis, meiosis, binary fission").required_count
        2
        >>> parse_operators("copper").has_operators
        False
    """
    raw = (text or "").strip()
    if not raw:
        return OperatorParse(False, AnswerLogic.SIMPLE)
    scan = _Scan(_AND_OR_RE.sub(" or ", raw))
    return OPERATOR_RULES.evaluate(scan).value
