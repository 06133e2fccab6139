"""
Module: answers.formats

Purpose:
    Question-type normalisation, answer-format lookup/detection, answer
    expectation (does this node expect an answer at all, or is it only
    context for its children?) and the manual-marking flag.

Key Functions:
    - normalize_question_type(): Map imported type strings onto known types
    - normalize_answer_format(): Validate a declared answer format
    - detect_answer_format(): Infer a format from stem wording
    - detect_answer_expectation(): Answer-bearing vs contextual-only
    - requires_manual_marking(): Whether a node needs a human marker
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from markscheme_toolkit.core.models import AnswerAlternative, AnswerLogic, NodeLevel
from markscheme_toolkit.common.text import normalize_text
from .rules import Rule, RuleTable


QUESTION_TYPES = (
    "mcq", "tf", "descriptive", "calculation", "diagram",
    "essay", "complex", "matching", "sequencing",
)

_TYPE_ALIASES = {
    "multiple_choice": "mcq",
    "multiple choice": "mcq",
    "true_false": "tf",
    "true/false": "tf",
    "truefalse": "tf",
    "extended_response": "essay",
    "extended response": "essay",
    "structured": "descriptive",
    "short_answer": "descriptive",
    "ordering": "sequencing",
    "match": "matching",
}

ANSWER_FORMATS = (
    "single_word",
    "single_line",
    "two_items",
    "two_items_connected",
    "multi_line",
    "multi_line_labeled",
    "calculation",
    "equation",
    "chemical_structure",
    "structural_diagram",
    "diagram",
    "table",
    "table_completion",
    "graph",
    "code",
    "audio",
    "file_upload",
    "essay",
    "extended_response",
)

MANUAL_FORMATS = frozenset({"essay", "extended_response", "file_upload", "audio"})
MANY_VARIATIONS = 5


def normalize_question_type(
    raw_type: Optional[str],
    *,
    mcq_type: Optional[str] = None,
    answer_format: Optional[str] = None,
    has_children: bool = False,
) -> str:
    """
    Normalise an imported question type.

    Unknown or missing types become "descriptive", or "complex" when the
    node has children.

    Example:
        >>> normalize_question_type("Multiple Choice")
        'mcq'
        >>> normalize_question_type(None, mcq_type="single")
        'mcq'
        >>> normalize_question_type("", has_children=True)
        'complex'
    """
    key = normalize_text(raw_type)
    key = _TYPE_ALIASES.get(key, key)
    if key in QUESTION_TYPES:
        return key
    if mcq_type:
        return "mcq"
    fmt = normalize_answer_format(answer_format)
    if fmt in ("calculation", "diagram"):
        return fmt
    if fmt in ("essay", "extended_response"):
        return "essay"
    return "complex" if has_children else "descriptive"


def normalize_answer_format(value: Optional[str]) -> Optional[str]:
    """Return the known format for ``value`` or None ("none" counts as absent)."""
    key = normalize_text(value).replace(" ", "_").replace("-", "_")
    return key if key in ANSWER_FORMATS else None


# ─────────────────────────────────────────────────────────────────────────────
# Format detection
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class _Stem:
    raw: str

    @property
    def lower(self) -> str:
        return self.raw.lower()

    @property
    def dot_runs(self) -> int:
        return len(re.findall(r"\.{3,}|…", self.raw))

    def has(self, *words: str) -> bool:
        return any(re.search(rf"\b{re.escape(w)}(?:s|es|d|ing)?\b", self.lower) for w in words)


FORMAT_RULES: RuleTable[_Stem, str] = RuleTable([
    Rule("draw_structure", lambda s: s.has("draw") and s.has("structure", "molecule", "benzene"),
         lambda s: "chemical_structure"),
    Rule("drawing", lambda s: s.has("draw", "sketch", "diagram"), lambda s: "diagram"),
    Rule("table", lambda s: s.has("complete the table", "tabulate"), lambda s: "table_completion"),
    Rule("calculation", lambda s: s.has("calculate", "solve", "find the value", "work out"),
         lambda s: "calculation"),
    Rule("equation", lambda s: s.has("equation", "formula"), lambda s: "equation"),
    Rule("graph", lambda s: s.has("graph", "plot"), lambda s: "graph"),
    Rule("single_blank", lambda s: s.dot_runs == 1, lambda s: "single_word"),
    Rule("connected_blanks", lambda s: s.dot_runs >= 2 and s.has("and", "or"), lambda s: "two_items_connected"),
    Rule("two_blanks", lambda s: s.dot_runs == 2, lambda s: "two_items"),
    Rule("labelled_blanks", lambda s: s.dot_runs > 2, lambda s: "multi_line_labeled"),
    Rule("extended", lambda s: s.has("explain", "describe", "discuss", "evaluate", "compare"),
         lambda s: "multi_line"),
    Rule("short", lambda s: True, lambda s: "single_line"),
])


def detect_answer_format(text: Optional[str], question_type: Optional[str] = None) -> Optional[str]:
    """
    Infer an answer format from stem wording.

    Choice questions (mcq/tf) have no free-text format and return None.

    Example:
        >>> detect_answer_format("Calculate the speed of the car.")
        'calculation'
        >>> detect_answer_format("Name the gas produced.")
        'single_line'
    """
    if question_type in ("mcq", "tf"):
        return None
    if question_type == "essay":
        return "extended_response"
    if question_type == "calculation":
        return "calculation"
    hit = FORMAT_RULES.evaluate(_Stem(text or ""))
    return hit.value if hit else None


# ─────────────────────────────────────────────────────────────────────────────
# Answer expectation
# ─────────────────────────────────────────────────────────────────────────────

_QUESTION_PATTERNS = (
    re.compile(r"\?\s*$"),
    re.compile(r"^\s*(?:what|when|where|why|how|which|who)\b", re.IGNORECASE),
    re.compile(r"^\s*(?:name|state|describe|explain|calculate|define|suggest|give|identify|"
               r"compare|contrast|discuss|evaluate|analyse|analyze|complete|draw|sketch|show)\b",
               re.IGNORECASE),
    re.compile(r"\b(?:support your answer|show (?:your )?working|use (?:the )?data)\b", re.IGNORECASE),
)


@dataclass(frozen=True)
class AnswerExpectation:
    """Whether a node expects its own answer, with the reason."""

    has_direct_answer: bool
    confidence: str
    reason: str

    @property
    def is_contextual_only(self) -> bool:
        return not self.has_direct_answer


def has_question_indicators(text: str) -> bool:
    return any(p.search(text) for p in _QUESTION_PATTERNS)


def detect_answer_expectation(
    level: NodeLevel,
    *,
    has_answers: bool,
    has_options: bool = False,
    answer_format: Optional[str] = None,
    text: str = "",
    has_children: bool = False,
) -> AnswerExpectation:
    """
    Decide whether a node is answer-bearing.

    Answer data always wins over wording. A parent with children, no
    answers and no question wording is contextual only.
    """
    if level is NodeLevel.SUBPART:
        return AnswerExpectation(True, "high", "subparts always take an answer")
    if has_answers or has_options:
        return AnswerExpectation(True, "high", "correct answers or options present")
    if normalize_answer_format(answer_format):
        return AnswerExpectation(True, "high", "answer format declared")
    if not text.strip():
        return AnswerExpectation(False, "high", "no stem text")
    if has_children:
        if has_question_indicators(text):
            return AnswerExpectation(True, "medium", "question wording despite no answers")
        return AnswerExpectation(False, "high", "children present, no answers, no question wording")
    return AnswerExpectation(True, "medium", "leaf node without answers")


def requires_manual_marking(
    question_type: str,
    answer_format: Optional[str],
    alternatives: Sequence[AnswerAlternative],
    answer_logic: AnswerLogic = AnswerLogic.SIMPLE,
) -> bool:
    """Essays, uploads, complex logic and very open answers go to a human marker."""
    if question_type == "essay" or answer_format in MANUAL_FORMATS:
        return True
    if answer_logic is AnswerLogic.COMPLEX:
        return True
    return any(len(a.acceptable_variations) > MANY_VARIATIONS for a in alternatives)
