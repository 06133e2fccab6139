"""
Module: answers.requirement

Purpose:
    Derive the answer requirement code for a node ("single_choice",
    "any_2_from", "both_required", ...) from its type, options, answers,
    alternative count, marks and mark-scheme wording.

    The rules are an ordered table; the first rule that applies wins and
    its name is recorded on the decision so the result is auditable.
    When nothing applies the code is None ("undetermined"), never an
    empty string.

Key Functions:
    - derive_requirement(): Run the rule table over a RequirementInput
    - explain_requirement(): Human description of a requirement code
    - check_requirement(): Consistency check of a code against answers
    - REQUIREMENT_RULES: The rule table itself, in priority order

Dependencies:
    - answers.rules: RuleTable
    - answers.operators: parse_operators

Used By:
    - importer.pipeline
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cached_property
from typing import Optional, Tuple

from markscheme_toolkit.core.models import (
    AnswerAlternative,
    AnswerLogic,
    OptionChoice,
    RequirementDecision,
    ValidationIssue,
)
from .operators import OperatorParse, parse_operators
from .rules import Rule, RuleTable


REQUIREMENT_CODES = (
    "single_choice",
    "multi_select",
    "both_required",
    "all_required",
    "any_one_from",
    "any_2_from",
    "any_3_from",
    "alternative_methods",
)

REQUIREMENT_DESCRIPTIONS = {
    "single_choice": "Exactly one answer is accepted",
    "multi_select": "Select every correct option",
    "both_required": "Both components must be given",
    "all_required": "All listed components must be given",
    "any_one_from": "Any one of the listed alternatives is accepted",
    "any_2_from": "Any two of the listed points are required",
    "any_3_from": "Any three of the listed points are required",
    "alternative_methods": "Any valid method earns the marks",
}

ALL_REQUIRED_TYPES = frozenset({"all_required", "both_required", "structure_function_pair"})
CHOICE_TYPES = frozenset({"mcq", "tf"})


def is_requirement_code(value: Optional[str]) -> bool:
    return value in REQUIREMENT_DESCRIPTIONS


@dataclass(frozen=True)
class RequirementInput:
    """
    Everything the requirement rules look at.

    Attributes:
        question_type: Normalised question type ("mcq", "tf", "descriptive", ...)
        answer_format: Normalised answer format, if known
        correct_answers: Expanded answer alternatives
        total_alternatives: Accepted alternative count, if known
        options: MCQ options with correctness
        marks: Node marks
        mark_scheme_text: Extra wording (marking criteria) searched for phrases
    """

    question_type: Optional[str] = None
    answer_format: Optional[str] = None
    correct_answers: Tuple[AnswerAlternative, ...] = ()
    total_alternatives: Optional[int] = None
    options: Tuple[OptionChoice, ...] = ()
    marks: Optional[int] = None
    mark_scheme_text: str = ""

    @cached_property
    def answer_text(self) -> str:
        return " ".join(a.text for a in self.correct_answers if a.text).strip()

    @cached_property
    def evidence_text(self) -> str:
        return " ".join(t for t in (self.answer_text, self.mark_scheme_text) if t).strip()

    @cached_property
    def operators(self) -> OperatorParse:
        return parse_operators(self.answer_text)

    @property
    def correct_option_count(self) -> int:
        return sum(1 for o in self.options if o.is_correct)


# ─────────────────────────────────────────────────────────────────────────────
# Rules
# ─────────────────────────────────────────────────────────────────────────────

def _single_correct(inp: RequirementInput) -> bool:
    if inp.question_type not in CHOICE_TYPES:
        return False
    count = inp.correct_option_count if inp.options else len(inp.correct_answers)
    return count == 1


def _split_alternatives(inp: RequirementInput) -> bool:
    """Every answer came out of a delimiter split, so any one of them is accepted."""
    answers = inp.correct_answers
    return len(answers) >= 2 and all(a.alternative_type == "one_required" for a in answers)


def _linked_all_required(inp: RequirementInput) -> bool:
    if len(inp.correct_answers) < 2 or _split_alternatives(inp):
        return False
    if inp.operators.logic_type is AnswerLogic.ALL_REQUIRED:
        return True
    return all(a.alternative_type in ALL_REQUIRED_TYPES for a in inp.correct_answers)


def _all_required_decision(inp: RequirementInput) -> RequirementDecision:
    n = len(inp.correct_answers)
    code = "both_required" if n == 2 else "all_required"
    return RequirementDecision(code, "medium", f"{n} answers all required")


def _delimited(inp: RequirementInput) -> bool:
    if (inp.total_alternatives or 0) < 2:
        return False
    return _split_alternatives(inp) or inp.operators.logic_type is AnswerLogic.SIMPLE


def _delimited_decision(inp: RequirementInput) -> RequirementDecision:
    marks = {a.marks for a in inp.correct_answers}
    if len(marks) == 1 and marks.pop() > 1:
        return RequirementDecision(
            "alternative_methods", "medium",
            f"{inp.total_alternatives} alternatives with equal multi-mark credit",
        )
    return RequirementDecision("any_one_from", "medium", f"{inp.total_alternatives} accepted alternatives")


def _phrase_rule(name: str, pattern: str, code: str, confidence: str = "medium") -> Rule:
    regex = re.compile(pattern, re.IGNORECASE | re.DOTALL)

    def when(inp: RequirementInput) -> bool:
        return bool(regex.search(inp.evidence_text))

    def then(inp: RequirementInput) -> RequirementDecision:
        phrase = regex.search(inp.evidence_text).group(0)
        return RequirementDecision(code, confidence, f"phrase '{phrase}'")

    return Rule(name, when, then)


REQUIREMENT_RULES: RuleTable[RequirementInput, RequirementDecision] = RuleTable([
    Rule(
        "single_correct_option",
        _single_correct,
        lambda inp: RequirementDecision("single_choice", "high", f"{inp.question_type} with one correct option"),
    ),
    Rule(
        "multiple_correct_options",
        lambda inp: inp.correct_option_count > 1,
        lambda inp: RequirementDecision("multi_select", "high", f"{inp.correct_option_count} correct options"),
    ),
    Rule("linked_all_required", _linked_all_required, _all_required_decision),
    Rule("delimited_alternatives", _delimited, _delimited_decision),
    _phrase_rule("phrase_any_two", r"\bany\s+(?:two|2)\s+(?:from|of)\b", "any_2_from"),
    _phrase_rule("phrase_any_three", r"\bany\s+(?:three|3)\s+(?:from|of)\b", "any_3_from"),
    _phrase_rule("phrase_any_one", r"\bany\s+(?:one|1)\s+(?:from|of)\b", "single_choice"),
    _phrase_rule("phrase_either_or", r"\beither\b.+?\bor\b", "single_choice"),
    _phrase_rule("phrase_both", r"\bboth\b.*\b(?:required|needed)\b|\bboth\b.+?\band\b", "both_required"),
    _phrase_rule("phrase_all", r"\ball\s+(?:are\s+)?(?:required|needed)\b", "all_required"),
    _phrase_rule("phrase_alternative_method", r"\balternative\s+methods?\b|\bowtte\b|\bany\s+valid\s+method\b",
                 "alternative_methods", confidence="low"),
    Rule(
        "two_mark_conjunction",
        lambda inp: inp.marks == 2 and " and " in f" {inp.evidence_text.lower()} ",
        lambda inp: RequirementDecision("both_required", "low", "2 marks with 'and' in the answer"),
    ),
])


def derive_requirement(inp: RequirementInput) -> RequirementDecision:
    """
    Derive the requirement code for one node.

    Returns:
        The first matching rule's decision, tagged with the rule name,
        or an undetermined decision (code None, low confidence)

    Example:
        >>> from markscheme_toolkit.core.models import OptionChoice
        >>> d = derive_requirement(RequirementInput(
        ...     question_type="mcq",
        ...     options=(OptionChoice("A", "x", True), OptionChoice("B", "y"))))
        >>> (d.code, d.confidence, d.rule)
        ('single_choice', 'high', 'single_correct_option')
    """
    hit = REQUIREMENT_RULES.evaluate(inp)
    if hit is None:
        return RequirementDecision(None, "low", "no rule matched: manual review needed", rule="undetermined")
    decision = hit.value
    return RequirementDecision(decision.code, decision.confidence, decision.evidence, rule=hit.rule)


def explain_requirement(code: Optional[str]) -> str:
    """Human-readable description of a requirement code."""
    if code is None:
        return "Requirement undetermined: review manually"
    return REQUIREMENT_DESCRIPTIONS.get(code, f"Unknown requirement code {code!r}")


def check_requirement(code: Optional[str], correct_answers: Tuple[AnswerAlternative, ...]) -> Tuple[ValidationIssue, ...]:
    """
    Check that a requirement code is consistent with the answers it governs.

    Returns:
        Warnings (possibly none); never raises
    """
    n = len(correct_answers)
    if code is None or n == 0:
        return ()
    compound = _has_connectives(correct_answers)
    if code in ("both_required", "all_required") and n == 1 and not compound:
        return (_mismatch(code, "only one answer listed"),)
    if code == "both_required" and n > 2:
        return (_mismatch(code, f"expects 2 answers, found {n}"),)
    needed = {"any_2_from": 2, "any_3_from": 3}.get(code)
    if needed and n < needed and not compound:
        return (_mismatch(code, f"needs at least {needed} answers, found {n}"),)
    return ()


def _has_connectives(correct_answers: Tuple[AnswerAlternative, ...]) -> bool:
    joined = " ".join(a.text for a in correct_answers)
    return parse_operators(joined).has_operators or "," in joined


def _mismatch(code: str, detail: str) -> ValidationIssue:
    return ValidationIssue(
        "warning", "REQUIREMENT_MISMATCH", f"answer requirement {code}: {detail}",
        field="answer_requirement",
    )
