"""
Module: answers.structure

Purpose:
    Structural checks on individual answer alternatives: empty text,
    missing context, missing units, hedged wording, significant-figure
    reminders, phrasing leniency against subject rules, and any
    subject-specific custom checks. Validation never raises; every
    problem becomes a ValidationIssue.

Key Functions:
    - AnswerStructureValidator.validate(): Check one alternative
    - AnswerStructureValidator.check_combination(): Node-level
      delimiter + operator sanity check

Dependencies:
    - answers.subjects: SubjectRules
    - answers.markers: Examiner shorthand detection

Used By:
    - importer.pipeline (injectable strategy)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from markscheme_toolkit.core.models import AnswerAlternative, ValidationIssue
from .markers import detect_markers
from .operators import OperatorParse
from .subjects import DEFAULT_RULES, SubjectRules

logger = logging.getLogger(__name__)


_UNIT_WORD = r"(?:[kcmµμn]?(?:m|g|s|J|N|W|V|A|Pa|Hz|L|l|mol|Ω)|min|h|K|°C|%)"
_UNIT_TOKEN_RE = re.compile(
    rf"(?<![A-Za-z]){_UNIT_WORD}[0-9²³⁻¹\-]*(?:\s*/\s*{_UNIT_WORD}[0-9²³⁻¹\-]*)?(?![A-Za-z])"
)
_NUMBER_RE = re.compile(r"(?<![\w.])\d+(?:\.\d+)?(?![\w.])")
_UNIT_AFTER_RE = re.compile(rf"\s*(?:[x×]\s*10\S*\s*)?{_UNIT_WORD}(?![A-Za-z])")
_HEDGE_RE = re.compile(r"\b(?:approximately|approx\.?|roughly|about|around|nearly|circa)\b|[≈~]", re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d")


@dataclass(frozen=True)
class StructureReport:
    """
    Result of validating one alternative.

    Attributes:
        is_valid: No error-severity issues were raised
        issues: Every issue found, in check order
        has_context: A context or unit was declared
        annotations: Examiner shorthand found ("ora", "accept: joule", ...)
    """

    is_valid: bool
    issues: Tuple[ValidationIssue, ...] = ()
    has_context: bool = False
    annotations: Tuple[str, ...] = ()


def bare_numbers(text: str) -> List[str]:
    """Numbers in ``text`` that are not directly followed by a unit."""
    found = []
    for match in _NUMBER_RE.finditer(text):
        if not _UNIT_AFTER_RE.match(text, match.end()):
            found.append(match.group())
    return found


class AnswerStructureValidator:
    """
    Default structure validator.

    Subclass or replace it (any object with the same ``validate`` and
    ``check_combination`` methods) to change how answers are checked;
    the import pipeline takes the validator as a constructor argument.
    """

    def validate(
        self,
        alternative: AnswerAlternative,
        rules: Optional[SubjectRules] = None,
        context: Optional[str] = None,
    ) -> StructureReport:
        rules = rules or DEFAULT_RULES
        text = (alternative.text or "").strip()
        if not text:
            issue = ValidationIssue("error", "ANSWER_EMPTY", "answer text cannot be empty")
            return StructureReport(is_valid=False, issues=(issue,))

        issues: List[ValidationIssue] = []
        has_context = bool((context or "").strip() or alternative.context or alternative.unit)
        if not has_context:
            issues.append(ValidationIssue(
                "info", "CONTEXT_MISSING",
                "no context provided: context helps students understand answer requirements",
                field="context",
            ))

        flags = detect_markers(text)
        annotations = self._annotations(flags)

        if rules.requires_units:
            issues.extend(self._unit_issues(alternative, text, has_context))

        if (
            not rules.allows_approximations
            and not alternative.accepts_equivalent_phrasing
            and _HEDGE_RE.search(text)
        ):
            issues.append(ValidationIssue(
                "warning", "APPROXIMATION_NOT_ALLOWED",
                "answer is hedged but approximations are not accepted for this subject",
            ))

        if rules.requires_significant_figures and _DIGIT_RE.search(text):
            issues.append(ValidationIssue(
                "info", "SIG_FIGS_CHECK", "numerical answer detected: verify significant figures",
            ))

        if not rules.allows_equivalent_phrasing and alternative.accepts_equivalent_phrasing:
            issues.append(ValidationIssue(
                "warning", "EQUIVALENT_PHRASING_DISALLOWED",
                "equivalent phrasing is accepted but not allowed for this subject",
            ))

        for check in rules.custom_validations:
            issues.extend(self._run_custom(check, alternative))

        return StructureReport(
            is_valid=not any(i.is_error for i in issues),
            issues=tuple(issues),
            has_context=has_context,
            annotations=annotations,
        )

    def check_combination(self, has_delimiter: bool, operators: OperatorParse) -> Tuple[ValidationIssue, ...]:
        """Warn when a node mixes delimiter alternatives with and/or operators."""
        if has_delimiter and operators.has_operators:
            return (ValidationIssue(
                "warning", "MIXED_OPERATORS",
                "answer contains both delimiters and and/or operators: verify intended meaning",
            ),)
        return ()

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    @staticmethod
    def _annotations(flags) -> Tuple[str, ...]:
        found = []
        if flags.reverse_argument:
            found.append("ora")
        if flags.equivalent_phrasing:
            found.append("owtte")
        if flags.error_carried_forward:
            found.append("ecf")
        if flags.correct_answer_only:
            found.append("cao")
        found.extend(f"accept: {a}" for a in flags.accepted)
        found.extend(f"reject: {r}" for r in flags.rejected)
        found.extend(f"ignore: {i}" for i in flags.ignored)
        return tuple(found)

    @staticmethod
    def _unit_issues(alternative: AnswerAlternative, text: str, has_context: bool) -> List[ValidationIssue]:
        issues = []
        declared = bool(alternative.unit or (alternative.context and alternative.context.value))
        if not declared and not has_context and not _UNIT_TOKEN_RE.search(text):
            issues.append(ValidationIssue("info", "UNITS_MISSING", "answer may require units"))
        if not declared:
            numbers = bare_numbers(text)
            if numbers:
                issues.append(ValidationIssue(
                    "warning", "NUMBER_WITHOUT_UNIT",
                    f"numerical value {numbers[0]} has no unit",
                ))
        return issues

    @staticmethod
    def _run_custom(check, alternative: AnswerAlternative) -> Tuple[ValidationIssue, ...]:
        name = getattr(check, "__name__", repr(check))
        try:
            return tuple(check(alternative) or ())
        except Exception as e:
            logger.warning(f"Custom validation {name} failed: {e}")
            return (ValidationIssue(
                "error", "CUSTOM_VALIDATION_FAILED", f"custom validation {name} raised: {e}",
            ),)
