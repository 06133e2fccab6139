"""
Module: answers.subjects

Purpose:
    Subject-specific answer rules (units, approximations, significant
    figures, phrasing leniency) and the built-in presets for the
    sciences and mathematics.

Key Functions:
    - SubjectRules: Frozen rule set consumed by AnswerStructureValidator
    - rules_for_subject(): Preset lookup by subject name
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from markscheme_toolkit.core.models import AnswerAlternative, ValidationIssue
from markscheme_toolkit.common.text import normalize_text

# A custom check receives the alternative being validated and returns
# extra issues (possibly none).
CustomValidation = Callable[[AnswerAlternative], Tuple[ValidationIssue, ...]]


@dataclass(frozen=True)
class SubjectRules:
    """
    Answer rules for one subject.

    Attributes:
        requires_units: Numeric answers must carry a unit
        allows_approximations: Hedged answers ("approximately 5") are acceptable
        requires_significant_figures: Numeric answers get a sig-fig reminder
        allows_equivalent_phrasing: OWTTE-style leniency is acceptable
        custom_validations: Extra checks run after the built-in ones
    """

    requires_units: bool = False
    allows_approximations: bool = True
    requires_significant_figures: bool = False
    allows_equivalent_phrasing: bool = True
    custom_validations: Tuple[CustomValidation, ...] = ()


DEFAULT_RULES = SubjectRules()

_FORMULA_RE = re.compile(r"\b[a-z]\s*=\s*[a-z]", re.IGNORECASE)
_ELEMENT_RE = re.compile(r"\b(?:[A-Z][a-z]?\d*){2,}\b")
_ARROW_RE = re.compile(r"->|→|⇌|↔")
_FRACTION_RE = re.compile(r"\d+\s*/\s*\d+")
_DECIMAL_RE = re.compile(r"\d+\.\d+")


def physics_formula_context(alt: AnswerAlternative) -> Tuple[ValidationIssue, ...]:
    """Formulas without a "where ..." clause get a reminder to define symbols."""
    if _FORMULA_RE.search(alt.text) and "where" not in alt.text.lower():
        return (ValidationIssue("info", "PHYSICS_FORMULA_CONTEXT",
                                "formula detected: consider adding variable definitions"),)
    return ()


def chemistry_equation_notation(alt: AnswerAlternative) -> Tuple[ValidationIssue, ...]:
    if "=" in alt.text and _ELEMENT_RE.search(alt.text) and not _ARROW_RE.search(alt.text):
        return (ValidationIssue("warning", "CHEMISTRY_EQUATION_NOTATION",
                                "chemical equation should use an arrow, not an equals sign"),)
    return ()


def mathematics_mixed_formats(alt: AnswerAlternative) -> Tuple[ValidationIssue, ...]:
    if _FRACTION_RE.search(alt.text) and _DECIMAL_RE.search(alt.text):
        return (ValidationIssue("info", "MATH_MIXED_FORMATS",
                                "answer mixes fraction and decimal forms: verify required format"),)
    return ()


SUBJECT_PRESETS: Dict[str, SubjectRules] = {
    "physics": SubjectRules(
        requires_units=True,
        allows_approximations=True,
        requires_significant_figures=True,
        allows_equivalent_phrasing=True,
        custom_validations=(physics_formula_context,),
    ),
    "chemistry": SubjectRules(
        requires_units=True,
        allows_approximations=True,
        requires_significant_figures=True,
        allows_equivalent_phrasing=True,
        custom_validations=(chemistry_equation_notation,),
    ),
    "biology": SubjectRules(
        requires_units=False,
        allows_approximations=True,
        requires_significant_figures=False,
        allows_equivalent_phrasing=True,
    ),
    "mathematics": SubjectRules(
        requires_units=False,
        allows_approximations=True,
        requires_significant_figures=True,
        allows_equivalent_phrasing=False,
        custom_validations=(mathematics_mixed_formats,),
    ),
}

_SUBJECT_ALIASES = {
    "maths": "mathematics",
    "math": "mathematics",
    "combined science physics": "physics",
    "combined science chemistry": "chemistry",
    "combined science biology": "biology",
}


def rules_for_subject(subject: Optional[str]) -> Optional[SubjectRules]:
    """
    Look up the preset for ``subject``.

    Example:
        >>> rules_for_subject("Physics").requires_units
        True
        >>> rules_for_subject("Maths") is SUBJECT_PRESETS["mathematics"]
        True
        >>> rules_for_subject("History") is None
        True
    """
    key = normalize_text(subject)
    if not key:
        return None
    key = _SUBJECT_ALIASES.get(key, key)
    return SUBJECT_PRESETS.get(key)
