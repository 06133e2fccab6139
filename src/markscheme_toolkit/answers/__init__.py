"""
Answer analysis: alternative splitting, and/or logic, structure checks,
subject rules and requirement derivation.
"""

from .alternatives import AlternativeParse, AnswerExpansion, expand_answers, parse_alternatives
from .operators import OperatorParse, parse_operators
from .requirement import (
    REQUIREMENT_CODES,
    RequirementInput,
    check_requirement,
    derive_requirement,
    explain_requirement,
)
from .structure import AnswerStructureValidator, StructureReport
from .subjects import SUBJECT_PRESETS, SubjectRules, rules_for_subject

__all__ = [
    "AlternativeParse",
    "AnswerExpansion",
    "expand_answers",
    "parse_alternatives",
    "OperatorParse",
    "parse_operators",
    "REQUIREMENT_CODES",
    "RequirementInput",
    "check_requirement",
    "derive_requirement",
    "explain_requirement",
    "AnswerStructureValidator",
    "StructureReport",
    "SUBJECT_PRESETS",
    "SubjectRules",
    "rules_for_subject",
]
