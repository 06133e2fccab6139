"""
Unit Tests for Answer Structure Validation

Tests for AnswerStructureValidator against default and subject rules.
"""

import pytest

from markscheme_toolkit.answers.operators import parse_operators
from markscheme_toolkit.answers.structure import AnswerStructureValidator, bare_numbers
from markscheme_toolkit.answers.subjects import SubjectRules, rules_for_subject
from markscheme_toolkit.core.models import AnswerAlternative, AnswerContext, ValidationIssue


@pytest.fixture
def validator() -> AnswerStructureValidator:
    return AnswerStructureValidator()


def _codes(report):
    return [i.code for i in report.issues]


class TestValidate:
    """Tests for AnswerStructureValidator.validate."""

    def test_validate_when_empty_text_then_error_only(self, validator):
        report = validator.validate(AnswerAlternative("   "))

        assert not report.is_valid
        assert _codes(report) == ["ANSWER_EMPTY"]

    def test_validate_when_plain_answer_then_context_info_only(self, validator):
        report = validator.validate(AnswerAlternative("copper"))

        assert report.is_valid
        assert _codes(report) == ["CONTEXT_MISSING"]
        assert report.issues[0].field == "context"
        assert not report.has_context

    def test_validate_when_context_given_then_no_context_issue(self, validator):
        report = validator.validate(AnswerAlternative("copper"), context="a metal")
        assert report.issues == ()
        assert report.has_context

    def test_validate_when_physics_bare_number_then_unit_issues(self, validator):
        report = validator.validate(AnswerAlternative("12"), rules_for_subject("physics"))

        codes = _codes(report)
        assert "UNITS_MISSING" in codes
        assert "NUMBER_WITHOUT_UNIT" in codes
        assert "SIG_FIGS_CHECK" in codes
        assert report.is_valid

    def test_validate_when_physics_number_with_unit_then_no_unit_issues(self, validator):
        report = validator.validate(AnswerAlternative("12 m/s"), rules_for_subject("physics"))

        assert "UNITS_MISSING" not in _codes(report)
        assert "NUMBER_WITHOUT_UNIT" not in _codes(report)

    def test_validate_when_declared_unit_then_no_unit_issues(self, validator):
        alt = AnswerAlternative("12", context=AnswerContext("unit", "m/s"))
        report = validator.validate(alt, rules_for_subject("physics"))

        assert "NUMBER_WITHOUT_UNIT" not in _codes(report)
        assert "CONTEXT_MISSING" not in _codes(report)

    def test_validate_when_hedged_and_approximations_disallowed_then_warning(self, validator):
        rules = SubjectRules(allows_approximations=False)
        report = validator.validate(AnswerAlternative("approximately 5 cm"), rules)
        assert "APPROXIMATION_NOT_ALLOWED" in _codes(report)

    def test_validate_when_hedged_but_owtte_accepted_then_no_approximation_warning(self, validator):
        rules = SubjectRules(allows_approximations=False)
        alt = AnswerAlternative("approximately 5 cm", accepts_equivalent_phrasing=True, unit="cm")

        report = validator.validate(alt, rules)

        assert "APPROXIMATION_NOT_ALLOWED" not in _codes(report)

    def test_validate_when_maths_phrasing_leniency_then_warning(self, validator):
        alt = AnswerAlternative("3/4 or 0.75", accepts_equivalent_phrasing=True)

        report = validator.validate(alt, rules_for_subject("maths"))

        codes = _codes(report)
        assert "EQUIVALENT_PHRASING_DISALLOWED" in codes
        assert "MATH_MIXED_FORMATS" in codes
        assert "SIG_FIGS_CHECK" in codes

    def test_validate_when_physics_formula_then_definition_reminder(self, validator):
        report = validator.validate(AnswerAlternative("v = f x lambda"), rules_for_subject("physics"))
        assert "PHYSICS_FORMULA_CONTEXT" in _codes(report)

    def test_validate_when_chemistry_equals_sign_then_notation_warning(self, validator):
        report = validator.validate(AnswerAlternative("H2 + Cl2 = HCl"), rules_for_subject("chemistry"))
        assert "CHEMISTRY_EQUATION_NOTATION" in _codes(report)

    def test_validate_when_custom_check_raises_then_error_issue(self, validator):
        def boom(alt):
            raise RuntimeError("bad rule")

        report = validator.validate(AnswerAlternative("copper"), SubjectRules(custom_validations=(boom,)))

        assert not report.is_valid
        failed = [i for i in report.issues if i.code == "CUSTOM_VALIDATION_FAILED"]
        assert len(failed) == 1
        assert "bad rule" in failed[0].message

    def test_validate_when_custom_check_returns_issue_then_included(self, validator):
        def no_copper(alt):
            if "copper" in alt.text:
                return (ValidationIssue("warning", "NO_COPPER", "copper not accepted"),)
            return ()

        report = validator.validate(AnswerAlternative("copper"), SubjectRules(custom_validations=(no_copper,)))
        assert "NO_COPPER" in _codes(report)

    def test_validate_when_examiner_shorthand_then_annotations(self, validator):
        report = validator.validate(AnswerAlternative("speed increases (ora)"))
        assert report.annotations == ("ora",)


class TestCheckCombination:
    """Tests for AnswerStructureValidator.check_combination."""

    def test_check_when_delimiter_and_operators_then_warning(self, validator):
        issues = validator.check_combination(True, parse_operators("oxygen and water"))
        assert [i.code for i in issues] == ["MIXED_OPERATORS"]

    def test_check_when_only_delimiter_then_no_issue(self, validator):
        assert validator.check_combination(True, parse_operators("oxygen")) == ()


class TestBareNumbers:
    """Tests for bare_numbers function."""

    @pytest.mark.parametrize("text,expected", [
        ("12", ["12"]),
        ("12 m/s", []),
        ("3.5 kg and 7", ["7"]),
        ("F2 and 4", ["4"]),
    ])
    def test_bare_numbers_when_called_then_numbers_without_units(self, text, expected):
        assert bare_numbers(text) == expected
