"""
Integration Tests for the Import Pipeline

Tests for normalize_batch / normalize_paper end to end: node trees,
requirements, mapping, failure isolation and concurrency.
"""

import json

import pytest

from markscheme_toolkit.core.models import AnswerLogic, NodeLevel
from markscheme_toolkit.core.schemas import BatchValidationError
from markscheme_toolkit.importer import ImportConfig, ImportDiagnostics, normalize_batch, normalize_paper


def _codes(node):
    return [i.code for i in node.validation_issues]


@pytest.fixture
def contextual_record(make_record):
    """A stem-only parent question with two answer-bearing parts."""
    return make_record(
        question_text="A trolley rolls down a ramp.",
        correct_answers=[],
        unit="Mechanics",
        parts=[
            {"question_text": "State Newton's first law.", "topic": "Forces",
             "correct_answers": ["an object stays at rest or moves at constant velocity"]},
            {"question_text": "Name the quantity measured in m/s.", "topic": "Motion",
             "correct_answers": ["speed/velocity"]},
        ],
    )


class TestNormalizeBatch:
    """Tests for normalize_batch on single questions."""

    def test_normalize_when_delimited_answer_then_any_one_from(self, make_record):
        # Act
        result = normalize_batch([make_record()])

        # Assert
        node = result.questions[0].node
        assert result.question_ids == ["q-1"]
        assert node.id == "q-1"
        assert node.level is NodeLevel.QUESTION
        assert node.question_type == "descriptive"
        assert node.answer_format == "single_line"
        assert [a.text for a in node.correct_answers] == ["oxygen", "O2"]
        assert node.total_alternatives == 2
        assert node.requirement.code == "any_one_from"
        assert node.requirement.rule == "delimited_alternatives"
        assert _codes(node) == ["CONTEXT_MISSING", "CONTEXT_MISSING"]
        assert all(i.node_id == "q-1" for i in node.validation_issues)
        assert result.mappings == {}

    def test_normalize_when_enumeration_then_any_2_from(self, make_record):
        record = make_record(
            question_text="Give two types of cell division.",
            marks=2,
            correct_answers=["any two from: mitosis, meiosis, binary fission"],
        )

        node = normalize_batch([record]).questions[0].node

        assert node.requirement.code == "any_2_from"
        assert node.answer_logic is AnswerLogic.ANY_ACCEPTED
        assert node.optional_components == ("mitosis", "meiosis", "binary fission")
        assert "REQUIREMENT_MISMATCH" not in _codes(node)

    def test_normalize_when_mcq_then_single_choice(self, make_record):
        record = make_record(
            type="mcq",
            question_text="Which organelle releases energy?",
            options=["Mitochondria", "Nucleus", "Ribosome"],
            correct_answers=["Mitochondria"],
        )

        result = normalize_batch([record])
        node = result.questions[0].node

        assert node.question_type == "mcq"
        assert node.answer_format is None
        assert node.requirement.code == "single_choice"
        assert [o.is_correct for o in node.options] == [True, False, False]
        assert result.support_summary.option_type_counts == {"single_correct": 1}

    def test_normalize_when_no_options_then_options_none(self, make_record):
        node = normalize_batch([make_record()]).questions[0].node
        assert node.options is None

    def test_normalize_when_physics_then_unit_issues_on_alternative(self, make_record):
        record = make_record(subject="Physics", question_text="Calculate the speed.", correct_answers=["12"])

        node = normalize_batch([record]).questions[0].node

        units = [i for i in node.validation_issues if i.code == "UNITS_MISSING"]
        assert len(units) == 1
        assert units[0].field == "correct_answers[1]"
        assert "NUMBER_WITHOUT_UNIT" in _codes(node)
        assert node.answer_format == "calculation"

    def test_normalize_when_config_subject_then_preset_applied(self, make_record):
        record = make_record(correct_answers=["12"])

        node = normalize_batch([record], config=ImportConfig(subject="physics")).questions[0].node

        assert "UNITS_MISSING" in _codes(node)

    def test_normalize_when_essay_then_manual_marking(self, make_record):
        record = make_record(
            type="essay",
            question_text="Discuss the advantages of renewable energy.",
            marks=6,
            correct_answers=["indicative content: no fuel costs; low emissions"],
        )

        node = normalize_batch([record]).questions[0].node

        assert node.answer_format == "extended_response"
        assert node.requires_manual_marking

    def test_normalize_when_nested_logic_then_complex_and_warning(self, make_record):
        record = make_record(correct_answers=["heat and light or sound"])

        result = normalize_batch([record])
        node = result.questions[0].node

        assert node.answer_logic is AnswerLogic.COMPLEX
        assert "OPERATOR_LOGIC" in _codes(node)
        assert node.requires_manual_marking
        assert node.requirement.code is None
        assert result.support_summary.has_nested_logic

    def test_normalize_when_delimiter_and_operator_then_mixed_warning(self, make_record):
        record = make_record(correct_answers=["oxygen and water/steam"])

        node = normalize_batch([record]).questions[0].node

        assert "MIXED_OPERATORS" in _codes(node)

    @pytest.mark.parametrize("marks,code", [(1, "any_one_from"), (2, "alternative_methods")])
    def test_normalize_when_split_alternative_contains_and_then_alternatives_not_both(self, make_record, marks, code):
        record = make_record(marks=marks, correct_answers=["heat and light/warmth"])

        node = normalize_batch([record]).questions[0].node

        assert [a.text for a in node.correct_answers] == ["heat and light", "warmth"]
        assert {a.alternative_type for a in node.correct_answers} == {"one_required"}
        assert node.requirement.rule == "delimited_alternatives"
        assert node.requirement.code == code


class TestDeclaredFields:
    """Tests for declared answer_requirement / answer_format handling."""

    def test_declared_when_valid_then_respected(self, make_record):
        node = normalize_batch([make_record(answer_requirement="any_2_from")]).questions[0].node

        assert node.requirement.code == "any_2_from"
        assert node.requirement.rule == "declared"

    def test_declared_when_not_respected_then_derived(self, make_record):
        config = ImportConfig(respect_declared_fields=False)

        node = normalize_batch([make_record(answer_requirement="any_2_from")], config=config).questions[0].node

        assert node.requirement.code == "any_one_from"

    def test_declared_when_unknown_requirement_then_info_and_derived(self, make_record):
        node = normalize_batch([make_record(answer_requirement="pick_some")]).questions[0].node

        assert "REQUIREMENT_UNKNOWN" in _codes(node)
        assert node.requirement.code == "any_one_from"

    def test_declared_when_valid_format_then_kept(self, make_record):
        node = normalize_batch([make_record(answer_format="single_word")]).questions[0].node
        assert node.answer_format == "single_word"

    def test_declared_when_unknown_format_then_detected(self, make_record):
        node = normalize_batch([make_record(answer_format="scribble")]).questions[0].node

        assert node.answer_format == "single_line"
        assert "ANSWER_FORMAT_UNKNOWN" in _codes(node)


class TestNodeTree:
    """Tests for parent/child processing."""

    def test_tree_when_stem_only_parent_then_contextual(self, contextual_record):
        result = normalize_batch([contextual_record])
        question = result.questions[0]
        root = question.node

        assert not root.is_answer_bearing
        assert root.question_type == "complex"
        assert root.answer_format is None
        assert root.requirement.code is None
        assert root.requirement.rule == "contextual"
        assert "ANSWERS_MISSING" not in _codes(root)
        assert [c.id for c in root.children] == ["q-1-a", "q-1-b"]
        assert all(c.is_answer_bearing for c in root.children)

    def test_tree_when_parent_names_unit_then_children_inherit(self, contextual_record):
        root = normalize_batch([contextual_record]).questions[0].node

        part_a = root.children[0]
        assert part_a.classification.units == ("Mechanics",)
        assert part_a.classification.topics == ("Forces",)

    def test_tree_when_summary_built_then_counts_nodes(self, contextual_record):
        summary = normalize_batch([contextual_record]).support_summary

        assert summary.question_count == 1
        assert summary.node_count == 3
        assert summary.contextual_count == 1
        assert summary.answer_bearing_count == 2

    def test_tree_when_leaf_has_no_answers_then_answers_missing(self, make_record):
        node = normalize_batch([make_record(correct_answers=[])]).questions[0].node

        assert node.is_answer_bearing
        assert "ANSWERS_MISSING" in _codes(node)

    def test_tree_when_part_malformed_then_failure_and_question_kept(self, make_record):
        record = make_record(parts=[{"marks": {"value": 2}}, {"question_text": "State the unit of force."}])

        result = normalize_batch([record])

        assert result.question_count == 1
        assert [c.id for c in result.questions[0].node.children] == ["q-1-b"]
        assert len(result.node_failures) == 1
        assert result.node_failures[0].node_id == "q-1-a"
        assert result.node_failures[0].code == "NODE_FAILURE"


class TestFailureIsolation:
    """Tests for bad records inside an otherwise good batch."""

    def test_batch_when_one_record_malformed_then_others_processed(self, make_record):
        # Arrange
        records = [make_record(number=i + 1) for i in range(10)]
        records[4] = "not a question"

        # Act
        result = normalize_batch(records)

        # Assert
        assert result.question_count == 9
        assert "q-5" not in result.question_ids
        assert len(result.node_failures) == 1
        assert result.node_failures[0].node_id == "q-5"
        assert result.node_failures[0].kind == "node_failure"
        assert [i.code for i in result.validation_issues["q-5"]] == ["NODE_FAILURE"]
        assert result.diagnostics.summary_by_code["NODE_FAILURE"] == 1

    def test_batch_when_failures_then_order_preserved(self, make_record):
        records = [make_record(number=n) for n in (30, 10, 20)]
        records.insert(1, 42)

        result = normalize_batch(records)

        assert result.question_ids == ["q-30", "q-10", "q-20"]
        assert result.node_failures[0].node_id == "q-2"

    @pytest.mark.parametrize("overrides", [
        {"total_alternatives": "²"},
        {"marks": 10 ** 400},
        {"marks": float("nan")},
        {"parts": [{"question_text": "State the unit.", "marks": float("inf")}]},
        {"correct_answers": [{"answer": "oxygen", "alternative_id": "²"}]},
    ])
    @pytest.mark.parametrize("workers", [1, 4])
    def test_batch_when_record_has_odd_numbers_then_batch_completes(self, make_record, overrides, workers):
        records = [make_record(number=i + 1) for i in range(10)]
        records[3] = make_record(number=4, **overrides)

        result = normalize_batch(records, config=ImportConfig(max_workers=workers))

        assert result.question_count == 10
        assert result.node_failures == []

    def test_batch_when_marks_out_of_range_then_parse_note(self, make_record):
        result = normalize_batch([make_record(marks=float("inf"))])

        node = result.questions[0].node
        assert node.marks is None
        assert "MARKS_UNPARSEABLE" in _codes(node)

    @pytest.mark.parametrize("error", [ValueError("bad digit"), OverflowError("too large")])
    @pytest.mark.parametrize("workers", [1, 4])
    def test_batch_when_ingestion_raises_then_node_failure(self, make_record, monkeypatch, error, workers):
        # Arrange
        from markscheme_toolkit.importer import pipeline

        original = pipeline.ingest_question

        def flaky(data, index, question_id):
            if question_id == "q-4":
                raise error
            return original(data, index, question_id)

        monkeypatch.setattr(pipeline, "ingest_question", flaky)
        records = [make_record(number=i + 1) for i in range(10)]

        # Act
        result = normalize_batch(records, config=ImportConfig(max_workers=workers))

        # Assert
        assert result.question_count == 9
        assert "q-4" not in result.question_ids
        assert [f.node_id for f in result.node_failures] == ["q-4"]
        assert "could not ingest question" in result.node_failures[0].message

    @pytest.mark.parametrize("payload", [[], "questions", [1, 2], None])
    def test_batch_when_envelope_unusable_then_raises_error(self, payload):
        with pytest.raises(BatchValidationError):
            normalize_batch(payload)


class TestCurriculumMapping:
    """Tests for mapping through the pipeline."""

    def test_mapping_when_ambiguous_topic_then_unresolved_issue(self, make_record, curriculum):
        result = normalize_batch([make_record(topic="Forces")], curriculum)

        mapping = result.mappings["q-1"]
        assert mapping.chapter_id is None
        assert result.unmapped_question_ids == ["q-1"]
        issues = [i for i in result.validation_issues["q-1"] if i.code == "MAPPING_UNRESOLVED"]
        assert len(issues) == 1
        assert issues[0].field == "topic"
        assert issues[0].kind == "mapping"
        assert issues[0].node_id == "q-1"

    def test_mapping_when_unit_disambiguates_then_resolved(self, make_record, curriculum):
        result = normalize_batch([make_record(unit="Waves", topic="Forces")], curriculum)

        mapping = result.mappings["q-1"]
        assert mapping.chapter_id == "u-waves"
        assert mapping.topic_ids == ("t-wforces",)
        assert result.unmapped_question_ids == []

    def test_mapping_when_names_on_parts_then_union_used(self, contextual_record, curriculum):
        result = normalize_batch([contextual_record], curriculum)

        mapping = result.mappings["q-1"]
        assert mapping.chapter_id == "u-mech"
        assert mapping.topic_ids == ("t-forces", "t-motion")

    def test_mapping_when_curriculum_dict_then_accepted(self, make_record, curriculum_dict):
        result = normalize_batch([make_record(subtopic="Echoes")], curriculum_dict)
        assert result.mappings["q-1"].chapter_id == "u-waves"

    def test_mapping_when_no_names_then_empty_info(self, make_record, curriculum):
        result = normalize_batch([make_record()], curriculum)

        codes = [i.code for i in result.validation_issues["q-1"]]
        assert "MAPPING_EMPTY" in codes
        assert result.unmapped_question_ids == ["q-1"]


class TestConcurrency:
    """Tests for threaded processing."""

    def test_threads_when_enabled_then_same_output_as_sequential(self, make_record, curriculum):
        records = [
            make_record(number=n, topic="Motion", correct_answers=[f"answer {n}/alternative {n}"])
            for n in range(1, 13)
        ]

        sequential = normalize_batch(records, curriculum)
        threaded = normalize_batch(records, curriculum, config=ImportConfig(max_workers=4))

        assert threaded.question_ids == sequential.question_ids
        assert [q.to_dict() for q in threaded.questions] == [q.to_dict() for q in sequential.questions]
        assert threaded.diagnostics.total_issues == sequential.diagnostics.total_issues

    def test_threads_when_shared_diagnostics_then_all_recorded(self, make_record):
        diagnostics = ImportDiagnostics()
        records = [make_record(number=n) for n in range(1, 6)]

        normalize_batch(records, config=ImportConfig(max_workers=3), diagnostics=diagnostics)

        assert diagnostics.issue_count == 10


class TestNormalizePaper:
    """Tests for normalize_paper."""

    def test_paper_when_subject_and_curriculum_embedded_then_used(self, make_record, curriculum_dict):
        paper = {
            "subject": "Physics",
            "questions": [make_record(correct_answers=["12"], topic="Motion")],
            "curriculum": curriculum_dict,
        }

        result = normalize_paper(paper)

        assert "UNITS_MISSING" in [i.code for i in result.validation_issues["q-1"]]
        assert result.mappings["q-1"].topic_ids == ("t-motion",)

    def test_paper_when_questions_missing_then_raises_error(self):
        with pytest.raises(BatchValidationError):
            normalize_paper({"subject": "Physics"})


class TestImportResult:
    """Tests for ImportResult accessors and serialisation."""

    def test_result_when_serialised_then_json_ready(self, contextual_record, curriculum):
        result = normalize_batch([contextual_record], curriculum)

        data = json.loads(json.dumps(result.to_dict()))

        assert data["questions"][0]["node"]["children"][0]["id"] == "q-1-a"
        assert data["mappings"]["q-1"]["chapter_id"] == "u-mech"
        assert data["support_summary"]["node_count"] == 3

    def test_get_question_when_known_then_returned(self, make_record):
        result = normalize_batch([make_record(number=7)])

        assert result.get_question("q-7").number == "7"
        assert result.get_question("q-8") is None
