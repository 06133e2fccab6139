"""
Module: importer.pipeline

Purpose:
    Main pipeline orchestrator for mark-scheme import. Takes a batch of
    loosely structured question records and produces normalised
    question trees, per-node validation issues, curriculum mappings
    and a support summary.

Key Functions:
    - normalize_batch(): Main entry point for a list of question records
    - normalize_paper(): Entry point for a paper document with metadata

Key Classes:
    - QuestionNormalizer: Per-question processing (node tree + mapping)
    - ImportResult: Container for import output

Dependencies:
    - importer.ingest: JSON → raw models
    - answers: splitting, operators, structure checks, requirements
    - curriculum: name → ID mapping
    - importer.diagnostics: thread-safe issue collection

Used By:
    - Callers loading exam papers into a question bank
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from markscheme_toolkit.answers.alternatives import expand_answers
from markscheme_toolkit.answers.formats import (
    detect_answer_expectation,
    detect_answer_format,
    normalize_answer_format,
    normalize_question_type,
    requires_manual_marking,
)
from markscheme_toolkit.answers.operators import parse_operators
from markscheme_toolkit.answers.requirement import (
    RequirementInput,
    check_requirement,
    derive_requirement,
    is_requirement_code,
)
from markscheme_toolkit.answers.structure import AnswerStructureValidator
from markscheme_toolkit.answers.subjects import SubjectRules
from markscheme_toolkit.core.models import (
    Classification,
    CurriculumTables,
    MappingResult,
    ProcessedNode,
    ProcessedQuestion,
    RawNode,
    RawQuestion,
    RequirementDecision,
    ValidationIssue,
)
from markscheme_toolkit.core.schemas import NodeShapeError, validate_batch
from markscheme_toolkit.curriculum.matcher import CurriculumMatcher

from .config import ImportConfig
from .diagnostics import ImportDiagnostics, ImportDiagnosticsReport
from .ingest import NodeFailure, assign_question_ids, ingest_question
from .summary import QuestionSupportSummary, build_support_summary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestionOutcome:
    """
    Result of processing one record.

    ``question`` is None when the record could not be processed at all;
    ``node_failures`` then holds the reason.
    """
    question_id: str
    question: Optional[ProcessedQuestion]
    mapping: Optional[MappingResult] = None
    issues: Tuple[ValidationIssue, ...] = ()
    node_failures: Tuple[ValidationIssue, ...] = ()


@dataclass
class ImportResult:
    """
    Result of importing a batch.

    Attributes:
        questions: Processed questions, in input order (failed records omitted)
        mappings: Curriculum mapping per question ID (empty without curriculum)
        validation_issues: All issues per question ID, node failures included
        node_failures: Issues for records/nodes that could not be processed
        support_summary: Batch-level counts and structure flags
        diagnostics: Report aggregated by kind, severity and code
    """
    questions: List[ProcessedQuestion]
    mappings: Dict[str, MappingResult]
    validation_issues: Dict[str, List[ValidationIssue]]
    node_failures: List[ValidationIssue]
    support_summary: QuestionSupportSummary
    diagnostics: ImportDiagnosticsReport

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions]

    @property
    def unmapped_question_ids(self) -> List[str]:
        return [qid for qid, m in self.mappings.items() if m.requires_manual_mapping]

    def get_question(self, question_id: str) -> Optional[ProcessedQuestion]:
        return next((q for q in self.questions if q.id == question_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questions": [q.to_dict() for q in self.questions],
            "mappings": {qid: m.to_dict() for qid, m in self.mappings.items()},
            "validation_issues": {
                qid: [i.to_dict() for i in issues] for qid, issues in self.validation_issues.items()
            },
            "node_failures": [i.to_dict() for i in self.node_failures],
            "support_summary": self.support_summary.to_dict(),
            "diagnostics": self.diagnostics.to_dict(),
        }


def _failure_issue(node_id: str, message: str) -> ValidationIssue:
    return ValidationIssue("error", "NODE_FAILURE", message, field="node", kind="node_failure", node_id=node_id)


def _union(values: Sequence[Tuple[str, ...]]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(v for group in values for v in group))


class QuestionNormalizer:
    """
    Turns raw question records into processed question trees.

    One instance is shared by all worker threads: it holds no per-question
    state, and the diagnostics collector is thread-safe.
    """

    def __init__(
        self,
        config: Optional[ImportConfig] = None,
        *,
        curriculum: Optional[CurriculumTables] = None,
        validator: Optional[AnswerStructureValidator] = None,
        diagnostics: Optional[ImportDiagnostics] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.config = config or ImportConfig()
        self.matcher = CurriculumMatcher(curriculum) if curriculum is not None else None
        self.validator = validator or AnswerStructureValidator()
        self.diagnostics = diagnostics or ImportDiagnostics()
        self.log = log or logger

    # Records --------------------------------------------------------------

    def process_record(self, index: int, record: Any, question_id: str) -> QuestionOutcome:
        """Ingest and normalise one record; never raises for bad data."""
        try:
            raw, failures = ingest_question(record, index, question_id)
        except NodeShapeError as e:
            return self._failed(question_id, str(e))
        except (ValueError, ArithmeticError) as e:
            return self._failed(question_id, f"could not ingest question: {e}")

        try:
            return self.normalize(raw, failures)
        except ValueError as e:
            return self._failed(question_id, f"could not process question: {e}")

    def _failed(self, question_id: str, message: str) -> QuestionOutcome:
        issue = self.diagnostics.add_node_failure(question_id, question_id, message)
        return QuestionOutcome(question_id, None, issues=(issue,), node_failures=(issue,))

    def normalize(self, raw: RawQuestion, ingest_failures: Sequence[NodeFailure] = ()) -> QuestionOutcome:
        """
        Normalise an ingested question and map it to the curriculum.

        Args:
            raw: Ingested question
            ingest_failures: Parts/subparts skipped during ingestion

        Returns:
            QuestionOutcome with the processed tree and all its issues
        """
        failures = [_failure_issue(f.node_id, f"{f.path}: {f.message}") for f in ingest_failures]
        rules = self.config.rules_for(raw.subject)
        root = self._process_node(raw, raw.id, Classification(), rules, failures)
        question = ProcessedQuestion(id=raw.id, number=raw.number, node=root, subject=raw.subject)

        mapping = None
        mapping_issues: List[ValidationIssue] = []
        if self.matcher is not None:
            mapping = self._map(question)
            mapping_issues = self._mapping_issues(mapping)

        issues = list(question.all_issues) + mapping_issues + failures
        self.diagnostics.record_all(raw.id, issues)
        for failure in failures:
            self.log.warning(f"{failure.node_id}: {failure.message}")
        self.log.debug(f"{raw.id}: {len(question.all_nodes)} nodes, {len(issues)} issues")
        return QuestionOutcome(raw.id, question, mapping, tuple(issues), tuple(failures))

    # Nodes ----------------------------------------------------------------

    def _process_node(
        self,
        raw: RawNode,
        node_id: str,
        parent_classification: Classification,
        rules: Optional[SubjectRules],
        failures: List[ValidationIssue],
    ) -> ProcessedNode:
        cfg = self.config
        classification = raw.classification.inherit(parent_classification)

        children: List[ProcessedNode] = []
        for child in raw.children:
            child_id = f"{node_id}-{child.label}"
            try:
                children.append(self._process_node(child, child_id, classification, rules, failures))
            except ValueError as e:
                failures.append(_failure_issue(child_id, f"could not process node: {e}"))

        issues: List[ValidationIssue] = list(raw.parse_notes)
        question_type = normalize_question_type(
            raw.type,
            mcq_type=getattr(raw, "mcq_type", None),
            answer_format=raw.answer_format,
            has_children=bool(raw.children),
        )

        expansion = expand_answers(raw.answers, node_marks=raw.marks, delimiter=cfg.delimiter)
        alternatives = expansion.alternatives
        issues.extend(expansion.issues)

        expectation = detect_answer_expectation(
            raw.level,
            has_answers=bool(alternatives),
            has_options=bool(raw.options),
            answer_format=raw.answer_format,
            text=raw.text,
            has_children=bool(raw.children),
        )
        bearing = expectation.has_direct_answer

        declared_format = normalize_answer_format(raw.answer_format)
        if raw.answer_format and declared_format is None and raw.answer_format.lower() != "none":
            issues.append(ValidationIssue("info", "ANSWER_FORMAT_UNKNOWN",
                                          f"unknown answer format {raw.answer_format!r}: detected instead",
                                          field="answer_format"))
        if not bearing:
            answer_format = None
        elif declared_format and cfg.respect_declared_fields:
            answer_format = declared_format
        else:
            answer_format = detect_answer_format(raw.text, question_type)

        if bearing and not alternatives and not any(o.is_correct for o in raw.options):
            issues.append(ValidationIssue("warning", "ANSWERS_MISSING",
                                          "node expects an answer but has no correct answers",
                                          field="correct_answers"))

        for alt in alternatives:
            report = self.validator.validate(alt, rules)
            issues.extend(
                replace(i, field=f"correct_answers[{alt.alternative_id}]") if i.field == "answer" else i
                for i in report.issues
            )

        raw_operators = parse_operators(" ".join(a.text for a in raw.answers if a.text))
        issues.extend(self.validator.check_combination(expansion.has_delimiter, raw_operators))

        total_alternatives = (
            raw.total_alternatives if raw.total_alternatives is not None else expansion.split_count
        )
        req_input = RequirementInput(
            question_type=question_type,
            answer_format=answer_format,
            correct_answers=alternatives,
            total_alternatives=total_alternatives,
            options=raw.options,
            marks=raw.marks,
            mark_scheme_text=raw.marking_criteria,
        )
        decision = self._requirement(raw, bearing, req_input, issues)
        issues.extend(check_requirement(decision.code, alternatives))

        operators = req_input.operators
        for message in operators.validation_errors:
            issues.append(ValidationIssue("warning", "OPERATOR_LOGIC", message,
                                          field="correct_answers", kind="parse"))

        return ProcessedNode(
            id=node_id,
            label=raw.label,
            level=raw.level,
            text=raw.text,
            marks=raw.marks,
            question_type=question_type,
            answer_format=answer_format,
            requirement=decision,
            correct_answers=alternatives,
            options=raw.options or None,
            answer_logic=operators.logic_type,
            required_components=operators.required_components,
            optional_components=operators.optional_components,
            total_alternatives=total_alternatives,
            is_answer_bearing=bearing,
            requires_manual_marking=bearing and requires_manual_marking(
                question_type, answer_format, alternatives, operators.logic_type
            ),
            has_figure=raw.has_figure,
            attachment_count=raw.attachment_count,
            hint=raw.hint,
            explanation=raw.explanation,
            classification=classification,
            validation_issues=tuple(i if i.node_id else i.for_node(node_id) for i in issues),
            children=tuple(children),
        )

    def _requirement(
        self,
        raw: RawNode,
        bearing: bool,
        inp: RequirementInput,
        issues: List[ValidationIssue],
    ) -> RequirementDecision:
        declared = raw.answer_requirement
        if declared and not is_requirement_code(declared):
            issues.append(ValidationIssue("info", "REQUIREMENT_UNKNOWN",
                                          f"unknown answer requirement {declared!r}: derived instead",
                                          field="answer_requirement"))
        if not bearing:
            return RequirementDecision(None, "high", "contextual node: no answer expected", rule="contextual")
        if is_requirement_code(declared) and self.config.respect_declared_fields:
            return RequirementDecision(declared, "high", "declared in import", rule="declared")
        return derive_requirement(inp)

    # Mapping --------------------------------------------------------------

    def _map(self, question: ProcessedQuestion) -> MappingResult:
        nodes = question.all_nodes
        return self.matcher.map_question(
            question.id,
            units=_union([n.classification.units for n in nodes]),
            topics=_union([n.classification.topics for n in nodes]),
            subtopics=_union([n.classification.subtopics for n in nodes]),
        )

    @staticmethod
    def _mapping_issues(mapping: MappingResult) -> List[ValidationIssue]:
        qid = mapping.question_id
        issues = [
            ValidationIssue("warning", "MAPPING_UNRESOLVED", f"no unique curriculum match for {fld} {name!r}",
                            field=fld, kind="mapping", node_id=qid)
            for fld, name in mapping.unmatched_names
        ]
        issues.extend(
            ValidationIssue("warning", "MAPPING_CONFLICT", message, field="curriculum", kind="mapping", node_id=qid)
            for message in mapping.conflicts
        )
        if mapping.chapter_id is None and not issues:
            issues.append(ValidationIssue("info", "MAPPING_EMPTY", "no curriculum names to map",
                                          field="curriculum", kind="mapping", node_id=qid))
        return issues


# ─────────────────────────────────────────────────────────────────────────────
# Entry points
# ─────────────────────────────────────────────────────────────────────────────

def _tables(curriculum: Union[CurriculumTables, Mapping[str, Any], None]) -> Optional[CurriculumTables]:
    if curriculum is None or isinstance(curriculum, CurriculumTables):
        return curriculum
    return CurriculumTables.from_dict(curriculum)


def normalize_batch(
    raw_questions: Any,
    curriculum: Union[CurriculumTables, Mapping[str, Any], None] = None,
    *,
    config: Optional[ImportConfig] = None,
    validator: Optional[AnswerStructureValidator] = None,
    diagnostics: Optional[ImportDiagnostics] = None,
    log: Optional[logging.Logger] = None,
) -> ImportResult:
    """
    Import a batch of question records.

    Pipeline:
    1. Validate the batch envelope (non-empty list with at least one object)
    2. Assign stable question IDs
    3. For each record (concurrently when config.max_workers > 1):
       a. Ingest into typed raw models
       b. Normalise every node (answers, logic, format, requirement)
       c. Map classification names to curriculum IDs
    4. Aggregate summary and diagnostics

    One bad record or node never aborts the batch; it is reported as a
    node failure instead.

    Args:
        raw_questions: Decoded JSON array of question records
        curriculum: Curriculum tables (or their dict form); mapping is
            skipped when None
        config: Optional import configuration
        validator: Replacement answer structure validator
        diagnostics: Collector to record into (a fresh one by default)
        log: Logger used for per-question messages

    Returns:
        ImportResult with questions in input order

    Raises:
        BatchValidationError: If the batch itself is unusable
        CurriculumIntegrityError: If curriculum tables are inconsistent
    """
    config = config or ImportConfig()
    records = validate_batch(raw_questions)
    diagnostics = diagnostics or ImportDiagnostics()
    normalizer = QuestionNormalizer(
        config, curriculum=_tables(curriculum), validator=validator, diagnostics=diagnostics, log=log,
    )
    question_ids = assign_question_ids(records)
    logger.info(f"Importing {len(records)} questions (workers={config.max_workers})")

    if config.max_workers > 1 and len(records) > 1:
        with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            futures = [
                executor.submit(normalizer.process_record, index, record, qid)
                for index, (record, qid) in enumerate(zip(records, question_ids))
            ]
            outcomes = [f.result() for f in futures]
    else:
        outcomes = [
            normalizer.process_record(index, record, qid)
            for index, (record, qid) in enumerate(zip(records, question_ids))
        ]

    questions = [o.question for o in outcomes if o.question is not None]
    result = ImportResult(
        questions=questions,
        mappings={o.question_id: o.mapping for o in outcomes if o.mapping is not None},
        validation_issues={o.question_id: list(o.issues) for o in outcomes},
        node_failures=[f for o in outcomes for f in o.node_failures],
        support_summary=build_support_summary(questions),
        diagnostics=diagnostics.generate_report(),
    )
    logger.info(
        f"Imported {result.question_count}/{len(records)} questions, "
        f"{len(result.node_failures)} node failures, {result.diagnostics.total_issues} issues"
    )
    return result


def normalize_paper(
    paper: Mapping[str, Any],
    curriculum: Union[CurriculumTables, Mapping[str, Any], None] = None,
    *,
    config: Optional[ImportConfig] = None,
    **kwargs: Any,
) -> ImportResult:
    """
    Import a paper document: ``{"subject": ..., "questions": [...], "curriculum": {...}}``.

    The paper's subject applies when the config names none; an explicit
    ``curriculum`` argument wins over the embedded one.
    """
    config = config or ImportConfig()
    subject = paper.get("subject")
    if config.subject is None and isinstance(subject, str) and subject.strip():
        config = replace(config, subject=subject.strip())
    if curriculum is None:
        curriculum = paper.get("curriculum")
    return normalize_batch(paper.get("questions"), curriculum, config=config, **kwargs)
