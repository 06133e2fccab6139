"""
Module: importer.ingest

Purpose:
    Boundary between loosely structured JSON and the typed raw models.
    Each record is shape-checked against the node schema, field aliases
    are resolved, and values are coerced into RawQuestion / RawPart /
    RawSubpart. A malformed part or subpart is reported as a node
    failure and skipped; its siblings are still ingested.

Key Functions:
    - assign_question_ids(): Stable, unique question IDs for a batch
    - ingest_question(): One JSON record → RawQuestion + node failures
    - coerce_marks(): Marks from ints, floats and strings like "[2]"

Dependencies:
    - core.schemas: jsonschema-backed node shape checks
    - common.text: name splitting and option matching keys

Used By:
    - importer.pipeline
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from markscheme_toolkit.common.text import match_variants, normalize_text, split_name_candidates
from markscheme_toolkit.core.models import (
    AnswerContext,
    Classification,
    OptionChoice,
    RawAnswer,
    RawPart,
    RawQuestion,
    RawSubpart,
    ValidationIssue,
)
from markscheme_toolkit.core.schemas import NodeShapeError, check_node_shape

logger = logging.getLogger(__name__)


TEXT_KEYS = ("question_text", "question_description", "text", "question")
MARKS_KEYS = ("marks", "total_marks")
TYPE_KEYS = ("type", "question_type")
UNIT_KEYS = ("unit", "units", "chapter", "unit_name", "chapter_name")
TOPIC_KEYS = ("topic", "topics")
SUBTOPIC_KEYS = ("subtopic", "subtopics", "sub_topic", "sub_topics")

_MARKS_RE = re.compile(r"\d+(?:\.\d+)?")
_LABEL_STRIP_RE = re.compile(r"^[\s(\[]*|[\s)\].]*$")
_ROMANS = ("i", "ii", "iii", "iv", "v", "vi", "vii", "viii", "ix", "x",
           "xi", "xii", "xiii", "xiv", "xv", "xvi", "xvii", "xviii", "xix", "xx")


@dataclass(frozen=True)
class NodeFailure:
    """A record that could not be ingested."""

    node_id: str
    path: str
    message: str
    errors: Tuple[str, ...] = ()


# ─────────────────────────────────────────────────────────────────────────────
# Scalar coercion
# ─────────────────────────────────────────────────────────────────────────────

def _first(data: Dict[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _optional_str(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _optional_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


def coerce_marks(value: Any) -> Tuple[Optional[int], Optional[str]]:
    """
    Coerce a marks value.

    Returns:
        (marks, problem). ``problem`` describes why a present value was
        rejected; both are None when the value is simply absent.

    Example:
        >>> coerce_marks("[2]")
        (2, None)
        >>> coerce_marks("two")
        (None, "unparseable marks 'two'")
    """
    if value is None or value == "":
        return None, None
    if isinstance(value, bool):
        return None, f"unparseable marks {value!r}"
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None, "unparseable marks: value out of range"
    else:
        match = _MARKS_RE.search(str(value))
        if not match:
            return None, f"unparseable marks {value!r}"
        number = float(match.group())
    if not math.isfinite(number):
        return None, f"unparseable marks {value!r}"
    if number < 0:
        return None, f"negative marks {value!r}"
    return int(round(number)), None


def _marking_criteria(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return "; ".join(_marking_criteria(v) for v in value if v)
    if isinstance(value, dict):
        return "; ".join(f"{k}: {_marking_criteria(v)}" for k, v in value.items() if v)
    return str(value)


def _clean_label(value: Any) -> str:
    return _LABEL_STRIP_RE.sub("", _text(value))


def _default_label(level_index: int, position: int) -> str:
    if level_index == 1:
        return chr(ord("a") + position) if position < 26 else str(position + 1)
    return _ROMANS[position] if position < len(_ROMANS) else str(position + 1)


# ─────────────────────────────────────────────────────────────────────────────
# Answers and options
# ─────────────────────────────────────────────────────────────────────────────

def _answer_from(entry: Any) -> Optional[RawAnswer]:
    if entry is None:
        return None
    if not isinstance(entry, dict):
        return RawAnswer(text=_text(entry))
    text = _text(_first(entry, ("answer", "text", "value")))
    marks, _ = coerce_marks(entry.get("marks"))
    linked = tuple(i for i in (_optional_int(v) for v in entry.get("linked_alternatives") or ()) if i is not None)
    variations = tuple(str(v).strip() for v in entry.get("acceptable_variations") or () if str(v).strip())
    return RawAnswer(
        text=text,
        marks=marks,
        alternative_id=_optional_int(entry.get("alternative_id")),
        linked_alternatives=linked,
        alternative_type=_optional_str(entry.get("alternative_type")),
        context=AnswerContext.from_raw(entry.get("context")),
        unit=_optional_str(entry.get("unit")),
        accepts_equivalent_phrasing=_optional_bool(entry.get("accepts_equivalent_phrasing")),
        accepts_reverse_argument=_optional_bool(entry.get("accepts_reverse_argument")),
        error_carried_forward=_optional_bool(entry.get("error_carried_forward")),
        acceptable_variations=variations,
    )


def _answers(data: Dict[str, Any]) -> Tuple[RawAnswer, ...]:
    entries = data.get("correct_answers")
    if not entries:
        single = data.get("correct_answer")
        entries = single if isinstance(single, list) else ([single] if single not in (None, "") else [])
    answers = (_answer_from(e) for e in entries)
    return tuple(a for a in answers if a is not None)


def _option_is_correct(label: str, text: str, answer_keys: Set[str]) -> bool:
    if not answer_keys:
        return False
    keys = {normalize_text(label)} | match_variants(text) | match_variants(f"{label}. {text}")
    keys.discard("")
    return bool(keys & answer_keys)


def _options(data: Dict[str, Any], answers: Sequence[RawAnswer]) -> Tuple[OptionChoice, ...]:
    raw_options = data.get("options") or []
    answer_keys: Set[str] = set()
    for answer in answers:
        answer_keys |= match_variants(answer.text)

    options = []
    for position, raw in enumerate(raw_options):
        default_label = chr(ord("A") + position) if position < 26 else str(position + 1)
        if isinstance(raw, dict):
            label = _clean_label(raw.get("label")) or default_label
            text = _text(raw.get("text"))
            declared = raw.get("is_correct") is True
        else:
            label, text, declared = default_label, _text(raw), False
        options.append(OptionChoice(
            label=label,
            text=text,
            is_correct=declared or _option_is_correct(label, text, answer_keys),
        ))
    return tuple(options)


def _classification(data: Dict[str, Any]) -> Classification:
    def names(keys: Sequence[str]) -> Tuple[str, ...]:
        found: List[str] = []
        for key in keys:
            found.extend(split_name_candidates(data.get(key)))
        return tuple(dict.fromkeys(found))

    return Classification(units=names(UNIT_KEYS), topics=names(TOPIC_KEYS), subtopics=names(SUBTOPIC_KEYS))


def _common_fields(data: Dict[str, Any], node_id: str) -> Dict[str, Any]:
    notes: List[ValidationIssue] = []
    marks, problem = coerce_marks(_first(data, MARKS_KEYS))
    if problem:
        notes.append(ValidationIssue("warning", "MARKS_UNPARSEABLE", problem,
                                     field="marks", kind="parse", node_id=node_id))
    total_alternatives = _optional_int(data.get("total_alternatives"))
    answers = _answers(data)
    attachments = data.get("attachments") or []
    return dict(
        text=_text(_first(data, TEXT_KEYS)),
        marks=marks,
        type=_optional_str(_first(data, TYPE_KEYS)),
        options=_options(data, answers),
        answers=answers,
        answer_format=_optional_str(data.get("answer_format")),
        answer_requirement=_optional_str(data.get("answer_requirement")),
        total_alternatives=total_alternatives if total_alternatives is not None and total_alternatives >= 0 else None,
        classification=_classification(data),
        marking_criteria=_marking_criteria(data.get("marking_criteria")),
        has_figure=data.get("figure") is True,
        attachment_count=len(attachments) if isinstance(attachments, list) else 0,
        hint=_text(data.get("hint")),
        explanation=_text(data.get("explanation")),
        parse_notes=tuple(notes),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Records
# ─────────────────────────────────────────────────────────────────────────────

def assign_question_ids(records: Sequence[Any]) -> List[str]:
    """
    One unique ID per record, in order.

    IDs are ``q-<number>`` using question_number, then id, then the
    1-based position. Repeats get the position appended.
    """
    ids: List[str] = []
    seen: Set[str] = set()
    for index, record in enumerate(records):
        data = record if isinstance(record, dict) else {}
        number = _text(data.get("question_number")) or _text(data.get("id")) or str(index + 1)
        qid = f"q-{number}"
        if qid in seen:
            qid = f"{qid}-{index + 1}"
        seen.add(qid)
        ids.append(qid)
    return ids


def _children(
    items: Any,
    parent_id: str,
    parent_path: str,
    key: str,
    failures: List[NodeFailure],
) -> list:
    built = []
    used: Set[str] = set()
    level_index = 1 if key == "parts" else 2
    label_keys = ("part", "label") if key == "parts" else ("subpart", "label")
    for position, item in enumerate(items or []):
        path = f"{parent_path}.{key}[{position}]"
        data = item if isinstance(item, dict) else {}
        label = _clean_label(_first(data, label_keys)) or _default_label(level_index, position)
        if label in used:
            label = f"{label}{position + 1}"
        used.add(label)
        node_id = f"{parent_id}-{label}"
        try:
            check_node_shape(item, path)
        except NodeShapeError as e:
            failures.append(NodeFailure(node_id, path, str(e), tuple(e.errors)))
            continue
        try:
            fields = _common_fields(item, node_id)
        except (ValueError, ArithmeticError) as e:
            failures.append(NodeFailure(node_id, path, f"could not ingest node: {e}"))
            continue
        if key == "parts":
            subparts = _children(item.get("subparts"), node_id, path, "subparts", failures)
            built.append(RawPart(label=label, subparts=tuple(subparts), **fields))
        else:
            built.append(RawSubpart(label=label, **fields))
    return built


def ingest_question(data: Any, index: int, question_id: str) -> Tuple[RawQuestion, List[NodeFailure]]:
    """
    Ingest one question record.

    Args:
        data: Decoded JSON record
        index: 0-based position in the batch (used in paths)
        question_id: ID from assign_question_ids()

    Returns:
        (RawQuestion, failures for parts/subparts that were skipped)

    Raises:
        NodeShapeError: If the question record itself is unusable
    """
    path = f"[{index}]"
    check_node_shape(data, path)
    failures: List[NodeFailure] = []
    parts = _children(data.get("parts"), question_id, path, "parts", failures)
    number = _text(data.get("question_number")) or _text(data.get("id")) or str(index + 1)
    question = RawQuestion(
        id=question_id,
        number=number,
        label=number,
        mcq_type=_optional_str(data.get("mcq_type")),
        subject=_optional_str(data.get("subject")),
        parts=tuple(parts),
        **_common_fields(data, question_id),
    )
    for failure in failures:
        logger.debug(f"{question_id}: skipped {failure.path}: {failure.message}")
    return question, failures
