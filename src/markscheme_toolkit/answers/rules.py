"""
Module: answers.rules

Purpose:
    A tiny ordered rule table. Each rule pairs a predicate with a result
    builder; the first rule whose predicate holds wins. Requirement
    derivation, answer-format detection and operator classification are
    all expressed as tables of these so their priority order can be read
    top to bottom and tested rule by rule.

Key Functions:
    - Rule: (name, when, then) triple
    - RuleTable.evaluate(): First matching rule's result, or None
    - RuleTable.names: Rule names in priority order

Dependencies:
    - dataclasses (std)

Used By:
    - answers.requirement
    - answers.formats
    - answers.operators
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

C = TypeVar("C")
R = TypeVar("R")


@dataclass(frozen=True)
class Rule(Generic[C, R]):
    """A named predicate/result pair evaluated against a context object."""

    name: str
    when: Callable[[C], bool]
    then: Callable[[C], R]


@dataclass(frozen=True)
class RuleHit(Generic[R]):
    """Result of the rule that fired."""

    rule: str
    value: R


class RuleTable(Generic[C, R]):
    """Ordered collection of rules evaluated first-match-wins."""

    def __init__(self, rules: Sequence[Rule[C, R]]):
        names = [r.name for r in rules]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate rule names: {names}")
        self._rules = tuple(rules)

    @property
    def names(self) -> List[str]:
        return [r.name for r in self._rules]

    def evaluate(self, context: C) -> Optional[RuleHit[R]]:
        for rule in self._rules:
            if rule.when(context):
                return RuleHit(rule.name, rule.then(context))
        return None

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleTable({self.names})"
