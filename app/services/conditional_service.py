"""
Revi Audit — Conditional question evaluation

Decides whether a question should be visible to the respondent given the
conditional rules configured on it and the answers collected so far.

Rule semantics
--------------
For one rule attached to a question:

  OR   satisfied when the answers to ``condition_question_id`` share at
       least one value with ``condition_values``.
  AND  satisfied when every value of ``condition_values`` appears among
       those answers (multi-select checkbox conditions).

A satisfied rule yields ``show_question``; an unsatisfied rule yields the
opposite.  An unanswered condition question is treated as an empty answer
set, so "show when X is selected" rules hide their question by default.

Several rules on one question are combined with the configured policy:
``all`` (default) requires every rule to allow the question, ``any`` needs
only one.

The evaluation functions are pure.  ``ConditionalService`` adds the two
database-backed operations: loading a form's rules and rejecting
conditionals that would introduce a dependency cycle.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import ConditionalCycleError
from app.models.form import (
    ConditionalOperator,
    Question,
    QuestionCategory,
    QuestionConditional,
)

logger = structlog.get_logger("audit.conditional_service")

COMBINE_ALL = "all"
COMBINE_ANY = "any"


@dataclass(frozen=True)
class ConditionalRule:
    condition_question_id: int
    condition_values: tuple[str, ...]
    show_question: bool = True
    operator: ConditionalOperator = ConditionalOperator.OR

    @classmethod
    def from_model(cls, conditional: QuestionConditional) -> "ConditionalRule":
        return cls(
            condition_question_id=conditional.condition_question_id,
            condition_values=tuple(conditional.condition_values or ()),
            show_question=conditional.show_question,
            operator=ConditionalOperator(conditional.operator),
        )


@dataclass
class QuestionRules:
    question_id: int
    rules: list[ConditionalRule] = field(default_factory=list)


# ──────────────────────────────────────────────────────────────────────────────
# Pure evaluation
# ──────────────────────────────────────────────────────────────────────────────


def is_rule_satisfied(
    rule: ConditionalRule,
    answered_values: Mapping[int, Iterable[str]],
) -> bool:
    given = set(answered_values.get(rule.condition_question_id, ()))
    wanted = set(rule.condition_values)

    if rule.operator == ConditionalOperator.AND:
        return wanted.issubset(given)
    return not given.isdisjoint(wanted)


def rule_visibility(
    rule: ConditionalRule,
    answered_values: Mapping[int, Iterable[str]],
) -> bool:
    """Visibility a single rule votes for."""
    if is_rule_satisfied(rule, answered_values):
        return rule.show_question
    return not rule.show_question


def is_question_visible(
    rules: Sequence[ConditionalRule],
    answered_values: Mapping[int, Iterable[str]],
    combination: str = COMBINE_ALL,
) -> bool:
    """Return True when the question should currently be shown.

    Questions without rules are always visible.
    """
    if not rules:
        return True

    votes = (rule_visibility(rule, answered_values) for rule in rules)
    if combination == COMBINE_ANY:
        return any(votes)
    if combination == COMBINE_ALL:
        return all(votes)
    raise ValueError(f"Unknown conditional combination: {combination!r}")


def visible_question_ids(
    questions: Iterable[QuestionRules],
    answered_values: Mapping[int, Iterable[str]],
    combination: str = COMBINE_ALL,
) -> list[int]:
    return [
        q.question_id
        for q in questions
        if is_question_visible(q.rules, answered_values, combination)
    ]


def answered_values_from_pairs(
    pairs: Iterable[tuple[int, str]],
) -> dict[int, list[str]]:
    """Fold ``(question_id, value)`` pairs into ``question_id -> values``."""
    answered: dict[int, list[str]] = defaultdict(list)
    for question_id, value in pairs:
        answered[question_id].append(value)
    return dict(answered)


# ──────────────────────────────────────────────────────────────────────────────
# Dependency graph
# ──────────────────────────────────────────────────────────────────────────────


def find_cycle(
    edges: Iterable[tuple[int, int]],
    new_edge: tuple[int, int],
) -> list[int] | None:
    """Return the question ids forming a cycle if ``new_edge`` were added.

    Edges point from a question to the question it depends on.  The returned
    path starts and ends with the same id; ``None`` means the graph stays
    acyclic.
    """
    source, target = new_edge
    if source == target:
        return [source, source]

    graph: dict[int, set[int]] = defaultdict(set)
    for a, b in edges:
        graph[a].add(b)

    # Adding source -> target closes a loop iff target already reaches source.
    stack: list[tuple[int, list[int]]] = [(target, [source, target])]
    seen: set[int] = set()
    while stack:
        node, path = stack.pop()
        if node == source:
            return path
        if node in seen:
            continue
        seen.add(node)
        for nxt in sorted(graph.get(node, ())):
            stack.append((nxt, path + [nxt]))
    return None


class ConditionalService:
    """Database-backed helpers around the pure evaluator."""

    async def load_form_rules(
        self,
        form_id: int,
        db_session: AsyncSession,
    ) -> list[QuestionRules]:
        """Return every question of a form with its rules, in display order."""
        q_stmt = (
            select(Question.id)
            .join(QuestionCategory, QuestionCategory.id == Question.category_id)
            .where(QuestionCategory.form_id == form_id)
            .order_by(
                QuestionCategory.order,
                QuestionCategory.id,
                Question.order,
                Question.id,
            )
        )
        question_ids = list((await db_session.execute(q_stmt)).scalars().all())

        rules: dict[int, QuestionRules] = {
            qid: QuestionRules(question_id=qid) for qid in question_ids
        }
        if not question_ids:
            return []

        c_stmt = (
            select(QuestionConditional)
            .where(QuestionConditional.question_id.in_(question_ids))
            .order_by(QuestionConditional.id)
        )
        for conditional in (await db_session.execute(c_stmt)).scalars().all():
            rules[conditional.question_id].rules.append(
                ConditionalRule.from_model(conditional)
            )

        return [rules[qid] for qid in question_ids]

    async def ensure_acyclic(
        self,
        question_id: int,
        condition_question_id: int,
        db_session: AsyncSession,
        ignore_conditional_id: int | None = None,
    ) -> None:
        """Raise ``ConditionalCycleError`` if the new dependency closes a loop.

        ``ignore_conditional_id`` excludes the row being updated so that
        editing a conditional in place is judged against the other edges.
        """
        stmt = select(
            QuestionConditional.id,
            QuestionConditional.question_id,
            QuestionConditional.condition_question_id,
        )
        rows = (await db_session.execute(stmt)).all()
        edges = [
            (row.question_id, row.condition_question_id)
            for row in rows
            if row.id != ignore_conditional_id
        ]

        cycle = find_cycle(edges, (question_id, condition_question_id))
        if cycle is not None:
            path = " -> ".join(str(qid) for qid in cycle)
            logger.warning(
                "conditional_cycle_rejected",
                question_id=question_id,
                condition_question_id=condition_question_id,
                cycle=cycle,
            )
            raise ConditionalCycleError(
                f"Conditional would create a circular dependency: {path}"
            )
