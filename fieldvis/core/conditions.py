"""
Condition tree built from a field's visibility rule.

A visibility rule is lowered once into a small immutable tree; the server
interpreter walks it directly and the client compiler turns it into a
JavaScript expression. Mode handling, logic combination, the dropping of
unknown targets and the empty-combination rule therefore live in exactly
one place.
"""

from dataclasses import dataclass
from typing import Any, Callable, Union

from fieldvis.core.operators import split_operator
from fieldvis.core.schema import (
    VisibilityCondition,
    VisibilityLogic,
    VisibilityMode,
    VisibilityOperator,
    VisibilityRule,
)


@dataclass(frozen=True)
class Comparison:
    """A base (non-negated) operator applied to a target field's value."""

    field_code: str
    operator: VisibilityOperator
    value: Any
    condition: VisibilityCondition


@dataclass(frozen=True)
class Negation:
    operand: "ConditionNode"


@dataclass(frozen=True)
class Combination:
    logic: VisibilityLogic
    operands: tuple["ConditionNode", ...]


@dataclass(frozen=True)
class Constant:
    value: bool


ConditionNode = Union[Comparison, Negation, Combination, Constant]


def build_comparison(condition: VisibilityCondition) -> ConditionNode:
    """Lower one condition, expressing ``not_*`` operators as a negated base comparison."""
    base, negated = split_operator(condition.operator)
    node = Comparison(
        field_code=condition.field_code,
        operator=base,
        value=condition.value,
        condition=condition,
    )
    return Negation(node) if negated else node


def build_visibility_tree(
    rule: VisibilityRule | None,
    is_usable: Callable[[VisibilityCondition], bool],
) -> ConditionNode:
    """Lower a visibility rule into a condition tree.

    Args:
        rule: The field's visibility rule (None means always visible).
        is_usable: Predicate deciding whether a condition can be evaluated
            (its target is known); other conditions are dropped.

    Returns:
        The root node. A rule left with no conditions combines to False
        before the mode is applied, so show_when hides the field and
        hide_when shows it.
    """
    if rule is None or not rule.requires_conditions():
        return Constant(True)

    comparisons = tuple(
        build_comparison(condition)
        for condition in rule.conditions
        if is_usable(condition)
    )

    combined: ConditionNode
    if not comparisons:
        combined = Constant(False)
    elif len(comparisons) == 1:
        combined = comparisons[0]
    else:
        combined = Combination(rule.logic, comparisons)

    if rule.mode is VisibilityMode.HIDE_WHEN:
        return Negation(combined)
    return combined

