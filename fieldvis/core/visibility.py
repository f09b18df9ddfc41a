"""
Deterministic visibility evaluator for form fields.

Evaluates whether a field should be visible from its visibility rule and a
map of current field values. This is the authoritative server-side path;
compiled client expressions are generated from the same condition tree and
must agree with it.
"""

from typing import Any, Iterable

from fieldvis.core.conditions import (
    Combination,
    Comparison,
    ConditionNode,
    Constant,
    Negation,
    build_visibility_tree,
)
from fieldvis.core.dependencies import DependencyPath, get_dependent_fields, index_fields
from fieldvis.core.operators import OPERATOR_RULES
from fieldvis.core.schema import (
    FormField,
    VisibilityCondition,
    VisibilityLogic,
    VisibilityMode,
    VisibilityRule,
)


# -----------------------------------------------------------------
# Rule accessors
# -----------------------------------------------------------------


def get_visibility_rule(field: FormField) -> VisibilityRule | None:
    return field.visibility


def has_visibility_conditions(field: FormField) -> bool:
    """True when the field's mode is show_when or hide_when.

    Independent of whether any condition currently resolves: a show_when
    rule with no conditions still counts.
    """
    return field.visibility is not None and field.visibility.requires_conditions()


def get_visibility_mode(field: FormField) -> VisibilityMode:
    if field.visibility is None:
        return VisibilityMode.ALWAYS_VISIBLE
    return field.visibility.mode


def get_visibility_logic(field: FormField) -> VisibilityLogic:
    if field.visibility is None:
        return VisibilityLogic.ALL
    return field.visibility.logic


def get_visibility_conditions(field: FormField) -> list[VisibilityCondition]:
    if field.visibility is None:
        return []
    return list(field.visibility.conditions)


def should_always_save(field: FormField) -> bool:
    """Whether the field's value is persisted even while it is hidden."""
    return field.visibility is not None and field.visibility.always_save


# -----------------------------------------------------------------
# Evaluation
# -----------------------------------------------------------------


def interpret(node: ConditionNode, values: dict[str, Any]) -> bool:
    """Evaluate a condition tree against a field value map."""
    match node:
        case Constant(value=value):
            return value
        case Comparison(field_code=code, operator=operator, value=expected):
            return OPERATOR_RULES[operator].predicate(values.get(code), expected)
        case Negation(operand=operand):
            return not interpret(operand, values)
        case Combination(logic=logic, operands=operands):
            return logic.evaluate([interpret(operand, values) for operand in operands])
    raise TypeError(f"Unknown condition node: {node!r}")


def evaluate_visibility(field: FormField, values: dict[str, Any]) -> bool:
    """Determine if a field should be visible given the current values.

    Conditions whose target field code is absent from ``values`` are
    skipped. If every condition is skipped the combination is False, so a
    show_when field is hidden and a hide_when field is shown.

    Args:
        field: The field to evaluate.
        values: Current field values keyed by field code.

    Returns:
        True if the field should be visible, False otherwise.
    """
    tree = build_visibility_tree(field.visibility, lambda condition: condition.field_code in values)
    return interpret(tree, values)


def evaluate_visibility_with_cascading(
    field: FormField,
    values: dict[str, Any],
    all_fields: Iterable[FormField] | dict[str, FormField],
    _path: DependencyPath | None = None,
) -> bool:
    """Evaluate visibility, also requiring every field it depends on to be visible.

    A field cannot be visible while any field its conditions reference is
    hidden, transitively. Referenced fields missing from ``all_fields`` are
    skipped.

    Raises:
        VisibilityCycleError: If the dependency chain loops back on itself.
    """
    path = _path if _path is not None else DependencyPath()
    fields_by_code = all_fields if isinstance(all_fields, dict) else index_fields(all_fields)

    with path.enter(field.code):
        if not evaluate_visibility(field, values):
            return False

        if not has_visibility_conditions(field):
            return True

        for parent_code in get_dependent_fields(field):
            parent = fields_by_code.get(parent_code)
            if parent is None:
                continue

            if not evaluate_visibility_with_cascading(parent, values, fields_by_code, path):
                return False

    return True


# -----------------------------------------------------------------
# Metadata
# -----------------------------------------------------------------


def get_field_metadata(field: FormField) -> dict[str, Any]:
    """Summarize what downstream consumers need to know about a field's visibility.

    Args:
        field: The field to describe.

    Returns:
        A JSON-serializable dict with the field's data type, compatible
        operators and visibility configuration.
    """
    return {
        "code": field.code,
        "name": field.name,
        "category": field.data_type.value,
        "is_optionable": field.is_choice_field(),
        "has_multiple_values": field.is_multi_choice_field(),
        "compatible_operators": [op.value for op in field.data_type.compatible_operators()],
        "has_visibility_conditions": has_visibility_conditions(field),
        "visibility_mode": get_visibility_mode(field).value,
        "visibility_logic": get_visibility_logic(field).value,
        "visibility_conditions": [
            condition.model_dump(mode="json") for condition in get_visibility_conditions(field)
        ],
        "dependent_fields": get_dependent_fields(field),
        "always_save": should_always_save(field),
    }
