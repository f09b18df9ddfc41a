"""
Operator compatibility and visibility configuration checks.

Used when conditions are authored: each operator is only valid for the
data types listed in the compatible operator table, and a form's rules as
a whole must reference existing fields without forming cycles.
"""

from typing import Iterable

from fieldvis.core.dependencies import find_dependency_cycle, index_fields
from fieldvis.core.options import OptionIndex
from fieldvis.core.schema import FormField, VisibilityOperator

_OPTIONABLE_OPERATORS = {
    VisibilityOperator.EQUALS,
    VisibilityOperator.NOT_EQUALS,
    VisibilityOperator.CONTAINS,
    VisibilityOperator.NOT_CONTAINS,
}


def is_operator_compatible(operator: VisibilityOperator, field: FormField) -> bool:
    """Check the operator against the compatible operator table for the field's data type."""
    return operator in field.data_type.compatible_operators()


def condition_requires_optionable_field(operator: VisibilityOperator) -> bool:
    """Whether the operator compares against option values when used on a choice field.

    Informational only: these operators are equally valid for scalar
    fields, so ``get_operator_validation_error`` does not enforce it.
    """
    return operator in _OPTIONABLE_OPERATORS


def get_operator_validation_error(operator: VisibilityOperator, field: FormField) -> str | None:
    """Return a human-readable incompatibility message, or None if the pairing is valid."""
    if not is_operator_compatible(operator, field):
        return (
            f"Operator '{operator.value}' is not compatible with field type "
            f"'{field.data_type.value}'"
        )
    return None


def validate_visibility_rules(fields: Iterable[FormField]) -> list[str]:
    """Check every field's visibility rule against the rest of the form.

    Reports conditions that reference unknown fields or the field itself,
    operators incompatible with the target's data type, choice values that
    name no option, and dependency cycles.

    Args:
        fields: All fields of the form.

    Returns:
        A list of error messages (empty when the configuration is valid).
    """
    fields = list(fields)
    known = index_fields(fields)
    errors: list[str] = []

    for field in fields:
        if field.visibility is None or not field.visibility.requires_conditions():
            continue

        for condition in field.visibility.conditions:
            if condition.field_code == field.code:
                errors.append(f"Field '{field.code}' has a visibility condition referencing itself")
                continue

            target = known.get(condition.field_code)
            if target is None:
                errors.append(
                    f"Field '{field.code}' has a visibility condition referencing "
                    f"non-existent field '{condition.field_code}'"
                )
                continue

            message = get_operator_validation_error(condition.operator, target)
            if message is not None:
                errors.append(f"Field '{field.code}': {message}")
                continue

            if target.is_choice_field() and target.options and condition.operator.requires_value():
                errors.extend(_unknown_option_errors(field, target, condition.value))

    cycle = find_dependency_cycle(fields)
    if cycle is not None:
        errors.append("Cyclic visibility dependency: " + " -> ".join(cycle))

    return errors


def _unknown_option_errors(field: FormField, target: FormField, value) -> list[str]:
    index = OptionIndex(target.options)
    names = value if isinstance(value, list) else [value]
    return [
        f"Field '{field.code}': '{name}' is not an option of field '{target.code}'"
        for name in names
        if index.id_for(name) is None
    ]
