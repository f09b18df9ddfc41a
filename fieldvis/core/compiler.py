"""
Compiler from visibility rules to client-side JavaScript expressions.

The form runtime evaluates the generated expression on every change of a
watched field, reading live values through ``$get('<state_path>.<code>')``.
Expressions are lowered from the same condition tree the server
interpreter walks, with operator semantics taken from the shared operator
table, so a compiled expression and ``evaluate_visibility_with_cascading``
agree on equivalent values.

Choice fields hold option ids in live state but option names on the
server. Rather than mapping ids to names in the browser, the compiler
resolves each condition against the option catalog at compile time: it
emits the ids whose names satisfy the condition, and only falls back to
comparing the raw condition value for live values that are not option ids.
"""

import logging
import math
import re
from typing import Any, Iterable

from fieldvis.core.conditions import (
    Combination,
    Comparison,
    ConditionNode,
    Constant,
    Negation,
    build_visibility_tree,
)
from fieldvis.core.config import EngineConfig
from fieldvis.core.dependencies import (
    DependencyPath,
    calculate_dependencies,
    get_dependent_fields,
    index_fields,
)
from fieldvis.core.operators import OPERATOR_RULES, is_numeric, split_operator
from fieldvis.core.options import OptionIndex
from fieldvis.core.schema import (
    FormField,
    VisibilityCondition,
    VisibilityLogic,
    VisibilityOperator,
)
from fieldvis.core.validation import is_operator_compatible
from fieldvis.core.visibility import get_field_metadata, has_visibility_conditions

logger = logging.getLogger(__name__)

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

# Live value of a single-choice field: mapped option ids are decided by the
# precomputed id list, anything else is compared as-is.
JS_SINGLE_OPTION = (
    "((v, known, matching, c, op) =>"
    " (typeof v === 'number' || typeof v === 'string') && known.includes(String(v))"
    " ? matching.includes(String(v)) : op(v, c))"
)

# Live value of a multi-choice field: the same decision per selected element.
JS_MULTI_OPTION = (
    "((v, known, matching, c, op) => Array.isArray(v)"
    " ? v.some(y => (typeof y === 'number' || typeof y === 'string') && known.includes(String(y))"
    " ? matching.includes(String(y)) : op([y], c))"
    " : op(v, c))"
)

_NUMERIC_OPERATORS = {VisibilityOperator.GREATER_THAN, VisibilityOperator.LESS_THAN}


# -----------------------------------------------------------------
# Literals
# -----------------------------------------------------------------


def _quote(text: str) -> str:
    escaped = (
        text.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
    return f"'{escaped}'"


def _format_decimal(value: float, decimal_places: int) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return f"{value:.{decimal_places}f}"


def format_literal(
    value: Any,
    decimal_places: int = 10,
    numeric_strings: bool = True,
) -> str:
    """Serialize a Python value as a JavaScript literal.

    Integers and integer strings become integer literals; floats and
    decimal strings are fixed to ``decimal_places`` digits. With
    ``numeric_strings=False`` strings are always emitted as string
    literals. Lists are serialized recursively.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_decimal(value, decimal_places)
    if isinstance(value, str):
        if numeric_strings and is_numeric(value):
            text = value.strip()
            if _INTEGER_RE.fullmatch(text):
                return str(int(text))
            return _format_decimal(float(text), decimal_places)
        return _quote(value)
    if isinstance(value, (list, tuple)):
        items = ", ".join(format_literal(item, decimal_places, numeric_strings) for item in value)
        return f"[{items}]"
    return _quote(str(value))


# -----------------------------------------------------------------
# Compiler
# -----------------------------------------------------------------


class ExpressionCompiler:
    """Builds client visibility expressions for form fields.

    Args:
        config: Engine configuration (feature toggle, state path, precision).
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()

    def build_visibility_expression(
        self,
        field: FormField,
        all_fields: Iterable[FormField] | None,
    ) -> str | None:
        """Build the complete visibility expression for a field.

        The result is ``(parents) && (own)`` where ``parents`` requires
        every referenced field that has its own conditions to be visible.

        Args:
            field: The field to compile.
            all_fields: Every field of the form, or None if unavailable.

        Returns:
            A JavaScript boolean expression, or None when conditional
            visibility is disabled, the field has no visibility conditions,
            or ``all_fields`` is None.

        Raises:
            VisibilityCycleError: If the parent chain loops back on itself.
        """
        if not self.config.enabled or all_fields is None:
            return None
        if not has_visibility_conditions(field):
            return None

        return self._build_expression(field, index_fields(all_fields), DependencyPath())

    def build_visibility_expressions(self, fields: Iterable[FormField]) -> dict[str, str]:
        """Compile every field of a form, omitting fields without an expression."""
        fields = list(fields)
        expressions: dict[str, str] = {}
        for field in fields:
            expression = self.build_visibility_expression(field, fields)
            if expression is not None:
                expressions[field.code] = expression
        return expressions

    def build_field_conditions(
        self,
        field: FormField,
        fields_by_code: dict[str, FormField],
    ) -> str | None:
        """Compile the field's own conditions (mode and logic applied)."""
        if not has_visibility_conditions(field):
            return None

        def is_usable(condition: VisibilityCondition) -> bool:
            target = fields_by_code.get(condition.field_code)
            return target is not None and is_operator_compatible(condition.operator, target)

        tree = build_visibility_tree(field.visibility, is_usable)
        return self._lower(tree, fields_by_code)

    def build_condition(
        self,
        condition: VisibilityCondition,
        fields_by_code: dict[str, FormField],
    ) -> str | None:
        """Compile a single condition, negated operators included.

        Returns None if the target field is unknown or the operator is not
        compatible with its data type.
        """
        target = fields_by_code.get(condition.field_code)
        if target is None or not is_operator_compatible(condition.operator, target):
            return None

        base, negated = split_operator(condition.operator)
        expression = self._build_operator_expression(base, condition.value, target)
        return f"!({expression})" if negated else expression

    def build_accessor(self, field_code: str) -> str:
        """Expression reading a field's live value from the form state."""
        return f"$get({_quote(f'{self.config.state_path}.{field_code}')})"

    def export_visibility_logic(self, fields: Iterable[FormField]) -> dict[str, Any]:
        """Export field metadata and the reverse dependency map for client integrations."""
        fields = list(fields)
        return {
            "fields": {field.code: get_field_metadata(field) for field in fields},
            "dependencies": calculate_dependencies(fields),
        }

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _build_expression(
        self,
        field: FormField,
        fields_by_code: dict[str, FormField],
        path: DependencyPath,
    ) -> str | None:
        with path.enter(field.code):
            pieces = [
                self._build_parent_conditions(field, fields_by_code, path),
                self.build_field_conditions(field, fields_by_code),
            ]

        pieces = [f"({piece})" for piece in pieces if piece]
        return " && ".join(pieces) if pieces else None

    def _build_parent_conditions(
        self,
        field: FormField,
        fields_by_code: dict[str, FormField],
        path: DependencyPath,
    ) -> str | None:
        parent_expressions = []

        for parent_code in get_dependent_fields(field):
            parent = fields_by_code.get(parent_code)
            if parent is None or not has_visibility_conditions(parent):
                continue

            expression = self._build_expression(parent, fields_by_code, path)
            if expression:
                parent_expressions.append(expression)

        return " && ".join(parent_expressions) if parent_expressions else None

    def _lower(self, node: ConditionNode, fields_by_code: dict[str, FormField]) -> str:
        match node:
            case Constant(value=value):
                return "true" if value else "false"
            case Comparison(operator=operator, value=value, field_code=code):
                return self._build_operator_expression(operator, value, fields_by_code[code])
            case Negation(operand=operand):
                return f"!({self._lower(operand, fields_by_code)})"
            case Combination(logic=logic, operands=operands):
                joiner = " && " if logic is VisibilityLogic.ALL else " || "
                return joiner.join(self._lower(operand, fields_by_code) for operand in operands)
        raise TypeError(f"Unknown condition node: {node!r}")

    def _build_operator_expression(
        self,
        operator: VisibilityOperator,
        value: Any,
        target: FormField,
    ) -> str:
        rule = OPERATOR_RULES[operator]
        accessor = self.build_accessor(target.code)

        if target.is_choice_field() and target.options:
            if not target.is_multi_choice_field():
                return self._build_option_expression(
                    JS_SINGLE_OPTION, accessor, operator, value, target,
                    lambda name: rule.predicate(name, value),
                )
            if operator is VisibilityOperator.CONTAINS:
                return self._build_option_expression(
                    JS_MULTI_OPTION, accessor, operator, value, target,
                    lambda name: rule.predicate([name], value),
                )

        literal = self._literal(value, numeric_strings=operator in _NUMERIC_OPERATORS)
        return f"{rule.js_function}({accessor}, {literal})"

    def _build_option_expression(self, template, accessor, operator, value, target, predicate) -> str:
        index = OptionIndex(target.options)
        matching = index.ids_matching(predicate)
        logger.debug(
            "Resolved %s condition on '%s' (%r) to option ids %s",
            operator.value, target.code, value, matching,
        )
        return (
            f"{template}({accessor}, {self._literal(index.id_keys, numeric_strings=False)}, "
            f"{self._literal(matching, numeric_strings=False)}, "
            f"{self._literal(value, numeric_strings=False)}, {OPERATOR_RULES[operator].js_function})"
        )

    def _literal(self, value: Any, numeric_strings: bool) -> str:
        return format_literal(value, self.config.decimal_places, numeric_strings)
