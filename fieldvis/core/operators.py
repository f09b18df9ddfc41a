"""
Operator semantics shared by the server interpreter and the client compiler.

Each base operator is defined once in ``OPERATOR_RULES``: a Python predicate
used for direct evaluation and the JavaScript function source the compiler
emits into client expressions. The two renditions implement the same rules,
including how values are coerced to text and numbers, so both execution
contexts agree on every input. ``not_*`` operators are declared as
negations of their base operator rather than implemented separately.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Callable

from fieldvis.core.schema import VisibilityOperator

# Whitespace both runtimes agree on. Python's str.strip() and JavaScript's
# trim() strip different sets, so neither is used by the operators.
BLANK_CHARS = r"[ \t\n\r\f\v]"
_BLANK_RE = re.compile(f"{BLANK_CHARS}*")

# Decimal notation accepted as "numeric" on both sides. Anchored with
# fullmatch in Python and with ^(?:...)$ in JavaScript.
NUMERIC_PATTERN = (
    f"{BLANK_CHARS}*"
    r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    f"{BLANK_CHARS}*"
)
_NUMERIC_RE = re.compile(NUMERIC_PATTERN)


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def is_number(value: Any) -> bool:
    """True for int and float values (booleans excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_numeric(value: Any) -> bool:
    """Check whether a value parses as a number.

    Finite numbers qualify, as do strings in plain decimal or exponent
    notation (surrounding whitespace allowed). Booleans, ``inf``/``nan``
    spellings and digit separators do not.
    """
    if is_number(value):
        return math.isfinite(value)
    if isinstance(value, str):
        return _NUMERIC_RE.fullmatch(value) is not None
    return False


def to_text(value: Any) -> str:
    """Render a value as text the way the client runtime's ``String()`` does."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join("" if item is None else to_text(item) for item in value)
    return str(value)


def _strict_equals(left: Any, right: Any) -> bool:
    """Type-strict equality: booleans only equal booleans, numbers compare numerically."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return False


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def equals(field_value: Any, expected: Any) -> bool:
    if field_value is None and expected is None:
        return True
    if field_value is None or expected is None:
        return False

    if isinstance(field_value, list):
        # Membership, not list equality
        return any(_strict_equals(item, expected) for item in field_value)

    if isinstance(field_value, str) and isinstance(expected, str):
        return field_value.lower() == expected.lower()

    return _strict_equals(field_value, expected)


def contains(field_value: Any, expected: Any) -> bool:
    if field_value is None or expected is None:
        return False

    if isinstance(field_value, list):
        if isinstance(expected, list):
            return any(
                to_text(needle).lower() in to_text(item).lower()
                for needle in expected
                for item in field_value
            )
        needle = to_text(expected).lower()
        return any(isinstance(item, str) and needle in item.lower() for item in field_value)

    if isinstance(field_value, str) and isinstance(expected, str):
        return expected.lower() in field_value.lower()

    return False


def greater_than(field_value: Any, expected: Any) -> bool:
    if not is_numeric(field_value) or not is_numeric(expected):
        return False
    return float(field_value) > float(expected)


def less_than(field_value: Any, expected: Any) -> bool:
    if not is_numeric(field_value) or not is_numeric(expected):
        return False
    return float(field_value) < float(expected)


def is_empty(field_value: Any, expected: Any = None) -> bool:
    if field_value is None:
        return True
    if isinstance(field_value, str):
        return _BLANK_RE.fullmatch(field_value) is not None
    if isinstance(field_value, list):
        return len(field_value) == 0
    return False


# ---------------------------------------------------------------------------
# JavaScript renditions
# ---------------------------------------------------------------------------

# Each entry is a function expression of (fieldValue, expected), self-contained
# so a compiled condition never depends on a client-side helper library.

_JS_SAME = (
    "(x, y) => (typeof x === 'boolean' || typeof y === 'boolean') ? x === y"
    " : ((typeof x === 'number' && typeof y === 'number')"
    " || (typeof x === 'string' && typeof y === 'string')) ? x === y : false"
)

_JS_NUMERIC = (
    "(v => typeof v === 'number' ? isFinite(v)"
    f" : typeof v === 'string' && /^(?:{NUMERIC_PATTERN})$/.test(v))"
)

_JS_NIL = "(v => v === null || v === undefined)"

JS_EQUALS = (
    "((a, b) => {"
    f" const nil = {_JS_NIL}; const same = {_JS_SAME};"
    " if (nil(a) && nil(b)) return true;"
    " if (nil(a) || nil(b)) return false;"
    " if (Array.isArray(a)) return a.some(y => same(y, b));"
    " if (typeof a === 'string' && typeof b === 'string') return a.toLowerCase() === b.toLowerCase();"
    " return same(a, b);"
    " })"
)

JS_CONTAINS = (
    "((a, b) => {"
    f" const nil = {_JS_NIL}; const text = v => String(v).toLowerCase();"
    " if (nil(a) || nil(b)) return false;"
    " if (Array.isArray(a)) {"
    " if (Array.isArray(b)) return b.some(x => a.some(y => text(y).includes(text(x))));"
    " return a.some(y => typeof y === 'string' && y.toLowerCase().includes(text(b)));"
    " }"
    " if (typeof a === 'string' && typeof b === 'string') return a.toLowerCase().includes(b.toLowerCase());"
    " return false;"
    " })"
)

JS_GREATER_THAN = (
    f"((a, b) => {{ const numeric = {_JS_NUMERIC};"
    " return numeric(a) && numeric(b) && parseFloat(a) > parseFloat(b); })"
)

JS_LESS_THAN = (
    f"((a, b) => {{ const numeric = {_JS_NUMERIC};"
    " return numeric(a) && numeric(b) && parseFloat(a) < parseFloat(b); })"
)

JS_IS_EMPTY = (
    "((a, b) => a === null || a === undefined"
    f" || (typeof a === 'string' && /^{BLANK_CHARS}*$/.test(a))"
    " || (Array.isArray(a) && a.length === 0))"
)


# ---------------------------------------------------------------------------
# Operator table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OperatorRule:
    """Both renditions of one base operator."""

    predicate: Callable[[Any, Any], bool]
    js_function: str


OPERATOR_RULES: dict[VisibilityOperator, OperatorRule] = {
    VisibilityOperator.EQUALS: OperatorRule(equals, JS_EQUALS),
    VisibilityOperator.CONTAINS: OperatorRule(contains, JS_CONTAINS),
    VisibilityOperator.GREATER_THAN: OperatorRule(greater_than, JS_GREATER_THAN),
    VisibilityOperator.LESS_THAN: OperatorRule(less_than, JS_LESS_THAN),
    VisibilityOperator.IS_EMPTY: OperatorRule(is_empty, JS_IS_EMPTY),
}

NEGATED_OPERATORS: dict[VisibilityOperator, VisibilityOperator] = {
    VisibilityOperator.NOT_EQUALS: VisibilityOperator.EQUALS,
    VisibilityOperator.NOT_CONTAINS: VisibilityOperator.CONTAINS,
    VisibilityOperator.IS_NOT_EMPTY: VisibilityOperator.IS_EMPTY,
}


def split_operator(operator: VisibilityOperator) -> tuple[VisibilityOperator, bool]:
    """Return the base operator and whether its result is negated."""
    if operator in NEGATED_OPERATORS:
        return NEGATED_OPERATORS[operator], True
    return operator, False


def evaluate_operator(operator: VisibilityOperator, field_value: Any, expected: Any = None) -> bool:
    """Evaluate any operator, negated ones included, against a field value."""
    base, negated = split_operator(operator)
    result = OPERATOR_RULES[base].predicate(field_value, expected)
    return not result if negated else result
