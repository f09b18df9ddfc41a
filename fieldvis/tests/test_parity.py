"""
Parity tests between server evaluation and compiled client expressions.

Each case evaluates a field on the server (raw record -> normalized values
-> cascading interpreter) and runs the compiled expression in V8 against
the same raw record as live state. Both must agree.

Requires the ``mini-racer`` package; skipped when it is not installed.
"""

import json

import pytest

from fieldvis.core.compiler import ExpressionCompiler
from fieldvis.core.registry import InMemoryFieldRegistry
from fieldvis.core.service import VisibilityService
from fieldvis.tests.conftest import STATUS_OPTIONS, TAG_OPTIONS, make_field

py_mini_racer = pytest.importorskip("py_mini_racer")


def run_expression(ctx, expression: str, state: dict) -> bool:
    """Evaluate a compiled expression with ``$get`` reading from ``state``."""
    script = (
        "(() => {"
        f" const state = {{custom_fields: {json.dumps(state)}}};"
        " const $get = path => path.split('.').reduce("
        "(o, k) => (o === null || o === undefined) ? undefined : o[k], state);"
        f" return Boolean({expression});"
        " })()"
    )
    return ctx.eval(script)


def cond(field_code: str, operator: str, value=None) -> dict:
    return {"field_code": field_code, "operator": operator, "value": value}


FIELDS = [
    make_field("status", "single_choice", options=STATUS_OPTIONS),
    make_field("tags", "multi_choice", options=TAG_OPTIONS),
    make_field("amount", "float"),
    make_field("title", "string"),
    make_field("flag", "boolean"),
    make_field("due", "date"),
    make_field("starts", "date_time"),
    make_field("is_active", mode="show_when", conditions=[cond("status", "equals", "active")]),
    make_field("not_pending", mode="show_when", conditions=[cond("status", "not_equals", "Pending")]),
    make_field("status_set", mode="show_when", conditions=[cond("status", "is_not_empty")]),
    make_field("hide_any", mode="hide_when", logic="any", conditions=[
        cond("status", "equals", "active"),
        cond("amount", "greater_than", 100),
    ]),
    make_field("hide_all", mode="hide_when", conditions=[
        cond("status", "equals", "active"),
        cond("amount", "less_than", "10.5"),
    ]),
    make_field("red_tag", mode="show_when", conditions=[cond("tags", "contains", "red")]),
    make_field("no_blue", mode="show_when", conditions=[cond("tags", "not_contains", ["BLUE"])]),
    make_field("no_tags", mode="show_when", conditions=[cond("tags", "is_empty")]),
    make_field("title_match", mode="show_when", logic="any", conditions=[
        cond("title", "contains", "urgent"),
        cond("title", "equals", "HELLO"),
    ]),
    make_field("amount_five", mode="show_when", conditions=[cond("amount", "equals", "5")]),
    make_field("flagged", mode="show_when", conditions=[cond("flag", "equals", True)]),
    make_field("due_set", mode="show_when", conditions=[cond("due", "equals", "2024-05-01")]),
    make_field("starts_at", mode="show_when", conditions=[cond("starts", "equals", "2024-05-01T10:00:00")]),
    make_field("title_blank", mode="show_when", conditions=[cond("title", "is_empty")]),
    make_field("cascade", mode="show_when", conditions=[
        cond("is_active", "is_empty"),
        cond("red_tag", "is_empty"),
    ]),
    make_field("empty_show", mode="show_when", conditions=[cond("ghost", "equals", "x")]),
    make_field("empty_hide", mode="hide_when", conditions=[cond("ghost", "equals", "x")]),
]

RECORDS = [
    {},
    {"status": 1, "tags": [10, 12], "amount": 150, "title": "Urgent fix", "flag": True, "due": "2024-05-01"},
    {"status": "2", "tags": [], "amount": "5", "title": "hello", "flag": False},
    {"status": 3, "tags": ["11"], "amount": 5.0, "title": None, "flag": None},
    {"status": "Active", "tags": [99, "Red"], "amount": 9, "title": "  ", "flag": 1},
    {"status": 42, "tags": None, "amount": "abc", "title": "x", "due": "2024-05-02"},
    {"status": None, "tags": [11], "amount": -1, "title": "HELLO"},
    {"starts": "2024-05-01T10:00:00", "title": "\ufeff"},
    {"starts": "2024-05-01 10:00:00", "title": "\x1c"},
    {"starts": "2024-05-01t10:00:00", "title": " \t\n\r\f\v"},
]


@pytest.fixture(scope="module")
def ctx():
    return py_mini_racer.MiniRacer()


@pytest.fixture(scope="module")
def expressions() -> dict[str, str]:
    return ExpressionCompiler().build_visibility_expressions(FIELDS)


@pytest.fixture(scope="module")
def service() -> VisibilityService:
    return VisibilityService(InMemoryFieldRegistry())


class TestParity:

    @pytest.mark.parametrize("record", RECORDS)
    @pytest.mark.parametrize("code", [f.code for f in FIELDS if f.visibility is not None])
    def test_server_and_client_agree(self, ctx, expressions, service, record, code):
        field = next(f for f in FIELDS if f.code == code)
        server = service.is_field_visible(record, field, FIELDS)
        client = run_expression(ctx, expressions[code], record)
        assert client is server, expressions[code]

    def test_hide_when_any_pinned(self, ctx, expressions, service):
        field = next(f for f in FIELDS if f.code == "hide_any")
        for record, expected in [
            ({"status": 1, "amount": 0}, False),
            ({"status": 2, "amount": 500}, False),
            ({"status": 2, "amount": 0}, True),
        ]:
            assert service.is_field_visible(record, field, FIELDS) is expected
            assert run_expression(ctx, expressions["hide_any"], record) is expected

    def test_timestamp_compared_as_entered(self, ctx, expressions, service):
        field = next(f for f in FIELDS if f.code == "starts_at")
        record = {"starts": "2024-05-01T10:00:00"}
        assert service.is_field_visible(record, field, FIELDS) is True
        assert run_expression(ctx, expressions["starts_at"], record) is True
