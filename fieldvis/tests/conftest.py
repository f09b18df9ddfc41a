"""
Shared fixtures for the fieldvis test suite.

Provides a small form used across modules:
- status: single-choice field (Active / Pending / Disabled)
- tags: multi-choice field (Red / Green / Blue)
- amount: numeric field
- details: shown when status equals "active"
- advanced: shown when status is "active" or "pending"
- notes: shown when details is visible and amount > 100
"""

import pytest

from fieldvis.core.schema import FormField


def make_field(
    code: str,
    data_type: str = "string",
    mode: str | None = None,
    logic: str = "all",
    conditions: list[dict] | None = None,
    options: list[dict] | None = None,
    always_save: bool = False,
) -> FormField:
    """Build a FormField; a visibility rule is attached when ``mode`` is given."""
    visibility = None
    if mode is not None:
        visibility = {
            "mode": mode,
            "logic": logic,
            "conditions": conditions or [],
            "always_save": always_save,
        }
    return FormField(
        code=code,
        name=code.replace("_", " ").title(),
        data_type=data_type,
        options=options or [],
        visibility=visibility,
    )


STATUS_OPTIONS = [
    {"id": 1, "name": "Active"},
    {"id": 2, "name": "Pending"},
    {"id": 3, "name": "Disabled"},
]

TAG_OPTIONS = [
    {"id": 10, "name": "Red"},
    {"id": 11, "name": "Green"},
    {"id": 12, "name": "Blue"},
]


@pytest.fixture
def status_field() -> FormField:
    return make_field("status", "single_choice", options=STATUS_OPTIONS)


@pytest.fixture
def tags_field() -> FormField:
    return make_field("tags", "multi_choice", options=TAG_OPTIONS)


@pytest.fixture
def details_field() -> FormField:
    return make_field(
        "details",
        mode="show_when",
        conditions=[{"field_code": "status", "operator": "equals", "value": "active"}],
    )


@pytest.fixture
def advanced_field() -> FormField:
    return make_field(
        "advanced",
        mode="show_when",
        logic="any",
        conditions=[
            {"field_code": "status", "operator": "equals", "value": "active"},
            {"field_code": "status", "operator": "equals", "value": "pending"},
        ],
    )


@pytest.fixture
def notes_field() -> FormField:
    return make_field(
        "notes",
        "text",
        mode="show_when",
        conditions=[
            {"field_code": "details", "operator": "is_not_empty"},
            {"field_code": "amount", "operator": "greater_than", "value": 100},
        ],
    )


@pytest.fixture
def form_fields(status_field, tags_field, details_field, advanced_field, notes_field) -> list[FormField]:
    return [
        status_field,
        tags_field,
        make_field("amount", "numeric"),
        details_field,
        advanced_field,
        notes_field,
    ]
