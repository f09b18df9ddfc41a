"""
Unit tests for field and visibility configuration models.

Tests cover:
- Valid field and rule definitions
- Defaults of the persisted visibility shape
- Value requirements per operator
- Options only on choice fields
- Immutability
- Enum helpers (modes, logic, data types)
"""

import pytest
from pydantic import ValidationError

from fieldvis.core.schema import (
    DataType,
    FormField,
    VisibilityCondition,
    VisibilityLogic,
    VisibilityMode,
    VisibilityRule,
)


# =============================================================
# Test: Valid definitions
# =============================================================


class TestValidDefinitions:

    def test_minimal_field(self):
        field = FormField(code="name", data_type="string")
        assert field.code == "name"
        assert field.data_type == DataType.STRING
        assert field.options == []
        assert field.visibility is None

    def test_choice_field_with_options(self):
        field = FormField(
            code="status",
            data_type="single_choice",
            options=[{"id": 1, "name": "Active"}, {"id": "2", "name": "Pending"}],
        )
        assert field.options[0].id == 1
        assert field.options[1].id == "2"
        assert field.is_choice_field() is True
        assert field.is_multi_choice_field() is False

    def test_persisted_visibility_shape(self):
        field = FormField(
            code="details",
            data_type="text",
            visibility={
                "mode": "hide_when",
                "logic": "any",
                "conditions": [{"field_code": "status", "operator": "equals", "value": "active"}],
                "always_save": True,
            },
        )
        rule = field.visibility
        assert rule.mode is VisibilityMode.HIDE_WHEN
        assert rule.logic is VisibilityLogic.ANY
        assert rule.conditions[0].value == "active"
        assert rule.always_save is True

    def test_rule_defaults(self):
        rule = VisibilityRule()
        assert rule.mode is VisibilityMode.ALWAYS_VISIBLE
        assert rule.logic is VisibilityLogic.ALL
        assert rule.conditions == []
        assert rule.always_save is False

    def test_list_value(self):
        condition = VisibilityCondition(field_code="tags", operator="contains", value=["a", "b"])
        assert condition.value == ["a", "b"]


# =============================================================
# Test: Invalid definitions
# =============================================================


class TestInvalidDefinitions:

    def test_unknown_data_type(self):
        with pytest.raises(ValidationError):
            FormField(code="f", data_type="color")

    def test_unknown_operator(self):
        with pytest.raises(ValidationError):
            VisibilityCondition(field_code="f", operator="starts_with", value="a")

    def test_empty_code(self):
        with pytest.raises(ValidationError):
            FormField(code="", data_type="string")

    def test_options_on_non_choice_field(self):
        with pytest.raises(ValidationError, match="should not have 'options'"):
            FormField(code="f", data_type="string", options=[{"id": 1, "name": "A"}])

    @pytest.mark.parametrize("operator", [
        "equals", "not_equals", "contains", "not_contains", "greater_than", "less_than",
    ])
    def test_value_required(self, operator):
        with pytest.raises(ValidationError, match="requires a value"):
            VisibilityCondition(field_code="f", operator=operator)

    @pytest.mark.parametrize("operator", ["is_empty", "is_not_empty"])
    def test_value_optional_for_emptiness(self, operator):
        assert VisibilityCondition(field_code="f", operator=operator).value is None

    def test_models_are_frozen(self):
        rule = VisibilityRule(mode="show_when")
        with pytest.raises(ValidationError):
            rule.mode = VisibilityMode.HIDE_WHEN


# =============================================================
# Test: Enum helpers
# =============================================================


class TestEnumHelpers:

    def test_mode_should_show(self):
        assert VisibilityMode.ALWAYS_VISIBLE.should_show(False) is True
        assert VisibilityMode.SHOW_WHEN.should_show(True) is True
        assert VisibilityMode.HIDE_WHEN.should_show(True) is False

    def test_mode_requires_conditions(self):
        assert VisibilityMode.ALWAYS_VISIBLE.requires_conditions() is False
        assert VisibilityMode.SHOW_WHEN.requires_conditions() is True

    def test_logic_evaluate(self):
        assert VisibilityLogic.ALL.evaluate([True, True]) is True
        assert VisibilityLogic.ALL.evaluate([True, False]) is False
        assert VisibilityLogic.ANY.evaluate([False, True]) is True
        assert VisibilityLogic.ANY.evaluate([False]) is False

    def test_logic_evaluate_empty_is_false(self):
        assert VisibilityLogic.ALL.evaluate([]) is False
        assert VisibilityLogic.ANY.evaluate([]) is False

    def test_data_type_classification(self):
        assert DataType.MULTI_CHOICE.is_choice_field() is True
        assert DataType.MULTI_CHOICE.is_multi_choice_field() is True
        assert DataType.SINGLE_CHOICE.is_multi_choice_field() is False
        assert DataType.DATE.is_choice_field() is False
