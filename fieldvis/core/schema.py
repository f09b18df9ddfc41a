"""
Field and visibility configuration models.

These Pydantic models describe the configuration the engine reads: the
field definitions supplied by the field registry and the visibility rule
attached to each field. Configuration is immutable; evaluation and
compilation never mutate it.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --- Enums ---


class VisibilityOperator(str, Enum):
    """Closed set of comparison operators a condition may use."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"

    @property
    def label(self) -> str:
        return _OPERATOR_LABELS[self]

    def requires_value(self) -> bool:
        """Every operator except the emptiness checks compares against a value."""
        return self not in {VisibilityOperator.IS_EMPTY, VisibilityOperator.IS_NOT_EMPTY}

    def evaluate(self, field_value: Any, expected_value: Any = None) -> bool:
        """Apply this operator to a field value and a configured comparison value."""
        from fieldvis.core.operators import evaluate_operator

        return evaluate_operator(self, field_value, expected_value)

    @classmethod
    def options(cls) -> dict[str, str]:
        """Operator values mapped to their human-readable labels."""
        return {operator.value: operator.label for operator in cls}


_OPERATOR_LABELS = {
    VisibilityOperator.EQUALS: "Equals",
    VisibilityOperator.NOT_EQUALS: "Does not equal",
    VisibilityOperator.CONTAINS: "Contains",
    VisibilityOperator.NOT_CONTAINS: "Does not contain",
    VisibilityOperator.GREATER_THAN: "Greater than",
    VisibilityOperator.LESS_THAN: "Less than",
    VisibilityOperator.IS_EMPTY: "Is empty",
    VisibilityOperator.IS_NOT_EMPTY: "Is not empty",
}


class DataType(str, Enum):
    """Data type classification of a field, as reported by the field registry."""

    STRING = "string"
    TEXT = "text"
    NUMERIC = "numeric"
    FLOAT = "float"
    DATE = "date"
    DATE_TIME = "date_time"
    BOOLEAN = "boolean"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"

    def is_choice_field(self) -> bool:
        return self in {DataType.SINGLE_CHOICE, DataType.MULTI_CHOICE}

    def is_multi_choice_field(self) -> bool:
        return self is DataType.MULTI_CHOICE

    def compatible_operators(self) -> list[VisibilityOperator]:
        """Operators allowed for conditions that target a field of this type."""
        return list(COMPATIBLE_OPERATORS[self])

    def compatible_operator_options(self) -> dict[str, str]:
        return {operator.value: operator.label for operator in COMPATIBLE_OPERATORS[self]}


_EMPTINESS = (VisibilityOperator.IS_EMPTY, VisibilityOperator.IS_NOT_EMPTY)
_SCALAR_COMPARISON = (
    VisibilityOperator.EQUALS,
    VisibilityOperator.NOT_EQUALS,
    VisibilityOperator.GREATER_THAN,
    VisibilityOperator.LESS_THAN,
    *_EMPTINESS,
)

COMPATIBLE_OPERATORS: dict[DataType, tuple[VisibilityOperator, ...]] = {
    DataType.STRING: (
        VisibilityOperator.EQUALS,
        VisibilityOperator.NOT_EQUALS,
        VisibilityOperator.CONTAINS,
        VisibilityOperator.NOT_CONTAINS,
        *_EMPTINESS,
    ),
    DataType.NUMERIC: _SCALAR_COMPARISON,
    DataType.FLOAT: _SCALAR_COMPARISON,
    DataType.DATE: _SCALAR_COMPARISON,
    DataType.DATE_TIME: _SCALAR_COMPARISON,
    DataType.BOOLEAN: (VisibilityOperator.EQUALS, *_EMPTINESS),
    DataType.SINGLE_CHOICE: (
        VisibilityOperator.EQUALS,
        VisibilityOperator.NOT_EQUALS,
        *_EMPTINESS,
    ),
    DataType.MULTI_CHOICE: (
        VisibilityOperator.CONTAINS,
        VisibilityOperator.NOT_CONTAINS,
        *_EMPTINESS,
    ),
}
COMPATIBLE_OPERATORS[DataType.TEXT] = COMPATIBLE_OPERATORS[DataType.STRING]


class VisibilityMode(str, Enum):
    """How a field's conditions affect its visibility."""

    ALWAYS_VISIBLE = "always_visible"
    SHOW_WHEN = "show_when"
    HIDE_WHEN = "hide_when"

    def requires_conditions(self) -> bool:
        return self is not VisibilityMode.ALWAYS_VISIBLE

    def should_show(self, conditions_met: bool) -> bool:
        match self:
            case VisibilityMode.SHOW_WHEN:
                return conditions_met
            case VisibilityMode.HIDE_WHEN:
                return not conditions_met
        return True


class VisibilityLogic(str, Enum):
    """How the results of several conditions are combined."""

    ALL = "all"
    ANY = "any"

    def evaluate(self, results: list[bool]) -> bool:
        """Combine condition results.

        An empty result list is False for both logics: a rule whose
        conditions were all dropped never counts as met.
        """
        if not results:
            return False
        if self is VisibilityLogic.ALL:
            return all(results)
        return any(results)


# --- Visibility Rule Models ---


class VisibilityCondition(BaseModel):
    """A single comparison between a target field's value and a configured value."""

    model_config = ConfigDict(frozen=True)

    field_code: str = Field(
        ...,
        min_length=1,
        description="Code of the field whose value is compared",
    )
    operator: VisibilityOperator = Field(
        ...,
        description="The comparison operator to apply",
    )
    value: Any = Field(
        default=None,
        description="Comparison value (scalar or list); unused by is_empty / is_not_empty",
    )

    @model_validator(mode="after")
    def validate_value_for_operator(self) -> "VisibilityCondition":
        """Operators that compare against a value must be given one."""
        if self.operator.requires_value() and self.value is None:
            raise ValueError(
                f"Condition on '{self.field_code}' with operator "
                f"'{self.operator.value}' requires a value"
            )
        return self


class VisibilityRule(BaseModel):
    """Visibility configuration attached to a single field.

    Persisted as ``{mode, logic, conditions: [{field_code, operator, value}],
    always_save}`` in the field's settings.
    """

    model_config = ConfigDict(frozen=True)

    mode: VisibilityMode = Field(
        default=VisibilityMode.ALWAYS_VISIBLE,
        description="Whether conditions show or hide the field",
    )
    logic: VisibilityLogic = Field(
        default=VisibilityLogic.ALL,
        description="How condition results are combined (ignored for always_visible)",
    )
    conditions: list[VisibilityCondition] = Field(
        default_factory=list,
        description="Ordered flat list of conditions",
    )
    always_save: bool = Field(
        default=False,
        description="Persist the field's value even while it is hidden",
    )

    def requires_conditions(self) -> bool:
        return self.mode.requires_conditions()

    def dependent_fields(self) -> list[str]:
        """Distinct target field codes, in first-seen order."""
        if not self.requires_conditions():
            return []
        return list(dict.fromkeys(c.field_code for c in self.conditions))


# --- Field Definition ---


class FieldOption(BaseModel):
    """One entry of a choice field's option catalog."""

    model_config = ConfigDict(frozen=True)

    id: int | str
    name: str


class FormField(BaseModel):
    """A field as supplied by the field registry.

    Choice fields carry their option catalog unless their options come from
    an entity lookup (``lookup_type``).
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(
        ...,
        min_length=1,
        description="Unique field code",
    )
    name: str = Field(
        default="",
        description="Display label",
    )
    data_type: DataType = Field(
        ...,
        description="Data type classification from the field registry",
    )
    options: list[FieldOption] = Field(
        default_factory=list,
        description="Option catalog (choice fields only)",
    )
    lookup_type: str | None = Field(
        default=None,
        description="Entity type providing the options of a lookup-backed choice field",
    )
    visibility: VisibilityRule | None = Field(
        default=None,
        description="Conditional visibility rule (field is always visible if absent)",
    )

    @model_validator(mode="after")
    def validate_options_for_type(self) -> "FormField":
        """Only choice fields may define options."""
        if self.options and not self.data_type.is_choice_field():
            raise ValueError(
                f"Field '{self.code}' of type '{self.data_type.value}' should not have 'options'"
            )
        return self

    def is_choice_field(self) -> bool:
        return self.data_type.is_choice_field()

    def is_multi_choice_field(self) -> bool:
        return self.data_type.is_multi_choice_field()
