"""
Server-side visibility evaluation for stored records.

Adapts the visibility evaluator to real records:
- Extracts raw values and normalizes them (option ids -> option names)
- Evaluates cascading visibility per field
- Filters fields and values down to what should be shown or persisted
- Serves option lists and metadata for condition editors, failing open
  when the field registry cannot answer
"""

import logging
from typing import Any, Iterable

from fieldvis.core.config import EngineConfig
from fieldvis.core.dependencies import calculate_dependencies, index_fields
from fieldvis.core.options import OptionIndex
from fieldvis.core.registry import FieldRegistry, Record
from fieldvis.core.schema import FormField
from fieldvis.core.visibility import (
    evaluate_visibility_with_cascading,
    get_field_metadata,
    should_always_save,
)

logger = logging.getLogger(__name__)

# Maximum number of options offered for lookup-backed choice fields
LOOKUP_OPTIONS_LIMIT = 50


class VisibilityService:
    """Evaluates field visibility for stored records.

    Args:
        registry: Field registry used for option and metadata lookups.
        config: Engine configuration; when ``enabled`` is False every field
            is visible.
    """

    def __init__(self, registry: FieldRegistry, config: EngineConfig | None = None):
        self.registry = registry
        self.config = config or EngineConfig()

    # -----------------------------------------------------------------
    # Value extraction
    # -----------------------------------------------------------------

    def extract_field_values(self, record: Record, fields: Iterable[FormField]) -> dict[str, Any]:
        """Read and normalize the stored value of every field from a record.

        Args:
            record: Raw stored values keyed by field code.
            fields: The fields to extract.

        Returns:
            Normalized values keyed by field code (None for missing values).
        """
        return {
            field.code: self.normalize_value(record.get(field.code), field)
            for field in fields
        }

    def normalize_value(self, value: Any, field: FormField) -> Any:
        """Normalize a single stored value for evaluation.

        Choice values that are numeric are treated as option ids and
        replaced by the option's name (each element independently for
        multi-choice lists). Non-numeric values and unknown ids pass
        through unchanged.
        """
        if value is None or value == "":
            return value

        if not field.is_choice_field():
            return value

        index = OptionIndex(field.options)

        if not field.is_multi_choice_field():
            name = index.name_for(value)
            return name if name is not None else value

        if isinstance(value, list):
            return [_name_or_raw(index, item) for item in value]

        return value

    # -----------------------------------------------------------------
    # Visibility
    # -----------------------------------------------------------------

    def is_field_visible(
        self,
        record: Record,
        field: FormField,
        all_fields: Iterable[FormField],
    ) -> bool:
        """Check if a field should be visible for the given record.

        Raises:
            VisibilityCycleError: If the field's dependencies are cyclic.
        """
        if not self.config.enabled:
            return True

        all_fields = list(all_fields)
        values = self.extract_field_values(record, all_fields)
        return evaluate_visibility_with_cascading(field, values, index_fields(all_fields))

    def get_visibility_map(self, record: Record, fields: Iterable[FormField]) -> dict[str, bool]:
        """Map each field code to whether the field is visible for the given record.

        Values are extracted once and shared by every field's evaluation.
        """
        fields = list(fields)
        if not self.config.enabled:
            return {field.code: True for field in fields}

        values = self.extract_field_values(record, fields)
        fields_by_code = index_fields(fields)
        return {
            field.code: evaluate_visibility_with_cascading(field, values, fields_by_code)
            for field in fields
        }

    def get_visible_fields(self, record: Record, fields: Iterable[FormField]) -> list[FormField]:
        """Filter fields to those that should be visible for the given record."""
        fields = list(fields)
        visibility = self.get_visibility_map(record, fields)
        return [field for field in fields if visibility[field.code]]

    def get_visible_values(
        self,
        record: Record,
        fields: Iterable[FormField],
        visibility: dict[str, bool] | None = None,
    ) -> dict[str, Any]:
        """Return stored values for visible fields only (hidden fields are omitted).

        ``visibility`` is a map from ``get_visibility_map``; it is computed
        when not given.
        """
        fields = list(fields)
        if visibility is None:
            visibility = self.get_visibility_map(record, fields)
        return {
            field.code: record.get(field.code)
            for field in fields
            if visibility[field.code]
        }

    def get_persistable_values(
        self,
        record: Record,
        fields: Iterable[FormField],
        visibility: dict[str, bool] | None = None,
    ) -> dict[str, Any]:
        """Return the stored values that should be saved.

        Values of visible fields are kept. Values of hidden fields are
        dropped unless the field is configured with ``always_save``.
        ``visibility`` is reused the same way as in ``get_visible_values``.
        """
        fields = list(fields)
        if visibility is None:
            visibility = self.get_visibility_map(record, fields)

        persisted: dict[str, Any] = {}
        for field in fields:
            if field.code not in record:
                continue
            if visibility[field.code] or should_always_save(field):
                persisted[field.code] = record[field.code]
            else:
                logger.debug("Dropping value of hidden field '%s'", field.code)
        return persisted

    def calculate_dependencies(self, fields: Iterable[FormField]) -> dict[str, list[str]]:
        return calculate_dependencies(fields)

    # -----------------------------------------------------------------
    # Condition editor support
    # -----------------------------------------------------------------

    def get_field_options(self, field_code: str, entity_type: str) -> dict[str, str]:
        """Get the values a condition on a choice field can be compared against.

        Lookup-backed fields take their options from the lookup entity;
        other choice fields use their option catalog. Registry failures are
        logged and yield an empty dict.

        Returns:
            Option names mapped to themselves (condition values are
            authored as option names).
        """
        try:
            field = self.registry.get_field(field_code, entity_type)
        except Exception:
            logger.exception(
                "Failed to load field '%s' for entity '%s'", field_code, entity_type,
            )
            return {}

        if field is None or not field.is_choice_field():
            return {}

        if field.lookup_type:
            return self._get_lookup_options(field.lookup_type)

        return {option.name: option.name for option in field.options}

    def get_field_metadata(self, field: FormField) -> dict[str, Any] | None:
        """Describe a field's visibility configuration, or None if it cannot be built."""
        try:
            return get_field_metadata(field)
        except Exception:
            logger.exception("Failed to build visibility metadata for field '%s'", field.code)
            return None

    def get_field_metadata_by_code(self, field_code: str, entity_type: str) -> dict[str, Any] | None:
        """Look a field up in the registry and describe it; None if unavailable."""
        try:
            field = self.registry.get_field(field_code, entity_type)
        except Exception:
            logger.exception(
                "Failed to load field '%s' for entity '%s'", field_code, entity_type,
            )
            return None

        if field is None:
            logger.warning("Unknown field '%s' for entity '%s'", field_code, entity_type)
            return None

        return self.get_field_metadata(field)

    def _get_lookup_options(self, lookup_type: str) -> dict[str, str]:
        try:
            names = self.registry.get_lookup_options(lookup_type, LOOKUP_OPTIONS_LIMIT)
        except Exception:
            logger.exception("Failed to load lookup options for '%s'", lookup_type)
            return {}

        return {str(name): str(name) for name in names}


def _name_or_raw(index: OptionIndex, value: Any) -> Any:
    name = index.name_for(value)
    return name if name is not None else value
