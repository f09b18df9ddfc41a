"""
Interfaces to the collaborators the engine reads from.

The field registry owns field definitions and option catalogs; records are
plain mappings of field code to stored value. ``InMemoryFieldRegistry`` is
the reference implementation used by the HTTP layer and the tests.
"""

from typing import Any, Iterable, Mapping, Protocol

from fieldvis.core.schema import FormField

# A record as seen by the engine: field code -> raw stored value
Record = Mapping[str, Any]


class FieldRegistry(Protocol):
    """Read-only access to field definitions and lookup options."""

    def get_field(self, field_code: str, entity_type: str) -> FormField | None:
        ...

    def get_lookup_options(self, lookup_type: str, limit: int) -> list[str]:
        ...


class InMemoryFieldRegistry:
    """Field registry backed by dictionaries.

    Args:
        fields: Field definitions keyed by entity type.
        lookups: Lookup option names keyed by lookup (entity) type.
    """

    def __init__(
        self,
        fields: Mapping[str, Iterable[FormField]] | None = None,
        lookups: Mapping[str, Iterable[str]] | None = None,
    ):
        self._fields: dict[str, dict[str, FormField]] = {}
        self._lookups: dict[str, list[str]] = {
            lookup_type: list(names) for lookup_type, names in (lookups or {}).items()
        }
        for entity_type, entity_fields in (fields or {}).items():
            self.register(entity_type, entity_fields)

    def register(self, entity_type: str, fields: Iterable[FormField]) -> None:
        entity_fields = self._fields.setdefault(entity_type, {})
        for field in fields:
            entity_fields[field.code] = field

    def get_field(self, field_code: str, entity_type: str) -> FormField | None:
        return self._fields.get(entity_type, {}).get(field_code)

    def get_fields(self, entity_type: str) -> list[FormField]:
        return list(self._fields.get(entity_type, {}).values())

    def get_lookup_options(self, lookup_type: str, limit: int) -> list[str]:
        if lookup_type not in self._lookups:
            raise KeyError(f"Unknown lookup type: '{lookup_type}'")
        return self._lookups[lookup_type][:limit]
