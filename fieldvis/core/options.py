"""
Bidirectional index over a choice field's option catalog.

Stored and live values of choice fields hold option ids while authored
condition values hold option names. The server maps ids to names before
evaluating; the compiler maps names to ids before generating code. Both
directions go through this index so they match options the same way.
"""

from typing import Any, Callable, Iterable

from fieldvis.core.operators import is_numeric, to_text
from fieldvis.core.schema import FieldOption


def _name_key(name: Any) -> str:
    return to_text(name).strip().casefold()


class OptionIndex:
    """Option lookups by id and by case-folded name.

    Ids are compared as text, so ``3`` and ``"3"`` address the same
    option. Only numeric ids are mapped: a non-numeric raw value is
    never treated as an option id.
    """

    def __init__(self, options: Iterable[FieldOption]):
        self.options = list(options)
        self._by_id: dict[str, FieldOption] = {}
        self._by_name: dict[str, FieldOption] = {}

        for option in self.options:
            if is_numeric(option.id):
                self._by_id.setdefault(to_text(option.id), option)
            self._by_name.setdefault(_name_key(option.name), option)

    @property
    def id_keys(self) -> list[str]:
        """Text form of every mappable option id, in catalog order."""
        return list(self._by_id)

    def name_for(self, raw_id: Any) -> str | None:
        """Return the option name for a stored id, or None if it is not an option id."""
        if not is_numeric(raw_id):
            return None
        option = self._by_id.get(to_text(raw_id))
        return option.name if option is not None else None

    def id_for(self, name: Any) -> int | str | None:
        """Return the id of the option whose name matches (case-insensitive, trimmed)."""
        if name is None:
            return None
        option = self._by_name.get(_name_key(name))
        return option.id if option is not None else None

    def ids_matching(self, predicate: Callable[[str], bool]) -> list[str]:
        """Return the text ids of all mappable options whose name satisfies ``predicate``."""
        return [key for key, option in self._by_id.items() if predicate(option.name)]
