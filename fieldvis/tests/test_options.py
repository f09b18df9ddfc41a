"""
Unit tests for the option catalog index.
"""

from fieldvis.core.options import OptionIndex
from fieldvis.core.schema import FieldOption


def build_index() -> OptionIndex:
    return OptionIndex([
        FieldOption(id=1, name="Active"),
        FieldOption(id="2", name=" Pending "),
        FieldOption(id="legacy", name="Legacy"),
        FieldOption(id=4, name="active"),
    ])


class TestNameFor:
    """Server direction: stored id -> option name."""

    def test_int_and_string_ids_match(self):
        index = build_index()
        assert index.name_for(1) == "Active"
        assert index.name_for("1") == "Active"
        assert index.name_for(2) == " Pending "
        assert index.name_for(1.0) == "Active"

    def test_unknown_id(self):
        assert build_index().name_for(99) is None

    def test_non_numeric_values_are_not_ids(self):
        index = build_index()
        assert index.name_for("legacy") is None
        assert index.name_for("Active") is None
        assert index.name_for(None) is None
        assert index.name_for(True) is None


class TestIdFor:
    """Compiler direction: authored option name -> id."""

    def test_case_insensitive_trimmed(self):
        index = build_index()
        assert index.id_for("pending") == "2"
        assert index.id_for("  LEGACY") == "legacy"

    def test_first_duplicate_name_wins(self):
        assert build_index().id_for("ACTIVE") == 1

    def test_unknown_name(self):
        index = build_index()
        assert index.id_for("Closed") is None
        assert index.id_for(None) is None


class TestIdsMatching:

    def test_only_numeric_ids_are_listed(self):
        assert build_index().id_keys == ["1", "2", "4"]

    def test_predicate_over_names(self):
        index = build_index()
        assert index.ids_matching(lambda name: name.lower() == "active") == ["1", "4"]
        assert index.ids_matching(lambda name: False) == []
