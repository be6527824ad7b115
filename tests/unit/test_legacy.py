"""Tests for converting the flat query parameters into filter trees."""

from personnel_page.filtering import Condition, Group, from_simple_filters, has_simple_filters
from personnel_page.filtering.legacy import SEARCH_FIELDS, search_group


class TestFromSimpleFilters:
    def test_nothing_populated(self):
        tree = from_simple_filters({"companhia": "", "posto": None, "search": "  "})
        assert tree == Group("AND", [])

    def test_equality_conditions_in_fixed_order(self):
        tree = from_simple_filters({"situacao": "Pronto", "posto": "Cap", "companhia": "1ª CIA", "missaoOp": "PEF"})
        assert tree == Group(
            "AND",
            [
                Condition("companhia", "=", "1ª CIA"),
                Condition("postoGraduacao", "=", "Cap"),
                Condition("situacao", "=", "Pronto"),
                Condition("missaoOp", "=", "PEF"),
            ],
        )

    def test_search_alone_is_an_or_group(self):
        tree = from_simple_filters({"search": "silva"})
        assert tree.operator == "OR"
        assert [c.field for c in tree.children] == list(SEARCH_FIELDS)
        assert all(c.comparator == "ILIKE" and c.value == "%silva%" for c in tree.children)

    def test_search_combined_with_equality(self):
        tree = from_simple_filters({"companhia": "EM", "search": "silva"})
        assert tree.operator == "AND"
        assert tree.children[0] == Condition("companhia", "=", "EM")
        assert tree.children[1] == search_group("silva")

    def test_unknown_parameters_ignored(self):
        assert from_simple_filters({"page": "2"}) == Group("AND", [])


class TestSearchGroup:
    def test_wildcards_in_term_are_literal(self):
        group = search_group("50%_off")
        assert group.children[0].value == "%50\\%\\_off%"

    def test_term_is_trimmed(self):
        assert search_group("  silva ").children[0].value == "%silva%"


class TestHasSimpleFilters:
    def test_detects_populated_parameter(self):
        assert has_simple_filters({"posto": "Cap"})
        assert has_simple_filters({"search": "x"})

    def test_ignores_empty_and_unknown(self):
        assert not has_simple_filters({})
        assert not has_simple_filters({"companhia": " ", "filter": "x"})
