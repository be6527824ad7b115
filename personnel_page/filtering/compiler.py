import logging
import re
from dataclasses import dataclass
from logging import Logger
from typing import Any

from .fields import CUSTOM_FIELDS_DOCUMENT_FIELD, CustomFieldDefinition, FieldRegistry, StandardField
from .model import Condition, FilterTree, Group, Node
from .types import Comparator, GroupOperator, StorageKind
from .values import as_int, as_number, as_text

logger: Logger = logging.getLogger(__name__)

_ORDERING_OPERATORS = {
    Comparator.GT: "$gt",
    Comparator.LT: "$lt",
    Comparator.GTE: "$gte",
    Comparator.LTE: "$lte",
}


@dataclass(frozen=True)
class CompileSkipWarning:
    """A subtree the compiler dropped instead of failing the whole filter."""

    path: str
    message: str

    def to_json(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message}

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


def like_to_regex(pattern: str) -> str:
    """Translate a SQL ``LIKE`` pattern into an anchored regular expression.

    ``%`` matches any run of characters, ``_`` exactly one, a backslash makes
    the next character literal. Everything else is escaped, so user input can
    never inject regex syntax.
    """
    parts = ["^"]
    escaped = False
    for ch in pattern:
        if escaped:
            parts.append(re.escape(ch))
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    if escaped:
        parts.append(re.escape("\\"))
    parts.append("$")
    return "".join(parts)


class PredicateCompiler:
    """Lowers a filter tree into a MongoDB query document.

    Compilation is lenient: a condition that cannot be compiled (unknown
    field, bad comparator or value) is dropped with a warning and the rest of
    the tree still filters. Callers that need strict behaviour validate first.

    ``compile`` returns None when the tree places no constraint at all.
    """

    def __init__(self, registry: FieldRegistry):
        self.registry = registry
        self._warnings: list[CompileSkipWarning] = []

    def compile(self, tree: FilterTree) -> dict[str, Any] | None:
        self._warnings = []
        return self._compile_node(tree, "$")

    def get_warnings(self) -> list[CompileSkipWarning]:
        return self._warnings.copy()

    def _skip(self, path: str, message: str) -> None:
        warning = CompileSkipWarning(path, message)
        logger.warning("Skipping filter subtree %s", warning)
        self._warnings.append(warning)

    def _compile_node(self, node: Node, path: str) -> dict[str, Any] | None:
        if isinstance(node, Group):
            return self._compile_group(node, path)
        return self._compile_condition(node, path)

    def _compile_group(self, group: Group, path: str) -> dict[str, Any] | None:
        if group.operator == GroupOperator.AND.value:
            mongo_operator = "$and"
        elif group.operator == GroupOperator.OR.value:
            mongo_operator = "$or"
        else:
            self._skip(path, f"unknown group operator {group.operator!r}")
            return None

        predicates = []
        for i, child in enumerate(group.children):
            predicate = self._compile_node(child, f"{path}.children[{i}]")
            if predicate is not None:
                predicates.append(predicate)

        if not predicates:
            return None
        if len(predicates) == 1:
            return predicates[0]
        return {mongo_operator: predicates}

    def _compile_condition(self, condition: Condition, path: str) -> dict[str, Any] | None:
        resolved = self.registry.resolve(condition.field)
        if resolved is None:
            self._skip(path, f"unknown field {condition.field!r}")
            return None

        comparator = Comparator.parse(condition.comparator)
        if comparator is None:
            self._skip(path, f"unknown comparator {condition.comparator!r}")
            return None
        if comparator.is_list != isinstance(condition.value, list):
            self._skip(path, f"value arity does not match comparator {comparator.value}")
            return None
        if comparator not in resolved.allowed_comparators:
            self._skip(path, f"comparator {comparator.value} not allowed for {condition.field!r}")
            return None

        if isinstance(resolved, StandardField):
            return self._standard_predicate(resolved, comparator, condition.value, path)
        return self._custom_predicate(resolved, comparator, condition.value, path)

    @staticmethod
    def _membership(field: str, comparator: Comparator, values: list[Any]) -> dict[str, Any] | None:
        if not values:
            return None
        if comparator == Comparator.IN:
            return {field: {"$in": values}}
        # Records without a value never match a negative test.
        return {field: {"$nin": values + [None]}}

    @staticmethod
    def _pattern(field: str, comparator: Comparator, value: Any) -> dict[str, Any]:
        options = "si" if comparator == Comparator.ILIKE else "s"
        return {field: {"$regex": like_to_regex(as_text(value)), "$options": options}}

    def _standard_predicate(
        self, standard: StandardField, comparator: Comparator, value: Any, path: str
    ) -> dict[str, Any] | None:
        field = standard.database_field

        if comparator.is_pattern:
            return self._pattern(field, comparator, value)

        values = value if isinstance(value, list) else [value]
        if standard.kind == StorageKind.INTEGER:
            coerced = [as_int(v) for v in values]
            if any(v is None for v in coerced):
                self._skip(path, f"field {standard.token!r} expects integers")
                return None
        else:
            coerced = [as_text(v) for v in values]

        if comparator.is_list:
            return self._membership(field, comparator, coerced)
        if comparator == Comparator.EQ:
            return {field: coerced[0]}
        if comparator == Comparator.NE:
            return {field: {"$nin": [coerced[0], None]}}
        return {field: {_ORDERING_OPERATORS[comparator]: coerced[0]}}

    def _custom_predicate(
        self, definition: CustomFieldDefinition, comparator: Comparator, value: Any, path: str
    ) -> dict[str, Any] | None:
        field = definition.database_field

        if comparator.is_pattern:
            return self._pattern(field, comparator, value)
        if comparator.is_ordering:
            number = as_number(value)
            if number is None:
                self._skip(path, f"{comparator.value} on {definition.token!r} needs a numeric value")
                return None
            return self._numeric_expression(definition.name, comparator, number)
        if comparator.is_list:
            return self._membership(field, comparator, [as_text(v) for v in value])
        if comparator == Comparator.EQ:
            return {field: as_text(value)}
        return {field: {"$nin": [as_text(value), None]}}

    @staticmethod
    def _numeric_expression(name: str, comparator: Comparator, number: int | float) -> dict[str, Any]:
        """Cast the stored text to a number and compare.

        A value that does not convert becomes null and the record simply does
        not match; the query itself never fails.
        """
        stored = {"$getField": {"field": {"$literal": name}, "input": f"${CUSTOM_FIELDS_DOCUMENT_FIELD}"}}
        converted = {"$convert": {"input": stored, "to": "double", "onError": None, "onNull": None}}
        return {
            "$expr": {
                "$let": {
                    "vars": {"value": converted},
                    "in": {
                        "$and": [
                            {"$ne": ["$$value", None]},
                            {_ORDERING_OPERATORS[comparator]: ["$$value", number]},
                        ]
                    },
                }
            }
        }


def compile_filter(tree: FilterTree, registry: FieldRegistry) -> dict[str, Any] | None:
    """Compile ``tree`` into a MongoDB query, or None when nothing is constrained."""
    return PredicateCompiler(registry).compile(tree)


def to_query(predicate: dict[str, Any] | None) -> dict[str, Any]:
    """Turn a compiled predicate into an executable query; no constraint means all records."""
    return predicate if predicate is not None else {}
