import logging
from dataclasses import dataclass, field
from enum import Enum
from logging import Logger
from typing import Any

from .errors import FilterValidationError
from .fields import CustomFieldDefinition, FieldRegistry, StandardField
from .model import Condition, FilterTree, Group, iter_nodes
from .types import Comparator, CustomFieldType, GroupOperator, StorageKind
from .values import as_int, as_number

logger: Logger = logging.getLogger(__name__)


class IssueCode(str, Enum):
    UNKNOWN_FIELD = "UnknownField"
    UNKNOWN_COMPARATOR = "UnknownComparator"
    COMPARATOR_NOT_ALLOWED = "ComparatorNotAllowed"
    ARITY_MISMATCH = "ArityMismatch"
    INVALID_VALUE = "InvalidValue"
    UNKNOWN_OPERATOR = "UnknownOperator"
    OPTION_NOT_LISTED = "OptionNotListed"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """A single validation finding, located by its JSON-path-like position in the tree."""

    code: IssueCode
    path: str
    message: str
    severity: Severity = Severity.ERROR

    def to_json(self) -> dict[str, str]:
        return {
            "code": self.code.value,
            "path": self.path,
            "message": self.message,
            "severity": self.severity.value,
        }

    def __str__(self) -> str:
        return f"{self.code.value} at {self.path}: {self.message}"


@dataclass
class ValidationResult:
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """:raises FilterValidationError: If any error was found."""
        if self.errors:
            raise FilterValidationError(self.errors)

    def to_json(self) -> dict[str, Any]:
        return {
            "valid": self.ok,
            "errors": [issue.to_json() for issue in self.errors],
            "warnings": [issue.to_json() for issue in self.warnings],
        }


class _FailFast(Exception):
    pass


class FilterValidator:
    """Checks a filter tree against a :class:`FieldRegistry` snapshot.

    By default every problem is collected. With ``fail_fast`` validation stops
    at the first error (warnings found before it are kept).
    """

    def __init__(self, registry: FieldRegistry, fail_fast: bool = False):
        self.registry = registry
        self.fail_fast = fail_fast
        self._result = ValidationResult()

    def validate(self, tree: FilterTree) -> ValidationResult:
        self._result = ValidationResult()
        try:
            for path, node in iter_nodes(tree):
                if isinstance(node, Group):
                    self._check_group(node, path)
                else:
                    self._check_condition(node, path)
        except _FailFast:
            pass
        if self._result.errors:
            logger.info("Filter rejected with %d error(s): %s", len(self._result.errors), self._result.errors[0])
        return self._result

    def _error(self, code: IssueCode, path: str, message: str) -> None:
        self._result.errors.append(ValidationIssue(code, path, message))
        if self.fail_fast:
            raise _FailFast()

    def _warning(self, code: IssueCode, path: str, message: str) -> None:
        self._result.warnings.append(ValidationIssue(code, path, message, Severity.WARNING))

    def _check_group(self, group: Group, path: str) -> None:
        if group.operator not in (GroupOperator.AND.value, GroupOperator.OR.value):
            self._error(IssueCode.UNKNOWN_OPERATOR, path, f"Unknown group operator {group.operator!r}")

    def _check_condition(self, condition: Condition, path: str) -> None:
        resolved = self.registry.resolve(condition.field)
        if resolved is None:
            self._error(IssueCode.UNKNOWN_FIELD, path, f"Unknown field {condition.field!r}")

        comparator = Comparator.parse(condition.comparator)
        if comparator is None:
            self._error(IssueCode.UNKNOWN_COMPARATOR, path, f"Unknown comparator {condition.comparator!r}")
            return

        if comparator.is_list and not isinstance(condition.value, list):
            self._error(IssueCode.ARITY_MISMATCH, path, f"{comparator.value} expects a list of values")
            return
        if not comparator.is_list and isinstance(condition.value, list):
            self._error(IssueCode.ARITY_MISMATCH, path, f"{comparator.value} expects a single value")
            return

        if resolved is None:
            return
        if comparator not in resolved.allowed_comparators:
            self._error(
                IssueCode.COMPARATOR_NOT_ALLOWED,
                path,
                f"{comparator.value} cannot be used with field {condition.field!r}",
            )
            return

        if isinstance(resolved, StandardField):
            self._check_standard_value(resolved, comparator, condition.value, path)
        else:
            self._check_custom_value(resolved, comparator, condition.value, path)

    def _check_standard_value(self, standard: StandardField, comparator: Comparator, value: Any, path: str) -> None:
        if standard.kind == StorageKind.INTEGER:
            values = value if isinstance(value, list) else [value]
            bad = [v for v in values if as_int(v) is None]
            if bad:
                self._error(
                    IssueCode.INVALID_VALUE, path, f"Field {standard.token!r} expects integers, got {bad[0]!r}"
                )
            return
        if standard.options:
            self._check_listed(standard.token, standard.options, comparator, value, path)

    def _check_custom_value(
        self, definition: CustomFieldDefinition, comparator: Comparator, value: Any, path: str
    ) -> None:
        if comparator.is_ordering and as_number(value) is None:
            self._error(IssueCode.INVALID_VALUE, path, f"{comparator.value} needs a numeric value, got {value!r}")
            return
        if definition.field_type == CustomFieldType.SELECT and definition.options:
            self._check_listed(definition.token, definition.options, comparator, value, path)

    def _check_listed(self, token: str, options, comparator: Comparator, value: Any, path: str) -> None:
        # Only a warning: option lists get edited after filters were saved.
        if comparator in (Comparator.EQ, Comparator.NE) and str(value) not in options:
            self._warning(IssueCode.OPTION_NOT_LISTED, path, f"{value!r} is not one of the options of {token!r}")


def validate(tree: FilterTree, registry: FieldRegistry, fail_fast: bool = False) -> ValidationResult:
    """Validate ``tree`` against ``registry``.

    :param tree: Root group of the filter
    :param registry: Field snapshot used for resolution
    :param fail_fast: Stop at the first error instead of collecting all of them
    :return: The errors and warnings found; ``result.ok`` is True when there are no errors
    """
    return FilterValidator(registry, fail_fast=fail_fast).validate(tree)
