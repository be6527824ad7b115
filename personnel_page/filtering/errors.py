"""Exceptions raised by the filter engine."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validator import ValidationIssue


class FilterError(ValueError):
    """Base class for filter engine errors."""

    pass


class MalformedTreeError(FilterError):
    """Raised when a serialized filter tree does not have the expected shape."""

    def __init__(self, message: str, path: str = "$"):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.reason = message


class FilterValidationError(FilterError):
    """Raised when a filter tree fails schema validation."""

    def __init__(self, issues: list["ValidationIssue"]):
        self.issues = issues
        summary = "; ".join(str(issue) for issue in issues) or "invalid filter"
        super().__init__(summary)
