"""Dynamic filter engine: field registry, expression model, validation and compilation to MongoDB queries."""

from .compiler import CompileSkipWarning, PredicateCompiler, compile_filter, like_to_regex, to_query
from .errors import FilterError, FilterValidationError, MalformedTreeError
from .fields import CustomFieldDefinition, FieldRegistry, StandardField, StandardFieldRegistry
from .legacy import from_simple_filters, has_simple_filters
from .model import Condition, FilterTree, Group, iter_conditions, tree_from_dict, tree_from_json, tree_to_dict
from .types import Comparator, CustomFieldType, FilterScope, GroupOperator, StorageKind
from .validator import IssueCode, ValidationIssue, ValidationResult, validate

__all__ = [
    "Comparator",
    "CompileSkipWarning",
    "Condition",
    "CustomFieldDefinition",
    "CustomFieldType",
    "FieldRegistry",
    "FilterError",
    "FilterScope",
    "FilterTree",
    "FilterValidationError",
    "Group",
    "GroupOperator",
    "IssueCode",
    "MalformedTreeError",
    "PredicateCompiler",
    "StandardField",
    "StandardFieldRegistry",
    "StorageKind",
    "ValidationIssue",
    "ValidationResult",
    "compile_filter",
    "from_simple_filters",
    "has_simple_filters",
    "iter_conditions",
    "like_to_regex",
    "to_query",
    "tree_from_dict",
    "tree_from_json",
    "tree_to_dict",
    "validate",
]
