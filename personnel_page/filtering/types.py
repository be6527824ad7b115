from enum import Enum


class Comparator(str, Enum):
    """Comparison tokens accepted in filter conditions."""

    EQ = "="
    NE = "!="
    IN = "IN"
    NOT_IN = "NOT IN"
    LIKE = "LIKE"
    ILIKE = "ILIKE"
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="

    @classmethod
    def parse(cls, token: str) -> "Comparator | None":
        try:
            return cls(token)
        except ValueError:
            return None

    @property
    def is_list(self) -> bool:
        return self in (Comparator.IN, Comparator.NOT_IN)

    @property
    def is_ordering(self) -> bool:
        return self in (Comparator.GT, Comparator.LT, Comparator.GTE, Comparator.LTE)

    @property
    def is_pattern(self) -> bool:
        return self in (Comparator.LIKE, Comparator.ILIKE)


class GroupOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class StorageKind(str, Enum):
    """How a standard field is stored in its backing document field."""

    STRING = "string"
    INTEGER = "integer"
    ENUM = "enum"


class CustomFieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    DATE = "date"


class FilterScope(str, Enum):
    """Visibility of a saved filter."""

    PRIVATE = "private"
    SHARED = "shared"

    @classmethod
    def parse(cls, value: str) -> "FilterScope":
        # Filters saved before the rename used "personal".
        if value == "personal":
            return cls.PRIVATE
        return cls(value)


CUSTOM_FIELD_PREFIX = "customFields."

ALL_COMPARATORS: frozenset[Comparator] = frozenset(Comparator)

ALLOWED_COMPARATORS: dict[StorageKind, frozenset[Comparator]] = {
    StorageKind.STRING: ALL_COMPARATORS,
    StorageKind.ENUM: frozenset(
        {
            Comparator.EQ,
            Comparator.NE,
            Comparator.IN,
            Comparator.NOT_IN,
            Comparator.LIKE,
            Comparator.ILIKE,
        }
    ),
    StorageKind.INTEGER: frozenset(
        {
            Comparator.EQ,
            Comparator.NE,
            Comparator.IN,
            Comparator.NOT_IN,
            Comparator.GT,
            Comparator.LT,
            Comparator.GTE,
            Comparator.LTE,
        }
    ),
}
