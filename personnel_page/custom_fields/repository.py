import logging
import uuid
from datetime import datetime, timezone
from logging import Logger
from typing import Any, Iterable

import pymongo
from pymongo.collection import Collection
from pymongo.database import Database

from ..filtering.fields import CustomFieldDefinition, is_valid_custom_field_name
from ..filtering.types import CustomFieldType
from ..filtering.values import as_number, as_text

logger: Logger = logging.getLogger(__name__)

_MAX_NAME_LENGTH = 100
_MAX_LABEL_LENGTH = 200
_PATCHABLE = {"label", "field_type", "options", "required", "order_index"}


class CustomFieldError(ValueError):
    """Raised when a custom field definition is invalid."""

    pass


class CustomFieldValueError(ValueError):
    """Raised when record values do not satisfy the custom field definitions."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


def _check_definition(
    name: str, label: str, field_type: CustomFieldType, options: list[str], order_index: Any
) -> None:
    if not is_valid_custom_field_name(name):
        raise CustomFieldError("Field name must be non-empty, must not contain '.' and must not start with '$'")
    if len(name) > _MAX_NAME_LENGTH:
        raise CustomFieldError(f"Field name exceeds maximum length of {_MAX_NAME_LENGTH}")
    if not isinstance(label, str) or not label.strip():
        raise CustomFieldError("Label is required")
    if len(label) > _MAX_LABEL_LENGTH:
        raise CustomFieldError(f"Label exceeds maximum length of {_MAX_LABEL_LENGTH}")
    if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
        raise CustomFieldError("Options must be a list of strings")
    if field_type == CustomFieldType.SELECT and not options:
        raise CustomFieldError("Select fields need at least one option")
    if isinstance(order_index, bool) or not isinstance(order_index, int):
        raise CustomFieldError("Order index must be an integer")


def _parse_field_type(value: Any) -> CustomFieldType:
    try:
        return CustomFieldType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in CustomFieldType)
        raise CustomFieldError(f"Field type must be one of: {allowed}") from None


class CustomFieldRepository:
    """Repository for custom field definitions in MongoDB."""

    def __init__(self, db: Database, collection_name: str = "custom_fields"):
        self.db = db
        self.collection: Collection = db[collection_name]

    def list_all(self) -> list[CustomFieldDefinition]:
        cursor = self.collection.find({}, {"_id": 0}).sort(
            [("order_index", pymongo.ASCENDING), ("name", pymongo.ASCENDING)]
        )
        return [CustomFieldDefinition.from_dict(doc) for doc in cursor]

    def get(self, field_id: str) -> CustomFieldDefinition | None:
        doc = self.collection.find_one({"field_id": field_id}, {"_id": 0})
        return CustomFieldDefinition.from_dict(doc) if doc else None

    def get_by_name(self, name: str) -> CustomFieldDefinition | None:
        doc = self.collection.find_one({"name": name}, {"_id": 0})
        return CustomFieldDefinition.from_dict(doc) if doc else None

    def create(
        self,
        name: str,
        label: str,
        field_type: str | CustomFieldType,
        options: list[str] | None = None,
        required: bool = False,
        order_index: int = 0,
    ) -> CustomFieldDefinition:
        """
        Create a new definition.

        :raises CustomFieldError: If the definition is invalid or the name is taken
        """
        parsed_type = _parse_field_type(field_type)
        options = list(options or [])
        _check_definition(name, label, parsed_type, options, order_index)
        if self.get_by_name(name) is not None:
            raise CustomFieldError(f"A custom field named {name!r} already exists")

        definition = CustomFieldDefinition(
            field_id=str(uuid.uuid4()),
            name=name,
            label=label.strip(),
            field_type=parsed_type,
            options=options if parsed_type == CustomFieldType.SELECT else [],
            required=bool(required),
            order_index=order_index,
        )
        self.collection.insert_one(definition.to_dict())
        logger.info("Created custom field %s (%s)", definition.name, definition.field_type.value)
        return definition

    def update(self, field_id: str, patch: dict[str, Any]) -> CustomFieldDefinition | None:
        """
        Apply ``patch`` to a definition. The name is the storage key of every
        record's value and cannot be changed.

        :return: The updated definition, or None if it does not exist
        :raises CustomFieldError: If the patch is invalid
        """
        existing = self.get(field_id)
        if existing is None:
            return None

        if "name" in patch and patch["name"] != existing.name:
            raise CustomFieldError("The name of a custom field cannot be changed")
        unknown = set(patch) - _PATCHABLE - {"name"}
        if unknown:
            raise CustomFieldError(f"Unknown attributes: {', '.join(sorted(unknown))}")

        field_type = _parse_field_type(patch.get("field_type", existing.field_type))
        label = patch.get("label", existing.label)
        options = patch.get("options", existing.options)
        if options is None:
            options = []
        order_index = patch.get("order_index", existing.order_index)
        _check_definition(existing.name, label, field_type, options, order_index)

        changes = {
            "label": label.strip(),
            "field_type": field_type.value,
            "options": list(options) if field_type == CustomFieldType.SELECT else [],
            "required": bool(patch.get("required", existing.required)),
            "order_index": order_index,
            "updated_at": datetime.now(timezone.utc),
        }
        self.collection.update_one({"field_id": field_id}, {"$set": changes})
        return self.get(field_id)

    def delete(self, field_id: str, purge_values: bool = False, records_collection: str = "personnel") -> bool:
        """
        Delete a definition.

        Record values stored under the definition's name are kept unless
        ``purge_values`` is set, in which case they are removed from every record.

        :return: False if the definition did not exist
        """
        existing = self.get(field_id)
        if existing is None:
            return False

        self.collection.delete_one({"field_id": field_id})
        if purge_values:
            result = self.db[records_collection].update_many(
                {existing.database_field: {"$exists": True}},
                {"$unset": {existing.database_field: ""}},
            )
            logger.info("Purged custom field %s from %d record(s)", existing.name, result.modified_count)
        else:
            logger.info("Deleted custom field %s, record values kept", existing.name)
        return True


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_custom_fields(
    values: dict[str, Any] | None, definitions: Iterable[CustomFieldDefinition]
) -> dict[str, str]:
    """Validate and normalize a record's custom field values.

    Values are stored as text: numbers in canonical form, select values only
    if they are one of the options, text and dates trimmed. Empty optional
    values and keys without a definition are dropped.

    :raises CustomFieldValueError: Listing every problem found
    """
    values = values or {}
    normalized: dict[str, str] = {}
    problems: list[str] = []

    for definition in definitions:
        raw = values.get(definition.name)
        if _is_empty(raw):
            if definition.required:
                problems.append(f"Missing required field: {definition.label}")
            continue

        if definition.field_type == CustomFieldType.NUMBER:
            number = as_number(raw)
            if number is None:
                problems.append(f"{definition.label} must be a valid number")
                continue
            normalized[definition.name] = as_text(number)
        elif definition.field_type == CustomFieldType.SELECT:
            text = as_text(raw).strip()
            if text not in definition.options:
                problems.append(f'{definition.label}: value "{text}" is not one of the options')
                continue
            normalized[definition.name] = text
        else:
            normalized[definition.name] = as_text(raw).strip()

    if problems:
        raise CustomFieldValueError(problems)
    return normalized
