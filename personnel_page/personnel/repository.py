import logging
from logging import Logger
from typing import Any, Iterable

import pymongo
import sentry_sdk
from pymongo.collection import Collection
from pymongo.database import Database

from ..custom_fields.repository import normalize_custom_fields
from ..filtering.fields import CUSTOM_FIELDS_DOCUMENT_FIELD, CustomFieldDefinition, StandardFieldRegistry
from ..filtering.types import StorageKind
from ..filtering.values import as_int, as_text

logger: Logger = logging.getLogger(__name__)

# Stable order of every record listing.
RECORD_ORDER = [("ord", pymongo.ASCENDING), ("_id", pymongo.ASCENDING)]


def record_to_json(doc: dict[str, Any]) -> dict[str, Any]:
    """Render a stored record with API field names."""
    data: dict[str, Any] = {"id": str(doc["_id"])}
    for token, standard in StandardFieldRegistry.get_all_fields().items():
        data[token] = doc.get(standard.database_field)
    data["customFields"] = dict(doc.get(CUSTOM_FIELDS_DOCUMENT_FIELD) or {})
    return data


class PersonnelRepository:
    """Read and write access to the personnel records."""

    def __init__(self, db: Database, collection_name: str = "personnel"):
        self.collection: Collection = db[collection_name]

    def find(self, query: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Fetch the records matching a MongoDB query, ordered by ``(ord, _id)``.

        :param query: Executable query, ``{}`` for every record
        """
        with sentry_sdk.start_span(op="mongo", description="Find personnel."):
            cursor = self.collection.find(query).sort(RECORD_ORDER)
            return [record_to_json(doc) for doc in cursor]

    def insert(
        self, record: dict[str, Any], definitions: Iterable[CustomFieldDefinition] = ()
    ) -> str:
        """
        Store a record given with API field names.

        Unknown standard attributes are ignored. Text and enumerated fields are
        stored as trimmed text, the same form filters compare against. Custom
        values are checked against the definitions.

        :raises ValueError: If ``ord`` is not an integer
        :raises CustomFieldValueError: If the custom values are invalid
        :return: The id of the new record
        """
        doc: dict[str, Any] = {}
        for token, standard in StandardFieldRegistry.get_all_fields().items():
            value = record.get(token)
            if value is None:
                continue
            if standard.kind == StorageKind.INTEGER:
                number = as_int(value)
                if number is None:
                    raise ValueError(f"{token} must be an integer")
                doc[standard.database_field] = number
            else:
                doc[standard.database_field] = as_text(value).strip()
        doc[CUSTOM_FIELDS_DOCUMENT_FIELD] = normalize_custom_fields(record.get("customFields"), definitions)

        result = self.collection.insert_one(doc)
        logger.debug("Inserted personnel record %s", result.inserted_id)
        return str(result.inserted_id)
