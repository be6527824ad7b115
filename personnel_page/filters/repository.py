import logging
from logging import Logger
from typing import Any

import pymongo
from pymongo.collection import Collection
from pymongo.database import Database

from ..filtering.errors import MalformedTreeError
from ..filtering.model import FilterTree
from ..filtering.types import FilterScope
from .saved_filter import SavedFilterGroup, utc_now

logger: Logger = logging.getLogger(__name__)

_MAX_NAME_LENGTH = 200
_PATCHABLE = frozenset({"name", "description", "scope", "filter_tree"})


class SavedFilterError(Exception):
    """Base class for saved filter access errors."""

    def __init__(self, filter_id: str, message: str):
        super().__init__(message)
        self.filter_id = filter_id


class SavedFilterNotFound(SavedFilterError):
    """No saved filter has the requested id."""

    def __init__(self, filter_id: str):
        super().__init__(filter_id, f"Saved filter {filter_id} not found")


class SavedFilterForbidden(SavedFilterError):
    """The saved filter exists but the caller may not perform the operation."""

    def __init__(self, filter_id: str, action: str):
        super().__init__(filter_id, f"You don't have permission to {action} saved filter {filter_id}")
        self.action = action


def _check_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Filter name is required")
    if len(name) > _MAX_NAME_LENGTH:
        raise ValueError(f"Filter name exceeds maximum length of {_MAX_NAME_LENGTH}")
    return name.strip()


def _check_description(description: Any) -> str | None:
    if description is not None and not isinstance(description, str):
        raise ValueError("Filter description must be a string")
    return description


class SavedFilterRepository:
    """Persistence and authorization for saved filters in MongoDB.

    ``get`` succeeds for the owner or for shared filters; ``update`` and
    ``delete`` only for the owner. Missing ids raise :class:`SavedFilterNotFound`,
    refused access raises :class:`SavedFilterForbidden`.
    """

    def __init__(self, db: Database, collection_name: str = "saved_filters"):
        self.collection: Collection = db[collection_name]

    def _load(self, filter_id: str) -> SavedFilterGroup:
        doc = self.collection.find_one({"filter_id": filter_id}, {"_id": 0})
        if doc is None:
            raise SavedFilterNotFound(filter_id)
        try:
            return SavedFilterGroup.from_dict(doc)
        except MalformedTreeError:
            raise
        except (KeyError, ValueError) as e:
            raise MalformedTreeError(f"invalid saved filter {filter_id}: {e}") from e

    def create(
        self,
        owner_id: str,
        name: str,
        filter_tree: FilterTree,
        description: str | None = None,
        scope: FilterScope = FilterScope.PRIVATE,
    ) -> SavedFilterGroup:
        saved = SavedFilterGroup(
            owner_id=owner_id,
            name=_check_name(name),
            description=_check_description(description),
            scope=scope,
            filter_tree=filter_tree,
        )
        self.collection.insert_one(saved.to_dict())
        logger.debug("Created saved filter %r", saved)
        return saved

    def get(self, filter_id: str, caller_id: str) -> SavedFilterGroup:
        saved = self._load(filter_id)
        if not saved.is_visible_to(caller_id):
            raise SavedFilterForbidden(filter_id, "use")
        return saved

    def update(self, filter_id: str, caller_id: str, patch: dict[str, Any]) -> SavedFilterGroup:
        """
        Replace attributes of a saved filter owned by the caller.

        :param patch: Any of ``name``, ``description``, ``scope``, ``filter_tree``
        :raises ValueError: If the patch carries unknown or invalid attributes
        """
        unknown = set(patch) - _PATCHABLE
        if unknown:
            raise ValueError(f"Unknown attributes: {', '.join(sorted(unknown))}")

        saved = self._load(filter_id)
        if not saved.is_owned_by(caller_id):
            raise SavedFilterForbidden(filter_id, "edit")

        if "name" in patch:
            saved.name = _check_name(patch["name"])
        if "description" in patch:
            saved.description = _check_description(patch["description"])
        if "scope" in patch:
            saved.scope = FilterScope.parse(patch["scope"])
        if "filter_tree" in patch:
            saved.filter_tree = patch["filter_tree"]
        saved.updated_at = utc_now()

        document = saved.to_dict()
        del document["created_at"]
        self.collection.update_one({"filter_id": filter_id}, {"$set": document})
        logger.debug("Updated saved filter %r", saved)
        return saved

    def delete(self, filter_id: str, caller_id: str) -> None:
        saved = self._load(filter_id)
        if not saved.is_owned_by(caller_id):
            raise SavedFilterForbidden(filter_id, "delete")
        self.collection.delete_one({"filter_id": filter_id, "owner_id": caller_id})
        logger.debug("Deleted saved filter %r", saved)

    def list_visible_to(self, caller_id: str) -> list[SavedFilterGroup]:
        """Own filters plus every shared one, oldest first."""
        cursor = self.collection.find(
            {"$or": [{"owner_id": caller_id}, {"scope": FilterScope.SHARED.value}]},
            {"_id": 0},
        ).sort([("created_at", pymongo.ASCENDING), ("filter_id", pymongo.ASCENDING)])

        visible = []
        for doc in cursor:
            try:
                visible.append(SavedFilterGroup.from_dict(doc))
            except (KeyError, ValueError, MalformedTreeError) as e:
                logger.warning("Skipping unreadable saved filter %s: %s", doc.get("filter_id"), e)
        return visible
