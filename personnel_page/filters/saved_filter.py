import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..filtering.model import FilterTree, Group, tree_from_dict
from ..filtering.types import FilterScope


def utc_now() -> datetime:
    # BSON dates only keep milliseconds.
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _parse_datetime(value: Any) -> datetime:
    """
    Read a timestamp stored either as a BSON date or as an ISO string.

    :param value: Stored value
    :return: Timezone-aware datetime (UTC when the stored value was naive)
    """
    if isinstance(value, str):
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class SavedFilterGroup:
    """
    A named filter tree owned by a user.

    Private filters are visible only to their owner, shared filters to every
    authenticated user. Only the owner may change or delete either kind.
    """

    owner_id: str
    name: str
    filter_tree: FilterTree = field(default_factory=Group)
    description: str | None = None
    scope: FilterScope = FilterScope.PRIVATE
    filter_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def is_visible_to(self, caller_id: str) -> bool:
        return self.owner_id == caller_id or self.scope == FilterScope.SHARED

    def is_owned_by(self, caller_id: str) -> bool:
        return self.owner_id == caller_id

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the MongoDB document form."""
        return {
            "filter_id": self.filter_id,
            "owner_id": self.owner_id,
            "name": self.name,
            "description": self.description,
            "scope": self.scope.value,
            "filter_tree": self.filter_tree.to_dict(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_json(self) -> dict[str, Any]:
        """Serialize for the HTTP API."""
        return {
            "id": self.filter_id,
            "ownerId": self.owner_id,
            "name": self.name,
            "description": self.description,
            "scope": self.scope.value,
            "filterTree": self.filter_tree.to_dict(),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SavedFilterGroup":
        """
        Deserialize from a MongoDB document.

        :raises ValueError: If data is incomplete or the stored tree is malformed
        """
        required = ["filter_id", "owner_id", "name", "filter_tree"]
        missing = [f for f in required if f not in data]
        if missing:
            raise ValueError(f"Missing required fields: {missing}")

        return cls(
            filter_id=data["filter_id"],
            owner_id=data["owner_id"],
            name=data["name"],
            description=data.get("description"),
            scope=FilterScope.parse(data.get("scope", FilterScope.PRIVATE.value)),
            filter_tree=tree_from_dict(data["filter_tree"]),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )

    def __repr__(self) -> str:
        return (
            f"SavedFilterGroup(id={self.filter_id[:8]}..., name='{self.name}', "
            f"owner={self.owner_id}, scope={self.scope.value})"
        )
