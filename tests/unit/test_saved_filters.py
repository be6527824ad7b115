"""Tests for saved filter serialization and access rules.

The MongoDB collection is mocked, only the repository logic is exercised.
"""

from datetime import datetime, timezone

import pytest

from personnel_page.filtering import Condition, FilterScope, Group, MalformedTreeError
from personnel_page.filters.repository import SavedFilterForbidden, SavedFilterNotFound, SavedFilterRepository
from personnel_page.filters.saved_filter import SavedFilterGroup


@pytest.fixture
def repository(mocker) -> SavedFilterRepository:
    db = mocker.MagicMock()
    db.__getitem__.return_value = mocker.MagicMock()
    return SavedFilterRepository(db)


def _saved(owner="alice", scope=FilterScope.PRIVATE) -> SavedFilterGroup:
    return SavedFilterGroup(
        owner_id=owner,
        name="Prontos da 1ª CIA",
        scope=scope,
        filter_tree=Group("AND", [Condition("companhia", "=", "1ª CIA"), Condition("situacao", "=", "Pronto")]),
    )


class TestSavedFilterGroup:
    def test_document_round_trip(self):
        saved = _saved(scope=FilterScope.SHARED)
        restored = SavedFilterGroup.from_dict(saved.to_dict())
        assert restored.filter_id == saved.filter_id
        assert restored.scope == FilterScope.SHARED
        assert restored.filter_tree == saved.filter_tree

    def test_legacy_personal_scope(self):
        data = _saved().to_dict()
        data["scope"] = "personal"
        assert SavedFilterGroup.from_dict(data).scope == FilterScope.PRIVATE

    def test_naive_timestamps_become_utc(self):
        data = _saved().to_dict()
        data["created_at"] = datetime(2024, 1, 1, 12, 0)
        data["updated_at"] = "2024-01-02T08:00:00Z"
        restored = SavedFilterGroup.from_dict(data)
        assert restored.created_at.tzinfo == timezone.utc
        assert restored.updated_at == datetime(2024, 1, 2, 8, 0, tzinfo=timezone.utc)

    def test_missing_fields(self):
        with pytest.raises(ValueError, match="Missing required fields"):
            SavedFilterGroup.from_dict({"name": "x"})

    def test_json(self):
        data = _saved().to_json()
        assert data["ownerId"] == "alice"
        assert data["scope"] == "private"
        assert data["filterTree"]["children"][0]["field"] == "companhia"


class TestAccess:
    def test_missing_filter(self, repository):
        repository.collection.find_one.return_value = None
        with pytest.raises(SavedFilterNotFound):
            repository.get("missing", "alice")

    def test_owner_reads_private(self, repository):
        saved = _saved()
        repository.collection.find_one.return_value = saved.to_dict()
        assert repository.get(saved.filter_id, "alice").name == saved.name

    def test_others_cannot_read_private(self, repository):
        saved = _saved()
        repository.collection.find_one.return_value = saved.to_dict()
        with pytest.raises(SavedFilterForbidden):
            repository.get(saved.filter_id, "bob")

    def test_others_read_shared(self, repository):
        saved = _saved(scope=FilterScope.SHARED)
        repository.collection.find_one.return_value = saved.to_dict()
        assert repository.get(saved.filter_id, "bob").filter_id == saved.filter_id

    def test_others_cannot_update_shared(self, repository):
        saved = _saved(scope=FilterScope.SHARED)
        repository.collection.find_one.return_value = saved.to_dict()

        with pytest.raises(SavedFilterForbidden):
            repository.update(saved.filter_id, "bob", {"name": "Renamed"})
        repository.collection.update_one.assert_not_called()

    def test_others_cannot_delete_shared(self, repository):
        saved = _saved(scope=FilterScope.SHARED)
        repository.collection.find_one.return_value = saved.to_dict()

        with pytest.raises(SavedFilterForbidden):
            repository.delete(saved.filter_id, "bob")
        repository.collection.delete_one.assert_not_called()

    def test_owner_deletes(self, repository):
        saved = _saved()
        repository.collection.find_one.return_value = saved.to_dict()

        repository.delete(saved.filter_id, "alice")

        repository.collection.delete_one.assert_called_once_with({"filter_id": saved.filter_id, "owner_id": "alice"})


class TestMutations:
    def test_create(self, repository):
        tree = Group("OR", [Condition("missaoOp", "=", "PEF")])

        saved = repository.create("alice", "  PEF  ", tree, scope=FilterScope.SHARED)

        assert saved.name == "PEF"
        stored = repository.collection.insert_one.call_args.args[0]
        assert stored["owner_id"] == "alice"
        assert stored["scope"] == "shared"
        assert stored["filter_tree"] == tree.to_dict()

    @pytest.mark.parametrize("name", ["", "   ", None, "x" * 201])
    def test_create_rejects_bad_names(self, repository, name):
        with pytest.raises(ValueError):
            repository.create("alice", name, Group())

    def test_update_keeps_creation_time(self, repository):
        saved = _saved()
        repository.collection.find_one.return_value = saved.to_dict()
        new_tree = Group("AND", [Condition("ord", "<", 100)])

        updated = repository.update(saved.filter_id, "alice", {"scope": "shared", "filter_tree": new_tree})

        assert updated.scope == FilterScope.SHARED
        _, update = repository.collection.update_one.call_args.args
        assert "created_at" not in update["$set"]
        assert update["$set"]["filter_tree"] == new_tree.to_dict()
        assert update["$set"]["scope"] == "shared"

    def test_update_rejects_unknown_attributes(self, repository):
        with pytest.raises(ValueError, match="owner_id"):
            repository.update("some-id", "alice", {"owner_id": "bob"})

    def test_list_skips_unreadable_documents(self, repository):
        good = _saved().to_dict()
        bad = {"filter_id": "broken", "owner_id": "alice", "name": "x", "filter_tree": {"type": "condition"}}
        repository.collection.find.return_value.sort.return_value = [good, bad]

        visible = repository.list_visible_to("alice")

        assert [s.filter_id for s in visible] == [good["filter_id"]]
        query = repository.collection.find.call_args.args[0]
        assert query == {"$or": [{"owner_id": "alice"}, {"scope": "shared"}]}

    def test_corrupt_stored_tree_is_malformed(self, repository):
        doc = _saved().to_dict()
        doc["filter_tree"] = {"type": "group", "operator": "AND", "children": [{"type": "condition"}]}
        repository.collection.find_one.return_value = doc

        with pytest.raises(MalformedTreeError) as excinfo:
            repository.get(doc["filter_id"], "alice")
        assert excinfo.value.path == "$.children[0]"

    def test_corrupt_document_is_malformed(self, repository):
        repository.collection.find_one.return_value = {"filter_id": "broken", "owner_id": "alice"}

        with pytest.raises(MalformedTreeError, match="broken"):
            repository.get("broken", "alice")
