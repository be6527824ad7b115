"""Tests for custom field definitions and record value normalization."""

import pytest

from personnel_page.custom_fields.repository import (
    CustomFieldError,
    CustomFieldRepository,
    CustomFieldValueError,
    normalize_custom_fields,
)
from personnel_page.filtering import CustomFieldDefinition, CustomFieldType


@pytest.fixture
def db(mocker):
    """A database whose every collection is the same mock."""
    db = mocker.MagicMock()
    db.__getitem__.return_value = mocker.MagicMock()
    return db


@pytest.fixture
def repository(db) -> CustomFieldRepository:
    return CustomFieldRepository(db)


def _stored(definition: CustomFieldDefinition) -> dict:
    return definition.to_dict()


class TestNormalizeCustomFields:
    def test_values_stored_as_canonical_text(self, height_field, blood_field):
        values = {"altura": " 181.0 ", "tipoSanguineo": "O+", "desconhecido": "x"}
        assert normalize_custom_fields(values, [height_field, blood_field]) == {"altura": "181", "tipoSanguineo": "O+"}

    def test_numbers_accepted(self, height_field):
        assert normalize_custom_fields({"altura": 175.5}, [height_field]) == {"altura": "175.5"}

    def test_empty_optional_values_dropped(self, height_field):
        assert normalize_custom_fields({"altura": "  "}, [height_field]) == {}
        assert normalize_custom_fields(None, [height_field]) == {}

    def test_all_problems_reported(self, height_field, blood_field):
        required = CustomFieldDefinition("f-rank", "cnh", "CNH", CustomFieldType.TEXT, required=True)

        with pytest.raises(CustomFieldValueError) as excinfo:
            normalize_custom_fields({"altura": "alto", "tipoSanguineo": "AB+"}, [height_field, blood_field, required])

        assert excinfo.value.problems == [
            "Altura must be a valid number",
            'Tipo sanguíneo: value "AB+" is not one of the options',
            "Missing required field: CNH",
        ]

    def test_text_trimmed(self):
        definition = CustomFieldDefinition("f-nick", "apelido", "Apelido", CustomFieldType.TEXT)
        assert normalize_custom_fields({"apelido": "  Zé "}, [definition]) == {"apelido": "Zé"}


class TestCreate:
    def test_create_inserts_definition(self, repository):
        repository.collection.find_one.return_value = None

        definition = repository.create("altura", "Altura", "number", order_index=2)

        assert definition.field_type == CustomFieldType.NUMBER
        assert definition.options == []
        stored = repository.collection.insert_one.call_args.args[0]
        assert stored["name"] == "altura"
        assert stored["field_type"] == "number"
        assert stored["order_index"] == 2

    def test_duplicate_name_rejected(self, repository, height_field):
        repository.collection.find_one.return_value = _stored(height_field)
        with pytest.raises(CustomFieldError, match="already exists"):
            repository.create("altura", "Altura", "number")
        repository.collection.insert_one.assert_not_called()

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"name": "a.b", "label": "A", "field_type": "text"}, "Field name"),
            ({"name": "$x", "label": "A", "field_type": "text"}, "Field name"),
            ({"name": "a", "label": " ", "field_type": "text"}, "Label"),
            ({"name": "a", "label": "A", "field_type": "color"}, "Field type"),
            ({"name": "a", "label": "A", "field_type": "select"}, "at least one option"),
            ({"name": "a", "label": "A", "field_type": "text", "order_index": "1"}, "Order index"),
        ],
    )
    def test_invalid_definitions(self, repository, kwargs, message):
        repository.collection.find_one.return_value = None
        with pytest.raises(CustomFieldError, match=message):
            repository.create(**kwargs)


class TestUpdate:
    def test_missing_definition(self, repository):
        repository.collection.find_one.return_value = None
        assert repository.update("nope", {"label": "X"}) is None

    def test_name_is_immutable(self, repository, height_field):
        repository.collection.find_one.return_value = _stored(height_field)
        with pytest.raises(CustomFieldError, match="cannot be changed"):
            repository.update(height_field.field_id, {"name": "peso"})

    def test_update_sets_changes(self, repository, height_field):
        repository.collection.find_one.return_value = _stored(height_field)

        repository.update(height_field.field_id, {"label": "Altura (cm)", "required": True})

        query, update = repository.collection.update_one.call_args.args
        assert query == {"field_id": height_field.field_id}
        assert update["$set"]["label"] == "Altura (cm)"
        assert update["$set"]["required"] is True
        assert update["$set"]["field_type"] == "number"


class TestDelete:
    def test_keeps_record_values_by_default(self, repository, db, height_field):
        repository.collection.find_one.return_value = _stored(height_field)

        assert repository.delete(height_field.field_id) is True

        repository.collection.delete_one.assert_called_once_with({"field_id": height_field.field_id})
        repository.collection.update_many.assert_not_called()

    def test_purge_unsets_record_values(self, repository, db, height_field):
        repository.collection.find_one.return_value = _stored(height_field)
        repository.collection.update_many.return_value.modified_count = 3

        repository.delete(height_field.field_id, purge_values=True)

        repository.collection.update_many.assert_called_once_with(
            {"custom_fields.altura": {"$exists": True}}, {"$unset": {"custom_fields.altura": ""}}
        )

    def test_missing_definition(self, repository):
        repository.collection.find_one.return_value = None
        assert repository.delete("nope") is False
