"""Conftest for unit tests that don't require database fixtures.

This file overrides the session-scoped autouse fixtures from the parent conftest.py
by providing empty fixtures with the same names.
"""

import pytest

from personnel_page.filtering import CustomFieldDefinition, CustomFieldType, FieldRegistry


@pytest.fixture(autouse=True, scope="session")
def mongo_data():
    """Override the mongo_data fixture to avoid MongoDB dependency."""
    yield


@pytest.fixture(scope="session")
def mongodb():
    """Override the mongodb fixture to avoid MongoDB dependency."""
    yield None


@pytest.fixture(scope="session")
def app():
    """Override the app fixture to avoid Flask app dependency."""
    yield None


@pytest.fixture
def height_field() -> CustomFieldDefinition:
    return CustomFieldDefinition(field_id="f-height", name="altura", label="Altura", field_type=CustomFieldType.NUMBER)


@pytest.fixture
def blood_field() -> CustomFieldDefinition:
    return CustomFieldDefinition(
        field_id="f-blood",
        name="tipoSanguineo",
        label="Tipo sanguíneo",
        field_type=CustomFieldType.SELECT,
        options=["A+", "A-", "O+", "O-"],
    )


@pytest.fixture
def registry(height_field, blood_field) -> FieldRegistry:
    return FieldRegistry([height_field, blood_field])
