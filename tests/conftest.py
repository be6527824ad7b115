import os
import shutil
import subprocess
import tempfile
import time
from datetime import datetime, timezone
from typing import Any, Callable, Generator

import pytest

# Must be set before the application module is imported.
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("FLASK_MONGO_URI", "mongodb://localhost:27666/personnel_test")

from flask import Flask
from flask.testing import FlaskClient
from pymongo import MongoClient
from pymongo.errors import ServerSelectionTimeoutError

from personnel_page import app as personnel_app
from personnel_page import mongo
from personnel_page.common.mongo import init_collections
from personnel_page.user.models import User


@pytest.fixture(scope="session")
def app():
    # Sessions are forged in tests, there is no client identifier to protect.
    personnel_app.config["SESSION_PROTECTION"] = None
    with personnel_app.app_context():
        yield personnel_app


@pytest.fixture(scope="session")
def mongodb(app):
    # Spin-up a temporary MongoDB instance
    # Requires `mongod` to be installed and in PATH
    # This is used instead of mongomock because mongomock does not support all features
    # required by the application (e.g., $expr with $convert and $getField)
    if shutil.which("mongod") is None:
        pytest.skip("mongod is not installed")
    tmpdir = tempfile.TemporaryDirectory()
    proc = subprocess.Popen(
        ["mongod", "--dbpath", tmpdir.name, "--port", "27666"],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )

    try:
        cx = MongoClient("mongodb://localhost:27666", directConnection=True, serverSelectionTimeoutMS=500)
        for _ in range(40):
            try:
                cx.admin.command("ping")
                break
            except ServerSelectionTimeoutError:
                time.sleep(0.25)
        yield cx
    finally:
        proc.kill()
        proc.wait()
        tmpdir.cleanup()


@pytest.fixture(autouse=True, scope="session")
def mongo_data(app, mongodb):
    init_collections()
    yield


@pytest.fixture(scope="function")
def client(app: Flask) -> Generator[FlaskClient, Any, None]:
    with app.app_context(), app.test_client() as testing_client:
        yield testing_client


def _make_user(username: str, roles: list[str]) -> User:
    user = User(username, f"{username}@example.com", roles, created_at=datetime.now(timezone.utc))
    user.save()
    return user


@pytest.fixture()
def user(app) -> Generator[User, Any, None]:
    user = _make_user("user", [])
    yield user
    user.delete()


@pytest.fixture()
def other_user(app) -> Generator[User, Any, None]:
    user = _make_user("other", [])
    yield user
    user.delete()


@pytest.fixture()
def admin(app) -> Generator[User, Any, None]:
    user = _make_user("admin", ["admin"])
    yield user
    user.delete()


@pytest.fixture()
def login(client: FlaskClient, mocker) -> Callable[[User], FlaskClient]:
    """Log the test client in as the given user, authentication itself is external."""
    mocker.patch("flask_wtf.csrf.validate_csrf")

    def _login(user: User) -> FlaskClient:
        with client.session_transaction() as session:
            session["_user_id"] = user.id
            session["_fresh"] = True
        return client

    return _login


@pytest.fixture()
def logged_in_client(login, user) -> FlaskClient:
    return login(user)


@pytest.fixture()
def admin_client(login, admin) -> FlaskClient:
    return login(admin)


@pytest.fixture()
def clean_collections(app) -> Generator[None, Any, None]:
    yield
    for name in (app.config["PERSONNEL_COLLECTION"], "saved_filters", "custom_fields"):
        mongo.db[name].delete_many({})
