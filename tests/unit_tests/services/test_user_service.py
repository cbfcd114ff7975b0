import base64

import pytest

from database.mongo_adapter import MongoAdapter
from files_api.errors import DuplicateUser, Unauthorized, ValidationError
from files_api.services.user_service import (
    UserService,
    hash_password,
    parse_basic_auth,
    verify_password,
)


@pytest.fixture
def users(mongo_adapter: MongoAdapter) -> UserService:
    return UserService(mongo_adapter)


def _basic(raw: str) -> str:
    return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii")


def test_password_hashing():
    hashed = hash_password("secret")
    assert hashed != "secret"
    assert verify_password("secret", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret", "not-a-bcrypt-hash")


def test_create_stores_normalized_email_and_hashed_password(users: UserService, mongo_adapter: MongoAdapter):
    user_id = users.create("  Alice@Example.com ", "secret")

    document = mongo_adapter.users.find_one({"_id": user_id})
    assert document["email"] == "alice@example.com"
    assert document["password"] != "secret"
    assert users.find_by_id(user_id).email == "alice@example.com"
    assert users.find_by_id(str(user_id)).id == user_id


@pytest.mark.parametrize(
    "email, password, message",
    [
        (None, "secret", "Missing email"),
        ("", "secret", "Missing email"),
        ("alice@example.com", None, "Missing password"),
        ("alice@example.com", "", "Missing password"),
    ],
)
def test_create_validates_input(users: UserService, email, password, message):
    with pytest.raises(ValidationError) as exc_info:
        users.create(email, password)
    assert exc_info.value.message == message


def test_create_rejects_duplicate_email(users: UserService):
    users.create("alice@example.com", "secret")
    with pytest.raises(DuplicateUser):
        users.create("alice@example.com", "other")
    with pytest.raises(DuplicateUser):
        users.create("ALICE@example.com", "other")


def test_verify_credentials(users: UserService):
    user_id = users.create("alice@example.com", "secret")

    assert users.verify_credentials("alice@example.com", "secret").id == user_id
    with pytest.raises(Unauthorized):
        users.verify_credentials("alice@example.com", "wrong")
    with pytest.raises(Unauthorized):
        users.verify_credentials("nobody@example.com", "secret")
    with pytest.raises(Unauthorized):
        users.verify_credentials(None, None)


def test_find_by_malformed_id_returns_none(users: UserService):
    assert users.find_by_id("not-an-id") is None


def test_parse_basic_auth():
    assert parse_basic_auth(_basic("alice@example.com:se:cret")) == ("alice@example.com", "se:cret")


@pytest.mark.parametrize(
    "header",
    [None, "", "Bearer abc", "Basic !!!", _basic("no-separator")],
)
def test_parse_basic_auth_rejects_malformed_headers(header):
    with pytest.raises(Unauthorized):
        parse_basic_auth(header)
