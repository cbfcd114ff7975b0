from types import SimpleNamespace

import mongomock
import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from database.mongo_adapter import MongoAdapter, _HeartbeatMonitor


class UnreachableMongoClient(mongomock.MongoClient):
    def server_info(self):
        raise ServerSelectionTimeoutError("localhost:27017: connection refused")


def test_requires_connection_string_or_client():
    with pytest.raises(ValueError):
        MongoAdapter()


def test_is_alive_after_handshake(mongo_adapter: MongoAdapter):
    assert mongo_adapter.is_alive() is True


def test_is_not_alive_when_handshake_fails():
    adapter = MongoAdapter(client=UnreachableMongoClient(), db_name="down")
    assert adapter.is_alive() is False


def test_heartbeat_events_flip_liveness(mongo_adapter: MongoAdapter):
    monitor = _HeartbeatMonitor(mongo_adapter)

    monitor.failed(SimpleNamespace(reply=ServerSelectionTimeoutError("timed out")))
    assert mongo_adapter.is_alive() is False

    monitor.succeeded(SimpleNamespace(reply={}))
    assert mongo_adapter.is_alive() is True


def test_counts(mongo_adapter: MongoAdapter):
    assert mongo_adapter.count_users() == 0
    assert mongo_adapter.count_files() == 0

    mongo_adapter.users.insert_one({"email": "a@b.c", "password": "x"})
    mongo_adapter.files.insert_one({"name": "f", "type": "folder", "userId": "u", "parentId": "0"})
    mongo_adapter.files.insert_one({"name": "g", "type": "folder", "userId": "u", "parentId": "0"})

    assert mongo_adapter.count_users() == 1
    assert mongo_adapter.count_files() == 2


def test_user_email_is_unique(mongo_adapter: MongoAdapter):
    mongo_adapter.users.insert_one({"email": "a@b.c", "password": "x"})
    with pytest.raises(DuplicateKeyError):
        mongo_adapter.users.insert_one({"email": "a@b.c", "password": "y"})


def test_get_collection(mongo_adapter: MongoAdapter):
    assert mongo_adapter.get_collection("files").name == "files"
