import fakeredis
import pytest

from database.redis_adapter import RedisAdapter


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def adapter_on_server(fake_server):
    return RedisAdapter(client=fakeredis.FakeRedis(server=fake_server, decode_responses=True))


def test_requires_url_or_client():
    with pytest.raises(ValueError):
        RedisAdapter()


def test_set_get_delete(redis_adapter: RedisAdapter):
    assert redis_adapter.is_alive() is True
    assert redis_adapter.set("auth_abc", "user-1") is True
    assert redis_adapter.get("auth_abc") == "user-1"
    assert redis_adapter.delete("auth_abc") == 1
    assert redis_adapter.get("auth_abc") is None


def test_get_missing_key_returns_none(redis_adapter: RedisAdapter):
    assert redis_adapter.get("nope") is None


def test_delete_missing_key_returns_zero(redis_adapter: RedisAdapter):
    assert redis_adapter.delete("nope") == 0


def test_set_with_ttl_expires_key(redis_adapter: RedisAdapter):
    redis_adapter.set("auth_abc", "user-1", ttl_seconds=60)
    remaining = redis_adapter.ttl("auth_abc")
    assert remaining is not None
    assert 0 < remaining <= 60


def test_set_without_ttl_has_no_expiry(redis_adapter: RedisAdapter):
    redis_adapter.set("persistent", "value")
    assert redis_adapter.ttl("persistent") is None


def test_connection_loss_is_reported_not_raised(fake_server, adapter_on_server: RedisAdapter):
    assert adapter_on_server.is_alive() is True

    fake_server.connected = False
    assert adapter_on_server.get("key") is None
    assert adapter_on_server.set("key", "value", ttl_seconds=10) is False
    assert adapter_on_server.delete("key") == 0
    assert adapter_on_server.is_alive() is False

    fake_server.connected = True
    assert adapter_on_server.is_alive() is True


def test_starts_disconnected_when_server_is_down(fake_server):
    fake_server.connected = False
    adapter = RedisAdapter(client=fakeredis.FakeRedis(server=fake_server, decode_responses=True))
    assert adapter.is_alive() is False
