"""CacheService: resource cache fails open, session store fails closed."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import redis

from toiletcheck_api.auth.sessions import SessionService
from toiletcheck_api.auth.tokens import verify_token
from toiletcheck_api.db.cache import CacheService


@pytest.fixture
def broken_client():
    client = MagicMock()
    error = redis.ConnectionError("Connection refused")
    client.get.side_effect = error
    client.setex.side_effect = error
    client.delete.side_effect = error
    client.exists.side_effect = error
    client.scan_iter.side_effect = error
    client.pipeline.return_value.execute.side_effect = error
    return client


def test_json_roundtrip(cache):
    cache.set("location:1", {"id": "1", "floor": "3"})

    assert cache.get("location:1") == {"id": "1", "floor": "3"}
    assert cache.exists("location:1")
    cache.delete("location:1")
    assert cache.get("location:1") is None


def test_delete_pattern(cache):
    for key in ("locations:building:a", "locations:building:b", "building:a"):
        cache.set(key, [])

    assert cache.delete_pattern("locations:building:*") == 2
    assert cache.exists("building:a")


def test_resource_cache_errors_degrade_to_miss(broken_client):
    cache = CacheService(broken_client)

    assert cache.get("location:1") is None
    cache.set("location:1", {"id": "1"})
    cache.delete("location:1")
    assert cache.delete_pattern("location:*") == 0
    assert cache.exists("location:1") is False


def test_session_store_errors_propagate(broken_client):
    cache = CacheService(broken_client)

    with pytest.raises(redis.RedisError):
        cache.get_session("abc")
    with pytest.raises(redis.RedisError):
        cache.set_session("abc", {"userId": "u1"}, 60)


def test_session_validation_fails_closed_on_store_error(sessions, broken_client):
    token = sessions.create_session({"userId": "u1", "email": "a@b.c", "role": 0, "organizationId": None})

    assert SessionService(broken_client).validate_session(token) is None


def test_user_session_index_returns_ids(sessions, cache):
    claims = {"userId": "u1", "email": "a@b.c", "role": 0, "organizationId": None}
    first = verify_token(sessions.create_session(claims))["sessionId"]
    second = verify_token(sessions.create_session(claims))["sessionId"]

    ids = cache.get_user_session_ids("u1")
    assert isinstance(ids, set)
    assert ids == {first, second}
    assert cache.get_user_session_ids("nobody") == set()


def test_expired_session_cleanup_error_still_rejects(sessions):
    token = sessions.create_session({"userId": "u1", "email": "a@b.c", "role": 0, "organizationId": None})
    session_id = verify_token(token)["sessionId"]
    expired = {
        "userId": "u1",
        "sessionId": session_id,
        "expiresAt": (datetime.now(timezone.utc) - timedelta(minutes=5)).isoformat(),
    }
    client = MagicMock()
    client.get.return_value = json.dumps(expired)
    client.pipeline.return_value.execute.side_effect = redis.ConnectionError("Connection reset")

    assert SessionService(client).validate_session(token) is None
    client.pipeline.return_value.execute.assert_called_once()
