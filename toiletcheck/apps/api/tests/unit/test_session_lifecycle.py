"""Session tokens: issuance, validation against the session store, refresh and revocation.

T1: A fresh token validates and carries the identity claims
T2: A token whose session record was deleted is rejected (JWT still verifies)
T3: Refresh binds the same claims to a new session id and revokes the old one
T4: Tampered / foreign-secret tokens are rejected
T5: delete_user_sessions revokes every live session of one user
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from toiletcheck_api.auth.tokens import (
    ALGORITHM,
    create_token,
    extract_token_from_header,
    generate_session_id,
    verify_token,
)
from toiletcheck_api.config.env import get_jwt_secret, parse_duration

CLAIMS = {
    "userId": "user-1",
    "email": "inspector@example.com",
    "role": 0,
    "organizationId": "org-1",
}

def test_fresh_session_validates(sessions):
    token = sessions.create_session(CLAIMS)

    session = sessions.validate_session(token)

    assert session is not None
    assert session["userId"] == "user-1"
    assert session["organizationId"] == "org-1"
    assert session["sessionId"]

def test_deleted_session_record_rejects_valid_jwt(sessions, cache):
    token = sessions.create_session(CLAIMS)
    payload = verify_token(token)
    assert payload is not None

    cache.delete_session(payload["sessionId"], "user-1")

    # Signature is still fine, but the session is gone
    assert verify_token(token) is not None
    assert sessions.validate_session(token) is None

def test_expired_session_record_is_removed(sessions, cache):
    token = sessions.create_session(CLAIMS)
    session_id = verify_token(token)["sessionId"]
    record = cache.get_session(session_id)
    record["expiresAt"] = (datetime.now(timezone.utc) - timedelta(seconds=1)).isoformat()
    cache.set_session(session_id, record)

    assert sessions.validate_session(token) is None
    assert cache.get_session(session_id) is None

def test_refresh_rebinds_claims_and_revokes_old_session(sessions):
    old_token = sessions.create_session(CLAIMS)
    old_session_id = verify_token(old_token)["sessionId"]

    new_token = sessions.refresh_session(old_token)

    assert new_token is not None
    new_payload = verify_token(new_token)
    assert new_payload["sessionId"] != old_session_id
    for claim in ("userId", "email", "role", "organizationId"):
        assert new_payload[claim] == CLAIMS[claim]
    assert sessions.validate_session(old_token) is None
    assert sessions.validate_session(new_token) is not None

def test_refresh_of_revoked_token_fails(sessions):
    token = sessions.create_session(CLAIMS)
    sessions.delete_session(token)

    assert sessions.refresh_session(token) is None

def test_token_signed_with_other_secret_is_rejected():
    forged = jwt.encode({**CLAIMS, "sessionId": "abc"}, "not-the-secret", algorithm=ALGORITHM)

    assert verify_token(forged) is None

def test_token_without_session_id_is_rejected():
    token, _ = create_token(CLAIMS)
    payload = jwt.decode(token, options={"verify_signature": False})
    payload.pop("sessionId")

    stripped = jwt.encode(payload, get_jwt_secret(), algorithm=ALGORITHM)
    assert verify_token(stripped) is None

def test_delete_user_sessions_revokes_all(sessions):
    tokens = [sessions.create_session(CLAIMS) for _ in range(3)]
    other = sessions.create_session({**CLAIMS, "userId": "user-2"})

    revoked = sessions.delete_user_sessions("user-1")

    assert revoked == 3
    assert all(sessions.validate_session(t) is None for t in tokens)
    assert sessions.validate_session(other) is not None

def test_session_ids_are_random_and_url_safe():
    ids = {generate_session_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i) == 21 for i in ids)

@pytest.mark.parametrize(
    "header,expected",
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer abc", None),
        ("Bearer", None),
        ("Basic abc", None),
        (None, None),
    ],
)
def test_extract_token_from_header(header, expected):
    assert extract_token_from_header(header) == expected

@pytest.mark.parametrize(
    "value,seconds",
    [("7d", 604800), ("12h", 43200), ("30m", 1800), ("45s", 45), ("3600", 3600)],
)
def test_parse_duration(value, seconds):
    assert parse_duration(value) == seconds

def test_parse_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration("one week")
