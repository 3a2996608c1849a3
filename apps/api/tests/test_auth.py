"""
Auth dependency tests: JWT decoding, user lookup and cross-user access.
"""

from datetime import timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.testclient import TestClient

from core.auth import get_current_user, resolve_target_user_id
from core.database import get_db
from core.security import create_access_token, decode_access_token
from main import app
from models import User


def _bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def _db_returning(user):
    db = MagicMock()
    db.query.return_value.filter.return_value.first.return_value = user
    return db


class TestTokens:

    def test_round_trip_keeps_subject(self):
        user_id = str(uuid4())
        payload = decode_access_token(create_access_token({"sub": user_id}))
        assert payload["sub"] == user_id
        assert "exp" in payload

    def test_expired_token_is_rejected(self):
        token = create_access_token({"sub": str(uuid4())}, expires_delta=timedelta(seconds=-5))
        assert decode_access_token(token) is None

    def test_garbage_is_rejected(self):
        assert decode_access_token("not-a-jwt") is None


class TestGetCurrentUser:

    def test_valid_token_loads_user(self):
        user = User(id=uuid4(), role="user")
        token = create_access_token({"sub": str(user.id)})

        assert get_current_user(_bearer(token), _db_returning(user)) is user

    def test_missing_credentials(self):
        with pytest.raises(HTTPException) as exc:
            get_current_user(None, _db_returning(None))
        assert exc.value.status_code == 401

    def test_unknown_user(self):
        token = create_access_token({"sub": str(uuid4())})
        with pytest.raises(HTTPException) as exc:
            get_current_user(_bearer(token), _db_returning(None))
        assert exc.value.detail == "User not found"

    def test_subject_must_be_uuid(self):
        token = create_access_token({"sub": "user-42"})
        with pytest.raises(HTTPException) as exc:
            get_current_user(_bearer(token), _db_returning(None))
        assert exc.value.detail == "Invalid user ID format"


class TestResolveTargetUserId:

    def test_defaults_to_self(self):
        user = User(id=uuid4(), role="user")
        assert resolve_target_user_id(None, user) == user.id
        assert resolve_target_user_id(user.id, user) == user.id

    def test_admin_may_target_others(self):
        admin = User(id=uuid4(), role="admin")
        other = uuid4()
        assert resolve_target_user_id(other, admin) == other

    def test_user_may_not_target_others(self):
        with pytest.raises(HTTPException) as exc:
            resolve_target_user_id(uuid4(), User(id=uuid4(), role="user"))
        assert exc.value.status_code == 403


def test_insights_route_requires_bearer_token():
    app.dependency_overrides[get_db] = lambda: MagicMock()
    try:
        response = TestClient(app).get("/v1/insights")
    finally:
        app.dependency_overrides.pop(get_db, None)

    assert response.status_code == 401
