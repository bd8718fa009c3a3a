from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import HTTPException

from auth import ensure_owner_or_admin, is_admin, issue_token, verify_token


def test_health(client):
    res = client.get("/")
    assert res.status_code == 200
    assert "ready" in res.text


def test_issue_and_verify_token(settings):
    token = issue_token({"email": "a@example.com"}, settings)
    claims = verify_token(token, settings)
    assert claims["email"] == "a@example.com"
    expires = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
    assert timedelta(minutes=59) < expires - datetime.now(timezone.utc) <= timedelta(minutes=60)


def test_verify_rejects_wrong_secret(settings):
    token = jwt.encode({"email": "a@example.com"}, "another-secret-of-sufficient-length!", algorithm="HS256")
    with pytest.raises(jwt.InvalidTokenError):
        verify_token(token, settings)


def test_verify_rejects_expired(settings):
    past = datetime.now(timezone.utc) - timedelta(minutes=1)
    token = jwt.encode({"email": "a@example.com", "exp": past}, settings.access_token_secret, algorithm="HS256")
    with pytest.raises(jwt.ExpiredSignatureError):
        verify_token(token, settings)


def test_jwt_endpoint(client, settings):
    res = client.post("/jwt", json={"email": "a@example.com"})
    assert res.status_code == 200
    assert verify_token(res.json()["token"], settings)["email"] == "a@example.com"


def test_jwt_endpoint_requires_email(client):
    res = client.post("/jwt", json={})
    assert res.status_code == 400


def test_missing_header_is_401(client):
    assert client.get("/orders").status_code == 401


def test_empty_header_is_401(client):
    assert client.get("/orders", headers={"Authorization": ""}).status_code == 401


@pytest.mark.parametrize("header", ["Bearer", "Bearer not-a-token", "Basic abc", "token-without-scheme"])
def test_malformed_header_is_403(client, header):
    assert client.get("/orders", headers={"Authorization": header}).status_code == 403


def test_expired_token_is_403(client, settings):
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = jwt.encode({"email": "a@example.com", "exp": past}, settings.access_token_secret, algorithm="HS256")
    assert client.get("/orders", headers={"Authorization": f"Bearer {token}"}).status_code == 403


def test_is_admin_roles(store, make_user):
    make_user("u@example.com")
    make_user("a@example.com", role="admin")
    make_user("s@example.com", role="super admin")
    assert not is_admin(store, "u@example.com")
    assert is_admin(store, "a@example.com")
    assert is_admin(store, "s@example.com")
    assert not is_admin(store, "nobody@example.com")


def test_ensure_owner_or_admin(store, make_user):
    make_user("a@example.com", role="admin")
    ensure_owner_or_admin(store, {"email": "u@example.com"}, "u@example.com")
    ensure_owner_or_admin(store, {"email": "a@example.com"}, "u@example.com")
    with pytest.raises(HTTPException) as exc:
        ensure_owner_or_admin(store, {"email": "other@example.com"}, "u@example.com")
    assert exc.value.status_code == 403


def test_verify_rejects_token_without_expiry(settings):
    token = jwt.encode({"email": "a@example.com"}, settings.access_token_secret, algorithm="HS256")
    with pytest.raises(jwt.InvalidTokenError):
        verify_token(token, settings)
