import pytest
from fastapi import HTTPException
from starlette.requests import Request

from conftest import CHILD_USER_ID, JWT_SECRET, PARENT_ID, AuthHeaders
from familybank.modules.auth.deps import (
    ROLE_CHILD,
    ROLE_PARENT,
    RequireAuthenticated,
    RequireChild,
    RequireParent,
    UserContext,
)


def _Request(headers: dict) -> Request:
    raw = [(key.lower().encode(), value.encode()) for key, value in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


def test_parent_checker_allows_parent():
    checker = RequireParent()
    user = UserContext(Id=PARENT_ID, Role=ROLE_PARENT)
    assert checker(user) == user


def test_parent_checker_denies_child():
    checker = RequireParent()
    user = UserContext(Id=CHILD_USER_ID, Role=ROLE_CHILD, AccountId=1)
    with pytest.raises(HTTPException) as exc:
        checker(user)
    assert exc.value.status_code == 403


def test_child_checker_allows_child():
    checker = RequireChild()
    user = UserContext(Id=CHILD_USER_ID, Role=ROLE_CHILD, AccountId=1)
    assert checker(user) == user


def test_child_checker_denies_parent():
    checker = RequireChild()
    user = UserContext(Id=PARENT_ID, Role=ROLE_PARENT)
    with pytest.raises(HTTPException) as exc:
        checker(user)
    assert exc.value.status_code == 403


def test_authenticated_reads_child_claims(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", JWT_SECRET)
    request = _Request(AuthHeaders(CHILD_USER_ID, "child", account_id=7))

    user = RequireAuthenticated(request)

    assert user == UserContext(Id=CHILD_USER_ID, Role=ROLE_CHILD, AccountId=7)


def test_authenticated_requires_bearer_token(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", JWT_SECRET)
    with pytest.raises(HTTPException) as exc:
        RequireAuthenticated(_Request({}))
    assert exc.value.status_code == 401


def test_authenticated_rejects_bad_signature(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", "a-different-secret")
    with pytest.raises(HTTPException) as exc:
        RequireAuthenticated(_Request(AuthHeaders(PARENT_ID, ROLE_PARENT)))
    assert exc.value.status_code == 401


def test_authenticated_rejects_unknown_role(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", JWT_SECRET)
    with pytest.raises(HTTPException) as exc:
        RequireAuthenticated(_Request(AuthHeaders(PARENT_ID, "admin")))
    assert exc.value.status_code == 403


def test_child_token_without_account_is_rejected(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", JWT_SECRET)
    with pytest.raises(HTTPException) as exc:
        RequireAuthenticated(_Request(AuthHeaders(CHILD_USER_ID, ROLE_CHILD)))
    assert exc.value.status_code == 401
