from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

import newsdesk.utils.deps as deps
from newsdesk.utils.security import create_access_token, decode_token

from conftest import auth_headers


class _User:
    def __init__(self, *, id: int = 1, username: str = "u", role: str = deps.Role.USER, is_active: bool = True) -> None:
        self.id = id
        self.username = username
        self.role = role
        self.is_active = is_active


class _Result:
    def __init__(self, user):
        self._user = user

    def scalar_one_or_none(self):
        return self._user


class _DB:
    def __init__(self, user):
        self._user = user
        self.executed = []

    async def execute(self, stmt):
        self.executed.append(stmt)
        return _Result(self._user)


def _cred(token: str = "t") -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def test_token_roundtrip_and_expiry() -> None:
    payload = decode_token(create_access_token(42))
    assert payload is not None and payload["sub"] == "42"
    assert decode_token(create_access_token(42, expires_delta=timedelta(seconds=-5))) is None
    assert decode_token("not-a-token") is None


@pytest.mark.asyncio
async def test_get_current_user_missing_credentials_401() -> None:
    with pytest.raises(HTTPException) as e:
        await deps.get_current_user(db=_DB(_User()), credentials=None)
    assert e.value.status_code == 401
    assert e.value.headers and e.value.headers.get("WWW-Authenticate")


@pytest.mark.asyncio
async def test_get_current_user_bad_tokens_401(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(deps, "decode_token", lambda _t: None)
    with pytest.raises(HTTPException) as e1:
        await deps.get_current_user(db=_DB(_User()), credentials=_cred("bad"))
    assert e1.value.status_code == 401

    monkeypatch.setattr(deps, "decode_token", lambda _t: {"sub": "abc"})
    with pytest.raises(HTTPException) as e2:
        await deps.get_current_user(db=_DB(_User()), credentials=_cred())
    assert e2.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user_missing_or_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(deps, "decode_token", lambda _t: {"sub": "1"})
    with pytest.raises(HTTPException) as e1:
        await deps.get_current_user(db=_DB(None), credentials=_cred())
    assert e1.value.status_code == 401

    with pytest.raises(HTTPException) as e2:
        await deps.get_current_user(db=_DB(_User(is_active=False)), credentials=_cred())
    assert e2.value.status_code == 403

    user = _User()
    assert await deps.get_current_user(db=_DB(user), credentials=_cred()) is user


@pytest.mark.asyncio
async def test_get_current_user_optional_swallows_auth_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    assert await deps.get_current_user_optional(db=_DB(_User()), credentials=None) is None
    monkeypatch.setattr(deps, "decode_token", lambda _t: None)
    assert await deps.get_current_user_optional(db=_DB(_User()), credentials=_cred()) is None


@pytest.mark.asyncio
async def test_role_requirements() -> None:
    reader = _User(role=deps.Role.USER)
    author = _User(role=deps.Role.AUTHOR)
    editor = _User(role=deps.Role.EDITOR)
    admin = _User(role=deps.Role.ADMIN)

    assert await deps.require_author(author) is author
    assert await deps.require_editor(editor) is editor
    assert await deps.require_admin(admin) is admin
    assert await deps.require_editor(admin) is admin

    for check, user in ((deps.require_author, reader), (deps.require_editor, author), (deps.require_admin, editor)):
        with pytest.raises(HTTPException) as e:
            await check(user)
        assert e.value.status_code == 403


@pytest.mark.asyncio
async def test_auth_through_http(client, make_user) -> None:
    reader = await make_user("user")
    editor = await make_user("editor")

    res = await client.get("/api/comments")
    assert res.status_code == 401

    res = await client.get("/api/comments", headers=auth_headers(reader))
    assert res.status_code == 403

    res = await client.get("/api/comments", headers=auth_headers(editor))
    assert res.status_code == 200
