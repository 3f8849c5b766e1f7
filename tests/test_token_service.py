import base64
from datetime import timedelta
from urllib.parse import parse_qs

import httpx
import pytest

from tradesapp.domain.integrations.xero.exceptions import NotConnected, PersistenceError, RefreshFailed
from tradesapp.domain.integrations.xero.repository import XeroTokenRepository
from tradesapp.domain.integrations.xero.token_service import (
    TokenState,
    ensure_valid_access_token,
    utcnow,
)
from tradesapp.models_xero import XeroToken

TOKEN_PATH = "/connect/token"


def _expire_in(db_session, token_row, delta):
    token_row.expires_at = utcnow() + delta
    db_session.commit()


def _refresh_response(access_token="access-new", refresh_token="refresh-new", expires_in=1800):
    body = {"access_token": access_token, "expires_in": expires_in, "token_type": "Bearer"}
    if refresh_token:
        body["refresh_token"] = refresh_token
    return body


def test_fresh_token_returns_cached_value_without_network(run_with_context, connected_token, xero_stub):
    access_token, ctx = run_with_context(ensure_valid_access_token)

    assert access_token == "access-current"
    assert xero_stub.requests == []
    assert ctx.token.access_token == "access-current"


@pytest.mark.parametrize("delta", [timedelta(minutes=4), timedelta(seconds=0), timedelta(hours=-2)])
def test_token_inside_buffer_is_refreshed_once(db_session, run_with_context, connected_token, xero_stub, delta):
    _expire_in(db_session, connected_token, delta)
    xero_stub.on("POST", TOKEN_PATH, json=_refresh_response())

    before = utcnow()
    access_token, ctx = run_with_context(ensure_valid_access_token)
    after = utcnow()

    assert access_token == "access-new"
    assert len(xero_stub.calls("POST", TOKEN_PATH)) == 1

    db_session.expire_all()
    stored = db_session.query(XeroToken).filter(XeroToken.user_id == connected_token.user_id).one()
    assert stored.access_token == "access-new"
    assert stored.refresh_token == "refresh-new"
    assert before + timedelta(seconds=1800) <= stored.expires_at <= after + timedelta(seconds=1800)
    assert ctx.token.access_token == "access-new"
    assert ctx.token.expires_at == stored.expires_at


def test_refresh_request_uses_basic_auth_and_refresh_grant(db_session, run_with_context, connected_token, xero_stub):
    _expire_in(db_session, connected_token, timedelta(minutes=1))
    xero_stub.on("POST", TOKEN_PATH, json=_refresh_response())

    run_with_context(ensure_valid_access_token)

    request = xero_stub.calls("POST", TOKEN_PATH)[0]
    expected = base64.b64encode(b"client-123:secret-456").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"
    form = parse_qs(request.content.decode())
    assert form == {"grant_type": ["refresh_token"], "refresh_token": ["refresh-current"]}


def test_refresh_keeps_old_refresh_token_when_none_returned(db_session, run_with_context, connected_token, xero_stub):
    _expire_in(db_session, connected_token, timedelta(minutes=-5))
    xero_stub.on("POST", TOKEN_PATH, json=_refresh_response(refresh_token=None))

    _, ctx = run_with_context(ensure_valid_access_token)

    assert ctx.token.refresh_token == "refresh-current"
    db_session.expire_all()
    assert db_session.get(XeroToken, connected_token.id).refresh_token == "refresh-current"


def test_rejected_refresh_raises_and_leaves_store_untouched(db_session, run_with_context, connected_token, xero_stub):
    _expire_in(db_session, connected_token, timedelta(minutes=-5))
    xero_stub.on("POST", TOKEN_PATH, status=400, json={"error": "invalid_grant"})

    with pytest.raises(RefreshFailed):
        run_with_context(ensure_valid_access_token)

    assert len(xero_stub.calls("POST", TOKEN_PATH)) == 1
    db_session.expire_all()
    assert db_session.get(XeroToken, connected_token.id).access_token == "access-current"


def test_refresh_transport_error_is_refresh_failed(db_session, run_with_context, connected_token, xero_stub):
    _expire_in(db_session, connected_token, timedelta(minutes=-5))

    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    xero_stub.on_call("POST", TOKEN_PATH, boom)

    with pytest.raises(RefreshFailed):
        run_with_context(ensure_valid_access_token)


def test_new_token_is_not_used_when_persisting_fails(
    db_session, run_with_context, connected_token, xero_stub, monkeypatch
):
    _expire_in(db_session, connected_token, timedelta(minutes=-5))
    xero_stub.on("POST", TOKEN_PATH, json=_refresh_response())

    def failing_save(*args, **kwargs):
        raise PersistenceError("disk full")

    monkeypatch.setattr(XeroTokenRepository, "save_refreshed_tokens", staticmethod(failing_save))
    state = TokenState.from_row(connected_token)

    async def scenario(db, ctx):
        with pytest.raises(PersistenceError):
            await ensure_valid_access_token(db, ctx)
        return ctx.token

    token_after, _ = run_with_context(scenario, token_state=state)
    assert token_after is state


def test_missing_access_token_is_not_connected(db_session, run_with_context, connected_token, xero_stub):
    connected_token.access_token = None
    db_session.commit()

    with pytest.raises(NotConnected):
        run_with_context(ensure_valid_access_token)
    assert xero_stub.requests == []


def test_no_token_row_is_not_connected(run_with_context, xero_stub):
    with pytest.raises(NotConnected):
        run_with_context(ensure_valid_access_token)
    assert xero_stub.requests == []


def test_is_fresh_uses_five_minute_buffer():
    now = utcnow()
    assert TokenState(expires_at=now + timedelta(minutes=6)).is_fresh(now)
    assert not TokenState(expires_at=now + timedelta(minutes=5)).is_fresh(now)
    assert not TokenState(expires_at=now - timedelta(minutes=1)).is_fresh(now)
    assert not TokenState(expires_at=None).is_fresh(now)
