import asyncio
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")
os.environ.setdefault("APP_URL", "http://localhost:3000")

from datetime import timedelta  # noqa: E402
from typing import Callable, Optional  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tradesapp import models, models_xero  # noqa: E402, F401
from tradesapp.auth import get_current_profile  # noqa: E402
from tradesapp.database import Base, get_db  # noqa: E402
from tradesapp.domain.integrations.xero.client import (  # noqa: E402
    XeroRequestContext,
    get_xero_http_client,
)
from tradesapp.domain.integrations.xero.token_service import TokenState, utcnow  # noqa: E402
from tradesapp.main import app  # noqa: E402
from tradesapp.models import Profile  # noqa: E402
from tradesapp.models_xero import XeroToken  # noqa: E402

FROM_DB = object()


class XeroStub:
    """Routes outbound Xero calls to canned responses and records every request"""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, method: str, path: str, status: int = 200, json=None, text: Optional[str] = None):
        def respond(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status, text=text)
            return httpx.Response(status, json=json)

        self._routes[(method, path)] = respond

    def on_call(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]):
        self._routes[(method, path)] = handler

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self._routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"Message": f"No stub for {request.method} {request.url.path}"})
        return route(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def profile(db_session):
    row = Profile(
        auth_provider="google",
        auth_provider_id="google-sub-1",
        email="sam@sparkyco.com.au",
        full_name="Sam Sparks",
        trade="electrician",
        default_labour_rate=95.0,
        default_markup_pct=20.0,
    )
    db_session.add(row)
    db_session.commit()
    db_session.refresh(row)
    return row


@pytest.fixture
def connected_token(db_session, profile):
    row = XeroToken(
        user_id=profile.id,
        client_id="client-123",
        client_secret="secret-456",
        access_token="access-current",
        refresh_token="refresh-current",
        expires_at=utcnow() + timedelta(hours=1),
        scope="accounting.contacts offline_access",
        tenant_id="tenant-1",
        tenant_name="Sparky Co",
        tenant_type="ORGANISATION",
    )
    db_session.add(row)
    db_session.commit()
    db_session.refresh(row)
    return row


@pytest.fixture
def xero_stub():
    return XeroStub()


@pytest.fixture
def run_with_context(db_session, profile, xero_stub):
    """Run ``scenario(db, ctx)`` inside a fresh request context built from the stored token"""

    def run(scenario, token_state=FROM_DB):
        if token_state is FROM_DB:
            row = db_session.query(XeroToken).filter(XeroToken.user_id == profile.id).first()
            token_state = TokenState.from_row(row) if row else None

        async def main():
            async with xero_stub.client() as http:
                ctx = XeroRequestContext(user_id=profile.id, token=token_state, http=http)
                result = await scenario(db_session, ctx)
                return result, ctx

        return asyncio.run(main())

    return run


@pytest.fixture
def client(db_session, profile, xero_stub):
    def override_get_db():
        yield db_session

    async def override_http_client():
        async with xero_stub.client() as http:
            yield http

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_profile] = lambda: profile
    app.dependency_overrides[get_xero_http_client] = override_http_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
