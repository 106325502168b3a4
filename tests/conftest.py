# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-quadvote")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NOTIFY_BACKEND", "memory")

from quadvote.api.v1 import dependencies as api_dependencies
from quadvote.core.security import ROLE_SERVICE, create_access_token
from quadvote.db.session import Base, build_engine, configure_sqlite_engine
from quadvote.db.session import get_db as app_get_session
from quadvote.main import app as fastapi_app
from quadvote.services.aggregation import VoteAggregator
from quadvote.services.ledger import CreditLedger
from quadvote.services.notifications import InMemoryChangeNotifier
from quadvote.services.privacy import PrivacyLayer, TallyKeyPair, generate_keypair
from quadvote.services.voting import VotingEngine

TEST_DB_URL = "sqlite://"
TEST_TALLY_MAX_TOTAL = 10_000
SERVICE_ID = "quadvote-service"


class FrozenClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture()
def db_engine() -> Generator[Engine, None, None]:
    engine = configure_sqlite_engine(
        create_engine(
            TEST_DB_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(db_engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def file_session_factory(tmp_path: Path) -> Iterator[sessionmaker[Session]]:
    """Sessions on a file-backed database, one connection per thread."""
    engine = build_engine(f"sqlite:///{tmp_path / 'quadvote.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(
            bind=engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    finally:
        engine.dispose()


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def notifier() -> InMemoryChangeNotifier:
    return InMemoryChangeNotifier()


@pytest.fixture(scope="session")
def tally_keypair() -> TallyKeyPair:
    return generate_keypair()


@pytest.fixture()
def privacy(tally_keypair: TallyKeyPair) -> PrivacyLayer:
    return PrivacyLayer(
        tally_keypair.public_key,
        tally_keypair.secret_key,
        max_total=TEST_TALLY_MAX_TOTAL,
    )


@pytest.fixture()
def ledger(
    db_session: Session,
    notifier: InMemoryChangeNotifier,
    clock: FrozenClock,
) -> CreditLedger:
    return CreditLedger(db_session, notifier, clock=clock)


@pytest.fixture()
def aggregator(
    db_session: Session,
    notifier: InMemoryChangeNotifier,
    clock: FrozenClock,
) -> VoteAggregator:
    return VoteAggregator(db_session, notifier, clock=clock)


@pytest.fixture()
def voting(
    db_session: Session,
    ledger: CreditLedger,
    aggregator: VoteAggregator,
    privacy: PrivacyLayer,
    clock: FrozenClock,
) -> VotingEngine:
    return VotingEngine(
        db_session,
        ledger=ledger,
        aggregator=aggregator,
        privacy=privacy,
        clock=clock,
    )


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    notifier: InMemoryChangeNotifier,
    privacy: PrivacyLayer,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[api_dependencies.get_notifier_dep] = lambda: notifier
    app.dependency_overrides[api_dependencies.get_privacy_dep] = lambda: privacy
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_headers() -> Callable[..., dict[str, str]]:
    """Return a factory producing bearer headers for any subject and role."""

    def _make(user_id: str, role: str = "user") -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id, role=role)}"}

    return _make


@pytest.fixture()
def auth_token(make_headers: Callable[..., dict[str, str]]) -> dict[str, str]:
    """Authorization headers for the primary test user, ``alice``."""
    return make_headers("alice")


@pytest.fixture()
def other_auth_token(make_headers: Callable[..., dict[str, str]]) -> dict[str, str]:
    """Authorization headers for the secondary test user, ``bob``."""
    return make_headers("bob")


@pytest.fixture()
def service_token(make_headers: Callable[..., dict[str, str]]) -> dict[str, str]:
    """Authorization headers for the service identity."""
    return make_headers(SERVICE_ID, role=ROLE_SERVICE)
