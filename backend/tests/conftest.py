from datetime import datetime

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from familybank.core.clock import FixedClock, GetClock
from familybank.core.storage import ResetStorageReady
from familybank.db import Base, CreateDbEngine, GetDb
from familybank.modules.accounts.models import JarType
from familybank.modules.accounts.services.jar_service import CreateAccount
from familybank.modules.ledger.services.balance_service import AdjustJar
from familybank.modules.notifications.services import ClearDomainEventSubscribers

PARENT_ID = 100
OTHER_PARENT_ID = 200
CHILD_USER_ID = 300
JWT_SECRET = "test-jwt-secret"
CRON_SECRET = "test-cron-secret"

EVEN_PERCENTAGES = {
    JarType.TOYS: 20,
    JarType.BOOKS: 20,
    JarType.SHOPPING: 20,
    JarType.CHARITY: 20,
    JarType.WISHLIST: 20,
}


@pytest.fixture
def engine():
    created = CreateDbEngine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(created)
    yield created
    Base.metadata.drop_all(created)
    created.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    # Wednesday
    return FixedClock(datetime(2025, 1, 15, 9, 30))


@pytest.fixture(autouse=True)
def _isolate_subscribers():
    ClearDomainEventSubscribers()
    yield
    ClearDomainEventSubscribers()


@pytest.fixture
def account(db, clock):
    return CreateAccount(
        db,
        parent_user_id=PARENT_ID,
        name="Mia",
        age=9,
        percentages=EVEN_PERCENTAGES,
        clock=clock,
    )


def Fund(db, account_id: int, jar_type: JarType, amount: int, clock) -> None:
    AdjustJar(
        db,
        account_id=account_id,
        jar_type=jar_type,
        delta=amount,
        description="Opening balance",
        actor_user_id=PARENT_ID,
        clock=clock,
    )


def AuthHeaders(user_id: int, role: str, account_id: int | None = None) -> dict:
    claims = {"sub": str(user_id), "role": role}
    if account_id is not None:
        claims["account_id"] = account_id
    token = jwt.encode(claims, JWT_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(session_factory, clock, monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", JWT_SECRET)
    monkeypatch.setenv("CRON_SECRET", CRON_SECRET)
    monkeypatch.delenv("NOTIFY_WEBHOOK_URL", raising=False)

    from familybank.main import app

    def _override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[GetDb] = _override_db
    app.dependency_overrides[GetClock] = lambda: clock
    ResetStorageReady()
    yield TestClient(app)
    app.dependency_overrides.clear()
    ResetStorageReady()
