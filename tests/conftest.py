"""Pytest fixtures for testing"""

import random
from typing import Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from farm_finance.api.dependencies import get_host_event_client
from farm_finance.api.main import create_app
from farm_finance.config import Settings
from farm_finance.domain.context import EngineContext, build_context
from farm_finance.domain.models import Farm, Farmland, OwnedVehicle
from farm_finance.infrastructure.clients.host_events import HostEventClient
from farm_finance.infrastructure.database.models import Base
from farm_finance.infrastructure.database.session import get_db
from farm_finance.infrastructure.host import InMemoryFarmHost


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_settings() -> Settings:
    """Engine settings independent of the developer's environment"""
    return Settings(_env_file=None, credit_enabled=True, starting_credit_score=650)


@pytest.fixture
def host() -> InMemoryFarmHost:
    """
    Farm 1: well-capitalised with two vehicles and no debt (score 630, Fair).
    Farm 2: cash-poor with a large legacy loan (score 450, Very Poor).
    Farmland 10 is unowned and for sale.
    """
    return InMemoryFarmHost(
        farms=[
            Farm(
                farm_id=1,
                money=200_000,
                vehicles=[
                    OwnedVehicle("T1", "Fendt 724 Vario", sell_price=80_000),
                    OwnedVehicle("T2", "Old Pickup", sell_price=30_000, repair_percent=80, paint_percent=60),
                ],
                user_ids=["player-1"],
            ),
            Farm(farm_id=2, money=1_000, loan=50_000, user_ids=["player-2"]),
        ],
        farmlands=[Farmland(10, "North Field", price=120_000, area_ha=12.5)],
    )


@pytest.fixture
def context(host: InMemoryFarmHost, test_settings: Settings) -> EngineContext:
    """Engine services with a seeded random source"""
    return build_context(host, test_settings, rng=random.Random(42))


@pytest.fixture
def webhook_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def client(db: Session, context: EngineContext, webhook_requests: list[httpx.Request]) -> TestClient:
    """Create FastAPI test client with test database and a recording webhook transport"""
    app = create_app(context)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    def record(request: httpx.Request) -> httpx.Response:
        webhook_requests.append(request)
        return httpx.Response(200)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_host_event_client] = lambda: HostEventClient(transport=httpx.MockTransport(record))
    return TestClient(app)
