import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from taskboard.core.database import Base, SessionLocal, engine  # noqa: E402
from taskboard.core.deps import get_login_rate_limiter  # noqa: E402
from taskboard.main import app  # noqa: E402


class InMemoryRateLimiter:
    def __init__(self, limit: int = 5):
        self.limit = limit
        self.counts: dict[str, int] = {}

    def hit(self, key: str) -> bool:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key] <= self.limit

    def reset(self, key: str) -> None:
        self.counts.pop(key, None)


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def rate_limiter():
    return InMemoryRateLimiter()


@pytest.fixture()
def client(rate_limiter):
    app.dependency_overrides[get_login_rate_limiter] = lambda: rate_limiter
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
