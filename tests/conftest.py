"""Test fixtures: an app on in-memory SQLite with a fresh schema per test.

APP_ENV is forced to "test" before anything imports `models`, so the
DBStorage singleton binds to `sqlite://` instead of a file or DATABASE_URL.
"""
import os

os.environ["APP_ENV"] = "test"
os.environ.pop("DATABASE_URL", None)

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402

from api import create_app  # noqa: E402
from api.config import TestingConfig  # noqa: E402
from models import storage  # noqa: E402
from services.auth_service import AuthService  # noqa: E402
from utils.security import configure_hasher  # noqa: E402

PASSWORD = "password123"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def use_testing_hasher():
    configure_hasher(
        time_cost=TestingConfig.ARGON2_TIME_COST,
        memory_cost=TestingConfig.ARGON2_MEMORY_COST,
        parallelism=TestingConfig.ARGON2_PARALLELISM,
    )


@pytest.fixture(autouse=True)
def testing_hasher():
    """Every test starts and ends with the cheap testing work factor."""
    use_testing_hasher()
    yield
    use_testing_hasher()


@pytest.fixture(autouse=True)
def fresh_db():
    storage.reset()
    yield
    storage.close()


@pytest.fixture
def app():
    return create_app("testing")


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def codec(app):
    return app.extensions["token_codec"]


@pytest.fixture
def clock():
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def auth_service(app, codec, clock):
    """AuthService on the shared storage, driven by a frozen clock."""
    return AuthService(storage, codec, clock=clock)


@pytest.fixture
def registered_user(auth_service):
    return auth_service.register("Test User", "test.user@example.com", PASSWORD)


@pytest.fixture
def session_tokens(auth_service, registered_user):
    return auth_service.login(registered_user["email"], PASSWORD)
