from datetime import datetime, timedelta, timezone

import pytest

from database import JSONDocumentStore
from repository import CatalogRepository


class TickingClock:
    """Returns a strictly later moment on every call."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "data.json")


@pytest.fixture
def store(db_path):
    return JSONDocumentStore(db_path, seed=[])


@pytest.fixture
def repo(store):
    return CatalogRepository(store, clock=TickingClock())
