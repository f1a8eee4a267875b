import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from tracker_api.server import create_app, get_store
from tracker_api.store import StateStore


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    return all(doc.get(k) == v for k, v in query.items())


def _project(doc: Dict[str, Any], projection: Optional[Dict[str, int]]) -> Dict[str, Any]:
    # Only exclusion projections like {"_id": 0} are used by the store
    if not projection:
        return doc
    excluded = {k for k, v in projection.items() if v == 0}
    return {k: v for k, v in doc.items() if k not in excluded}


class FakeCollection:
    """In-memory stand-in for the motor collection the store talks to."""

    def __init__(self, docs: Optional[List[Dict[str, Any]]] = None):
        self.docs: List[Dict[str, Any]] = [copy.deepcopy(d) for d in docs or []]
        self.indexes: List[tuple] = []
        self.writes = 0
        self.error: Optional[Exception] = None

    def _check(self) -> None:
        if self.error is not None:
            raise self.error

    async def create_index(self, key: str, unique: bool = False) -> str:
        self._check()
        self.indexes.append((key, unique))
        return f"{key}_1"

    async def find_one(self, query: Dict[str, Any], projection: Optional[Dict[str, int]] = None):
        self._check()
        for doc in self.docs:
            if _matches(doc, query):
                return _project(copy.deepcopy(doc), projection)
        return None

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any], upsert: bool = False) -> None:
        self._check()
        to_set = copy.deepcopy(update.get("$set", {}))
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(to_set)
                self.writes += 1
                return
        if upsert:
            doc = dict(query)
            doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
            doc.update(to_set)
            self.docs.append(doc)
            self.writes += 1

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        for doc in self.docs:
            if doc.get("userId") == user_id:
                return doc
        return None


def clock_at(*args: int):
    """A clock frozen at the given UTC wall time."""
    instant = datetime(*args, tzinfo=timezone.utc)
    return lambda: instant


@pytest.fixture
def collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def make_client(collection):
    """Build a TestClient whose store uses ``collection`` and a frozen clock."""

    def _make(clock=None, cors_origins=None, raise_server_exceptions=True) -> TestClient:
        app = create_app(cors_origins=[] if cors_origins is None else cors_origins)
        app.dependency_overrides[get_store] = lambda: StateStore(collection, clock=clock)
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)

    return _make
