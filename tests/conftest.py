"""
Pytest configuration and fixtures for SilentAid tests
"""
import pytest
from fastapi.testclient import TestClient

from silentaid.client.storage import MemoryStore, ProfileStore
from silentaid.config import Settings
from silentaid.main import create_app
from silentaid.store import MemoryDocumentStore, StoreError


class FakeClock:
    """Millisecond clock stepped by hand."""

    def __init__(self, start_ms=0):
        self.ms = start_ms

    def __call__(self):
        return self.ms

    def advance(self, ms):
        self.ms += ms


class RecordingDelivery:
    def __init__(self):
        self.payloads = []

    def send(self, payload):
        self.payloads.append(payload)


class FailingCollection:
    def put(self, data):
        raise StoreError("backend down")

    def get(self, doc_id):
        raise StoreError("backend down")

    def list(self, where=None, limit=None):
        raise StoreError("backend down")


class FailingStore:
    def collection(self, name):
        return FailingCollection()


class BrokenCollection:
    """Raises something the store layer never wraps."""

    def put(self, data):
        raise RuntimeError("driver crashed")

    def get(self, doc_id):
        raise KeyError(doc_id)

    def list(self, where=None, limit=None):
        raise RuntimeError("driver crashed")


class BrokenStore:
    def collection(self, name):
        return BrokenCollection()


@pytest.fixture
def settings():
    return Settings(storage_backend="memory", log_format="console")


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def app(settings, store):
    """Create the FastAPI application on an in-memory document store"""
    return create_app(settings=settings, store=store)


@pytest.fixture
def client(app):
    """Create a test client for the FastAPI application"""
    return TestClient(app)


@pytest.fixture
def failing_client(settings):
    return TestClient(create_app(settings=settings, store=FailingStore()))


@pytest.fixture
def broken_client(settings):
    # unhandled errors should reach the JSON handler, not the test
    return TestClient(create_app(settings=settings, store=BrokenStore()), raise_server_exceptions=False)


@pytest.fixture
def profiles():
    return ProfileStore(MemoryStore(), clock=lambda: 1700000000.0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def delivery():
    return RecordingDelivery()
