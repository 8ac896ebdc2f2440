"""
Shared test fixtures — API test client, fake autocomplete fetchers.
"""

import asyncio
import os

import pytest
from fastapi.testclient import TestClient

# Settings are read at import time
os.environ.setdefault("LOG_LEVEL", "WARNING")

from quantity_backend.main import app


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


class FakeFetcher:
    """
    Stands in for the search service.

    responses: {query_text: [suggestions]} — unknown queries return []
    error: raised on every call when set
    gates: {query_text: asyncio.Event} — the response waits for the event,
           so tests can control the order responses arrive in
    """

    def __init__(self, responses=None, error=None, gates=None):
        self.responses = responses or {}
        self.error = error
        self.gates = gates or {}
        self.urls = []

    async def __call__(self, url):
        from urllib.parse import urlparse, parse_qs
        self.urls.append(url)
        query = parse_qs(urlparse(url).query).get("q", [""])[0]
        gate = self.gates.get(query)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        return {"suggestions": list(self.responses.get(query, []))}

    @property
    def call_count(self):
        return len(self.urls)


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run
