"""Shared fixtures: a fake requests session serving recorded PagerDuty pages."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import requests

FIXTURES_PATH = Path(__file__).parent / "fixtures"

ENDPOINTS = ("escalation_policies", "oncalls", "users", "services")


def load_fixture(name: str) -> dict:
    with open(FIXTURES_PATH / f"{name}.json", encoding="utf-8") as f:
        return json.load(f)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: object = None, text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> object:
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """Stands in for ``requests.Session``; routes on the last URL segment.

    ``routes`` maps an endpoint to either a list of pages (indexed by
    ``offset // limit``), a ``FakeResponse``, or an exception to raise.
    """

    def __init__(self, routes: dict):
        self.routes = routes
        self.headers: dict[str, str] = {}
        self.calls: list[tuple[str, dict]] = []

    def get(self, url: str, params: dict | None = None, timeout: float | None = None):
        params = params or {}
        self.calls.append((url, params))
        route = self.routes[url.rsplit("/", 1)[-1]]

        if isinstance(route, Exception):
            raise route
        if isinstance(route, FakeResponse):
            return route

        page = params.get("offset", 0) // params.get("limit", 100)
        return FakeResponse(payload=route[page])


@pytest.fixture
def account_routes() -> dict:
    """One page per endpoint, loaded from ``tests/fixtures``."""
    return {name: [load_fixture(name)] for name in ENDPOINTS}


@pytest.fixture
def fake_session(account_routes) -> FakeSession:
    return FakeSession(account_routes)


@pytest.fixture
def patch_session(monkeypatch, fake_session) -> FakeSession:
    """Make every ``requests.Session()`` built by the client the fake one."""
    monkeypatch.setattr(requests, "Session", lambda: fake_session)
    return fake_session
