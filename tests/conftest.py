"""Shared pytest fixtures for httpx-metrics tests."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest


class FakeClock:
    """Clock returning preset timestamps, one per call."""

    def __init__(self, *values: float) -> None:
        self._values = list(values)
        self.calls = 0

    def __call__(self) -> float:
        self.calls += 1
        return self._values.pop(0)


class Recorder:
    """Collects (metric, original) pairs handed to callbacks."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, Any]] = []

    def __call__(self, metric: Any, original: Any) -> None:
        self.calls.append((metric, original))

    @property
    def metrics(self) -> list[Any]:
        return [metric for metric, _ in self.calls]


@pytest.fixture
def fake_clock() -> Callable[..., FakeClock]:
    return FakeClock


@pytest.fixture
def recorder() -> Callable[[], Recorder]:
    return Recorder


@pytest.fixture
def ok_transport() -> httpx.MockTransport:
    """Transport answering every request with 200 and a small JSON body."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"path": request.url.path})

    return httpx.MockTransport(handler)


@pytest.fixture
def failing_transport() -> httpx.MockTransport:
    """Transport whose every request times out while connecting."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out")

    return httpx.MockTransport(handler)
