"""Shared fixtures for the test suite."""

from __future__ import annotations

import base64
from io import BytesIO
from typing import Callable

import pytest
from PIL import Image

from damagesim.config.settings import get_settings


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeScheduler:
    """Records scheduled jobs so tests can fire them explicitly."""

    def __init__(self) -> None:
        self.jobs: dict[str, tuple[float, Callable[[], object]]] = {}

    def schedule_every(self, interval_seconds: float, callback: Callable[[], object], name: str) -> None:
        self.jobs[name] = (interval_seconds, callback)

    def cancel(self, name: str) -> None:
        self.jobs.pop(name, None)

    def fire(self, name: str) -> object:
        return self.jobs[name][1]()


def make_image_uri(width: int, height: int, fmt: str = "PNG", mode: str = "RGB") -> str:
    img = Image.new(mode, (width, height), color=(200, 30, 30) if mode == "RGB" else (200, 30, 30, 128))
    buffer = BytesIO()
    img.save(buffer, format=fmt)
    mime = f"image/{fmt.lower()}"
    return f"data:{mime};base64,{base64.b64encode(buffer.getvalue()).decode('ascii')}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def product_image() -> str:
    return make_image_uri(64, 48)


@pytest.fixture
def image_uri() -> Callable[..., str]:
    return make_image_uri


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AITUNNEL_API_KEY", "test-aitunnel")
    monkeypatch.setenv("AITUNNEL_BASE_URL", "https://aitunnel.test/v1")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
