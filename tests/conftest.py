"""Shared fixtures for pixelforge tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import httpx
import pytest
from dotenv import load_dotenv

# Auto-load .env from project root (gitignored).
# This provides REPLICATE_API_TOKEN for integration tests.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env", override=False)

from mock_transport import BASE_URL, GEMINI_BASE_URL, FakeProviderAPI

from pixelforge.config import PlatformConfig
from pixelforge.errors import StorageError
from pixelforge.models import GenerationKind, GenerationRequest
from pixelforge.orchestrator import GenerationOrchestrator
from pixelforge.providers.prediction import PredictionClient

# ---------------------------------------------------------------------------
# Auto-skip integration tests when provider credentials are unavailable
# ---------------------------------------------------------------------------


def _integration_enabled() -> bool:
    """Integration tests run only when explicitly enabled with a real token."""
    if os.environ.get("PIXELFORGE_RUN_INTEGRATION", "").strip().lower() not in (
        "1",
        "true",
        "yes",
        "on",
    ):
        return False
    return bool(os.environ.get("REPLICATE_API_TOKEN", ""))


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Auto-skip integration tests when no provider token is available."""
    if _integration_enabled():
        return
    skip_marker = pytest.mark.skip(
        reason=(
            "Integration test skipped: set PIXELFORGE_RUN_INTEGRATION=1 and "
            "REPLICATE_API_TOKEN."
        )
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)


# ---------------------------------------------------------------------------
# Provider fixtures (scripted HTTP)
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_api() -> FakeProviderAPI:
    """A fresh scripted provider API."""
    return FakeProviderAPI()


@pytest.fixture()
def http_client(fake_api: FakeProviderAPI) -> httpx.AsyncClient:
    """An AsyncClient whose every request is answered by *fake_api*."""
    return httpx.AsyncClient(transport=fake_api.transport)


@pytest.fixture()
def prediction_client(http_client: httpx.AsyncClient) -> PredictionClient:
    """A prediction client that polls without sleeping."""
    return PredictionClient(BASE_URL, poll_interval=0, http_client=http_client)


@pytest.fixture()
def platform_config() -> PlatformConfig:
    """Platform config with only a polling-provider token."""
    return PlatformConfig(
        replicate_api_token="platform-token",
        replicate_base_url=BASE_URL,
        gemini_base_url=GEMINI_BASE_URL,
        poll_interval=0,
    )


@pytest.fixture()
def orchestrator(
    platform_config: PlatformConfig,
    prediction_client: PredictionClient,
    http_client: httpx.AsyncClient,
) -> GenerationOrchestrator:
    return GenerationOrchestrator(platform_config, prediction_client, http_client)


@pytest.fixture()
def sprite_request() -> GenerationRequest:
    """A single-image sprite request."""
    return GenerationRequest(
        kind=GenerationKind.SPRITE,
        prompt="a knight with a red cape",
        quantity=1,
    )


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class InMemoryLedger:
    """Credit ledger backed by a dict."""

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self.balances = dict(balances or {})
        self.deductions: list[tuple[str, int]] = []

    async def current_balance(self, user_id: str) -> int:
        return self.balances.get(user_id, 0)

    async def deduct(self, user_id: str, amount: int) -> None:
        self.deductions.append((user_id, amount))
        self.balances[user_id] = self.balances.get(user_id, 0) - amount


class InMemoryBlobStore:
    """Blob store that keeps writes in a dict and can fail on demand."""

    def __init__(self, fail_on: set[int] | None = None) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.keys: list[str] = []
        self._fail_on = fail_on or set()
        self._calls = 0

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        self._calls += 1
        if self._calls in self._fail_on:
            raise StorageError(f"scripted failure for {key}")
        self.objects[key] = (data, content_type)
        self.keys.append(key)
        return f"https://storage.test/{key}"


class InMemoryAssetStore:
    def __init__(self) -> None:
        self.records: list[dict[str, Any]] = []

    async def create(self, record: dict[str, Any]) -> dict[str, Any]:
        saved = {"id": f"asset-{len(self.records) + 1}", **record}
        self.records.append(saved)
        return saved


class StaticIdentity:
    def __init__(self, tokens: dict[str, str]) -> None:
        self.tokens = tokens

    async def verify(self, token: str) -> str | None:
        return self.tokens.get(token)


@pytest.fixture()
def ledger() -> InMemoryLedger:
    """A ledger where ``user-1`` holds 100 credits and ``poor`` holds 2."""
    return InMemoryLedger({"user-1": 100, "poor": 2})


@pytest.fixture()
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture()
def asset_store() -> InMemoryAssetStore:
    return InMemoryAssetStore()


@pytest.fixture()
def identity() -> StaticIdentity:
    return StaticIdentity({"good-token": "user-1"})


class InMemoryProjectStore:
    def __init__(self) -> None:
        self.projects: list[dict[str, Any]] = []

    async def create(self, project: dict[str, Any]) -> dict[str, Any]:
        saved = {"id": f"project-{len(self.projects) + 1}", **project}
        self.projects.append(saved)
        return saved
