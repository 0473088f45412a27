"""Unit tests for parley/healthcheck.py: no real API calls."""

import asyncio

from parley.errors import ErrorKind
from parley.healthcheck import run_health_checks
from parley.providers.base import ProviderError
from tests.conftest import FakeModelClient


async def test_all_providers_pass(catalog):
    """All providers succeed -> all marked ok, no errors."""
    client = FakeModelClient(default="OK")

    results = await run_health_checks(client, catalog, ["p1", "p2"])

    assert results == {"p1": (True, ""), "p2": (True, "")}


async def test_pings_first_model_of_each_provider(catalog):
    client = FakeModelClient(default="OK")

    await run_health_checks(client, catalog, ["openai", "anthropic"])

    assert sorted(r.model_id for r in client.calls) == ["claude-3-haiku-20240307", "gpt-4"]
    assert all("OK" in r.message for r in client.calls)


async def test_one_provider_fails(catalog):
    """One failure does not affect the other provider's result."""
    client = FakeModelClient(replies={"m1": ProviderError("p1", "Invalid API key", ErrorKind.AUTH)})

    results = await run_health_checks(client, catalog, ["p1", "p2"])

    ok, err = results["p1"]
    assert ok is False
    assert "Invalid API key" in err
    assert results["p2"] == (True, "")


async def test_provider_without_models(catalog):
    client = FakeModelClient()

    results = await run_health_checks(client, catalog, ["perplexity"])

    assert results["perplexity"] == (False, "No models in catalog for this provider")
    assert client.calls == []


async def test_timeout_reported(catalog, monkeypatch):
    monkeypatch.setattr("parley.healthcheck._TIMEOUT_SEC", 0.01)
    client = FakeModelClient()
    client.gate = asyncio.Event()

    results = await run_health_checks(client, catalog, ["p1"])

    ok, err = results["p1"]
    assert ok is False
    assert err.startswith("No reply within")


async def test_empty_provider_list(catalog):
    assert await run_health_checks(FakeModelClient(), catalog, []) == {}
