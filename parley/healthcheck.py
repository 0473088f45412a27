"""Provider health checks: ping each configured provider before a session."""

import asyncio
import logging

from parley.catalog import ModelCatalog
from parley.models import ModelDescriptor, ModelRequest
from parley.providers.base import ModelClient

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def _check_one(client: ModelClient, model: ModelDescriptor) -> tuple[str, bool, str]:
    """Ping a single provider through one of its models. Returns (provider, ok, error_message)."""
    request = ModelRequest(message=_PING_PROMPT, model_id=model.id, provider_id=model.provider_id)
    try:
        await asyncio.wait_for(client.send(request), timeout=_TIMEOUT_SEC)
        return model.provider_id, True, ""
    except TimeoutError:
        return model.provider_id, False, f"No reply within {_TIMEOUT_SEC:.0f}s"
    except Exception as exc:
        return model.provider_id, False, str(exc)


async def run_health_checks(
    client: ModelClient,
    catalog: ModelCatalog,
    providers: list[str],
) -> dict[str, tuple[bool, str]]:
    """Ping every provider in ``providers`` in parallel, using its first catalog model.

    Returns:
        Dict mapping provider id -> (ok, error_message).
        error_message is "" when ok is True.
    """
    probes: list[ModelDescriptor] = []
    results: dict[str, tuple[bool, str]] = {}
    for provider_id in providers:
        models = catalog.by_provider(provider_id)
        if not models:
            results[provider_id] = (False, "No models in catalog for this provider")
            continue
        probes.append(models[0])

    checked = await asyncio.gather(*(_check_one(client, m) for m in probes))
    for provider_id, ok, err in checked:
        if not ok:
            logger.debug("Health check failed for %s: %s", provider_id, err)
        results[provider_id] = (ok, err)
    return results
