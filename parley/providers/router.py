"""Route a ModelRequest to the client configured for its provider."""

import logging
from collections.abc import Mapping

from config.config_loader import AppConfig
from parley.errors import ErrorKind
from parley.models import ModelReply, ModelRequest
from parley.providers.anthropic import AnthropicProvider
from parley.providers.base import ModelClient, ProviderClient, ProviderError
from parley.providers.gemini import GeminiProvider
from parley.providers.openai_provider import OpenAIProvider
from parley.providers.xai import XAIProvider

logger = logging.getLogger(__name__)

# Keyed by the ``sdk`` field of a provider's config.
PROVIDER_CLASSES: dict[str, type[ProviderClient]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "xai": XAIProvider,
    "gemini": GeminiProvider,
}


def build_providers(config: AppConfig) -> dict[str, ModelClient]:
    """Build a client for every provider with an API key. Returns dict keyed by provider id."""
    clients: dict[str, ModelClient] = {}
    for name in sorted(config.available_providers):
        provider_cfg = config.providers[name]
        provider_cls = PROVIDER_CLASSES.get(provider_cfg.sdk)
        if provider_cls is None:
            logger.warning("Provider '%s' uses unknown sdk '%s', skipping", name, provider_cfg.sdk)
            continue
        try:
            clients[name] = provider_cls(provider_cfg)
        except Exception as exc:
            logger.warning("Failed to instantiate provider '%s': %s", name, exc)
    return clients


class ProviderRouter(ModelClient):
    """ModelClient that forwards each request to ``clients[request.provider_id]``."""

    def __init__(self, clients: Mapping[str, ModelClient]) -> None:
        self._clients = dict(clients)

    @property
    def providers(self) -> list[str]:
        return sorted(self._clients)

    def has_provider(self, provider_id: str) -> bool:
        return provider_id in self._clients

    async def send(self, request: ModelRequest) -> ModelReply:
        client = self._clients.get(request.provider_id)
        if client is None:
            raise ProviderError(
                request.provider_id,
                f"{request.provider_id.title()} API key not configured",
                ErrorKind.AUTH,
            )
        logger.debug("Routing %s to provider %s", request.model_id, request.provider_id)
        return await client.send(request)
