"""xAI Grok provider using openai SDK (OpenAI-compatible API)."""

from config.config_loader import ProviderConfig
from parley.providers.base import ProviderError
from parley.providers.openai_provider import OpenAIProvider


class XAIProvider(OpenAIProvider):
    """xAI Grok provider via OpenAI-compatible API."""

    def __init__(self, config: ProviderConfig) -> None:
        if not config.base_url:
            raise ProviderError(config.name, "base_url is required for xAI provider")
        super().__init__(config)
