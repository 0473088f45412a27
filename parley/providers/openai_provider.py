"""OpenAI provider using openai SDK with native async.

Also serves OpenAI-compatible endpoints (Perplexity) through ``base_url``.
"""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import ProviderConfig
from parley.errors import ErrorKind
from parley.models import ModelReply, ModelRequest
from parley.providers.base import ProviderClient, ProviderError, classify_error

logger = logging.getLogger(__name__)


class OpenAIProvider(ProviderClient):
    """OpenAI chat-completions provider via openai SDK."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}", ErrorKind.AUTH)
        if config.base_url:
            self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)
        else:
            self._client = AsyncOpenAI(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    async def send(self, request: ModelRequest) -> ModelReply:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=request.model_id,
                    messages=[
                        {"role": "system", "content": self._config.system_prompt},
                        {"role": "user", "content": request.prompt()},
                    ],
                    max_tokens=self._config.max_tokens,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(
                self._config.name,
                f"Request timed out after {self._config.timeout_sec}s",
                ErrorKind.TIMEOUT,
            ) from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}", classify_error(exc)) from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info(
            "%s %s: %.2fs, %s tokens",
            self._config.name,
            request.model_id,
            latency,
            token_count,
        )

        return ModelReply(
            content=choice.message.content,
            model_id=request.model_id,
            provider_id=self._config.name,
            latency_sec=latency,
            token_count=token_count,
        )
