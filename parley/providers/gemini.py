"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ProviderConfig
from parley.errors import ErrorKind
from parley.models import ModelReply, ModelRequest
from parley.providers.base import ProviderClient, ProviderError, classify_error

logger = logging.getLogger(__name__)


class GeminiProvider(ProviderClient):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}", ErrorKind.AUTH)
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    async def send(self, request: ModelRequest) -> ModelReply:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=request.model_id,
                    contents=request.prompt(),
                    config=genai_types.GenerateContentConfig(
                        max_output_tokens=self._config.max_tokens,
                        system_instruction=self._config.system_prompt,
                    ),
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

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini %s: %.2fs, %s tokens", request.model_id, latency, token_count)

        return ModelReply(
            content=response.text,
            model_id=request.model_id,
            provider_id=self._config.name,
            latency_sec=latency,
            token_count=token_count,
        )
