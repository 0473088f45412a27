"""Abstract base for model clients, plus the provider error type."""

import asyncio
from abc import ABC, abstractmethod

from parley.errors import ErrorKind
from parley.models import ModelReply, ModelRequest


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, detail: str, kind: ErrorKind = ErrorKind.UNKNOWN) -> None:
        self.provider_name = provider_name
        self.detail = detail
        self.kind = kind
        super().__init__(f"[{provider_name}] {detail}")


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an SDK or transport exception onto an ErrorKind.

    SDK errors from openai, anthropic and google-genai all expose an HTTP
    status as ``status_code`` or ``code``.
    """
    if isinstance(exc, ProviderError):
        return exc.kind
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return ErrorKind.TIMEOUT

    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(exc, "code", None)
    if isinstance(status, int):
        if status in (401, 403):
            return ErrorKind.AUTH
        if status == 404:
            return ErrorKind.INVALID_MODEL
        if status == 429:
            return ErrorKind.RATE_LIMIT

    name = type(exc).__name__
    if "Timeout" in name:
        return ErrorKind.TIMEOUT
    if "Connection" in name or isinstance(exc, ConnectionError):
        return ErrorKind.NETWORK
    return ErrorKind.UNKNOWN


class ModelClient(ABC):
    """Sends one prompt to one model and returns its text."""

    @abstractmethod
    async def send(self, request: ModelRequest) -> ModelReply:
        """Send ``request`` and return the reply.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        ...


class ProviderClient(ModelClient):
    """A ModelClient bound to one vendor account."""

    @abstractmethod
    def name(self) -> str:
        """Return the provider id (e.g. 'anthropic', 'google')."""
        ...
