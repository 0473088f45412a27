"""Shared pytest fixtures."""

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from config.config_loader import AppConfig, DefaultsConfig, DiscussionConfig, ProviderConfig
from parley.catalog import ModelCatalog
from parley.message_log import MessageLog
from parley.models import ModelDescriptor, ModelReply, ModelRequest
from parley.orchestrator import ConversationOrchestrator
from parley.providers.base import ModelClient


class FakeModelClient(ModelClient):
    """Scripted ModelClient test double.

    ``replies`` maps a model id to a reply string, an exception to raise, or
    a list of those consumed one per call. ``hooks`` run after the call is
    recorded and before the reply is produced, so a test can act while a
    call is "in flight".
    """

    def __init__(self, replies: dict | None = None, default: str = "ok") -> None:
        self.replies = replies or {}
        self.default = default
        self.calls: list[ModelRequest] = []
        self.hooks: list[Callable[[ModelRequest, int], None]] = []
        self.gate: asyncio.Event | None = None

    async def send(self, request: ModelRequest) -> ModelReply:
        self.calls.append(request)
        call_number = len(self.calls)
        if self.gate is not None:
            await self.gate.wait()
        for hook in self.hooks:
            hook(request, call_number)

        reply = self.replies.get(request.model_id, self.default)
        if isinstance(reply, list):
            reply = reply.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return ModelReply(
            content=reply,
            model_id=request.model_id,
            provider_id=request.provider_id,
            latency_sec=0.01,
            token_count=5,
        )


@pytest.fixture
def sample_models() -> list[ModelDescriptor]:
    return [
        ModelDescriptor(id="gpt-4", display_name="GPT-4", provider_id="openai"),
        ModelDescriptor(id="m1", display_name="Model One", provider_id="p1"),
        ModelDescriptor(id="m2", display_name="Model Two", provider_id="p2"),
        ModelDescriptor(id="claude-3-haiku-20240307", display_name="Claude 3 Haiku", provider_id="anthropic"),
    ]


@pytest.fixture
def catalog(sample_models: list[ModelDescriptor]) -> ModelCatalog:
    return ModelCatalog(sample_models)


@pytest.fixture
def discussion_config() -> DiscussionConfig:
    return DiscussionConfig(max_rounds=5, turn_delay_sec=0.0, poll_interval_sec=0.01)


@pytest.fixture
def fake_client() -> FakeModelClient:
    return FakeModelClient()


@pytest.fixture
def message_log() -> MessageLog:
    return MessageLog()


@pytest.fixture
def thread_id(message_log: MessageLog) -> str:
    return message_log.create_thread(name="Test thread", thread_id="t1").id


@pytest.fixture
def orchestrator(
    message_log: MessageLog,
    fake_client: FakeModelClient,
    catalog: ModelCatalog,
    discussion_config: DiscussionConfig,
) -> ConversationOrchestrator:
    return ConversationOrchestrator(
        log=message_log,
        client=fake_client,
        catalog=catalog,
        discussion=discussion_config,
    )


@pytest.fixture
def sample_provider_config() -> ProviderConfig:
    return ProviderConfig(
        name="openai",
        sdk="openai",
        api_key_env="TEST_OPENAI_KEY",
        timeout_sec=30,
        max_tokens=1024,
    )


@pytest.fixture
def sample_app_config(tmp_path: Path, sample_models: list[ModelDescriptor]) -> AppConfig:
    providers = {
        name: ProviderConfig(
            name=name,
            sdk="openai",
            api_key_env=f"TEST_{name.upper()}_KEY",
            timeout_sec=30,
            max_tokens=1024,
        )
        for name in ("openai", "p1", "p2", "anthropic")
    }
    return AppConfig(
        defaults=DefaultsConfig(
            model="gpt-4",
            output_dir=tmp_path / "transcripts",
            compare_models=["m1", "m2"],
        ),
        discussion=DiscussionConfig(max_rounds=5, turn_delay_sec=0.0),
        providers=providers,
        models=sample_models,
        available_providers={"openai"},
    )
