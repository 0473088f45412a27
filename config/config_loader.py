"""Load settings.yaml into typed dataclasses. Reports provider API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from parley.models import ModelDescriptor

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

_DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."


@dataclass
class ProviderConfig:
    name: str
    sdk: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None
    system_prompt: str = _DEFAULT_SYSTEM_PROMPT


@dataclass
class DiscussionConfig:
    max_rounds: int = 5
    turn_delay_sec: float = 5.0
    poll_interval_sec: float = 0.1


@dataclass
class DefaultsConfig:
    model: str
    output_dir: Path
    compare_models: list[str] = field(default_factory=list)
    system_prompt: str = _DEFAULT_SYSTEM_PROMPT


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    discussion: DiscussionConfig
    providers: dict[str, ProviderConfig]
    models: list[ModelDescriptor]
    available_providers: set[str] = field(default_factory=set)


def _load_discussion(raw: dict) -> DiscussionConfig:
    discussion = DiscussionConfig(
        max_rounds=int(raw.get("max_rounds", 5)),
        turn_delay_sec=float(raw.get("turn_delay_sec", 5.0)),
        poll_interval_sec=float(raw.get("poll_interval_sec", 0.1)),
    )
    if discussion.max_rounds < 1:
        raise ValueError(f"discussion.max_rounds must be >= 1, got {discussion.max_rounds}")
    if discussion.turn_delay_sec < 0:
        raise ValueError(f"discussion.turn_delay_sec must be >= 0, got {discussion.turn_delay_sec}")
    if discussion.poll_interval_sec <= 0:
        raise ValueError(
            f"discussion.poll_interval_sec must be > 0, got {discussion.poll_interval_sec}"
        )
    return discussion


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError if a model
    points at an undeclared provider or discussion pacing is out of range.
    Logs missing API keys but does not raise; callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    system_prompt = str(defaults_raw.get("system_prompt", _DEFAULT_SYSTEM_PROMPT))
    defaults = DefaultsConfig(
        model=str(defaults_raw["model"]),
        output_dir=Path(defaults_raw["output_dir"]),
        compare_models=list(defaults_raw.get("compare_models", [])),
        system_prompt=system_prompt,
    )

    discussion = _load_discussion(raw.get("discussion") or {})

    providers: dict[str, ProviderConfig] = {}
    available_providers: set[str] = set()

    for provider_name, provider_raw in raw["providers"].items():
        providers[provider_name] = ProviderConfig(
            name=provider_name,
            sdk=provider_raw["sdk"],
            api_key_env=provider_raw["api_key_env"],
            timeout_sec=int(provider_raw["timeout_sec"]),
            max_tokens=int(provider_raw["max_tokens"]),
            base_url=provider_raw.get("base_url"),
            system_prompt=system_prompt,
        )

        api_key = os.environ.get(provider_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s, set %s in .env",
                provider_name,
                provider_raw["api_key_env"],
            )

    models: list[ModelDescriptor] = []
    for model_raw in raw["models"]:
        provider_id = str(model_raw["provider"])
        if provider_id not in providers:
            raise ValueError(f"Model {model_raw['id']} references unknown provider '{provider_id}'")
        max_tokens = model_raw.get("max_tokens")
        models.append(
            ModelDescriptor(
                id=str(model_raw["id"]),
                display_name=str(model_raw.get("name", model_raw["id"])),
                provider_id=provider_id,
                description=str(model_raw.get("description", "")),
                max_tokens=int(max_tokens) if max_tokens is not None else None,
            )
        )

    return AppConfig(
        defaults=defaults,
        discussion=discussion,
        providers=providers,
        models=models,
        available_providers=available_providers,
    )
