"""Tests for config/config_loader.py."""

from pathlib import Path

import pytest
import yaml

from config.config_loader import AppConfig, DiscussionConfig, ProviderConfig, load_config
from parley.models import ModelDescriptor


def _settings(**overrides) -> dict:
    settings = {
        "defaults": {
            "model": "claude-3-haiku-20240307",
            "compare_models": ["claude-3-haiku-20240307", "gpt-4o"],
            "output_dir": "./transcripts",
        },
        "discussion": {
            "max_rounds": 3,
            "turn_delay_sec": 2.5,
        },
        "providers": {
            "anthropic": {
                "sdk": "anthropic",
                "api_key_env": "TEST_CLAUDE_KEY",
                "timeout_sec": 120,
                "max_tokens": 1024,
            },
            "perplexity": {
                "sdk": "openai",
                "api_key_env": "TEST_PPLX_KEY",
                "timeout_sec": 60,
                "max_tokens": 512,
                "base_url": "https://api.perplexity.ai",
            },
        },
        "models": [
            {"id": "claude-3-haiku-20240307", "name": "Claude 3 Haiku", "provider": "anthropic",
             "description": "Fast", "max_tokens": 200000},
            {"id": "sonar", "provider": "perplexity"},
        ],
    }
    settings.update(overrides)
    return settings


@pytest.fixture
def minimal_settings(tmp_path: Path) -> Path:
    """Write a minimal valid settings.yaml to a temp path."""
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(_settings()), encoding="utf-8")
    return path


def test_load_config_returns_app_config(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config, AppConfig)


def test_load_config_defaults(minimal_settings):
    config = load_config(minimal_settings)
    assert config.defaults.model == "claude-3-haiku-20240307"
    assert config.defaults.compare_models == ["claude-3-haiku-20240307", "gpt-4o"]
    assert isinstance(config.defaults.output_dir, Path)
    assert config.defaults.system_prompt == "You are a helpful AI assistant."


def test_load_config_discussion(minimal_settings):
    config = load_config(minimal_settings)
    assert config.discussion.max_rounds == 3
    assert config.discussion.turn_delay_sec == 2.5
    assert config.discussion.poll_interval_sec == 0.1


def test_load_config_discussion_defaults_when_missing(tmp_path: Path):
    settings = _settings()
    del settings["discussion"]
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(settings), encoding="utf-8")

    config = load_config(path)

    assert config.discussion == DiscussionConfig(max_rounds=5, turn_delay_sec=5.0, poll_interval_sec=0.1)


@pytest.mark.parametrize(
    "discussion",
    [{"max_rounds": 0}, {"turn_delay_sec": -1}, {"poll_interval_sec": 0}],
)
def test_load_config_rejects_bad_discussion_values(tmp_path: Path, discussion):
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(_settings(discussion=discussion)), encoding="utf-8")
    with pytest.raises(ValueError, match="discussion"):
        load_config(path)


def test_load_config_providers(minimal_settings):
    config = load_config(minimal_settings)
    assert set(config.providers) == {"anthropic", "perplexity"}
    assert isinstance(config.providers["anthropic"], ProviderConfig)
    assert config.providers["anthropic"].base_url is None
    assert config.providers["perplexity"].base_url == "https://api.perplexity.ai"
    assert config.providers["perplexity"].system_prompt == "You are a helpful AI assistant."


def test_load_config_models(minimal_settings):
    config = load_config(minimal_settings)
    assert config.models[0] == ModelDescriptor(
        id="claude-3-haiku-20240307",
        display_name="Claude 3 Haiku",
        provider_id="anthropic",
        description="Fast",
        max_tokens=200000,
    )


def test_model_name_defaults_to_id(minimal_settings):
    config = load_config(minimal_settings)
    sonar = config.models[1]
    assert sonar.display_name == "sonar"
    assert sonar.max_tokens is None


def test_model_with_unknown_provider_rejected(tmp_path: Path):
    settings = _settings(models=[{"id": "mystery", "provider": "nobody"}])
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(settings), encoding="utf-8")
    with pytest.raises(ValueError, match="unknown provider"):
        load_config(path)


def test_load_config_available_providers_with_key(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_CLAUDE_KEY", "sk-test-key")
    monkeypatch.delenv("TEST_PPLX_KEY", raising=False)
    config = load_config(minimal_settings)
    assert config.available_providers == {"anthropic"}


def test_load_config_no_available_providers_without_key(minimal_settings, monkeypatch):
    monkeypatch.delenv("TEST_CLAUDE_KEY", raising=False)
    monkeypatch.delenv("TEST_PPLX_KEY", raising=False)
    config = load_config(minimal_settings)
    assert config.available_providers == set()


def test_load_config_blank_key_not_available(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_CLAUDE_KEY", "   ")
    config = load_config(minimal_settings)
    assert "anthropic" not in config.available_providers


def test_load_config_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config(Path("/nonexistent/settings.yaml"))


def test_bundled_settings_load():
    config = load_config()
    assert config.defaults.model in {m.id for m in config.models}
    assert config.discussion.max_rounds == 5
    assert config.discussion.turn_delay_sec == 5.0
    assert {m.provider_id for m in config.models} <= set(config.providers)
