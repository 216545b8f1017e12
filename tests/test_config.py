"""Tests for environment-driven settings."""

from pathlib import Path

import pytest

from routine_advisor.config import load_settings

ENV_VARS = [
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "UPSTREAM_URL",
    "MAX_TOKENS",
    "TEMPERATURE",
    "UPSTREAM_TIMEOUT",
    "BRAND_NAME",
    "CORS_ENABLED",
    "RELAY_URL",
    "CATALOG_SOURCE",
    "STORE_PATH",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings()

    assert settings.openai_api_key == ""
    assert settings.openai_model == "gpt-4o"
    assert settings.upstream_url == "https://api.openai.com/v1/chat/completions"
    assert settings.max_tokens == 800
    assert settings.temperature == 0.7
    assert settings.cors_enabled is True
    assert settings.relay_url == ""
    assert settings.store_path.name == "local_store.json"
    assert (settings.prompts_dir / "system_instruction.md").exists()


def test_overrides(clean_env):
    clean_env.setenv("OPENAI_MODEL", "gpt-4o-mini")
    clean_env.setenv("MAX_TOKENS", "256")
    clean_env.setenv("CORS_ENABLED", "off")
    clean_env.setenv("STORE_PATH", "/tmp/advisor.json")
    clean_env.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.openai_model == "gpt-4o-mini"
    assert settings.max_tokens == 256
    assert settings.cors_enabled is False
    assert settings.store_path == Path("/tmp/advisor.json")
    assert settings.log_level == "DEBUG"


def test_invalid_number_raises(clean_env):
    clean_env.setenv("MAX_TOKENS", "lots")

    with pytest.raises(ValueError):
        load_settings()
