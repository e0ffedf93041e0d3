"""Tests for configuration models and credential loading."""

import json

import pytest
from pydantic import ValidationError

from bmark import config_loader
from bmark.errors import ConfigurationError
from bmark.llm import OpenRouterClient, VercelGatewayClient, create_gateway_client
from bmark.models.config import BatchOptions, Settings
from bmark.prompts import load_prompt


def _write_settings(path, api_keys=None, preferences=None):
    path.write_text(json.dumps({"apiKeys": api_keys or {}, "preferences": preferences or {}}))


class TestBatchOptions:
    """Tests for completion batch options."""

    def test_defaults(self):
        options = BatchOptions()

        assert options.max_tokens == 50
        assert options.temperature == 0.7
        assert options.timeout_ms == 30000
        assert options.concurrency == 5
        assert options.batch_delay_ms == 100
        assert options.timeout_seconds == 30.0
        assert options.system_prompt.startswith("You are a helpful assistant.")

    def test_single_word(self):
        options = BatchOptions.single_word(timeout_ms=1000)

        assert options.max_tokens == 10
        assert options.system_prompt == "You are a helpful assistant. Respond with a single word only."
        assert options.timeout_ms == 1000

    def test_validation(self):
        with pytest.raises(ValidationError):
            BatchOptions(concurrency=0)
        with pytest.raises(ValidationError):
            BatchOptions(temperature=3)

    def test_frozen(self):
        with pytest.raises(ValidationError):
            BatchOptions().max_tokens = 99


class TestSettings:
    """Tests for user preferences."""

    def test_camel_case_aliases(self):
        settings = Settings.model_validate({"responseTimeout": 5000, "similarityThreshold": 0.9})

        assert settings.response_timeout_ms == 5000
        assert settings.similarity_threshold == 0.9

    def test_batch_options_use_timeout(self):
        options = Settings(response_timeout_ms=1234).batch_options()

        assert options.timeout_ms == 1234
        assert options.max_tokens == 10


class TestConfigLoader:
    """Tests for environment and settings-file credential resolution."""

    def test_nothing_configured(self):
        assert config_loader.get_api_keys() == {
            "vercel_ai_gateway": None,
            "openrouter": None,
            "supabase_url": None,
            "supabase_key": None,
        }

    def test_environment_wins(self, monkeypatch, isolated_config):
        _write_settings(isolated_config, api_keys={"openrouter": "from-file"})
        monkeypatch.setenv("OPENROUTER_API_KEY", "from-env")

        assert config_loader.get_openrouter_api_key() == "from-env"

    def test_settings_file_fallback(self, isolated_config):
        _write_settings(isolated_config, api_keys={"vercelAIGateway": "gw-key", "openrouter": ""})

        assert config_loader.get_gateway_api_key() == "gw-key"
        assert config_loader.get_openrouter_api_key() is None

    def test_supabase_public_fallbacks(self, monkeypatch):
        monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_URL", "https://p.supabase.co")
        monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_ANON_KEY", "anon")

        assert config_loader.get_supabase_credentials() == ("https://p.supabase.co", "anon")

    def test_supabase_from_file(self, isolated_config):
        _write_settings(isolated_config, api_keys={"supabaseUrl": "https://f.supabase.co", "supabaseKey": "k"})

        assert config_loader.get_supabase_credentials() == ("https://f.supabase.co", "k")

    def test_load_settings(self, isolated_config):
        _write_settings(isolated_config, preferences={"defaultModelCount": 3, "saveHistory": False})

        settings = config_loader.load_settings()

        assert settings.default_model_count == 3
        assert settings.save_history is False
        assert settings.similarity_threshold == 0.8

    def test_unreadable_settings_file(self, isolated_config):
        isolated_config.write_text("{not json")

        assert config_loader.load_settings() == Settings()

    def test_settings_path_override(self, isolated_config):
        assert config_loader.settings_path() == isolated_config


class TestCreateGatewayClient:
    """Tests for picking a completion gateway."""

    def test_prefers_openrouter(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")
        monkeypatch.setenv("AI_GATEWAY_API_KEY", "gw-key")

        client = create_gateway_client()

        assert type(client) is OpenRouterClient
        assert client.api_key == "or-key"
        assert client.usage_tracker is not None

    def test_vercel_from_header_key(self):
        client = create_gateway_client("header-key")

        assert isinstance(client, VercelGatewayClient)
        assert client.api_key == "header-key"

    def test_no_key(self):
        with pytest.raises(ConfigurationError):
            create_gateway_client()


class TestPrompts:
    """Tests for bundled prompt files."""

    def test_load_prompt(self):
        assert load_prompt("benchmark", "single_word").endswith("single word only.")

    def test_missing_prompt(self):
        with pytest.raises(FileNotFoundError):
            load_prompt("benchmark", "does_not_exist")
