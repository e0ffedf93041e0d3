"""Configuration loader with environment and settings-file fallback."""

import json
import os
from pathlib import Path
from typing import Optional

from bmark.logging import get_logger
from bmark.models.config import Settings

logger = get_logger("bmark.config_loader")

DEFAULT_SETTINGS_FILE = Path.home() / ".bmark" / "settings.json"


def settings_path() -> Path:
    """Location of the settings file (``BMARK_SETTINGS_FILE`` overrides the default)."""
    override = os.environ.get("BMARK_SETTINGS_FILE")
    return Path(override) if override else DEFAULT_SETTINGS_FILE


def _read_settings_file() -> dict:
    """
    Read ``{"apiKeys": {...}, "preferences": {...}}`` from the settings file.

    A missing or unreadable file counts as empty.
    """
    path = settings_path()
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("settings_file_unreadable", path=str(path), error=str(e))
        return {}
    return data if isinstance(data, dict) else {}


def _stored_key(name: str) -> Optional[str]:
    return _read_settings_file().get("apiKeys", {}).get(name) or None


def get_gateway_api_key() -> Optional[str]:
    """
    Get the Vercel AI Gateway API key with fallback:
    1. AI_GATEWAY_API_KEY environment variable
    2. apiKeys.vercelAIGateway in the settings file
    """
    return os.environ.get("AI_GATEWAY_API_KEY") or _stored_key("vercelAIGateway")


def get_openrouter_api_key() -> Optional[str]:
    """
    Get the OpenRouter API key with fallback:
    1. OPENROUTER_API_KEY environment variable
    2. apiKeys.openrouter in the settings file
    """
    return os.environ.get("OPENROUTER_API_KEY") or _stored_key("openrouter")


def get_supabase_credentials() -> tuple[Optional[str], Optional[str]]:
    """
    Get the Supabase URL and key.

    Environment variables win when both are set; otherwise values from the
    settings file fill in whatever the environment lacks.
    """
    env_url = os.environ.get("SUPABASE_URL") or os.environ.get("NEXT_PUBLIC_SUPABASE_URL")
    env_key = os.environ.get("SUPABASE_KEY") or os.environ.get("NEXT_PUBLIC_SUPABASE_ANON_KEY")
    if env_url and env_key:
        return env_url, env_key

    stored = _read_settings_file().get("apiKeys", {})
    return (
        stored.get("supabaseUrl") or env_url or None,
        stored.get("supabaseKey") or env_key or None,
    )


def load_settings() -> Settings:
    """User preferences from the settings file, defaults for anything unset."""
    return Settings.model_validate(_read_settings_file().get("preferences", {}))


def get_api_keys() -> dict:
    """Get all credentials as a dictionary."""
    supabase_url, supabase_key = get_supabase_credentials()
    return {
        "vercel_ai_gateway": get_gateway_api_key(),
        "openrouter": get_openrouter_api_key(),
        "supabase_url": supabase_url,
        "supabase_key": supabase_key,
    }
