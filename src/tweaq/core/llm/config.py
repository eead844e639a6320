# Tweaq Change Engine
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Tweaq Change Engine.
#
# Tweaq Change Engine is dual-licensed:
#
# 1. Open Source: GNU Affero General Public License v3.0 (AGPL-3.0)
#    You may use, modify, and distribute this file under AGPL-3.0.
#    See LICENSE for the full text.
#
# 2. Commercial: Available from Phoenix Link (Pty) Ltd
#    For proprietary use, SaaS deployment, or enterprise licensing.
#    See LICENSE-ENTERPRISE.md or contact info@phoenixlink.co.za
#
# Contributions require a signed CLA. See COPYRIGHT.md and CLA.md.
"""
Tweaq Change Engine -- Provider Configuration

Which language model generates code for the engine, and where its
credentials come from.

Supported providers:
  - openai, anthropic, ollama, google, groq, openrouter, mistral, together

KEY RESOLUTION (first hit wins):
    1. Explicit key passed by the caller
    2. TWEAQ_<PROVIDER>_API_KEY environment variable
    3. <PROVIDER>_API_KEY environment variable
    4. <tweaq home>/keys.json  ({"openai": "sk-...", ...})
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from tweaq.core.config import tweaq_home

logger = logging.getLogger("tweaq.llm.config")


# =============================================================================
# SUPPORTED PROVIDERS
# =============================================================================

PROVIDERS = {
    "openai": {
        "name": "OpenAI",
        "auth": "api_key",
        "models": ["gpt-4.1", "gpt-4.1-mini", "gpt-4o", "gpt-4o-mini", "o4-mini"],
        "default": "gpt-4o",
    },
    "anthropic": {
        "name": "Anthropic",
        "auth": "api_key",
        "models": [
            "claude-sonnet-4-5-20250929",
            "claude-sonnet-4-20250514",
            "claude-haiku-4-5-20251001",
        ],
        "default": "claude-sonnet-4-20250514",
    },
    "ollama": {
        "name": "Ollama (Local)",
        "auth": "none",
        "models": ["qwen2.5-coder:14b", "qwen2.5:14b", "llama3.1:8b"],
        "default": "qwen2.5-coder:14b",
    },
    "google": {
        "name": "Google Gemini",
        "auth": "api_key",
        "models": ["gemini-2.5-pro", "gemini-2.5-flash"],
        "default": "gemini-2.5-flash",
    },
    "groq": {
        "name": "Groq",
        "auth": "api_key",
        "models": ["llama-3.3-70b-versatile", "llama-3.1-8b-instant"],
        "default": "llama-3.3-70b-versatile",
    },
    "openrouter": {
        "name": "OpenRouter",
        "auth": "api_key",
        "models": [],
        "default": "openai/gpt-4o",
    },
    "mistral": {
        "name": "Mistral AI",
        "auth": "api_key",
        "models": ["codestral-latest", "mistral-large-latest"],
        "default": "codestral-latest",
    },
    "together": {
        "name": "Together AI",
        "auth": "api_key",
        "models": [],
        "default": "Qwen/Qwen2.5-Coder-32B-Instruct",
    },
}

# Providers whose model catalogue is open-ended
_OPEN_CATALOGUE = {"ollama", "openrouter", "together"}


# =============================================================================
# PROVIDER CONFIG
# =============================================================================


@dataclass
class ProviderConfig:
    """The model the engine sends generation prompts to."""

    provider: str = "ollama"
    model: str = "qwen2.5-coder:14b"
    temperature: float = 0.2
    max_tokens: int = 8000
    base_url: str = ""

    def validate(self) -> List[str]:
        errors = []
        if self.provider not in PROVIDERS:
            errors.append(f"Unknown provider: {self.provider}. Supported: {list(PROVIDERS.keys())}")
        elif self.provider not in _OPEN_CATALOGUE and self.model not in PROVIDERS[self.provider]["models"]:
            errors.append(f"Unknown model '{self.model}' for {self.provider}.")
        if not 0 <= self.temperature <= 2:
            errors.append(f"Temperature out of range: {self.temperature}")
        if self.max_tokens <= 0:
            errors.append("max_tokens must be positive")
        return errors

    @property
    def requires_api_key(self) -> bool:
        return PROVIDERS.get(self.provider, {}).get("auth") == "api_key"

    def summary(self) -> str:
        key_note = "API key required" if self.requires_api_key else "no API key (local)"
        return f"{self.provider}/{self.model} (temperature={self.temperature}, {key_note})"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderConfig":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


# =============================================================================
# PRESETS
# =============================================================================

PRESETS = {
    "local_free": ProviderConfig(provider="ollama", model="qwen2.5-coder:14b"),
    "cloud_openai": ProviderConfig(provider="openai", model="gpt-4o"),
    "cloud_anthropic": ProviderConfig(provider="anthropic", model="claude-sonnet-4-20250514"),
    "google_free": ProviderConfig(provider="google", model="gemini-2.5-flash"),
}


def apply_preset(name: str) -> ProviderConfig:
    if name not in PRESETS:
        raise KeyError(f"Unknown preset: {name}. Available: {sorted(PRESETS)}")
    return ProviderConfig(**PRESETS[name].to_dict())


# =============================================================================
# PERSISTENCE
# =============================================================================

CONFIG_FILENAME = "model_config.json"
KEYS_FILENAME = "keys.json"


def _config_file() -> Path:
    return tweaq_home() / CONFIG_FILENAME


def load_provider_config() -> ProviderConfig:
    """Load the provider config from disk, or pick a default preset."""
    path = _config_file()
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                cfg = ProviderConfig.from_dict(json.load(f))
            errors = cfg.validate()
            if not errors:
                return cfg
            logger.warning("Ignoring invalid provider config %s: %s", path, "; ".join(errors))
        except (OSError, json.JSONDecodeError, TypeError) as e:
            logger.warning("Could not read provider config %s: %s", path, e)

    use_local = os.environ.get("TWEAQ_USE_LOCAL_MODELS", "false").lower() in ("true", "1", "yes")
    return apply_preset("local_free" if use_local else "cloud_openai")


def save_provider_config(cfg: ProviderConfig) -> bool:
    errors = cfg.validate()
    if errors:
        logger.warning("Refusing to save invalid provider config: %s", "; ".join(errors))
        return False
    path = _config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(cfg.to_dict(), f, indent=2)
    return True


def _load_keys_file() -> Dict[str, str]:
    path = tweaq_home() / KEYS_FILENAME
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read keys file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def resolve_api_key(provider: str, explicit: Optional[str] = None) -> Optional[str]:
    """Resolve a provider credential through the documented precedence."""
    if explicit:
        return explicit
    for env_name in (f"TWEAQ_{provider.upper()}_API_KEY", f"{provider.upper()}_API_KEY"):
        value = os.environ.get(env_name)
        if value:
            return value
    return _load_keys_file().get(provider) or None
