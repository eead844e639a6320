"""Unit tests for provider configuration, presets and API key resolution."""

import json

import pytest

from tweaq.core.llm.config import (
    PRESETS,
    PROVIDERS,
    ProviderConfig,
    apply_preset,
    load_provider_config,
    resolve_api_key,
    save_provider_config,
)


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("TWEAQ_HOME", str(tmp_path))
    for name in ("TWEAQ_OPENAI_API_KEY", "OPENAI_API_KEY", "TWEAQ_USE_LOCAL_MODELS"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


class TestProviderConfig:
    def test_default_is_valid_local_model(self):
        cfg = ProviderConfig()
        assert cfg.validate() == []
        assert cfg.requires_api_key is False

    def test_unknown_model_for_fixed_catalogue(self):
        errors = ProviderConfig(provider="openai", model="gpt-2").validate()
        assert any("Unknown model" in e for e in errors)

    def test_open_catalogue_accepts_any_model(self):
        assert ProviderConfig(provider="openrouter", model="meta/llama-4").validate() == []

    def test_unknown_provider_and_bad_ranges(self):
        errors = ProviderConfig(provider="nope", temperature=3.0, max_tokens=0).validate()
        assert len(errors) == 3

    def test_from_dict_ignores_unknown_keys(self):
        cfg = ProviderConfig.from_dict({"provider": "groq", "model": "llama-3.1-8b-instant", "legacy": True})
        assert cfg.provider == "groq"
        assert "groq/llama-3.1-8b-instant" in cfg.summary()

    def test_every_provider_default_is_listed(self):
        for name, info in PROVIDERS.items():
            if info["models"]:
                assert info["default"] in info["models"], name


class TestPresets:
    def test_presets_validate(self):
        for name in PRESETS:
            assert apply_preset(name).validate() == [], name

    def test_preset_is_a_copy(self):
        cfg = apply_preset("cloud_openai")
        cfg.temperature = 1.5
        assert PRESETS["cloud_openai"].temperature == 0.2

    def test_unknown_preset(self):
        with pytest.raises(KeyError):
            apply_preset("free_lunch")


class TestPersistence:
    def test_default_without_file(self, home):
        assert load_provider_config().provider == "openai"

    def test_local_models_flag(self, home, monkeypatch):
        monkeypatch.setenv("TWEAQ_USE_LOCAL_MODELS", "true")
        assert load_provider_config().provider == "ollama"

    def test_save_and_load(self, home):
        assert save_provider_config(ProviderConfig(provider="anthropic", model="claude-sonnet-4-20250514"))
        assert load_provider_config().provider == "anthropic"

    def test_invalid_config_is_not_saved(self, home):
        assert save_provider_config(ProviderConfig(provider="nope")) is False
        assert not (home / "model_config.json").exists()


class TestApiKeys:
    """explicit > TWEAQ_<P>_API_KEY > <P>_API_KEY > keys.json"""

    def test_precedence(self, home, monkeypatch):
        (home / "keys.json").write_text(json.dumps({"openai": "from-file"}))
        assert resolve_api_key("openai") == "from-file"

        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        assert resolve_api_key("openai") == "from-env"

        monkeypatch.setenv("TWEAQ_OPENAI_API_KEY", "from-tweaq-env")
        assert resolve_api_key("openai") == "from-tweaq-env"

        assert resolve_api_key("openai", explicit="explicit") == "explicit"

    def test_missing(self, home):
        assert resolve_api_key("openai") is None
