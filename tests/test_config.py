import json
import logging

import pytest

from mailbrief.config import Config, RuntimeProviderSettings
from mailbrief.utils.logger import JSONFormatter, configure_logging


@pytest.fixture
def dev_config(monkeypatch):
    monkeypatch.setattr(Config, "ENVIRONMENT", "development")
    monkeypatch.setattr(Config, "AI_PROVIDER", "auto")
    monkeypatch.setattr(Config, "MISTRAL_API_KEY", "")
    monkeypatch.setattr(Config, "SUPABASE_URL", "")
    monkeypatch.setattr(Config, "SUPABASE_SERVICE_KEY", "")
    monkeypatch.setattr(Config, "SUMMARY_WORKERS", 3)
    monkeypatch.setattr(Config, "SUMMARY_QUEUE_CAPACITY", 500)
    return Config


def test_validate_development_defaults(dev_config):
    dev_config.validate()


def test_validate_rejects_unknown_provider(dev_config, monkeypatch):
    monkeypatch.setattr(Config, "AI_PROVIDER", "gemini")

    with pytest.raises(RuntimeError, match="AI_PROVIDER"):
        Config.validate()


def test_validate_mistral_needs_key(dev_config, monkeypatch):
    monkeypatch.setattr(Config, "AI_PROVIDER", "mistral")

    with pytest.raises(RuntimeError, match="MISTRAL_API_KEY"):
        Config.validate()

    monkeypatch.setattr(Config, "MISTRAL_API_KEY", "key")
    Config.validate()


def test_validate_production_needs_supabase(dev_config, monkeypatch):
    monkeypatch.setattr(Config, "ENVIRONMENT", "Production")

    assert Config.is_production()
    with pytest.raises(RuntimeError, match="SUPABASE_URL"):
        Config.validate()

    monkeypatch.setattr(Config, "SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setattr(Config, "SUPABASE_SERVICE_KEY", "service-key")
    assert Config.supabase_configured()
    Config.validate()


@pytest.mark.parametrize("name", ["SUMMARY_WORKERS", "SUMMARY_QUEUE_CAPACITY"])
def test_validate_pool_sizes(dev_config, monkeypatch, name):
    monkeypatch.setattr(Config, name, 0)

    with pytest.raises(RuntimeError, match=name):
        Config.validate()


def test_runtime_settings_strips_trailing_slash():
    settings = RuntimeProviderSettings("http://host:11434/", "llama3")

    assert settings.snapshot() == ("http://host:11434", "llama3")
    assert settings.as_dict()["ollama_base_url"] == "http://host:11434"


def test_runtime_settings_update():
    settings = RuntimeProviderSettings("http://localhost:11434", "llama3")

    settings.update("http://gpu-box:11434/")
    assert settings.snapshot() == ("http://gpu-box:11434", "llama3")

    settings.update("http://gpu-box:11434", "qwen2.5")
    assert settings.as_dict() == {"ollama_base_url": "http://gpu-box:11434", "ollama_model": "qwen2.5"}


def test_json_formatter():
    record = logging.LogRecord("mailbrief.test", logging.INFO, __file__, 10, "queued %s", ("m1",), None)
    record.extra_fields = {"account_id": "acc-1"}

    data = json.loads(JSONFormatter().format(record))

    assert data["level"] == "INFO"
    assert data["message"] == "queued m1"
    assert data["logger"] == "mailbrief.test"
    assert data["account_id"] == "acc-1"


def test_configure_logging_json():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging("json", "debug")
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert root.level == logging.DEBUG
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
