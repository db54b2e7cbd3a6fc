"""Tests for settings resolution."""

import json

from mailbrief.config import DEFAULT_GMAIL_API_URL, Settings, load_config_file, load_settings, save_config_file


def test_defaults_when_nothing_configured(tmp_path):
    settings = load_settings(tmp_path / "missing.json", environ={})
    assert settings == Settings()
    assert settings.max_cache == 50
    assert settings.max_history == 10
    assert settings.gmail_api_url == DEFAULT_GMAIL_API_URL


def test_file_then_env_precedence(tmp_path):
    path = tmp_path / "config.json"
    save_config_file({"max_cache": 5, "provider": "claude", "max_history": "3"}, path)

    settings = load_settings(path, environ={"MAILBRIEF_MAX_CACHE": "7", "MAILBRIEF_LOG_LEVEL": "DEBUG"})

    assert settings.max_cache == 7
    assert settings.max_history == 3
    assert settings.provider == "claude"
    assert settings.log_level == "DEBUG"


def test_bad_integer_falls_back_to_default(tmp_path):
    settings = load_settings(tmp_path / "missing.json", environ={"MAILBRIEF_MAX_STEPS": "lots"})
    assert settings.max_steps == 6


def test_malformed_file_is_ignored(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert load_config_file(path) == {}

    path.write_text(json.dumps(["a", "list"]))
    assert load_config_file(path) == {}
    assert load_settings(path, environ={}) == Settings()
