"""Tests for the JSON config file and its environment overrides."""

import json

from config import Config


def test_defaults_are_written_on_first_use(tmp_path) -> None:
    cfg = Config(config_dir=tmp_path)

    assert cfg.get('llm.model') == "gemini-2.0-flash"
    assert cfg.get('llm.max_tokens') == 4000
    assert cfg.get('llm.temperature') == 0.7
    assert cfg.get('tasks.default_subtasks') == 3
    assert cfg.get('missing.key', "fallback") == "fallback"
    assert not cfg.debug
    assert (tmp_path / "config.json").exists()


def test_user_file_is_merged_with_defaults(tmp_path) -> None:
    (tmp_path / "config.json").write_text(json.dumps({"llm": {"model": "gemini-1.5-pro"}}), encoding="utf-8")

    cfg = Config(config_dir=tmp_path)

    assert cfg.get('llm.model') == "gemini-1.5-pro"
    assert cfg.get('llm.max_tokens') == 4000


def test_corrupt_file_falls_back_to_defaults(tmp_path) -> None:
    (tmp_path / "config.json").write_text("{not json", encoding="utf-8")

    cfg = Config(config_dir=tmp_path)

    assert cfg.get('research.model') == "sonar-medium-online"


def test_environment_overrides(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("MODEL", "gemini-1.5-flash")
    monkeypatch.setenv("MAX_TOKENS", "8000")
    monkeypatch.setenv("TEMPERATURE", "0.3")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("DEFAULT_SUBTASKS", "5")

    cfg = Config(config_dir=tmp_path)

    assert cfg.get('llm.model') == "gemini-1.5-flash"
    assert cfg.get('llm.max_tokens') == 8000
    assert cfg.get('llm.temperature') == 0.3
    assert cfg.get('tasks.default_subtasks') == 5
    assert cfg.debug


def test_invalid_override_is_ignored(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("MAX_TOKENS", "lots")

    cfg = Config(config_dir=tmp_path)

    assert cfg.get('llm.max_tokens') == 4000


def test_set_persists_and_reset_restores(tmp_path) -> None:
    cfg = Config(config_dir=tmp_path)

    cfg.set('tasks.default_priority', "high")

    assert Config(config_dir=tmp_path).get('tasks.default_priority') == "high"

    cfg.reset_to_defaults()

    assert Config(config_dir=tmp_path).get('tasks.default_priority') == "medium"
