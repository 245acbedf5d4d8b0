"""Tests for configuration loading."""

from __future__ import annotations

from sketchchat.config import AppConfig


def test_reads_gemini_key(monkeypatch, tmp_path):
    monkeypatch.setenv("GEMINI_API_KEY", " abc ")
    monkeypatch.setenv("GOOGLE_API_KEY", "other")
    config = AppConfig.from_env(tmp_path / "missing.env")

    assert config.api_key == "abc"
    assert config.has_credentials()


def test_falls_back_to_google_key(monkeypatch, tmp_path):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_API_KEY", "g-key")
    assert AppConfig.from_env(tmp_path / "missing.env").api_key == "g-key"


def test_reads_dotenv_file(monkeypatch, tmp_path):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_API_KEY=from-file\n")

    config = AppConfig.from_env(env_file)
    assert config.api_key == "from-file"
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


def test_overrides_skip_none(monkeypatch, tmp_path):
    monkeypatch.setenv("GEMINI_API_KEY", "k")
    config = AppConfig.from_env(tmp_path / "missing.env", model_id=None, request_timeout=30.0)

    assert config.model_id == "gemini-2.5-pro"
    assert config.request_timeout == 30.0


def test_blank_key_is_not_a_credential():
    assert not AppConfig(api_key="   ").has_credentials()
