"""Tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from tweetsearch.config import Settings, load_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ("TWEETSEARCH_API_KEY", "TWEETSEARCH_ENV_FILE", "TWEETSEARCH_DEBUG", "TWEETSEARCH_POLL_TIMEOUT_MS"):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's ./.env out of the way.
    monkeypatch.chdir(tmp_path)


def test_defaults() -> None:
    settings = Settings()

    assert settings.mock_mode
    assert settings.poll_interval_ms == 2000
    assert settings.poll_max_interval_ms == 10000
    assert settings.poll_timeout_ms == 120000
    assert settings.enhance_top_k == 3
    assert settings.effective_log_level == "INFO"


def test_env_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TWEETSEARCH_API_KEY", "k")
    monkeypatch.setenv("TWEETSEARCH_POLL_TIMEOUT_MS", "5000")
    monkeypatch.setenv("TWEETSEARCH_DEBUG", "true")

    settings = load_settings()

    assert not settings.mock_mode
    assert settings.poll_timeout_ms == 5000
    assert settings.effective_log_level == "DEBUG"


def test_env_file_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env_file = tmp_path / "custom.env"
    env_file.write_text("TWEETSEARCH_API_KEY=from-file\nTWEETSEARCH_ENHANCE_TOP_K=5\n", encoding="utf-8")
    monkeypatch.setenv("TWEETSEARCH_ENV_FILE", str(env_file))

    settings = load_settings()

    assert settings.api_key == "from-file"
    assert settings.enhance_top_k == 5


def test_dotenv_in_working_directory(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("TWEETSEARCH_API_KEY=local\n", encoding="utf-8")

    assert load_settings().api_key == "local"
