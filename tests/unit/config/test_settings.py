# tests/unit/config/test_settings.py — v2
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest

from querycache.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_cache(self):
        s = Settings(_env_file=None)
        assert s.cache_enabled is True
        assert s.cache_backend == "memory"
        assert s.cache_max_entries == 1024

    def test_default_logging(self):
        s = Settings(_env_file=None)
        assert s.log_level == "INFO"
        assert s.log_format == "text"
        assert s.log_file is None
        assert s.log_rotation == "10MB"
        assert s.log_retention == 5


class TestSettingsEnvironment:
    def test_prefixed_env_vars(self, monkeypatch):
        monkeypatch.setenv("QUERYCACHE_CACHE_BACKEND", "bounded")
        monkeypatch.setenv("QUERYCACHE_CACHE_MAX_ENTRIES", "16")
        s = Settings(_env_file=None)
        assert s.cache_backend == "bounded"
        assert s.cache_max_entries == 16

    def test_disable_from_env(self, monkeypatch):
        monkeypatch.setenv("QUERYCACHE_CACHE_ENABLED", "false")
        assert Settings(_env_file=None).cache_enabled is False

    def test_unprefixed_vars_ignored(self, monkeypatch):
        monkeypatch.setenv("CACHE_BACKEND", "bounded")
        assert Settings(_env_file=None).cache_backend == "memory"

    def test_env_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("QUERYCACHE_LOG_LEVEL=DEBUG\nQUERYCACHE_LOG_FILE=logs/q.log\n")
        s = Settings(_env_file=env)
        assert s.log_level == "DEBUG"
        assert s.log_file == Path("logs/q.log")


class TestSettingsValidation:
    def test_zero_max_entries(self):
        with pytest.raises(ConfigurationError, match="CACHE_MAX_ENTRIES"):
            Settings(_env_file=None, cache_max_entries=0)

    def test_invalid_rotation(self):
        with pytest.raises(ConfigurationError, match="LOG_ROTATION"):
            Settings(_env_file=None, log_rotation="ten megabytes")

    def test_errors_are_combined(self):
        with pytest.raises(ConfigurationError) as exc:
            Settings(_env_file=None, cache_max_entries=-1, log_rotation="x")
        assert "CACHE_MAX_ENTRIES" in str(exc.value)
        assert "LOG_ROTATION" in str(exc.value)

    def test_negative_retention(self):
        with pytest.raises(ValueError, match="log_retention"):
            Settings(_env_file=None, log_retention=-1)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, cache_backend="redis")

    def test_valid_bounded(self):
        s = Settings(_env_file=None, cache_backend="bounded", cache_max_entries=1)
        assert s.cache_max_entries == 1


class TestLoadSettings:
    def test_with_overrides(self):
        s = load_settings(log_level="DEBUG", cache_backend="bounded")
        assert s.log_level == "DEBUG"
        assert s.cache_backend == "bounded"

    def test_invalid_override(self):
        with pytest.raises(ConfigurationError):
            load_settings(cache_max_entries=0)
