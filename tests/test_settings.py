"""
Tests for environment-driven settings.
"""

import pytest
from pydantic import ValidationError

from blockwork.config import BlockworkSettings, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("BLOCKWORK_API_BASE_URL", "BLOCKWORK_API_TOKEN", "BLOCKWORK_STRUCTURE_DIR", "BLOCKWORK_DEBUG"):
            monkeypatch.delenv(name, raising=False)

        settings = get_settings()

        assert settings.api_base_url == "http://localhost:8000"
        assert settings.api_token is None
        assert settings.uses_local_structure is False
        assert settings.debug is False

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("BLOCKWORK_API_BASE_URL", "https://content.example.com/")
        monkeypatch.setenv("BLOCKWORK_API_TOKEN", "secret")
        monkeypatch.setenv("BLOCKWORK_DEBUG", "true")
        monkeypatch.setenv("BLOCKWORK_REQUEST_TIMEOUT", "5")
        monkeypatch.setenv("BLOCKWORK_APP_VERSION", "2.1.0")

        settings = get_settings()

        assert settings.api_base_url == "https://content.example.com"
        assert "secret" not in repr(settings)
        config = settings.content_api_config()
        assert config.access_token == "secret"
        assert config.timeout == 5.0
        assert config.app_version == "2.1.0"
        assert config.log_requests is True

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            BlockworkSettings(request_timeout=0)
