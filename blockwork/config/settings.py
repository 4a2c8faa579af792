"""
Blockwork settings.

All settings come from BLOCKWORK_* environment variables:

    BLOCKWORK_API_BASE_URL      Content API base URL
    BLOCKWORK_API_TOKEN         Bearer token (optional)
    BLOCKWORK_APP_VERSION       App version selecting the structure document
    BLOCKWORK_REQUEST_TIMEOUT   HTTP timeout in seconds
    BLOCKWORK_STRUCTURE_DIR     Load structure files from here instead of the API
    BLOCKWORK_DEBUG             "true" enables debug mode
    BLOCKWORK_ENVIRONMENT       development / staging / production
"""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field, SecretStr, field_validator

from blockwork.integrations import ContentApiConfig


class BlockworkSettings(BaseModel):
    """
    Application settings model.

    Security:
        The API token uses SecretStr to prevent accidental logging.
        Access it with: settings.api_token.get_secret_value()
    """

    # Service identity
    service_name: str = "blockwork"
    environment: str = "development"
    debug: bool = False

    # Content API
    api_base_url: str = Field(default="http://localhost:8000", description="Content API base URL")
    api_token: SecretStr | None = None
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout (seconds)")

    # Structure
    app_version: str = Field(default="1.0.0", description="App version for structure lookup")
    structure_dir: str | None = Field(
        default=None,
        description="Directory with structure.json / structure-<version>.json",
    )

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def uses_local_structure(self) -> bool:
        return bool(self.structure_dir)

    def content_api_config(self) -> ContentApiConfig:
        token = self.api_token.get_secret_value() if self.api_token else None
        return ContentApiConfig(
            base_url=self.api_base_url,
            timeout=self.request_timeout,
            access_token=token or None,
            app_version=self.app_version,
            log_requests=self.debug,
            log_responses=self.debug,
        )


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@lru_cache()
def get_settings() -> BlockworkSettings:
    """
    Get settings from the environment.

    Uses lru_cache for singleton pattern; call get_settings.cache_clear()
    after changing the environment (tests).
    """
    token = os.getenv("BLOCKWORK_API_TOKEN")
    return BlockworkSettings(
        environment=os.getenv("BLOCKWORK_ENVIRONMENT", "development"),
        debug=_env_flag("BLOCKWORK_DEBUG"),
        api_base_url=os.getenv("BLOCKWORK_API_BASE_URL", "http://localhost:8000"),
        api_token=SecretStr(token) if token else None,
        request_timeout=float(os.getenv("BLOCKWORK_REQUEST_TIMEOUT", "30")),
        app_version=os.getenv("BLOCKWORK_APP_VERSION", "1.0.0"),
        structure_dir=os.getenv("BLOCKWORK_STRUCTURE_DIR") or None,
    )
