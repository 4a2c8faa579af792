"""
Backend integrations.

Usage:
    from blockwork.integrations import ContentApiClient, ContentApiConfig

    api = ContentApiClient(ContentApiConfig(base_url="https://api.example.com"))
"""

from .base import (
    ApiClient,
    AuthenticationError,
    ContentApiConfig,
    ContentApiError,
    NotFoundError,
    ServerError,
)
from .content_api import ContentApiClient

__all__ = [
    "ApiClient",
    "AuthenticationError",
    "ContentApiClient",
    "ContentApiConfig",
    "ContentApiError",
    "NotFoundError",
    "ServerError",
]
