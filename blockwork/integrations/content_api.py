"""
Content API client.

The backend exposes three endpoints Blockwork consumes:

    GET  /api/sdui/structure?version=<app_version>   -> AppStructure JSON
    POST /api/sdui/read   {"query_name": ..., ...}    -> section data
    POST /api/sdui/read   {"query_name": <badge>}     -> {"count": n}

Badge sources are "api://<query_name>"; the count is read from the
response's "count" field.

Usage:
    async with ContentApiClient(ContentApiConfig(base_url=url, access_token=t)) as api:
        document = await api.read_structure("1.0.0")
        data = await api.execute_query("get_featured_activities", {"limit": 5})
"""

from __future__ import annotations

import logging
from typing import Any

from .base import ApiClient, ContentApiConfig, ContentApiError

logger = logging.getLogger(__name__)

STRUCTURE_PATH = "/api/sdui/structure"
READ_PATH = "/api/sdui/read"
BADGE_SOURCE_PREFIX = "api://"


class ContentApiClient(ApiClient):
    """
    Async client for the content API.

    Also serves as a structure source for StructureStore
    (fetch_structure), a section fetcher for PageRenderer
    (execute_query) and a badge fetcher for BadgeResolver
    (get_badge_count).
    """

    @property
    def name(self) -> str:
        return "content_api"

    def _get_auth_headers(self) -> dict[str, str]:
        if not self.config.access_token:
            return {}
        return {"Authorization": f"Bearer {self.config.access_token}"}

    async def read_structure(self, version: str | None = None) -> dict[str, Any]:
        """
        Read the structure document for an app version.

        Raises:
            ContentApiError: On HTTP failure or a non-object body
        """
        version = version or self.config.app_version
        response = await self._request("GET", STRUCTURE_PATH, params={"version": version})
        document = response.json()
        if not isinstance(document, dict):
            raise ContentApiError(
                f"Structure response must be a JSON object, got {type(document).__name__}",
                self.name,
                status_code=response.status_code,
            )

        logger.info(
            f"[{self.name}] Loaded structure v{document.get('version')} "
            f"({len(document.get('pages') or [])} pages, "
            f"{len(document.get('buildingBlocks') or [])} building blocks)"
        )
        return document

    async def fetch_structure(self, version: str) -> dict[str, Any]:
        """Structure source protocol."""
        return await self.read_structure(version)

    async def execute_query(self, query_name: str, params: dict[str, Any] | None = None) -> Any:
        """
        Execute a named query.

        Context namespaces in params (USER, GEOLOCATION, FILTER) are sent
        as nested JSON objects.
        """
        body = {"query_name": query_name, **(params or {})}
        response = await self._request("POST", READ_PATH, json=body)
        data = response.json()
        logger.debug(f"[{self.name}] Query data received for {query_name}")
        return data

    async def get_badge_count(self, source: str) -> int:
        """
        Count for a badge source ("api://<query_name>").

        Unsupported sources and responses without a numeric "count" give
        0 (logged). HTTP failures raise ContentApiError.
        """
        if not source.startswith(BADGE_SOURCE_PREFIX):
            logger.warning(f"[{self.name}] Invalid badge source: {source}")
            return 0

        query_name = source[len(BADGE_SOURCE_PREFIX):]
        data = await self.execute_query(query_name)

        count = data.get("count") if isinstance(data, dict) else None
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            logger.warning(f"[{self.name}] Response missing 'count' field for: {query_name}")
            return 0
        return max(0, int(count))

    async def health_check(self) -> bool:
        """True when the structure endpoint answers."""
        try:
            await self.read_structure()
            return True
        except ContentApiError as e:
            logger.warning(f"[{self.name}] Health check failed: {e}")
            return False
