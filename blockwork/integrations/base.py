"""
Base classes for Blockwork backend integrations.

Design Principles:
1. Async-first: All I/O operations are async
2. One attempt per call: retries and timeouts belong to the caller's
   policy (QueryClient staleness/polling), not to the transport
3. Typed errors: HTTP failures map to ContentApiError subclasses
4. Testable: Pass an httpx transport (e.g. httpx.MockTransport)

Error mapping:
    401/403  -> AuthenticationError
    404      -> NotFoundError
    5xx      -> ServerError
    other    -> ContentApiError
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from blockwork.errors import BlockworkError

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ContentApiError(BlockworkError):
    """Base exception for backend API errors."""

    def __init__(
        self,
        message: str,
        integration: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.integration = integration
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        parts = [f"[{self.integration}] {self.args[0]}"]
        if self.status_code:
            parts.append(f"(status={self.status_code})")
        return " ".join(parts)


class AuthenticationError(ContentApiError):
    """Raised when authentication fails (401/403)."""


class NotFoundError(ContentApiError):
    """Raised when a resource is not found (404)."""


class ServerError(ContentApiError):
    """Raised for 5xx responses."""


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class ContentApiConfig:
    """Configuration for the content API client."""

    # Connection
    base_url: str = "http://localhost:8000"
    timeout: float = 30.0

    # Authentication
    access_token: str | None = None

    # App identity (selects the structure document)
    app_version: str = "1.0.0"

    # Observability
    log_requests: bool = False
    log_responses: bool = False


# =============================================================================
# Base Client
# =============================================================================


class ApiClient(ABC):
    """
    Abstract base class for HTTP API clients.

    Provides:
    - HTTP client management
    - Authentication header injection
    - Error mapping
    - Request/response logging

    Subclasses must implement:
    - name: Integration identifier
    - _get_auth_headers(): Return authentication headers
    """

    def __init__(self, config: ContentApiConfig, *, transport: httpx.AsyncBaseTransport | None = None):
        """
        Args:
            config: Client configuration
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this integration."""
        ...

    @abstractmethod
    def _get_auth_headers(self) -> dict[str, str]:
        """Return authentication headers for requests."""
        ...

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    **self._get_auth_headers(),
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Execute a single HTTP request.

        Raises:
            ContentApiError: On HTTP errors, timeouts and network errors
        """
        client = await self._get_client()

        if self.config.log_requests:
            logger.debug(f"[{self.name}] {method} {path} params={params} body={json}")

        try:
            response = await client.request(method=method, url=path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise ContentApiError(f"Request timeout: {e}", self.name) from e
        except httpx.NetworkError as e:
            raise ContentApiError(f"Network error: {e}", self.name) from e

        if self.config.log_responses:
            logger.debug(
                f"[{self.name}] Response: status={response.status_code} "
                f"body={response.text[:500] if response.text else 'empty'}"
            )

        self._check_response(response)
        return response

    def _check_response(self, response: httpx.Response) -> None:
        """Raise the ContentApiError matching a failed response."""
        if response.is_success:
            return

        status = response.status_code
        body = response.text

        if status in (401, 403):
            raise AuthenticationError(
                f"Authentication failed: {body}",
                self.name,
                status_code=status,
                response_body=body,
            )

        if status == 404:
            raise NotFoundError(
                f"Resource not found: {body}",
                self.name,
                status_code=status,
                response_body=body,
            )

        if status >= 500:
            raise ServerError(
                f"Server error: {body}",
                self.name,
                status_code=status,
                response_body=body,
            )

        raise ContentApiError(
            f"Request failed: {body}",
            self.name,
            status_code=status,
            response_body=body,
        )

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
