"""
Base Market Source - Shared HTTP plumbing for every remote collaborator.

All sources MUST:
- Own (or borrow) a single aiohttp session
- Translate transport failures into SourceError subclasses
- Track their own health
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp

from market_sources.exceptions import (
    FetchError,
    SourceError,
    SourceTimeoutError,
)
from market_sources.models import (
    SourceHealth,
    SourceStatus,
)


logger = logging.getLogger(__name__)


class BaseSource(ABC):
    """
    Abstract base class for all market sources.

    Each source must expose a unique ``name``.

    Features:
    - Lazy aiohttp session with a total request timeout
    - JSON request helper with uniform error mapping
    - Health tracking with degraded/unavailable thresholds
    """

    DEFAULT_TIMEOUT = 30.0
    DEGRADED_THRESHOLD = 3
    UNAVAILABLE_THRESHOLD = 10

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

        self._health = SourceHealth(
            status=SourceStatus.UNKNOWN,
            last_check=datetime.now(timezone.utc),
        )

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this source."""
        pass

    # ─────────────────────────────────────────────────────────────
    # HTTP Helpers
    # ─────────────────────────────────────────────────────────────

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json",
            "User-Agent": "StorageAskIndex/1.0",
        }

    async def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """
        Make an HTTP request and decode the JSON body.

        Raises:
            SourceTimeoutError: The request timed out
            FetchError: Connection failure, HTTP >= 400 or undecodable body
        """
        session = await self._get_session()

        start_time = time.time()
        self._health.request_count += 1
        try:
            async with session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
            ) as response:
                self._health.latency_ms = (time.time() - start_time) * 1000

                if response.status >= 400:
                    body = await response.text()
                    raise FetchError(
                        message=f"HTTP {response.status}",
                        source_name=self.name,
                        status_code=response.status,
                        response_body=body[:500],
                        request_url=url,
                    )

                return await response.json(content_type=None)

        except asyncio.TimeoutError as e:
            raise SourceTimeoutError(
                message="Request timed out",
                source_name=self.name,
                timeout_seconds=self._timeout,
                request_url=url,
                original_error=e,
            )
        except aiohttp.ClientError as e:
            raise FetchError(
                message=f"Connection error: {e}",
                source_name=self.name,
                request_url=url,
                original_error=e,
            )
        except ValueError as e:
            raise FetchError(
                message=f"Invalid JSON body: {e}",
                source_name=self.name,
                request_url=url,
                original_error=e,
            )

    # ─────────────────────────────────────────────────────────────
    # Health & Error Tracking
    # ─────────────────────────────────────────────────────────────

    def _on_success(self) -> None:
        """Handle successful request."""
        self._health.consecutive_failures = 0
        self._health.last_check = datetime.now(timezone.utc)

        if self._health.status != SourceStatus.HEALTHY:
            if self._health.status != SourceStatus.UNKNOWN:
                logger.info(f"[{self.name}] Recovered to HEALTHY status")
            self._health.status = SourceStatus.HEALTHY

    def _on_error(self, error: SourceError) -> None:
        """Handle request error."""
        self._health.error_count += 1
        self._health.consecutive_failures += 1
        self._health.last_error = str(error)
        self._health.last_error_time = datetime.now(timezone.utc)
        self._health.last_check = datetime.now(timezone.utc)

        if self._health.consecutive_failures >= self.UNAVAILABLE_THRESHOLD:
            if self._health.status != SourceStatus.UNAVAILABLE:
                self._health.status = SourceStatus.UNAVAILABLE
                logger.error(f"[{self.name}] Marked UNAVAILABLE")
        elif self._health.consecutive_failures >= self.DEGRADED_THRESHOLD:
            if self._health.status != SourceStatus.DEGRADED:
                self._health.status = SourceStatus.DEGRADED
                logger.warning(f"[{self.name}] Marked DEGRADED")

    def get_health(self) -> SourceHealth:
        """Get current health status."""
        return self._health

    def is_usable(self) -> bool:
        """Check if source can be used."""
        return self._health.status in (
            SourceStatus.HEALTHY,
            SourceStatus.DEGRADED,
            SourceStatus.UNKNOWN,
        )

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "BaseSource":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name}, status={self._health.status.value})>"
