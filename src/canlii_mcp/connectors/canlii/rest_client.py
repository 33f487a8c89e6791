"""
REST client for the CanLII API.

Every call goes through the AdmissionGovernor:
- 1 request in flight, 500 ms between admissions, 5,000 per day
- Exactly one HTTP exchange per call, no retries
- Failures come back as UpstreamResult values, never as exceptions
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from canlii_mcp.connectors.canlii.types import (
    ClientConfig,
    FailureKind,
    UpstreamResult,
)
from canlii_mcp.connectors.governor import AdmissionGovernor, QuotaExceededError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from canlii_mcp.connectors.canlii.types import CitationType, Language

logger = logging.getLogger(__name__)


def build_query(api_key: str, params: Mapping[str, Any] | None = None) -> dict[str, str]:
    """
    Build the query string for a CanLII request.

    Params that are None or empty strings are omitted rather than sent
    empty. Other values are stringified (0 is kept).
    """
    query = {"api_key": api_key}
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue
        query[key] = str(value)
    return query


class CanLIIRestClient:
    """
    Async REST client for read-only CanLII lookups.

    One client (and one governor) is shared by every tool in the process.
    """

    def __init__(
        self,
        api_key: str,
        config: ClientConfig | None = None,
        governor: AdmissionGovernor | None = None,
    ) -> None:
        """
        Initialize the REST client.

        Args:
            api_key: CanLII API key.
            config: Client configuration.
            governor: Shared AdmissionGovernor. A private one is created if omitted.
        """
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self._config = config or ClientConfig()
        self._governor = governor or AdmissionGovernor()
        self._session: aiohttp.ClientSession | None = None

    @property
    def governor(self) -> AdmissionGovernor:
        return self._governor

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._config.request_timeout_ms / 1000)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def request(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> UpstreamResult:
        """
        Perform one governed GET against the CanLII API.

        Args:
            path: API path starting with "/" (e.g. "/caseBrowse/en/").
            params: Optional query parameters; None/empty values are dropped.

        Returns:
            UpstreamResult with the decoded JSON payload on success, or the
            failure kind and message otherwise.
        """
        try:
            async with self._governor.permit():
                return await self._send(path, params)
        except QuotaExceededError as e:
            return UpstreamResult.failure(FailureKind.QUOTA_EXCEEDED, str(e))

    async def _send(
        self,
        path: str,
        params: Mapping[str, Any] | None,
    ) -> UpstreamResult:
        """Execute the HTTP exchange. Caller holds the governor token."""
        url = f"{self._config.base_rest_url}{path}"
        query = build_query(self._api_key, params)

        try:
            session = await self._get_session()
            async with session.request("GET", url, params=query) as response:
                if not 200 <= response.status < 300:
                    text = await response.text()
                    logger.warning(
                        "CanLII HTTP error",
                        extra={"endpoint": path, "status": response.status, "body": text},
                    )
                    return UpstreamResult.failure(
                        FailureKind.UPSTREAM,
                        f"CanLII API {response.status}: {text}",
                        status_code=response.status,
                    )

                payload = await response.json()
                return UpstreamResult.ok(payload, status_code=response.status)

        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            message = str(e) or type(e).__name__
            logger.error(
                "CanLII request failed",
                extra={"endpoint": path, "error": message},
            )
            return UpstreamResult.failure(FailureKind.TRANSPORT, message)

    async def list_case_databases(self, language: Language = "en") -> UpstreamResult:
        """List all courts and tribunals with their database IDs."""
        return await self.request(f"/caseBrowse/{language}/")

    async def list_cases(
        self,
        database_id: str,
        language: Language = "en",
        offset: int = 0,
        result_count: int = 25,
        published_before: str | None = None,
        published_after: str | None = None,
        decision_date_before: str | None = None,
        decision_date_after: str | None = None,
    ) -> UpstreamResult:
        """
        List decisions from one caselaw database.

        Args:
            database_id: Database ID (e.g. "onca", "csc-scc").
            language: Response language.
            offset: Starting record index.
            result_count: Number of results (1..10000).
            published_before: Published on CanLII before (YYYY-MM-DD).
            published_after: Published on CanLII after (YYYY-MM-DD).
            decision_date_before: Decided before (YYYY-MM-DD).
            decision_date_after: Decided after (YYYY-MM-DD).
        """
        return await self.request(
            f"/caseBrowse/{language}/{database_id}/",
            {
                "offset": offset,
                "resultCount": result_count,
                "publishedBefore": published_before,
                "publishedAfter": published_after,
                "decisionDateBefore": decision_date_before,
                "decisionDateAfter": decision_date_after,
            },
        )

    async def get_case(
        self,
        database_id: str,
        case_id: str,
        language: Language = "en",
    ) -> UpstreamResult:
        """Get metadata for one case."""
        return await self.request(f"/caseBrowse/{language}/{database_id}/{case_id}/")

    async def get_case_citations(
        self,
        database_id: str,
        case_id: str,
        citation_type: CitationType,
    ) -> UpstreamResult:
        """
        Get citator data for one case.

        The citator only serves English, so the path language is fixed.
        """
        return await self.request(f"/caseCitator/en/{database_id}/{case_id}/{citation_type}")

    async def list_legislation_databases(self, language: Language = "en") -> UpstreamResult:
        """List all legislation and regulation databases."""
        return await self.request(f"/legislationBrowse/{language}/")

    async def list_legislation(
        self,
        database_id: str,
        language: Language = "en",
    ) -> UpstreamResult:
        """List statutes or regulations in one legislation database."""
        return await self.request(f"/legislationBrowse/{language}/{database_id}/")

    async def get_legislation(
        self,
        database_id: str,
        legislation_id: str,
        language: Language = "en",
    ) -> UpstreamResult:
        """Get metadata for one piece of legislation."""
        return await self.request(
            f"/legislationBrowse/{language}/{database_id}/{legislation_id}/"
        )
