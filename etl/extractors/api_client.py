"""
HTTP client for the Senado Federal and Camara dos Deputados open-data APIs.

This module provides:
- Path templates with ``{param}`` placeholders
- Endpoint default parameters merged with caller overrides
- Error mapping (404 -> NotFoundError, other failures -> ApiError)
- Fixed-delay retry and per-request pacing from the family's ApiPolicy
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from core.exceptions import (
    ApiError,
    BadRequestError,
    NotFoundError,
    RetryableApiError,
)
from etl.extractors.endpoints import Endpoint
from etl.pagination import MAX_PAGES_FULL, Paginator
from etl.retry import RetryExecutor
from schemas.etl import ApiPolicy

logger = logging.getLogger(__name__)


def replace_path(template: str, params: Dict[str, Any]) -> str:
    """Substitute ``{name}`` placeholders, URL-encoding the values"""
    path = template
    for key, value in params.items():
        path = path.replace(f"{{{key}}}", quote(str(value), safe=""))
    return path


def merge_params(defaults: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Endpoint defaults updated by overrides; empty values are dropped"""
    merged = {**defaults, **(overrides or {})}
    return {k: v for k, v in merged.items() if v is not None and v != ""}


@dataclass(frozen=True)
class FetchOutcome:
    """Result of a lookup where "not found" is an expected answer"""

    endpoint: str
    found: bool
    data: Any = None


class LegislativeApiClient:
    """
    Async client for one API family.

    Attributes:
        policy: Base URL, timeout, retry and pacing for this family
        request_count: Requests sent (including retries)
    """

    def __init__(
        self,
        policy: ApiPolicy,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.policy = policy
        self.retry = RetryExecutor(policy.retry_attempts, policy.retry_delay)
        self.request_count = 0
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=policy.base_url,
            timeout=policy.timeout,
            transport=transport,
            headers={
                "Accept": "application/json",
                "User-Agent": "legis-etl/1.0",
            },
        )

    async def __aenter__(self) -> "LegislativeApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def build_path(self, endpoint: Endpoint, path_params: Optional[Dict[str, Any]] = None) -> str:
        return replace_path(endpoint.path, path_params or {}) + self.policy.suffix

    async def request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Single GET without retries.

        Raises:
            NotFoundError: HTTP 404
            BadRequestError: HTTP 400
            RetryableApiError: 5xx, 429, timeouts and network errors
            ApiError: Any other non-2xx status or an unparsable body
        """
        self.request_count += 1
        logger.debug(f"GET {self.policy.base_url}{path} params={params}")

        try:
            response = await self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise RetryableApiError(
                f"Request timeout for {path}",
                endpoint=path,
                context={"timeout": self.policy.timeout},
                original_exception=e
            )
        except httpx.HTTPError as e:
            raise RetryableApiError(
                f"Network error for {path}: {e}",
                endpoint=path,
                original_exception=e
            )
        finally:
            if self.policy.request_pause > 0:
                await asyncio.sleep(self.policy.request_pause)

        status = response.status_code
        if status == 404:
            raise NotFoundError(path)
        if status == 400:
            raise BadRequestError(
                f"Bad request for {path}",
                status_code=400,
                endpoint=path,
                context={"response_body": response.text[:500]}
            )
        if status == 429 or status >= 500:
            raise RetryableApiError(
                f"Server error {status} for {path}",
                status_code=status,
                endpoint=path,
                context={"response_body": response.text[:500]}
            )
        if status >= 300:
            raise ApiError(
                f"Unexpected status {status} for {path}",
                status_code=status,
                endpoint=path,
                context={"response_body": response.text[:500]}
            )

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"Failed to parse JSON response from {path}",
                status_code=status,
                endpoint=path,
                context={"response_body": response.text[:500]},
                original_exception=e
            )

    async def get(
        self,
        endpoint: Endpoint,
        path_params: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        label: Optional[str] = None,
    ) -> Any:
        """GET an endpoint with retries; 404 propagates as NotFoundError"""
        path = self.build_path(endpoint, path_params)
        query = merge_params(endpoint.params, params)
        return await self.retry.run(
            lambda: self.request(path, query),
            label=label or f"GET {path}",
        )

    async def fetch(
        self,
        endpoint: Endpoint,
        path_params: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        label: Optional[str] = None,
    ) -> FetchOutcome:
        """Like get(), but a 404 comes back as ``FetchOutcome(found=False)``"""
        path = self.build_path(endpoint, path_params)
        try:
            data = await self.get(endpoint, path_params, params, label)
        except NotFoundError:
            logger.info(f"Not found: {path}")
            return FetchOutcome(endpoint=path, found=False)
        return FetchOutcome(endpoint=path, found=True, data=data)

    async def get_all_pages(
        self,
        endpoint: Endpoint,
        path_params: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        context: Optional[str] = None,
        max_pages: int = MAX_PAGES_FULL,
        page_size: int = 100,
    ) -> List[Any]:
        """Paginate an endpoint; each page goes through this client's retry policy"""
        paginator = Paginator(self.request, retry=self.retry, page_size=page_size)
        return await paginator.get_all_pages(
            self.build_path(endpoint, path_params),
            merge_params(endpoint.params, params),
            context=context,
            max_pages=max_pages,
        )
