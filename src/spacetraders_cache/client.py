"""Async HTTP client with rate limiting for the SpaceTraders API."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from spacetraders_cache.config import MAX_PAGE_SIZE, Settings
from spacetraders_cache.models import Meta
from spacetraders_cache.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class SpaceTradersError(Exception):
    """Base class for everything the client raises."""


class RequestError(SpaceTradersError):
    """The request did not produce a successful response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApiError(RequestError):
    """Raised when the API returns an error response."""

    def __init__(
        self,
        message: str,
        code: int,
        data: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.code = code
        self.data = data or {}


class RateLimitError(ApiError):
    """Upstream throttled the request (HTTP 429). Not retried."""

    def __init__(
        self,
        message: str,
        code: int,
        data: dict[str, Any] | None = None,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, code, data, status_code)
        self.retry_after = retry_after


class DeserializationError(SpaceTradersError):
    """The response arrived but its payload is not what we expected."""


def parse(model: type[T], body: dict[str, Any]) -> T:
    """Validate the `data` member of a response envelope as `model`."""
    if "data" not in body:
        raise DeserializationError(f"Response has no 'data' member: {sorted(body)}")
    try:
        return model.model_validate(body["data"])
    except ValidationError as exc:
        raise DeserializationError(f"Invalid {model.__name__} payload: {exc}") from exc


def parse_items(model: type[T], items: Iterable[Any]) -> list[T]:
    """Validate each raw list item as `model`."""
    try:
        return [model.model_validate(item) for item in items]
    except ValidationError as exc:
        raise DeserializationError(f"Invalid {model.__name__} payload: {exc}") from exc


def _retry_after(value: str | None) -> float | None:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP-date)."""
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, seconds) if math.isfinite(seconds) else None
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def _error_fields(body: Any, status_code: int) -> tuple[str, int, dict[str, Any]]:
    """Message, code and data from an error envelope, tolerating odd shapes."""
    err = body.get("error") if isinstance(body, dict) else None
    # API sometimes returns error as a plain string instead of dict
    if isinstance(err, str):
        return err, status_code, {}
    if isinstance(err, dict):
        return (
            err.get("message", "Unknown API error"),
            err.get("code", status_code),
            err.get("data") or {},
        )
    return f"HTTP {status_code}", status_code, {}


class SpaceTradersClient:
    """Async HTTP client for the SpaceTraders API.

    Every request takes a permit from the rate limiter before it is sent.
    No request is retried: failures surface as `RequestError`/`ApiError`,
    bad payloads as `DeserializationError`.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.base_url = settings.base_url.rstrip("/")
        self.rate_limiter = rate_limiter or RateLimiter(
            rate=settings.rate_limit, burst=settings.rate_burst,
        )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {settings.token}"},
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> SpaceTradersClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        await self.rate_limiter.acquire()

        logger.debug("%s %s params=%s json=%s", method, path, params, json)
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.TransportError as exc:
            raise RequestError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 204:
            return {}

        if response.status_code == 429:
            try:
                body = response.json()
            except ValueError:
                body = None
            raise self._rate_limited(response, body)

        try:
            body = response.json()
        except ValueError as exc:
            if response.is_success:
                raise DeserializationError(
                    f"{method} {path}: response body is not JSON",
                ) from exc
            raise RequestError(
                f"{method} {path}: HTTP {response.status_code}",
                status_code=response.status_code,
            ) from exc
        logger.debug("Response %d: %s", response.status_code, body)

        if not isinstance(body, dict):
            raise DeserializationError(
                f"{method} {path}: expected a JSON object, got {type(body).__name__}",
            )

        if "error" in body:
            message, code, data = _error_fields(body, response.status_code)
            if code == 429:
                raise self._rate_limited(response, body)
            raise ApiError(
                message=message, code=code, data=data, status_code=response.status_code,
            )

        if not response.is_success:
            raise RequestError(
                f"{method} {path}: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return body

    @staticmethod
    def _rate_limited(response: httpx.Response, body: Any) -> RateLimitError:
        message, code, data = _error_fields(body, response.status_code)
        retry_after = _retry_after(response.headers.get("retry-after"))
        logger.warning("Rate limited by API (retry after %s s)", retry_after)
        return RateLimitError(
            message=message,
            code=code,
            data=data,
            status_code=response.status_code,
            retry_after=retry_after,
        )

    async def get(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self._request("GET", path, params=params)

    async def post(
        self,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self._request("POST", path, json=json, params=params)

    async def get_page(
        self,
        path: str,
        *,
        page: int,
        limit: int = MAX_PAGE_SIZE,
        params: dict[str, Any] | None = None,
    ) -> tuple[list[Any], Meta]:
        """Fetch one page of a paginated endpoint."""
        body = await self.get(path, params={**(params or {}), "page": page, "limit": limit})
        data = body.get("data")
        if not isinstance(data, list) or "meta" not in body:
            raise DeserializationError(f"GET {path}: expected a paginated response")
        try:
            meta = Meta.model_validate(body["meta"])
        except ValidationError as exc:
            raise DeserializationError(f"GET {path}: invalid pagination meta: {exc}") from exc
        return data, meta

    async def get_paginated(
        self,
        path: str,
        *,
        limit: int = MAX_PAGE_SIZE,
        params: dict[str, Any] | None = None,
    ) -> tuple[list[Any], Meta]:
        """Fetch all pages from a paginated endpoint.

        Pages are requested in order with a fixed `limit` until
        `page * limit` reaches the total the server reports, so a
        collection of N items takes ceil(N / limit) requests (one for an
        empty collection). Any page error propagates and nothing is returned.
        """
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}, got {limit}")
        all_items: list[Any] = []
        page = 1

        while True:
            data, meta = await self.get_page(path, page=page, limit=limit, params=params)
            all_items.extend(data)
            logger.debug(
                "%s page %d/%d: %d items (%d/%d)",
                path, page, max(1, math.ceil(meta.total / limit)),
                len(data), len(all_items), meta.total,
            )
            if page * limit >= meta.total:
                break
            page += 1

        return all_items, meta
