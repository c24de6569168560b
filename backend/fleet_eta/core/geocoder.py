"""Async address geocoding against a Nominatim-compatible search API."""

import asyncio
import logging
from typing import Protocol

import httpx

from fleet_eta.config import settings
from fleet_eta.core.errors import GeocodeError
from fleet_eta.core.geo import Coordinate

logger = logging.getLogger(__name__)

# Seconds between retries of transient failures
RETRY_BACKOFF = [1, 2, 4]


class Geocoder(Protocol):
    async def geocode(self, address: str) -> Coordinate: ...


def _normalize(address: str) -> str:
    return " ".join(address.split()).casefold()


class HttpGeocoder:
    """Resolves free-text addresses to coordinates, caching successful lookups."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        max_retries: int | None = None,
        retry_backoff: list[float] | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=settings.geocoder_base_url,
            timeout=settings.geocode_timeout_seconds,
            headers={
                "Accept": "application/json",
                "User-Agent": settings.geocoder_user_agent,
            },
        )
        self._max_retries = settings.geocode_max_retries if max_retries is None else max_retries
        self._retry_backoff = RETRY_BACKOFF if retry_backoff is None else retry_backoff
        self._cache: dict[str, Coordinate] = {}

    async def close(self) -> None:
        await self._client.aclose()

    async def geocode(self, address: str) -> Coordinate:
        key = _normalize(address)
        if not key:
            raise GeocodeError(address, "empty address")
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        resp = await self._search_with_retry(address)
        coordinate = self._parse(address, resp)
        self._cache[key] = coordinate
        logger.debug("Geocoded %r -> (%.5f, %.5f)", address, coordinate.lat, coordinate.lon)
        return coordinate

    def _backoff(self, attempt: int) -> float:
        if not self._retry_backoff:
            return 0
        return self._retry_backoff[min(attempt, len(self._retry_backoff) - 1)]

    async def _search_with_retry(self, address: str) -> httpx.Response:
        """GET /search with retry on timeouts, connection errors and 5xx."""
        params = {"q": address, "format": "jsonv2", "limit": 1}
        for attempt in range(self._max_retries + 1):
            try:
                resp = await self._client.get("/search", params=params)
                resp.raise_for_status()
                return resp
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt >= self._max_retries:
                    raise GeocodeError(address, f"{type(e).__name__} after {attempt + 1} attempts") from e
                wait = self._backoff(attempt)
                logger.warning(
                    "Geocode %r attempt %d/%d failed (%s), retrying in %ss",
                    address, attempt + 1, self._max_retries + 1, type(e).__name__, wait,
                )
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status < 500 or attempt >= self._max_retries:
                    raise GeocodeError(address, f"HTTP {status}") from e
                wait = self._backoff(attempt)
                logger.warning(
                    "Geocode %r attempt %d/%d got HTTP %d, retrying in %ss",
                    address, attempt + 1, self._max_retries + 1, status, wait,
                )
            await asyncio.sleep(wait)
        raise GeocodeError(address, "retries exhausted")

    @staticmethod
    def _parse(address: str, resp: httpx.Response) -> Coordinate:
        try:
            data = resp.json()
        except ValueError as e:
            raise GeocodeError(address, "malformed response") from e

        if isinstance(data, dict):
            data = data.get("results", [])
        if not data:
            raise GeocodeError(address, "address not found")

        first = data[0]
        try:
            return Coordinate(lat=float(first["lat"]), lon=float(first["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodeError(address, "malformed response") from e
