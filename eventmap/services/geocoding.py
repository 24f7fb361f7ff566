from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx

from ..core.config import AppSettings
from ..core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

# Nominatim's usage policy allows one request per second.
MIN_REQUEST_INTERVAL = 1.0


class GeocodingError(ExternalServiceError):
    """Raised when a lookup fails or finds nothing."""

    code = "geocoding_failed"
    message = "Address lookup failed."


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lon: float


def _parse_first_match(data: Any, query: str) -> Coordinates:
    if not isinstance(data, list) or not data:
        raise GeocodingError(f"No match for {query!r}")
    first = data[0]
    if not isinstance(first, dict):
        raise GeocodingError(f"Unexpected geocoder payload for {query!r}")
    try:
        return Coordinates(lat=float(first["lat"]), lon=float(first["lon"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise GeocodingError(f"Unparsable coordinates for {query!r}") from exc


class NominatimGeocoder:
    """Resolve free-text addresses through a Nominatim-compatible search API.

    Requests are throttled so that two consecutive lookups made through the
    same instance are at least ``MIN_REQUEST_INTERVAL`` seconds apart. A batch
    of N lookups therefore takes at least N-1 seconds plus network time.
    """

    def __init__(
        self,
        *,
        base_url: str,
        country_codes: str,
        user_agent: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.base_url = base_url
        self.country_codes = country_codes
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport
        self._clock = clock
        self._sleep = sleep
        self._throttle_lock = asyncio.Lock()
        self._last_request: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: AppSettings, **kwargs: Any) -> "NominatimGeocoder":
        return cls(
            base_url=settings.GEOCODER_URL,
            country_codes=settings.GEOCODER_COUNTRY_CODES,
            user_agent=settings.GEOCODER_USER_AGENT,
            timeout=settings.GEOCODER_TIMEOUT_SECONDS,
            **kwargs,
        )

    async def _throttle(self) -> None:
        if self._last_request is not None:
            wait = self._last_request + MIN_REQUEST_INTERVAL - self._clock()
            if wait > 0:
                await self._sleep(wait)
        self._last_request = self._clock()

    async def lookup(self, text: str) -> Coordinates:
        """Return the best match for ``text`` or raise :class:`GeocodingError`."""

        query = (text or "").strip()
        if not query:
            raise GeocodingError("Empty address")

        params = {"format": "json", "countrycodes": self.country_codes, "q": query}
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}

        async with self._throttle_lock:
            await self._throttle()
            try:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout), transport=self._transport
                ) as client:
                    response = await client.get(self.base_url, params=params, headers=headers)
                    response.raise_for_status()
                    data = response.json()
            except httpx.HTTPStatusError as exc:
                raise GeocodingError(
                    f"Geocoder returned {exc.response.status_code} for {query!r}"
                ) from exc
            except httpx.HTTPError as exc:
                raise GeocodingError(f"Geocoder request failed for {query!r}: {exc}") from exc
            except ValueError as exc:
                raise GeocodingError(f"Geocoder sent invalid JSON for {query!r}") from exc

        coords = _parse_first_match(data, query)
        logger.info("Geocoded %r to [%s, %s]", query, coords.lat, coords.lon)
        return coords
