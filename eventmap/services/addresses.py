from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, List, Protocol

from ..db.store import JsonDocumentStore
from ..schemas.address import Address
from .geocoding import Coordinates, GeocodingError

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    async def lookup(self, text: str) -> Coordinates: ...


def needs_geocoding(address: Address) -> bool:
    return bool(address.text.strip()) and not address.has_coordinates


class AddressService:
    """Whole-list replacement of the address book, geocoding as it goes."""

    def __init__(self, store: JsonDocumentStore, geocoder: Geocoder) -> None:
        self.store = store
        self.geocoder = geocoder

    def list_addresses(self) -> List[Dict[str, Any]]:
        return self.store.read()["addresses"]

    async def _resolve(self, address: Address) -> Address:
        try:
            coords = await self.geocoder.lookup(address.text)
        except GeocodingError as exc:
            # Keep the address; it simply will not appear on the map yet.
            logger.warning("Could not geocode %r: %s", address.text, exc.message)
            return address.model_copy(update={"lat": None, "lon": None})
        return address.model_copy(update={"lat": coords.lat, "lon": coords.lon})

    async def replace_addresses(self, addresses: Iterable[Address]) -> List[Dict[str, Any]]:
        """Geocode what is missing, then swap the stored list in one write.

        Addresses that already carry both coordinates are stored untouched.
        A failed lookup never aborts the batch. Lookups are made before the
        store lock is taken because the geocoder is throttled.
        """

        started = time.monotonic()
        resolved: List[Address] = []
        lookups = 0
        for address in addresses:
            if needs_geocoding(address):
                lookups += 1
                address = await self._resolve(address)
            elif not address.has_coordinates:
                address = address.model_copy(update={"lat": None, "lon": None})
            resolved.append(address)

        documents = [address.to_document() for address in resolved]
        with self.store.transaction() as document:
            document["addresses"] = documents

        if lookups:
            logger.info(
                "Saved %d addresses with %d geocode lookups in %.1fs",
                len(documents),
                lookups,
                time.monotonic() - started,
            )
        return documents
