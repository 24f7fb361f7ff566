"""Admin-side editing state for the address list.

``AddressBook`` keeps a working copy of the server's list. Every transition
(add, edit, set location, delete) builds a new *complete* list with one of
the pure functions below, posts it, and then re-fetches the server's copy.
The server may have geocoded entries or another admin may have saved in
between, so the re-fetched list is the new truth (last write wins).
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

AddressDict = Dict[str, Any]

DEFAULT_PICKER_CENTER = (-33.8688, 151.2093)
EXISTING_ZOOM = 15
GEOCODED_ZOOM = 13
FALLBACK_ZOOM = 10


class AdminApi(Protocol):
    def fetch_addresses(self) -> List[AddressDict]: ...

    def save_addresses(self, addresses: List[AddressDict]) -> Dict[str, Any]: ...

    def geocode(self, text: str) -> Optional[Tuple[float, float]]: ...


@dataclass(frozen=True)
class AddressSuffix:
    """Fixed locality appended to every address ("12 Main St" + suffix).

    The admin only edits the street part. Stripping is repeated and
    case-insensitive so addresses saved with the suffix twice come back clean.
    An empty suffix turns the rule off.
    """

    suffix: str = ""

    def strip(self, text: str) -> str:
        street = (text or "").strip()
        suffix = self.suffix.strip().lower()
        if not suffix:
            return street
        while street.lower() == suffix or street.lower().endswith(" " + suffix):
            street = street[: len(street) - len(suffix)].strip()
        return street

    def apply(self, street: str) -> str:
        base = self.strip(street)
        suffix = self.suffix.strip()
        return f"{base} {suffix}".strip() if suffix else base


@dataclass(frozen=True)
class MapSeed:
    lat: float
    lon: float
    zoom: int
    has_marker: bool


@dataclass(frozen=True)
class SaveOutcome:
    success: bool
    message: str


def _check_index(addresses: List[AddressDict], index: int) -> None:
    if not 0 <= index < len(addresses):
        raise IndexError(f"No address at position {index}")


def _clean_instructions(instructions: Optional[str]) -> Optional[str]:
    cleaned = (instructions or "").strip()
    return cleaned or None


def with_added(
    addresses: List[AddressDict], text: str, instructions: Optional[str] = None
) -> List[AddressDict]:
    entry: AddressDict = {"text": text}
    cleaned = _clean_instructions(instructions)
    if cleaned:
        entry["instructions"] = cleaned
    return copy.deepcopy(addresses) + [entry]


def with_edited(
    addresses: List[AddressDict], index: int, text: str, instructions: Optional[str] = None
) -> List[AddressDict]:
    _check_index(addresses, index)
    updated = copy.deepcopy(addresses)
    entry = updated[index]
    if entry.get("text") != text:
        # New text means new coordinates; the server re-geocodes.
        entry.pop("lat", None)
        entry.pop("lon", None)
    entry["text"] = text
    cleaned = _clean_instructions(instructions)
    if cleaned:
        entry["instructions"] = cleaned
    else:
        entry.pop("instructions", None)
    return updated


def with_location(addresses: List[AddressDict], index: int, lat: float, lon: float) -> List[AddressDict]:
    _check_index(addresses, index)
    updated = copy.deepcopy(addresses)
    updated[index]["lat"] = float(lat)
    updated[index]["lon"] = float(lon)
    return updated


def without(addresses: List[AddressDict], index: int) -> List[AddressDict]:
    _check_index(addresses, index)
    updated = copy.deepcopy(addresses)
    del updated[index]
    return updated


class AddressBook:
    def __init__(
        self,
        api: AdminApi,
        *,
        suffix: AddressSuffix = AddressSuffix(),
        fallback_center: Tuple[float, float] = DEFAULT_PICKER_CENTER,
    ) -> None:
        self.api = api
        self.suffix = suffix
        self.fallback_center = fallback_center
        self.addresses: List[AddressDict] = []

    def refresh(self) -> List[AddressDict]:
        self.addresses = self.api.fetch_addresses()
        return self.addresses

    def _save(self, desired: List[AddressDict]) -> SaveOutcome:
        """Post the full list, then always re-fetch the canonical copy."""

        try:
            result = self.api.save_addresses(desired)
        finally:
            self.refresh()
        outcome = SaveOutcome(bool(result.get("success")), str(result.get("message", "")))
        if not outcome.success:
            logger.warning("Save rejected: %s", outcome.message)
        return outcome

    def get(self, index: int) -> AddressDict:
        _check_index(self.addresses, index)
        return self.addresses[index]

    def add(self, street: str, instructions: Optional[str] = None) -> Optional[SaveOutcome]:
        street = (street or "").strip()
        if not street:
            return None
        return self._save(with_added(self.addresses, self.suffix.apply(street), instructions))

    def editable_text(self, index: int) -> str:
        return self.suffix.strip(self.get(index).get("text", ""))

    def edit(self, index: int, street: str, instructions: Optional[str] = None) -> SaveOutcome:
        street = (street or "").strip()
        if not street:
            raise ValueError("Address text is required")
        return self._save(with_edited(self.addresses, index, self.suffix.apply(street), instructions))

    def location_seed(self, index: int) -> MapSeed:
        """Where to open the location picker for one address."""

        address = self.get(index)
        lat, lon = address.get("lat"), address.get("lon")
        if lat is not None and lon is not None:
            return MapSeed(float(lat), float(lon), EXISTING_ZOOM, True)
        try:
            guess = self.api.geocode(address.get("text", ""))
        except Exception as exc:
            logger.warning("Error geocoding for location picker: %s", exc)
            guess = None
        if guess:
            return MapSeed(guess[0], guess[1], GEOCODED_ZOOM, False)
        return MapSeed(self.fallback_center[0], self.fallback_center[1], FALLBACK_ZOOM, False)

    def set_location(self, index: int, lat: float, lon: float) -> SaveOutcome:
        return self._save(with_location(self.addresses, index, lat, lon))

    def pick_location(
        self, index: int, picker: Callable[[MapSeed], Optional[Tuple[float, float]]]
    ) -> Optional[SaveOutcome]:
        """Run an interactive picker; ``None`` from it means cancelled."""

        choice = picker(self.location_seed(index))
        if choice is None:
            return None
        return self.set_location(index, choice[0], choice[1])

    def delete(self, index: int, confirm: Callable[[AddressDict], bool]) -> Optional[SaveOutcome]:
        if not confirm(self.get(index)):
            return None
        return self._save(without(self.addresses, index))
