from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..core.errors import ErrorEnvelope
from ..deps.auth import get_address_service, require_session
from ..schemas.address import AddressListUpdate, ApiMessage, GeocodeResult
from ..services.addresses import AddressService
from ..services.geocoding import GeocodingError

router = APIRouter(prefix="/api", tags=["addresses"])


@router.get("/addresses")
def list_addresses(service: AddressService = Depends(get_address_service)):
    return service.list_addresses()


@router.post("/addresses", response_model=ApiMessage, dependencies=[Depends(require_session)])
async def replace_addresses(
    payload: AddressListUpdate,
    service: AddressService = Depends(get_address_service),
):
    # Blocks for one throttled geocoder round trip per address without
    # coordinates.
    await service.replace_addresses(payload.addresses)
    return ApiMessage(message="Addresses updated successfully.")


@router.get("/geocode", response_model=GeocodeResult, dependencies=[Depends(require_session)])
async def geocode_address(
    q: str = Query(..., min_length=1),
    service: AddressService = Depends(get_address_service),
):
    try:
        coords = await service.geocoder.lookup(q)
    except GeocodingError as exc:
        return ErrorEnvelope(status_code=404, code=exc.code, message="No match found for that address.")
    return GeocodeResult(lat=coords.lat, lon=coords.lon)
