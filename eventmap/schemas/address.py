from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Address(BaseModel):
    """One place on the map. Only ``text`` is required."""

    # NaN and Infinity would make the stored document unreadable as JSON
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    text: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    instructions: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    def to_document(self) -> Dict[str, Any]:
        """Stored form: absent fields are omitted rather than written as null."""
        return self.model_dump(exclude_none=True)


class AddressListUpdate(BaseModel):
    addresses: List[Address]

    model_config = {
        "json_schema_extra": {
            "example": {
                "addresses": [
                    {"text": "12 Main St ardlethan nsw 2665", "instructions": "Side gate"},
                    {"text": "3 Mirrool St ardlethan nsw 2665", "lat": -34.357, "lon": 146.903},
                ]
            }
        }
    }


class GeocodeResult(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    lat: float
    lon: float


class ApiMessage(BaseModel):
    success: bool = True
    message: str = Field(default="")
