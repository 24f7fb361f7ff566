from __future__ import annotations

from pydantic import BaseModel, StrictStr


class RulesDocument(BaseModel):
    # Strict so numbers or lists are rejected instead of coerced; "" is fine.
    rules: StrictStr

    model_config = {
        "json_schema_extra": {"example": {"rules": "Lights on means treats are available."}}
    }
