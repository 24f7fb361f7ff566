from __future__ import annotations

from pydantic import BaseModel, Field, StrictStr


class PasswordChangeRequest(BaseModel):
    current_password: StrictStr = Field(default="", alias="currentPassword")
    new_password: StrictStr = Field(default="", alias="newPassword")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {"currentPassword": "password123", "newPassword": "a-much-better-one"}
        },
    }
