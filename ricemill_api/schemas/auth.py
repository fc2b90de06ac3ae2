from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthenticatedUserPayload(BaseModel):
    id: int
    username: str
    role: str = Field(description="admin | manager")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AuthenticatedUserPayload


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)
    role: Literal["admin", "manager"] = "manager"


class RoleUpdateRequest(BaseModel):
    role: Literal["admin", "manager"]


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: str
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


__all__ = [
    "AuthenticatedUserPayload",
    "TokenResponse",
    "RegisterRequest",
    "RoleUpdateRequest",
    "UserOut",
]
