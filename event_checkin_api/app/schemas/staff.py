"""
Pydantic models for staff accounts and authentication.

Staff are the people operating the event: administrators who manage
forms and registrations, and scanners working the entrance.
"""

from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., examples=["admin@event.com"])
    password: str = Field(..., examples=["admin"])


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class StaffCreate(BaseModel):
    email: str = Field(..., min_length=3, examples=["door1@event.com"])
    full_name: Optional[str] = Field(None, examples=["Front Door"])
    password: str = Field(..., min_length=4)
    # 1 = admin, 2 = scanner
    role_id: int = Field(2, ge=1, le=2)


class StaffRead(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    role_id: int
    disabled: bool = False

    model_config = {
        "from_attributes": True,
    }
