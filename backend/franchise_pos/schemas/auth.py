"""Authentication schemas."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Login request body."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class PhonePinLoginRequest(BaseModel):
    """Phone + PIN login request body. Format checks happen in the route."""

    phone: str = Field(..., max_length=30)
    pin: str = Field(..., max_length=16)


class Token(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"


class LoginUser(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    role: str
    franchise_id: Optional[int] = None
    location_id: Optional[int] = None
    industry_type: Optional[str] = None


class PhonePinLoginResponse(Token):
    """Token plus the employee the terminal is now signed in as."""

    user: LoginUser


class SetPinRequest(BaseModel):
    """Request schema for setting the caller's PIN."""

    pin: str = Field(..., pattern=r"^\d{4}$")
