"""
Authentication request and response schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class GoogleAuthRequest(BaseModel):
    """
    Google sign-in request.

    ``id_token`` is required when the server is configured with a Google
    client id. Otherwise the profile fields are trusted as sent.
    """

    id_token: Optional[str] = None
    google_id: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, max_length=255)
    picture: Optional[str] = Field(None, max_length=500)


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""

    refresh_token: str


class UserResponse(BaseModel):
    """User response schema."""

    id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    """Token pair issued on sign-in."""

    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
