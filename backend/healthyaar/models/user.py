"""
Identity Models - principals issued by the auth provider.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class Identity(BaseModel):
    """An authenticated or anonymous session principal."""
    uid: str
    is_anonymous: bool = True
    created_at: Optional[datetime] = None


class CustomTokenRequest(BaseModel):
    """One-time custom token exchange."""
    token: str


class Token(BaseModel):
    """Access token response model."""
    access_token: str
    token_type: str = "bearer"
    uid: str
    is_anonymous: bool = True


class TokenData(BaseModel):
    """Access token payload data."""
    uid: str
    jti: str
    is_anonymous: bool = True
