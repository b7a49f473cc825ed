"""Pydantic schemas for the auth endpoints.

Learn: Request fields are all Optional on purpose. A missing email or a
short password is a 400 with a readable message from the credential
verifier, not FastAPI's generic 422.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class GoogleAuthRequest(BaseModel):
    token: Optional[str] = None


class UserRead(BaseModel):
    """Public view of a user. Never includes the password hash."""
    id: int
    email: str
    name: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserRead


class IdentityRead(BaseModel):
    """What the session token says about the caller."""
    id: int
    email: str
    name: str
    issued_at: datetime
    expires_at: datetime
