# app/schemas/auth.py

from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel


# ──────────────── Users (public view) ────────────────
class UserPublic(CamelModel):
    id: UUID
    username: str
    email: str
    role: str


# ──────────────── Login / Register ────────────────
class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)


class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6)


class AuthResponse(CamelModel):
    token: str
    user: UserPublic


class VerifyResponse(CamelModel):
    user: UserPublic


# ──────────────── Email verification codes ────────────────
# Fields are optional so a missing value yields the documented 400
# instead of a 422 validation error.
class SendCodeRequest(CamelModel):
    email: Optional[str] = None


class VerifyCodeRequest(CamelModel):
    email: Optional[str] = None
    code: Optional[str] = None


# ──────────────── Password reset ────────────────
class ForgotPasswordRequest(CamelModel):
    email: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    token: Optional[str] = None
    new_password: Optional[str] = None
