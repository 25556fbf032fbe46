# app/schemas/user.py
import uuid
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel

# App-level roles. Admin is re-derived from the allow-list at login.
Role = Literal["admin", "customer", "none"]
Theme = Literal["light", "dark"]


class UserRead(SQLModel):
    """Response schema returned to clients."""

    id: uuid.UUID
    email: str
    name: str
    picture: str | None
    role: Role


class UserProfileRead(UserRead):
    theme: Theme


class GoogleCodeLogin(SQLModel):
    """Authorization-code flow: the frontend forwards Google's `code`."""

    model_config = ConfigDict(extra="forbid")

    code: str

    @field_validator("code")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Authorization code is required")
        return v


class GoogleIdTokenLogin(SQLModel):
    """Legacy flow: the frontend already holds a Google ID token."""

    model_config = ConfigDict(extra="forbid")

    id_token: str

    @field_validator("id_token")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("ID token is required")
        return v


class AuthResponse(SQLModel):
    token: str
    user: UserRead


class AuthUrlRead(SQLModel):
    url: str


class AdminValidationRead(SQLModel):
    is_admin: bool
    user: UserRead


class ThemeUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    theme: Theme
