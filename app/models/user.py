# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent identity record.

    Identity:
      - id: internal UUID, used as the JWT "sub"
      - email: natural key, stored lower-cased (case-insensitive)

    Role:
      - "admin" | "customer" | "none"
      - re-derived from the admin allow-list on every login; never taken
        from client input.

    Passwords are never stored: users sign in through Google and we only
    mirror identity, avatar, application role and UI theme.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Lower-cased email from the identity provider",
    )

    name: str = Field(
        max_length=200,
        description="Display name; local part of the email by default",
    )

    picture: str | None = Field(
        default=None,
        description="Avatar URL from the identity provider",
    )

    # Application role
    role: str = Field(
        default="customer",
        index=True,
        description="Application role: admin | customer | none",
    )

    google_id: str | None = Field(
        default=None,
        index=True,
        description="Google subject id ('sub' claim)",
    )

    theme: str = Field(
        default="light",
        description="UI theme preference: light | dark",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last modification timestamp (UTC)",
    )
