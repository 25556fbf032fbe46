# app/models/order.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    Field set is shared with tooling that reads the table directly:
      - id, order_number, user_id, guest_email, items, shipping_address,
        subtotal, tax, shipping_cost, total, status, payment_status,
        payment_method, payment_id, tracking_number, notes,
        created_at, updated_at

    `items` holds price snapshots taken at checkout, not product references
    to be re-read later. Line items are never edited after creation.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    # ORD-YYYYMM-000123, unique and immutable
    order_number: str = Field(
        unique=True,
        index=True,
        description="Human-readable sequential order number",
    )

    # Exactly one of user_id / guest_email is written at checkout
    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )
    guest_email: str | None = Field(
        default=None,
        index=True,
        description="Contact email for guest checkouts",
    )

    items: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Line item snapshots: product_id, name, price, quantity, size, color, image",
    )

    shipping_address: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )

    subtotal: float = Field(ge=0)
    tax: float = Field(default=0.0, ge=0)
    shipping_cost: float = Field(default=0.0, ge=0)

    # subtotal + tax + shipping_cost, computed once at checkout
    total: float = Field(ge=0)

    # pending | processing | delivered | cancelled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    # pending | paid | failed | refunded
    payment_status: str = Field(
        default="pending",
        index=True,
    )

    payment_method: str | None = None
    payment_id: str | None = None
    tracking_number: str | None = None
    notes: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last modification timestamp (UTC)",
    )
