# app/schemas/order.py
import uuid
from datetime import datetime
from typing import Literal, Union

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field

# Canonical status machine. Any status may be set from any status by an
# admin; the ledger records labels, not their business consequences.
OrderStatus = Literal["pending", "processing", "delivered", "cancelled"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]

ORDER_STATUSES: tuple[str, ...] = ("pending", "processing", "delivered", "cancelled")

# Single-region operation: blank address parts fall back to these
DEFAULT_CITY = "Kathmandu Valley"
DEFAULT_STATE = "Bagmati"
DEFAULT_COUNTRY = "Nepal"


# -------- Ownership --------


class OwnedBy(SQLModel):
    """Order placed by a signed-in user."""

    model_config = ConfigDict(frozen=True)

    user_id: uuid.UUID


class Guest(SQLModel):
    """Order placed without an account, keyed by contact email."""

    model_config = ConfigDict(frozen=True)

    email: str


OrderOwner = Union[OwnedBy, Guest]


# -------- Checkout payload --------


class ShippingAddressIn(SQLModel):
    """
    Shipping address supplied at checkout.

    city / state / country may be omitted and are filled with the
    single-region defaults; postal_code is optional.
    """

    model_config = ConfigDict(extra="forbid")

    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None

    @field_validator("first_name", "last_name", "phone", "address")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("city", "state", "postal_code", "country")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderItemIn(SQLModel):
    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(gt=0)
    size: str | None = None
    color: str | None = None


class OrderCreate(SQLModel):
    """
    Payload for placing an order.

    Backend derives:
      - owner (user id from the session, or the address email for guests)
      - unit prices from the catalog (sale price wins)
      - subtotal, tax (10%), shipping (free above 100), total
      - order_number, status='pending', payment_status='pending'
    """

    model_config = ConfigDict(extra="forbid")

    items: list[OrderItemIn] = Field(min_length=1)
    shipping_address: ShippingAddressIn
    payment_method: str | None = None


# -------- Read models --------


class OrderItemSnapshot(SQLModel):
    """Line item as captured at checkout."""

    product_id: uuid.UUID
    name: str
    price: float
    quantity: int
    size: str | None = None
    color: str | None = None
    image: str | None = None


class ShippingAddress(SQLModel):
    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    postal_code: str | None = None
    country: str


class OrderRead(SQLModel):
    """Full order view (admin and owner)."""

    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID | None
    guest_email: str | None
    items: list[OrderItemSnapshot]
    shipping_address: ShippingAddress
    subtotal: float
    tax: float
    shipping_cost: float
    total: float
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: str | None
    payment_id: str | None
    tracking_number: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class OrderPage(SQLModel):
    orders: list[OrderRead]
    total: int
    pages: int
    current_page: int


class OrderTracking(SQLModel):
    """
    Public tracking view, looked up by order number alone.

    Carries no items, address or amounts.
    """

    model_config = ConfigDict(extra="forbid")

    order_number: str
    status: OrderStatus
    payment_status: PaymentStatus
    tracking_number: str | None
    created_at: datetime


# -------- Admin payloads --------


class OrderStatusUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    status: OrderStatus


class PaymentStatusUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    payment_status: PaymentStatus
    payment_id: str | None = None


class TrackingNumberUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    tracking_number: str = Field(min_length=1)

    @field_validator("tracking_number")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("tracking_number cannot be empty")
        return v


class OrderNotesUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    notes: str


class OrderFilters(SQLModel):
    """AND-combined listing filters; None means "don't filter"."""

    status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None
    user_id: uuid.UUID | None = None
    guest_email: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


# -------- Stats --------


class OrderStats(SQLModel):
    total_orders: int
    # Sum of `total` over orders with payment_status='paid'
    total_revenue: float
    status_counts: dict[str, int]
    pending_orders: int
    processing_orders: int
    delivered_orders: int
