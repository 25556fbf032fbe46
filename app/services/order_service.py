# app/services/order_service.py
import logging
import math
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from app.core.errors import (
    DuplicateOrderNumber,
    OrderCreationFailed,
    OrderNotFound,
    ProductNotFound,
)
from app.models.order import Order
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    DEFAULT_CITY,
    DEFAULT_COUNTRY,
    DEFAULT_STATE,
    ORDER_STATUSES,
    Guest,
    OrderCreate,
    OrderFilters,
    OrderOwner,
    OrderPage,
    OrderRead,
    OrderStats,
    OrderTracking,
    OwnedBy,
    ShippingAddressIn,
)

logger = logging.getLogger(__name__)

# Flat 10% tax, no jurisdiction logic
TAX_RATE = 0.10

# Shipping is free strictly above this subtotal, flat fee otherwise
FREE_SHIPPING_THRESHOLD = 100
FLAT_SHIPPING_COST = 10.0

ORDER_NUMBER_PREFIX = "ORD"
DEFAULT_MAX_ATTEMPTS = 5


def compute_totals(subtotal: float) -> tuple[float, float, float]:
    """
    Return (tax, shipping_cost, total) for a subtotal, rounded to cents.

    total == subtotal + tax + shipping_cost holds on the rounded values.
    """
    tax = round(subtotal * TAX_RATE, 2)
    shipping_cost = 0.0 if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_COST
    total = round(subtotal + tax + shipping_cost, 2)
    return tax, shipping_cost, total


def order_number_prefix(now: datetime) -> str:
    """ORD-YYYYMM-"""
    return f"{ORDER_NUMBER_PREFIX}-{now.year}{now.month:02d}-"


def format_order_number(sequence: int, now: datetime) -> str:
    """ORD-YYYYMM-000042"""
    return f"{order_number_prefix(now)}{sequence:06d}"


class OrderService:
    """
    Business logic for the order ledger.

    Responsibilities:
      - Create orders with snapshot pricing and a sequential order number
      - Compute subtotal / tax / shipping / total once, at creation
      - Admin status, payment status, tracking and notes updates
      - Filtered listing, public tracking and revenue stats

    Status and payment status are deliberately permissive: an admin may set
    any value from any value (e.g. pending -> delivered). The ledger records
    labels only; refunds, restocking etc. are handled outside it.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.max_attempts = max_attempts

    # -------- Checkout --------

    def create_order(
        self,
        session: Session,
        payload: OrderCreate,
        owner: OrderOwner,
    ) -> OrderRead:
        """
        Place an order.

        Steps:
          1. Resolve every product; any missing product aborts (no write).
          2. Snapshot unit price (sale price wins), name, first image.
          3. subtotal, tax, shipping, total.
          4. Default blank city/state/country.
          5. Derive order number from the current count and insert.
             A collision on order_number retries with the next free number
             (re-read count, last number tried, highest number this month),
             up to `max_attempts` times.
        """
        # 1 + 2) Snapshot line items
        items: list[dict] = []
        subtotal = 0.0
        for item in payload.items:
            product = self.product_repo.get_by_id(session, item.product_id)
            if product is None:
                raise ProductNotFound(f"Product not found: {item.product_id}")

            price = product.sale_price or product.price
            subtotal += price * item.quantity
            items.append(
                {
                    "product_id": str(product.id),
                    "name": product.name,
                    "price": price,
                    "quantity": item.quantity,
                    "size": item.size,
                    "color": item.color,
                    "image": product.images[0] if product.images else None,
                }
            )

        # 3) Totals
        subtotal = round(subtotal, 2)
        tax, shipping_cost, total = compute_totals(subtotal)

        # 4) Address defaults
        shipping_address = self._with_address_defaults(payload.shipping_address)

        user_id, guest_email = self._owner_columns(owner)

        # 5) Number + insert, retried on collision
        previous_sequence = 0
        for attempt in range(self.max_attempts):
            now = datetime.now(timezone.utc)
            sequence = self.order_repo.count_orders(session) + 1
            if attempt:
                # Re-read after a collision; deleted orders can leave the
                # count below the highest number already issued this month.
                sequence = max(
                    sequence,
                    previous_sequence + 1,
                    self.order_repo.max_sequence(session, order_number_prefix(now)) + 1,
                )
            previous_sequence = sequence
            order_number = format_order_number(sequence, now)
            order = Order(
                order_number=order_number,
                user_id=user_id,
                guest_email=guest_email,
                items=items,
                shipping_address=shipping_address,
                subtotal=subtotal,
                tax=tax,
                shipping_cost=shipping_cost,
                total=total,
                status="pending",
                payment_status="pending",
                payment_method=payload.payment_method,
                created_at=now,
                updated_at=now,
            )
            try:
                order = self.order_repo.create_order(session, order)
            except DuplicateOrderNumber:
                logger.warning(
                    "Order number %s taken (attempt %d/%d), retrying",
                    order_number,
                    attempt + 1,
                    self.max_attempts,
                )
                continue

            logger.info("Created order %s total=%.2f", order.order_number, order.total)
            return self._to_read(order)

        logger.error("Gave up allocating an order number after %d attempts", self.max_attempts)
        raise OrderCreationFailed()

    # -------- Reads --------

    def list_orders(
        self,
        session: Session,
        filters: OrderFilters,
        page: int = 1,
        limit: int = 20,
    ) -> OrderPage:
        """
        Filtered, newest-first, offset-paginated listing (admin).
        """
        page = max(page, 1)
        limit = max(limit, 1)
        orders, total = self.order_repo.list_filtered(
            session,
            filters,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return OrderPage(
            orders=[self._to_read(o) for o in orders],
            total=total,
            pages=math.ceil(total / limit),
            current_page=page,
        )

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        page: int = 1,
        limit: int = 10,
    ) -> OrderPage:
        """Orders owned by the signed-in user."""
        return self.list_orders(session, OrderFilters(user_id=user_id), page, limit)

    def get_order(self, session: Session, order_id: uuid.UUID) -> OrderRead:
        return self._to_read(self._get_or_404(session, order_id))

    def track_order(self, session: Session, order_number: str) -> OrderTracking:
        """
        Public lookup by order number.

        Only status information is exposed; no items, address or amounts.
        """
        order = self.order_repo.get_by_order_number(session, order_number.strip())
        if not order:
            raise OrderNotFound()
        return OrderTracking(
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
            tracking_number=order.tracking_number,
            created_at=order.created_at,
        )

    def get_stats(self, session: Session) -> OrderStats:
        counts = self.order_repo.count_by_status(session)
        status_counts = {s: counts.get(s, 0) for s in ORDER_STATUSES}
        return OrderStats(
            total_orders=self.order_repo.count_orders(session),
            total_revenue=self.order_repo.paid_revenue(session),
            status_counts=status_counts,
            pending_orders=status_counts["pending"],
            processing_orders=status_counts["processing"],
            delivered_orders=status_counts["delivered"],
        )

    # -------- Admin mutations --------

    def update_status(self, session: Session, order_id: uuid.UUID, new_status: str) -> OrderRead:
        """Set status. No transition graph: any status from any status."""
        order = self._get_or_404(session, order_id)
        if order.status != new_status:
            logger.info("Order %s status %s -> %s", order.order_number, order.status, new_status)
            order.status = new_status
            order = self.order_repo.update_order(session, order)
        return self._to_read(order)

    def update_payment_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payment_status: str,
        payment_id: str | None = None,
    ) -> OrderRead:
        """Set payment status, recording the external payment id when given."""
        order = self._get_or_404(session, order_id)
        order.payment_status = payment_status
        if payment_id:
            order.payment_id = payment_id
        order = self.order_repo.update_order(session, order)
        return self._to_read(order)

    def add_tracking_number(
        self,
        session: Session,
        order_id: uuid.UUID,
        tracking_number: str,
    ) -> OrderRead:
        order = self._get_or_404(session, order_id)
        order.tracking_number = tracking_number
        order = self.order_repo.update_order(session, order)
        return self._to_read(order)

    def add_note(self, session: Session, order_id: uuid.UUID, notes: str) -> OrderRead:
        """Replace the order's notes (not appended)."""
        order = self._get_or_404(session, order_id)
        order.notes = notes
        order = self.order_repo.update_order(session, order)
        return self._to_read(order)

    def delete_order(self, session: Session, order_id: uuid.UUID) -> None:
        """Hard delete (admin)."""
        order = self._get_or_404(session, order_id)
        self.order_repo.delete_order(session, order)
        logger.info("Deleted order %s", order.order_number)

    # -------- Helpers --------

    def _get_or_404(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise OrderNotFound()
        return order

    @staticmethod
    def _owner_columns(owner: OrderOwner) -> tuple[uuid.UUID | None, str | None]:
        if isinstance(owner, OwnedBy):
            return owner.user_id, None
        if isinstance(owner, Guest):
            return None, owner.email.strip().lower()
        raise TypeError(f"Unknown order owner: {owner!r}")

    @staticmethod
    def _with_address_defaults(address: ShippingAddressIn) -> dict:
        data = address.model_dump()
        data["email"] = str(address.email)
        data["city"] = address.city or DEFAULT_CITY
        data["state"] = address.state or DEFAULT_STATE
        data["country"] = address.country or DEFAULT_COUNTRY
        return data

    @staticmethod
    def _to_read(order: Order) -> OrderRead:
        return OrderRead.model_validate(order, from_attributes=True)
