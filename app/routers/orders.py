# app/routers/orders.py
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.core.auth import get_current_user_optional, require_admin, require_auth
from app.core.config import get_settings
from app.core.security import TokenPayload
from app.database import get_session
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    Guest,
    OrderCreate,
    OrderFilters,
    OrderNotesUpdate,
    OrderPage,
    OrderRead,
    OrderStats,
    OrderStatus,
    OrderStatusUpdate,
    OrderTracking,
    OwnedBy,
    PaymentStatus,
    PaymentStatusUpdate,
    TrackingNumberUpdate,
)
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
product_repo = ProductRepository()
service = OrderService(
    order_repo,
    product_repo,
    max_attempts=get_settings().ORDER_NUMBER_MAX_ATTEMPTS,
)


def get_order_service() -> OrderService:
    return service


# -------- Public endpoints --------


@router.post(
    "",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current: TokenPayload | None = Depends(get_current_user_optional),
    service: OrderService = Depends(get_order_service),
):
    """
    Place an order (guest or signed-in).

    - Signed-in callers own the order.
    - Guests are identified by the shipping address email.
    """
    owner = (
        OwnedBy(user_id=current.user_id)
        if current is not None
        else Guest(email=str(payload.shipping_address.email))
    )
    return service.create_order(session, payload, owner)


@router.get("/track/{order_number}", response_model=OrderTracking)
def track_order(
    order_number: str,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Public order tracking by order number.

    Returns status fields only, never items, address or amounts.
    """
    return service.track_order(session, order_number)


# -------- Authenticated user endpoints --------


@router.get("/my-orders", response_model=OrderPage)
def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    current: TokenPayload = Depends(require_auth),
    service: OrderService = Depends(get_order_service),
):
    """
    List the authenticated user's orders, newest first.
    """
    return service.list_user_orders(session, current.user_id, page, limit)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=OrderPage,
    dependencies=[Depends(require_admin)],
)
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: OrderStatus | None = None,
    payment_status: PaymentStatus | None = None,
    user_id: uuid.UUID | None = None,
    guest_email: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    List all orders (admin only).

    Filters are AND-combined; pagination via page/limit.
    """
    filters = OrderFilters(
        status=status,
        payment_status=payment_status,
        user_id=user_id,
        guest_email=guest_email,
        start_date=start_date,
        end_date=end_date,
    )
    return service.list_orders(session, filters, page, limit)


@router.get(
    "/stats",
    response_model=OrderStats,
    dependencies=[Depends(require_admin)],
)
def order_stats(
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Order counts and revenue (sum of totals for paid orders).
    """
    return service.get_stats(session)


@router.get(
    "/{order_id}",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    return service.get_order(session, order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Update order status (admin only).

    Any status may be set from any status; no transition graph is enforced.
    """
    return service.update_status(session, order_id, payload.status)


@router.patch(
    "/{order_id}/payment-status",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_payment_status(
    order_id: uuid.UUID,
    payload: PaymentStatusUpdate,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    return service.update_payment_status(
        session, order_id, payload.payment_status, payload.payment_id
    )


@router.patch(
    "/{order_id}/tracking",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_tracking_number(
    order_id: uuid.UUID,
    payload: TrackingNumberUpdate,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    return service.add_tracking_number(session, order_id, payload.tracking_number)


@router.patch(
    "/{order_id}/notes",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_notes(
    order_id: uuid.UUID,
    payload: OrderNotesUpdate,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Replace the order's internal notes.
    """
    return service.add_note(session, order_id, payload.notes)


@router.delete(
    "/{order_id}",
    dependencies=[Depends(require_admin)],
)
def delete_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Hard-delete an order (admin only).
    """
    service.delete_order(session, order_id)
    return {"success": True, "message": "Order deleted successfully"}
