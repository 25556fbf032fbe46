# app/repositories/order_repo.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.errors import DuplicateOrderNumber
from app.models.order import Order
from app.schemas.order import OrderFilters


class OrderRepository:
    """
    Data access layer for orders.

    NOTE:
      - `create_order` is the only place that turns a unique-index violation
        on order_number into DuplicateOrderNumber; the service retries it.
    """

    # ---- Reads ----

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def get_by_order_number(self, session: Session, order_number: str) -> Order | None:
        stmt = select(Order).where(Order.order_number == order_number)
        return session.exec(stmt).first()

    def count_orders(self, session: Session) -> int:
        stmt = select(func.count()).select_from(Order)
        value = session.exec(stmt).one()
        return int(value or 0)

    def max_sequence(self, session: Session, prefix: str) -> int:
        """
        Highest sequence already used under `prefix` (e.g. "ORD-202610-"), or 0.

        Sequences are zero-padded, so the lexical maximum is the numeric one.
        """
        stmt = (
            select(Order.order_number)
            .where(Order.order_number.startswith(prefix))
            .order_by(Order.order_number.desc())
            .limit(1)
        )
        latest = session.exec(stmt).first()
        if not latest:
            return 0
        try:
            return int(latest[len(prefix):])
        except ValueError:
            return 0

    def list_filtered(
        self,
        session: Session,
        filters: OrderFilters,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Order], int]:
        """
        Newest-first page of orders matching every given filter.

        Returns:
            (orders on this page, total matching orders)
        """
        conditions = self._conditions(filters)

        stmt = (
            select(Order)
            .where(*conditions)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(Order).where(*conditions)

        orders = list(session.exec(stmt).all())
        total = int(session.exec(count_stmt).one() or 0)
        return orders, total

    # ---- Writes ----

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert and commit an Order.

        Raises:
            DuplicateOrderNumber: another order already holds order.order_number.
        """
        session.add(order)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            if "order_number" in str(exc.orig):
                raise DuplicateOrderNumber(
                    f"Order number {order.order_number} already exists"
                ) from exc
            raise
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        order.updated_at = datetime.now(timezone.utc)
        session.add(order)
        session.commit()
        session.refresh(order)
        return order

    def delete_order(self, session: Session, order: Order) -> None:
        session.delete(order)
        session.commit()

    # ---- Aggregates ----

    def count_by_status(self, session: Session) -> dict[str, int]:
        stmt = select(Order.status, func.count(Order.id)).group_by(Order.status)
        return {status: int(count) for status, count in session.exec(stmt).all()}

    def paid_revenue(self, session: Session) -> float:
        """
        Sum of `total` for orders whose payment_status is 'paid'.
        Order status plays no part.
        """
        stmt = (
            select(func.coalesce(func.sum(Order.total), 0.0))
            .where(Order.payment_status == "paid")
        )
        value = session.exec(stmt).one()
        return float(value or 0.0)

    # ---- Helpers ----

    @staticmethod
    def _conditions(filters: OrderFilters) -> list:
        conditions = []
        if filters.status:
            conditions.append(Order.status == filters.status)
        if filters.payment_status:
            conditions.append(Order.payment_status == filters.payment_status)
        if filters.user_id:
            conditions.append(Order.user_id == filters.user_id)
        if filters.guest_email:
            conditions.append(Order.guest_email == filters.guest_email.strip().lower())
        if filters.start_date:
            conditions.append(Order.created_at >= filters.start_date)
        if filters.end_date:
            conditions.append(Order.created_at <= filters.end_date)
        return conditions
