# app/repositories/product_repo.py
import uuid

from sqlmodel import Session

from app.models.product import Product


class ProductRepository:
    """
    Read accessor over the catalog.

    Checkout only needs "current price for product X"; catalog writes are
    handled by the catalog service, not here.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)
