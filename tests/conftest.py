import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from app.core.auth import get_admin_allow_list
from app.core.errors import CredentialExchangeFailed, CredentialInvalid
from app.core.google_oauth import GoogleAssertion, get_google_client
from app.core.security import create_access_token
from app.database import get_session
from app.main import app
from app.models.product import Product
from app.models.user import User
from app.schemas.order import OrderCreate

ADMIN_EMAIL = "owner@ami-shop.com"
CUSTOMER_EMAIL = "buyer@mail.com"


class FakeGoogleClient:
    """Stands in for GoogleOAuthClient: codes/tokens map to assertions."""

    def __init__(self):
        self.assertions: dict[str, GoogleAssertion] = {}
        self.unreachable = False

    def register(self, key: str, email: str, name: str = "Test User", picture: str | None = None):
        self.assertions[key] = GoogleAssertion(
            email=email,
            name=name,
            picture=picture,
            sub=f"google-{email}",
        )

    def authorization_url(self) -> str:
        return "https://accounts.google.com/o/oauth2/v2/auth?client_id=test"

    def exchange_code(self, code: str) -> GoogleAssertion:
        if self.unreachable:
            raise CredentialExchangeFailed()
        return self.verify_id_token(code)

    def verify_id_token(self, raw_id_token: str) -> GoogleAssertion:
        try:
            return self.assertions[raw_id_token]
        except KeyError:
            raise CredentialInvalid()


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="allow_list")
def allow_list_fixture() -> set[str]:
    """Mutable allow-list; the app re-reads it on every request."""
    return {ADMIN_EMAIL}


@pytest.fixture(name="google")
def google_fixture() -> FakeGoogleClient:
    google = FakeGoogleClient()
    google.register("admin-code", ADMIN_EMAIL, name="Shop Owner")
    google.register("customer-code", CUSTOMER_EMAIL, name="Buyer", picture="https://img/buyer.png")
    return google


@pytest.fixture(name="client")
def client_fixture(engine, allow_list, google):
    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_admin_allow_list] = lambda: frozenset(allow_list)
    app.dependency_overrides[get_google_client] = lambda: google

    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


# -------- Factories --------


def make_product(
    session: Session,
    price: float,
    sale_price: float | None = None,
    name: str | None = None,
    images: list[str] | None = None,
) -> Product:
    name = name or f"Product {uuid.uuid4().hex[:6]}"
    product = Product(
        name=name,
        slug=name.lower().replace(" ", "-"),
        price=price,
        sale_price=sale_price,
        images=images if images is not None else [f"https://img/{name}.jpg"],
    )
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


def make_user(session: Session, email: str, role: str = "customer") -> User:
    user = User(email=email, name=email.split("@")[0], role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def address(**overrides) -> dict:
    data = {
        "first_name": "Sita",
        "last_name": "Sharma",
        "email": "guest@mail.com",
        "phone": "9800000000",
        "address": "Thamel 12",
    }
    data.update(overrides)
    return data


def order_payload(*lines: tuple[Product, int], **address_overrides) -> OrderCreate:
    return OrderCreate.model_validate(
        {
            "items": [
                {"product_id": str(p.id), "quantity": qty} for p, qty in lines
            ],
            "shipping_address": address(**address_overrides),
        }
    )
