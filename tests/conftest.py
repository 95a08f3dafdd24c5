"""
Pytest configuration and fixtures

An in-memory SQLite database is shared by the test session and the app, Stripe
is replaced by an in-memory fake, and OpenPhone and Mercury talk to
httpx.MockTransport handlers.
"""

import os

# Must be set before the app modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["SMTP_HOST"] = ""
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from itertools import count
from types import SimpleNamespace

import httpx
import pytest
import stripe
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app import models_mercury  # noqa: F401
from app.database import Base, SessionLocal, engine
from app.main import app
from app.models import SavedPaymentMethod, User, UserRole
from app.security_utils import create_access_token, hash_password
from app.services.mercury_service import MercuryService, get_mercury_service
from app.services.openphone_service import OpenPhoneService, get_openphone_service
from app.services.stripe_service import StripeService, get_stripe_service
from app.shared.permissions import ALL_PERMISSIONS

TEST_PASSWORD = "secret123"


class FakeStripe(StripeService):
    """In-memory stand-in for the Stripe API"""

    def __init__(self):
        super().__init__(api_key="sk_test_fake")
        self._ids = count(1)
        self.intents: dict[str, SimpleNamespace] = {}
        self.refunds: list[SimpleNamespace] = []
        self.cards: list[SimpleNamespace] = []
        self.attached: list[tuple[str, str]] = []
        self.detached: list[str] = []
        self.decline = False
        self.fail_cancel: set[str] = set()
        self.default_payment_method = "pm_default"

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}_fake{next(self._ids)}"

    def create_customer(self, email, name=None, phone=None, metadata=None):
        return SimpleNamespace(id=self._new_id("cus"), email=email)

    def retrieve_customer(self, customer_id):
        return SimpleNamespace(
            id=customer_id,
            deleted=False,
            invoice_settings=SimpleNamespace(default_payment_method=self.default_payment_method),
        )

    def list_card_payment_methods(self, customer_id):
        return list(self.cards)

    def attach_payment_method(self, payment_method_id, customer_id):
        self.attached.append((payment_method_id, customer_id))
        return SimpleNamespace(id=payment_method_id)

    def detach_payment_method(self, payment_method_id):
        self.detached.append(payment_method_id)
        return SimpleNamespace(id=payment_method_id)

    def retrieve_payment_method(self, payment_method_id):
        return SimpleNamespace(
            id=payment_method_id,
            card=SimpleNamespace(brand="visa", last4="4242", exp_month=12, exp_year=2030),
        )

    def create_payment_intent(self, **params):
        if self.decline:
            raise stripe.CardError("Your card was declined.", None, "card_declined")

        capture_method = params.get("capture_method", "automatic")
        if not params.get("confirm"):
            status = "requires_payment_method"
        elif capture_method == "manual":
            status = "requires_capture"
        else:
            status = "succeeded"

        intent = SimpleNamespace(
            id=self._new_id("pi"),
            amount=params["amount"],
            status=status,
            capture_method=capture_method,
            payment_method=params.get("payment_method"),
            client_secret=None,
            metadata=params.get("metadata") or {},
        )
        intent.client_secret = f"{intent.id}_secret"
        self.intents[intent.id] = intent
        return intent

    def retrieve_payment_intent(self, payment_intent_id):
        if payment_intent_id not in self.intents:
            raise stripe.InvalidRequestError(f"No such payment_intent: '{payment_intent_id}'", "intent")
        return self.intents[payment_intent_id]

    def update_payment_intent_amount(self, payment_intent_id, amount_cents):
        intent = self.retrieve_payment_intent(payment_intent_id)
        intent.amount = amount_cents
        return intent

    def confirm_payment_intent(self, payment_intent_id):
        intent = self.retrieve_payment_intent(payment_intent_id)
        intent.status = "requires_capture" if intent.capture_method == "manual" else "succeeded"
        return intent

    def capture_payment_intent(self, payment_intent_id):
        intent = self.retrieve_payment_intent(payment_intent_id)
        intent.status = "succeeded"
        return intent

    def cancel_payment_intent(self, payment_intent_id):
        if payment_intent_id in self.fail_cancel:
            raise stripe.InvalidRequestError("This PaymentIntent could not be canceled", "intent")
        intent = self.retrieve_payment_intent(payment_intent_id)
        intent.status = "canceled"
        return intent

    def create_refund(self, payment_intent_id, amount_cents=None, reason=None):
        intent = self.retrieve_payment_intent(payment_intent_id)
        refund = SimpleNamespace(
            id=self._new_id("re"),
            amount=amount_cents if amount_cents is not None else intent.amount,
            status="succeeded",
            reason=reason,
        )
        self.refunds.append(refund)
        return refund


def mercury_handler(accounts: list[dict], transactions: dict[str, list[dict]]):
    """MockTransport handler serving the given accounts and per-account transactions"""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/accounts"):
            return httpx.Response(200, json={"accounts": accounts})
        for account_id, items in transactions.items():
            if path.endswith(f"/account/{account_id}/transactions"):
                return httpx.Response(200, json={"transactions": items})
        return httpx.Response(404, json={"message": "Account not found"})

    return handler


@pytest.fixture(scope="function")
def db() -> Session:
    """Fresh schema per test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def fake_stripe() -> FakeStripe:
    return FakeStripe()


@pytest.fixture
def openphone_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def openphone_service(openphone_requests) -> OpenPhoneService:
    def handler(request: httpx.Request) -> httpx.Response:
        openphone_requests.append(request)
        if request.method == "GET":
            return httpx.Response(200, json={"data": []})
        return httpx.Response(201, json={"data": {"id": f"op_contact_{len(openphone_requests)}"}})

    return OpenPhoneService(api_key="op-test-key", transport=httpx.MockTransport(handler))


@pytest.fixture
def mercury_data() -> dict:
    """Mutable accounts/transactions served by the Mercury mock"""
    return {"accounts": [], "transactions": {}}


@pytest.fixture
def mercury_service(mercury_data) -> MercuryService:
    def handler(request: httpx.Request) -> httpx.Response:
        return mercury_handler(mercury_data["accounts"], mercury_data["transactions"])(request)

    return MercuryService(api_key="mercury-test-key", transport=httpx.MockTransport(handler))


@pytest.fixture
def client(db, fake_stripe, openphone_service, mercury_service):
    """Test client with external services replaced"""
    app.dependency_overrides[get_stripe_service] = lambda: fake_stripe
    app.dependency_overrides[get_openphone_service] = lambda: openphone_service
    app.dependency_overrides[get_mercury_service] = lambda: mercury_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(db: Session, role: str = UserRole.CLIENT, email: str = None, **fields) -> User:
    fields.setdefault("first_name", role.title())
    fields.setdefault("last_name", "Tester")
    user = User(
        email=email or f"{role.lower()}{next(_emails)}@example.com",
        password_hash=hash_password(fields.pop("password", TEST_PASSWORD)),
        role=role,
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


_emails = count(1)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def owner(db) -> User:
    return make_user(db, UserRole.OWNER, admin_permissions={p: True for p in ALL_PERMISSIONS})


@pytest.fixture
def admin(db) -> User:
    """ADMIN holding every permission except manage_admins"""
    permissions = {p: True for p in ALL_PERMISSIONS}
    permissions["manage_admins"] = False
    return make_user(db, UserRole.ADMIN, admin_permissions=permissions)


@pytest.fixture
def customer(db) -> User:
    return make_user(db, UserRole.CLIENT, phone="5551234567", stripe_customer_id="cus_existing")


@pytest.fixture
def cleaner(db) -> User:
    return make_user(db, UserRole.CLEANER, color="#3366FF")


@pytest.fixture
def saved_card(db, customer) -> SavedPaymentMethod:
    card = SavedPaymentMethod(
        user_id=customer.id,
        stripe_payment_method_id="pm_saved_4242",
        brand="visa",
        last4="4242",
        expiry_month=12,
        expiry_year=2030,
        is_default=True,
    )
    db.add(card)
    db.commit()
    db.refresh(card)
    return card
