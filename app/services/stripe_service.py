"""
Stripe Service
Thin wrapper over the Stripe SDK used for card holds, captures, refunds and saved cards
"""

import logging
from typing import Any, Optional

import stripe
from fastapi import HTTPException

from ..config import STRIPE_PUBLISHABLE_KEY, STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)

if STRIPE_SECRET_KEY:
    stripe.api_key = STRIPE_SECRET_KEY


def to_cents(amount: Optional[float]) -> int:
    """Dollars to integer cents"""
    return int(round((amount or 0) * 100))


def stripe_error_message(error: Exception) -> str:
    if isinstance(error, stripe.StripeError):
        return error.user_message or str(error)
    return str(error)


def object_id(value: Any) -> Optional[str]:
    """Stripe fields such as payment_method may be an id string or an expanded object"""
    if value is None or isinstance(value, str):
        return value
    return getattr(value, "id", None)


class StripeService:
    """All Stripe calls go through this class so they can be replaced in tests"""

    def __init__(self, api_key: Optional[str] = STRIPE_SECRET_KEY):
        self.api_key = api_key

    def _require_key(self) -> None:
        if not self.api_key:
            logger.error("❌ STRIPE_SECRET_KEY not configured")
            raise HTTPException(status_code=500, detail="Stripe is not configured")

    @property
    def publishable_key(self) -> Optional[str]:
        return STRIPE_PUBLISHABLE_KEY

    # ------------------------------------------------------------------
    # Customers and payment methods
    # ------------------------------------------------------------------

    def create_customer(
        self,
        email: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        metadata: Optional[dict] = None,
    ):
        self._require_key()
        customer = stripe.Customer.create(
            api_key=self.api_key, email=email, name=name or None, phone=phone or None, metadata=metadata or {}
        )
        logger.info(f"✅ Created Stripe customer {customer.id} for {email}")
        return customer

    def retrieve_customer(self, customer_id: str):
        self._require_key()
        return stripe.Customer.retrieve(customer_id, api_key=self.api_key)

    def list_card_payment_methods(self, customer_id: str) -> list:
        """Cards attached to a customer, oldest first"""
        self._require_key()
        result = stripe.PaymentMethod.list(api_key=self.api_key, customer=customer_id, type="card")
        return sorted(result.data, key=lambda pm: pm.created)

    def attach_payment_method(self, payment_method_id: str, customer_id: str):
        self._require_key()
        return stripe.PaymentMethod.attach(payment_method_id, api_key=self.api_key, customer=customer_id)

    def detach_payment_method(self, payment_method_id: str):
        self._require_key()
        return stripe.PaymentMethod.detach(payment_method_id, api_key=self.api_key)

    def retrieve_payment_method(self, payment_method_id: str):
        self._require_key()
        return stripe.PaymentMethod.retrieve(payment_method_id, api_key=self.api_key)

    # ------------------------------------------------------------------
    # Payment intents
    # ------------------------------------------------------------------

    def create_payment_intent(self, **params: Any):
        self._require_key()
        intent = stripe.PaymentIntent.create(api_key=self.api_key, **params)
        logger.info(
            f"💳 Created PaymentIntent {intent.id} amount={params.get('amount')} status={intent.status}"
        )
        return intent

    def create_hold(
        self,
        amount_cents: int,
        customer_id: str,
        payment_method_id: str,
        description: str,
        metadata: dict,
    ):
        """Authorize (but do not capture) an off-session card payment"""
        return self.create_payment_intent(
            amount=amount_cents,
            currency="usd",
            customer=customer_id,
            payment_method=payment_method_id,
            capture_method="manual",
            confirm=True,
            off_session=True,
            description=description,
            metadata=metadata,
        )

    def retrieve_payment_intent(self, payment_intent_id: str):
        self._require_key()
        return stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.api_key)

    def update_payment_intent_amount(self, payment_intent_id: str, amount_cents: int):
        self._require_key()
        return stripe.PaymentIntent.modify(payment_intent_id, api_key=self.api_key, amount=amount_cents)

    def confirm_payment_intent(self, payment_intent_id: str):
        self._require_key()
        return stripe.PaymentIntent.confirm(payment_intent_id, api_key=self.api_key)

    def capture_payment_intent(self, payment_intent_id: str):
        self._require_key()
        intent = stripe.PaymentIntent.capture(payment_intent_id, api_key=self.api_key)
        logger.info(f"✅ Captured PaymentIntent {payment_intent_id}")
        return intent

    def cancel_payment_intent(self, payment_intent_id: str):
        self._require_key()
        intent = stripe.PaymentIntent.cancel(payment_intent_id, api_key=self.api_key)
        logger.info(f"🚫 Canceled PaymentIntent {payment_intent_id}")
        return intent

    # ------------------------------------------------------------------
    # Refunds
    # ------------------------------------------------------------------

    def create_refund(
        self, payment_intent_id: str, amount_cents: Optional[int] = None, reason: Optional[str] = None
    ):
        self._require_key()
        params: dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount_cents is not None:
            params["amount"] = amount_cents
        if reason:
            params["reason"] = reason
        refund = stripe.Refund.create(api_key=self.api_key, **params)
        logger.info(f"↩️ Refund {refund.id} created for {payment_intent_id}")
        return refund


_stripe_service = StripeService()


def get_stripe_service() -> StripeService:
    """FastAPI dependency; overridden in tests"""
    return _stripe_service
