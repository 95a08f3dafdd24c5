"""Payment service - saved cards, payment intents and admin charge operations"""

import logging
from typing import Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Booking, Payment, PaymentMethod, SavedPaymentMethod, User, UserRole
from ...services.stripe_service import StripeService, object_id, stripe_error_message, to_cents
from ...shared.time_utils import eastern_day_range, utcnow
from ...shared.validators import sanitize_phone
from ..users.repository import UserRepository
from .holds import process_payment_holds
from .repository import DECLINED_STATUSES, PaymentRepository
from .schemas import (
    AttachPaymentMethodRequest,
    CreateCustomerRequest,
    CreatePaymentIntentRequest,
    RecordPaymentRequest,
    SavePaymentMethodRequest,
)

logger = logging.getLogger(__name__)


def _is_staff(user: User) -> bool:
    return user.role in UserRole.STAFF


def _stripe_http_error(e: stripe.StripeError) -> HTTPException:
    return HTTPException(status_code=400, detail=f"Stripe error: {stripe_error_message(e)}")


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session, stripe_service: StripeService):
        self.db = db
        self.repo = PaymentRepository()
        self.stripe = stripe_service

    # ========================================================================
    # CUSTOMERS AND SAVED CARDS
    # ========================================================================

    def get_publishable_key(self) -> dict:
        return {"publishableKey": self.stripe.publishable_key}

    def _ensure_customer(self, client: User) -> str:
        """Stripe customer id for the client, creating the customer on first use"""
        if client.stripe_customer_id:
            return client.stripe_customer_id

        customer = self.stripe.create_customer(
            email=client.email,
            name=client.full_name or None,
            phone=client.phone,
            metadata={"userId": str(client.id)},
        )
        client.stripe_customer_id = customer.id
        self.db.commit()
        return customer.id

    def create_stripe_customer(self, user: User, data: CreateCustomerRequest) -> dict:
        generated_password = None
        if data.clientId or data.clientEmail:
            if not _is_staff(user):
                raise HTTPException(
                    status_code=403,
                    detail="Access denied. Admin privileges required to create customers for other users.",
                )
            if data.clientId:
                target = self.repo.get_client(self.db, data.clientId)
                if not target:
                    raise HTTPException(status_code=404, detail="Client not found")
            else:
                target = self.repo.get_user_by_email(self.db, str(data.clientEmail).lower())
                if not target:
                    target, generated_password = UserRepository.create_client_account(
                        self.db,
                        str(data.clientEmail),
                        data.clientFirstName,
                        data.clientLastName,
                        data.clientPhone,
                    )
        else:
            target = user

        if not target.stripe_customer_id:
            try:
                customer = self.stripe.create_customer(
                    email=str(data.email) if data.email else target.email,
                    name=data.name or target.full_name or None,
                    phone=sanitize_phone(data.phone or target.phone) or None,
                    metadata={"userId": str(target.id)},
                )
            except stripe.StripeError as e:
                raise _stripe_http_error(e)
            target.stripe_customer_id = customer.id
            self.db.commit()

        return {
            "customerId": target.stripe_customer_id,
            "clientId": target.id,
            "generatedPassword": generated_password,
        }

    def attach_payment_method(self, data: AttachPaymentMethodRequest) -> dict:
        try:
            self.stripe.attach_payment_method(data.paymentMethodId, data.stripeCustomerId)
        except stripe.StripeError as e:
            raise _stripe_http_error(e)
        return {"success": True}

    def save_payment_method(self, user: User, data: SavePaymentMethodRequest):
        """Attach a card to the client's Stripe customer and store (or refresh) its local record"""
        if not _is_staff(user) and user.id != data.clientId:
            raise HTTPException(
                status_code=403, detail="Access denied. You can only save payment methods for yourself."
            )

        client = self.repo.get_client(self.db, data.clientId)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")

        try:
            customer_id = self._ensure_customer(client)
            try:
                self.stripe.attach_payment_method(data.paymentMethodId, customer_id)
            except stripe.StripeError as e:
                if getattr(e, "code", None) != "resource_already_exists":
                    raise
                logger.info(f"Payment method {data.paymentMethodId} already attached to {customer_id}")
            payment_method = self.stripe.retrieve_payment_method(data.paymentMethodId)
        except stripe.StripeError as e:
            raise _stripe_http_error(e)

        card = getattr(payment_method, "card", None)
        if not card:
            raise HTTPException(status_code=400, detail="Payment method is not a card")

        saved = self.repo.get_saved_method_by_stripe_id(self.db, payment_method.id)
        if data.setAsDefault:
            self.repo.clear_default(self.db, client.id, exclude_id=saved.id if saved else None)

        if not saved:
            saved = SavedPaymentMethod(user_id=client.id, stripe_payment_method_id=payment_method.id)
            self.db.add(saved)
        saved.brand = card.brand
        saved.last4 = card.last4
        saved.expiry_month = card.exp_month
        saved.expiry_year = card.exp_year
        saved.is_default = data.setAsDefault
        self.db.commit()
        self.db.refresh(saved)
        logger.info(f"💳 Saved card {saved.last4} for client {client.id} (default={saved.is_default})")
        return saved

    def list_saved_payment_methods(self, user: User, client_id: int):
        if not _is_staff(user) and user.id != client_id:
            raise HTTPException(status_code=403, detail="Access denied.")
        return self.repo.list_saved_methods(self.db, client_id)

    def _owned_saved_method(self, user: User, method_id: int):
        saved = self.repo.get_saved_method(self.db, method_id)
        if not saved:
            raise HTTPException(status_code=404, detail="Payment method not found")
        if not _is_staff(user) and user.id != saved.user_id:
            raise HTTPException(status_code=403, detail="Access denied.")
        return saved

    def set_default_payment_method(self, user: User, method_id: int) -> dict:
        saved = self._owned_saved_method(user, method_id)
        self.repo.clear_default(self.db, saved.user_id, exclude_id=saved.id)
        saved.is_default = True
        self.db.commit()
        return {"success": True}

    def delete_saved_payment_method(self, user: User, method_id: int) -> dict:
        saved = self._owned_saved_method(user, method_id)
        try:
            self.stripe.detach_payment_method(saved.stripe_payment_method_id)
        except stripe.StripeError as e:
            logger.error(f"❌ Error detaching payment method {saved.stripe_payment_method_id}: {e}")
        self.db.delete(saved)
        self.db.commit()
        return {"success": True}

    # ========================================================================
    # PAYMENT INTENTS
    # ========================================================================

    def _authorized_booking(self, user: User, booking_id: int, action: str) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if booking.client_id != user.id and not _is_staff(user):
            raise HTTPException(status_code=403, detail=f"Not authorized to {action} for this booking")
        return booking

    def create_payment_intent(self, user: User, data: CreatePaymentIntentRequest) -> dict:
        if data.bookingId:
            self._authorized_booking(user, data.bookingId, "create payment")

        params = {
            "amount": data.amount,
            "currency": data.currency,
            "capture_method": data.captureMethod,
            "description": data.description or f"Payment for booking #{data.bookingId or 'N/A'}",
            "metadata": {"userId": str(user.id), "bookingId": str(data.bookingId or "")},
        }
        if data.customerId:
            params["customer"] = data.customerId
        if data.paymentMethodId:
            params.update(payment_method=data.paymentMethodId, confirm=True, off_session=True)
        else:
            params["automatic_payment_methods"] = {"enabled": True}

        try:
            intent = self.stripe.create_payment_intent(**params)
        except stripe.StripeError as e:
            raise _stripe_http_error(e)
        return {"clientSecret": intent.client_secret, "paymentIntentId": intent.id}

    def record_successful_payment(self, user: User, data: RecordPaymentRequest) -> Payment:
        booking = self._authorized_booking(user, data.bookingId, "record payment")
        try:
            intent = self.stripe.retrieve_payment_intent(data.paymentIntentId)
        except stripe.StripeError as e:
            raise _stripe_http_error(e)

        if intent.status not in ("succeeded", "requires_capture"):
            raise HTTPException(status_code=400, detail=f"Payment not successful. Status: {intent.status}")

        amount = intent.amount / 100
        payment = Payment(
            booking_id=booking.id,
            cleaner_id=booking.cleaner_id,
            amount=amount,
            paid_at=utcnow(),
            description=f"Stripe payment for booking #{booking.id}",
            stripe_payment_intent_id=intent.id,
            stripe_payment_method_id=object_id(intent.payment_method),
            status=intent.status,
            is_captured=intent.capture_method == "automatic" or intent.status == "succeeded",
        )
        self.db.add(payment)
        booking.payment_method = PaymentMethod.CREDIT_CARD
        booking.payment_details = f"Stripe Payment Intent: {intent.id}"
        booking.final_price = amount
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"✅ Recorded payment {intent.id} (${amount:.2f}) for booking #{booking.id}")
        return payment

    # ========================================================================
    # ADMIN HOLD OPERATIONS
    # ========================================================================

    def capture_payment_hold(self, payment_id: int) -> dict:
        payment = self.repo.get_payment(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        if not payment.stripe_payment_intent_id:
            raise HTTPException(status_code=400, detail="No Stripe payment intent found for this payment")
        if payment.is_captured:
            raise HTTPException(status_code=400, detail="Payment has already been captured")
        if payment.status != "requires_capture":
            raise HTTPException(
                status_code=400, detail=f"Cannot capture payment. Current status: {payment.status}"
            )

        try:
            intent = self.stripe.capture_payment_intent(payment.stripe_payment_intent_id)
        except stripe.StripeError as e:
            raise _stripe_http_error(e)

        payment.status = intent.status
        payment.is_captured = True
        payment.paid_at = utcnow()
        self.db.commit()
        return {
            "success": True,
            "paymentId": payment.id,
            "paymentIntentId": payment.stripe_payment_intent_id,
            "status": intent.status,
            "amount": payment.amount,
        }

    def cancel_payment_hold(self, booking_id: int) -> dict:
        if not self.repo.get_booking(self.db, booking_id):
            raise HTTPException(status_code=404, detail="Booking not found")

        payment = self.repo.get_latest_payment(self.db, booking_id)
        if not payment or not payment.stripe_payment_intent_id:
            raise HTTPException(status_code=404, detail="No payment hold found for this booking")
        if payment.status in ("succeeded", "canceled"):
            raise HTTPException(
                status_code=400, detail=f"Cannot cancel payment hold. Payment status: {payment.status}"
            )

        try:
            intent = self.stripe.cancel_payment_intent(payment.stripe_payment_intent_id)
        except stripe.StripeError as e:
            raise _stripe_http_error(e)

        payment.status = intent.status
        self.db.commit()
        return {
            "success": True,
            "paymentId": payment.id,
            "paymentIntentId": payment.stripe_payment_intent_id,
            "status": intent.status,
        }

    def issue_refund(self, payment_id: int, amount_cents: Optional[int] = None, reason: Optional[str] = None) -> dict:
        payment = self.repo.get_payment(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        if not payment.stripe_payment_intent_id:
            raise HTTPException(status_code=400, detail="No Stripe payment intent found for this payment")
        if not payment.is_captured or payment.status != "succeeded":
            raise HTTPException(
                status_code=400,
                detail=(
                    "Cannot refund payment. Payment must be captured and succeeded. "
                    f"Current status: {payment.status}"
                ),
            )

        if amount_cents is not None:
            max_cents = to_cents(payment.amount)
            if amount_cents <= 0 or amount_cents > max_cents:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid refund amount. Must be between 1 and {max_cents} cents",
                )

        try:
            refund = self.stripe.create_refund(payment.stripe_payment_intent_id, amount_cents, reason)
        except stripe.StripeError as e:
            raise _stripe_http_error(e)

        refunded = refund.amount / 100
        label = reason.replace("_", " ") if reason else "Manual Refund"
        self.repo.create_payment(
            self.db,
            booking_id=payment.booking_id,
            cleaner_id=payment.cleaner_id,
            amount=-refunded,
            description=f"Refund for Payment #{payment.id} - {label}",
            stripe_payment_intent_id=payment.stripe_payment_intent_id,
            stripe_payment_method_id=payment.stripe_payment_method_id,
            status="succeeded",
            is_captured=True,
            paid_at=utcnow(),
        )
        logger.info(f"↩️ Refunded ${refunded:.2f} of payment #{payment.id}")
        return {
            "success": True,
            "refundId": refund.id,
            "amount": refunded,
            "status": refund.status,
            "paymentIntentId": payment.stripe_payment_intent_id,
        }

    def retry_charge(self, payment_id: int) -> dict:
        """Charge a declined payment again on the customer's default card"""
        failed = self.repo.get_payment(self.db, payment_id)
        if not failed:
            raise HTTPException(status_code=404, detail="Payment not found")
        booking = failed.booking
        if not booking:
            raise HTTPException(status_code=400, detail="Payment has no associated booking")
        if failed.status not in DECLINED_STATUSES:
            raise HTTPException(status_code=400, detail=f"Cannot retry payment. Current status: {failed.status}")

        client = booking.client
        try:
            customer_id = self._ensure_customer(client)
            customer = self.stripe.retrieve_customer(customer_id)
            if getattr(customer, "deleted", False):
                raise HTTPException(status_code=400, detail="Customer has been deleted in Stripe")

            invoice_settings = getattr(customer, "invoice_settings", None)
            default_method_id = object_id(getattr(invoice_settings, "default_payment_method", None))
            if not default_method_id:
                raise HTTPException(status_code=400, detail="Customer has no default payment method on file")

            intent = self.stripe.create_payment_intent(
                amount=to_cents(failed.amount),
                currency="usd",
                customer=customer_id,
                payment_method=default_method_id,
                confirm=True,
                capture_method="automatic",
                description=f"Retry payment for booking #{booking.id}",
                metadata={
                    "bookingId": str(booking.id),
                    "clientId": str(client.id),
                    "retryOfPaymentId": str(failed.id),
                },
                automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
            )
        except stripe.StripeError as e:
            message = stripe_error_message(e)
            self.db.rollback()
            self.repo.create_payment(
                self.db,
                booking_id=failed.booking_id,
                cleaner_id=failed.cleaner_id,
                amount=failed.amount,
                description=f"Failed retry of payment #{failed.id}: {message}",
                status="failed",
                is_captured=False,
            )
            logger.error(f"❌ Retry of payment #{failed.id} failed: {message}")
            raise HTTPException(status_code=400, detail=f"Stripe error: {message}")

        succeeded = intent.status == "succeeded"
        new_payment = self.repo.create_payment(
            self.db,
            booking_id=booking.id,
            cleaner_id=booking.cleaner_id,
            amount=failed.amount,
            paid_at=utcnow() if succeeded else None,
            description=f"Retry of failed payment #{failed.id}",
            stripe_payment_intent_id=intent.id,
            stripe_payment_method_id=default_method_id,
            status=intent.status,
            is_captured=succeeded,
        )
        return {
            "success": succeeded,
            "paymentId": new_payment.id,
            "paymentIntentId": intent.id,
            "status": intent.status,
            "amount": new_payment.amount,
            "message": "Payment retry successful" if succeeded else f"Payment retry status: {intent.status}",
        }

    def process_payment_holds(self, override_delay_hours: Optional[int] = None) -> dict:
        return process_payment_holds(self.db, self.stripe, override_delay_hours)

    # ========================================================================
    # CHARGE DASHBOARDS
    # ========================================================================

    def get_pending_charges(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None, search: Optional[str] = None
    ) -> list[Booking]:
        start, end = eastern_day_range(start_date, end_date)
        return self.repo.pending_charge_bookings(self.db, utcnow(), start, end, search)

    def get_upcoming_holds(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None, search: Optional[str] = None
    ) -> list[Booking]:
        start, end = eastern_day_range(start_date, end_date)
        return self.repo.upcoming_hold_bookings(self.db, utcnow(), start, end, search)

    def get_declined_charges(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None, search: Optional[str] = None
    ) -> list[Payment]:
        start, end = eastern_day_range(start_date, end_date)
        return self.repo.declined_payments(self.db, start, end, search)

    def get_captured_charges(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None, search: Optional[str] = None
    ) -> list[Payment]:
        start, end = eastern_day_range(start_date, end_date)
        return self.repo.captured_payments(self.db, start, end, search)
