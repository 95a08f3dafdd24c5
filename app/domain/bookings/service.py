"""Booking service - Business logic for admin booking management"""

import logging
import re
import smtplib
from datetime import timedelta
from typing import Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import DEFAULT_CANCELLATION_FEE
from ...email_service import send_template_email
from ...email_templates import CANCELLATION_FEE_TEMPLATE, CANCELLATION_NO_FEE_TEMPLATE
from ...models import (
    Booking,
    BookingStatus,
    Payment,
    PaymentMethod,
    ServiceFrequency,
    User,
    UserRole,
)
from ...services.openphone_service import OpenPhoneService
from ...services.stripe_service import StripeService, object_id, stripe_error_message, to_cents
from ...shared.permissions import MANAGE_BOOKINGS, has_permission
from ...shared.time_utils import day_bounds, derive_status, parse_date, utcnow
from ..payments.holds import (
    cancel_holds,
    deferred_hold_details,
    find_active_hold,
    get_hold_delay_hours,
    place_hold,
    should_place_hold_now,
)
from ..settings.repository import SettingsRepository
from ..users.repository import UserRepository
from .pricing import calculate_price
from .recurrence import clear_future_series, generate_future_bookings, shift_future_bookings
from .repository import BookingRepository
from .schemas import BookingCancel, BookingCreate, BookingUpdate, PriceCalculationRequest

logger = logging.getLogger(__name__)

PAYMENT_INTENT_RE = re.compile(r"Stripe Payment Intent: (pi_[a-zA-Z0-9]+)")

# Request field -> Booking column, for fields copied straight through on update
UPDATABLE_FIELDS = {
    "cleanerId": "cleaner_id",
    "serviceType": "service_type",
    "scheduledDate": "scheduled_date",
    "scheduledTime": "scheduled_time",
    "durationHours": "duration_hours",
    "address": "address",
    "specialInstructions": "special_instructions",
    "finalPrice": "final_price",
    "status": "status",
    "serviceFrequency": "service_frequency",
    "houseSquareFootage": "house_square_footage",
    "basementSquareFootage": "basement_square_footage",
    "numberOfBedrooms": "number_of_bedrooms",
    "numberOfBathrooms": "number_of_bathrooms",
    "numberOfCleanersRequested": "number_of_cleaners_requested",
    "cleanerPaymentAmount": "cleaner_payment_amount",
    "paymentMethod": "payment_method",
    "paymentDetails": "payment_details",
    "selectedExtras": "selected_extras",
}


class BookingService:
    """Service layer for booking business logic"""

    def __init__(
        self,
        db: Session,
        stripe_service: Optional[StripeService] = None,
        openphone_service: Optional[OpenPhoneService] = None,
    ):
        self.db = db
        self.repo = BookingRepository()
        self.stripe = stripe_service
        self.openphone = openphone_service

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def list_bookings(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        client_id: Optional[int] = None,
        cleaner_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[tuple[Booking, str]]:
        """Bookings with their derived status, oldest first"""
        start = parse_date(start_date) if start_date else None
        end = parse_date(end_date) if end_date else None
        bookings = self.repo.list_bookings(self.db, start, end, client_id, cleaner_id, status)
        now = utcnow()
        return [(b, derive_status(b.status, b.scheduled_date, now)) for b in bookings]

    def get_availability(self, start_date: str, end_date: str) -> list[Booking]:
        """Booked slots between two days, both days included"""
        start, _ = day_bounds(parse_date(start_date))
        _, end_exclusive = day_bounds(parse_date(end_date))
        return self.repo.get_bookings_in_range(self.db, start, end_exclusive - timedelta(microseconds=1))

    def calculate_price(self, data: PriceCalculationRequest) -> dict:
        rules = SettingsRepository.get_pricing_rules(self.db, active_only=True)
        return calculate_price(
            rules,
            data.serviceType,
            house_square_footage=data.houseSquareFootage,
            basement_square_footage=data.basementSquareFootage,
            number_of_bedrooms=data.numberOfBedrooms,
            number_of_bathrooms=data.numberOfBathrooms,
            selected_extras=data.selectedExtras,
        )

    def get_client_bookings(self, client: User, upcoming_only: bool = False) -> list[tuple[Booking, str]]:
        """Client portal view; upcoming excludes cancelled and past bookings"""
        now = utcnow()
        bookings = self.repo.list_bookings(self.db, client_id=client.id)
        if upcoming_only:
            bookings = [
                b for b in bookings if b.scheduled_date >= now and b.status != BookingStatus.CANCELLED
            ]
        return [(b, derive_status(b.status, b.scheduled_date, now)) for b in bookings]

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _resolve_client(self, data: BookingCreate) -> tuple[User, Optional[str]]:
        """Existing client by id or email; an unknown email creates a new client account"""
        if data.clientId:
            client = self.repo.get_user(self.db, data.clientId)
            if not client:
                raise HTTPException(status_code=404, detail="Client not found")
            return client, None

        email = str(data.clientEmail).lower()
        client = self.repo.get_user_by_email(self.db, email)
        if client:
            return client, None

        return UserRepository.create_client_account(
            self.db, email, data.clientFirstName, data.clientLastName, data.clientPhone
        )

    def _validated_saved_card(self, client: User, saved_payment_method_id: int):
        saved = self.repo.get_saved_payment_method(self.db, saved_payment_method_id)
        if not saved:
            raise HTTPException(status_code=404, detail="Saved payment method not found")
        if saved.user_id != client.id:
            raise HTTPException(status_code=400, detail="Payment method does not belong to this client")
        if not client.stripe_customer_id:
            raise HTTPException(status_code=400, detail="Client does not have a Stripe customer ID")
        return saved

    def _record_existing_intent(self, booking: Booking) -> None:
        """Record a payment the client already made online, referenced in the payment details"""
        match = PAYMENT_INTENT_RE.search(booking.payment_details or "")
        if not match:
            return
        try:
            intent = self.stripe.retrieve_payment_intent(match.group(1))
            payment = Payment(
                booking_id=booking.id,
                cleaner_id=booking.cleaner_id,
                amount=intent.amount / 100,
                description=f"Stripe payment for booking #{booking.id}",
                stripe_payment_intent_id=intent.id,
                stripe_payment_method_id=object_id(intent.payment_method),
                status=intent.status,
                is_captured=intent.capture_method == "automatic" or intent.status == "succeeded",
                paid_at=utcnow(),
            )
            self.db.add(payment)
            self.db.commit()
            logger.info(f"💳 Recorded existing PaymentIntent {intent.id} for booking #{booking.id}")
        except stripe.StripeError as e:
            self.db.rollback()
            logger.error(f"❌ Could not record PaymentIntent for booking #{booking.id}: {stripe_error_message(e)}")

    async def _sync_openphone(self, client: User, booking: Booking) -> None:
        if not self.openphone or not client.phone or client.openphone_contact_id:
            return
        contact_id = await self.openphone.create_contact(
            client.first_name,
            client.last_name,
            client.phone,
            email=client.email,
            role="Client",
            external_id=str(client.id),
        )
        if contact_id:
            client.openphone_contact_id = contact_id
            self.db.commit()

    async def create_booking(self, data: BookingCreate) -> tuple[Booking, Optional[str]]:
        """Create a booking for an existing or new client; returns the booking and any generated password"""
        client, generated_password = self._resolve_client(data)

        if data.cleanerId is not None and not self.repo.get_cleaner(self.db, data.cleanerId):
            raise HTTPException(status_code=404, detail="Cleaner not found")

        saved_card = None
        if data.savedPaymentMethodId:
            saved_card = self._validated_saved_card(client, data.savedPaymentMethodId)

        booking = Booking(
            client_id=client.id,
            cleaner_id=data.cleanerId,
            service_type=data.serviceType,
            scheduled_date=data.scheduledDate,
            scheduled_time=data.scheduledTime,
            duration_hours=data.durationHours,
            address=data.address,
            special_instructions=data.specialInstructions,
            final_price=data.finalPrice,
            status=data.status,
            service_frequency=data.serviceFrequency,
            house_square_footage=data.houseSquareFootage,
            basement_square_footage=data.basementSquareFootage,
            number_of_bedrooms=data.numberOfBedrooms,
            number_of_bathrooms=data.numberOfBathrooms,
            number_of_cleaners_requested=data.numberOfCleanersRequested,
            cleaner_payment_amount=data.cleanerPaymentAmount,
            payment_method=data.paymentMethod,
            payment_details=data.paymentDetails,
            selected_extras=data.selectedExtras,
        )
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"✅ Created booking #{booking.id} for client {client.id}")

        template = SettingsRepository.find_checklist_template_for_service(self.db, booking.service_type)
        if template:
            self.repo.attach_checklist(self.db, booking, template)

        if saved_card and (booking.final_price or 0) > 0:
            delay_hours = get_hold_delay_hours(self.db)
            if should_place_hold_now(booking.scheduled_date, delay_hours):
                try:
                    place_hold(
                        self.db,
                        self.stripe,
                        booking,
                        customer_id=client.stripe_customer_id,
                        payment_method_id=saved_card.stripe_payment_method_id,
                        last4=saved_card.last4,
                        amount=booking.final_price,
                    )
                except stripe.StripeError as e:
                    self.db.rollback()
                    logger.error(f"❌ Hold failed for new booking #{booking.id}: {stripe_error_message(e)}")
            else:
                booking.payment_method = PaymentMethod.CREDIT_CARD
                booking.payment_details = deferred_hold_details(delay_hours)
                self.db.commit()
        elif booking.payment_method == PaymentMethod.CREDIT_CARD and not saved_card:
            self._record_existing_intent(booking)

        await self._sync_openphone(client, booking)

        if booking.service_frequency in ServiceFrequency.RECURRING:
            generate_future_bookings(self.db, booking, booking.service_frequency)

        self.db.refresh(booking)
        return booking, generated_password

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_booking(self, booking_id: int, data: BookingUpdate) -> Booking:
        """
        Apply an admin edit and reconcile recurrence and the card hold.

        Order matters: fields are committed first, then the series is
        shifted or regenerated, then the hold is replaced or resized.
        """
        booking = self.get_booking(booking_id)
        provided = data.model_fields_set

        if "cleanerId" in provided and data.cleanerId is not None:
            if not self.repo.get_cleaner(self.db, data.cleanerId):
                raise HTTPException(status_code=404, detail="Cleaner not found")

        original_date = booking.scheduled_date
        original_frequency = booking.service_frequency
        original_price = booking.final_price
        original_service_type = booking.service_type

        for field, column in UPDATABLE_FIELDS.items():
            if field in provided:
                setattr(booking, column, getattr(data, field))
        self.db.commit()
        logger.info(f"✅ Updated booking #{booking.id} fields: {sorted(provided)}")

        frequency_changed = (
            "serviceFrequency" in provided and data.serviceFrequency != original_frequency
        )
        date_changed = booking.scheduled_date != original_date

        if (
            data.updateMode == "FUTURE"
            and not frequency_changed
            and original_frequency in ServiceFrequency.RECURRING
            and (date_changed or data.scheduledTime is not None)
        ):
            shift_future_bookings(
                self.db,
                booking,
                original_date,
                booking.scheduled_date,
                data.scheduledTime,
                original_frequency,
                original_service_type,
            )

        if frequency_changed and data.serviceFrequency in ServiceFrequency.RECURRING:
            clear_future_series(self.db, booking, original_date, original_service_type)
            generate_future_bookings(self.db, booking, data.serviceFrequency)

        delay_hours = get_hold_delay_hours(self.db)
        place_now = should_place_hold_now(booking.scheduled_date, delay_hours)
        price = booking.final_price or 0

        if data.replacePaymentMethod or data.savedPaymentMethodId:
            self._replace_payment_method(booking, data, price, place_now, delay_hours)
        elif "finalPrice" in provided and price > 0 and price != original_price:
            hold = find_active_hold(self.db, booking.id)
            if hold:
                self._update_hold_amount(booking, hold, price)

        self.db.refresh(booking)
        return booking

    def _replace_payment_method(
        self,
        booking: Booking,
        data: BookingUpdate,
        price: float,
        place_now: bool,
        delay_hours: Optional[int],
    ) -> None:
        canceled = cancel_holds(self.db, self.stripe, booking.id, statuses=("requires_capture",))
        if canceled:
            logger.info(f"🚫 Canceled {canceled} existing holds on booking #{booking.id}")

        if data.savedPaymentMethodId and price > 0:
            client = booking.client
            saved_card = self._validated_saved_card(client, data.savedPaymentMethodId)
            if place_now:
                try:
                    place_hold(
                        self.db,
                        self.stripe,
                        booking,
                        customer_id=client.stripe_customer_id,
                        payment_method_id=saved_card.stripe_payment_method_id,
                        last4=saved_card.last4,
                        amount=price,
                        payment_description=f"Payment hold for booking #{booking.id}",
                    )
                except stripe.StripeError as e:
                    self.db.rollback()
                    logger.error(f"❌ Replacement hold failed for booking #{booking.id}: {e}")
                    raise HTTPException(status_code=400, detail=f"Stripe error: {stripe_error_message(e)}")
            else:
                booking.payment_method = PaymentMethod.CREDIT_CARD
                booking.payment_details = deferred_hold_details(delay_hours)
                self.db.commit()
        elif data.paymentMethod == PaymentMethod.CASH:
            booking.payment_method = PaymentMethod.CASH
            booking.payment_details = "Cash payment"
            self.db.commit()

    def _update_hold_amount(self, booking: Booking, hold: Payment, new_price: float) -> None:
        """
        Move an existing hold to the new booking price.

        An authorized (requires_capture) intent cannot be resized, so a new
        hold is placed first and the old one canceled; the card never ends up
        carrying both.
        """
        amount_cents = to_cents(new_price)
        try:
            if hold.status == "requires_capture":
                customer_id = booking.client.stripe_customer_id
                if not customer_id or not hold.stripe_payment_method_id:
                    raise ValueError("Cannot update hold: Missing Stripe Customer ID or Payment Method ID")

                new_intent = self.stripe.create_hold(
                    amount_cents=amount_cents,
                    customer_id=customer_id,
                    payment_method_id=hold.stripe_payment_method_id,
                    description=f"Booking #{booking.id}: {booking.service_type} (Updated Price)",
                    metadata={"bookingId": str(booking.id), "clientId": str(booking.client_id)},
                )
                if new_intent.status == "requires_action":
                    self.stripe.cancel_payment_intent(new_intent.id)
                    raise ValueError("Cannot update hold: New amount requires authentication (3DS).")

                old_intent_id = hold.stripe_payment_intent_id
                try:
                    self.stripe.cancel_payment_intent(old_intent_id)
                except stripe.StripeError:
                    try:
                        self.stripe.cancel_payment_intent(new_intent.id)
                    except stripe.StripeError as cleanup_error:
                        logger.error(f"❌ Could not release replacement hold {new_intent.id}: {cleanup_error}")
                    raise

                hold.stripe_payment_intent_id = new_intent.id
                hold.status = new_intent.status
                hold.amount = new_price
                hold.description = f"Payment hold for booking #{booking.id} (Replaced for Price Update)"
                if booking.payment_details and old_intent_id in booking.payment_details:
                    booking.payment_details = booking.payment_details.replace(old_intent_id, new_intent.id)
                logger.info(f"🔁 Replaced hold {old_intent_id} with {new_intent.id} on booking #{booking.id}")
            else:
                intent = self.stripe.update_payment_intent_amount(hold.stripe_payment_intent_id, amount_cents)
                if intent.status == "requires_confirmation":
                    intent = self.stripe.confirm_payment_intent(intent.id)
                hold.status = intent.status
                hold.amount = new_price
                hold.description = f"Payment hold for booking #{booking.id} (Updated Amount)"
                logger.info(f"💳 Updated hold {intent.id} amount to ${new_price:.2f}")
            self.db.commit()
        except (stripe.StripeError, ValueError) as e:
            self.db.rollback()
            logger.error(f"❌ Hold amount update failed for booking #{booking.id}: {e}")
            raise HTTPException(
                status_code=500,
                detail=f"Failed to update Stripe payment hold amount: {stripe_error_message(e)}",
            )

    # ------------------------------------------------------------------
    # Cancel / delete
    # ------------------------------------------------------------------

    def _cancellation_fee(self, override: Optional[float]) -> float:
        if override is not None:
            return override
        config = SettingsRepository.get_configuration(self.db)
        if config and config.cancellation_fee_amount is not None:
            return config.cancellation_fee_amount
        return DEFAULT_CANCELLATION_FEE

    def _send_cancellation_email(self, booking: Booking, fee: Optional[float], reason: Optional[str]) -> None:
        client = booking.client
        if not client or not client.email:
            return
        context = {
            "customer_first_name": client.first_name or "Customer",
            "customer_last_name": client.last_name or "",
            "service_type": booking.service_type,
            "scheduled_date": booking.scheduled_date.strftime("%B %d, %Y"),
            "scheduled_time": booking.scheduled_time or "",
            "cancellation_fee": f"${fee:.2f}" if fee else "$0.00",
            "cancellation_reason": reason or "N/A",
        }
        template_name = CANCELLATION_FEE_TEMPLATE if fee else CANCELLATION_NO_FEE_TEMPLATE
        try:
            send_template_email(self.db, template_name, client.email, context)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ Cancellation email for booking #{booking.id} failed: {e}")

    def cancel_booking(self, booking_id: int, data: BookingCancel) -> dict:
        booking = self.get_booking(booking_id)
        if booking.status == BookingStatus.CANCELLED:
            raise HTTPException(status_code=400, detail="Booking is already cancelled")

        booking.status = BookingStatus.CANCELLED
        if data.cancellationReason:
            prefix = f"{booking.special_instructions}\n\n" if booking.special_instructions else ""
            booking.special_instructions = f"{prefix}Cancellation Reason: {data.cancellationReason}"
        self.db.commit()
        logger.info(f"🚫 Cancelled booking #{booking.id}")

        cancel_holds(self.db, self.stripe, booking.id, statuses=("pending", "requires_capture"))

        fee_charged = None
        if data.chargeFee:
            fee = self._cancellation_fee(data.feeAmount)
            if fee > 0:
                self.db.add(
                    Payment(
                        booking_id=booking.id,
                        cleaner_id=booking.cleaner_id,
                        amount=fee,
                        description=f"Cancellation Fee - {data.cancellationReason or 'No reason provided'}",
                        status="pending",
                        is_captured=False,
                    )
                )
                self.db.commit()
                fee_charged = fee

        if data.sendEmail:
            self._send_cancellation_email(booking, fee_charged, data.cancellationReason)

        cancelled_future = 0
        if data.cancelFutureBookings and booking.service_frequency in ServiceFrequency.RECURRING:
            series = self.repo.get_series_after(
                self.db, booking, (BookingStatus.CANCELLED, BookingStatus.COMPLETED)
            )
            for future in series:
                future.status = BookingStatus.CANCELLED
                note = f"Cancelled via bulk cancellation of booking #{booking.id}"
                future.special_instructions = (
                    f"{future.special_instructions}\n\n{note}" if future.special_instructions else note
                )
            self.db.commit()
            for future in series:
                cancel_holds(self.db, self.stripe, future.id, statuses=("pending", "requires_capture"))
            cancelled_future = len(series)
            logger.info(f"🚫 Cancelled {cancelled_future} future bookings in series of #{booking.id}")

        self.db.refresh(booking)
        return {
            "booking": booking,
            "feeCharged": fee_charged,
            "cancelledFutureBookings": cancelled_future,
        }

    def delete_booking(self, booking_id: int) -> dict:
        booking = self.get_booking(booking_id)
        self.db.delete(booking)
        self.db.commit()
        logger.info(f"🗑️ Deleted booking #{booking_id}")
        return {"message": "Booking deleted"}

    # ------------------------------------------------------------------
    # Checklists
    # ------------------------------------------------------------------

    def get_checklist(self, booking_id: int, user: User):
        booking = self.get_booking(booking_id)
        is_admin = user.role in UserRole.STAFF and has_permission(user, MANAGE_BOOKINGS)
        if not (is_admin or booking.cleaner_id == user.id or booking.client_id == user.id):
            raise HTTPException(status_code=403, detail="You do not have access to this checklist")
        return booking.checklist

    def update_checklist_item(self, item_id: int, is_completed: bool, user: User):
        item = self.repo.get_checklist_item(self.db, item_id)
        if not item:
            raise HTTPException(status_code=404, detail="Checklist item not found")

        booking = item.checklist.booking
        if user.role not in UserRole.STAFF and booking.cleaner_id != user.id:
            raise HTTPException(status_code=403, detail="Only the assigned cleaner can update this checklist")

        item.is_completed = is_completed
        item.completed_at = utcnow() if is_completed else None
        item.completed_by_id = user.id if is_completed else None
        self.db.commit()
        self.db.refresh(item)
        return item
