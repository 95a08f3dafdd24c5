from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base
from .shared.time_utils import utcnow


class UserRole:
    CLIENT = "CLIENT"
    CLEANER = "CLEANER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"

    ALL = (CLIENT, CLEANER, ADMIN, OWNER)
    STAFF = (ADMIN, OWNER)


class BookingStatus:
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    ALL = (PENDING, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED)
    # Bookings in these states are never regenerated or auto-held
    LOCKED = (CANCELLED, COMPLETED, IN_PROGRESS)


class ServiceFrequency:
    ONE_TIME = "ONE_TIME"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"

    ALL = (ONE_TIME, WEEKLY, BIWEEKLY, MONTHLY)
    RECURRING = (WEEKLY, BIWEEKLY, MONTHLY)


class PaymentMethod:
    CREDIT_CARD = "CREDIT_CARD"
    CASH = "CASH"


class LeadStatus:
    INCOMING = "INCOMING"
    NO_RESPONSE = "NO_RESPONSE"
    HOT_LEAD = "HOT_LEAD"
    PENDING_CALL_BACK = "PENDING_CALL_BACK"
    OFFER_MADE = "OFFER_MADE"

    ALL = (INCOMING, NO_RESPONSE, HOT_LEAD, PENDING_CALL_BACK, OFFER_MADE)


class TimeOffStatus:
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PricingRuleType:
    BASE_PRICE = "BASE_PRICE"
    SQFT_RATE = "SQFT_RATE"
    BEDROOM_RATE = "BEDROOM_RATE"
    BATHROOM_RATE = "BATHROOM_RATE"
    EXTRA_SERVICE = "EXTRA_SERVICE"
    TIME_ESTIMATE = "TIME_ESTIMATE"

    ALL = (BASE_PRICE, SQFT_RATE, BEDROOM_RATE, BATHROOM_RATE, EXTRA_SERVICE, TIME_ESTIMATE)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.CLIENT, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)  # digits only
    color = Column(String(7), nullable=True)  # #RRGGBB, used for cleaners on the calendar
    admin_permissions = Column(JSON, nullable=True)  # {"manage_bookings": true, ...}
    stripe_customer_id = Column(String(255), nullable=True)
    openphone_contact_id = Column(String(255), nullable=True)
    # Set when an admin creates the account; cleared once the client resets it
    temporary_password = Column(String(50), nullable=True)
    has_reset_password = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    client_bookings = relationship(
        "Booking",
        back_populates="client",
        foreign_keys="Booking.client_id",
        cascade="all, delete-orphan",
    )
    cleaner_bookings = relationship(
        "Booking", back_populates="cleaner", foreign_keys="Booking.cleaner_id"
    )
    saved_payment_methods = relationship(
        "SavedPaymentMethod", back_populates="user", cascade="all, delete-orphan"
    )
    time_off_requests = relationship(
        "TimeOffRequest",
        back_populates="cleaner",
        foreign_keys="TimeOffRequest.cleaner_id",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    cleaner_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    service_type = Column(String(100), nullable=False)
    scheduled_date = Column(DateTime, nullable=False, index=True)
    scheduled_time = Column(String(5), nullable=True)  # HH:MM
    duration_hours = Column(Float, nullable=True)
    address = Column(Text, nullable=True)
    special_instructions = Column(Text, nullable=True)
    final_price = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING, index=True)
    service_frequency = Column(String(20), nullable=True)
    house_square_footage = Column(Integer, nullable=True)
    basement_square_footage = Column(Integer, nullable=True)
    number_of_bedrooms = Column(Integer, nullable=True)
    number_of_bathrooms = Column(Float, nullable=True)
    number_of_cleaners_requested = Column(Integer, nullable=True)
    cleaner_payment_amount = Column(Float, nullable=True)
    payment_method = Column(String(20), nullable=True)
    payment_details = Column(Text, nullable=True)
    selected_extras = Column(JSON, nullable=True)  # list of EXTRA_SERVICE pricing rule ids
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    client = relationship("User", back_populates="client_bookings", foreign_keys=[client_id])
    cleaner = relationship("User", back_populates="cleaner_bookings", foreign_keys=[cleaner_id])
    payments = relationship(
        "Payment", back_populates="booking", cascade="all, delete-orphan", order_by="Payment.id"
    )
    checklist = relationship(
        "BookingChecklist", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=True, index=True)
    cleaner_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Float, nullable=False)  # dollars; refunds are negative
    description = Column(Text, nullable=True)
    stripe_payment_intent_id = Column(String(255), nullable=True, index=True)
    stripe_payment_method_id = Column(String(255), nullable=True)
    # Stripe PaymentIntent status, or "pending" / "failed" for local-only rows
    status = Column(String(50), nullable=True)
    is_captured = Column(Boolean, default=False, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    booking = relationship("Booking", back_populates="payments")
    cleaner = relationship("User", foreign_keys=[cleaner_id])


class SavedPaymentMethod(Base):
    __tablename__ = "saved_payment_methods"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    stripe_payment_method_id = Column(String(255), unique=True, nullable=False)
    brand = Column(String(50), nullable=True)
    last4 = Column(String(4), nullable=True)
    expiry_month = Column(Integer, nullable=True)
    expiry_year = Column(Integer, nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="saved_payment_methods")


class BookingInquiry(Base):
    """Lead captured from the public inquiry form or saved from the admin booking form"""

    __tablename__ = "booking_inquiries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=False)
    how_heard_about = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)
    sms_consent = Column(Boolean, default=False, nullable=False)
    status = Column(String(30), nullable=False, default=LeadStatus.INCOMING, index=True)
    openphone_contact_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User")


class Configuration(Base):
    __tablename__ = "configuration"

    id = Column(Integer, primary_key=True)
    # Hours before the appointment to place the card hold; null = hold at booking time
    payment_hold_delay_hours = Column(Integer, nullable=True)
    cancellation_fee_amount = Column(Float, nullable=True, default=50.0)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class PricingRule(Base):
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    rule_type = Column(String(30), nullable=False)
    service_type = Column(String(100), nullable=True)  # null applies to every service type
    price_amount = Column(Float, nullable=True)
    rate_per_unit = Column(Float, nullable=True)
    time_amount = Column(Float, nullable=True)
    time_per_unit = Column(Float, nullable=True)
    extra_name = Column(String(255), nullable=True)
    extra_description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow)


class ChecklistTemplate(Base):
    __tablename__ = "checklist_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    service_type = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    items = relationship(
        "ChecklistTemplateItem",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="ChecklistTemplateItem.order",
    )


class ChecklistTemplateItem(Base):
    __tablename__ = "checklist_template_items"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("checklist_templates.id", ondelete="CASCADE"), nullable=False)
    description = Column(Text, nullable=False)
    order = Column(Integer, default=0, nullable=False)

    template = relationship("ChecklistTemplate", back_populates="items")


class BookingChecklist(Base):
    __tablename__ = "booking_checklists"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), unique=True, nullable=False)
    template_id = Column(Integer, ForeignKey("checklist_templates.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    booking = relationship("Booking", back_populates="checklist")
    items = relationship(
        "BookingChecklistItem",
        back_populates="checklist",
        cascade="all, delete-orphan",
        order_by="BookingChecklistItem.order",
    )


class BookingChecklistItem(Base):
    __tablename__ = "booking_checklist_items"

    id = Column(Integer, primary_key=True, index=True)
    checklist_id = Column(Integer, ForeignKey("booking_checklists.id", ondelete="CASCADE"), nullable=False)
    description = Column(Text, nullable=False)
    order = Column(Integer, default=0, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    completed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    checklist = relationship("BookingChecklist", back_populates="items")


class TimeOffRequest(Base):
    __tablename__ = "time_off_requests"

    id = Column(Integer, primary_key=True, index=True)
    cleaner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)  # inclusive day
    reason = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=TimeOffStatus.PENDING)
    reviewed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    admin_notes = Column(Text, nullable=True)
    is_cleared = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    cleaner = relationship("User", back_populates="time_off_requests", foreign_keys=[cleaner_id])
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])


class EmailTemplate(Base):
    __tablename__ = "email_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    subject = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)  # {{placeholder}} tokens
    description = Column(Text, nullable=True)
    recipient = Column(String(20), nullable=False, default="CUSTOMER")  # CUSTOMER, CLEANER, ADMIN
    category = Column(String(50), nullable=True)
    event = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
