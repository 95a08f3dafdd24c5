"""User repository - Database operations for users"""

import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import Booking, Payment, SavedPaymentMethod, User, UserRole
from ...security_utils import generate_temporary_password, hash_password
from ...shared.validators import sanitize_phone

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def list_users(db: Session, role: Optional[str] = None) -> list[User]:
        query = db.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.created_at.desc()).all()

    @staticmethod
    def create_user(db: Session, **fields) -> User:
        user = User(**fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def create_client_account(
        db: Session,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> tuple[User, str]:
        """New CLIENT with a generated temporary password; returns the user and the plain password"""
        password = generate_temporary_password()
        user = UserRepository.create_user(
            db,
            email=email.lower(),
            password_hash=hash_password(password),
            role=UserRole.CLIENT,
            first_name=first_name,
            last_name=last_name,
            phone=sanitize_phone(phone) or None,
            temporary_password=password,
            has_reset_password=False,
        )
        logger.info(f"✅ Created client account {user.id} for {user.email}")
        return user, password

    @staticmethod
    def delete_user(db: Session, user: User) -> None:
        db.delete(user)
        db.commit()

    @staticmethod
    def get_customer_bookings(db: Session, user_id: int) -> list[Booking]:
        return (
            db.query(Booking)
            .options(selectinload(Booking.cleaner))
            .filter(Booking.client_id == user_id)
            .order_by(Booking.scheduled_date.desc())
            .all()
        )

    @staticmethod
    def get_customer_payments(db: Session, user_id: int) -> list[Payment]:
        return (
            db.query(Payment)
            .join(Booking, Payment.booking_id == Booking.id)
            .filter(Booking.client_id == user_id)
            .order_by(Payment.created_at.desc())
            .all()
        )

    @staticmethod
    def get_saved_methods(db: Session, user_id: int) -> list[SavedPaymentMethod]:
        return (
            db.query(SavedPaymentMethod)
            .filter(SavedPaymentMethod.user_id == user_id)
            .order_by(SavedPaymentMethod.is_default.desc(), SavedPaymentMethod.created_at.desc())
            .all()
        )

    @staticmethod
    def get_cleaner_bookings(db: Session, user_id: int) -> list[Booking]:
        return (
            db.query(Booking)
            .options(selectinload(Booking.client))
            .filter(Booking.cleaner_id == user_id)
            .order_by(Booking.scheduled_date.desc())
            .all()
        )
