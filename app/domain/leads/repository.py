"""Lead repository - Database operations for booking inquiries"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import BookingInquiry, User


class LeadRepository:
    """Repository for lead database operations"""

    @staticmethod
    def get_lead(db: Session, lead_id: int) -> Optional[BookingInquiry]:
        return db.query(BookingInquiry).filter(BookingInquiry.id == lead_id).first()

    @staticmethod
    def list_leads(db: Session, status: Optional[str] = None) -> list[BookingInquiry]:
        query = db.query(BookingInquiry)
        if status:
            query = query.filter(BookingInquiry.status == status)
        return query.order_by(BookingInquiry.created_at.desc(), BookingInquiry.id.desc()).all()

    @staticmethod
    def create_lead(db: Session, **fields) -> BookingInquiry:
        lead = BookingInquiry(**fields)
        db.add(lead)
        db.commit()
        db.refresh(lead)
        return lead

    @staticmethod
    def update_lead(db: Session, lead: BookingInquiry, **fields) -> BookingInquiry:
        for key, value in fields.items():
            setattr(lead, key, value)
        db.commit()
        db.refresh(lead)
        return lead

    @staticmethod
    def delete_lead(db: Session, lead: BookingInquiry) -> None:
        db.delete(lead)
        db.commit()

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()
