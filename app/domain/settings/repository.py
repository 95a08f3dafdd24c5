"""Settings repository - Configuration, pricing rules, checklist and email templates"""

from typing import Optional

from sqlalchemy.orm import Session

from ...config import DEFAULT_CANCELLATION_FEE
from ...models import ChecklistTemplate, Configuration, EmailTemplate, PricingRule


class SettingsRepository:
    """Repository for business settings"""

    @staticmethod
    def get_configuration(db: Session) -> Optional[Configuration]:
        return db.query(Configuration).order_by(Configuration.id).first()

    @staticmethod
    def get_or_create_configuration(db: Session) -> Configuration:
        config = SettingsRepository.get_configuration(db)
        if not config:
            config = Configuration(payment_hold_delay_hours=None, cancellation_fee_amount=DEFAULT_CANCELLATION_FEE)
            db.add(config)
            db.commit()
            db.refresh(config)
        return config

    @staticmethod
    def get_pricing_rules(db: Session, active_only: bool = False) -> list[PricingRule]:
        query = db.query(PricingRule)
        if active_only:
            query = query.filter(PricingRule.is_active.is_(True))
        return query.order_by(PricingRule.display_order, PricingRule.id).all()

    @staticmethod
    def get_pricing_rule(db: Session, rule_id: int) -> Optional[PricingRule]:
        return db.query(PricingRule).filter(PricingRule.id == rule_id).first()

    @staticmethod
    def get_checklist_templates(db: Session) -> list[ChecklistTemplate]:
        return db.query(ChecklistTemplate).order_by(ChecklistTemplate.name).all()

    @staticmethod
    def get_checklist_template(db: Session, template_id: int) -> Optional[ChecklistTemplate]:
        return db.query(ChecklistTemplate).filter(ChecklistTemplate.id == template_id).first()

    @staticmethod
    def find_checklist_template_for_service(db: Session, service_type: str) -> Optional[ChecklistTemplate]:
        return (
            db.query(ChecklistTemplate)
            .filter(ChecklistTemplate.service_type == service_type)
            .order_by(ChecklistTemplate.id)
            .first()
        )

    @staticmethod
    def get_email_templates(db: Session) -> list[EmailTemplate]:
        return db.query(EmailTemplate).order_by(EmailTemplate.name).all()

    @staticmethod
    def get_email_template(db: Session, template_id: int) -> Optional[EmailTemplate]:
        return db.query(EmailTemplate).filter(EmailTemplate.id == template_id).first()

    @staticmethod
    def get_email_template_by_name(db: Session, name: str) -> Optional[EmailTemplate]:
        return db.query(EmailTemplate).filter(EmailTemplate.name == name).first()

    @staticmethod
    def save(db: Session, obj):
        db.add(obj)
        db.commit()
        db.refresh(obj)
        return obj

    @staticmethod
    def delete(db: Session, obj) -> None:
        db.delete(obj)
        db.commit()
