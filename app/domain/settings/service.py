"""Settings service - business configuration and admin-editable templates"""

import logging
import smtplib
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import send_email
from ...email_templates import DEFAULT_TEMPLATES, SAMPLE_CONTEXT, render_placeholders, text_to_html
from ...models import ChecklistTemplate, ChecklistTemplateItem, Configuration, EmailTemplate, PricingRule
from .repository import SettingsRepository
from .schemas import (
    ChecklistTemplateCreate,
    ChecklistTemplateItemInput,
    ChecklistTemplateUpdate,
    ConfigurationUpdate,
    EmailTemplateCreate,
    EmailTemplateUpdate,
    PricingRuleCreate,
    PricingRuleUpdate,
)

logger = logging.getLogger(__name__)

# Request field -> PricingRule column
PRICING_RULE_FIELDS = {
    "name": "name",
    "ruleType": "rule_type",
    "serviceType": "service_type",
    "priceAmount": "price_amount",
    "ratePerUnit": "rate_per_unit",
    "timeAmount": "time_amount",
    "timePerUnit": "time_per_unit",
    "extraName": "extra_name",
    "extraDescription": "extra_description",
    "isActive": "is_active",
    "displayOrder": "display_order",
}


def _template_items(items: list[ChecklistTemplateItemInput]) -> list[ChecklistTemplateItem]:
    """Items without an explicit order keep their position in the list"""
    return [
        ChecklistTemplateItem(description=item.description, order=item.order if item.order is not None else index)
        for index, item in enumerate(items)
    ]


class SettingsService:
    """Service layer for business settings"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SettingsRepository()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def get_configuration(self) -> Configuration:
        return self.repo.get_or_create_configuration(self.db)

    def update_configuration(self, data: ConfigurationUpdate) -> Configuration:
        config = self.repo.get_or_create_configuration(self.db)
        provided = data.model_fields_set
        if "paymentHoldDelayHours" in provided:
            config.payment_hold_delay_hours = data.paymentHoldDelayHours
        if "cancellationFeeAmount" in provided and data.cancellationFeeAmount is not None:
            config.cancellation_fee_amount = data.cancellationFeeAmount
        config = self.repo.save(self.db, config)
        logger.info(
            f"✅ Configuration updated: hold delay={config.payment_hold_delay_hours}h, "
            f"cancellation fee={config.cancellation_fee_amount}"
        )
        return config

    # ------------------------------------------------------------------
    # Pricing rules
    # ------------------------------------------------------------------

    def list_pricing_rules(self, active_only: bool = False) -> list[PricingRule]:
        return self.repo.get_pricing_rules(self.db, active_only)

    def _get_pricing_rule(self, rule_id: int) -> PricingRule:
        rule = self.repo.get_pricing_rule(self.db, rule_id)
        if not rule:
            raise HTTPException(status_code=404, detail="Pricing rule not found")
        return rule

    def create_pricing_rule(self, data: PricingRuleCreate) -> PricingRule:
        values = data.model_dump()
        rule = PricingRule(**{column: values[field] for field, column in PRICING_RULE_FIELDS.items()})
        rule.service_type = rule.service_type or None
        return self.repo.save(self.db, rule)

    def update_pricing_rule(self, rule_id: int, data: PricingRuleUpdate) -> PricingRule:
        rule = self._get_pricing_rule(rule_id)
        for field in data.model_fields_set:
            setattr(rule, PRICING_RULE_FIELDS[field], getattr(data, field))
        return self.repo.save(self.db, rule)

    def delete_pricing_rule(self, rule_id: int) -> dict:
        self.repo.delete(self.db, self._get_pricing_rule(rule_id))
        logger.info(f"🗑️ Deleted pricing rule {rule_id}")
        return {"success": True}

    # ------------------------------------------------------------------
    # Checklist templates
    # ------------------------------------------------------------------

    def list_checklist_templates(self) -> list[ChecklistTemplate]:
        return self.repo.get_checklist_templates(self.db)

    def _get_checklist_template(self, template_id: int) -> ChecklistTemplate:
        template = self.repo.get_checklist_template(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Checklist template not found")
        return template

    def create_checklist_template(self, data: ChecklistTemplateCreate) -> ChecklistTemplate:
        template = ChecklistTemplate(name=data.name, service_type=data.serviceType or None)
        template.items = _template_items(data.items)
        return self.repo.save(self.db, template)

    def update_checklist_template(self, template_id: int, data: ChecklistTemplateUpdate) -> ChecklistTemplate:
        """Existing booking checklists are copies and are not affected"""
        template = self._get_checklist_template(template_id)
        provided = data.model_fields_set
        if "name" in provided and data.name:
            template.name = data.name
        if "serviceType" in provided:
            template.service_type = data.serviceType or None
        if data.items is not None:
            template.items = _template_items(data.items)
        return self.repo.save(self.db, template)

    def delete_checklist_template(self, template_id: int) -> dict:
        self.repo.delete(self.db, self._get_checklist_template(template_id))
        return {"success": True}

    # ------------------------------------------------------------------
    # Email templates
    # ------------------------------------------------------------------

    def list_email_templates(self) -> list[EmailTemplate]:
        return self.repo.get_email_templates(self.db)

    def ensure_default_email_templates(self) -> dict:
        """Create any missing default template; edited templates are left alone"""
        seeded = 0
        for default in DEFAULT_TEMPLATES:
            if not self.repo.get_email_template_by_name(self.db, default["name"]):
                self.db.add(EmailTemplate(**default))
                seeded += 1
        self.db.commit()
        if seeded:
            logger.info(f"📥 Seeded {seeded} default email templates")
        return {"seeded": seeded}

    def _get_email_template(self, template_id: int) -> EmailTemplate:
        template = self.repo.get_email_template(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")
        return template

    def _check_name_free(self, name: str, template_id: Optional[int] = None) -> None:
        existing = self.repo.get_email_template_by_name(self.db, name)
        if existing and existing.id != template_id:
            raise HTTPException(status_code=409, detail=f"An email template named '{name}' already exists")

    def create_email_template(self, data: EmailTemplateCreate) -> EmailTemplate:
        self._check_name_free(data.name)
        return self.repo.save(self.db, EmailTemplate(**self._email_template_values(data)))

    def update_email_template(self, template_id: int, data: EmailTemplateUpdate) -> EmailTemplate:
        template = self._get_email_template(template_id)
        self._check_name_free(data.name, template.id)
        for key, value in self._email_template_values(data).items():
            setattr(template, key, value)
        if data.isActive is not None:
            template.is_active = data.isActive
        return self.repo.save(self.db, template)

    @staticmethod
    def _email_template_values(data: EmailTemplateCreate) -> dict:
        return {
            "name": data.name,
            "subject": data.subject,
            "body": data.body,
            "description": data.description,
            "recipient": data.recipient,
            "category": data.category,
            "event": data.event,
        }

    def delete_email_template(self, template_id: int) -> dict:
        self.repo.delete(self.db, self._get_email_template(template_id))
        return {"success": True}

    def send_test_email(self, template_id: int, to: str) -> dict:
        """Render the template with sample values and send it with a [TEST] subject prefix"""
        template = self._get_email_template(template_id)
        subject = render_placeholders(template.subject, SAMPLE_CONTEXT)
        body = render_placeholders(template.body, SAMPLE_CONTEXT)

        try:
            result = send_email(to=to, subject=f"[TEST] {subject}", html=text_to_html(body), text=body)
        except (smtplib.SMTPException, OSError) as e:
            raise HTTPException(status_code=500, detail=f"Failed to send email: {e}") from e

        if not result.get("success"):
            raise HTTPException(status_code=412, detail=result.get("message") or "Failed to send email")
        return {"success": True}
