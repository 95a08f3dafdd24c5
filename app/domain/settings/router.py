"""Settings router - configuration, pricing rules, checklist and email templates"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ...shared.permissions import MANAGE_BOOKINGS, MANAGE_PRICING
from .schemas import (
    ChecklistTemplateCreate,
    ChecklistTemplateResponse,
    ChecklistTemplateUpdate,
    ConfigurationResponse,
    ConfigurationUpdate,
    EmailTemplateCreate,
    EmailTemplateResponse,
    EmailTemplateUpdate,
    PricingRuleCreate,
    PricingRuleResponse,
    PricingRuleUpdate,
    TestEmailRequest,
)
from .service import SettingsService

router = APIRouter(prefix="/admin/settings", tags=["Settings"])


def get_settings_service(db: Session = Depends(get_db)) -> SettingsService:
    """Dependency injection for SettingsService"""
    return SettingsService(db)


# ============================================================================
# CONFIGURATION
# ============================================================================


@router.get("/configuration", response_model=ConfigurationResponse)
async def get_configuration(
    current_user: User = Depends(require_admin()),
    service: SettingsService = Depends(get_settings_service),
):
    return ConfigurationResponse.from_config(service.get_configuration())


@router.put("/configuration", response_model=ConfigurationResponse)
async def update_configuration(
    data: ConfigurationUpdate,
    current_user: User = Depends(require_admin(MANAGE_PRICING)),
    service: SettingsService = Depends(get_settings_service),
):
    return ConfigurationResponse.from_config(service.update_configuration(data))


# ============================================================================
# PRICING RULES
# ============================================================================


@router.get("/pricing-rules", response_model=list[PricingRuleResponse])
async def list_pricing_rules(
    activeOnly: bool = Query(False),
    current_user: User = Depends(require_admin()),
    service: SettingsService = Depends(get_settings_service),
):
    return [PricingRuleResponse.from_rule(r) for r in service.list_pricing_rules(activeOnly)]


@router.post("/pricing-rules", response_model=PricingRuleResponse, status_code=201)
async def create_pricing_rule(
    data: PricingRuleCreate,
    current_user: User = Depends(require_admin(MANAGE_PRICING)),
    service: SettingsService = Depends(get_settings_service),
):
    return PricingRuleResponse.from_rule(service.create_pricing_rule(data))


@router.patch("/pricing-rules/{rule_id}", response_model=PricingRuleResponse)
async def update_pricing_rule(
    rule_id: int,
    data: PricingRuleUpdate,
    current_user: User = Depends(require_admin(MANAGE_PRICING)),
    service: SettingsService = Depends(get_settings_service),
):
    return PricingRuleResponse.from_rule(service.update_pricing_rule(rule_id, data))


@router.delete("/pricing-rules/{rule_id}")
async def delete_pricing_rule(
    rule_id: int,
    current_user: User = Depends(require_admin(MANAGE_PRICING)),
    service: SettingsService = Depends(get_settings_service),
):
    return service.delete_pricing_rule(rule_id)


# ============================================================================
# CHECKLIST TEMPLATES
# ============================================================================


@router.get("/checklist-templates", response_model=list[ChecklistTemplateResponse])
async def list_checklist_templates(
    current_user: User = Depends(require_admin()),
    service: SettingsService = Depends(get_settings_service),
):
    return [ChecklistTemplateResponse.from_template(t) for t in service.list_checklist_templates()]


@router.post("/checklist-templates", response_model=ChecklistTemplateResponse, status_code=201)
async def create_checklist_template(
    data: ChecklistTemplateCreate,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: SettingsService = Depends(get_settings_service),
):
    return ChecklistTemplateResponse.from_template(service.create_checklist_template(data))


@router.put("/checklist-templates/{template_id}", response_model=ChecklistTemplateResponse)
async def update_checklist_template(
    template_id: int,
    data: ChecklistTemplateUpdate,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: SettingsService = Depends(get_settings_service),
):
    return ChecklistTemplateResponse.from_template(service.update_checklist_template(template_id, data))


@router.delete("/checklist-templates/{template_id}")
async def delete_checklist_template(
    template_id: int,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: SettingsService = Depends(get_settings_service),
):
    return service.delete_checklist_template(template_id)


# ============================================================================
# EMAIL TEMPLATES
# ============================================================================


@router.get("/email-templates", response_model=list[EmailTemplateResponse])
async def list_email_templates(
    current_user: User = Depends(require_admin()),
    service: SettingsService = Depends(get_settings_service),
):
    return [EmailTemplateResponse.from_template(t) for t in service.list_email_templates()]


@router.post("/email-templates/defaults")
async def ensure_default_email_templates(
    current_user: User = Depends(require_admin()),
    service: SettingsService = Depends(get_settings_service),
):
    return service.ensure_default_email_templates()


@router.post("/email-templates", response_model=EmailTemplateResponse, status_code=201)
async def create_email_template(
    data: EmailTemplateCreate,
    current_user: User = Depends(require_admin()),
    service: SettingsService = Depends(get_settings_service),
):
    return EmailTemplateResponse.from_template(service.create_email_template(data))


@router.put("/email-templates/{template_id}", response_model=EmailTemplateResponse)
async def update_email_template(
    template_id: int,
    data: EmailTemplateUpdate,
    current_user: User = Depends(require_admin()),
    service: SettingsService = Depends(get_settings_service),
):
    return EmailTemplateResponse.from_template(service.update_email_template(template_id, data))


@router.delete("/email-templates/{template_id}")
async def delete_email_template(
    template_id: int,
    current_user: User = Depends(require_admin()),
    service: SettingsService = Depends(get_settings_service),
):
    return service.delete_email_template(template_id)


@router.post("/email-templates/{template_id}/test")
async def send_test_email(
    template_id: int,
    data: TestEmailRequest,
    current_user: User = Depends(require_admin()),
    service: SettingsService = Depends(get_settings_service),
):
    """Send the template rendered with sample values"""
    return service.send_test_email(template_id, str(data.to))
