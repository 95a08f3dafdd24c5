"""Settings domain schemas - configuration, pricing rules, checklist and email templates"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

RuleTypeLiteral = Literal["BASE_PRICE", "SQFT_RATE", "BEDROOM_RATE", "BATHROOM_RATE", "EXTRA_SERVICE", "TIME_ESTIMATE"]
RecipientLiteral = Literal["CUSTOMER", "CLEANER", "ADMIN"]


# ============================================================================
# CONFIGURATION
# ============================================================================


class ConfigurationUpdate(BaseModel):
    """A null hold delay means holds are placed at booking time"""

    paymentHoldDelayHours: Optional[int] = Field(default=None, gt=0)
    cancellationFeeAmount: Optional[float] = Field(default=None, ge=0)


class ConfigurationResponse(BaseModel):
    id: int
    paymentHoldDelayHours: Optional[int] = None
    cancellationFeeAmount: Optional[float] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_config(cls, config) -> "ConfigurationResponse":
        return cls(
            id=config.id,
            paymentHoldDelayHours=config.payment_hold_delay_hours,
            cancellationFeeAmount=config.cancellation_fee_amount,
            updatedAt=config.updated_at,
        )


# ============================================================================
# PRICING RULES
# ============================================================================


class PricingRuleCreate(BaseModel):
    name: str = Field(min_length=1)
    ruleType: RuleTypeLiteral
    serviceType: Optional[str] = None
    priceAmount: Optional[float] = Field(default=None, gt=0)
    ratePerUnit: Optional[float] = Field(default=None, gt=0)
    timeAmount: Optional[float] = Field(default=None, gt=0)
    timePerUnit: Optional[float] = Field(default=None, gt=0)
    extraName: Optional[str] = None
    extraDescription: Optional[str] = None
    isActive: bool = True
    displayOrder: int = 0


class PricingRuleUpdate(BaseModel):
    """Only fields present in the request are applied; explicit nulls clear a value"""

    name: Optional[str] = Field(default=None, min_length=1)
    ruleType: Optional[RuleTypeLiteral] = None
    serviceType: Optional[str] = None
    priceAmount: Optional[float] = Field(default=None, gt=0)
    ratePerUnit: Optional[float] = Field(default=None, gt=0)
    timeAmount: Optional[float] = Field(default=None, gt=0)
    timePerUnit: Optional[float] = Field(default=None, gt=0)
    extraName: Optional[str] = None
    extraDescription: Optional[str] = None
    isActive: Optional[bool] = None
    displayOrder: Optional[int] = None


class PricingRuleResponse(BaseModel):
    id: int
    name: str
    ruleType: str
    serviceType: Optional[str] = None
    priceAmount: Optional[float] = None
    ratePerUnit: Optional[float] = None
    timeAmount: Optional[float] = None
    timePerUnit: Optional[float] = None
    extraName: Optional[str] = None
    extraDescription: Optional[str] = None
    isActive: bool
    displayOrder: int

    @classmethod
    def from_rule(cls, rule) -> "PricingRuleResponse":
        return cls(
            id=rule.id,
            name=rule.name,
            ruleType=rule.rule_type,
            serviceType=rule.service_type,
            priceAmount=rule.price_amount,
            ratePerUnit=rule.rate_per_unit,
            timeAmount=rule.time_amount,
            timePerUnit=rule.time_per_unit,
            extraName=rule.extra_name,
            extraDescription=rule.extra_description,
            isActive=rule.is_active,
            displayOrder=rule.display_order,
        )


# ============================================================================
# CHECKLIST TEMPLATES
# ============================================================================


class ChecklistTemplateItemInput(BaseModel):
    description: str = Field(min_length=1)
    order: Optional[int] = None


class ChecklistTemplateCreate(BaseModel):
    name: str = Field(min_length=1)
    serviceType: Optional[str] = None
    items: list[ChecklistTemplateItemInput] = []


class ChecklistTemplateUpdate(BaseModel):
    """Items, when given, replace the template's whole item list"""

    name: Optional[str] = Field(default=None, min_length=1)
    serviceType: Optional[str] = None
    items: Optional[list[ChecklistTemplateItemInput]] = None


class ChecklistTemplateItemResponse(BaseModel):
    id: int
    description: str
    order: int


class ChecklistTemplateResponse(BaseModel):
    id: int
    name: str
    serviceType: Optional[str] = None
    items: list[ChecklistTemplateItemResponse]
    createdAt: Optional[datetime] = None

    @classmethod
    def from_template(cls, template) -> "ChecklistTemplateResponse":
        return cls(
            id=template.id,
            name=template.name,
            serviceType=template.service_type,
            items=[
                ChecklistTemplateItemResponse(id=i.id, description=i.description, order=i.order)
                for i in template.items
            ],
            createdAt=template.created_at,
        )


# ============================================================================
# EMAIL TEMPLATES
# ============================================================================


class EmailTemplateCreate(BaseModel):
    name: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    body: str = Field(min_length=1)
    description: Optional[str] = None
    recipient: RecipientLiteral
    category: str = Field(min_length=1)
    event: str = Field(min_length=1)


class EmailTemplateUpdate(EmailTemplateCreate):
    isActive: Optional[bool] = None


class EmailTemplateResponse(BaseModel):
    id: int
    name: str
    subject: str
    body: str
    description: Optional[str] = None
    recipient: str
    category: Optional[str] = None
    event: Optional[str] = None
    isActive: bool
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_template(cls, template) -> "EmailTemplateResponse":
        return cls(
            id=template.id,
            name=template.name,
            subject=template.subject,
            body=template.body,
            description=template.description,
            recipient=template.recipient,
            category=template.category,
            event=template.event,
            isActive=template.is_active,
            updatedAt=template.updated_at,
        )


class TestEmailRequest(BaseModel):
    to: EmailStr
