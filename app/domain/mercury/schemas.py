"""Mercury domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_hex_color

ConditionLiteral = Literal[
    "VENDOR_CONTAINS",
    "DESCRIPTION_CONTAINS",
    "AMOUNT_EQUALS",
    "AMOUNT_GREATER_THAN",
    "AMOUNT_LESS_THAN",
    "COUNTERPARTY_EQUALS",
]
TransactionStatusLiteral = Literal["PENDING", "POSTED", "CANCELLED"]


class AccountResponse(BaseModel):
    id: int
    mercuryId: str
    name: str
    accountNumber: Optional[str] = None
    routingNumber: Optional[str] = None
    currentBalance: Optional[float] = None
    availableBalance: Optional[float] = None
    status: Optional[str] = None
    type: Optional[str] = None
    lastSyncedAt: Optional[datetime] = None

    @classmethod
    def from_account(cls, account) -> "AccountResponse":
        return cls(
            id=account.id,
            mercuryId=account.mercury_id,
            name=account.name,
            accountNumber=account.account_number,
            routingNumber=account.routing_number,
            currentBalance=account.current_balance,
            availableBalance=account.available_balance,
            status=account.status,
            type=account.type,
            lastSyncedAt=account.last_synced_at,
        )


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    color: Optional[str] = None

    @field_validator("color")
    @classmethod
    def check_color(cls, v):
        return validate_hex_color(v)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    color: Optional[str] = None

    @field_validator("color")
    @classmethod
    def check_color(cls, v):
        return validate_hex_color(v)


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    color: Optional[str] = None

    @classmethod
    def from_category(cls, category) -> Optional["CategoryResponse"]:
        if category is None:
            return None
        return cls(id=category.id, name=category.name, description=category.description, color=category.color)


class RuleCreate(BaseModel):
    name: str = Field(min_length=1)
    conditionType: ConditionLiteral
    conditionValue: str = Field(min_length=1)
    categoryId: int
    priority: int = 0
    isActive: bool = True


class RuleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    conditionType: Optional[ConditionLiteral] = None
    conditionValue: Optional[str] = Field(default=None, min_length=1)
    categoryId: Optional[int] = None
    priority: Optional[int] = None
    isActive: Optional[bool] = None


class RuleResponse(BaseModel):
    id: int
    name: str
    conditionType: str
    conditionValue: str
    categoryId: int
    priority: int
    isActive: bool
    category: Optional[CategoryResponse] = None

    @classmethod
    def from_rule(cls, rule) -> "RuleResponse":
        return cls(
            id=rule.id,
            name=rule.name,
            conditionType=rule.condition_type,
            conditionValue=rule.condition_value,
            categoryId=rule.category_id,
            priority=rule.priority,
            isActive=rule.is_active,
            category=CategoryResponse.from_category(rule.category),
        )


class TransactionUpdate(BaseModel):
    """Setting a category marks the transaction as manually categorized; null clears it"""

    categoryId: Optional[int] = None
    editedDescription: Optional[str] = None


class TransactionResponse(BaseModel):
    id: int
    mercuryId: str
    accountId: int
    date: datetime
    description: Optional[str] = None
    editedDescription: Optional[str] = None
    amount: float
    status: str
    counterpartyName: Optional[str] = None
    counterpartyId: Optional[str] = None
    bankDescription: Optional[str] = None
    categoryId: Optional[int] = None
    isManuallyCategorized: bool = False
    details: Optional[Any] = None
    account: Optional[AccountResponse] = None
    category: Optional[CategoryResponse] = None

    @classmethod
    def from_transaction(cls, tx) -> "TransactionResponse":
        return cls(
            id=tx.id,
            mercuryId=tx.mercury_id,
            accountId=tx.account_id,
            date=tx.date,
            description=tx.description,
            editedDescription=tx.edited_description,
            amount=tx.amount,
            status=tx.status,
            counterpartyName=tx.counterparty_name,
            counterpartyId=tx.counterparty_id,
            bankDescription=tx.bank_description,
            categoryId=tx.category_id,
            isManuallyCategorized=tx.is_manually_categorized,
            details=tx.details,
            account=AccountResponse.from_account(tx.account) if tx.account else None,
            category=CategoryResponse.from_category(tx.category),
        )


class TransactionPage(BaseModel):
    transactions: list[TransactionResponse]
    totalCount: int
    hasMore: bool


class SyncResponse(BaseModel):
    success: bool
    syncedCount: int
    message: str
