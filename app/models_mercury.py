"""
Mercury bank reconciliation models
Accounts and transactions mirrored from the Mercury API, plus local categories and rules
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .database import Base
from .shared.time_utils import utcnow


class TransactionStatus:
    PENDING = "PENDING"
    POSTED = "POSTED"
    CANCELLED = "CANCELLED"


class RuleConditionType:
    VENDOR_CONTAINS = "VENDOR_CONTAINS"
    DESCRIPTION_CONTAINS = "DESCRIPTION_CONTAINS"
    AMOUNT_EQUALS = "AMOUNT_EQUALS"
    AMOUNT_GREATER_THAN = "AMOUNT_GREATER_THAN"
    AMOUNT_LESS_THAN = "AMOUNT_LESS_THAN"
    COUNTERPARTY_EQUALS = "COUNTERPARTY_EQUALS"

    ALL = (
        VENDOR_CONTAINS,
        DESCRIPTION_CONTAINS,
        AMOUNT_EQUALS,
        AMOUNT_GREATER_THAN,
        AMOUNT_LESS_THAN,
        COUNTERPARTY_EQUALS,
    )


class MercuryAccount(Base):
    __tablename__ = "mercury_accounts"

    id = Column(Integer, primary_key=True, index=True)
    mercury_id = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    account_number = Column(String(4), nullable=True)  # last 4 only
    routing_number = Column(String(20), nullable=True)
    current_balance = Column(Float, default=0.0)
    available_balance = Column(Float, default=0.0)
    status = Column(String(50), nullable=True)
    type = Column(String(50), nullable=True)
    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    transactions = relationship("Transaction", back_populates="account", cascade="all, delete-orphan")


class TransactionCategory(Base):
    __tablename__ = "transaction_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(7), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    rules = relationship("CategorizationRule", back_populates="category", cascade="all, delete-orphan")


class CategorizationRule(Base):
    __tablename__ = "categorization_rules"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    condition_type = Column(String(30), nullable=False)
    condition_value = Column(String(255), nullable=False)
    category_id = Column(Integer, ForeignKey("transaction_categories.id", ondelete="CASCADE"), nullable=False)
    priority = Column(Integer, default=0, nullable=False)  # higher runs first
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    category = relationship("TransactionCategory", back_populates="rules")


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    mercury_id = Column(String(255), unique=True, nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("mercury_accounts.id", ondelete="CASCADE"), nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    description = Column(Text, nullable=True)
    edited_description = Column(Text, nullable=True)
    amount = Column(Float, nullable=False)  # negative = debit
    status = Column(String(20), nullable=False, default=TransactionStatus.POSTED)
    counterparty_name = Column(String(255), nullable=True)
    counterparty_id = Column(String(255), nullable=True)
    bank_description = Column(Text, nullable=True)
    category_id = Column(
        Integer, ForeignKey("transaction_categories.id", ondelete="SET NULL"), nullable=True
    )
    is_manually_categorized = Column(Boolean, default=False, nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    account = relationship("MercuryAccount", back_populates="transactions")
    category = relationship("TransactionCategory")
