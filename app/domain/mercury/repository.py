"""Mercury repository - accounts, transactions, categories and rules"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ...models_mercury import CategorizationRule, MercuryAccount, Transaction, TransactionCategory


class MercuryRepository:
    @staticmethod
    def list_accounts(db: Session) -> list[MercuryAccount]:
        return db.query(MercuryAccount).order_by(MercuryAccount.name.asc()).all()

    @staticmethod
    def get_account_by_mercury_id(db: Session, mercury_id: str) -> Optional[MercuryAccount]:
        return db.query(MercuryAccount).filter(MercuryAccount.mercury_id == mercury_id).first()

    @staticmethod
    def get_transaction(db: Session, transaction_id: int) -> Optional[Transaction]:
        return db.query(Transaction).filter(Transaction.id == transaction_id).first()

    @staticmethod
    def get_transaction_by_mercury_id(db: Session, mercury_id: str) -> Optional[Transaction]:
        return db.query(Transaction).filter(Transaction.mercury_id == mercury_id).first()

    @staticmethod
    def search_transactions(
        db: Session,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
        transaction_type: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        """One page of transactions, newest first, and the total matching count"""
        query = db.query(Transaction)
        if account_id:
            query = query.filter(Transaction.account_id == account_id)
        if category_id:
            query = query.filter(Transaction.category_id == category_id)
        if status:
            query = query.filter(Transaction.status == status)
        if start:
            query = query.filter(Transaction.date >= start)
        if end:
            query = query.filter(Transaction.date <= end)
        if min_amount is not None:
            query = query.filter(Transaction.amount >= min_amount)
        if max_amount is not None:
            query = query.filter(Transaction.amount <= max_amount)
        if transaction_type == "debit":
            query = query.filter(Transaction.amount < 0)
        elif transaction_type == "credit":
            query = query.filter(Transaction.amount > 0)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Transaction.description.ilike(pattern),
                    Transaction.edited_description.ilike(pattern),
                    Transaction.counterparty_name.ilike(pattern),
                )
            )

        total = query.count()
        page = (
            query.options(selectinload(Transaction.account), selectinload(Transaction.category))
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return page, total

    @staticmethod
    def auto_categorized_transactions(db: Session) -> list[Transaction]:
        return db.query(Transaction).filter(Transaction.is_manually_categorized.is_(False)).all()

    @staticmethod
    def list_categories(db: Session) -> list[TransactionCategory]:
        return db.query(TransactionCategory).order_by(TransactionCategory.name.asc()).all()

    @staticmethod
    def get_category(db: Session, category_id: int) -> Optional[TransactionCategory]:
        return db.query(TransactionCategory).filter(TransactionCategory.id == category_id).first()

    @staticmethod
    def get_category_by_name(db: Session, name: str) -> Optional[TransactionCategory]:
        return db.query(TransactionCategory).filter(TransactionCategory.name == name).first()

    @staticmethod
    def uncategorize(db: Session, category_id: int) -> int:
        """Clear a category from its transactions (no commit)"""
        return (
            db.query(Transaction)
            .filter(Transaction.category_id == category_id)
            .update(
                {Transaction.category_id: None, Transaction.is_manually_categorized: False},
                synchronize_session=False,
            )
        )

    @staticmethod
    def list_rules(db: Session, active_only: bool = False) -> list[CategorizationRule]:
        """Highest priority first"""
        query = db.query(CategorizationRule).options(selectinload(CategorizationRule.category))
        if active_only:
            query = query.filter(CategorizationRule.is_active.is_(True))
        return query.order_by(CategorizationRule.priority.desc(), CategorizationRule.name.asc()).all()

    @staticmethod
    def get_rule(db: Session, rule_id: int) -> Optional[CategorizationRule]:
        return db.query(CategorizationRule).filter(CategorizationRule.id == rule_id).first()

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
