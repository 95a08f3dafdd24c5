"""
Mercury reconciliation service
Mirrors bank accounts and transactions locally and categorizes them with admin-defined rules
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from dateutil.parser import isoparse
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models_mercury import (
    CategorizationRule,
    MercuryAccount,
    Transaction,
    TransactionCategory,
    TransactionStatus,
)
from ...services.mercury_service import MercuryAPIError, MercuryService
from ...shared.time_utils import utcnow
from .categorization import categorize
from .repository import MercuryRepository
from .schemas import CategoryCreate, CategoryUpdate, RuleCreate, RuleUpdate, TransactionUpdate

logger = logging.getLogger(__name__)

SYNC_PAGE_LIMIT = 1000

# Request field -> CategorizationRule column
RULE_FIELDS = {
    "name": "name",
    "conditionType": "condition_type",
    "conditionValue": "condition_value",
    "categoryId": "category_id",
    "priority": "priority",
    "isActive": "is_active",
}


def _api_error_message(error: Exception) -> str:
    return error.message if isinstance(error, MercuryAPIError) else str(error)


def _parse_mercury_date(raw: dict[str, Any]) -> datetime:
    value = raw.get("createdAt") or raw.get("postedAt")
    if not value:
        return utcnow()
    parsed = isoparse(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class MercuryReconciliationService:
    def __init__(self, db: Session, mercury_service: MercuryService):
        self.db = db
        self.repo = MercuryRepository()
        self.mercury = mercury_service

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def list_accounts(self) -> list[MercuryAccount]:
        return self.repo.list_accounts(self.db)

    async def refresh_accounts(self) -> list[MercuryAccount]:
        """Fetch accounts from Mercury and upsert them by Mercury id"""
        try:
            remote_accounts = await self.mercury.get_accounts()
        except (MercuryAPIError, httpx.HTTPError) as e:
            message = _api_error_message(e)
            logger.error(f"❌ Failed to fetch Mercury accounts: {message}")
            raise HTTPException(status_code=500, detail=f"Mercury API error: {message}")

        now = utcnow()
        for raw in remote_accounts:
            account = self.repo.get_account_by_mercury_id(self.db, raw["id"])
            if not account:
                account = MercuryAccount(mercury_id=raw["id"])
                self.db.add(account)
            account_number = raw.get("accountNumber")
            account.name = raw.get("name") or raw.get("nickname") or "Mercury account"
            account.account_number = account_number[-4:] if account_number else None
            account.routing_number = raw.get("routingNumber")
            account.current_balance = raw.get("currentBalance") or 0
            account.available_balance = raw.get("availableBalance") or 0
            account.status = raw.get("status") or "active"
            account.type = raw.get("type")
            account.last_synced_at = now

        self.db.commit()
        logger.info(f"✅ Refreshed {len(remote_accounts)} Mercury accounts")
        return self.repo.list_accounts(self.db)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def sync_transactions(self) -> dict:
        """
        Pull recent transactions for every known account.

        New and existing transactions are re-categorized by the active rules,
        except those an admin categorized by hand. A failure on one account
        is logged and the remaining accounts still sync.
        """
        accounts = self.repo.list_accounts(self.db)
        if not accounts:
            raise HTTPException(status_code=400, detail="No accounts found. Please fetch accounts first.")

        rules = self.repo.list_rules(self.db, active_only=True)
        synced = 0

        for account in accounts:
            try:
                remote_transactions = await self.mercury.get_transactions(account.mercury_id, limit=SYNC_PAGE_LIMIT)
            except (MercuryAPIError, httpx.HTTPError) as e:
                logger.error(f"❌ Failed to sync transactions for account {account.mercury_id}: {_api_error_message(e)}")
                continue

            for raw in remote_transactions:
                self._upsert_transaction(account, raw, rules)
                synced += 1
            self.db.commit()
            logger.info(f"🔁 Synced {len(remote_transactions)} transactions for account {account.name}")

        return {"success": True, "syncedCount": synced, "message": f"Successfully synced {synced} transactions"}

    def _upsert_transaction(
        self, account: MercuryAccount, raw: dict[str, Any], rules: list[CategorizationRule]
    ) -> Transaction:
        transaction = self.repo.get_transaction_by_mercury_id(self.db, raw["id"])
        if not transaction:
            transaction = Transaction(mercury_id=raw["id"], is_manually_categorized=False)
            self.db.add(transaction)

        transaction.account_id = account.id
        transaction.date = _parse_mercury_date(raw)
        transaction.description = raw.get("description") or "Unknown transaction"
        transaction.amount = raw.get("amount") or 0
        transaction.status = TransactionStatus.PENDING if raw.get("status") == "pending" else TransactionStatus.POSTED
        transaction.counterparty_name = raw.get("counterpartyName") or None
        transaction.counterparty_id = raw.get("counterpartyId") or None
        transaction.bank_description = raw.get("bankDescription") or None
        transaction.details = raw.get("details") or None

        if not transaction.is_manually_categorized:
            transaction.category_id = categorize(
                rules, transaction.description, transaction.counterparty_name, transaction.amount
            )
        return transaction

    def list_transactions(
        self,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
        transaction_type: str = "all",
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Transaction], int, bool]:
        page, total = self.repo.search_transactions(
            self.db,
            account_id=account_id,
            category_id=category_id,
            status=status,
            start=start_date,
            end=end_date,
            min_amount=min_amount,
            max_amount=max_amount,
            transaction_type=transaction_type,
            search=search,
            limit=limit,
            offset=offset,
        )
        return page, total, offset + len(page) < total

    def update_transaction(self, transaction_id: int, data: TransactionUpdate) -> Transaction:
        transaction = self.repo.get_transaction(self.db, transaction_id)
        if not transaction:
            raise HTTPException(status_code=404, detail="Transaction not found")

        provided = data.model_fields_set
        if "categoryId" in provided:
            if data.categoryId is not None:
                self._get_category(data.categoryId)
            transaction.category_id = data.categoryId
            transaction.is_manually_categorized = data.categoryId is not None
        if "editedDescription" in provided:
            transaction.edited_description = data.editedDescription or None
        return self.repo.save(self.db, transaction)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self) -> list[TransactionCategory]:
        return self.repo.list_categories(self.db)

    def _get_category(self, category_id: int) -> TransactionCategory:
        category = self.repo.get_category(self.db, category_id)
        if not category:
            raise HTTPException(status_code=404, detail="Category not found")
        return category

    def _check_category_name_free(self, name: str, category_id: Optional[int] = None) -> None:
        existing = self.repo.get_category_by_name(self.db, name)
        if existing and existing.id != category_id:
            raise HTTPException(status_code=409, detail=f"A category named '{name}' already exists")

    def create_category(self, data: CategoryCreate) -> TransactionCategory:
        self._check_category_name_free(data.name)
        return self.repo.save(
            self.db, TransactionCategory(name=data.name, description=data.description, color=data.color)
        )

    def update_category(self, category_id: int, data: CategoryUpdate) -> TransactionCategory:
        category = self._get_category(category_id)
        provided = data.model_fields_set
        if "name" in provided and data.name:
            self._check_category_name_free(data.name, category.id)
            category.name = data.name
        if "description" in provided:
            category.description = data.description
        if "color" in provided:
            category.color = data.color
        return self.repo.save(self.db, category)

    def delete_category(self, category_id: int) -> dict:
        """Transactions in the category become uncategorized; its rules go with it"""
        category = self._get_category(category_id)
        cleared = self.repo.uncategorize(self.db, category.id)
        self.repo.delete(self.db, category)
        logger.info(f"🗑️ Deleted category {category_id}, uncategorized {cleared} transactions")
        return {"success": True}

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def list_rules(self) -> list[CategorizationRule]:
        return self.repo.list_rules(self.db)

    def _get_rule(self, rule_id: int) -> CategorizationRule:
        rule = self.repo.get_rule(self.db, rule_id)
        if not rule:
            raise HTTPException(status_code=404, detail="Rule not found")
        return rule

    def create_rule(self, data: RuleCreate) -> CategorizationRule:
        self._get_category(data.categoryId)
        values = data.model_dump()
        return self.repo.save(
            self.db, CategorizationRule(**{column: values[field] for field, column in RULE_FIELDS.items()})
        )

    def update_rule(self, rule_id: int, data: RuleUpdate) -> CategorizationRule:
        rule = self._get_rule(rule_id)
        for field in data.model_fields_set:
            value = getattr(data, field)
            if value is None:
                continue
            if field == "categoryId":
                self._get_category(value)
            setattr(rule, RULE_FIELDS[field], value)
        return self.repo.save(self.db, rule)

    def delete_rule(self, rule_id: int) -> dict:
        self.repo.delete(self.db, self._get_rule(rule_id))
        return {"success": True}

    def apply_rules(self) -> dict:
        """Re-run the active rules over every transaction not categorized by hand"""
        rules = self.repo.list_rules(self.db, active_only=True)
        updated = 0
        for transaction in self.repo.auto_categorized_transactions(self.db):
            category_id = categorize(rules, transaction.description, transaction.counterparty_name, transaction.amount)
            if category_id != transaction.category_id:
                transaction.category_id = category_id
                updated += 1
        self.db.commit()
        logger.info(f"✅ Re-applied categorization rules, {updated} transactions changed")
        return {"success": True, "updatedCount": updated}
