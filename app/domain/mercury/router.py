"""Mercury router - bank accounts, transaction sync, categories and categorization rules"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ...services.mercury_service import MercuryService, get_mercury_service
from .schemas import (
    AccountResponse,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    RuleCreate,
    RuleResponse,
    RuleUpdate,
    SyncResponse,
    TransactionPage,
    TransactionResponse,
    TransactionStatusLiteral,
    TransactionUpdate,
)
from .service import MercuryReconciliationService

router = APIRouter(prefix="/admin/mercury", tags=["Mercury"])


def get_mercury_reconciliation_service(
    db: Session = Depends(get_db),
    mercury_service: MercuryService = Depends(get_mercury_service),
) -> MercuryReconciliationService:
    """Dependency injection for MercuryReconciliationService"""
    return MercuryReconciliationService(db, mercury_service)


# ============================================================================
# ACCOUNTS
# ============================================================================


@router.get("/accounts", response_model=list[AccountResponse])
async def list_accounts(
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    return [AccountResponse.from_account(a) for a in service.list_accounts()]


@router.post("/accounts/refresh", response_model=list[AccountResponse])
async def refresh_accounts(
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    """Fetch accounts and balances from Mercury"""
    return [AccountResponse.from_account(a) for a in await service.refresh_accounts()]


# ============================================================================
# TRANSACTIONS
# ============================================================================


@router.post("/sync", response_model=SyncResponse)
async def sync_transactions(
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    return await service.sync_transactions()


@router.get("/transactions", response_model=TransactionPage)
async def list_transactions(
    accountId: Optional[int] = Query(None),
    categoryId: Optional[int] = Query(None),
    status: Optional[TransactionStatusLiteral] = Query(None),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    minAmount: Optional[float] = Query(None),
    maxAmount: Optional[float] = Query(None),
    transactionType: Literal["debit", "credit", "all"] = Query("all"),
    searchQuery: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    transactions, total, has_more = service.list_transactions(
        account_id=accountId,
        category_id=categoryId,
        status=status,
        start_date=startDate,
        end_date=endDate,
        min_amount=minAmount,
        max_amount=maxAmount,
        transaction_type=transactionType,
        search=searchQuery,
        limit=limit,
        offset=offset,
    )
    return TransactionPage(
        transactions=[TransactionResponse.from_transaction(t) for t in transactions],
        totalCount=total,
        hasMore=has_more,
    )


@router.patch("/transactions/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: int,
    data: TransactionUpdate,
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    return TransactionResponse.from_transaction(service.update_transaction(transaction_id, data))


# ============================================================================
# CATEGORIES
# ============================================================================


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    return [CategoryResponse.from_category(c) for c in service.list_categories()]


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def create_category(
    data: CategoryCreate,
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    return CategoryResponse.from_category(service.create_category(data))


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    return CategoryResponse.from_category(service.update_category(category_id, data))


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: int,
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    return service.delete_category(category_id)


# ============================================================================
# RULES
# ============================================================================


@router.get("/rules", response_model=list[RuleResponse])
async def list_rules(
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    return [RuleResponse.from_rule(r) for r in service.list_rules()]


@router.post("/rules", response_model=RuleResponse, status_code=201)
async def create_rule(
    data: RuleCreate,
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    return RuleResponse.from_rule(service.create_rule(data))


@router.post("/rules/apply")
async def apply_rules(
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    """Re-categorize every transaction that was not categorized by hand"""
    return service.apply_rules()


@router.patch("/rules/{rule_id}", response_model=RuleResponse)
async def update_rule(
    rule_id: int,
    data: RuleUpdate,
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    return RuleResponse.from_rule(service.update_rule(rule_id, data))


@router.delete("/rules/{rule_id}")
async def delete_rule(
    rule_id: int,
    current_user: User = Depends(require_admin()),
    service: MercuryReconciliationService = Depends(get_mercury_reconciliation_service),
):
    return service.delete_rule(rule_id)
