"""Tests for Mercury account and transaction sync, categories and categorization rules"""

from datetime import datetime

import httpx
import pytest

from app.domain.mercury.categorization import categorize, rule_matches
from app.main import app
from app.models_mercury import CategorizationRule, RuleConditionType, Transaction
from app.services.mercury_service import MercuryService, get_mercury_service

from .conftest import auth_headers

ACCOUNT = {
    "id": "acc_1",
    "name": "Operating",
    "accountNumber": "123456789",
    "routingNumber": "021000021",
    "currentBalance": 1000.5,
    "availableBalance": 900,
    "status": "active",
    "type": "checking",
}

TRANSACTIONS = [
    {
        "id": "tx_depot",
        "amount": -45.5,
        "description": "HOME DEPOT #123",
        "counterpartyName": "Home Depot",
        "createdAt": "2026-03-02T15:00:00Z",
        "status": "sent",
    },
    {
        "id": "tx_payout",
        "amount": 1200,
        "description": "Payout",
        "counterpartyName": "Stripe",
        "createdAt": "2026-03-05T10:00:00-05:00",
        "status": "pending",
    },
    {
        "id": "tx_coffee",
        "amount": -9.99,
        "description": "Coffee",
        "postedAt": "2026-02-01T08:00:00Z",
        "status": "sent",
    },
]


def rule(condition_type, value, category_id=1, priority=0, rule_id=1):
    return CategorizationRule(
        id=rule_id,
        name=f"rule {rule_id}",
        condition_type=condition_type,
        condition_value=value,
        category_id=category_id,
        priority=priority,
    )


@pytest.fixture
def bank(mercury_data):
    mercury_data["accounts"].append(dict(ACCOUNT))
    mercury_data["transactions"]["acc_1"] = [dict(t) for t in TRANSACTIONS]
    return mercury_data


def _category(client, admin, name, color="#112233"):
    response = client.post("/admin/mercury/categories", json={"name": name, "color": color}, headers=auth_headers(admin))
    assert response.status_code == 201
    return response.json()["id"]


def _rule(client, admin, category_id, condition_type, value, priority=0):
    response = client.post(
        "/admin/mercury/rules",
        json={
            "name": f"{condition_type} {value}",
            "conditionType": condition_type,
            "conditionValue": value,
            "categoryId": category_id,
            "priority": priority,
        },
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    return response.json()["id"]


def _sync(client, admin):
    client.post("/admin/mercury/accounts/refresh", headers=auth_headers(admin))
    return client.post("/admin/mercury/sync", headers=auth_headers(admin))


def _transactions(client, admin, **params):
    return client.get("/admin/mercury/transactions", params=params, headers=auth_headers(admin)).json()


# ============================================================================
# CATEGORIZATION
# ============================================================================


def test_text_conditions_are_case_insensitive():
    assert rule_matches(rule(RuleConditionType.VENDOR_CONTAINS, "depot"), "HOME DEPOT #123", None, -10)
    assert rule_matches(rule(RuleConditionType.DESCRIPTION_CONTAINS, "depot"), "Refund", "Home Depot", 10)
    assert rule_matches(rule(RuleConditionType.COUNTERPARTY_EQUALS, "stripe"), "Payout", "Stripe", 10)
    assert not rule_matches(rule(RuleConditionType.COUNTERPARTY_EQUALS, "stripe"), "Payout", "Stripe Inc", 10)


def test_amount_conditions_use_absolute_amount():
    assert rule_matches(rule(RuleConditionType.AMOUNT_EQUALS, "45.5"), None, None, -45.5)
    assert rule_matches(rule(RuleConditionType.AMOUNT_GREATER_THAN, "1000"), None, None, -1200)
    assert not rule_matches(rule(RuleConditionType.AMOUNT_GREATER_THAN, "1000"), None, None, 1000)
    assert rule_matches(rule(RuleConditionType.AMOUNT_LESS_THAN, "10"), None, None, -9.99)
    assert not rule_matches(rule(RuleConditionType.AMOUNT_EQUALS, "lots"), None, None, 5)


def test_first_matching_rule_wins():
    rules = [
        rule(RuleConditionType.COUNTERPARTY_EQUALS, "stripe", category_id=7, rule_id=1),
        rule(RuleConditionType.AMOUNT_GREATER_THAN, "100", category_id=8, rule_id=2),
    ]

    assert categorize(rules, "Payout", "Stripe", 1200) == 7
    assert categorize(rules, "Deposit", "Bank", 1200) == 8
    assert categorize(rules, "Deposit", "Bank", 50) is None


# ============================================================================
# ACCOUNTS AND SYNC
# ============================================================================


def test_sync_requires_accounts(client, admin):
    response = client.post("/admin/mercury/sync", headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json()["detail"] == "No accounts found. Please fetch accounts first."


def test_refresh_accounts_upserts_by_mercury_id(client, admin, bank):
    first = client.post("/admin/mercury/accounts/refresh", headers=auth_headers(admin))

    assert first.status_code == 200
    [account] = first.json()
    assert account["mercuryId"] == "acc_1"
    assert account["accountNumber"] == "6789"
    assert account["currentBalance"] == 1000.5
    assert account["lastSyncedAt"] is not None

    bank["accounts"][0]["currentBalance"] = 50
    client.post("/admin/mercury/accounts/refresh", headers=auth_headers(admin))
    accounts = client.get("/admin/mercury/accounts", headers=auth_headers(admin)).json()
    assert [(a["id"], a["currentBalance"]) for a in accounts] == [(account["id"], 50.0)]


def test_refresh_accounts_reports_api_errors(client, admin):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Invalid API key"})

    rejected = MercuryService(api_key="bad-key", transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_mercury_service] = lambda: rejected

    response = client.post("/admin/mercury/accounts/refresh", headers=auth_headers(admin))

    assert response.status_code == 500
    assert response.json()["detail"] == "Mercury API error: Invalid API key"


def test_sync_categorizes_new_transactions(client, db, admin, bank):
    supplies = _category(client, admin, "Supplies")
    income = _category(client, admin, "Income")
    _rule(client, admin, supplies, "VENDOR_CONTAINS", "depot")
    _rule(client, admin, income, "COUNTERPARTY_EQUALS", "stripe", priority=5)

    response = _sync(client, admin)

    assert response.json() == {"success": True, "syncedCount": 3, "message": "Successfully synced 3 transactions"}
    db.expire_all()
    by_id = {t.mercury_id: t for t in db.query(Transaction).all()}
    assert by_id["tx_depot"].category_id == supplies
    assert by_id["tx_payout"].category_id == income
    assert by_id["tx_payout"].status == "PENDING"
    assert by_id["tx_payout"].date == datetime(2026, 3, 5, 15, 0)
    assert by_id["tx_coffee"].category_id is None
    assert by_id["tx_coffee"].date == datetime(2026, 2, 1, 8, 0)
    assert by_id["tx_coffee"].status == "POSTED"


def test_resync_keeps_manual_categories(client, db, admin, bank):
    supplies = _category(client, admin, "Supplies")
    meals = _category(client, admin, "Meals")
    _rule(client, admin, supplies, "VENDOR_CONTAINS", "depot")
    _sync(client, admin)
    depot = db.query(Transaction).filter(Transaction.mercury_id == "tx_depot").one()

    patched = client.patch(
        f"/admin/mercury/transactions/{depot.id}",
        json={"categoryId": meals, "editedDescription": "Team lunch"},
        headers=auth_headers(admin),
    )
    assert patched.json()["isManuallyCategorized"] is True
    assert patched.json()["category"]["name"] == "Meals"

    bank["transactions"]["acc_1"][0]["description"] = "HOME DEPOT #124"
    assert client.post("/admin/mercury/sync", headers=auth_headers(admin)).json()["syncedCount"] == 3

    db.expire_all()
    depot = db.get(Transaction, depot.id)
    assert depot.category_id == meals
    assert depot.description == "HOME DEPOT #124"
    assert depot.edited_description == "Team lunch"
    assert db.query(Transaction).count() == 3


def test_clearing_a_category_returns_transaction_to_rules(client, db, admin, bank):
    meals = _category(client, admin, "Meals")
    _sync(client, admin)
    coffee = db.query(Transaction).filter(Transaction.mercury_id == "tx_coffee").one()
    client.patch(f"/admin/mercury/transactions/{coffee.id}", json={"categoryId": meals}, headers=auth_headers(admin))

    cleared = client.patch(
        f"/admin/mercury/transactions/{coffee.id}", json={"categoryId": None}, headers=auth_headers(admin)
    )

    assert cleared.json()["categoryId"] is None
    assert cleared.json()["isManuallyCategorized"] is False


def test_transaction_update_errors(client, admin, bank):
    missing = client.patch("/admin/mercury/transactions/999", json={"categoryId": None}, headers=auth_headers(admin))
    assert missing.status_code == 404

    _sync(client, admin)
    [tx] = _transactions(client, admin, limit=1)["transactions"]
    unknown = client.patch(
        f"/admin/mercury/transactions/{tx['id']}", json={"categoryId": 999}, headers=auth_headers(admin)
    )
    assert unknown.status_code == 404
    assert unknown.json()["detail"] == "Category not found"


def test_failing_account_does_not_stop_sync(client, admin, bank):
    bank["accounts"].append({**ACCOUNT, "id": "acc_broken", "name": "Broken"})

    response = _sync(client, admin)

    assert response.status_code == 200
    assert response.json()["syncedCount"] == 3


# ============================================================================
# TRANSACTION LISTING
# ============================================================================


def test_transaction_filters(client, admin, bank):
    _sync(client, admin)

    everything = _transactions(client, admin)
    assert [t["mercuryId"] for t in everything["transactions"]] == ["tx_payout", "tx_depot", "tx_coffee"]
    assert everything["totalCount"] == 3
    assert everything["hasMore"] is False
    assert everything["transactions"][0]["account"]["name"] == "Operating"

    assert _transactions(client, admin, transactionType="debit")["totalCount"] == 2
    assert _transactions(client, admin, transactionType="credit")["totalCount"] == 1
    assert _transactions(client, admin, status="PENDING")["totalCount"] == 1
    assert _transactions(client, admin, searchQuery="depot")["totalCount"] == 1
    assert _transactions(client, admin, minAmount=-10, maxAmount=0)["totalCount"] == 1
    assert _transactions(client, admin, startDate="2026-03-01T00:00:00")["totalCount"] == 2


def test_transaction_pagination(client, admin, bank):
    _sync(client, admin)

    page = _transactions(client, admin, limit=2, offset=0)
    assert len(page["transactions"]) == 2
    assert page["hasMore"] is True

    last = _transactions(client, admin, limit=2, offset=2)
    assert [t["mercuryId"] for t in last["transactions"]] == ["tx_coffee"]
    assert last["hasMore"] is False
    assert last["totalCount"] == 3


# ============================================================================
# CATEGORIES AND RULES
# ============================================================================


def test_category_crud(client, admin):
    headers = auth_headers(admin)
    category_id = _category(client, admin, "Supplies")

    duplicate = client.post("/admin/mercury/categories", json={"name": "Supplies"}, headers=headers)
    assert duplicate.status_code == 409

    bad_color = client.post("/admin/mercury/categories", json={"name": "Fuel", "color": "red"}, headers=headers)
    assert bad_color.status_code == 422

    updated = client.patch(
        f"/admin/mercury/categories/{category_id}", json={"description": "Cleaning supplies"}, headers=headers
    )
    assert updated.json()["description"] == "Cleaning supplies"
    assert updated.json()["name"] == "Supplies"

    _category(client, admin, "Fuel")
    names = [c["name"] for c in client.get("/admin/mercury/categories", headers=headers).json()]
    assert names == ["Fuel", "Supplies"]


def test_deleting_category_uncategorizes_transactions(client, db, admin, bank):
    supplies = _category(client, admin, "Supplies")
    _rule(client, admin, supplies, "VENDOR_CONTAINS", "depot")
    _sync(client, admin)

    response = client.delete(f"/admin/mercury/categories/{supplies}", headers=auth_headers(admin))

    assert response.json() == {"success": True}
    db.expire_all()
    assert db.query(Transaction).filter(Transaction.category_id.isnot(None)).count() == 0
    assert client.get("/admin/mercury/rules", headers=auth_headers(admin)).json() == []


def test_rules_are_listed_by_priority(client, admin):
    category = _category(client, admin, "Supplies")
    low = _rule(client, admin, category, "VENDOR_CONTAINS", "depot", priority=1)
    high = _rule(client, admin, category, "AMOUNT_GREATER_THAN", "500", priority=9)

    rules = client.get("/admin/mercury/rules", headers=auth_headers(admin)).json()

    assert [r["id"] for r in rules] == [high, low]
    assert rules[0]["category"]["name"] == "Supplies"


def test_rule_requires_existing_category(client, admin):
    response = client.post(
        "/admin/mercury/rules",
        json={"name": "x", "conditionType": "VENDOR_CONTAINS", "conditionValue": "x", "categoryId": 999},
        headers=auth_headers(admin),
    )
    assert response.status_code == 404


def test_apply_rules_recategorizes_existing_transactions(client, db, admin, bank):
    _sync(client, admin)
    income = _category(client, admin, "Income")
    rule_id = _rule(client, admin, income, "AMOUNT_GREATER_THAN", "1000")

    applied = client.post("/admin/mercury/rules/apply", headers=auth_headers(admin))
    assert applied.json() == {"success": True, "updatedCount": 1}
    assert client.post("/admin/mercury/rules/apply", headers=auth_headers(admin)).json()["updatedCount"] == 0

    client.patch(f"/admin/mercury/rules/{rule_id}", json={"isActive": False}, headers=auth_headers(admin))
    assert client.post("/admin/mercury/rules/apply", headers=auth_headers(admin)).json()["updatedCount"] == 1

    assert client.delete(f"/admin/mercury/rules/{rule_id}", headers=auth_headers(admin)).json() == {"success": True}
    assert client.delete(f"/admin/mercury/rules/{rule_id}", headers=auth_headers(admin)).status_code == 404


def test_mercury_is_admin_only(client, customer):
    assert client.get("/admin/mercury/accounts", headers=auth_headers(customer)).status_code == 403
