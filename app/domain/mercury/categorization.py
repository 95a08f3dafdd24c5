"""Rule-based transaction categorization"""

import logging
from typing import Iterable, Optional

from ...models_mercury import CategorizationRule, RuleConditionType

logger = logging.getLogger(__name__)


def rule_matches(rule: CategorizationRule, description: Optional[str], counterparty: Optional[str], amount) -> bool:
    """
    Text conditions are case-insensitive; amount conditions compare the
    absolute amount so debits and credits match the same rule.
    """
    description = (description or "").lower()
    counterparty = (counterparty or "").lower()
    value = rule.condition_value.lower()

    if rule.condition_type in (RuleConditionType.VENDOR_CONTAINS, RuleConditionType.DESCRIPTION_CONTAINS):
        return value in description or value in counterparty
    if rule.condition_type == RuleConditionType.COUNTERPARTY_EQUALS:
        return counterparty == value

    try:
        threshold = float(rule.condition_value)
    except ValueError:
        logger.warning(f"⚠️ Rule {rule.id} has a non-numeric amount '{rule.condition_value}'")
        return False

    size = abs(amount or 0)
    if rule.condition_type == RuleConditionType.AMOUNT_EQUALS:
        return size == threshold
    if rule.condition_type == RuleConditionType.AMOUNT_GREATER_THAN:
        return size > threshold
    if rule.condition_type == RuleConditionType.AMOUNT_LESS_THAN:
        return size < threshold
    return False


def categorize(
    rules: Iterable[CategorizationRule], description: Optional[str], counterparty: Optional[str], amount
) -> Optional[int]:
    """Category of the first matching rule; `rules` must already be ordered by priority"""
    for rule in rules:
        if rule_matches(rule, description, counterparty, amount):
            return rule.category_id
    return None
