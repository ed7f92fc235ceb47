"""Declarative rule evaluation over produced matches.

Rules run in ascending priority order (declaration order breaks ties) and
only against matches whose list type the rule targets. A rule's conditions
form a boolean expression: each condition after the first is joined to the
previous one by its logical operator, with AND binding tighter than OR.
When all conditions default to AND this is a plain conjunction.

Actions never change a match's level or confidence:
  - block / require_review -> mark the match for manual review
  - notify / log           -> publish a rule_action_triggered event
  - flag                   -> nothing (being in the result is the flag)

Applying the same rules twice gives the same dispositions.
"""

import logging
import re
from typing import Optional

from watchlist.models import (
    ActionType,
    ConditionOperator,
    EventType,
    LogicalOperator,
    ScreeningCondition,
    ScreeningEvent,
    ScreeningMatch,
    ScreeningRequest,
    ScreeningRule,
)

logger = logging.getLogger(__name__)


def _resolve_field(
    field: str,
    match: ScreeningMatch,
    request: ScreeningRequest,
) -> Optional[str]:
    """Return the string value a condition field refers to, or None if unknown."""
    if field == "name":
        return request.name
    if field == "entityType":
        return request.entity_type.value
    if field == "nationality":
        return request.nationality or ""
    if field == "matchLevel":
        return match.match_level.value
    if field == "confidenceScore":
        return str(match.confidence_score)
    if field == "listType":
        return match.list_type.value
    if field == "sourceProvider":
        return match.source_provider.value
    return None


def _to_float(value: str) -> Optional[float]:
    try:
        return float(value)
    except ValueError:
        return None


def evaluate_condition(value: str, condition: ScreeningCondition) -> bool:
    """Test a resolved field value against a single condition."""
    operator = condition.operator

    if operator in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN):
        left = _to_float(value)
        right = _to_float(condition.value)
        if left is None or right is None:
            return False
        if operator == ConditionOperator.GREATER_THAN:
            return left > right
        return left < right

    if operator == ConditionOperator.REGEX:
        flags = 0 if condition.case_sensitive else re.IGNORECASE
        try:
            return re.search(condition.value, value, flags) is not None
        except re.error:
            logger.warning("Invalid regex in rule condition: %r", condition.value)
            return False

    subject = value if condition.case_sensitive else value.lower()
    expected = condition.value if condition.case_sensitive else condition.value.lower()

    if operator == ConditionOperator.EQUALS:
        return subject == expected
    if operator == ConditionOperator.CONTAINS:
        return expected in subject
    if operator == ConditionOperator.STARTS_WITH:
        return subject.startswith(expected)
    if operator == ConditionOperator.ENDS_WITH:
        return subject.endswith(expected)
    return False


def evaluate_rule(
    rule: ScreeningRule,
    match: ScreeningMatch,
    request: ScreeningRequest,
) -> bool:
    """Decide whether a rule fires for one match.

    The condition list is split into OR-separated groups; the rule fires
    when every condition of at least one group holds. A rule without
    conditions fires for every match of the types it targets.
    """
    if rule.watchlist_types and match.list_type not in rule.watchlist_types:
        return False
    if not rule.conditions:
        return True

    groups: list[list[ScreeningCondition]] = [[]]
    for index, condition in enumerate(rule.conditions):
        if index > 0 and condition.logical_operator == LogicalOperator.OR:
            groups.append([])
        groups[-1].append(condition)

    for group in groups:
        group_holds = True
        for condition in group:
            value = _resolve_field(condition.field, match, request)
            if value is None or not evaluate_condition(value, condition):
                group_holds = False
                break
        if group_holds:
            return True
    return False


def _apply_actions(
    rule: ScreeningRule,
    match: ScreeningMatch,
    request: ScreeningRequest,
) -> list[ScreeningEvent]:
    events: list[ScreeningEvent] = []
    for action in rule.actions:
        if action.type in (ActionType.BLOCK, ActionType.REQUIRE_REVIEW):
            match.requires_manual_review = True
        elif action.type in (ActionType.NOTIFY, ActionType.LOG):
            if action.type == ActionType.LOG:
                logger.info("Rule %s triggered for match %s", rule.id, match.id)
            events.append(
                ScreeningEvent(
                    type=EventType.RULE_ACTION_TRIGGERED,
                    request_id=request.id,
                    entity_id=match.entity_id,
                    match_id=match.id,
                    payload={
                        "rule_id": rule.id,
                        "action": action.type.value,
                        "parameters": action.parameters,
                    },
                )
            )
        # FLAG: matches are flagged simply by being part of the result
    return events


def apply_rules(
    rules: list[ScreeningRule],
    matches: list[ScreeningMatch],
    request: ScreeningRequest,
) -> tuple[list[ScreeningMatch], list[ScreeningEvent]]:
    """Run every active rule over every match.

    Args:
        rules: Configured rules; inactive ones are ignored.
        matches: Matches produced for the request; updated in place.
        request: The request the matches belong to.

    Returns:
        Tuple of (matches, events raised by notify/log actions).
    """
    active = sorted((r for r in rules if r.is_active), key=lambda r: r.priority)
    events: list[ScreeningEvent] = []

    for rule in active:
        for match in matches:
            if evaluate_rule(rule, match, request):
                events.extend(_apply_actions(rule, match, request))

    return matches, events
