"""Tests for the rule engine."""

import logging

from watchlist.models import (
    ActionType,
    ConditionOperator,
    EventType,
    LogicalOperator,
    MatchLevel,
    ScreeningAction,
    ScreeningCondition,
    ScreeningRule,
    WatchlistType,
)
from watchlist.screening.rule_engine import apply_rules, evaluate_condition, evaluate_rule
from tests.conftest import make_match, make_request


def cond(field, operator, value, case_sensitive=False, logical=LogicalOperator.AND):
    return ScreeningCondition(
        field=field,
        operator=operator,
        value=value,
        case_sensitive=case_sensitive,
        logical_operator=logical,
    )


def rule(
    rule_id="r1",
    conditions=None,
    actions=None,
    watchlist_types=None,
    priority=1,
    is_active=True,
):
    return ScreeningRule(
        id=rule_id,
        name=rule_id,
        watchlist_types=watchlist_types or [],
        conditions=conditions or [],
        actions=[ScreeningAction(type=a) for a in (actions or [ActionType.REQUIRE_REVIEW])],
        priority=priority,
        is_active=is_active,
    )


EXACT = cond("matchLevel", ConditionOperator.EQUALS, "exact")
HIGH = cond("matchLevel", ConditionOperator.EQUALS, "high")


class TestEvaluateCondition:
    def test_equals_case_insensitive(self):
        assert evaluate_condition("John Doe", cond("name", ConditionOperator.EQUALS, "JOHN DOE"))

    def test_equals_case_sensitive(self):
        assert not evaluate_condition(
            "John Doe", cond("name", ConditionOperator.EQUALS, "JOHN DOE", case_sensitive=True)
        )

    def test_contains(self):
        assert evaluate_condition("John Doe", cond("name", ConditionOperator.CONTAINS, "doe"))

    def test_starts_with(self):
        assert evaluate_condition("John Doe", cond("name", ConditionOperator.STARTS_WITH, "john"))

    def test_ends_with(self):
        assert evaluate_condition("John Doe", cond("name", ConditionOperator.ENDS_WITH, "DOE"))
        assert not evaluate_condition("John Doe", cond("name", ConditionOperator.ENDS_WITH, "john"))

    def test_regex_case_insensitive(self):
        assert evaluate_condition("John Doe", cond("name", ConditionOperator.REGEX, r"^j\w+ d"))

    def test_regex_case_sensitive(self):
        assert not evaluate_condition(
            "John Doe", cond("name", ConditionOperator.REGEX, r"^j", case_sensitive=True)
        )

    def test_invalid_regex_is_false(self):
        assert not evaluate_condition("John Doe", cond("name", ConditionOperator.REGEX, "(unclosed"))

    def test_greater_than(self):
        assert evaluate_condition("0.92", cond("confidenceScore", ConditionOperator.GREATER_THAN, "0.9"))
        assert not evaluate_condition("0.85", cond("confidenceScore", ConditionOperator.GREATER_THAN, "0.9"))

    def test_less_than(self):
        assert evaluate_condition("0.5", cond("confidenceScore", ConditionOperator.LESS_THAN, "0.6"))

    def test_numeric_operator_on_text_is_false(self):
        assert not evaluate_condition("high", cond("matchLevel", ConditionOperator.GREATER_THAN, "0.5"))


class TestEvaluateRule:
    def test_single_condition(self):
        assert evaluate_rule(rule(conditions=[EXACT]), make_match(level=MatchLevel.EXACT), make_request())

    def test_all_conditions_must_hold(self):
        r = rule(conditions=[EXACT, cond("name", ConditionOperator.CONTAINS, "smith")])
        assert not evaluate_rule(r, make_match(level=MatchLevel.EXACT), make_request(name="John Doe"))
        assert evaluate_rule(r, make_match(level=MatchLevel.EXACT), make_request(name="Jane Smith"))

    def test_or_condition(self):
        r = rule(conditions=[EXACT, cond("matchLevel", ConditionOperator.EQUALS, "high", logical=LogicalOperator.OR)])
        assert evaluate_rule(r, make_match(level=MatchLevel.HIGH), make_request())
        assert evaluate_rule(r, make_match(level=MatchLevel.EXACT), make_request())
        assert not evaluate_rule(r, make_match(level=MatchLevel.MEDIUM), make_request())

    def test_and_binds_tighter_than_or(self):
        """EXACT or (HIGH and name contains 'smith')."""
        r = rule(conditions=[
            EXACT,
            cond("matchLevel", ConditionOperator.EQUALS, "high", logical=LogicalOperator.OR),
            cond("name", ConditionOperator.CONTAINS, "smith"),
        ])
        assert evaluate_rule(r, make_match(level=MatchLevel.EXACT), make_request(name="John Doe"))
        assert not evaluate_rule(r, make_match(level=MatchLevel.HIGH), make_request(name="John Doe"))
        assert evaluate_rule(r, make_match(level=MatchLevel.HIGH), make_request(name="Jane Smith"))

    def test_first_condition_logical_operator_ignored(self):
        first_or = cond("matchLevel", ConditionOperator.EQUALS, "exact", logical=LogicalOperator.OR)
        r = rule(conditions=[first_or, cond("name", ConditionOperator.CONTAINS, "smith")])
        assert not evaluate_rule(r, make_match(level=MatchLevel.EXACT), make_request(name="John Doe"))

    def test_unknown_field_never_matches(self):
        r = rule(conditions=[cond("passportNumber", ConditionOperator.CONTAINS, "")])
        assert not evaluate_rule(r, make_match(), make_request())

    def test_confidence_serialized_for_comparison(self):
        r = rule(conditions=[cond("confidenceScore", ConditionOperator.EQUALS, "0.85")])
        assert evaluate_rule(r, make_match(confidence=0.85), make_request())

    def test_watchlist_type_filter(self):
        r = rule(conditions=[EXACT], watchlist_types=[WatchlistType.PEP])
        assert not evaluate_rule(r, make_match(level=MatchLevel.EXACT, list_type=WatchlistType.SANCTIONS), make_request())
        assert evaluate_rule(r, make_match(level=MatchLevel.EXACT, list_type=WatchlistType.PEP), make_request())

    def test_no_conditions_matches_everything(self):
        assert evaluate_rule(rule(conditions=[]), make_match(level=MatchLevel.LOW), make_request())

    def test_list_type_and_provider_fields(self):
        r = rule(conditions=[
            cond("listType", ConditionOperator.EQUALS, "sanctions"),
            cond("sourceProvider", ConditionOperator.EQUALS, "ofac"),
        ])
        assert evaluate_rule(r, make_match(), make_request())

    def test_request_fields(self):
        r = rule(conditions=[
            cond("entityType", ConditionOperator.EQUALS, "individual"),
            cond("nationality", ConditionOperator.EQUALS, "us"),
        ])
        assert evaluate_rule(r, make_match(), make_request(nationality="US"))
        assert not evaluate_rule(r, make_match(), make_request(nationality=None))


class TestApplyRules:
    def test_require_review_sets_flag(self):
        match = make_match(level=MatchLevel.EXACT)
        apply_rules([rule(conditions=[EXACT])], [match], make_request())
        assert match.requires_manual_review is True

    def test_block_sets_flag(self):
        match = make_match(level=MatchLevel.EXACT)
        apply_rules([rule(conditions=[EXACT], actions=[ActionType.BLOCK])], [match], make_request())
        assert match.requires_manual_review is True

    def test_flag_is_noop(self):
        match = make_match(level=MatchLevel.EXACT)
        matches, events = apply_rules(
            [rule(conditions=[EXACT], actions=[ActionType.FLAG])], [match], make_request()
        )
        assert match.requires_manual_review is False
        assert events == []

    def test_notify_emits_event_without_changing_match(self):
        match = make_match(level=MatchLevel.EXACT)
        _, events = apply_rules(
            [rule(rule_id="notify-exact", conditions=[EXACT], actions=[ActionType.NOTIFY])],
            [match],
            make_request(),
        )
        assert match.requires_manual_review is False
        assert len(events) == 1
        assert events[0].type == EventType.RULE_ACTION_TRIGGERED
        assert events[0].match_id == match.id
        assert events[0].payload["rule_id"] == "notify-exact"
        assert events[0].payload["action"] == "notify"

    def test_log_action_writes_log_record(self, caplog):
        match = make_match(level=MatchLevel.EXACT)
        with caplog.at_level(logging.INFO, logger="watchlist.screening.rule_engine"):
            _, events = apply_rules(
                [rule(rule_id="log-exact", conditions=[EXACT], actions=[ActionType.LOG])],
                [match],
                make_request(),
            )
        assert len(events) == 1
        assert "log-exact" in caplog.text

    def test_level_and_confidence_untouched(self):
        match = make_match(level=MatchLevel.EXACT, confidence=0.97)
        apply_rules([rule(conditions=[EXACT], actions=[ActionType.BLOCK])], [match], make_request())
        assert match.match_level == MatchLevel.EXACT
        assert match.confidence_score == 0.97

    def test_inactive_rule_ignored(self):
        match = make_match(level=MatchLevel.EXACT)
        apply_rules([rule(conditions=[EXACT], is_active=False)], [match], make_request())
        assert match.requires_manual_review is False

    def test_rules_run_in_priority_order(self):
        late = rule(rule_id="late", conditions=[EXACT], actions=[ActionType.NOTIFY], priority=5)
        early = rule(rule_id="early", conditions=[EXACT], actions=[ActionType.NOTIFY], priority=1)
        _, events = apply_rules([late, early], [make_match(level=MatchLevel.EXACT)], make_request())
        assert [e.payload["rule_id"] for e in events] == ["early", "late"]

    def test_equal_priority_keeps_declaration_order(self):
        first = rule(rule_id="first", conditions=[EXACT], actions=[ActionType.NOTIFY], priority=1)
        second = rule(rule_id="second", conditions=[EXACT], actions=[ActionType.NOTIFY], priority=1)
        _, events = apply_rules([first, second], [make_match(level=MatchLevel.EXACT)], make_request())
        assert [e.payload["rule_id"] for e in events] == ["first", "second"]

    def test_only_matching_matches_affected(self):
        exact = make_match(level=MatchLevel.EXACT, match_id="m-exact")
        high = make_match(level=MatchLevel.HIGH, match_id="m-high")
        apply_rules([rule(conditions=[EXACT])], [exact, high], make_request())
        assert exact.requires_manual_review is True
        assert high.requires_manual_review is False

    def test_idempotent(self):
        rules = [
            rule(rule_id="a", conditions=[EXACT], actions=[ActionType.BLOCK]),
            rule(rule_id="b", conditions=[HIGH], actions=[ActionType.REQUIRE_REVIEW], priority=2),
        ]
        matches = [
            make_match(level=MatchLevel.EXACT, match_id="m1"),
            make_match(level=MatchLevel.HIGH, match_id="m2"),
            make_match(level=MatchLevel.LOW, match_id="m3"),
        ]
        apply_rules(rules, matches, make_request())
        first_pass = [m.requires_manual_review for m in matches]
        apply_rules(rules, matches, make_request())
        assert [m.requires_manual_review for m in matches] == first_pass == [True, True, False]

    def test_returns_same_match_list(self):
        matches = [make_match()]
        returned, _ = apply_rules([], matches, make_request())
        assert returned is matches
