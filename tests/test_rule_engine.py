"""
Judgment rule precedence and reason tests.

Guards against:
1. A stale positive 7-day aggregate masking a deteriorating loss streak
2. Refreshed creatives judged on the non-refreshed streak limit (and vice versa)
3. Zero-spend campaigns flagged for low ROAS
"""
from adpilot.config import JudgmentConfig
from adpilot.models.campaign import Aggregate
from adpilot.models.judgment import Classification, Reason, ReasonKind
from adpilot.services.rule_engine import evaluate, format_reason, reasons_text

CONFIG = JudgmentConfig(
    stop_re_consecutive_loss_days=2,
    replace_no_re_consecutive_loss_days=3,
    loss_threshold_7days=40000,
    roas_threshold_stop=105,
    roas_threshold_continue=110,
)


def _agg(spend, revenue, days=7):
    return Aggregate(
        total_spend=spend,
        total_revenue=revenue,
        total_profit=revenue - spend,
        roas=revenue / spend * 100 if spend else 0,
        days_counted=days,
    )


def _kinds(outcome):
    return [r.kind for r in outcome.reasons]


# ---------------------------------------------------------------------------
# REPLACE (non-refreshed)
# ---------------------------------------------------------------------------

def test_replace_with_all_three_reasons():
    """Streak 3 >= 3, 7-day loss 50k >= 40k, ROAS 90 < 105."""
    outcome = evaluate(False, -1000, _agg(500000, 450000), 3, CONFIG)
    assert outcome.classification == Classification.REPLACE
    assert _kinds(outcome) == [
        ReasonKind.CONSECUTIVE_LOSS,
        ReasonKind.LOSS_7DAYS_EXCEEDED,
        ReasonKind.LOW_ROAS,
    ]
    assert outcome.reasons[0] == Reason(ReasonKind.CONSECUTIVE_LOSS, 3, 3)


def test_non_refreshed_uses_replace_streak_limit():
    """2 loss days is enough to stop a refreshed creative but not to replace a fresh one."""
    outcome = evaluate(False, -100, _agg(100000, 120000), 2, CONFIG)
    assert outcome.classification == Classification.CONTINUE


def test_non_refreshed_never_stops():
    outcome = evaluate(False, -100, _agg(100000, 10000), 10, CONFIG)
    assert outcome.classification == Classification.REPLACE


# ---------------------------------------------------------------------------
# STOP (refreshed) and precedence
# ---------------------------------------------------------------------------

def test_stop_beats_continue_signals():
    """Refreshed, streak at limit, but 7-day profit and ROAS look healthy."""
    outcome = evaluate(True, -500, _agg(100000, 130000), 2, CONFIG)
    assert outcome.classification == Classification.STOP
    assert _kinds(outcome) == [ReasonKind.CONSECUTIVE_LOSS]


def test_refreshed_never_replaced():
    outcome = evaluate(True, -100, _agg(500000, 450000), 5, CONFIG)
    assert outcome.classification == Classification.STOP
    assert len(outcome.reasons) == 3


def test_loss_threshold_is_inclusive():
    outcome = evaluate(True, 100, _agg(200000, 160000), 0, CONFIG)
    # 7-day profit exactly -40,000; ROAS 80 also below stop
    assert ReasonKind.LOSS_7DAYS_EXCEEDED in _kinds(outcome)


def test_low_roas_alone_stops_refreshed():
    outcome = evaluate(True, 10, _agg(100000, 100000), 0, CONFIG)
    assert outcome.classification == Classification.STOP
    assert _kinds(outcome) == [ReasonKind.LOW_ROAS]


# ---------------------------------------------------------------------------
# CONTINUE and CHECK
# ---------------------------------------------------------------------------

def test_continue_with_three_reasons():
    agg = Aggregate(total_spend=66667, total_revenue=86667, total_profit=20000, roas=130, days_counted=7)
    outcome = evaluate(True, 500, agg, 0, CONFIG)
    assert outcome.classification == Classification.CONTINUE
    assert _kinds(outcome) == [
        ReasonKind.PROFIT_7DAYS_POSITIVE,
        ReasonKind.TODAY_PROFIT_POSITIVE,
        ReasonKind.ROAS_ABOVE_CONTINUE,
    ]


def test_continue_on_today_profit_only():
    agg = Aggregate(total_spend=1000, total_revenue=1080, total_profit=-20, roas=108, days_counted=7)
    outcome = evaluate(False, 50, agg, 0, CONFIG)
    assert outcome.classification == Classification.CONTINUE
    assert _kinds(outcome) == [ReasonKind.TODAY_PROFIT_POSITIVE]


def test_all_zero_history_falls_through_to_check():
    outcome = evaluate(False, 0, Aggregate(), 0, CONFIG)
    assert outcome.classification == Classification.CHECK
    assert outcome.reasons == [Reason(ReasonKind.NO_RULE_MATCHED)]


def test_flat_performance_is_check():
    """ROAS between the stop and continue thresholds, nothing positive."""
    agg = Aggregate(total_spend=10000, total_revenue=10700, total_profit=0, roas=107, days_counted=7)
    outcome = evaluate(False, 0, agg, 0, CONFIG)
    assert outcome.classification == Classification.CHECK


def test_evaluate_is_deterministic():
    args = (True, -10, _agg(80000, 70000), 1, CONFIG)
    assert evaluate(*args) == evaluate(*args)


# ---------------------------------------------------------------------------
# Reason rendering
# ---------------------------------------------------------------------------

def test_format_reason_includes_values():
    assert format_reason(Reason(ReasonKind.CONSECUTIVE_LOSS, 3, 2)) == "3 consecutive loss days (limit 2)"
    assert format_reason(Reason(ReasonKind.LOSS_7DAYS_EXCEEDED, 50000, 40000)) == "7-day loss 50,000 exceeds 40,000"
    assert "90.0%" in format_reason(Reason(ReasonKind.LOW_ROAS, 90, 105))


def test_reasons_text_handles_none():
    assert reasons_text(None) == []
    assert reasons_text([Reason(ReasonKind.NO_RULE_MATCHED)]) == ["No stop or continue rule matched"]
