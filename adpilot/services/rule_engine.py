"""
Campaign Judgment Rules

Deterministic classification of a campaign into STOP / REPLACE / CONTINUE /
CHECK from its 7-day aggregate, loss streak and the run's thresholds.

Evaluation order (first match wins):
1. STOP     - refreshed ("Re") creatives failing any failure condition
2. REPLACE  - non-refreshed creatives failing any failure condition
3. CONTINUE - any success signal
4. CHECK    - nothing matched
"""
from dataclasses import dataclass, field
from typing import List, Optional

from adpilot.config import JudgmentConfig
from adpilot.models.campaign import Aggregate
from adpilot.models.judgment import Classification, Reason, ReasonKind

# ---------------------------------------------------------------------------
# Reason templates
# ---------------------------------------------------------------------------

_REASON_TEMPLATES = {
    ReasonKind.CONSECUTIVE_LOSS: "{value:.0f} consecutive loss days (limit {threshold:.0f})",
    ReasonKind.LOSS_7DAYS_EXCEEDED: "7-day loss {value:,.0f} exceeds {threshold:,.0f}",
    ReasonKind.LOW_ROAS: "7-day ROAS {value:.1f}% below {threshold:.0f}%",
    ReasonKind.PROFIT_7DAYS_POSITIVE: "7-day profit positive ({value:,.0f})",
    ReasonKind.TODAY_PROFIT_POSITIVE: "Today's profit positive ({value:,.0f})",
    ReasonKind.ROAS_ABOVE_CONTINUE: "7-day ROAS {value:.1f}% at or above {threshold:.0f}%",
    ReasonKind.NO_RULE_MATCHED: "No stop or continue rule matched",
}


@dataclass(frozen=True)
class RuleOutcome:
    classification: Classification
    reasons: List[Reason] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def evaluate(
    is_creative_refreshed: bool,
    today_profit: float,
    aggregate: Aggregate,
    consecutive_loss_days: int,
    config: JudgmentConfig,
) -> RuleOutcome:
    """
    Classify a campaign.

    Failure conditions (STOP for refreshed, REPLACE otherwise):
        consecutive loss days >= streak limit (stop/replace limits differ),
        7-day loss at or beyond loss_threshold_7days,
        7-day ROAS below roas_threshold_stop (only once there is spend to judge).

    Success conditions (CONTINUE):
        7-day profit > 0, today's profit > 0, 7-day ROAS >= roas_threshold_continue.
    """
    if is_creative_refreshed:
        streak_limit = config.stop_re_consecutive_loss_days
        failure_class = Classification.STOP
    else:
        streak_limit = config.replace_no_re_consecutive_loss_days
        failure_class = Classification.REPLACE

    failures = _failure_reasons(aggregate, consecutive_loss_days, streak_limit, config)
    if failures:
        return RuleOutcome(failure_class, failures)

    successes = _success_reasons(aggregate, today_profit, config)
    if successes:
        return RuleOutcome(Classification.CONTINUE, successes)

    return RuleOutcome(Classification.CHECK, [Reason(ReasonKind.NO_RULE_MATCHED)])


def format_reason(reason: Reason) -> str:
    """Render a structured reason as short display text."""
    template = _REASON_TEMPLATES.get(reason.kind)
    if not template:
        return reason.kind.value
    return template.format(
        value=reason.value or 0,
        threshold=reason.threshold or 0,
    )


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------

def _failure_reasons(
    aggregate: Aggregate,
    consecutive_loss_days: int,
    streak_limit: int,
    config: JudgmentConfig,
) -> List[Reason]:
    reasons = []

    if consecutive_loss_days > 0 and consecutive_loss_days >= streak_limit:
        reasons.append(Reason(ReasonKind.CONSECUTIVE_LOSS, consecutive_loss_days, streak_limit))

    profit_7days = aggregate.total_profit
    if profit_7days < 0 and abs(profit_7days) >= config.loss_threshold_7days:
        reasons.append(Reason(ReasonKind.LOSS_7DAYS_EXCEEDED, abs(profit_7days), config.loss_threshold_7days))

    # No spend means no ROAS to judge
    if aggregate.total_spend > 0 and aggregate.roas < config.roas_threshold_stop:
        reasons.append(Reason(ReasonKind.LOW_ROAS, aggregate.roas, config.roas_threshold_stop))

    return reasons


def _success_reasons(
    aggregate: Aggregate,
    today_profit: float,
    config: JudgmentConfig,
) -> List[Reason]:
    reasons = []

    if aggregate.total_profit > 0:
        reasons.append(Reason(ReasonKind.PROFIT_7DAYS_POSITIVE, aggregate.total_profit))

    if today_profit > 0:
        reasons.append(Reason(ReasonKind.TODAY_PROFIT_POSITIVE, today_profit))

    if aggregate.roas >= config.roas_threshold_continue:
        reasons.append(Reason(ReasonKind.ROAS_ABOVE_CONTINUE, aggregate.roas, config.roas_threshold_continue))

    return reasons


def reasons_text(reasons: Optional[List[Reason]]) -> List[str]:
    return [format_reason(r) for r in reasons or []]
