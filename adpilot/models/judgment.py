"""Judgment classifications, structured reasons and per-campaign results."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from adpilot.models.override import Override


class Classification(str, Enum):
    STOP = "stop"
    REPLACE = "replace"
    CONTINUE = "continue"
    CHECK = "check"


class ReasonKind(str, Enum):
    CONSECUTIVE_LOSS = "consecutive_loss"
    LOSS_7DAYS_EXCEEDED = "loss_7days_exceeded"
    LOW_ROAS = "low_roas"
    PROFIT_7DAYS_POSITIVE = "profit_7days_positive"
    TODAY_PROFIT_POSITIVE = "today_profit_positive"
    ROAS_ABOVE_CONTINUE = "roas_above_continue"
    NO_RULE_MATCHED = "no_rule_matched"


@dataclass(frozen=True)
class Reason:
    """
    Why a rule fired.

    value carries the observed figure (streak days, 7-day profit, ROAS) and
    threshold the configured limit it was compared against.
    """
    kind: ReasonKind
    value: Optional[float] = None
    threshold: Optional[float] = None


@dataclass(frozen=True)
class JudgmentResult:
    """
    Computed judgment for one campaign.

    classification is what the rules produced; override (if any) is the
    manual reclassification in force, kept alongside so neither is lost.
    """
    campaign_key: str
    display_name: str
    media_channel: str
    today_profit: float
    profit_7days: float
    roas_7days: float
    consecutive_loss_days: int
    consecutive_profit_days: int
    classification: Classification
    reasons: List[Reason] = field(default_factory=list)
    is_creative_refreshed: bool = False
    account_name: Optional[str] = None
    override: Optional[Override] = None

    @property
    def effective_classification(self) -> Classification:
        if self.override is not None:
            return self.override.new_classification
        return self.classification

    @property
    def is_overridden(self) -> bool:
        return self.override is not None
