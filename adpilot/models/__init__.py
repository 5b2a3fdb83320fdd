"""Domain models for the judgment core."""
from adpilot.models.campaign import (
    Aggregate,
    Campaign,
    DailyRecord,
    InvalidRecordError,
    Streak,
)
from adpilot.models.override import Override, OverrideChange
from adpilot.models.judgment import (
    Classification,
    JudgmentResult,
    Reason,
    ReasonKind,
)
from adpilot.models.anomaly import AnomalyFinding, AnomalyResult, MetricSnapshot

__all__ = [
    "Aggregate",
    "Campaign",
    "DailyRecord",
    "InvalidRecordError",
    "Streak",
    "Override",
    "OverrideChange",
    "Classification",
    "JudgmentResult",
    "Reason",
    "ReasonKind",
    "AnomalyFinding",
    "AnomalyResult",
    "MetricSnapshot",
]
