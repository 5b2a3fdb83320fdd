"""Anomaly detection inputs and findings."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

SEVERITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


@dataclass(frozen=True)
class AnomalyResult:
    """Outcome of testing one current value against its history."""
    is_anomaly: bool
    kind: Optional[str]  # spike, drop or None
    severity: str  # low, medium, high, critical
    change_percent: float
    z_score: float
    message: str
    recommendation: str


@dataclass
class MetricSnapshot:
    """Current metric values for a campaign with their history (oldest -> newest)."""
    campaign_key: str
    current: Dict[str, float]
    historical: Dict[str, List[float]] = field(default_factory=dict)


@dataclass(frozen=True)
class AnomalyFinding:
    campaign_key: str
    metric_name: str
    current_value: float
    previous_value: float
    average_7d: float
    std_dev: float
    is_anomaly: bool
    kind: Optional[str]
    severity: str
    change_percent: float
    z_score: float
    message: str
    recommendation: str
