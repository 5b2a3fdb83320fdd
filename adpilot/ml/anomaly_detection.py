"""
Anomaly Detection Module
Flags abnormal day-over-day moves in campaign metrics (spend, profit, MCV, CV, ROAS)
"""
import numpy as np
from typing import Dict, List, Optional, Sequence

from adpilot.config import get_settings
from adpilot.models.anomaly import SEVERITY_ORDER, AnomalyFinding, AnomalyResult, MetricSnapshot
from adpilot.models.campaign import Campaign
from adpilot.services.metric_window import MetricWindow
from adpilot.utils.helpers import calculate_percentage_change
from adpilot.utils.logger import log

settings = get_settings()

ANOMALY_METRICS = ("spend", "profit", "mcv", "cv", "roas")

# Metrics whose rise is good news rather than extra volume to pay for
_PROFIT_LIKE_METRICS = {"profit", "roas"}

_RECOMMENDATIONS = {
    ("spike", True): "Performing well. Consider increasing the budget.",
    ("spike", False): "Volume surged. Check CPA and spend pacing.",
    ("drop", True): "Returns fell sharply. Review creative and bids.",
    ("drop", False): "Delivery dropped sharply. Check creative and bids.",
}

_INSUFFICIENT_MESSAGE = "Insufficient data to judge"
_INSUFFICIENT_RECOMMENDATION = "Wait for more data to accumulate"
_NORMAL_MESSAGE = "Within normal range"
_NORMAL_RECOMMENDATION = "No action needed"


def metric_thresholds(metric_name: str) -> Dict[str, float]:
    """Per-metric detection thresholds; profit swings are judged more strictly."""
    if metric_name == "profit":
        return {
            "z_score_threshold": settings.anomaly_profit_z_score_threshold,
            "change_threshold": settings.anomaly_profit_change_threshold,
        }
    return {
        "z_score_threshold": settings.anomaly_z_score_threshold,
        "change_threshold": settings.anomaly_change_threshold,
    }


class AnomalyDetector:
    """
    Detects abnormal current values against a metric's recent history.

    Two independent tests, either of which flags an anomaly:
      - z-score of the current value against the trailing moving average
      - percent change against the previous (most recent historical) value
    """

    def __init__(
        self,
        min_data_points: Optional[int] = None,
        moving_average_window: Optional[int] = None,
    ):
        self.min_data_points = min_data_points if min_data_points is not None else settings.anomaly_min_data_points
        self.moving_average_window = moving_average_window or settings.anomaly_moving_average_window

    def detect(
        self,
        current_value: float,
        historical_values: Sequence[float],
        z_score_threshold: Optional[float] = None,
        change_threshold: Optional[float] = None,
        profit_like: bool = False,
    ) -> AnomalyResult:
        """
        Test one value against its history (oldest -> newest).

        The mean uses only the trailing moving-average window while the
        standard deviation uses the whole supplied history.
        """
        if z_score_threshold is None:
            z_score_threshold = settings.anomaly_z_score_threshold
        if change_threshold is None:
            change_threshold = settings.anomaly_change_threshold

        if len(historical_values) < self.min_data_points:
            return AnomalyResult(
                is_anomaly=False,
                kind=None,
                severity="low",
                change_percent=0.0,
                z_score=0.0,
                message=_INSUFFICIENT_MESSAGE,
                recommendation=_INSUFFICIENT_RECOMMENDATION,
            )

        mean = self.moving_average(historical_values)
        std = self.std_dev(historical_values)
        z_score = float((current_value - mean) / std) if std != 0 else 0.0
        previous_value = float(historical_values[-1])
        change_percent = calculate_percentage_change(current_value, previous_value)

        is_anomaly = False
        change_fired = False
        kind = None
        severity = "low"

        # Z-score outlier
        if abs(z_score) > z_score_threshold:
            is_anomaly = True
            kind = "spike" if z_score > 0 else "drop"
            severity = self._calculate_severity(abs(z_score), high=3, critical=4)

        # Sharp change against the previous value
        if abs(change_percent) > change_threshold:
            is_anomaly = True
            change_fired = True
            kind = "spike" if change_percent > 0 else "drop"
            change_severity = self._calculate_severity(abs(change_percent), high=75, critical=100)
            if SEVERITY_ORDER[change_severity] < SEVERITY_ORDER[severity]:
                severity = change_severity

        if not is_anomaly:
            return AnomalyResult(
                is_anomaly=False,
                kind=None,
                severity="low",
                change_percent=change_percent,
                z_score=z_score,
                message=_NORMAL_MESSAGE,
                recommendation=_NORMAL_RECOMMENDATION,
            )

        direction = "increase" if kind == "spike" else "decrease"
        if change_fired:
            message = f"Sharp {direction} detected ({change_percent:+.1f}%)"
        else:
            message = f"Sharp {direction} detected (z-score {z_score:+.1f})"

        return AnomalyResult(
            is_anomaly=True,
            kind=kind,
            severity=severity,
            change_percent=change_percent,
            z_score=z_score,
            message=message,
            recommendation=_RECOMMENDATIONS[(kind, profit_like)],
        )

    def check_metric(
        self,
        campaign_key: str,
        metric_name: str,
        current_value: float,
        historical_values: Sequence[float],
    ) -> AnomalyFinding:
        """Run detection for one campaign metric with that metric's thresholds."""
        result = self.detect(
            current_value,
            historical_values,
            profit_like=metric_name in _PROFIT_LIKE_METRICS,
            **metric_thresholds(metric_name),
        )

        return AnomalyFinding(
            campaign_key=campaign_key,
            metric_name=metric_name,
            current_value=float(current_value),
            previous_value=float(historical_values[-1]) if len(historical_values) else 0.0,
            average_7d=self.moving_average(historical_values),
            std_dev=self.std_dev(historical_values),
            is_anomaly=result.is_anomaly,
            kind=result.kind,
            severity=result.severity,
            change_percent=result.change_percent,
            z_score=result.z_score,
            message=result.message,
            recommendation=result.recommendation,
        )

    def evaluate_snapshot(self, snapshot: MetricSnapshot) -> List[AnomalyFinding]:
        """Findings (anomalous or not) for every tracked metric in the snapshot."""
        findings = []
        for metric in ANOMALY_METRICS:
            if metric not in snapshot.current:
                continue
            findings.append(self.check_metric(
                snapshot.campaign_key,
                metric,
                snapshot.current[metric],
                snapshot.historical.get(metric, []),
            ))
        return findings

    def check_campaigns(self, snapshots: Sequence[MetricSnapshot]) -> List[AnomalyFinding]:
        """
        Anomalous findings across campaigns, most severe first.

        Ties keep input order.
        """
        anomalies = [
            finding
            for snapshot in snapshots
            for finding in self.evaluate_snapshot(snapshot)
            if finding.is_anomaly
        ]
        anomalies.sort(key=lambda f: SEVERITY_ORDER[f.severity])

        log.info(f"Found {len(anomalies)} anomalies across {len(snapshots)} campaigns")
        return anomalies

    def moving_average(self, values: Sequence[float]) -> float:
        if len(values) == 0:
            return 0.0
        return float(np.mean(values[-self.moving_average_window:]))

    @staticmethod
    def std_dev(values: Sequence[float]) -> float:
        """Population standard deviation."""
        if len(values) == 0:
            return 0.0
        return float(np.std(values))

    @staticmethod
    def _calculate_severity(magnitude: float, high: float, critical: float) -> str:
        """Severity for an anomalous magnitude"""
        if magnitude > critical:
            return "critical"
        elif magnitude > high:
            return "high"
        else:
            return "medium"


def snapshot_from_campaign(campaign: Campaign) -> MetricSnapshot:
    """
    Current values from the latest record, history from every earlier one.
    """
    window = MetricWindow(campaign.records)
    latest = window.latest
    if latest is None:
        return MetricSnapshot(campaign_key=campaign.key, current={})

    return MetricSnapshot(
        campaign_key=campaign.key,
        current={metric: getattr(latest, metric) for metric in ANOMALY_METRICS},
        historical={metric: window.series(metric, skip_latest=True) for metric in ANOMALY_METRICS},
    )


def summarize_findings(findings: Sequence[AnomalyFinding]) -> Dict[str, int]:
    """Counts by severity for dashboards."""
    return {
        "total": len(findings),
        "critical": sum(1 for f in findings if f.severity == "critical"),
        "high": sum(1 for f in findings if f.severity == "high"),
        "medium": sum(1 for f in findings if f.severity == "medium"),
    }
