"""
Judgment Service

Runs the daily judgment for a batch of campaigns: aggregates and streaks,
rule classification, override merge, summary tally. Anomaly detection runs
alongside on the same history but never changes a classification.

No I/O happens here; callers supply records, config and the override store.
"""
import concurrent.futures
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from adpilot.config import JudgmentConfig, get_settings
from adpilot.ml.anomaly_detection import AnomalyDetector, snapshot_from_campaign, summarize_findings
from adpilot.models.anomaly import AnomalyFinding, MetricSnapshot
from adpilot.models.campaign import Campaign
from adpilot.models.judgment import Classification, JudgmentResult
from adpilot.models.override import Override
from adpilot.services import rule_engine
from adpilot.services.metric_window import MetricWindow, calculate_streaks
from adpilot.services.naming import CreativeRefreshPredicate, MarkerRefreshPredicate
from adpilot.services.override_store import OverrideStore
from adpilot.utils.logger import log

CANCELLED_ERROR = "cancelled: batch timeout"


@dataclass(frozen=True)
class CampaignError:
    """A campaign skipped by the batch, with the reason."""
    campaign_key: str
    error: str


@dataclass
class JudgmentBatch:
    """Results in input order, plus campaigns that could not be judged."""
    results: List[JudgmentResult] = field(default_factory=list)
    errors: List[CampaignError] = field(default_factory=list)
    summary: Dict[str, int] = field(default_factory=dict)


def summarize(results: Sequence[JudgmentResult]) -> Dict[str, int]:
    """Counts per effective (override-aware) classification."""
    counts = {c.value: 0 for c in Classification}
    for result in results:
        counts[result.effective_classification.value] += 1
    counts["total"] = len(results)
    return counts


class JudgmentService:
    """
    Composition root for the judgment core.
    """

    def __init__(
        self,
        config: Optional[JudgmentConfig] = None,
        override_store: Optional[OverrideStore] = None,
        detector: Optional[AnomalyDetector] = None,
        refresh_predicate: Optional[CreativeRefreshPredicate] = None,
        window_days: Optional[int] = None,
        max_workers: Optional[int] = None,
    ):
        settings = get_settings()
        self.config = config or JudgmentConfig.from_settings(settings)
        self.override_store = override_store or OverrideStore()
        self.detector = detector or AnomalyDetector()
        self.refresh_predicate = refresh_predicate or MarkerRefreshPredicate()
        self.window_days = window_days or settings.judgment_window_days
        self.max_workers = max_workers or settings.judgment_max_workers

    # ==================== JUDGMENT ====================

    def compute(self, campaign: Campaign) -> JudgmentResult:
        """Rule-based judgment for one campaign, before overrides."""
        window = MetricWindow(campaign.records)
        aggregate = window.last_n_days(self.window_days)
        streak = calculate_streaks(window)
        is_refreshed = bool(self.refresh_predicate(campaign.display_name))
        today_profit = window.today_profit

        outcome = rule_engine.evaluate(
            is_creative_refreshed=is_refreshed,
            today_profit=today_profit,
            aggregate=aggregate,
            consecutive_loss_days=streak.loss_days,
            config=self.config,
        )

        return JudgmentResult(
            campaign_key=campaign.key,
            display_name=campaign.display_name,
            media_channel=campaign.media_channel,
            today_profit=today_profit,
            profit_7days=aggregate.total_profit,
            roas_7days=aggregate.roas,
            consecutive_loss_days=streak.loss_days,
            consecutive_profit_days=streak.profit_days,
            classification=outcome.classification,
            reasons=outcome.reasons,
            is_creative_refreshed=is_refreshed,
            account_name=campaign.account_name,
        )

    def judge(self, campaign: Campaign) -> JudgmentResult:
        """Judgment for one campaign with any active override attached."""
        return self.override_store.apply(self.compute(campaign))

    def judge_all(
        self,
        campaigns: Sequence[Campaign],
        timeout: Optional[float] = None,
    ) -> JudgmentBatch:
        """
        Judge a batch in parallel, keeping input order.

        A campaign whose records fail validation is reported in errors and
        the rest of the batch continues. Campaigns still pending when the
        timeout elapses are cancelled and reported the same way.
        """
        log.info(f"Judging {len(campaigns)} campaigns")

        outcomes: List[Optional[JudgmentResult]] = [None] * len(campaigns)
        errors: Dict[int, CampaignError] = {}

        executor = concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = {
                executor.submit(self.judge, campaign): index
                for index, campaign in enumerate(campaigns)
            }
            done, not_done = concurrent.futures.wait(futures, timeout=timeout)

            for future in not_done:
                future.cancel()
                index = futures[future]
                errors[index] = CampaignError(campaigns[index].key, CANCELLED_ERROR)

            for future in done:
                index = futures[future]
                try:
                    outcomes[index] = future.result()
                except ValueError as e:
                    log.warning(f"Skipping campaign {campaigns[index].key}: {e}")
                    errors[index] = CampaignError(campaigns[index].key, str(e))
        finally:
            executor.shutdown(wait=timeout is None, cancel_futures=True)

        if any(e.error == CANCELLED_ERROR for e in errors.values()):
            log.warning(f"Judgment batch timed out after {timeout}s")

        results = [r for r in outcomes if r is not None]
        summary = summarize(results)
        log.info(
            f"Judgment done: {summary['stop']} stop, {summary['replace']} replace, "
            f"{summary['continue']} continue, {summary['check']} check, {len(errors)} skipped"
        )
        return JudgmentBatch(
            results=results,
            errors=[errors[i] for i in sorted(errors)],
            summary=summary,
        )

    # ==================== OVERRIDES ====================

    def override(
        self,
        result: JudgmentResult,
        new_classification: Classification,
        memo: Optional[str] = None,
    ) -> Optional[Override]:
        """Manually reclassify a judged campaign for the rest of the day."""
        return self.override_store.set(
            result.campaign_key,
            result.classification,
            new_classification,
            memo=memo,
        )

    # ==================== ANOMALIES ====================

    def detect_anomalies(self, snapshots: Sequence[MetricSnapshot]) -> List[AnomalyFinding]:
        """Anomalous metrics across campaigns, most severe first."""
        return self.detector.check_campaigns(snapshots)

    def detect_campaign_anomalies(self, campaigns: Sequence[Campaign]) -> List[AnomalyFinding]:
        """Anomalies from each campaign's own history (latest day vs earlier days)."""
        snapshots = []
        for campaign in campaigns:
            try:
                snapshots.append(snapshot_from_campaign(campaign))
            except ValueError as e:
                log.warning(f"Skipping anomaly check for {campaign.key}: {e}")

        findings = self.detect_anomalies(snapshots)
        counts = summarize_findings(findings)
        log.info(f"Anomalies: {counts['critical']} critical, {counts['high']} high, {counts['medium']} medium")
        return findings
