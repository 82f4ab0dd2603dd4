"""Analytics service - orchestrates ingestion, anomalies, pacing and health."""

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from ..analytics import (
    CampaignHealthData,
    ProcessedCampaign,
    SkippedCampaign,
    calculate_campaign_health,
    detect_all_anomalies,
    pacing_status,
    process_campaigns,
)
from ..config.settings import AnalyticsSettings, AnomalyThresholds, load_settings
from ..ingestion import RawRowNormalizer, RejectedRow
from ..ingestion.loader import RawRows
from ..logging import get_logger
from ..models.anomaly import CampaignAnomaly


@dataclass
class AnalyticsOutput:
    """Consolidated output from one analytics run."""

    anomalies: list[CampaignAnomaly] = field(default_factory=list)
    campaigns: list[ProcessedCampaign] = field(default_factory=list)
    health: list[CampaignHealthData] = field(default_factory=list)
    skipped_pacing: list[SkippedCampaign] = field(default_factory=list)
    skipped_health: list[SkippedCampaign] = field(default_factory=list)
    delivery_rejects: list[RejectedRow] = field(default_factory=list)
    contract_rejects: list[RejectedRow] = field(default_factory=list)
    settings: AnalyticsSettings = field(default_factory=AnalyticsSettings)

    def to_summary_dict(self) -> dict[str, Any]:
        """Plain-dict summary for dashboards and logs."""
        severity_counts = Counter(str(a.severity.value) for a in self.anomalies)
        type_counts = Counter(str(a.anomaly_type) for a in self.anomalies)

        pacing = [
            {
                "campaign": c.name,
                "reference_date": c.metrics.reference_date.isoformat(),
                "current_pacing": round(c.metrics.current_pacing, 4),
                "status": pacing_status(c.metrics.current_pacing, self.settings.pacing).value,
                "remaining_impressions": round(c.metrics.remaining_impressions, 2),
                "yesterday_vs_needed": round(c.metrics.yesterday_vs_needed, 4),
            }
            for c in self.campaigns
            if c.metrics is not None
        ]

        health = [
            {
                "campaign": h.campaign_name,
                "health_score": h.health_score,
                "tier": h.tier.value,
                "roas": round(h.roas, 2),
                "ctr": round(h.ctr, 4),
                "pace": round(h.pace, 2) if h.pace is not None else None,
            }
            for h in self.health
        ]

        return {
            "anomalies": {
                "total": len(self.anomalies),
                "by_severity": dict(severity_counts),
                "by_type": dict(type_counts),
            },
            "pacing": pacing,
            "health": health,
            "skipped": {
                "pacing": [s.campaign_name for s in self.skipped_pacing],
                "health": [s.campaign_name for s in self.skipped_health],
            },
            "rejected_rows": {
                "delivery": len(self.delivery_rejects),
                "contract_terms": len(self.contract_rejects),
            },
        }


class CampaignAnalyticsService:
    """Service for running every analytics product over one dataset.

    Orchestrates:
    1. Normalization of raw delivery and contract rows
    2. Anomaly detection over all delivery
    3. Pacing per contracted campaign
    4. Health scoring from delivery, pacing and contracts

    Usage:
        service = CampaignAnalyticsService()
        output = service.run(delivery_rows, contract_rows)
        print(output.to_summary_dict())
    """

    def __init__(
        self,
        settings: AnalyticsSettings | None = None,
        settings_path: Path | None = None,
        schema_path: Path | None = None,
        log=None,
    ):
        """Initialize service with thresholds and column mapping.

        Args:
            settings: Threshold settings. Loaded from settings_path (or the
                bundled thresholds.yaml) when not given.
            settings_path: YAML file with threshold overrides
            schema_path: Path to schema_registry.yaml. Defaults to bundled config.
            log: Logger for diagnostics (defaults to the "service" logger)
        """
        self.settings = settings or load_settings(settings_path)
        self.log = log or get_logger("service")
        self.normalizer = RawRowNormalizer(schema_path, log=self.log)

    def run(
        self,
        delivery_rows: RawRows,
        contract_rows: RawRows,
        *,
        campaign_names: Iterable[str] | None = None,
        anomaly_options: Mapping[str, Any] | None = None,
        today: date | None = None,
    ) -> AnalyticsOutput:
        """Run anomalies, pacing and health over raw rows.

        Args:
            delivery_rows: Raw delivery rows (platform or internal column names)
            contract_rows: Raw contract terms rows
            campaign_names: Restrict pacing display data to these campaigns.
                Actual impressions are still summed over the full history.
            anomaly_options: UI threshold overrides (impression_threshold,
                transaction_drop_threshold, zero_transaction_days, ctr_threshold)
            today: Fallback reference date when there is no delivery data

        Returns:
            AnalyticsOutput with every product and everything skipped or rejected
        """
        delivery = self.normalizer.normalize_delivery(delivery_rows)
        contracts = self.normalizer.normalize_contract_terms(contract_rows)

        thresholds = self.settings.anomalies
        if anomaly_options:
            merged = {**vars(thresholds), **anomaly_options}
            thresholds = AnomalyThresholds.from_options(merged)

        anomalies = detect_all_anomalies(delivery.records, thresholds, log=self.log)

        display_records = delivery.records
        if campaign_names is not None:
            selected = set(campaign_names)
            display_records = [r for r in delivery.records if r.campaign_name in selected]

        campaigns, skipped_pacing = process_campaigns(
            contracts.records,
            display_records,
            unfiltered_delivery_data=delivery.records,
            today=today,
            log=self.log,
        )

        health, skipped_health = calculate_campaign_health(
            delivery.records,
            campaigns,
            contracts.records,
            self.settings.health,
            log=self.log,
        )

        self.log.info(
            "Analytics run complete: {} anomalies, {} campaigns paced, {} scored",
            len(anomalies),
            len(campaigns),
            len(health),
        )

        return AnalyticsOutput(
            anomalies=anomalies,
            campaigns=campaigns,
            health=health,
            skipped_pacing=skipped_pacing,
            skipped_health=skipped_health,
            delivery_rejects=delivery.rejected,
            contract_rejects=contracts.rejected,
            settings=self.settings,
        )
