"""Display, filtering and persistence helpers for detected anomalies."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from pydantic import ValidationError

from ..ingestion.validator import RejectedRow, format_validation_errors
from ..models.anomaly import (
    AnomalySeverity,
    AnomalyType,
    CampaignAnomaly,
    CampaignAnomalyAdapter,
)

ANOMALY_TYPE_DISPLAY_NAMES: dict[str, str] = {
    AnomalyType.IMPRESSION_CHANGE.value: "Impression Change",
    AnomalyType.TRANSACTION_DROP.value: "Transaction Drop",
    AnomalyType.TRANSACTION_ZERO.value: "Zero Transactions",
    AnomalyType.SUSPECTED_BOT_ACTIVITY.value: "Suspected Bot Activity",
}


def anomaly_type_display_name(anomaly_type: AnomalyType | str) -> str:
    """Human-readable name for an anomaly type."""
    key = anomaly_type.value if isinstance(anomaly_type, AnomalyType) else anomaly_type
    return ANOMALY_TYPE_DISPLAY_NAMES.get(key, "Unknown")


def format_anomaly_message(anomaly: CampaignAnomaly) -> str:
    """One-line description of an anomaly for tables and notifications."""
    details = anomaly.details

    if anomaly.anomaly_type == AnomalyType.IMPRESSION_CHANGE:
        direction = "increased" if details.percentage_change > 0 else "decreased"
        return (
            f"Impressions {direction} by {abs(details.percentage_change):g}% "
            f"({details.previous_value:,.0f} → {details.current_value:,.0f})"
        )

    if anomaly.anomaly_type == AnomalyType.TRANSACTION_DROP:
        return (
            f"Transactions dropped by {abs(details.percentage_change):g}% "
            f"({details.previous_value:g} → {details.current_value:g})"
        )

    if anomaly.anomaly_type == AnomalyType.TRANSACTION_ZERO:
        days = details.consecutive_days
        return f"Zero transactions for {days} consecutive day{'s' if days > 1 else ''}"

    if anomaly.anomaly_type == AnomalyType.SUSPECTED_BOT_ACTIVITY:
        return (
            f"CTR of {details.ctr_percentage:.2f}% "
            f"({details.clicks:,.0f} clicks / {details.impressions:,.0f} impressions) "
            f"exceeds the {details.threshold_exceeded:g}% threshold"
        )

    return "Unknown anomaly type"


# =============================================================================
# FILTERING
# =============================================================================


@dataclass
class AnomalyFilters:
    """Optional filters; None means "don't filter on this"."""

    severity: AnomalySeverity | None = None
    anomaly_type: AnomalyType | None = None
    recency_days: int | None = None  # only anomalies detected in the last N days
    include_ignored: bool = True


def filter_anomalies(
    anomalies: Iterable[CampaignAnomaly],
    filters: AnomalyFilters,
    today: date | None = None,
) -> list[CampaignAnomaly]:
    """Filter anomalies by severity, type, recency and ignored state.

    Args:
        anomalies: Detected or stored anomalies
        filters: Filter criteria
        today: Reference day for recency (defaults to date.today())

    Returns:
        Anomalies matching every set filter, in their original order.
    """
    cutoff = None
    if filters.recency_days is not None:
        cutoff = (today or date.today()) - timedelta(days=filters.recency_days)

    result = []
    for anomaly in anomalies:
        if filters.severity is not None and anomaly.severity != filters.severity:
            continue
        if filters.anomaly_type is not None and anomaly.anomaly_type != filters.anomaly_type:
            continue
        if cutoff is not None and anomaly.date_detected < cutoff:
            continue
        if not filters.include_ignored and anomaly.is_ignored:
            continue
        result.append(anomaly)
    return result


# =============================================================================
# PERSISTENCE BOUNDARY
# =============================================================================


def anomaly_natural_key(anomaly: CampaignAnomaly) -> tuple[str, str, date]:
    """(campaign_name, anomaly_type, date_detected), the upsert key used by storage."""
    return (anomaly.campaign_name, str(anomaly.anomaly_type), anomaly.date_detected)


def anomaly_to_record(anomaly: CampaignAnomaly) -> dict[str, Any]:
    """JSON-ready dict for storage; ``id`` and timestamps are omitted until assigned."""
    return anomaly.model_dump(mode="json", exclude_none=True)


def parse_stored_anomalies(
    rows: Sequence[Mapping[str, Any]],
) -> tuple[list[CampaignAnomaly], list[RejectedRow]]:
    """Validate stored rows back into their typed anomaly variants.

    A row that matches no variant is rejected with its field errors; the
    rest of the batch is still returned.

    Returns:
        Tuple of (anomalies, rejected rows)
    """
    anomalies: list[CampaignAnomaly] = []
    rejected: list[RejectedRow] = []
    for i, row in enumerate(rows):
        try:
            anomalies.append(CampaignAnomalyAdapter.validate_python(dict(row)))
        except ValidationError as e:
            rejected.append(RejectedRow(row_index=i, reason=format_validation_errors(e)))
    return anomalies, rejected
