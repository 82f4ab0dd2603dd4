"""Analytics module for campaign delivery data."""

from .anomalies import (
    detect_all_anomalies,
    detect_bot_activity_anomalies,
    detect_impression_anomalies,
    detect_transaction_drop_anomalies,
    detect_zero_transaction_anomalies,
)
from .anomaly_reporting import (
    AnomalyFilters,
    anomaly_natural_key,
    anomaly_to_record,
    anomaly_type_display_name,
    filter_anomalies,
    format_anomaly_message,
    parse_stored_anomalies,
)
from .health import calculate_burn_rate, calculate_campaign_health, health_tier
from .models import (
    BurnRate,
    CampaignHealthData,
    CampaignMetrics,
    HealthTier,
    PacingStatus,
    ProcessedCampaign,
    SkippedCampaign,
)
from .pacing import calculate_campaign_metrics, pacing_status, process_campaigns, reference_date
from .timeseries import (
    aggregate_by_date,
    calculate_trends,
    fill_missing_dates,
    get_complete_date_range,
)

__all__ = [
    "AnomalyFilters",
    "BurnRate",
    "CampaignHealthData",
    "CampaignMetrics",
    "HealthTier",
    "PacingStatus",
    "ProcessedCampaign",
    "SkippedCampaign",
    "aggregate_by_date",
    "anomaly_natural_key",
    "anomaly_to_record",
    "anomaly_type_display_name",
    "calculate_burn_rate",
    "calculate_campaign_health",
    "calculate_campaign_metrics",
    "calculate_trends",
    "detect_all_anomalies",
    "detect_bot_activity_anomalies",
    "detect_impression_anomalies",
    "detect_transaction_drop_anomalies",
    "detect_zero_transaction_anomalies",
    "fill_missing_dates",
    "filter_anomalies",
    "format_anomaly_message",
    "get_complete_date_range",
    "health_tier",
    "pacing_status",
    "parse_stored_anomalies",
    "process_campaigns",
    "reference_date",
]
