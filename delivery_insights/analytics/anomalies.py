"""Rule-based anomaly detection over daily campaign delivery.

Four independent detectors, each grouping records by campaign and comparing
date-sorted days:

- impression_change: abs day-over-day impression change >= threshold %
- transaction_drop: day-over-day transaction decrease >= threshold %
- transaction_zero: run of zero-transaction days >= threshold length
- suspected_bot_activity: daily CTR % > threshold

The three comparison detectors ignore the most recent date in the whole
dataset, since that day is usually still accumulating. Bot detection keeps
it: CTR is a ratio and is meaningful on a partial day.
"""

from collections.abc import Mapping, Sequence
from typing import Any

import polars as pl

from ..config.settings import AnomalyThresholds
from ..ingestion.enricher import to_delivery_frame
from ..logging import get_logger
from ..models.anomaly import (
    AnomalySeverity,
    BotActivityAnomaly,
    BotActivityDetails,
    CampaignAnomaly,
    ChangeDetails,
    ImpressionChangeAnomaly,
    TransactionDropAnomaly,
    ZeroStreakDetails,
    ZeroTransactionAnomaly,
)
from ..models.records import DeliveryRecord
from .expressions import (
    CAMPAIGN,
    ctr_pct_expr,
    pct_change_expr,
    previous_value_expr,
    streak_ends_expr,
    streak_id_expr,
    streak_length_expr,
    tiered_severity_expr,
)

# (minimum, severity) tiers, highest first
IMPRESSION_SEVERITY_TIERS = [(50.0, "high"), (35.0, "medium")]
ZERO_STREAK_SEVERITY_TIERS = [(7, "high"), (4, "medium")]
# No "low" tier here: CTR above the base threshold but under 1.5% is still
# medium. Kept as the dashboard has always reported it.
BOT_SEVERITY_TIERS = [(5.0, "high"), (2.0, "high"), (1.5, "medium")]


# =============================================================================
# FRAME PREPARATION
# =============================================================================


def _exclude_most_recent(df: pl.DataFrame) -> pl.DataFrame:
    """Drop every row dated on the latest date in the dataset."""
    most_recent = df["date"].max()
    if most_recent is None:
        return df
    return df.filter(pl.col("date") != most_recent)


def _sort_by_campaign_date(df: pl.DataFrame) -> pl.DataFrame:
    return df.sort([CAMPAIGN, "date"], maintain_order=True)


def _day_over_day(df: pl.DataFrame, metric: str) -> pl.DataFrame:
    """Consecutive-day pairs with a non-zero previous value, plus pct_change."""
    return (
        _exclude_most_recent(df)
        .pipe(_sort_by_campaign_date)
        .with_columns(previous_value_expr(metric))
        .filter(pl.col("previous_value").is_not_null() & (pl.col("previous_value") != 0))
        .with_columns(pct_change_expr(metric))
    )


# =============================================================================
# DETECTORS (frame level)
# =============================================================================


def _impression_changes(df: pl.DataFrame, threshold_pct: float) -> list[ImpressionChangeAnomaly]:
    flagged = (
        _day_over_day(df, "impressions")
        .filter(pl.col("pct_change").abs() >= threshold_pct)
        .with_columns(
            tiered_severity_expr(pl.col("pct_change").abs(), IMPRESSION_SEVERITY_TIERS, "low")
        )
    )

    return [
        ImpressionChangeAnomaly(
            campaign_name=row[CAMPAIGN],
            date_detected=row["date"],
            severity=AnomalySeverity(row["severity"]),
            details=ChangeDetails(
                previous_value=row["previous_value"],
                current_value=row["impressions"],
                percentage_change=round(row["pct_change"], 2),
                threshold_exceeded=abs(row["pct_change"]),
            ),
        )
        for row in flagged.to_dicts()
    ]


def _transaction_drops(df: pl.DataFrame, threshold_pct: float) -> list[TransactionDropAnomaly]:
    flagged = _day_over_day(df, "transactions").filter(
        (pl.col("pct_change") < 0) & (pl.col("pct_change").abs() >= threshold_pct)
    )

    return [
        TransactionDropAnomaly(
            campaign_name=row[CAMPAIGN],
            date_detected=row["date"],
            severity=AnomalySeverity.HIGH,  # a drop this large is always severe
            details=ChangeDetails(
                previous_value=row["previous_value"],
                current_value=row["transactions"],
                percentage_change=round(row["pct_change"], 2),
                threshold_exceeded=abs(row["pct_change"]),
            ),
        )
        for row in flagged.to_dicts()
    ]


def _zero_transaction_streaks(
    df: pl.DataFrame, consecutive_days_threshold: int
) -> list[ZeroTransactionAnomaly]:
    flagged = (
        _exclude_most_recent(df)
        .pipe(_sort_by_campaign_date)
        .with_columns(streak_id_expr("transactions"), streak_ends_expr("transactions"))
        .with_columns(streak_length_expr("transactions"))
        .filter(
            (pl.col("transactions") == 0)
            & pl.col("streak_ends")
            & (pl.col("streak_length") >= consecutive_days_threshold)
        )
        .with_columns(
            tiered_severity_expr(pl.col("streak_length"), ZERO_STREAK_SEVERITY_TIERS, "low")
        )
    )

    # Dated on the last day of the streak
    return [
        ZeroTransactionAnomaly(
            campaign_name=row[CAMPAIGN],
            date_detected=row["date"],
            severity=AnomalySeverity(row["severity"]),
            details=ZeroStreakDetails(
                consecutive_days=row["streak_length"],
                threshold_exceeded=row["streak_length"],
            ),
        )
        for row in flagged.to_dicts()
    ]


def _bot_activity(df: pl.DataFrame, ctr_threshold_pct: float) -> list[BotActivityAnomaly]:
    flagged = (
        df.pipe(_sort_by_campaign_date)
        .filter(pl.col("impressions") > 0)
        .with_columns(ctr_pct_expr().alias("ctr"))
        .filter(pl.col("ctr") > ctr_threshold_pct)
        .with_columns(tiered_severity_expr(pl.col("ctr"), BOT_SEVERITY_TIERS, "medium"))
    )

    return [
        BotActivityAnomaly(
            campaign_name=row[CAMPAIGN],
            date_detected=row["date"],
            severity=AnomalySeverity(row["severity"]),
            details=BotActivityDetails(
                ctr_percentage=round(row["ctr"], 4),
                clicks=row["clicks"],
                impressions=row["impressions"],
                threshold_exceeded=ctr_threshold_pct,
            ),
        )
        for row in flagged.to_dicts()
    ]


# =============================================================================
# PUBLIC DETECTORS
# =============================================================================


def detect_impression_anomalies(
    records: Sequence[DeliveryRecord], threshold_pct: float = 20.0
) -> list[ImpressionChangeAnomaly]:
    """Flag day-over-day impression changes of at least ``threshold_pct`` percent.

    Severity: >= 50% high, >= 35% medium, else low. Pairs whose previous
    day had zero impressions are skipped.
    """
    return _impression_changes(to_delivery_frame(records), threshold_pct)


def detect_transaction_drop_anomalies(
    records: Sequence[DeliveryRecord], threshold_pct: float = 90.0
) -> list[TransactionDropAnomaly]:
    """Flag day-over-day transaction decreases of at least ``threshold_pct`` percent."""
    return _transaction_drops(to_delivery_frame(records), threshold_pct)


def detect_zero_transaction_anomalies(
    records: Sequence[DeliveryRecord], consecutive_days_threshold: int = 2
) -> list[ZeroTransactionAnomaly]:
    """Flag runs of zero-transaction days reaching ``consecutive_days_threshold``.

    One anomaly per run, dated on its last day. Severity: >= 7 days high,
    >= 4 medium, else low.
    """
    return _zero_transaction_streaks(to_delivery_frame(records), consecutive_days_threshold)


def detect_bot_activity_anomalies(
    records: Sequence[DeliveryRecord], ctr_threshold_pct: float = 1.0
) -> list[BotActivityAnomaly]:
    """Flag days whose CTR is strictly above ``ctr_threshold_pct`` percent.

    Includes the most recent date. Severity: >= 5% high, >= 2% high,
    >= 1.5% medium, else medium.
    """
    return _bot_activity(to_delivery_frame(records), ctr_threshold_pct)


def detect_all_anomalies(
    records: Sequence[DeliveryRecord],
    options: AnomalyThresholds | Mapping[str, Any] | None = None,
    *,
    log=None,
) -> list[CampaignAnomaly]:
    """Run all four detectors and merge their results.

    Args:
        records: Canonical delivery records
        options: AnomalyThresholds, or a mapping using the same option names
            (impression_threshold, transaction_drop_threshold,
            zero_transaction_days, ctr_threshold). Missing values use defaults.
        log: Logger for diagnostics (defaults to the "anomalies" logger)

    Returns:
        Anomalies sorted by date_detected, most recent first. Nothing is
        deduplicated or persisted here.
    """
    log = log or get_logger("anomalies")
    thresholds = (
        options
        if isinstance(options, AnomalyThresholds)
        else AnomalyThresholds.from_options(options)
    )

    df = to_delivery_frame(records)
    if len(df) == 0:
        log.debug("No delivery records; skipping anomaly detection")
        return []

    impression = _impression_changes(df, thresholds.impression_threshold)
    drops = _transaction_drops(df, thresholds.transaction_drop_threshold)
    zeros = _zero_transaction_streaks(df, thresholds.zero_transaction_days)
    bots = _bot_activity(df, thresholds.ctr_threshold)

    log.debug(
        "Detected {} impression, {} drop, {} zero-streak, {} bot anomalies",
        len(impression),
        len(drops),
        len(zeros),
        len(bots),
    )

    combined: list[CampaignAnomaly] = [*impression, *drops, *zeros, *bots]
    return sorted(combined, key=lambda a: a.date_detected, reverse=True)
