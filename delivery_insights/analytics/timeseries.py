"""Daily series for charts: per-date aggregation, gap filling and trends."""

from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from typing import Any

import polars as pl

from ..dates import calculate_percent_change, get_complete_date_range, parse_date
from ..ingestion.enricher import METRIC_COLUMNS, to_delivery_frame
from ..models.records import DeliveryRecord
from .expressions import CAMPAIGN, daily_totals_expr

__all__ = [
    "aggregate_by_date",
    "calculate_trends",
    "fill_missing_dates",
    "get_complete_date_range",
]

TREND_METRICS = [*METRIC_COLUMNS, "ctr", "roas"]


def aggregate_by_date(
    records: Sequence[DeliveryRecord],
    campaign_names: Iterable[str] | None = None,
) -> list[dict[str, Any]]:
    """Sum delivery per date, with CTR (%) and ROAS recomputed from the sums.

    Args:
        records: Delivery records
        campaign_names: Only include these campaigns (default: all)

    Returns:
        One point per date with data, oldest first.
    """
    df = to_delivery_frame(records)
    if campaign_names is not None:
        df = df.filter(pl.col(CAMPAIGN).is_in(list(campaign_names)))

    return df.group_by("date").agg(daily_totals_expr()).sort("date").to_dicts()


def _is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def fill_missing_dates(
    series: Sequence[Mapping[str, Any]],
    complete_date_range: Sequence[date],
    date_key: str = "date",
) -> list[dict[str, Any]]:
    """Fill internal date gaps in a sparse series with zero-valued points.

    Only dates between the series' own first and last date are emitted.
    Range dates before the first point or after the last are dropped, so a
    chart never shows a flat zero line before launch or after the latest data.

    Args:
        series: Points with a date under ``date_key`` plus metric fields
        complete_date_range: Every calendar date of interest, ascending
        date_key: Key holding each point's date (date or parseable string)

    Returns:
        Points in range order, each with its ``date_key`` as a ``date``.
        Existing points keep their other fields (the last one wins when two
        share a date); synthesized points carry 0 for every numeric field
        seen in the series.
    """
    by_date: dict[date, Mapping[str, Any]] = {}
    numeric_fields: list[str] = []
    for point in series:
        day = parse_date(point.get(date_key))
        if day is None:
            continue
        by_date[day] = point
        for key, value in point.items():
            if key != date_key and _is_numeric(value) and key not in numeric_fields:
                numeric_fields.append(key)

    if not by_date:
        return []

    first, last = min(by_date), max(by_date)

    filled = []
    for day in complete_date_range:
        if not first <= day <= last:
            continue
        existing = by_date.get(day)
        if existing is not None:
            filled.append({**existing, date_key: day})
        else:
            filled.append({date_key: day, **{key: 0 for key in numeric_fields}})
    return filled


def calculate_trends(
    series: Sequence[Mapping[str, Any]],
    metrics: Sequence[str] | None = None,
) -> dict[str, float]:
    """Percent change of the last point against the one before it, per metric.

    Returns 0 for every metric when the series has fewer than two points.
    """
    metrics = list(metrics) if metrics is not None else TREND_METRICS
    if len(series) < 2:
        return {metric: 0.0 for metric in metrics}

    previous, current = series[-2], series[-1]
    return {
        metric: calculate_percent_change(
            float(current.get(metric) or 0), float(previous.get(metric) or 0)
        )
        for metric in metrics
    }
