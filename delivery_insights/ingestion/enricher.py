"""Typed analytics frames built from canonical records."""

from collections.abc import Iterable

import polars as pl

from ..models.records import DeliveryRecord

METRIC_COLUMNS = ["impressions", "clicks", "revenue", "spend", "transactions"]

DELIVERY_SCHEMA: dict[str, pl.DataType] = {
    "date": pl.Date,
    "campaign_name": pl.Utf8,
    **{col: pl.Float64 for col in METRIC_COLUMNS},
}


def to_delivery_frame(records: Iterable[DeliveryRecord]) -> pl.DataFrame:
    """Build a typed DataFrame from canonical delivery records.

    The records are read, never mutated; the frame is a fresh copy.
    """
    rows = [record.model_dump() for record in records]
    return pl.DataFrame(rows, schema=DELIVERY_SCHEMA)
