"""Reusable Polars expressions for analytics calculations."""

import polars as pl

CAMPAIGN = "campaign_name"


# =============================================================================
# RATIOS
# =============================================================================


def safe_ratio_expr(numerator: pl.Expr, denominator: pl.Expr, default: float = 0.0) -> pl.Expr:
    """numerator / denominator, or ``default`` where the denominator is not positive."""
    return pl.when(denominator > 0).then(numerator / denominator).otherwise(default)


def ctr_pct_expr() -> pl.Expr:
    """Daily CTR in percent: clicks / impressions * 100."""
    return safe_ratio_expr(pl.col("clicks"), pl.col("impressions")) * 100


# =============================================================================
# DAY-OVER-DAY COMPARISON
# =============================================================================


def previous_value_expr(metric: str) -> pl.Expr:
    """Previous row's value within the same campaign (frame must be date-sorted)."""
    return pl.col(metric).shift(1).over(CAMPAIGN).alias("previous_value")


def pct_change_expr(metric: str) -> pl.Expr:
    """Day-over-day percentage change against ``previous_value``.

    Formula: (current - previous) / previous * 100
    Callers must filter out rows where previous_value is 0 or null first.
    """
    return (
        (pl.col(metric) - pl.col("previous_value")) / pl.col("previous_value") * 100
    ).alias("pct_change")


# =============================================================================
# ZERO STREAKS
# =============================================================================


def streak_id_expr(metric: str) -> pl.Expr:
    """Run identifier that increments at every non-zero value within a campaign."""
    return (pl.col(metric) != 0).cast(pl.Int64).cum_sum().over(CAMPAIGN).alias("streak_id")


def streak_length_expr(metric: str) -> pl.Expr:
    """Running count of zero values within the current run (needs ``streak_id``)."""
    return (
        (pl.col(metric) == 0)
        .cast(pl.Int64)
        .cum_sum()
        .over([CAMPAIGN, "streak_id"])
        .alias("streak_length")
    )


def streak_ends_expr(metric: str) -> pl.Expr:
    """True where the next row is missing or has a positive value."""
    next_value = pl.col(metric).shift(-1).over(CAMPAIGN)
    return (next_value.is_null() | (next_value > 0)).alias("streak_ends")


# =============================================================================
# CLASSIFICATION
# =============================================================================


def tiered_severity_expr(
    value: pl.Expr,
    tiers: list[tuple[float, str]],
    default: str,
) -> pl.Expr:
    """Map a value onto the first tier whose minimum it reaches.

    Args:
        value: Expression being classified
        tiers: (minimum, label) pairs, highest minimum first
        default: Label when no tier matches

    Returns:
        Utf8 expression named "severity"
    """
    if not tiers:
        return pl.lit(default).alias("severity")

    (first_min, first_label), *rest = tiers
    expr = pl.when(value >= first_min).then(pl.lit(first_label))
    for minimum, label in rest:
        expr = expr.when(value >= minimum).then(pl.lit(label))
    return expr.otherwise(pl.lit(default)).alias("severity")


# =============================================================================
# CAMPAIGN TOTALS
# =============================================================================


def campaign_totals_expr() -> list[pl.Expr]:
    """Expressions for per-campaign metric totals."""
    return [
        pl.col("impressions").sum().alias("impressions"),
        pl.col("clicks").sum().alias("clicks"),
        pl.col("revenue").sum().alias("revenue"),
        pl.col("spend").sum().alias("spend"),
        pl.col("transactions").sum().alias("transactions"),
        pl.len().alias("days_with_data"),
    ]


def daily_totals_expr() -> list[pl.Expr]:
    """Expressions for per-date aggregates with recomputed CTR and ROAS."""
    return [
        pl.col("impressions").sum().alias("impressions"),
        pl.col("clicks").sum().alias("clicks"),
        pl.col("revenue").sum().alias("revenue"),
        pl.col("spend").sum().alias("spend"),
        pl.col("transactions").sum().alias("transactions"),
        (safe_ratio_expr(pl.col("clicks").sum(), pl.col("impressions").sum()) * 100).alias(
            "ctr"
        ),
        safe_ratio_expr(pl.col("revenue").sum(), pl.col("spend").sum()).alias("roas"),
    ]
