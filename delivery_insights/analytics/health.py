"""Composite campaign health scoring.

Five independent sub-scores are combined into a weighted 0-10 score:

    ROAS (40%) + delivery pacing (30%) + burn rate (15%) + CTR (10%)
    + overspend (5%, scored 0-5 and doubled)

A sub-score whose inputs are unavailable counts as 0; the campaign still
gets a (lower) score.
"""

from collections.abc import Mapping, Sequence
from typing import Any

import polars as pl

from ..config.settings import HealthThresholds
from ..exceptions import DeliveryInsightsError
from ..ingestion.enricher import to_delivery_frame
from ..logging import get_logger
from ..models.records import ContractTerms, DeliveryRecord
from .expressions import CAMPAIGN, campaign_totals_expr
from .models import (
    BurnRate,
    CampaignHealthData,
    CampaignMetrics,
    HealthTier,
    ProcessedCampaign,
    SkippedCampaign,
)
from .pacing import campaign_name_of, coerce_contract_terms

# =============================================================================
# SUB-SCORES
# =============================================================================


def roas_score(roas: float, thresholds: HealthThresholds | None = None) -> float:
    """Score ROAS against descending minimum bands; any positive ROAS earns something."""
    thresholds = thresholds or HealthThresholds()
    for minimum, score in thresholds.roas_bands:
        if roas >= minimum:
            return score
    if roas > 0:
        return thresholds.roas_positive_score
    return 0.0


def _banded_score(
    value: float, bands: Sequence[tuple[float, float, float]], fallback: float
) -> float:
    for low, high, score in bands:
        if low <= value <= high:
            return score
    return fallback


def delivery_pacing_score(
    actual_impressions: float,
    expected_impressions: float,
    thresholds: HealthThresholds | None = None,
) -> float:
    """Score delivered vs expected impressions; 0 when nothing is expected yet."""
    thresholds = thresholds or HealthThresholds()
    if expected_impressions <= 0:
        return 0.0
    pace_pct = actual_impressions / expected_impressions * 100
    return _banded_score(pace_pct, thresholds.pacing_bands, thresholds.pacing_fallback_score)


def burn_rate_score(
    burn_rate: BurnRate,
    required_daily_impressions: float,
    thresholds: HealthThresholds | None = None,
) -> float:
    """Score the recent delivery rate against the rate needed to hit goal."""
    thresholds = thresholds or HealthThresholds()
    if required_daily_impressions <= 0 or burn_rate.confidence == "no-data":
        return 0.0
    ratio = burn_rate.current_rate / required_daily_impressions
    return _banded_score(ratio, thresholds.burn_rate_bands, thresholds.burn_rate_fallback_score)


def ctr_score(ctr_pct: float, thresholds: HealthThresholds | None = None) -> float:
    """Score CTR (percent) by its relative deviation from the benchmark."""
    thresholds = thresholds or HealthThresholds()
    benchmark = thresholds.ctr_benchmark
    if ctr_pct == 0 or benchmark == 0:
        return 0.0

    deviation = (ctr_pct - benchmark) / benchmark
    if deviation > thresholds.ctr_tolerance:
        return thresholds.ctr_above_score
    if deviation >= -thresholds.ctr_tolerance:
        return thresholds.ctr_within_score
    return thresholds.ctr_below_score


def overspend_score(
    spend: float,
    budget: float | None,
    burn_rate: BurnRate,
    days_left: int,
    thresholds: HealthThresholds | None = None,
) -> float:
    """0-5 score: full marks while projected spend stays within budget."""
    thresholds = thresholds or HealthThresholds()
    if not budget or budget <= 0 or burn_rate.confidence == "no-data":
        return 0.0

    projected_spend = spend + burn_rate.daily_spend_rate * max(days_left, 0)
    if projected_spend <= budget:
        return thresholds.overspend_on_track_score
    return 0.0


def composite_score(
    roas: float,
    pacing: float,
    burn: float,
    ctr: float,
    overspend: float,
    thresholds: HealthThresholds | None = None,
) -> float:
    """Weighted sum of sub-scores, clamped to 0-10 and rounded to 1 decimal."""
    thresholds = thresholds or HealthThresholds()
    overspend_scaled = (
        overspend * 10 / thresholds.overspend_max_score if thresholds.overspend_max_score else 0.0
    )
    score = (
        roas * thresholds.roas_weight
        + pacing * thresholds.pacing_weight
        + burn * thresholds.burn_rate_weight
        + ctr * thresholds.ctr_weight
        + overspend_scaled * thresholds.overspend_weight
    )
    return round(min(10.0, max(0.0, score)), 1)


def health_tier(score: float, thresholds: HealthThresholds | None = None) -> HealthTier:
    """Classify a composite score: >= 7 healthy, >= 4 warning, else critical."""
    thresholds = thresholds or HealthThresholds()
    if score >= thresholds.healthy_min:
        return HealthTier.HEALTHY
    if score >= thresholds.warning_min:
        return HealthTier.WARNING
    return HealthTier.CRITICAL


# =============================================================================
# BURN RATE
# =============================================================================


def _burn_rate_from_frame(campaign_df: pl.DataFrame, window_days: int) -> BurnRate:
    daily = (
        campaign_df.group_by("date")
        .agg(pl.col("impressions").sum(), pl.col("spend").sum())
        .sort("date")
        .tail(window_days)
    )
    days = len(daily)
    if days == 0:
        return BurnRate(0.0, 0.0, 0.0, 0.0, "no-data")

    impressions = daily["impressions"]
    one_day = float(impressions[-1])
    three_day = float(impressions.tail(3).mean()) if days >= 3 else 0.0
    full_window = float(impressions.mean()) if days >= window_days else 0.0

    if days >= window_days:
        confidence = f"{window_days}-day"
    elif days >= 3:
        confidence = "3-day"
    else:
        confidence = "1-day"

    return BurnRate(
        one_day_rate=one_day,
        three_day_rate=three_day,
        seven_day_rate=full_window,
        daily_spend_rate=float(daily["spend"].mean()),
        confidence=confidence,
    )


def calculate_burn_rate(
    records: Sequence[DeliveryRecord],
    campaign_name: str | None = None,
    window_days: int = 7,
) -> BurnRate:
    """Recent daily impression rates over the last 1, 3 and ``window_days`` days.

    Rows are summed per date first. Confidence names the longest window
    that is fully covered ("no-data" when there are no rows at all).

    Args:
        records: Delivery records
        campaign_name: Restrict to one campaign (default: all records)
        window_days: Length of the long window
    """
    df = to_delivery_frame(records)
    if campaign_name is not None:
        df = df.filter(pl.col(CAMPAIGN) == campaign_name)
    return _burn_rate_from_frame(df, window_days)


# =============================================================================
# BATCH SCORING
# =============================================================================


def _metrics_by_campaign(
    pacing_data: Sequence[ProcessedCampaign | CampaignMetrics],
) -> dict[str, CampaignMetrics]:
    metrics: dict[str, CampaignMetrics] = {}
    for item in pacing_data:
        if isinstance(item, ProcessedCampaign):
            if item.metrics is not None:
                metrics[item.name] = item.metrics
        else:
            metrics[item.campaign_name] = item
    return metrics


def _completion_percentage(metrics: CampaignMetrics | None) -> float:
    """Share of the flight elapsed, from days in and days left."""
    if metrics is None:
        return 0.0
    total = metrics.days_into_campaign + metrics.days_until_end
    if total <= 0:
        return 0.0
    return round(metrics.days_into_campaign / total * 100, 1)


def _score_campaign(
    name: str,
    totals: Mapping[str, Any],
    campaign_df: pl.DataFrame,
    terms: ContractTerms,
    metrics: CampaignMetrics | None,
    thresholds: HealthThresholds,
) -> CampaignHealthData:
    spend = float(totals["spend"])
    revenue = float(totals["revenue"])
    impressions = float(totals["impressions"])
    clicks = float(totals["clicks"])

    roas = revenue / spend if spend > 0 else 0.0
    ctr = clicks / impressions * 100 if impressions > 0 else 0.0

    burn_rate = _burn_rate_from_frame(campaign_df, thresholds.burn_rate_window_days)

    if metrics is not None:
        expected = metrics.expected_impressions
        pace = metrics.actual_impressions / expected * 100 if expected > 0 else 0.0
        pacing = delivery_pacing_score(metrics.actual_impressions, expected, thresholds)
        required_daily = metrics.remaining_average_needed or metrics.average_daily_impressions
        days_left = metrics.days_until_end
    else:
        expected = None
        pace = None
        pacing = 0.0
        required_daily = 0.0
        days_left = None

    roas_points = roas_score(roas, thresholds)
    burn_points = burn_rate_score(burn_rate, required_daily, thresholds)
    ctr_points = ctr_score(ctr, thresholds)
    overspend_points = (
        overspend_score(spend, terms.budget, burn_rate, days_left, thresholds)
        if days_left is not None
        else 0.0
    )

    score = composite_score(
        roas_points, pacing, burn_points, ctr_points, overspend_points, thresholds
    )

    return CampaignHealthData(
        campaign_name=name,
        roas_score=roas_points,
        delivery_pacing_score=pacing,
        burn_rate_score=burn_points,
        ctr_score=ctr_points,
        overspend_score=overspend_points,
        health_score=score,
        tier=health_tier(score, thresholds),
        spend=spend,
        revenue=revenue,
        impressions=impressions,
        clicks=clicks,
        transactions=float(totals["transactions"]),
        roas=roas,
        ctr=ctr,
        pace=pace,
        completion_percentage=_completion_percentage(metrics),
        budget=terms.budget,
        expected_impressions=expected,
        days_left=days_left,
        burn_rate_confidence=burn_rate.confidence,
    )


def calculate_campaign_health(
    delivery_data: Sequence[DeliveryRecord],
    pacing_data: Sequence[ProcessedCampaign | CampaignMetrics],
    contract_data: Sequence[ContractTerms | Mapping[str, Any]],
    thresholds: HealthThresholds | None = None,
    *,
    log=None,
) -> tuple[list[CampaignHealthData], list[SkippedCampaign]]:
    """Score every campaign that has both delivery rows and contract terms.

    Args:
        delivery_data: Delivery records for all campaigns
        pacing_data: Output of process_campaigns (or bare CampaignMetrics);
            campaigns missing here score 0 for pacing, burn rate and overspend
        contract_data: Contract terms, validated per campaign
        thresholds: Score bands and weights (defaults to HealthThresholds())
        log: Logger for diagnostics (defaults to the "health" logger)

    Returns:
        Tuple of (health results in delivery order, skipped campaigns)
    """
    log = log or get_logger("health")
    thresholds = thresholds or HealthThresholds()

    skipped: list[SkippedCampaign] = []
    contracts: dict[str, ContractTerms] = {}
    for raw_terms in contract_data:
        name = campaign_name_of(raw_terms)
        try:
            terms = coerce_contract_terms(raw_terms)
        except DeliveryInsightsError as e:
            log.warning("Skipping campaign '{}' due to error: {}", name, e)
            skipped.append(SkippedCampaign(name, str(e)))
            continue
        contracts[terms.campaign_name] = terms

    df = to_delivery_frame(delivery_data)
    totals = {
        row[CAMPAIGN]: row
        for row in df.group_by(CAMPAIGN, maintain_order=True).agg(campaign_totals_expr()).to_dicts()
    }
    metrics_by_campaign = _metrics_by_campaign(pacing_data)
    already_skipped = {s.campaign_name for s in skipped}

    results: list[CampaignHealthData] = []
    for name, campaign_totals in totals.items():
        terms = contracts.get(name)
        if terms is None:
            if name not in already_skipped:
                log.warning("Skipping campaign '{}' - no contract terms found", name)
                skipped.append(SkippedCampaign(name, "no contract terms"))
            continue

        try:
            health = _score_campaign(
                name,
                campaign_totals,
                df.filter(pl.col(CAMPAIGN) == name),
                terms,
                metrics_by_campaign.get(name),
                thresholds,
            )
        except (ValueError, TypeError, ArithmeticError) as e:
            log.warning("Skipping campaign '{}' due to error: {}", name, e)
            skipped.append(SkippedCampaign(name, str(e)))
            continue
        results.append(health)

    for name in contracts:
        if name not in totals:
            log.warning("Skipping campaign '{}' - no delivery data found", name)
            skipped.append(SkippedCampaign(name, "no delivery data"))

    log.info("Scored {} campaigns, skipped {}", len(results), len(skipped))
    return results, skipped
