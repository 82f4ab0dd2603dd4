"""Delivery pacing against contracted impression goals.

All figures are anchored on a reference date ("yesterday"): the
second-most-recent date with delivery data. The most recent date is
usually still accumulating and would make every campaign look behind.
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from typing import Any

import polars as pl
from pydantic import ValidationError

from ..config.settings import PacingStatusThresholds
from ..exceptions import ContractTermsError, DeliveryInsightsError
from ..ingestion.enricher import to_delivery_frame
from ..logging import get_logger
from ..models.records import ContractTerms, DeliveryRecord
from .expressions import CAMPAIGN
from .models import CampaignMetrics, PacingStatus, ProcessedCampaign, SkippedCampaign

ContractInput = ContractTerms | Mapping[str, Any]


def reference_date(dates: Iterable[date], fallback: date) -> date:
    """Second-most-recent distinct date, else the only date, else ``fallback``."""
    distinct = sorted(set(dates), reverse=True)
    if len(distinct) >= 2:
        return distinct[1]
    if distinct:
        return distinct[0]
    return fallback


def pacing_status(
    current_pacing: float, thresholds: PacingStatusThresholds | None = None
) -> PacingStatus:
    """Classify a pacing ratio into on-target / minor / moderate / major deviation."""
    thresholds = thresholds or PacingStatusThresholds()
    bands = [
        (thresholds.on_target, PacingStatus.ON_TARGET),
        (thresholds.minor, PacingStatus.MINOR),
        (thresholds.moderate, PacingStatus.MODERATE),
    ]
    for (low, high), status in bands:
        if low <= current_pacing <= high:
            return status
    return PacingStatus.MAJOR


def campaign_name_of(terms: ContractInput) -> str:
    """Campaign name for logging, available before the terms are validated."""
    if isinstance(terms, ContractTerms):
        return terms.campaign_name
    return str(terms.get("campaign_name") or "<unnamed>")


def coerce_contract_terms(terms: ContractInput) -> ContractTerms:
    """Validate raw contract terms, raising ContractTermsError with field errors."""
    if isinstance(terms, ContractTerms):
        return terms
    try:
        return ContractTerms.model_validate(dict(terms))
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ContractTermsError(
            campaign_name_of(terms), f"invalid fields: {fields}", e.errors()
        ) from e


def _campaign_metrics(
    terms: ContractTerms,
    delivery_df: pl.DataFrame,
    global_reference_date: date,
    summing_df: pl.DataFrame,
) -> CampaignMetrics:
    """Pacing math for one campaign; inputs are already validated frames."""
    campaign_dates = (
        delivery_df.filter(pl.col(CAMPAIGN) == terms.campaign_name)["date"].to_list()
    )
    ref = reference_date(campaign_dates, global_reference_date)

    total_days = terms.total_campaign_days
    days_into = max(0, min((ref - terms.start_date).days + 1, total_days))
    days_until_end = max(0, (terms.end_date - ref).days)

    average_daily = terms.impression_goal / total_days
    expected = average_daily * days_into

    campaign_rows = summing_df.filter(pl.col(CAMPAIGN) == terms.campaign_name)
    actual = float(campaign_rows.filter(pl.col("date") <= ref)["impressions"].sum())
    yesterday = float(campaign_rows.filter(pl.col("date") == ref)["impressions"].sum())

    current_pacing = actual / expected if expected > 0 else 0.0
    remaining = max(0.0, terms.impression_goal - actual)
    remaining_average = remaining / days_until_end if days_until_end > 0 else 0.0
    yesterday_vs_needed = yesterday / remaining_average if remaining_average > 0 else 0.0

    return CampaignMetrics(
        campaign_name=terms.campaign_name,
        budget=terms.budget,
        cpm=terms.cpm,
        impression_goal=terms.impression_goal,
        start_date=terms.start_date,
        end_date=terms.end_date,
        reference_date=ref,
        total_campaign_days=total_days,
        days_into_campaign=days_into,
        days_until_end=days_until_end,
        average_daily_impressions=average_daily,
        expected_impressions=expected,
        actual_impressions=actual,
        current_pacing=current_pacing,
        remaining_impressions=remaining,
        remaining_average_needed=remaining_average,
        yesterday_impressions=yesterday,
        yesterday_vs_needed=yesterday_vs_needed,
    )


def calculate_campaign_metrics(
    contract_terms: ContractInput,
    delivery_data: Sequence[DeliveryRecord],
    global_reference_date: date | None = None,
    unfiltered_delivery_data: Sequence[DeliveryRecord] | None = None,
) -> CampaignMetrics:
    """Pacing metrics for a single campaign.

    Args:
        contract_terms: ContractTerms or a mapping with the same fields
        delivery_data: Delivery records (any campaigns; filtered by name)
        global_reference_date: Fallback reference when the campaign has no
            dates of its own (defaults to date.today())
        unfiltered_delivery_data: Full history to sum actual impressions
            against, when delivery_data is a display-filtered subset

    Raises:
        ContractTermsError: If the contract terms are invalid.
    """
    terms = coerce_contract_terms(contract_terms)
    delivery_df = to_delivery_frame(delivery_data)
    summing_df = (
        to_delivery_frame(unfiltered_delivery_data)
        if unfiltered_delivery_data is not None
        else delivery_df
    )
    return _campaign_metrics(
        terms, delivery_df, global_reference_date or date.today(), summing_df
    )


def process_campaigns(
    contract_terms_list: Sequence[ContractInput],
    delivery_data: Sequence[DeliveryRecord],
    unfiltered_delivery_data: Sequence[DeliveryRecord] | None = None,
    *,
    today: date | None = None,
    log=None,
) -> tuple[list[ProcessedCampaign], list[SkippedCampaign]]:
    """Compute pacing for every contracted campaign with delivery data.

    A campaign with no delivery rows, or whose computation fails, is left
    out of the results and reported in the skipped list; the batch never
    aborts on a single campaign.

    Args:
        contract_terms_list: One entry per campaign
        delivery_data: Delivery records, possibly filtered for display
        unfiltered_delivery_data: Full history for the global reference
            date and actual-impression sums (defaults to delivery_data)
        today: Fallback reference date when there is no delivery data at all
        log: Logger for diagnostics (defaults to the "pacing" logger)

    Returns:
        Tuple of (processed campaigns, skipped campaigns with reasons)
    """
    log = log or get_logger("pacing")
    delivery_data = list(delivery_data)

    delivery_df = to_delivery_frame(delivery_data)
    summing_df = (
        to_delivery_frame(unfiltered_delivery_data)
        if unfiltered_delivery_data is not None
        else delivery_df
    )

    global_ref = reference_date(summing_df["date"].to_list(), today or date.today())
    log.info("Global reference date (yesterday) from all delivery data: {}", global_ref)

    records_by_campaign: dict[str, list[DeliveryRecord]] = {}
    for record in delivery_data:
        records_by_campaign.setdefault(record.campaign_name, []).append(record)

    processed: list[ProcessedCampaign] = []
    skipped: list[SkippedCampaign] = []

    for raw_terms in contract_terms_list:
        name = campaign_name_of(raw_terms)
        try:
            terms = coerce_contract_terms(raw_terms)
            campaign_records = records_by_campaign.get(terms.campaign_name, [])
            if not campaign_records:
                log.info("Skipping campaign '{}' - no delivery data found", name)
                skipped.append(SkippedCampaign(name, "no delivery data"))
                continue
            metrics = _campaign_metrics(terms, delivery_df, global_ref, summing_df)
        except (DeliveryInsightsError, ValueError, TypeError, ArithmeticError) as e:
            log.warning("Skipping campaign '{}' due to error: {}", name, e)
            skipped.append(SkippedCampaign(name, str(e)))
            continue

        processed.append(
            ProcessedCampaign(
                name=terms.campaign_name,
                contract_terms=terms,
                delivery_data=campaign_records,
                metrics=metrics,
            )
        )

    if skipped:
        log.info(
            "Processed {} campaigns. Skipped {}: {}",
            len(processed),
            len(skipped),
            ", ".join(s.campaign_name for s in skipped),
        )

    return processed, skipped
