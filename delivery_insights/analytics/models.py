"""Output models for analytics calculations."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from ..models.records import ContractTerms, DeliveryRecord


@dataclass(frozen=True)
class SkippedCampaign:
    """A campaign omitted from a batch result, and why."""

    campaign_name: str
    reason: str


class PacingStatus(str, Enum):
    """Pacing deviation level for display."""

    ON_TARGET = "on_target"
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"


@dataclass(frozen=True)
class CampaignMetrics:
    """Delivery-vs-contract pacing figures for one campaign.

    Every figure is computed as of ``reference_date`` ("yesterday").
    """

    campaign_name: str
    budget: float
    cpm: float
    impression_goal: float
    start_date: date
    end_date: date
    reference_date: date
    total_campaign_days: int  # inclusive of start and end
    days_into_campaign: int  # clamped to [0, total_campaign_days]
    days_until_end: int
    average_daily_impressions: float
    expected_impressions: float
    actual_impressions: float
    current_pacing: float  # actual / expected, 1.0 = on pace
    remaining_impressions: float
    remaining_average_needed: float
    yesterday_impressions: float
    yesterday_vs_needed: float


@dataclass(frozen=True)
class ProcessedCampaign:
    """Contract terms, delivery rows and pacing metrics for one campaign."""

    name: str
    contract_terms: ContractTerms
    delivery_data: list[DeliveryRecord] = field(default_factory=list)
    metrics: CampaignMetrics | None = None


# "1-day", "3-day", "{window}-day" or "no-data"
BurnRateConfidence = str


@dataclass(frozen=True)
class BurnRate:
    """Recent daily delivery rates for a campaign."""

    one_day_rate: float
    three_day_rate: float
    seven_day_rate: float  # mean over the full window
    daily_spend_rate: float  # mean daily spend over the same window
    confidence: BurnRateConfidence

    @property
    def current_rate(self) -> float:
        """Best available impression rate for the confidence level."""
        if self.confidence == "no-data":
            return 0.0
        if self.confidence == "1-day":
            return self.one_day_rate
        if self.confidence == "3-day":
            return self.three_day_rate
        return self.seven_day_rate


class HealthTier(str, Enum):
    """Composite health classification."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class CampaignHealthData:
    """Composite health score and the raw metrics behind it."""

    campaign_name: str

    # Sub-scores: 0-10, overspend 0-5
    roas_score: float
    delivery_pacing_score: float
    burn_rate_score: float
    ctr_score: float
    overspend_score: float
    health_score: float  # weighted composite, 0-10
    tier: HealthTier

    # Raw metrics
    spend: float
    revenue: float
    impressions: float
    clicks: float
    transactions: float
    roas: float
    ctr: float  # percent
    pace: float | None  # percent of expected, None without pacing metrics
    completion_percentage: float
    budget: float | None = None
    expected_impressions: float | None = None
    days_left: int | None = None
    burn_rate_confidence: BurnRateConfidence = "no-data"
