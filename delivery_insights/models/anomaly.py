"""Pydantic models for detected campaign anomalies.

``CampaignAnomaly`` is a discriminated union on ``anomaly_type``; each variant
carries its own fixed ``details`` shape.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class AnomalyType(str, Enum):
    """Kinds of delivery irregularity."""

    IMPRESSION_CHANGE = "impression_change"
    TRANSACTION_DROP = "transaction_drop"
    TRANSACTION_ZERO = "transaction_zero"
    SUSPECTED_BOT_ACTIVITY = "suspected_bot_activity"


class AnomalySeverity(str, Enum):
    """Anomaly severity levels."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ChangeDetails(BaseModel):
    """Day-over-day comparison (impression change, transaction drop)."""

    model_config = ConfigDict(frozen=True)

    previous_value: float
    current_value: float
    percentage_change: float  # signed, rounded to 2 decimals
    threshold_exceeded: float  # abs(percentage_change), unrounded


class ZeroStreakDetails(BaseModel):
    """Consecutive zero-transaction days."""

    model_config = ConfigDict(frozen=True)

    consecutive_days: int
    threshold_exceeded: int


class BotActivityDetails(BaseModel):
    """Daily CTR above the bot-activity threshold."""

    model_config = ConfigDict(frozen=True)

    ctr_percentage: float
    clicks: float
    impressions: float
    threshold_exceeded: float  # the CTR threshold that was exceeded


class _AnomalyBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str | None = None  # assigned by persistence
    campaign_name: str
    date_detected: date
    severity: AnomalySeverity
    is_ignored: bool = False
    custom_duration: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ImpressionChangeAnomaly(_AnomalyBase):
    anomaly_type: Literal["impression_change"] = "impression_change"
    details: ChangeDetails


class TransactionDropAnomaly(_AnomalyBase):
    anomaly_type: Literal["transaction_drop"] = "transaction_drop"
    details: ChangeDetails


class ZeroTransactionAnomaly(_AnomalyBase):
    anomaly_type: Literal["transaction_zero"] = "transaction_zero"
    details: ZeroStreakDetails


class BotActivityAnomaly(_AnomalyBase):
    anomaly_type: Literal["suspected_bot_activity"] = "suspected_bot_activity"
    details: BotActivityDetails


CampaignAnomaly = Annotated[
    Union[
        ImpressionChangeAnomaly,
        TransactionDropAnomaly,
        ZeroTransactionAnomaly,
        BotActivityAnomaly,
    ],
    Field(discriminator="anomaly_type"),
]

# Validates a row read back from persistence into the right variant
CampaignAnomalyAdapter = TypeAdapter(CampaignAnomaly)
