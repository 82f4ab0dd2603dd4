"""Pydantic models for canonical delivery and contract records."""

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..dates import parse_date


def _parse_amount(value: Any) -> Any:
    """Strip currency symbols and thousands separators from numeric strings."""
    if isinstance(value, str):
        cleaned = value.replace("$", "").replace(",", "").strip()
        if not cleaned:
            raise ValueError("empty numeric value")
        return cleaned
    return value


def _parse_calendar_date(value: Any) -> date:
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"invalid date: {value!r}")
    return parsed


class DeliveryRecord(BaseModel):
    """One campaign-day observation.

    All metrics are non-negative floats; transactions are integer-like but
    kept as floats so every metric shares one dtype.
    """

    model_config = ConfigDict(frozen=True)

    date: date
    campaign_name: str = Field(min_length=1)
    impressions: float = Field(default=0.0, ge=0)
    clicks: float = Field(default=0.0, ge=0)
    revenue: float = Field(default=0.0, ge=0)
    spend: float = Field(default=0.0, ge=0)
    transactions: float = Field(default=0.0, ge=0)

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> date:
        return _parse_calendar_date(value)

    @field_validator("impressions", "clicks", "revenue", "spend", "transactions", mode="before")
    @classmethod
    def _default_missing(cls, value: Any) -> Any:
        return 0.0 if value is None else _parse_amount(value)


class ContractTerms(BaseModel):
    """Contracted goal envelope for a campaign.

    Numeric fields accept strings such as "$12,500.00" or "1,000,000".
    """

    model_config = ConfigDict(frozen=True)

    campaign_name: str = Field(min_length=1)
    start_date: date
    end_date: date
    budget: float = Field(ge=0)
    cpm: float = Field(ge=0)
    impression_goal: float = Field(ge=0)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _coerce_dates(cls, value: Any) -> date:
        return _parse_calendar_date(value)

    @field_validator("budget", "cpm", "impression_goal", mode="before")
    @classmethod
    def _coerce_amounts(cls, value: Any) -> Any:
        return _parse_amount(value)

    @model_validator(mode="after")
    def _check_flight(self) -> "ContractTerms":
        if self.end_date < self.start_date:
            raise ValueError(
                f"end_date {self.end_date} precedes start_date {self.start_date}"
            )
        return self

    @property
    def total_campaign_days(self) -> int:
        """Flight length, inclusive of both start and end dates."""
        return (self.end_date - self.start_date).days + 1
