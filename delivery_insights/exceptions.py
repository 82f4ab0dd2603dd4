"""Custom exceptions for delivery analytics."""

from typing import Any


class DeliveryInsightsError(Exception):
    """Base exception for delivery analytics errors."""

    pass


class ConfigLoadError(DeliveryInsightsError):
    """Failed to load threshold or schema configuration."""

    pass


class ColumnMappingError(DeliveryInsightsError):
    """Required column not found in source rows."""

    def __init__(self, missing_columns: list[str], available_columns: list[str]):
        self.missing_columns = missing_columns
        self.available_columns = available_columns
        super().__init__(
            f"Missing required columns: {missing_columns}. "
            f"Available: {available_columns[:10]}..."
        )


class ContractTermsError(DeliveryInsightsError):
    """Contract terms for a campaign cannot be used for pacing."""

    def __init__(self, campaign_name: str, reason: str, errors: list[dict[str, Any]] | None = None):
        self.campaign_name = campaign_name
        self.reason = reason
        self.errors = errors or []
        super().__init__(f"Invalid contract terms for '{campaign_name}': {reason}")
