from .settings import (
    AnalyticsSettings,
    AnomalyThresholds,
    HealthThresholds,
    PacingStatusThresholds,
    load_schema_registry,
    load_settings,
)

__all__ = [
    "AnalyticsSettings",
    "AnomalyThresholds",
    "HealthThresholds",
    "PacingStatusThresholds",
    "load_schema_registry",
    "load_settings",
]
