"""Configurable thresholds for anomaly detection, pacing status and health scoring.

Defaults live on the dataclasses; ``thresholds.yaml`` (or a caller-supplied
file) overlays them. Percentage thresholds are expressed in percent units
(20.0 = 20%), ratio bands as plain ratios (1.0 = on pace).
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter, ValidationError

from ..exceptions import ConfigLoadError

DEFAULT_THRESHOLDS_PATH = Path(__file__).parent / "thresholds.yaml"
DEFAULT_SCHEMA_REGISTRY_PATH = Path(__file__).parent / "schema_registry.yaml"


@dataclass
class AnomalyThresholds:
    """Detection thresholds, named the way the UI sends them."""

    # Impression change: abs day-over-day % change >= X
    impression_threshold: float = 20.0

    # Transaction drop: day-over-day decrease >= X%
    transaction_drop_threshold: float = 90.0

    # Zero transactions: streak length >= X days
    zero_transaction_days: int = 2

    # Suspected bot activity: daily CTR % > X (exclusive)
    ctr_threshold: float = 1.0

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None) -> "AnomalyThresholds":
        """Build from a partial options mapping; missing keys keep defaults."""
        overrides = {k: v for k, v in (options or {}).items() if v is not None}
        return _build(cls, overrides, section="anomalies")


@dataclass
class PacingStatusThresholds:
    """Inclusive pacing-ratio bands for the pacing status label."""

    on_target: tuple[float, float] = (0.95, 1.05)
    minor: tuple[float, float] = (0.85, 1.15)
    moderate: tuple[float, float] = (0.70, 1.30)


@dataclass
class HealthThresholds:
    """Score bands and weights for the composite health score.

    Band tuples are checked in order; the first match wins.
    """

    # ROAS: (min_roas, score)
    roas_bands: tuple[tuple[float, float], ...] = (
        (4.0, 10.0),
        (3.0, 7.5),
        (2.0, 5.0),
        (1.0, 2.5),
    )
    roas_positive_score: float = 1.0

    # Delivery pacing, percent of expected: (low, high, score)
    pacing_bands: tuple[tuple[float, float, float], ...] = (
        (95.0, 105.0, 10.0),
        (90.0, 110.0, 8.0),
        (80.0, 120.0, 6.0),
    )
    pacing_fallback_score: float = 3.0

    # Burn rate, current daily rate / required daily rate: (low, high, score)
    burn_rate_bands: tuple[tuple[float, float, float], ...] = (
        (0.95, 1.05, 10.0),
        (0.85, 1.15, 8.0),
    )
    burn_rate_fallback_score: float = 5.0
    burn_rate_window_days: int = 7

    # CTR relative to benchmark (CTR in percent)
    ctr_benchmark: float = 0.5
    ctr_tolerance: float = 0.1
    ctr_above_score: float = 10.0
    ctr_within_score: float = 8.0
    ctr_below_score: float = 5.0

    # Overspend is scored 0-5 and scaled to 0-10 in the composite
    overspend_on_track_score: float = 5.0
    overspend_max_score: float = 5.0

    roas_weight: float = 0.40
    pacing_weight: float = 0.30
    burn_rate_weight: float = 0.15
    ctr_weight: float = 0.10
    overspend_weight: float = 0.05

    healthy_min: float = 7.0
    warning_min: float = 4.0


@dataclass
class AnalyticsSettings:
    """All threshold groups in one place."""

    anomalies: AnomalyThresholds = field(default_factory=AnomalyThresholds)
    pacing: PacingStatusThresholds = field(default_factory=PacingStatusThresholds)
    health: HealthThresholds = field(default_factory=HealthThresholds)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict (tuples become lists on YAML dump)."""
        return asdict(self)


def _build(cls: type, overrides: dict[str, Any], section: str) -> Any:
    """Overlay overrides on the dataclass defaults and validate types."""
    known = {f.name for f in fields(cls)}
    unknown = set(overrides) - known
    if unknown:
        raise ConfigLoadError(f"Unknown keys in '{section}': {sorted(unknown)}")

    merged = {**asdict(cls()), **overrides}
    try:
        return TypeAdapter(cls).validate_python(merged)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid values in '{section}': {e}") from e


def load_settings(path: Path | None = None) -> AnalyticsSettings:
    """Load threshold settings from YAML.

    Args:
        path: YAML file with optional ``anomalies``, ``pacing`` and
            ``health`` sections. Defaults to the bundled thresholds.yaml.

    Returns:
        AnalyticsSettings with file values overlaid on the defaults.

    Raises:
        ConfigLoadError: If the file cannot be read or contains invalid keys.
    """
    path = path or DEFAULT_THRESHOLDS_PATH
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except Exception as e:
        raise ConfigLoadError(f"Failed to load thresholds from {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigLoadError(f"Thresholds file {path} must contain a mapping")

    unknown_sections = set(raw) - {"anomalies", "pacing", "health"}
    if unknown_sections:
        raise ConfigLoadError(f"Unknown sections in {path}: {sorted(unknown_sections)}")

    return AnalyticsSettings(
        anomalies=_build(AnomalyThresholds, raw.get("anomalies") or {}, "anomalies"),
        pacing=_build(PacingStatusThresholds, raw.get("pacing") or {}, "pacing"),
        health=_build(HealthThresholds, raw.get("health") or {}, "health"),
    )


def load_schema_registry(path: Path | None = None) -> dict[str, Any]:
    """Load the raw-column schema registry from YAML."""
    path = path or DEFAULT_SCHEMA_REGISTRY_PATH
    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except Exception as e:
        raise ConfigLoadError(f"Failed to load schema from {path}: {e}") from e
