"""Tests for threshold and schema configuration."""

from pathlib import Path

import pytest

from delivery_insights.config import (
    AnalyticsSettings,
    AnomalyThresholds,
    HealthThresholds,
    load_schema_registry,
    load_settings,
)
from delivery_insights.exceptions import ConfigLoadError


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_bundled_defaults_match_dataclasses(self) -> None:
        """The bundled YAML should describe the built-in defaults."""
        assert load_settings() == AnalyticsSettings()

    def test_partial_override(self, tmp_path: Path) -> None:
        """Keys present in the file override; the rest keep defaults."""
        path = tmp_path / "thresholds.yaml"
        path.write_text("anomalies:\n  ctr_threshold: 2.5\nhealth:\n  healthy_min: 8\n")
        settings = load_settings(path)
        assert settings.anomalies.ctr_threshold == 2.5
        assert settings.anomalies.impression_threshold == 20.0
        assert settings.health.healthy_min == 8.0
        assert settings.health.warning_min == 4.0

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        """An empty file is valid."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_settings(path) == AnalyticsSettings()

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        """Typos in threshold names should fail loudly."""
        path = tmp_path / "bad.yaml"
        path.write_text("anomalies:\n  ctr_treshold: 2.5\n")
        with pytest.raises(ConfigLoadError, match="ctr_treshold"):
            load_settings(path)

    def test_unknown_section_rejected(self, tmp_path: Path) -> None:
        """Only known sections are allowed."""
        path = tmp_path / "bad.yaml"
        path.write_text("alerts:\n  enabled: true\n")
        with pytest.raises(ConfigLoadError, match="alerts"):
            load_settings(path)

    def test_wrong_type_rejected(self, tmp_path: Path) -> None:
        """Values must validate against the field types."""
        path = tmp_path / "bad.yaml"
        path.write_text("anomalies:\n  zero_transaction_days: often\n")
        with pytest.raises(ConfigLoadError):
            load_settings(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is wrapped in ConfigLoadError."""
        with pytest.raises(ConfigLoadError):
            load_settings(tmp_path / "missing.yaml")


class TestAnomalyThresholds:
    """Tests for AnomalyThresholds.from_options()."""

    def test_none_gives_defaults(self) -> None:
        """No options means defaults."""
        assert AnomalyThresholds.from_options(None) == AnomalyThresholds()

    def test_ui_option_names(self) -> None:
        """UI option names map one-to-one; None values are ignored."""
        result = AnomalyThresholds.from_options(
            {"impression_threshold": 30, "ctr_threshold": None}
        )
        assert result.impression_threshold == 30.0
        assert result.ctr_threshold == 1.0


class TestHealthThresholds:
    """Tests for HealthThresholds defaults."""

    def test_weights_sum_to_one(self) -> None:
        """Composite weights should add up to 100%."""
        t = HealthThresholds()
        total = t.roas_weight + t.pacing_weight + t.burn_rate_weight + t.ctr_weight + t.overspend_weight
        assert total == pytest.approx(1.0)


class TestSchemaRegistry:
    """Tests for load_schema_registry()."""

    def test_has_both_schemas(self) -> None:
        """The bundled registry should cover delivery and contract terms."""
        registry = load_schema_registry()
        assert registry["delivery"]["column_map"]["campaign_name"] == "CAMPAIGN ORDER NAME"
        assert registry["contract_terms"]["column_map"]["impression_goal"] == "Impressions Goal"
