"""Tests for anomaly detection."""

from datetime import date, timedelta

import pytest

from delivery_insights.analytics import (
    detect_all_anomalies,
    detect_bot_activity_anomalies,
    detect_impression_anomalies,
    detect_transaction_drop_anomalies,
    detect_zero_transaction_anomalies,
)
from delivery_insights.config import AnomalyThresholds
from delivery_insights.ingestion import RawRowNormalizer
from delivery_insights.models import AnomalySeverity, AnomalyType, DeliveryRecord

START = date(2024, 1, 1)


def make_records(campaign: str, values: list[dict], start: date = START) -> list[DeliveryRecord]:
    """One record per day starting at ``start``."""
    return [
        DeliveryRecord(date=start + timedelta(days=i), campaign_name=campaign, **fields)
        for i, fields in enumerate(values)
    ]


def impressions_series(campaign: str, values: list[float]) -> list[DeliveryRecord]:
    return make_records(campaign, [{"impressions": v} for v in values])


def transactions_series(campaign: str, values: list[float]) -> list[DeliveryRecord]:
    return make_records(campaign, [{"impressions": 1000, "transactions": v} for v in values])


# =============================================================================
# IMPRESSION CHANGE
# =============================================================================


class TestImpressionAnomalies:
    """Tests for detect_impression_anomalies()."""

    def test_large_drop_is_high(self) -> None:
        """1000 -> 100 is a -90% change, high severity."""
        # Third day is the most recent date and is excluded
        records = impressions_series("A", [1000, 100, 100])
        result = detect_impression_anomalies(records)
        assert len(result) == 1
        anomaly = result[0]
        assert anomaly.anomaly_type == AnomalyType.IMPRESSION_CHANGE
        assert anomaly.severity == AnomalySeverity.HIGH
        assert anomaly.date_detected == date(2024, 1, 2)
        assert anomaly.details.percentage_change == pytest.approx(-90.0)
        assert anomaly.details.previous_value == 1000
        assert anomaly.details.current_value == 100

    @pytest.mark.parametrize(
        "current, severity",
        [(150, AnomalySeverity.HIGH), (140, AnomalySeverity.MEDIUM), (125, AnomalySeverity.LOW)],
    )
    def test_severity_tiers(self, current: float, severity: AnomalySeverity) -> None:
        """>= 50% high, >= 35% medium, else low."""
        records = impressions_series("A", [100, current, 0])
        assert detect_impression_anomalies(records)[0].severity == severity

    def test_below_threshold_ignored(self) -> None:
        """A 19% change stays quiet at the default 20% threshold."""
        records = impressions_series("A", [100, 119, 0])
        assert detect_impression_anomalies(records) == []

    def test_threshold_is_inclusive(self) -> None:
        """Exactly the threshold is flagged."""
        records = impressions_series("A", [100, 120, 0])
        result = detect_impression_anomalies(records)
        assert len(result) == 1
        assert result[0].details.threshold_exceeded == pytest.approx(20.0)

    def test_zero_previous_skipped(self) -> None:
        """An increase from zero has no defined percentage and is skipped."""
        records = impressions_series("A", [0, 5000, 0])
        assert detect_impression_anomalies(records) == []

    def test_most_recent_date_excluded(self) -> None:
        """A swing on the latest (partial) day is never reported."""
        records = impressions_series("A", [1000, 1000, 10])
        assert detect_impression_anomalies(records) == []

    def test_most_recent_date_is_global(self) -> None:
        """The excluded date is the dataset's latest, not each campaign's."""
        records = impressions_series("A", [1000, 100]) + impressions_series("B", [1, 1, 1])
        result = detect_impression_anomalies(records)
        assert [(a.campaign_name, a.date_detected) for a in result] == [("A", date(2024, 1, 2))]

    def test_single_day_campaign(self) -> None:
        """Fewer than two days cannot produce a comparison."""
        records = impressions_series("A", [1000]) + impressions_series("B", [1, 1])
        assert detect_impression_anomalies(records) == []

    def test_campaigns_not_mixed(self) -> None:
        """Day-over-day pairs stay within one campaign."""
        records = impressions_series("A", [1000, 1000, 1000]) + impressions_series(
            "B", [10, 10, 10]
        )
        assert detect_impression_anomalies(records) == []

    def test_unsorted_input(self) -> None:
        """Input order does not matter."""
        records = list(reversed(impressions_series("A", [1000, 100, 100])))
        assert len(detect_impression_anomalies(records)) == 1

    def test_rounding(self) -> None:
        """percentage_change is rounded to 2 decimals; threshold_exceeded is not."""
        records = impressions_series("A", [300, 100, 0])
        details = detect_impression_anomalies(records)[0].details
        assert details.percentage_change == -66.67
        assert details.threshold_exceeded == pytest.approx(200 / 3)


# =============================================================================
# TRANSACTION DROP
# =============================================================================


class TestTransactionDropAnomalies:
    """Tests for detect_transaction_drop_anomalies()."""

    def test_drop_to_zero_is_high(self) -> None:
        """10 -> 0 transactions is a -100% drop."""
        records = transactions_series("A", [10, 0, 5])
        result = detect_transaction_drop_anomalies(records)
        assert len(result) == 1
        assert result[0].severity == AnomalySeverity.HIGH
        assert result[0].details.percentage_change == pytest.approx(-100.0)

    def test_increase_not_flagged(self) -> None:
        """Only decreases count."""
        records = transactions_series("A", [1, 100, 5])
        assert detect_transaction_drop_anomalies(records) == []

    def test_smaller_drop_ignored(self) -> None:
        """A 50% drop is below the 90% default."""
        records = transactions_series("A", [10, 5, 5])
        assert detect_transaction_drop_anomalies(records) == []

    def test_custom_threshold(self) -> None:
        """The threshold is configurable."""
        records = transactions_series("A", [10, 5, 5])
        assert len(detect_transaction_drop_anomalies(records, threshold_pct=50)) == 1


# =============================================================================
# ZERO TRANSACTIONS
# =============================================================================


class TestZeroTransactionAnomalies:
    """Tests for detect_zero_transaction_anomalies()."""

    def test_one_anomaly_per_streak(self) -> None:
        """A run reports once, dated on its last day, with its full length."""
        records = transactions_series("A", [1, 0, 0, 0, 2, 9])
        result = detect_zero_transaction_anomalies(records)
        assert len(result) == 1
        assert result[0].date_detected == date(2024, 1, 4)
        assert result[0].details.consecutive_days == 3
        assert result[0].severity == AnomalySeverity.LOW

    def test_streak_running_into_last_considered_day(self) -> None:
        """A run still open when the data ends is reported."""
        # Last date excluded, so the run covers days 2-5
        records = transactions_series("A", [1, 0, 0, 0, 0, 0])
        result = detect_zero_transaction_anomalies(records)
        assert len(result) == 1
        assert result[0].details.consecutive_days == 4
        assert result[0].date_detected == date(2024, 1, 5)
        assert result[0].severity == AnomalySeverity.MEDIUM

    def test_short_streak_ignored(self) -> None:
        """A single zero day is below the default of 2."""
        records = transactions_series("A", [1, 0, 1, 1])
        assert detect_zero_transaction_anomalies(records) == []

    def test_multiple_streaks(self) -> None:
        """Separate runs report separately."""
        records = transactions_series("A", [0, 0, 1, 0, 0, 0, 1, 1])
        result = detect_zero_transaction_anomalies(records)
        assert [a.details.consecutive_days for a in result] == [2, 3]

    def test_long_streak_is_high(self) -> None:
        """Seven or more days is high severity."""
        records = transactions_series("A", [0] * 7 + [1, 1])
        result = detect_zero_transaction_anomalies(records)
        assert result[0].severity == AnomalySeverity.HIGH


# =============================================================================
# BOT ACTIVITY
# =============================================================================


class TestBotActivityAnomalies:
    """Tests for detect_bot_activity_anomalies()."""

    def test_threshold_is_exclusive(self) -> None:
        """CTR of exactly 1.0% is not flagged; 1.01% is."""
        records = make_records(
            "A",
            [{"impressions": 10000, "clicks": 100}, {"impressions": 10000, "clicks": 101}],
        )
        result = detect_bot_activity_anomalies(records)
        assert len(result) == 1
        assert result[0].date_detected == date(2024, 1, 2)
        assert result[0].details.ctr_percentage == pytest.approx(1.01)
        assert result[0].details.threshold_exceeded == 1.0

    def test_includes_most_recent_date(self) -> None:
        """CTR is a ratio, so the partial latest day still counts."""
        records = make_records("A", [{"impressions": 100, "clicks": 0}, {"impressions": 100, "clicks": 10}])
        result = detect_bot_activity_anomalies(records)
        assert [a.date_detected for a in result] == [date(2024, 1, 2)]

    @pytest.mark.parametrize(
        "clicks, severity",
        [
            (600, AnomalySeverity.HIGH),
            (300, AnomalySeverity.HIGH),
            (160, AnomalySeverity.MEDIUM),
            (120, AnomalySeverity.MEDIUM),
        ],
    )
    def test_severity_tiers(self, clicks: float, severity: AnomalySeverity) -> None:
        """>= 2% is high; everything above the threshold below that is medium."""
        records = make_records("A", [{"impressions": 10000, "clicks": clicks}])
        assert detect_bot_activity_anomalies(records)[0].severity == severity

    def test_zero_impressions_skipped(self) -> None:
        """No impressions means no CTR."""
        records = make_records("A", [{"impressions": 0, "clicks": 50}])
        assert detect_bot_activity_anomalies(records) == []


# =============================================================================
# COMBINED
# =============================================================================


class TestDetectAllAnomalies:
    """Tests for detect_all_anomalies()."""

    @pytest.fixture
    def records(self) -> list[DeliveryRecord]:
        """Two campaigns with one anomaly of each type between them."""
        a = make_records(
            "A",
            [
                {"impressions": 1000, "clicks": 5, "transactions": 10},
                {"impressions": 100, "clicks": 0, "transactions": 0},
                {"impressions": 100, "clicks": 0, "transactions": 0},
                {"impressions": 100, "clicks": 0, "transactions": 4},
                {"impressions": 100, "clicks": 0, "transactions": 4},
            ],
        )
        b = make_records("B", [{"impressions": 1000, "clicks": 50, "transactions": 1}])
        return a + b

    def test_all_types_present(self, records) -> None:
        """Each detector contributes."""
        result = detect_all_anomalies(records)
        types = {a.anomaly_type for a in result}
        assert types == {t.value for t in AnomalyType}

    def test_sorted_most_recent_first(self, records) -> None:
        """Results are ordered by date_detected, descending."""
        dates = [a.date_detected for a in detect_all_anomalies(records)]
        assert dates == sorted(dates, reverse=True)

    def test_idempotent(self, records) -> None:
        """Same input, same output."""
        assert detect_all_anomalies(records) == detect_all_anomalies(records)

    def test_options_mapping(self, records) -> None:
        """UI option names are accepted; raising thresholds silences detectors."""
        result = detect_all_anomalies(
            records,
            {
                "impression_threshold": 95,
                "transaction_drop_threshold": 101,
                "zero_transaction_days": 10,
                "ctr_threshold": 50,
            },
        )
        assert result == []

    def test_thresholds_dataclass(self, records) -> None:
        """AnomalyThresholds works the same as a mapping."""
        thresholds = AnomalyThresholds(ctr_threshold=50)
        result = detect_all_anomalies(records, thresholds)
        assert AnomalyType.SUSPECTED_BOT_ACTIVITY.value not in {a.anomaly_type for a in result}
        assert AnomalyType.IMPRESSION_CHANGE.value in {a.anomaly_type for a in result}

    def test_empty_input(self) -> None:
        """No records, no anomalies."""
        assert detect_all_anomalies([]) == []

    def test_input_not_mutated(self, records) -> None:
        """Records are only read."""
        before = [r.model_copy() for r in records]
        detect_all_anomalies(records)
        assert records == before


# =============================================================================
# RAW ROWS END TO END
# =============================================================================


class TestRawRowsEndToEnd:
    """Platform rows through RawRowNormalizer into detect_all_anomalies()."""

    @staticmethod
    def detect(rows: list[dict]) -> list:
        result = RawRowNormalizer().normalize_delivery(rows)
        assert result.rejected == []
        return detect_all_anomalies(result.records)

    def test_two_days_latest_not_compared(self) -> None:
        """With only two days, the drop lands on the excluded latest date."""
        rows = [
            {"DATE": "1/1/24", "CAMPAIGN ORDER NAME": "A", "IMPRESSIONS": "1000", "CLICKS": "5"},
            {"DATE": "1/2/24", "CAMPAIGN ORDER NAME": "A", "IMPRESSIONS": "100", "CLICKS": "1"},
        ]
        assert self.detect(rows) == []

    def test_later_day_makes_drop_comparable(self) -> None:
        """A third day moves the exclusion off 1/2/24, which is then flagged."""
        rows = [
            {"DATE": "1/1/24", "CAMPAIGN ORDER NAME": "A", "IMPRESSIONS": "1000", "CLICKS": "5",
             "TRANSACTIONS": "1"},
            {"DATE": "1/2/24", "CAMPAIGN ORDER NAME": "A", "IMPRESSIONS": "100", "CLICKS": "1",
             "TRANSACTIONS": "1"},
            {"DATE": "1/3/24", "CAMPAIGN ORDER NAME": "A", "IMPRESSIONS": "100", "CLICKS": "1",
             "TRANSACTIONS": "1"},
        ]
        result = self.detect(rows)
        assert len(result) == 1
        anomaly = result[0]
        assert anomaly.anomaly_type == AnomalyType.IMPRESSION_CHANGE
        assert anomaly.date_detected == date(2024, 1, 2)
        assert anomaly.severity == AnomalySeverity.HIGH
        assert anomaly.details.percentage_change == pytest.approx(-90.0)
