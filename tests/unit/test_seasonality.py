"""
Unit Tests - Seasonality
"""
from datetime import date

import pytest

from profit_insights.analytics.seasonality import (
    SeasonalityDetector,
    fallback_seasonal_patterns,
    monthly_totals,
    patterns_from_payload,
)
from profit_insights.errors import ForecastProviderError, InvalidResponseError, ProviderTimeoutError
from profit_insights.models import DailySalesRecord, ResultSource

SALES = [
    DailySalesRecord(date(2024, 12, 30), "A", "Mug", 4),
    DailySalesRecord(date(2025, 1, 2), "A", "Mug", 3),
    DailySalesRecord(date(2025, 1, 9), "B", "Lamp", 2),
]


class TestFallbackPatterns:
    """Tests for the static season calendar"""

    @pytest.mark.parametrize("month", range(1, 13))
    def test_every_month_has_a_pattern(self, month):
        """Test the fallback is never empty"""
        assert fallback_seasonal_patterns(month)

    def test_january(self):
        """Test January prepares for Ramadan and White Friday"""
        patterns = {p.period: p for p in fallback_seasonal_patterns(1)}

        assert set(patterns) == {"ramadan", "white_friday"}
        assert patterns["ramadan"].expected_demand_increase == 50
        assert patterns["ramadan"].recommendation == "Prepare for Ramadan by increasing stock 50% for key products"

    def test_november(self):
        """Test November prepares for White Friday"""
        assert [p.period for p in fallback_seasonal_patterns(11)] == ["white_friday"]


class TestPayload:
    """Tests for patterns_from_payload"""

    def test_valid(self):
        """Test assistant patterns are read with optional dates"""
        patterns = patterns_from_payload({"patterns": [{
            "period": "ramadan",
            "expectedDemandIncrease": "40",
            "affectedProducts": ["Dates Box"],
            "recommendation": "Stock up",
            "startDate": "2025-03-01",
        }]})

        assert patterns[0].expected_demand_increase == 40.0
        assert patterns[0].affected_products == ["Dates Box"]
        assert patterns[0].start_date == "2025-03-01"
        assert patterns[0].end_date is None

    def test_missing_list(self):
        """Test payload without patterns is rejected"""
        with pytest.raises(InvalidResponseError):
            patterns_from_payload({"seasons": []})

    def test_empty_list(self):
        """Test an empty pattern list is rejected"""
        with pytest.raises(InvalidResponseError):
            patterns_from_payload({"patterns": [{"recommendation": "no period"}]})


class TestSeasonalityDetector:
    """Tests for SeasonalityDetector"""

    def test_monthly_totals(self):
        """Test units grouped by calendar month"""
        assert monthly_totals(SALES) == [("2024-12", 4), ("2025-01", 5)]

    def test_assistant_patterns(self, chat_script):
        """Test assistant answer is used and month totals are sent"""
        client = chat_script([{"patterns": [{"period": "summer", "expectedDemandIncrease": 20}]}])
        step = SeasonalityDetector(client).detect(SALES, [], today=date(2025, 1, 31))

        assert step.source == ResultSource.AI
        assert step.value[0].period == "summer"
        assert "2025-01: 5 units" in client.calls[0]["messages"][1]["content"]
        assert client.calls[0]["temperature"] == 0.3

    def test_fallback_on_failure(self, chat_script):
        """Test provider failure uses the calendar for the current month"""
        client = chat_script([ProviderTimeoutError("timed out")])
        step = SeasonalityDetector(client).detect(SALES, [], today=date(2025, 8, 15))

        assert step.used_fallback
        assert isinstance(step.error, ForecastProviderError)
        assert [p.period for p in step.value] == ["back_to_school"]

    def test_no_assistant(self):
        """Test calendar used without an assistant"""
        step = SeasonalityDetector(None).detect(SALES, [], today=date(2025, 6, 1))

        assert step.source == ResultSource.FALLBACK
        assert {p.period for p in step.value} == {"eid_al_adha", "summer"}
