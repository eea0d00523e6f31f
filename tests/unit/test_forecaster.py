"""
Unit Tests - Inventory Forecasting
"""
from datetime import date, timedelta

import pytest

from profit_insights.analytics.forecaster import (
    ForecastParameters,
    InventoryForecaster,
    average_daily_sales,
    build_urgent_alerts,
    days_in_range,
    predict_product,
    sales_trend,
    summarize_inventory,
    urgency_for,
    week_start,
    weekly_breakdown,
)
from profit_insights.config.settings import ForecastSettings
from profit_insights.models import (
    DailySalesRecord,
    ProductInventory,
    SalesTrend,
    Urgency,
    WeeklySalesData,
)

TODAY = date(2025, 1, 31)


def weeks(*averages):
    start = date(2024, 12, 1)
    return [
        WeeklySalesData(week_start=start + timedelta(weeks=i), total_sold=int(avg * 7), average_daily=avg)
        for i, avg in enumerate(averages)
    ]


def sale(day: date, units: int, product_id: str = "A", name: str = "Mug") -> DailySalesRecord:
    return DailySalesRecord(date=day, product_id=product_id, product_name=name, quantity_sold=units)


class TestCalendar:
    """Tests for date helpers"""

    def test_week_start_is_sunday(self):
        """Test weeks start on the most recent Sunday"""
        assert week_start(date(2025, 1, 1)) == date(2024, 12, 29)
        assert week_start(date(2025, 1, 5)) == date(2025, 1, 5)
        assert week_start(date(2025, 1, 11)) == date(2025, 1, 5)

    def test_days_in_range_at_least_one(self):
        """Test a single-day history counts as one day"""
        assert days_in_range(TODAY, TODAY) == 1
        assert days_in_range(date(2025, 1, 1), date(2025, 1, 11)) == 10

    def test_average_daily_sales(self):
        """Test units divided by the date range"""
        records = [sale(date(2025, 1, 1), 10), sale(date(2025, 1, 11), 10)]

        assert average_daily_sales(records, date(2025, 1, 1), date(2025, 1, 11)) == 2.0
        assert average_daily_sales([], TODAY, TODAY) == 0.0


class TestWeeklyBreakdown:
    """Tests for weekly_breakdown"""

    def test_buckets(self):
        """Test totals and per-day averages per Sunday week"""
        records = [
            sale(date(2025, 1, 5), 4),
            sale(date(2025, 1, 6), 6),
            sale(date(2025, 1, 13), 7),
        ]
        result = weekly_breakdown(records)

        assert [w.week_start for w in result] == [date(2025, 1, 5), date(2025, 1, 12)]
        assert result[0].total_sold == 10
        assert result[0].average_daily == 5.0
        assert result[1].average_daily == 7.0


class TestSalesTrend:
    """Tests for sales_trend"""

    def test_increasing(self):
        """Test recent weeks above threshold"""
        assert sales_trend(weeks(10, 10, 20, 20)) == (SalesTrend.INCREASING, 100.0)

    def test_decreasing(self):
        """Test recent weeks below threshold"""
        assert sales_trend(weeks(10, 10, 5, 5)) == (SalesTrend.DECREASING, -50.0)

    def test_within_threshold(self):
        """Test small changes are stable"""
        trend, change = sales_trend(weeks(10, 10, 11, 11))

        assert trend == SalesTrend.STABLE
        assert change == 10.0

    def test_not_enough_history(self):
        """Test one or two weeks give a stable trend"""
        assert sales_trend(weeks(10)) == (SalesTrend.STABLE, 0.0)
        assert sales_trend(weeks(10, 30)) == (SalesTrend.STABLE, 0.0)

    def test_uneven_window(self):
        """Test three weeks compare the last two with the first"""
        assert sales_trend(weeks(10, 20, 20))[0] == SalesTrend.INCREASING

    def test_previous_window_without_sales(self):
        """Test zero earlier sales give a stable trend"""
        assert sales_trend(weeks(0, 0, 5, 5)) == (SalesTrend.STABLE, 0.0)

    def test_configurable_window(self):
        """Test trend window comes from parameters"""
        params = ForecastParameters(trend_window_weeks=1)

        assert sales_trend(weeks(10, 30), params)[0] == SalesTrend.INCREASING


class TestUrgency:
    """Tests for urgency_for"""

    @pytest.mark.parametrize("days,expected", [
        (0, Urgency.CRITICAL),
        (14, Urgency.CRITICAL),
        (15, Urgency.WARNING),
        (21, Urgency.WARNING),
        (22, Urgency.NORMAL),
    ])
    def test_tiers(self, days, expected):
        """Test boundaries at lead time and lead time plus safety stock"""
        assert urgency_for(days, 14) == expected


class TestPredictProduct:
    """Tests for predict_product"""

    def test_critical_product(self):
        """Test stock 100 selling 10 a day with 14 day lead time"""
        prediction = predict_product(ProductInventory("A", "Mug", 100), 10.0, today=TODAY)

        assert prediction.days_until_stockout == 10
        assert prediction.urgency == Urgency.CRITICAL
        assert prediction.predicted_stockout_date == date(2025, 2, 10)
        assert prediction.recommended_order_quantity == 370
        assert prediction.recommended_order_date == date(2025, 1, 20)
        assert prediction.lead_time_days == 14

    def test_trend_adjustment(self):
        """Test increasing trend raises the daily rate by 15%"""
        prediction = predict_product(
            ProductInventory("A", "Mug", 115), 10.0, trend=SalesTrend.INCREASING, today=TODAY
        )

        assert prediction.average_daily_sales == 11.5
        assert prediction.days_until_stockout == 10
        assert prediction.recommended_order_quantity == 426

    def test_decreasing_trend(self):
        """Test decreasing trend lowers the daily rate by 10%"""
        prediction = predict_product(
            ProductInventory("A", "Mug", 90), 10.0, trend=SalesTrend.DECREASING, today=TODAY
        )

        assert prediction.average_daily_sales == 9.0
        assert prediction.days_until_stockout == 10

    def test_no_sales(self):
        """Test products with no sales never run out"""
        prediction = predict_product(ProductInventory("A", "Mug", 5), 0.0, today=TODAY)

        assert prediction.days_until_stockout == 999
        assert prediction.urgency == Urgency.NORMAL
        assert prediction.recommended_order_quantity == 0

    def test_out_of_stock(self):
        """Test zero stock is critical today"""
        prediction = predict_product(ProductInventory("A", "Mug", 0), 3.0, today=TODAY)

        assert prediction.days_until_stockout == 0
        assert prediction.predicted_stockout_date == TODAY
        assert prediction.urgency == Urgency.CRITICAL

    def test_custom_lead_time(self):
        """Test lead time override moves the urgency boundary"""
        prediction = predict_product(ProductInventory("A", "Mug", 100), 4.0, lead_time_days=30, today=TODAY)

        assert prediction.days_until_stockout == 25
        assert prediction.urgency == Urgency.CRITICAL


class TestInventoryForecaster:
    """Tests for InventoryForecaster"""

    def test_predictions_sorted_by_urgency(self, test_settings):
        """Test critical products come first"""
        sales = [
            sale(date(2025, 1, 1), 10, "A", "Mug"),
            sale(date(2025, 1, 11), 10, "A", "Mug"),
            sale(date(2025, 1, 11), 1, "B", "Lamp"),
        ]
        products = [ProductInventory("B", "Lamp", 50), ProductInventory("A", "Mug", 20)]
        predictions = InventoryForecaster(test_settings).predict(sales, products, today=TODAY)

        assert [p.product_id for p in predictions] == ["A", "B"]
        assert predictions[0].average_daily_sales == 2.0
        assert predictions[0].days_until_stockout == 10
        assert predictions[1].average_daily_sales == 0.1
        assert predictions[1].urgency == Urgency.NORMAL

    def test_product_lead_time_overrides(self, test_settings):
        """Test a product's own lead time wins over the run lead time"""
        sales = [sale(date(2025, 1, 1), 10), sale(date(2025, 1, 11), 10)]
        products = [ProductInventory("A", "Mug", 50, lead_time_days=30)]
        prediction = InventoryForecaster(test_settings).predict(sales, products, lead_time_days=7, today=TODAY)[0]

        assert prediction.lead_time_days == 30
        assert prediction.urgency == Urgency.CRITICAL

    def test_run_lead_time(self, test_settings):
        """Test the run lead time replaces the default"""
        sales = [sale(date(2025, 1, 1), 10), sale(date(2025, 1, 11), 10)]
        prediction = InventoryForecaster(test_settings).predict(
            sales, [ProductInventory("A", "Mug", 50)], lead_time_days=7, today=TODAY
        )[0]

        assert prediction.days_until_stockout == 25
        assert prediction.lead_time_days == 7
        assert prediction.urgency == Urgency.NORMAL

    def test_parameters_from_settings(self):
        """Test forecasting constants come from settings"""
        params = ForecastParameters.from_settings(ForecastSettings(safety_stock_days=3), lead_time_days=None)

        assert params.safety_stock_days == 3
        assert params.lead_time_days == 14


class TestAlertsAndSummary:
    """Tests for build_urgent_alerts and summarize_inventory"""

    def predictions(self):
        return [
            predict_product(ProductInventory("C", "Cup", 300), 10.0, today=TODAY),
            predict_product(ProductInventory("W", "Vase", 180), 10.0, today=TODAY),
            predict_product(ProductInventory("M", "Mug", 100), 10.0, today=TODAY),
            predict_product(ProductInventory("L", "Lamp", 5), 0.0, today=TODAY),
        ]

    def test_alerts(self):
        """Test only critical and warning products raise alerts"""
        alerts = build_urgent_alerts(self.predictions())

        assert [a.product_id for a in alerts] == ["M", "W"]
        assert alerts[0].message == "Mug will run out in 10 days. Order 370 units immediately!"
        assert alerts[0].recommended_action == "Order 370 units by 2025-01-20"
        assert alerts[1].message == "Vase stock is low. Plan to order 370 units soon."

    def test_summary(self):
        """Test counts and capped average days"""
        summary = summarize_inventory(self.predictions())

        assert summary.total_products == 4
        assert summary.critical_count == 1
        assert summary.warning_count == 1
        assert summary.healthy_count == 2
        assert summary.total_current_stock == 585
        assert summary.average_days_until_stockout == round((30 + 18 + 10 + 365) / 4)

    def test_empty_summary(self):
        """Test summary of no products"""
        summary = summarize_inventory([])

        assert summary.total_products == 0
        assert summary.average_days_until_stockout == 0
