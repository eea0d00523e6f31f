"""
Inventory Forecaster

Projects stockout dates from daily sales history:

- average daily sales over the observed date range (at least one day)
- Sunday-starting weekly buckets
- trend from the mean of the last N weekly buckets against the N before
- trend-adjusted daily sales drive days until stockout, urgency and reorder
"""

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from profit_insights.config.logging import get_logger
from profit_insights.config.settings import ForecastSettings, Settings, get_settings
from profit_insights.models import (
    DailySalesRecord,
    InventorySummary,
    ProductInventory,
    ProductPrediction,
    SalesTrend,
    UrgentAlert,
    Urgency,
    WeeklySalesData,
)

_URGENCY_RANK = {Urgency.CRITICAL: 0, Urgency.WARNING: 1, Urgency.NORMAL: 2}


@dataclass(frozen=True)
class ForecastParameters:
    """Forecasting constants for one run"""
    lead_time_days: int = 14
    safety_stock_days: int = 7
    coverage_days: int = 30
    trend_window_weeks: int = 2
    trend_threshold_pct: float = 15.0
    increasing_adjustment: float = 1.15
    decreasing_adjustment: float = 0.90
    no_sales_days: int = 999
    stockout_horizon_cap_days: int = 365

    @classmethod
    def from_settings(
        cls,
        settings: ForecastSettings,
        lead_time_days: Optional[int] = None,
    ) -> "ForecastParameters":
        return cls(
            lead_time_days=lead_time_days or settings.default_lead_time_days,
            safety_stock_days=settings.safety_stock_days,
            coverage_days=settings.coverage_days,
            trend_window_weeks=settings.trend_window_weeks,
            trend_threshold_pct=settings.trend_threshold_pct,
            increasing_adjustment=settings.increasing_adjustment,
            decreasing_adjustment=settings.decreasing_adjustment,
            no_sales_days=settings.no_sales_days,
            stockout_horizon_cap_days=settings.stockout_horizon_cap_days,
        )


def week_start(day: date) -> date:
    """Most recent Sunday on or before day"""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def days_in_range(start: date, end: date) -> int:
    return max(1, (end - start).days)


def average_daily_sales(records: Sequence[DailySalesRecord], start: date, end: date) -> float:
    if not records:
        return 0.0
    units = sum(r.quantity_sold for r in records)
    return units / days_in_range(start, end)


def weekly_breakdown(records: Sequence[DailySalesRecord]) -> List[WeeklySalesData]:
    """Weekly totals; average_daily divides by the days that had records"""
    totals: Dict[date, int] = defaultdict(int)
    days: Dict[date, set] = defaultdict(set)
    for record in records:
        key = week_start(record.date)
        totals[key] += record.quantity_sold
        days[key].add(record.date)

    return [
        WeeklySalesData(
            week_start=key,
            total_sold=totals[key],
            average_daily=totals[key] / max(1, len(days[key])),
        )
        for key in sorted(totals)
    ]


def sales_trend(
    weeks: Sequence[WeeklySalesData],
    params: ForecastParameters = ForecastParameters(),
) -> Tuple[SalesTrend, float]:
    """
    Compare recent weekly averages with the preceding window.

    Returns:
        (trend, change percentage); stable with 0 when there is not enough
        history or the earlier window sold nothing
    """
    window = params.trend_window_weeks
    if len(weeks) < 2:
        return SalesTrend.STABLE, 0.0

    recent = weeks[-window:]
    previous = weeks[-2 * window:-window]
    if not previous:
        return SalesTrend.STABLE, 0.0

    recent_avg = sum(w.average_daily for w in recent) / len(recent)
    previous_avg = sum(w.average_daily for w in previous) / len(previous)
    if previous_avg <= 0:
        return SalesTrend.STABLE, 0.0

    change = (recent_avg - previous_avg) / previous_avg * 100
    if change > params.trend_threshold_pct:
        return SalesTrend.INCREASING, round(change, 2)
    if change < -params.trend_threshold_pct:
        return SalesTrend.DECREASING, round(change, 2)
    return SalesTrend.STABLE, round(change, 2)


def adjusted_daily_sales(
    average: float,
    trend: SalesTrend,
    params: ForecastParameters = ForecastParameters(),
) -> float:
    if trend == SalesTrend.INCREASING:
        return average * params.increasing_adjustment
    if trend == SalesTrend.DECREASING:
        return average * params.decreasing_adjustment
    return average


def urgency_for(days_until_stockout: int, lead_time_days: int, safety_stock_days: int = 7) -> Urgency:
    if days_until_stockout <= lead_time_days:
        return Urgency.CRITICAL
    if days_until_stockout <= lead_time_days + safety_stock_days:
        return Urgency.WARNING
    return Urgency.NORMAL


def predict_product(
    product: ProductInventory,
    average: float,
    trend: SalesTrend = SalesTrend.STABLE,
    trend_percentage: float = 0.0,
    weeks: Sequence[WeeklySalesData] = (),
    lead_time_days: Optional[int] = None,
    today: Optional[date] = None,
    params: ForecastParameters = ForecastParameters(),
) -> ProductPrediction:
    """
    Stockout prediction for one product.

    Args:
        product: Product with current stock
        average: Unadjusted average daily sales
        trend: Sales trend applied before projecting
        lead_time_days: Overrides params.lead_time_days
        today: Date the projection starts from
    """
    today = today or date.today()
    lead = lead_time_days or params.lead_time_days
    adjusted = adjusted_daily_sales(average, trend, params)

    if adjusted > 0:
        # absorb float error before flooring
        days = math.floor(round(product.current_stock / adjusted, 6))
    else:
        days = params.no_sales_days

    stockout = today + timedelta(days=days)
    target_days = params.coverage_days + params.safety_stock_days

    return ProductPrediction(
        product_id=product.product_id,
        product_name=product.product_name,
        current_stock=product.current_stock,
        average_daily_sales=round(adjusted, 2),
        sales_trend=trend,
        trend_percentage=trend_percentage,
        days_until_stockout=days,
        predicted_stockout_date=stockout,
        urgency=urgency_for(days, lead, params.safety_stock_days),
        lead_time_days=lead,
        recommended_order_quantity=math.ceil(round(adjusted * target_days, 6)),
        recommended_order_date=stockout - timedelta(days=lead + params.safety_stock_days),
        weekly_breakdown=list(weeks),
    )


def sort_predictions(predictions: Sequence[ProductPrediction]) -> List[ProductPrediction]:
    return sorted(predictions, key=lambda p: (_URGENCY_RANK[p.urgency], p.days_until_stockout))


def build_urgent_alerts(predictions: Sequence[ProductPrediction]) -> List[UrgentAlert]:
    """Alerts for critical and warning products, critical first then soonest"""
    alerts: List[UrgentAlert] = []
    for p in predictions:
        if p.urgency == Urgency.NORMAL:
            continue
        if p.urgency == Urgency.CRITICAL:
            message = (
                f"{p.product_name} will run out in {p.days_until_stockout} days. "
                f"Order {p.recommended_order_quantity} units immediately!"
            )
        else:
            message = (
                f"{p.product_name} stock is low. "
                f"Plan to order {p.recommended_order_quantity} units soon."
            )
        alerts.append(
            UrgentAlert(
                product_id=p.product_id,
                product_name=p.product_name,
                urgency=p.urgency,
                current_stock=p.current_stock,
                days_until_stockout=p.days_until_stockout,
                message=message,
                recommended_action=(
                    f"Order {p.recommended_order_quantity} units by "
                    f"{p.recommended_order_date.isoformat()}"
                ),
            )
        )
    return sorted(alerts, key=lambda a: (_URGENCY_RANK[a.urgency], a.days_until_stockout))


def summarize_inventory(
    predictions: Sequence[ProductPrediction],
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    params: ForecastParameters = ForecastParameters(),
) -> InventorySummary:
    critical = sum(1 for p in predictions if p.urgency == Urgency.CRITICAL)
    warning = sum(1 for p in predictions if p.urgency == Urgency.WARNING)
    cap = params.stockout_horizon_cap_days
    average_days = (
        round(sum(min(p.days_until_stockout, cap) for p in predictions) / len(predictions))
        if predictions
        else 0
    )
    return InventorySummary(
        total_products=len(predictions),
        critical_count=critical,
        warning_count=warning,
        healthy_count=len(predictions) - critical - warning,
        total_current_stock=sum(p.current_stock for p in predictions),
        average_days_until_stockout=average_days,
        period_start=period_start,
        period_end=period_end,
    )


class InventoryForecaster:
    """
    Runs the per-product forecast over a parsed sales history.

    Example:
        forecaster = InventoryForecaster()
        predictions = forecaster.predict(history.sales, history.products, lead_time_days=21)
    """

    def __init__(self, settings: Optional[Settings] = None, logger: Optional[Any] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__, logger)

    def parameters(self, lead_time_days: Optional[int] = None) -> ForecastParameters:
        return ForecastParameters.from_settings(self.settings.forecast, lead_time_days)

    def predict(
        self,
        sales: Sequence[DailySalesRecord],
        products: Sequence[ProductInventory],
        lead_time_days: Optional[int] = None,
        today: Optional[date] = None,
    ) -> List[ProductPrediction]:
        """
        Predictions for every product, most urgent first.

        The averaging range is the min/max sale date across the whole file,
        so products with sparse sales are not flattered by a short range.
        A product's own lead time overrides the run's lead time.
        """
        params = self.parameters(lead_time_days)
        today = today or date.today()

        by_product: Dict[str, List[DailySalesRecord]] = defaultdict(list)
        for record in sales:
            by_product[record.product_id].append(record)

        dates = [r.date for r in sales]
        start = min(dates) if dates else today
        end = max(dates) if dates else today

        predictions = []
        for product in products:
            records = by_product.get(product.product_id, [])
            weeks = weekly_breakdown(records)
            trend, change = sales_trend(weeks, params)
            predictions.append(
                predict_product(
                    product,
                    average_daily_sales(records, start, end),
                    trend=trend,
                    trend_percentage=change,
                    weeks=weeks,
                    lead_time_days=product.lead_time_days or params.lead_time_days,
                    today=today,
                    params=params,
                )
            )

        ordered = sort_predictions(predictions)
        self.logger.info(
            "Stockout predictions computed",
            products=len(ordered),
            critical=sum(1 for p in ordered if p.urgency == Urgency.CRITICAL),
            warning=sum(1 for p in ordered if p.urgency == Urgency.WARNING),
            days_in_range=days_in_range(start, end),
        )
        return ordered
