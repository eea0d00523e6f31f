"""
Analytics Module

Expense classification, decimal profit figures, loss attribution,
stockout forecasting, seasonality and recommendations.
"""
from .classifier import EXPENSE_PATTERNS, ExpenseClassifier, keyword_category
from .forecaster import (
    ForecastParameters,
    InventoryForecaster,
    build_urgent_alerts,
    predict_product,
    sales_trend,
    summarize_inventory,
    urgency_for,
    week_start,
    weekly_breakdown,
)
from .loss_attribution import identify_losing_products
from .profit import analyze_order, analyze_orders, cost_breakdown, summarize
from .recommendations import RecommendationSynthesizer
from .seasonality import SeasonalityDetector, fallback_seasonal_patterns

__all__ = [
    "EXPENSE_PATTERNS",
    "ExpenseClassifier",
    "keyword_category",
    "ForecastParameters",
    "InventoryForecaster",
    "build_urgent_alerts",
    "predict_product",
    "sales_trend",
    "summarize_inventory",
    "urgency_for",
    "week_start",
    "weekly_breakdown",
    "identify_losing_products",
    "analyze_order",
    "analyze_orders",
    "cost_breakdown",
    "summarize",
    "RecommendationSynthesizer",
    "SeasonalityDetector",
    "fallback_seasonal_patterns",
]
