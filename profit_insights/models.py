"""
Data Models for Profit Insights

Two families of models live here:
- Internal records (frozen dataclasses) built once per analysis run from
  ingested rows: OrderRecord, DailySalesRecord, ProductInventory
- Result models (Pydantic) returned to callers and serialized with
  camelCase aliases: order analysis, loss analysis, predictions, summaries

All money-bearing quantities are Decimal.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


CENTS = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value: Decimal) -> Decimal:
    """Round a decimal amount to cents, half-up"""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


# =============================================================================
# ENUMS
# =============================================================================

class FileFormat(str, Enum):
    """Supported upload formats"""
    CSV = "csv"
    XLSX = "xlsx"
    XLS = "xls"
    TXT = "txt"


class Platform(str, Enum):
    """E-commerce platform an export came from"""
    SALLA = "salla"
    ZID = "zid"
    SHOPIFY = "shopify"
    UNKNOWN = "unknown"


class ExpenseCategory(str, Enum):
    """Closed set of expense buckets"""
    PAYMENT_GATEWAY = "payment_gateway"
    SHIPPING = "shipping"
    TAX = "tax"
    REFUND = "refund"
    OTHER = "other"


class SalesTrend(str, Enum):
    """Direction of recent weekly sales"""
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class Urgency(str, Enum):
    """Reorder urgency tier"""
    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"


class ResultSource(str, Enum):
    """Whether a step's value came from the assistant or the deterministic fallback"""
    AI = "ai"
    FALLBACK = "fallback"


# =============================================================================
# INTERNAL RECORDS
# =============================================================================

@dataclass(frozen=True)
class OrderRecord:
    """One parsed sales order. Revenue never includes costs."""
    order_id: str
    date: date
    product_name: str
    quantity: int
    revenue: Decimal
    raw_costs: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(f"quantity must be positive, got {self.quantity}")
        if self.revenue < 0:
            raise ValueError(f"revenue must not be negative, got {self.revenue}")
        for label, amount in self.raw_costs.items():
            if amount < 0:
                raise ValueError(f"cost '{label}' must not be negative, got {amount}")
        object.__setattr__(self, "raw_costs", MappingProxyType(dict(self.raw_costs)))


@dataclass(frozen=True)
class DailySalesRecord:
    """Units of one product sold on one day"""
    date: date
    product_id: str
    product_name: str
    quantity_sold: int

    def __post_init__(self):
        if self.quantity_sold < 0:
            raise ValueError(f"quantity_sold must not be negative, got {self.quantity_sold}")


@dataclass(frozen=True)
class ProductInventory:
    """Current stock for one product"""
    product_id: str
    product_name: str
    current_stock: int
    lead_time_days: Optional[int] = None

    def __post_init__(self):
        if self.current_stock < 0:
            raise ValueError(f"current_stock must not be negative, got {self.current_stock}")


# =============================================================================
# RESULT MODELS
# =============================================================================

class ResultModel(BaseModel):
    """Base for immutable result models serialized with camelCase keys"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        use_enum_values=False,
    )


class ClassifiedCost(ResultModel):
    """One raw cost bound to one category"""
    category: ExpenseCategory
    amount: Decimal
    original_label: str


class OrderProfitAnalysis(ResultModel):
    """Derived profit figures for one order"""
    order_id: str
    date: date
    product_name: str
    quantity: int
    revenue: Decimal
    total_costs: Decimal
    net_profit: Decimal
    profit_margin: Decimal
    is_profitable: bool
    classified_costs: List[ClassifiedCost] = Field(default_factory=list)


class CostBreakdown(ResultModel):
    """Total cost per expense category"""
    payment_gateway_fees: Decimal = ZERO
    shipping_costs: Decimal = ZERO
    taxes: Decimal = ZERO
    refunds: Decimal = ZERO
    other_costs: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return (
            self.payment_gateway_fees
            + self.shipping_costs
            + self.taxes
            + self.refunds
            + self.other_costs
        )


class ProfitSummary(ResultModel):
    """Aggregate profit figures across all orders"""
    total_revenue: Decimal
    total_costs: Decimal
    net_profit: Decimal
    profit_margin: Decimal
    total_orders: int
    profitable_orders: int
    unprofitable_orders: int
    period_start: Optional[date] = None
    period_end: Optional[date] = None


class ProductLossAnalysis(ResultModel):
    """A product whose orders lose money in aggregate"""
    product_name: str
    total_orders: int
    total_revenue: Decimal
    total_costs: Decimal
    net_profit: Decimal
    total_loss: Decimal
    average_loss_per_order: Decimal
    loss_reason: ExpenseCategory
    recommendation: str


class WeeklySalesData(ResultModel):
    """Sales for one Sunday-starting week"""
    week_start: date
    total_sold: int
    average_daily: float


class ProductPrediction(ResultModel):
    """Stockout forecast for one product"""
    product_id: str
    product_name: str
    current_stock: int
    average_daily_sales: float
    sales_trend: SalesTrend
    trend_percentage: float
    days_until_stockout: int
    predicted_stockout_date: date
    urgency: Urgency
    lead_time_days: int
    recommended_order_quantity: int
    recommended_order_date: date
    weekly_breakdown: List[WeeklySalesData] = Field(default_factory=list)


class SeasonalPattern(ResultModel):
    """A named period of expected demand increase"""
    period: str
    expected_demand_increase: float
    affected_products: List[str] = Field(default_factory=list)
    recommendation: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class UrgentAlert(ResultModel):
    """Critical or warning product surfaced for action"""
    product_id: str
    product_name: str
    urgency: Urgency
    current_stock: int
    days_until_stockout: int
    message: str
    recommended_action: str


class InventorySummary(ResultModel):
    """Counts and averages across all predictions"""
    total_products: int
    critical_count: int
    warning_count: int
    healthy_count: int
    total_current_stock: int
    average_days_until_stockout: int
    period_start: Optional[date] = None
    period_end: Optional[date] = None


class DataQualityReport(ResultModel):
    """Row accounting and warnings attached to every result"""
    total_rows: int
    valid_rows: int
    skipped_rows: int
    warnings: List[str] = Field(default_factory=list)
    explanation: str = ""


class SmartProfitResult(ResultModel):
    """Output of the profit audit pipeline"""
    summary: ProfitSummary
    cost_breakdown: CostBreakdown
    losing_products: List[ProductLossAnalysis] = Field(default_factory=list)
    ai_recommendations: List[str] = Field(default_factory=list)
    order_analysis: List[OrderProfitAnalysis] = Field(default_factory=list)
    data_quality: DataQualityReport
    platform: Platform = Platform.UNKNOWN
    mapping_source: ResultSource = ResultSource.FALLBACK
    recommendation_source: ResultSource = ResultSource.FALLBACK
    tokens_used: int = 0
    processing_time_ms: int = 0


class InventoryForecastResult(ResultModel):
    """Output of the inventory forecast pipeline"""
    predictions: List[ProductPrediction] = Field(default_factory=list)
    seasonality_patterns: List[SeasonalPattern] = Field(default_factory=list)
    urgent_alerts: List[UrgentAlert] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    summary: InventorySummary
    data_quality: DataQualityReport
    platform: Platform = Platform.UNKNOWN
    mapping_source: ResultSource = ResultSource.FALLBACK
    seasonality_source: ResultSource = ResultSource.FALLBACK
    recommendation_source: ResultSource = ResultSource.FALLBACK
    tokens_used: int = 0
    processing_time_ms: int = 0
