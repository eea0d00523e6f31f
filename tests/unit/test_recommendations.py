"""
Unit Tests - Recommendations
"""
from datetime import date
from decimal import Decimal

import pytest

from profit_insights.analytics.forecaster import predict_product
from profit_insights.analytics.recommendations import (
    RecommendationSynthesizer,
    fallback_inventory_recommendations,
    fallback_profit_recommendations,
    format_money,
    profit_context,
    recommendations_from_content,
)
from profit_insights.config.settings import AIProviderSettings, Settings
from profit_insights.errors import InvalidResponseError, MaxIterationsExceededError, RecommendationProviderError
from profit_insights.models import (
    CostBreakdown,
    ExpenseCategory,
    ProductInventory,
    ProductLossAnalysis,
    ProfitSummary,
    ResultSource,
    SalesTrend,
    SeasonalPattern,
)

TODAY = date(2025, 1, 31)


def summary(revenue="1000", costs="100", orders=10, unprofitable=0) -> ProfitSummary:
    revenue, costs = Decimal(revenue), Decimal(costs)
    net = revenue - costs
    return ProfitSummary(
        total_revenue=revenue,
        total_costs=costs,
        net_profit=net,
        profit_margin=(net / revenue * 100).quantize(Decimal("0.01")) if revenue else Decimal("0"),
        total_orders=orders,
        profitable_orders=orders - unprofitable,
        unprofitable_orders=unprofitable,
    )


LOSER = ProductLossAnalysis(
    product_name="Widget",
    total_orders=3,
    total_revenue=Decimal("30"),
    total_costs=Decimal("45"),
    net_profit=Decimal("-15"),
    total_loss=Decimal("15"),
    average_loss_per_order=Decimal("5.00"),
    loss_reason=ExpenseCategory.SHIPPING,
    recommendation="",
)


class TestProfitFallback:
    """Tests for rule-based profit recommendations"""

    def test_healthy_store(self):
        """Test default advice when nothing is wrong"""
        result = fallback_profit_recommendations(summary(), CostBreakdown(taxes=Decimal("100")), [])

        assert result == ["Continue monitoring costs and improving profit margin."]

    def test_every_rule(self):
        """Test each threshold produces its recommendation"""
        breakdown = CostBreakdown(
            shipping_costs=Decimal("200"),
            payment_gateway_fees=Decimal("60"),
            refunds=Decimal("60"),
            taxes=Decimal("700"),
        )
        result = fallback_profit_recommendations(
            summary(costs="1020", orders=10, unprofitable=3), breakdown, [LOSER]
        )

        assert len(result) == 6
        assert result[0].startswith("Profit margin is very low")
        assert "Shipping costs represent 20.0% of revenue" in result[1]
        assert "(6.0%)" in result[2]
        assert result[4] == "You have 1 losing products. Consider discontinuing them or raising their prices."
        assert result[5].startswith("30% of your orders are unprofitable")

    def test_zero_revenue(self):
        """Test percentages are guarded when revenue is zero"""
        result = fallback_profit_recommendations(summary(revenue="0", costs="0", orders=0), CostBreakdown(), [])

        assert result == ["Profit margin is very low. Consider raising prices or reducing costs."]


class TestInventoryFallback:
    """Tests for rule-based inventory recommendations"""

    def test_healthy_inventory(self):
        """Test default advice with nothing urgent"""
        predictions = [predict_product(ProductInventory("A", "Mug", 500), 1.0, today=TODAY)]

        assert fallback_inventory_recommendations(predictions, []) == [
            "Your inventory is in good condition. Continue monitoring sales and updating forecasts weekly."
        ]

    def test_urgent_trending_and_seasonal(self):
        """Test counts and seasonal advice are combined"""
        predictions = [
            predict_product(ProductInventory("A", "Mug", 10), 10.0, today=TODAY),
            predict_product(ProductInventory("B", "Lamp", 180), 10.0, today=TODAY),
            predict_product(ProductInventory("C", "Cup", 500), 5.0, trend=SalesTrend.INCREASING, today=TODAY),
        ]
        patterns = [SeasonalPattern(period="summer", expected_demand_increase=20, recommendation="Stock fans")]
        result = fallback_inventory_recommendations(predictions, patterns)

        assert result[0].startswith("You have 1 products in critical condition")
        assert result[1].startswith("1 products need attention")
        assert result[2].startswith("1 products are experiencing increased sales")
        assert result[3] == "Stock fans"


class TestContent:
    """Tests for recommendation parsing and context"""

    def test_array(self):
        """Test a JSON array of strings"""
        assert recommendations_from_content('["a", " b "]') == ["a", "b"]

    def test_wrapped_object(self):
        """Test an object with a recommendations key"""
        assert recommendations_from_content('{"recommendations": ["a"]}') == ["a"]

    @pytest.mark.parametrize("content", ["[]", '{"advice": "x"}', '"just text"'])
    def test_unusable(self, content):
        """Test empty or wrongly shaped answers are rejected"""
        with pytest.raises(InvalidResponseError):
            recommendations_from_content(content)

    def test_format_money(self):
        """Test currency formatting"""
        assert format_money(Decimal("1234.5"), "SAR") == "SAR 1,234.50"

    def test_profit_context(self):
        """Test figures and losing products appear in the prompt"""
        text = profit_context(summary(), CostBreakdown(), [LOSER], currency="EUR")

        assert "- Total Revenue: EUR 1,000.00" in text
        assert "- Widget: Loss EUR 15.00" in text


class TestRecommendationSynthesizer:
    """Tests for RecommendationSynthesizer"""

    def test_assistant_with_tools(self, chat_script, tool_response):
        """Test assistant recommendations after a calculator round"""
        client = chat_script([
            tool_response("calculate", {"operation": "percentage", "numbers": [100, 1000]}),
            '["Negotiate shipping rates", "Bundle low-value items"]',
        ])
        step = RecommendationSynthesizer(client).for_profit(summary(), CostBreakdown(), [])

        assert step.source == ResultSource.AI
        assert step.value == ["Negotiate shipping rates", "Bundle low-value items"]
        assert client.calls[0]["tools"]
        assert "use the 'calculate' tool" in client.calls[0]["messages"][0]["content"]

    def test_iteration_cap_falls_back(self, chat_script, tool_response):
        """Test hitting the tool round cap uses the rules"""
        settings = Settings(ai=AIProviderSettings(api_key=None, max_tool_iterations=2))
        client = chat_script([tool_response("calculate", {"operation": "sum", "numbers": [1]})] * 2)
        step = RecommendationSynthesizer(client, settings).for_profit(summary(), CostBreakdown(), [])

        assert step.used_fallback
        assert isinstance(step.error, RecommendationProviderError)
        assert isinstance(step.error.__cause__, MaxIterationsExceededError)
        assert step.value == ["Continue monitoring costs and improving profit margin."]

    def test_no_assistant_inventory(self):
        """Test inventory rules without an assistant"""
        step = RecommendationSynthesizer(None).for_inventory([], [], [])

        assert step.source == ResultSource.FALLBACK
        assert step.value[0].startswith("Your inventory is in good condition")
