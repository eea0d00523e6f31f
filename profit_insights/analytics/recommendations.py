"""
Recommendation Synthesizer

Produces 3-5 plain-language recommendations. The assistant is offered the
calculator tools through the bounded tool-use loop; any failure (including
the loop hitting its cap) falls back to rule-based text built from the
same figures.
"""

from decimal import Decimal
from typing import Any, List, Optional, Sequence

from profit_insights.ai.client import parse_json_content
from profit_insights.ai.fallback import StepResult, run_with_fallback
from profit_insights.ai.tool_loop import ToolUseLoop
from profit_insights.calculator import percentage
from profit_insights.config.logging import get_logger
from profit_insights.config.settings import Settings, get_settings
from profit_insights.errors import InvalidResponseError, ProviderUnavailableError, RecommendationProviderError
from profit_insights.models import (
    CostBreakdown,
    ProductLossAnalysis,
    ProductPrediction,
    ProfitSummary,
    SalesTrend,
    SeasonalPattern,
    UrgentAlert,
    Urgency,
)

TOOL_INSTRUCTIONS = """IMPORTANT: When you need to calculate percentages, ratios, or any mathematical operations, use the 'calculate' tool instead of calculating yourself. This ensures accuracy.

Available operations:
- percentage: calculate what percentage one number is of another
- profit_margin: calculate profit margin from profit and revenue
- sum: add multiple numbers
- average: calculate average of numbers"""

PROFIT_RECOMMENDATIONS_PROMPT = """You are a business consultant specializing in e-commerce. Based on the profit analysis provided, give practical recommendations to improve profitability.

Provide 3-5 specific and actionable recommendations.
Focus on:
1. Reducing high costs
2. Improving profit margin
3. Dealing with losing products
4. Improving pricing strategy

Return the result as a JSON array of strings only."""

INVENTORY_RECOMMENDATIONS_PROMPT = """You are an inventory management consultant specializing in e-commerce.
Based on the inventory analysis provided, give practical recommendations to avoid stockouts.

Provide 3-5 specific and actionable recommendations.
Focus on:
1. Products that need urgent ordering
2. Suggested order quantities
3. Appropriate timing for orders
4. Preparing for upcoming seasons

Return the result as a JSON array of strings only."""


def format_money(amount: Decimal, currency: str = "USD") -> str:
    return f"{currency} {amount:,.2f}"


def recommendations_from_content(content: str) -> List[str]:
    payload = parse_json_content(content)
    if isinstance(payload, dict):
        payload = payload.get("recommendations")
    if not isinstance(payload, list):
        raise InvalidResponseError("Recommendations must be a JSON array of strings")
    items = [str(item).strip() for item in payload if str(item).strip()]
    if not items:
        raise InvalidResponseError("Assistant returned no recommendations")
    return items


def profit_context(
    summary: ProfitSummary,
    breakdown: CostBreakdown,
    losing: Sequence[ProductLossAnalysis],
    currency: str = "USD",
) -> str:
    lines = [
        "Profit Analysis:",
        f"- Total Revenue: {format_money(summary.total_revenue, currency)}",
        f"- Total Costs: {format_money(summary.total_costs, currency)}",
        f"- Net Profit: {format_money(summary.net_profit, currency)}",
        f"- Profit Margin: {summary.profit_margin:.1f}%",
        f"- Profitable Orders: {summary.profitable_orders} of {summary.total_orders}",
        "",
        "Cost Breakdown:",
        f"- Payment Gateway Fees: {format_money(breakdown.payment_gateway_fees, currency)}",
        f"- Shipping Costs: {format_money(breakdown.shipping_costs, currency)}",
        f"- Taxes: {format_money(breakdown.taxes, currency)}",
        f"- Refunds: {format_money(breakdown.refunds, currency)}",
        f"- Other Costs: {format_money(breakdown.other_costs, currency)}",
        "",
        f"Losing Products: {len(losing)}",
    ]
    lines.extend(f"- {p.product_name}: Loss {format_money(p.total_loss, currency)}" for p in losing[:3])
    return "\n".join(lines)


def inventory_context(
    predictions: Sequence[ProductPrediction],
    patterns: Sequence[SeasonalPattern],
) -> str:
    critical = [p for p in predictions if p.urgency == Urgency.CRITICAL]
    warning = [p for p in predictions if p.urgency == Urgency.WARNING]
    lines = [
        "Inventory Analysis:",
        f"- Total Products: {len(predictions)}",
        f"- Critical Products (will run out soon): {len(critical)}",
        f"- Products needing attention: {len(warning)}",
        "",
        "Critical Products:",
    ]
    lines.extend(
        f"- {p.product_name}: {p.current_stock} units remaining, "
        f"will run out in {p.days_until_stockout} days"
        for p in critical[:5]
    )
    lines.extend(["", "Seasonal Patterns Detected:"])
    lines.extend(f"- {s.period}: Expected demand increase {s.expected_demand_increase:g}%" for s in patterns)
    return "\n".join(lines)


def fallback_profit_recommendations(
    summary: ProfitSummary,
    breakdown: CostBreakdown,
    losing: Sequence[ProductLossAnalysis],
) -> List[str]:
    recommendations: List[str] = []
    revenue = summary.total_revenue

    if summary.profit_margin < 10:
        recommendations.append("Profit margin is very low. Consider raising prices or reducing costs.")

    shipping = percentage(breakdown.shipping_costs, revenue)
    if shipping > 15:
        recommendations.append(
            f"Shipping costs represent {shipping:.1f}% of revenue. Consider negotiating with "
            "shipping companies or offering free shipping above a threshold."
        )

    gateway = percentage(breakdown.payment_gateway_fees, revenue)
    if gateway > 5:
        recommendations.append(
            f"Payment gateway fees are high ({gateway:.1f}%). Encourage customers to use "
            "cash on delivery or bank transfer."
        )

    refunds = percentage(breakdown.refunds, revenue)
    if refunds > 5:
        recommendations.append(
            f"Refund rate is high ({refunds:.1f}%). Review product quality and descriptions in your store."
        )

    if losing:
        recommendations.append(
            f"You have {len(losing)} losing products. Consider discontinuing them or raising their prices."
        )

    unprofitable = percentage(Decimal(summary.unprofitable_orders), Decimal(summary.total_orders))
    if unprofitable > 20:
        recommendations.append(
            f"{unprofitable:.0f}% of your orders are unprofitable. Review your pricing strategy."
        )

    return recommendations or ["Continue monitoring costs and improving profit margin."]


def fallback_inventory_recommendations(
    predictions: Sequence[ProductPrediction],
    patterns: Sequence[SeasonalPattern],
) -> List[str]:
    recommendations: List[str] = []

    critical = sum(1 for p in predictions if p.urgency == Urgency.CRITICAL)
    if critical:
        recommendations.append(
            f"You have {critical} products in critical condition that will run out soon. "
            "Order the required quantities immediately to avoid sales disruption."
        )

    warning = sum(1 for p in predictions if p.urgency == Urgency.WARNING)
    if warning:
        recommendations.append(
            f"{warning} products need attention. Plan to order quantities within the next week."
        )

    increasing = sum(1 for p in predictions if p.sales_trend == SalesTrend.INCREASING)
    if increasing:
        recommendations.append(
            f"{increasing} products are experiencing increased sales. "
            "Consider increasing order quantities by 15-20%."
        )

    recommendations.extend(p.recommendation for p in patterns if p.recommendation)

    return recommendations or [
        "Your inventory is in good condition. Continue monitoring sales and updating forecasts weekly."
    ]


class RecommendationSynthesizer:
    """
    Assistant recommendations with rule-based fallback.

    Example:
        synthesizer = RecommendationSynthesizer(client)
        step = synthesizer.for_profit(summary, breakdown, losing)
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        settings: Optional[Settings] = None,
        logger: Optional[Any] = None,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__, logger)

    def _ask(self, system_prompt: str, context: str) -> List[str]:
        if self.client is None:
            raise ProviderUnavailableError("No assistant configured")

        loop = ToolUseLoop(
            self.client,
            max_iterations=self.settings.ai.max_tool_iterations,
            logger=self.logger,
        )
        messages = [
            {"role": "system", "content": f"{system_prompt}\n\n{TOOL_INSTRUCTIONS}"},
            {"role": "user", "content": context},
        ]
        result = loop.run(messages, temperature=0.7, max_tokens=1500)
        return recommendations_from_content(result.content)

    def for_profit(
        self,
        summary: ProfitSummary,
        breakdown: CostBreakdown,
        losing: Sequence[ProductLossAnalysis],
        currency: str = "USD",
    ) -> StepResult[List[str]]:
        return run_with_fallback(
            "profit_recommendations",
            lambda: self._ask(PROFIT_RECOMMENDATIONS_PROMPT, profit_context(summary, breakdown, losing, currency)),
            lambda: fallback_profit_recommendations(summary, breakdown, losing),
            wrap=RecommendationProviderError,
            logger=self.logger,
        )

    def for_inventory(
        self,
        predictions: Sequence[ProductPrediction],
        alerts: Sequence[UrgentAlert],
        patterns: Sequence[SeasonalPattern],
    ) -> StepResult[List[str]]:
        self.logger.debug("Synthesizing inventory recommendations", alerts=len(alerts))
        return run_with_fallback(
            "inventory_recommendations",
            lambda: self._ask(INVENTORY_RECOMMENDATIONS_PROMPT, inventory_context(predictions, patterns)),
            lambda: fallback_inventory_recommendations(predictions, patterns),
            wrap=RecommendationProviderError,
            logger=self.logger,
        )
