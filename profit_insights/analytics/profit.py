"""
Profit Engine

Decimal per-order profit, the run summary and the per-category cost
breakdown. Nothing here touches binary floating point.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Mapping, Sequence

from profit_insights.calculator import profit_margin
from profit_insights.models import (
    ZERO,
    ClassifiedCost,
    CostBreakdown,
    ExpenseCategory,
    OrderProfitAnalysis,
    OrderRecord,
    ProfitSummary,
    to_money,
)


def analyze_order(
    order: OrderRecord,
    classifications: Mapping[str, ExpenseCategory],
) -> OrderProfitAnalysis:
    classified = [
        ClassifiedCost(
            category=classifications.get(label, ExpenseCategory.OTHER),
            amount=amount,
            original_label=label,
        )
        for label, amount in order.raw_costs.items()
    ]
    total_costs = sum((cost.amount for cost in classified), ZERO)
    net = order.revenue - total_costs

    return OrderProfitAnalysis(
        order_id=order.order_id,
        date=order.date,
        product_name=order.product_name,
        quantity=order.quantity,
        revenue=order.revenue,
        total_costs=total_costs,
        net_profit=net,
        profit_margin=to_money(profit_margin(net, order.revenue)),
        is_profitable=net > 0,
        classified_costs=classified,
    )


def analyze_orders(
    orders: Sequence[OrderRecord],
    classifications: Mapping[str, ExpenseCategory],
) -> List[OrderProfitAnalysis]:
    return [analyze_order(order, classifications) for order in orders]


def summarize(analyses: Sequence[OrderProfitAnalysis]) -> ProfitSummary:
    """Aggregate figures; sums are exact, only the margin is rounded"""
    total_revenue = sum((a.revenue for a in analyses), ZERO)
    total_costs = sum((a.total_costs for a in analyses), ZERO)
    net = total_revenue - total_costs
    profitable = sum(1 for a in analyses if a.is_profitable)
    dates = [a.date for a in analyses]

    return ProfitSummary(
        total_revenue=total_revenue,
        total_costs=total_costs,
        net_profit=net,
        profit_margin=to_money(profit_margin(net, total_revenue)),
        total_orders=len(analyses),
        profitable_orders=profitable,
        unprofitable_orders=len(analyses) - profitable,
        period_start=min(dates) if dates else None,
        period_end=max(dates) if dates else None,
    )


def cost_breakdown(analyses: Sequence[OrderProfitAnalysis]) -> CostBreakdown:
    totals: Dict[ExpenseCategory, Decimal] = defaultdict(lambda: ZERO)
    for analysis in analyses:
        for cost in analysis.classified_costs:
            totals[cost.category] += cost.amount

    return CostBreakdown(
        payment_gateway_fees=totals[ExpenseCategory.PAYMENT_GATEWAY],
        shipping_costs=totals[ExpenseCategory.SHIPPING],
        taxes=totals[ExpenseCategory.TAX],
        refunds=totals[ExpenseCategory.REFUND],
        other_costs=totals[ExpenseCategory.OTHER],
    )
