"""
Loss Attribution

Groups analysed orders by product, keeps products whose aggregate net
profit is negative, and names the expense category that cost the most.
"""

from collections import OrderedDict, defaultdict
from decimal import Decimal
from typing import Dict, List, Sequence

from profit_insights.models import (
    ZERO,
    ExpenseCategory,
    OrderProfitAnalysis,
    ProductLossAnalysis,
    to_money,
)

LOSS_RECOMMENDATIONS: Dict[ExpenseCategory, str] = {
    ExpenseCategory.SHIPPING: (
        'High shipping costs for "{product}". Consider raising product price '
        "or offering free shipping above a threshold."
    ),
    ExpenseCategory.PAYMENT_GATEWAY: (
        'Payment gateway fees are eating profits for "{product}". Consider '
        "encouraging cash on delivery or bank transfer."
    ),
    ExpenseCategory.REFUND: (
        'High return rate for "{product}". Review product quality or description in store.'
    ),
    ExpenseCategory.TAX: (
        'Taxes are affecting profitability of "{product}". Ensure tax is included in selling price.'
    ),
    ExpenseCategory.OTHER: 'Review additional costs for "{product}" and try to reduce them.',
}

# Tie-break order when two categories cost the same
_CATEGORY_ORDER = (
    ExpenseCategory.PAYMENT_GATEWAY,
    ExpenseCategory.SHIPPING,
    ExpenseCategory.TAX,
    ExpenseCategory.REFUND,
    ExpenseCategory.OTHER,
)


def dominant_category(costs: Dict[ExpenseCategory, Decimal]) -> ExpenseCategory:
    best = ExpenseCategory.OTHER
    best_amount = None
    for category in _CATEGORY_ORDER:
        amount = costs.get(category, ZERO)
        if best_amount is None or amount > best_amount:
            best, best_amount = category, amount
    return best


def product_recommendation(product_name: str, reason: ExpenseCategory) -> str:
    return LOSS_RECOMMENDATIONS[reason].format(product=product_name)


def identify_losing_products(analyses: Sequence[OrderProfitAnalysis]) -> List[ProductLossAnalysis]:
    """
    Losing products, largest total loss first.

    Args:
        analyses: Per-order profit analysis

    Returns:
        One ProductLossAnalysis per product with negative aggregate profit
    """
    by_product: "OrderedDict[str, List[OrderProfitAnalysis]]" = OrderedDict()
    for analysis in analyses:
        by_product.setdefault(analysis.product_name, []).append(analysis)

    losing: List[ProductLossAnalysis] = []
    for product_name, orders in by_product.items():
        revenue = sum((o.revenue for o in orders), ZERO)
        costs = sum((o.total_costs for o in orders), ZERO)
        net = revenue - costs
        if net >= 0:
            continue

        per_category: Dict[ExpenseCategory, Decimal] = defaultdict(lambda: ZERO)
        for order in orders:
            for cost in order.classified_costs:
                per_category[cost.category] += cost.amount

        reason = dominant_category(per_category)
        loss = -net
        losing.append(
            ProductLossAnalysis(
                product_name=product_name,
                total_orders=len(orders),
                total_revenue=revenue,
                total_costs=costs,
                net_profit=net,
                total_loss=loss,
                average_loss_per_order=to_money(loss / len(orders)),
                loss_reason=reason,
                recommendation=product_recommendation(product_name, reason),
            )
        )

    # sorted() is stable, so equal losses keep first-seen product order
    return sorted(losing, key=lambda p: p.total_loss, reverse=True)
