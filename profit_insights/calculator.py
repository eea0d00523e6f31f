"""
Financial Calculator

Decimal arithmetic shared by the profit engine and the assistant's
calculator tools. Rounding is ROUND_HALF_UP throughout.

Division guards:
- divide() raises CalculationGuardError on a zero divisor
- percentage(), profit_margin(), roi() and average() return 0 instead
"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from profit_insights.errors import CalculationGuardError
from profit_insights.models import ZERO, to_money

HUNDRED = Decimal("100")


class Operation(str, Enum):
    """Operations exposed through calculate()"""
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    PERCENTAGE = "percentage"
    PROFIT_MARGIN = "profit_margin"
    NET_PROFIT = "net_profit"
    ROI = "roi"
    SUM = "sum"
    AVERAGE = "average"


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number or numeric string without binary float artefacts"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("Boolean is not a number")
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(str(value))


def round_to(value: Decimal, places: int = 2) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def add(numbers: Iterable[Decimal]) -> Decimal:
    return sum(numbers, ZERO)


def subtract(numbers: Sequence[Decimal]) -> Decimal:
    if not numbers:
        return ZERO
    result = numbers[0]
    for n in numbers[1:]:
        result -= n
    return result


def multiply(numbers: Iterable[Decimal]) -> Decimal:
    result = Decimal(1)
    for n in numbers:
        result *= n
    return result


def divide(a: Decimal, b: Decimal) -> Decimal:
    if b == 0:
        raise CalculationGuardError("Division by zero")
    return a / b


def percentage(value: Decimal, total: Decimal) -> Decimal:
    """value as a percentage of total; 0 when total is 0"""
    if total == 0:
        return ZERO
    return value / total * HUNDRED


def profit_margin(profit: Decimal, revenue: Decimal) -> Decimal:
    """Margin in percent; 0 when revenue is 0"""
    return percentage(profit, revenue)


def net_profit(revenue: Decimal, costs: Decimal) -> Decimal:
    return revenue - costs


def roi(gain: Decimal, cost: Decimal, investment: Decimal) -> Decimal:
    if investment == 0:
        return ZERO
    return (gain - cost) / investment * HUNDRED


def average(numbers: Sequence[Decimal]) -> Decimal:
    if not numbers:
        return ZERO
    return add(numbers) / len(numbers)


def _arg(numbers: Sequence[Decimal], idx: int) -> Decimal:
    if idx >= len(numbers):
        raise ValueError(f"Operation needs at least {idx + 1} numbers")
    return numbers[idx]


def calculate(
    operation: str,
    numbers: Sequence[Any],
    decimal_places: int = 2,
    currency: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run one calculator operation.

    Argument order:
        divide [a, b]; percentage [value, total]; profit_margin [profit, revenue];
        net_profit [revenue, costs]; roi [gain, cost, investment]

    Returns:
        {"value", "formatted", "precision"}

    Raises:
        CalculationGuardError: divide by zero
        ValueError: unknown operation or missing numbers
    """
    op = Operation(operation)
    nums = [to_decimal(n) for n in numbers]

    if op == Operation.ADD or op == Operation.SUM:
        result = add(nums)
    elif op == Operation.SUBTRACT:
        result = subtract(nums)
    elif op == Operation.MULTIPLY:
        result = multiply(nums)
    elif op == Operation.DIVIDE:
        result = divide(_arg(nums, 0), _arg(nums, 1))
    elif op == Operation.PERCENTAGE:
        result = percentage(_arg(nums, 0), _arg(nums, 1))
    elif op == Operation.PROFIT_MARGIN:
        result = profit_margin(_arg(nums, 0), _arg(nums, 1))
    elif op == Operation.NET_PROFIT:
        result = net_profit(_arg(nums, 0), _arg(nums, 1))
    elif op == Operation.ROI:
        result = roi(_arg(nums, 0), _arg(nums, 1), _arg(nums, 2))
    else:
        result = average(nums)

    value = round_to(result, decimal_places)
    formatted = f"{value:,.{decimal_places}f}"
    if currency:
        formatted = f"{currency} {formatted}"

    return {"value": value, "formatted": formatted, "precision": decimal_places}


def cost_breakdown(revenue: Any, costs: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """Totals, margin and each cost's share of revenue"""
    rev = to_decimal(revenue)
    items = [(str(c["category"]), to_decimal(c["amount"])) for c in costs]
    total_costs = add(amount for _, amount in items)
    profit = rev - total_costs

    return {
        "totalRevenue": to_money(rev),
        "totalCosts": to_money(total_costs),
        "netProfit": to_money(profit),
        "profitMargin": to_money(profit_margin(profit, rev)),
        "costPercentages": [
            {
                "category": category,
                "amount": to_money(amount),
                "percentage": to_money(percentage(amount, rev)),
            }
            for category, amount in items
        ],
    }


def order_profit(revenue: Any, costs: Mapping[str, Any]) -> Dict[str, Any]:
    """Profit figures for one order given labelled costs"""
    rev = to_decimal(revenue)
    total_costs = add(to_decimal(v) for v in costs.values())
    profit = rev - total_costs
    return {
        "totalCosts": to_money(total_costs),
        "netProfit": to_money(profit),
        "isProfitable": profit > 0,
        "profitMargin": to_money(profit_margin(profit, rev)),
    }


def aggregate_orders(orders: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """Totals across orders given as {revenue, costs}"""
    total_revenue = add(to_decimal(o["revenue"]) for o in orders)
    total_costs = add(to_decimal(o["costs"]) for o in orders)
    profit = total_revenue - total_costs
    return {
        "totalRevenue": to_money(total_revenue),
        "totalCosts": to_money(total_costs),
        "netProfit": to_money(profit),
        "profitMargin": to_money(profit_margin(profit, total_revenue)),
    }
