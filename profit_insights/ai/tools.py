"""
Calculator Tools

Function-calling definitions offered to the assistant and the local
executor that answers its tool calls. Execution never raises: failures
come back to the assistant as {"error": ...} payloads.
"""

import json
from typing import Any, Callable, Dict, List

import structlog

from profit_insights import calculator
from profit_insights.ai.client import ToolCall
from profit_insights.errors import CalculationGuardError

logger = structlog.get_logger(__name__)


CALCULATOR_TOOL = {
    "type": "function",
    "function": {
        "name": "calculate",
        "description": (
            "Perform precise financial calculations. Use this for ANY math operation "
            "instead of calculating yourself. Operations: add, subtract, multiply, "
            "divide, percentage, profit_margin, net_profit, roi, sum, average"
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "operation": {
                    "type": "string",
                    "enum": [op.value for op in calculator.Operation],
                    "description": "The calculation operation to perform",
                },
                "numbers": {
                    "type": "array",
                    "items": {"type": "number"},
                    "description": (
                        "Numbers for the calculation. For profit_margin: [profit, revenue]. "
                        "For net_profit: [revenue, costs]. For roi: [gain, cost, investment]"
                    ),
                },
                "options": {
                    "type": "object",
                    "properties": {
                        "decimalPlaces": {"type": "integer"},
                        "currency": {"type": "string"},
                    },
                },
            },
            "required": ["operation", "numbers"],
        },
    },
}

COST_BREAKDOWN_TOOL = {
    "type": "function",
    "function": {
        "name": "calculate_cost_breakdown",
        "description": "Calculate detailed cost breakdown with percentages for financial analysis",
        "parameters": {
            "type": "object",
            "properties": {
                "revenue": {"type": "number", "description": "Total revenue amount"},
                "costs": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "category": {"type": "string"},
                            "amount": {"type": "number"},
                        },
                        "required": ["category", "amount"],
                    },
                    "description": "Array of cost items with category and amount",
                },
            },
            "required": ["revenue", "costs"],
        },
    },
}

ORDER_PROFIT_TOOL = {
    "type": "function",
    "function": {
        "name": "calculate_order_profit",
        "description": "Calculate profit analysis for a single order",
        "parameters": {
            "type": "object",
            "properties": {
                "revenue": {"type": "number", "description": "Order revenue"},
                "costs": {
                    "type": "object",
                    "additionalProperties": {"type": "number"},
                    "description": "Cost labels mapped to amounts",
                },
            },
            "required": ["revenue", "costs"],
        },
    },
}

AGGREGATE_ORDERS_TOOL = {
    "type": "function",
    "function": {
        "name": "aggregate_orders",
        "description": "Aggregate multiple orders to calculate totals",
        "parameters": {
            "type": "object",
            "properties": {
                "orders": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "revenue": {"type": "number"},
                            "costs": {"type": "number"},
                        },
                        "required": ["revenue", "costs"],
                    },
                    "description": "Array of orders with revenue and costs",
                },
            },
            "required": ["orders"],
        },
    },
}

CALCULATOR_TOOLS: List[Dict[str, Any]] = [
    CALCULATOR_TOOL,
    COST_BREAKDOWN_TOOL,
    ORDER_PROFIT_TOOL,
    AGGREGATE_ORDERS_TOOL,
]


def _run_calculate(args: Dict[str, Any]) -> Dict[str, Any]:
    options = args.get("options") or {}
    return calculator.calculate(
        args["operation"],
        args["numbers"],
        decimal_places=int(options.get("decimalPlaces", 2)),
        currency=options.get("currency"),
    )


HANDLERS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "calculate": _run_calculate,
    "calculate_cost_breakdown": lambda args: calculator.cost_breakdown(args["revenue"], args["costs"]),
    "calculate_order_profit": lambda args: calculator.order_profit(args["revenue"], args["costs"]),
    "aggregate_orders": lambda args: calculator.aggregate_orders(args["orders"]),
}


def execute_tool_call(call: ToolCall) -> str:
    """
    Execute one tool call locally.

    Returns:
        JSON string for the role=tool reply. Decimal values are
        serialized as strings so no precision is lost.
    """
    handler = HANDLERS.get(call.name)
    if handler is None:
        return json.dumps({"error": f"Unknown tool: {call.name}"})

    try:
        args = json.loads(call.arguments or "{}")
        if not isinstance(args, dict):
            raise ValueError("Tool arguments must be a JSON object")
        result = handler(args)
    except CalculationGuardError as e:
        return json.dumps({"error": str(e)})
    except (ValueError, KeyError, TypeError, ArithmeticError) as e:
        logger.debug("Tool call failed", tool=call.name, error=str(e))
        return json.dumps({"error": f"Tool execution failed: {e}"})

    return json.dumps(result, default=str)
