"""
Seasonality Detection

Asks the assistant to name demand-increase periods from monthly unit
totals. When it cannot (no provider, bad JSON, empty answer) a static
table keyed by the calendar month is used instead, so a forecast always
carries at least one seasonal pattern.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from profit_insights.ai.client import parse_json_content
from profit_insights.ai.fallback import StepResult, run_with_fallback
from profit_insights.config.logging import get_logger
from profit_insights.errors import ForecastProviderError, InvalidResponseError, ProviderUnavailableError
from profit_insights.models import DailySalesRecord, ProductPrediction, SeasonalPattern

SEASONALITY_PROMPT = """You are a data analyst specializing in e-commerce in Saudi Arabia and the Gulf region.
Your task is to analyze sales data and discover seasonal patterns.

Important seasons:
- Ramadan: increased demand for food and clothing
- Eid Al-Fitr: peak sales for clothing and gifts
- Eid Al-Adha: increased demand for clothing and supplies
- National Day: offers and discounts
- Summer: increased demand for electronics and entertainment
- Back to School: school supplies
- White Friday: highest sales peak

Analyze the data and identify:
1. Clear seasonal patterns
2. Products affected by each season
3. Expected demand increase percentage

Return the result in JSON format only."""


@dataclass(frozen=True)
class SeasonWindow:
    """A recurring high-demand period and the months to prepare for it"""
    period: str
    months: Tuple[int, ...]
    demand_increase: float
    recommendation: str


SEASON_CALENDAR: Tuple[SeasonWindow, ...] = (
    SeasonWindow(
        "ramadan", (1, 2, 3), 50,
        "Prepare for Ramadan by increasing stock 50% for key products",
    ),
    SeasonWindow(
        "eid_al_fitr", (3, 4), 100,
        "Eid Al-Fitr is approaching. Stock up on clothing and gift items",
    ),
    SeasonWindow(
        "eid_al_adha", (5, 6), 80,
        "Increase stock of clothing and household supplies ahead of Eid Al-Adha",
    ),
    SeasonWindow(
        "summer", (6, 7), 20,
        "Summer demand rises for electronics and entertainment. Review stock levels for these categories",
    ),
    SeasonWindow(
        "back_to_school", (8, 9), 40,
        "Increase stock of school supplies in preparation for back to school",
    ),
    SeasonWindow(
        "national_day", (9,), 30,
        "Plan National Day offers and make sure promoted products are in stock",
    ),
    SeasonWindow(
        "white_friday", (10, 11, 12, 1), 150,
        "White Friday is coming. Double stock for best-selling products",
    ),
)


def fallback_seasonal_patterns(month: int) -> List[SeasonalPattern]:
    """Seasons to prepare for in the given calendar month (never empty)"""
    return [
        SeasonalPattern(
            period=window.period,
            expected_demand_increase=window.demand_increase,
            affected_products=[],
            recommendation=window.recommendation,
        )
        for window in SEASON_CALENDAR
        if month in window.months
    ]


def monthly_totals(sales: Sequence[DailySalesRecord]) -> List[Tuple[str, int]]:
    totals: Dict[str, int] = defaultdict(int)
    for record in sales:
        totals[record.date.strftime("%Y-%m")] += record.quantity_sold
    return sorted(totals.items())


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def patterns_from_payload(payload: Any) -> List[SeasonalPattern]:
    if not isinstance(payload, dict) or not isinstance(payload.get("patterns"), list):
        raise InvalidResponseError("Response has no patterns list")

    patterns = []
    for item in payload["patterns"]:
        if not isinstance(item, dict) or not item.get("period"):
            continue
        try:
            increase = float(item.get("expectedDemandIncrease") or 0)
        except (TypeError, ValueError):
            increase = 0.0
        affected = item.get("affectedProducts")
        patterns.append(
            SeasonalPattern(
                period=str(item["period"]),
                expected_demand_increase=increase,
                affected_products=[str(p) for p in affected] if isinstance(affected, list) else [],
                recommendation=str(item.get("recommendation") or ""),
                start_date=_optional_text(item.get("startDate")),
                end_date=_optional_text(item.get("endDate")),
            )
        )
    if not patterns:
        raise InvalidResponseError("Assistant returned no seasonal patterns")
    return patterns


class SeasonalityDetector:
    """
    Seasonal demand overlay for a forecast.

    Example:
        detector = SeasonalityDetector(client)
        step = detector.detect(history.sales, predictions)
        step.value, step.source
    """

    def __init__(self, client: Optional[Any] = None, logger: Optional[Any] = None):
        self.client = client
        self.logger = get_logger(__name__, logger)

    def _ask(self, sales: Sequence[DailySalesRecord], predictions: Sequence[ProductPrediction]) -> List[SeasonalPattern]:
        if self.client is None:
            raise ProviderUnavailableError("No assistant configured")

        summary = "\n".join(f"{month}: {units} units" for month, units in monthly_totals(sales))
        products = ", ".join(p.product_name for p in predictions[:10])
        messages = [
            {"role": "system", "content": SEASONALITY_PROMPT},
            {
                "role": "user",
                "content": (
                    "Analyze the following sales data and discover seasonal patterns:\n\n"
                    f"Monthly Sales:\n{summary}\n\n"
                    f"Products: {products}\n\n"
                    "Return the result in JSON format:\n"
                    '{"patterns": [{"period": "period_id", "expectedDemandIncrease": 50, '
                    '"affectedProducts": ["product1"], "recommendation": "Specific recommendation", '
                    '"startDate": "YYYY-MM-DD", "endDate": "YYYY-MM-DD"}]}'
                ),
            },
        ]
        response = self.client.chat(messages, temperature=0.3, max_tokens=1500)
        return patterns_from_payload(parse_json_content(response.content))

    def detect(
        self,
        sales: Sequence[DailySalesRecord],
        predictions: Sequence[ProductPrediction],
        today: Optional[date] = None,
    ) -> StepResult[List[SeasonalPattern]]:
        month = (today or date.today()).month
        step = run_with_fallback(
            "seasonality",
            lambda: self._ask(sales, predictions),
            lambda: fallback_seasonal_patterns(month),
            wrap=ForecastProviderError,
            logger=self.logger,
        )
        self.logger.info("Seasonality detected", patterns=len(step.value), source=step.source.value)
        return step
