"""
Schema Mapper

Maps arbitrary export headers onto the fields the analytics need.

The assistant sees only a diverse sample and returns a column mapping,
never row values. The mapping is validated against the real headers and
then applied to every row locally. Any assistant failure (no key, timeout,
malformed JSON, invalid mapping) falls back to keyword heuristics.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from profit_insights.ai.client import parse_json_content
from profit_insights.ai.fallback import run_with_fallback
from profit_insights.config import Settings, get_settings
from profit_insights.config.logging import get_logger
from profit_insights.errors import (
    InvalidResponseError,
    MappingValidationError,
    ProviderUnavailableError,
)
from profit_insights.models import OrderRecord, ResultSource
from profit_insights.quality.sampling import format_sample_for_prompt
from profit_insights.quality.validators import validate_column_mapping
from profit_insights.transformation.cleaners import (
    clean_text,
    is_blank,
    parse_date,
    parse_decimal,
    parse_quantity,
)
from profit_insights.transformation.inventory_mapping import InventoryColumnMapping

REVENUE_KEYWORDS = ("total", "amount", "revenue", "sales")
UNIT_PRICE_KEYWORDS = ("unitprice", "unit_price", "price")
COST_KEYWORDS = ("shipping", "fee", "tax", "refund", "cost")
ORDER_ID_KEYWORDS = ("id", "order", "number", "invoice")
DATE_KEYWORDS = ("date",)
PRODUCT_KEYWORDS = ("product", "name", "item", "description")
QUANTITY_KEYWORDS = ("quantity", "qty")

UNKNOWN_PRODUCT = "Unknown Product"

SALES_MAPPING_PROMPT = """You are a data analyst specializing in e-commerce sales files. Your task is to identify which columns hold which sales fields.

CRITICAL RULES:
1. Revenue/Total Price is the SALE AMOUNT for the order (what the customer paid for products)
2. Costs are SEPARATE columns like: shipping, fees, tax, refund - these are NOT part of revenue
3. Do NOT add costs to revenue
4. If there is a "Total" or "Revenue" column with the full order amount, map it to "revenue"
5. If there is only a "UnitPrice" or "Price" column, map it to "unitPrice" and leave "revenue" null; revenue will be computed as unitPrice x quantity

Return ONLY JSON in this format, using exact column names from the file:
{
  "columnMapping": {
    "orderId": "column_name_for_order_id",
    "date": "column_name_for_date",
    "productName": "column_name_for_product",
    "quantity": "column_name_for_quantity",
    "revenue": "column_name_for_total_revenue",
    "unitPrice": "column_name_for_unit_price_if_no_total",
    "costs": ["cost_column_1", "cost_column_2"]
  }
}"""

INVENTORY_MAPPING_PROMPT = """You are a data analyst specializing in inventory management. Your task is to identify which columns of a sales-history / inventory file hold which fields, regardless of the column names used.

Return ONLY JSON in this format, using exact column names from the file (null when a field is absent):
{
  "columnMapping": {
    "date": "column_name_for_sale_date",
    "productId": "column_name_for_sku_or_product_id",
    "productName": "column_name_for_product_name",
    "quantitySold": "column_name_for_units_sold",
    "currentStock": "column_name_for_stock_on_hand",
    "leadTimeDays": "column_name_for_supplier_lead_time"
  }
}"""


def _matches(header: str, keywords: Sequence[str]) -> bool:
    name = header.lower()
    return any(kw in name for kw in keywords)


def _column(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MappingValidationError([f"Field \"{key}\" must be a column name"])
    return value if value.strip() else None


@dataclass(frozen=True)
class ColumnMapping:
    """Validated pointers from sales fields to header names"""
    order_id: Optional[str] = None
    date: Optional[str] = None
    product_name: Optional[str] = None
    quantity: Optional[str] = None
    revenue: Optional[str] = None
    unit_price: Optional[str] = None
    costs: Tuple[str, ...] = field(default_factory=tuple)
    source: ResultSource = ResultSource.FALLBACK

    @property
    def resolves_revenue(self) -> bool:
        return self.revenue is not None or (
            self.unit_price is not None and self.quantity is not None
        )

    def fields(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "date": self.date,
            "productName": self.product_name,
            "quantity": self.quantity,
            "revenue": self.revenue,
            "unitPrice": self.unit_price,
            "costs": list(self.costs),
        }

    def validate(self, headers: Sequence[str]) -> List[str]:
        """Return every problem with this mapping for the given headers"""
        errors = validate_column_mapping(self.fields(), headers)
        if not self.resolves_revenue:
            errors.append("Mapping needs a revenue column, or unit price and quantity columns")
        for column in self.costs:
            if column in (self.revenue, self.unit_price):
                errors.append(f"Column \"{column}\" cannot be both revenue and a cost")
        return errors

    def ensure_valid(self, headers: Sequence[str]) -> "ColumnMapping":
        errors = self.validate(headers)
        if errors:
            raise MappingValidationError(errors)
        return self

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ColumnMapping":
        """
        Build a mapping from the assistant's camelCase JSON.

        Raises:
            MappingValidationError: payload is not shaped like a mapping
        """
        if not isinstance(payload, Mapping):
            raise MappingValidationError(["Column mapping must be a JSON object"])

        costs = payload.get("costs") or []
        if isinstance(costs, str):
            costs = [costs]
        if not isinstance(costs, list) or not all(isinstance(c, str) for c in costs):
            raise MappingValidationError(["\"costs\" must be a list of column names"])

        return cls(
            order_id=_column(payload, "orderId"),
            date=_column(payload, "date"),
            product_name=_column(payload, "productName"),
            quantity=_column(payload, "quantity"),
            revenue=_column(payload, "revenue"),
            unit_price=_column(payload, "unitPrice"),
            costs=tuple(dict.fromkeys(c for c in costs if c.strip())),
            source=ResultSource.AI,
        )

    @classmethod
    def from_keywords(cls, headers: Sequence[str]) -> "ColumnMapping":
        """Keyword heuristic used whenever the assistant cannot provide a mapping"""
        revenue = unit_price = None
        costs: List[str] = []

        for header in headers:
            if _matches(header, COST_KEYWORDS):
                costs.append(header)
            elif revenue is None and _matches(header, REVENUE_KEYWORDS):
                revenue = header
            elif unit_price is None and _matches(header, UNIT_PRICE_KEYWORDS):
                unit_price = header

        taken = set(costs) | {revenue, unit_price}
        free = [h for h in headers if h not in taken]

        def first(keywords: Sequence[str], exclude: Sequence[Optional[str]] = ()) -> Optional[str]:
            return next(
                (h for h in free if h not in exclude and _matches(h, keywords)),
                None,
            )

        quantity = first(QUANTITY_KEYWORDS)
        date_col = first(DATE_KEYWORDS, exclude=[quantity])
        product = next(
            (h for h in free
             if h not in (quantity, date_col)
             and _matches(h, PRODUCT_KEYWORDS)
             and not _matches(h, ORDER_ID_KEYWORDS)),
            None,
        ) or first(PRODUCT_KEYWORDS, exclude=[quantity, date_col])
        order_id = first(ORDER_ID_KEYWORDS, exclude=[quantity, date_col, product])

        return cls(
            order_id=order_id,
            date=date_col,
            product_name=product,
            quantity=quantity,
            revenue=revenue,
            unit_price=unit_price,
            costs=tuple(costs),
            source=ResultSource.FALLBACK,
        )


@dataclass(frozen=True)
class SalesParseResult:
    """Orders parsed from every row plus skip accounting"""
    orders: Tuple[OrderRecord, ...]
    total_rows: int
    skipped_rows: int
    warnings: Tuple[str, ...] = field(default_factory=tuple)
    period_start: Optional[date] = None
    period_end: Optional[date] = None

    @property
    def skip_ratio(self) -> float:
        return self.skipped_rows / self.total_rows if self.total_rows else 0.0


def _revenue_for(row: Mapping[str, Any], mapping: ColumnMapping, quantity: int) -> Optional[Decimal]:
    if mapping.revenue is not None and not is_blank(row.get(mapping.revenue)):
        return parse_decimal(row.get(mapping.revenue))
    if mapping.unit_price is not None and not is_blank(row.get(mapping.unit_price)):
        price = parse_decimal(row.get(mapping.unit_price))
        return price * quantity if price is not None else None
    return None


def parse_orders(
    rows: Sequence[Mapping[str, Any]],
    mapping: ColumnMapping,
    reference_date: Optional[date] = None,
    skip_warning_ratio: float = 0.30,
) -> SalesParseResult:
    """
    Apply a mapping to every row.

    Rows whose revenue is missing, unparseable or not positive are skipped
    and counted. No assistant calls happen here.
    """
    reference_date = reference_date or date.today()
    orders: List[OrderRecord] = []
    warnings: List[str] = []
    skipped = 0
    undated = 0

    if not mapping.resolves_revenue:
        warnings.append("No revenue or unit price column could be identified")

    for idx, row in enumerate(rows):
        quantity = parse_quantity(row.get(mapping.quantity)) if mapping.quantity else 1
        revenue = _revenue_for(row, mapping, quantity)
        if revenue is None or revenue <= 0:
            skipped += 1
            continue

        costs: Dict[str, Decimal] = {}
        for column in mapping.costs:
            amount = parse_decimal(row.get(column))
            if amount is not None and amount != 0:
                costs[column] = abs(amount)

        order_date = parse_date(row.get(mapping.date)) if mapping.date else None
        if order_date is None:
            undated += 1
            order_date = reference_date

        orders.append(OrderRecord(
            order_id=clean_text(row.get(mapping.order_id) if mapping.order_id else None,
                                default=f"order-{idx + 1}"),
            date=order_date,
            product_name=clean_text(row.get(mapping.product_name) if mapping.product_name else None,
                                    default=UNKNOWN_PRODUCT),
            quantity=quantity,
            revenue=revenue,
            raw_costs=costs,
        ))

    total = len(rows)
    if undated and mapping.date:
        warnings.append(f"{undated} rows had a missing or invalid date; the analysis date was used")
    if total and skipped / total > skip_warning_ratio:
        pct = round(skipped / total * 100)
        warnings.append(
            f"{skipped} of {total} rows ({pct}%) were skipped because revenue was missing or not positive"
        )

    dates = [o.date for o in orders]
    return SalesParseResult(
        orders=tuple(orders),
        total_rows=total,
        skipped_rows=skipped,
        warnings=tuple(warnings),
        period_start=min(dates) if dates else None,
        period_end=max(dates) if dates else None,
    )


class SchemaMapper:
    """
    Infers column mappings with the assistant, falling back to keywords.

    Example:
        mapper = SchemaMapper(client)
        mapping = mapper.infer_mapping(sample_rows, headers, total_rows=len(rows))
        parsed = parse_orders(rows, mapping)
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

    def _ask_for_mapping(
        self,
        system_prompt: str,
        sample_rows: Sequence[Mapping[str, Any]],
        headers: Sequence[str],
        total_rows: int,
    ) -> Mapping[str, Any]:
        if self.client is None:
            raise ProviderUnavailableError("No assistant configured")

        preview = format_sample_for_prompt(headers, sample_rows, total_rows)
        messages = [
            {
                "role": "system",
                "content": system_prompt
                + f"\n\nReturn the column mapping so we can parse ALL {total_rows} rows locally.",
            },
            {"role": "user", "content": f"Analyze the following data columns:\n\n{preview}"},
        ]
        response = self.client.chat(messages, temperature=0.1, max_tokens=2000)
        payload = parse_json_content(response.content)
        if not isinstance(payload, dict) or not isinstance(payload.get("columnMapping"), dict):
            raise InvalidResponseError("Response has no columnMapping object")
        return payload["columnMapping"]

    def infer_mapping(
        self,
        sample_rows: Sequence[Mapping[str, Any]],
        headers: Sequence[str],
        total_rows: Optional[int] = None,
    ) -> ColumnMapping:
        """Column mapping for a sales export"""
        total = total_rows if total_rows is not None else len(sample_rows)

        def primary() -> ColumnMapping:
            payload = self._ask_for_mapping(SALES_MAPPING_PROMPT, sample_rows, headers, total)
            return ColumnMapping.from_payload(payload).ensure_valid(headers)

        result = run_with_fallback(
            "sales_mapping",
            primary,
            lambda: ColumnMapping.from_keywords(headers),
            logger=self.logger,
        )
        self.logger.info("Sales mapping resolved", source=result.source.value, **result.value.fields())
        return result.value

    def infer_inventory_mapping(
        self,
        sample_rows: Sequence[Mapping[str, Any]],
        headers: Sequence[str],
        total_rows: Optional[int] = None,
    ) -> InventoryColumnMapping:
        """Column mapping for a sales-history / inventory export"""
        total = total_rows if total_rows is not None else len(sample_rows)

        def primary() -> InventoryColumnMapping:
            payload = self._ask_for_mapping(INVENTORY_MAPPING_PROMPT, sample_rows, headers, total)
            return InventoryColumnMapping.from_payload(payload).ensure_valid(headers)

        result = run_with_fallback(
            "inventory_mapping",
            primary,
            lambda: InventoryColumnMapping.from_keywords(headers),
            logger=self.logger,
        )
        self.logger.info("Inventory mapping resolved", source=result.source.value, **result.value.fields())
        return result.value

