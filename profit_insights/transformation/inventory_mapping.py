"""
Inventory Column Mapping

Mapping and local parsing for sales-history / stock exports. Produces
per-day sales records and one ProductInventory per product, where current
stock is the value on the product's latest dated row.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from profit_insights.errors import MappingValidationError
from profit_insights.models import DailySalesRecord, ProductInventory, ResultSource
from profit_insights.quality.validators import validate_column_mapping
from profit_insights.transformation.cleaners import clean_text, parse_count, parse_date

LEAD_TIME_KEYWORDS = ("lead",)
STOCK_KEYWORDS = ("stock", "inventory", "on_hand", "available")
SOLD_KEYWORDS = ("sold", "quantity", "qty", "units", "sales")
DATE_KEYWORDS = ("date", "day")
PRODUCT_ID_KEYWORDS = ("sku", "product_id", "id", "code")
PRODUCT_NAME_KEYWORDS = ("product", "name", "item", "title")


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
class InventoryColumnMapping:
    """Pointers from inventory fields to header names"""
    date: Optional[str] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    quantity_sold: Optional[str] = None
    current_stock: Optional[str] = None
    lead_time_days: Optional[str] = None
    source: ResultSource = ResultSource.FALLBACK

    def fields(self) -> Dict[str, Optional[str]]:
        return {
            "date": self.date,
            "productId": self.product_id,
            "productName": self.product_name,
            "quantitySold": self.quantity_sold,
            "currentStock": self.current_stock,
            "leadTimeDays": self.lead_time_days,
        }

    def validate(self, headers: Sequence[str]) -> List[str]:
        errors = validate_column_mapping(self.fields(), headers)
        if self.quantity_sold is None:
            errors.append("Mapping needs a units-sold column")
        if self.product_id is None and self.product_name is None:
            errors.append("Mapping needs a product id or product name column")
        return errors

    def ensure_valid(self, headers: Sequence[str]) -> "InventoryColumnMapping":
        errors = self.validate(headers)
        if errors:
            raise MappingValidationError(errors)
        return self

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "InventoryColumnMapping":
        if not isinstance(payload, Mapping):
            raise MappingValidationError(["Column mapping must be a JSON object"])
        return cls(
            date=_column(payload, "date"),
            product_id=_column(payload, "productId"),
            product_name=_column(payload, "productName"),
            quantity_sold=_column(payload, "quantitySold"),
            current_stock=_column(payload, "currentStock"),
            lead_time_days=_column(payload, "leadTimeDays"),
            source=ResultSource.AI,
        )

    @classmethod
    def from_keywords(cls, headers: Sequence[str]) -> "InventoryColumnMapping":
        """Assign the most specific fields first so "Lead Time Days" is not read as a date"""
        taken: List[str] = []

        def pick(keywords: Sequence[str]) -> Optional[str]:
            for header in headers:
                if header not in taken and _matches(header, keywords):
                    taken.append(header)
                    return header
            return None

        lead = pick(LEAD_TIME_KEYWORDS)
        stock = pick(STOCK_KEYWORDS)
        sold = pick(SOLD_KEYWORDS)
        day = pick(DATE_KEYWORDS)
        product_id = pick(PRODUCT_ID_KEYWORDS)
        product_name = pick(PRODUCT_NAME_KEYWORDS)

        return cls(
            date=day,
            product_id=product_id,
            product_name=product_name,
            quantity_sold=sold,
            current_stock=stock,
            lead_time_days=lead,
            source=ResultSource.FALLBACK,
        )


@dataclass(frozen=True)
class SalesHistory:
    """Parsed sales history and current stock per product"""
    sales: Tuple[DailySalesRecord, ...]
    products: Tuple[ProductInventory, ...]
    total_rows: int
    skipped_rows: int
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def valid_rows(self) -> int:
        return self.total_rows - self.skipped_rows


def parse_sales_history(
    rows: Sequence[Mapping[str, Any]],
    mapping: InventoryColumnMapping,
    reference_date: Optional[date] = None,
    skip_warning_ratio: float = 0.30,
) -> SalesHistory:
    """
    Apply an inventory mapping to every row.

    Rows without a product or with an unreadable date are skipped.
    Units sold on the same day for the same product are summed.
    """
    reference_date = reference_date or date.today()
    warnings: List[str] = []
    skipped = 0

    if mapping.quantity_sold is None:
        warnings.append("No units-sold column could be identified")
    if mapping.current_stock is None:
        warnings.append("No stock column could be identified; current stock is treated as 0")
    if mapping.date is None:
        warnings.append("No date column could be identified; all sales are dated on the analysis date")

    daily: Dict[Tuple[date, str], int] = defaultdict(int)
    names: Dict[str, str] = {}
    latest_stock: Dict[str, Tuple[date, int]] = {}
    lead_times: Dict[str, Tuple[date, int]] = {}

    for row in rows:
        product_id = clean_text(row.get(mapping.product_id) if mapping.product_id else None)
        product_name = clean_text(row.get(mapping.product_name) if mapping.product_name else None)
        if not product_id and not product_name:
            skipped += 1
            continue
        product_id = product_id or product_name

        if mapping.date:
            day = parse_date(row.get(mapping.date))
            if day is None:
                skipped += 1
                continue
        else:
            day = reference_date
        names.setdefault(product_id, product_name or product_id)

        sold = parse_count(row.get(mapping.quantity_sold)) if mapping.quantity_sold else None
        daily[(day, product_id)] += sold or 0

        if mapping.current_stock:
            stock = parse_count(row.get(mapping.current_stock))
            if stock is not None and (product_id not in latest_stock or day >= latest_stock[product_id][0]):
                latest_stock[product_id] = (day, stock)

        if mapping.lead_time_days:
            lead = parse_count(row.get(mapping.lead_time_days))
            if lead and (product_id not in lead_times or day >= lead_times[product_id][0]):
                lead_times[product_id] = (day, lead)

    sales = tuple(
        DailySalesRecord(
            date=day,
            product_id=product_id,
            product_name=names[product_id],
            quantity_sold=units,
        )
        for (day, product_id), units in sorted(daily.items())
    )
    products = tuple(
        ProductInventory(
            product_id=product_id,
            product_name=names[product_id],
            current_stock=latest_stock.get(product_id, (reference_date, 0))[1],
            lead_time_days=lead_times[product_id][1] if product_id in lead_times else None,
        )
        for product_id in sorted(names)
    )

    total = len(rows)
    if total and skipped / total > skip_warning_ratio:
        pct = round(skipped / total * 100)
        warnings.append(
            f"{skipped} of {total} rows ({pct}%) were skipped because the product or date was missing"
        )

    return SalesHistory(
        sales=sales,
        products=products,
        total_rows=total,
        skipped_rows=skipped,
        warnings=tuple(warnings),
    )
