"""
Synthetic Data Generator

Generates realistic store exports for testing and development.
Includes:
- Sales exports in generic, Salla-like and Shopify-like header layouts,
  with shipping, gateway, tax and refund cost columns
- Occasional unusable rows (missing or negative totals)
- Daily sales-history / stock exports for inventory forecasting
"""

import random
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import polars as pl
from faker import Faker


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class SalesLayout:
    """Header names for one export layout"""
    order_id: str
    date: str
    product: str
    quantity: str
    total: str
    shipping: str
    gateway_fee: str
    tax: str
    refund: str
    extra: Optional[str] = None


SALES_LAYOUTS: Dict[str, SalesLayout] = {
    "generic": SalesLayout(
        order_id="Order ID",
        date="Date",
        product="Product",
        quantity="Quantity",
        total="Total",
        shipping="Shipping",
        gateway_fee="Gateway Fee",
        tax="Tax",
        refund="Refund",
    ),
    "salla": SalesLayout(
        order_id="salla_order",
        date="order_date",
        product="product_name",
        quantity="qty",
        total="total",
        shipping="shipping_cost",
        gateway_fee="payment_fee",
        tax="vat_tax",
        refund="refund_amount",
    ),
    "shopify": SalesLayout(
        order_id="order_number",
        date="created_date",
        product="lineitem_name",
        quantity="lineitem_quantity",
        total="subtotal",
        shipping="shipping",
        gateway_fee="transaction_fee",
        tax="taxes",
        refund="refunded_amount",
        extra="financial_status",
    ),
}

PRODUCT_TYPES = [
    "Abaya", "Perfume", "Oud Incense", "Phone Case", "Wireless Earbuds",
    "Coffee Beans", "Dates Box", "Prayer Mat", "Backpack", "Sneakers",
    "Smart Watch", "Skincare Set", "Notebook", "Water Bottle", "Desk Lamp",
]

VAT_RATE = 0.15


# =============================================================================
# GENERATORS
# =============================================================================

class ProductCatalog:
    """Named products with a base price and daily demand level"""

    def __init__(self, seed: int = 42):
        self.fake = Faker()
        self.fake.seed_instance(seed)
        self.rng = random.Random(seed)

    def generate(self, n: int = 10) -> List[Dict[str, object]]:
        products = []
        for i in range(n):
            kind = PRODUCT_TYPES[i % len(PRODUCT_TYPES)]
            products.append({
                "sku": f"SKU-{i + 1:05d}",
                "name": f"{self.fake.color_name()} {kind}",
                "price": round(self.rng.uniform(15, 450), 2),
                "daily_demand": round(self.rng.uniform(0.5, 25), 1),
            })
        return products


class SalesExportGenerator:
    """Generate a sales export with separate cost columns"""

    def __init__(self, layout: str = "generic", seed: int = 42):
        if layout not in SALES_LAYOUTS:
            raise ValueError(f"Unknown layout: {layout}. Choose from {sorted(SALES_LAYOUTS)}")
        self.layout = SALES_LAYOUTS[layout]
        self.fake = Faker()
        self.fake.seed_instance(seed)
        self.rng = random.Random(seed)
        self.catalog = ProductCatalog(seed).generate(12)

    def generate(
        self,
        n: int = 1000,
        start: Optional[date] = None,
        days: int = 90,
        bad_row_ratio: float = 0.02,
        refund_ratio: float = 0.04,
    ) -> pl.DataFrame:
        """Generate n order rows"""
        start = start or date.today() - timedelta(days=days)
        layout = self.layout
        rows = []

        for i in range(n):
            product = self.rng.choice(self.catalog)
            quantity = self.rng.choices([1, 2, 3, 4], weights=[0.70, 0.18, 0.08, 0.04])[0]
            total = round(product["price"] * quantity, 2)
            shipping = round(self.rng.uniform(12, 45), 2)
            gateway = round(total * 0.0275 + 1.0, 2)
            tax = round(total * VAT_RATE, 2)
            refund = total if self.rng.random() < refund_ratio else 0.0

            total_cell: object = total
            if self.rng.random() < bad_row_ratio:
                total_cell = self.rng.choice(["", "N/A", -total])

            row = {
                layout.order_id: f"{1000 + i}",
                layout.date: (start + timedelta(days=self.rng.randrange(days))).isoformat(),
                layout.product: product["name"],
                layout.quantity: quantity,
                layout.total: str(total_cell),
                layout.shipping: shipping,
                layout.gateway_fee: gateway,
                layout.tax: tax,
                layout.refund: refund,
            }
            if layout.extra:
                row[layout.extra] = "refunded" if refund else "paid"
            rows.append(row)

        return pl.DataFrame(rows)


class InventoryExportGenerator:
    """Generate a daily sales history with running stock levels"""

    def __init__(self, seed: int = 42):
        self.rng = np.random.default_rng(seed)
        self.catalog = ProductCatalog(seed).generate(8)

    def generate(
        self,
        days: int = 56,
        end: Optional[date] = None,
        include_lead_time: bool = False,
    ) -> pl.DataFrame:
        """One row per product per day, oldest first"""
        end = end or date.today()
        start = end - timedelta(days=days - 1)
        rows = []

        for product in self.catalog:
            demand = product["daily_demand"]
            stock = int(demand * self.rng.uniform(10, 90))
            growth = self.rng.choice([0.97, 1.0, 1.03])
            lead_time = int(self.rng.choice([7, 14, 21]))

            for offset in range(days):
                day = start + timedelta(days=offset)
                sold = int(min(stock, self.rng.poisson(demand * growth ** (offset / 7))))
                stock -= sold
                row = {
                    "Date": day.isoformat(),
                    "SKU": product["sku"],
                    "Product Name": product["name"],
                    "Units Sold": sold,
                    "Stock On Hand": stock,
                }
                if include_lead_time:
                    row["Lead Time Days"] = lead_time
                rows.append(row)

        return pl.DataFrame(rows)


# =============================================================================
# MAIN GENERATOR
# =============================================================================

class DataGenerator:
    """Write sample exports to a directory"""

    def __init__(self, output_dir: str, seed: int = 42):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.seed = seed

    def generate_all(self, n_orders: int = 5000, history_days: int = 56) -> Dict[str, Path]:
        """Generate one sales export per layout plus an inventory history"""
        outputs = {}
        for layout in SALES_LAYOUTS:
            df = SalesExportGenerator(layout, seed=self.seed).generate(n_orders)
            outputs[f"sales_{layout}"] = self._save(f"sales_{layout}", df)

        history = InventoryExportGenerator(seed=self.seed).generate(history_days, include_lead_time=True)
        outputs["inventory_history"] = self._save("inventory_history", history)
        return outputs

    def _save(self, name: str, df: pl.DataFrame) -> Path:
        path = self.output_dir / f"{name}.csv"
        df.write_csv(path)
        return path


def to_csv_bytes(df: pl.DataFrame) -> bytes:
    """Serialize a generated frame the way an upload would arrive"""
    return df.write_csv().encode("utf-8")
