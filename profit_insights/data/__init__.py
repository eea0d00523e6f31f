"""
Data Generation Module
"""
from .generators import (
    DataGenerator,
    InventoryExportGenerator,
    ProductCatalog,
    SalesExportGenerator,
    to_csv_bytes,
)

__all__ = [
    "DataGenerator",
    "InventoryExportGenerator",
    "ProductCatalog",
    "SalesExportGenerator",
    "to_csv_bytes",
]
