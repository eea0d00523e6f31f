"""
Data Transformation Module

Mapping modules (schema_mapper, inventory_mapping) are imported directly;
they depend on the quality package, which itself uses these cleaners.
"""
from .cleaners import clean_text, is_blank, parse_count, parse_date, parse_decimal, parse_quantity

__all__ = [
    "clean_text",
    "is_blank",
    "parse_count",
    "parse_date",
    "parse_decimal",
    "parse_quantity",
]
