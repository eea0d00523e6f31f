"""
Analysis Workflows
"""
from .inventory_forecast import forecast_ingested_file, forecast_inventory
from .profit_audit import analyze_profit, audit_ingested_file

__all__ = [
    "analyze_profit",
    "audit_ingested_file",
    "forecast_inventory",
    "forecast_ingested_file",
]
