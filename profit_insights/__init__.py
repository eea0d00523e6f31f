"""
E-Commerce Profit Insights

Order-level profit audit and inventory stockout forecasting for store
exports, with an optional AI assistant for column mapping, expense
classification, seasonality and recommendations.
"""

__version__ = "1.0.0"
