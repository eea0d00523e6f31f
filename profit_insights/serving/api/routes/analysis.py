"""
Analysis API Endpoints

Multipart upload endpoints for the profit audit and inventory forecast.
Analysis runs in the threadpool; ingestion and fatal provider errors are
turned into HTTP errors by the application's exception handlers.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from starlette.concurrency import run_in_threadpool

from profit_insights.ai.client import ChatClient
from profit_insights.config import Settings, get_settings
from profit_insights.models import InventoryForecastResult, SmartProfitResult
from profit_insights.workflows import analyze_profit, forecast_inventory

router = APIRouter()


def get_chat_client(settings: Settings = Depends(get_settings)) -> Optional[Any]:
    """Chat client for one request, or None when no API key is configured"""
    client = ChatClient(settings)
    return client if client.available else None


@router.post("/profit-audit", response_model=SmartProfitResult)
async def profit_audit(
    file: UploadFile = File(..., description="Sales export (csv, xlsx, xls, txt)"),
    currency: str = Form("USD", min_length=3, max_length=3),
    settings: Settings = Depends(get_settings),
    client: Optional[Any] = Depends(get_chat_client),
) -> SmartProfitResult:
    """
    Analyze order-level profit in a sales export.

    Returns summary, cost breakdown, losing products and recommendations.
    """
    content = await file.read()
    return await run_in_threadpool(
        analyze_profit,
        content,
        file.filename or "upload.csv",
        file.content_type,
        client=client,
        settings=settings,
        currency=currency.upper(),
    )


@router.post("/inventory-forecast", response_model=InventoryForecastResult)
async def inventory_forecast(
    file: UploadFile = File(..., description="Daily sales history export (csv, xlsx, xls, txt)"),
    lead_time_days: Optional[int] = Form(None, ge=1, le=365),
    settings: Settings = Depends(get_settings),
    client: Optional[Any] = Depends(get_chat_client),
) -> InventoryForecastResult:
    """
    Forecast stockouts per product from daily sales history.

    Returns predictions, urgent alerts, seasonal patterns and recommendations.
    """
    content = await file.read()
    return await run_in_threadpool(
        forecast_inventory,
        content,
        file.filename or "upload.csv",
        file.content_type,
        lead_time_days=lead_time_days,
        client=client,
        settings=settings,
    )
