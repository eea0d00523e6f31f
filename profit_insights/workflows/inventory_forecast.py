"""
Inventory Forecast Workflow

One sales-history export in, one InventoryForecastResult out:

1. Ingest the file and validate rows
2. Map columns from a diverse sample (assistant, else keywords)
3. Parse daily sales and current stock locally
4. Predict stockouts per product
5. Urgent alerts, seasonality overlay and recommendations
"""

import time
from datetime import date
from typing import Any, Optional

from profit_insights.analytics.forecaster import InventoryForecaster, build_urgent_alerts, summarize_inventory
from profit_insights.analytics.recommendations import RecommendationSynthesizer
from profit_insights.analytics.seasonality import SeasonalityDetector
from profit_insights.config.logging import get_logger
from profit_insights.config.settings import Settings, get_settings
from profit_insights.ingestion.file_ingestor import IngestedFile
from profit_insights.metrics import record_run
from profit_insights.models import InventoryForecastResult
from profit_insights.quality.sampling import select_diverse_sample
from profit_insights.quality.validators import build_quality_report
from profit_insights.transformation.inventory_mapping import parse_sales_history
from profit_insights.transformation.schema_mapper import SchemaMapper
from profit_insights.workflows.common import check_rows, load_file, resolve_client

INVENTORY_KEYWORDS = ("sold", "quantity", "qty", "units", "sales")
INVENTORY_VALUE_KEYWORDS = ("sold", "quantity", "qty", "units")
INVENTORY_COST_KEYWORDS = ("stock", "inventory", "lead")


def forecast_ingested_file(
    ingested: IngestedFile,
    lead_time_days: Optional[int] = None,
    client: Optional[Any] = None,
    settings: Optional[Settings] = None,
    logger: Optional[Any] = None,
    today: Optional[date] = None,
) -> InventoryForecastResult:
    """Run the inventory forecast over an already ingested file"""
    started = time.perf_counter()
    settings = settings or get_settings()
    log = get_logger(__name__, logger)
    meter = resolve_client(client, settings, logger)
    today = today or date.today()

    warnings = check_rows(ingested, settings, required_keywords=(INVENTORY_KEYWORDS,))

    sample = select_diverse_sample(
        ingested.rows,
        ingested.headers,
        settings.ingestion.sample_size,
        value_keywords=INVENTORY_VALUE_KEYWORDS,
        cost_keywords=INVENTORY_COST_KEYWORDS,
    )
    mapper = SchemaMapper(meter, settings, logger=logger)
    mapping = mapper.infer_inventory_mapping(sample, ingested.headers, total_rows=ingested.row_count)

    history = parse_sales_history(
        ingested.rows,
        mapping,
        reference_date=today,
        skip_warning_ratio=settings.ingestion.skip_warning_ratio,
    )
    warnings.extend(history.warnings)
    if not history.products:
        warnings.append("No products could be read from the file")

    forecaster = InventoryForecaster(settings, logger=logger)
    params = forecaster.parameters(lead_time_days)
    predictions = forecaster.predict(history.sales, history.products, lead_time_days, today=today)
    alerts = build_urgent_alerts(predictions)

    seasonality = SeasonalityDetector(meter, logger=logger).detect(history.sales, predictions, today=today)
    recommendations = RecommendationSynthesizer(meter, settings, logger=logger).for_inventory(
        predictions, alerts, seasonality.value
    )

    dates = [record.date for record in history.sales]
    summary = summarize_inventory(
        predictions,
        period_start=min(dates) if dates else None,
        period_end=max(dates) if dates else None,
        params=params,
    )

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    result = InventoryForecastResult(
        predictions=predictions,
        seasonality_patterns=seasonality.value,
        urgent_alerts=alerts,
        recommendations=recommendations.value,
        summary=summary,
        data_quality=build_quality_report(history.total_rows, history.valid_rows, warnings),
        platform=ingested.platform,
        mapping_source=mapping.source,
        seasonality_source=seasonality.source,
        recommendation_source=recommendations.source,
        tokens_used=meter.tokens_used if meter else 0,
        processing_time_ms=elapsed_ms,
    )

    log.info(
        "Inventory forecast complete",
        filename=ingested.filename,
        products=summary.total_products,
        critical=summary.critical_count,
        warning=summary.warning_count,
        lead_time_days=params.lead_time_days,
        mapping_source=mapping.source.value,
        seasonality_source=seasonality.source.value,
        recommendation_source=recommendations.source.value,
        tokens=result.tokens_used,
        duration_ms=elapsed_ms,
    )
    record_run("inventory_forecast", elapsed_ms / 1000, history.skipped_rows, result.tokens_used)
    return result


def forecast_inventory(
    content: bytes,
    filename: str,
    mime_type: Optional[str] = None,
    lead_time_days: Optional[int] = None,
    client: Optional[Any] = None,
    settings: Optional[Settings] = None,
    logger: Optional[Any] = None,
    today: Optional[date] = None,
) -> InventoryForecastResult:
    """
    Inventory forecast for one uploaded sales-history export.

    Args:
        content: Raw file bytes
        filename: Original filename (format detection)
        lead_time_days: Supplier lead time; settings default when omitted
        client: Chat client; built from settings when omitted
        today: Date projections start from

    Raises:
        IngestionError: file is unsupported, empty, too large or corrupt
        FatalProviderError: API key rejected or credits exhausted
    """
    settings = settings or get_settings()
    ingested = load_file(content, filename, mime_type, settings, logger)
    return forecast_ingested_file(
        ingested,
        lead_time_days=lead_time_days,
        client=client,
        settings=settings,
        logger=logger,
        today=today,
    )
