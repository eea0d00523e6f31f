"""
Profit Audit Workflow

One sales export in, one SmartProfitResult out:

1. Ingest the file and validate rows
2. Map columns from a diverse sample (assistant, else keywords)
3. Parse every row locally into orders
4. Classify cost labels
5. Per-order profit, summary, cost breakdown, losing products
6. Recommendations (assistant with calculator tools, else rules)
"""

import time
from datetime import date
from typing import Any, Optional

from profit_insights.analytics.classifier import ExpenseClassifier
from profit_insights.analytics.loss_attribution import identify_losing_products
from profit_insights.analytics.profit import analyze_orders, cost_breakdown, summarize
from profit_insights.analytics.recommendations import RecommendationSynthesizer
from profit_insights.config.logging import get_logger
from profit_insights.config.settings import Settings, get_settings
from profit_insights.ingestion.file_ingestor import IngestedFile
from profit_insights.metrics import record_run
from profit_insights.models import SmartProfitResult
from profit_insights.quality.sampling import select_diverse_sample
from profit_insights.quality.validators import build_quality_report
from profit_insights.transformation.schema_mapper import SchemaMapper, parse_orders
from profit_insights.workflows.common import check_rows, load_file, resolve_client

SALES_KEYWORDS = ("total", "amount", "revenue", "price", "sales")


def audit_ingested_file(
    ingested: IngestedFile,
    client: Optional[Any] = None,
    settings: Optional[Settings] = None,
    logger: Optional[Any] = None,
    currency: str = "USD",
    reference_date: Optional[date] = None,
) -> SmartProfitResult:
    """Run the profit audit over an already ingested file"""
    started = time.perf_counter()
    settings = settings or get_settings()
    log = get_logger(__name__, logger)
    meter = resolve_client(client, settings, logger)

    warnings = check_rows(ingested, settings, required_keywords=(SALES_KEYWORDS,))

    sample = select_diverse_sample(ingested.rows, ingested.headers, settings.ingestion.sample_size)
    mapper = SchemaMapper(meter, settings, logger=logger)
    mapping = mapper.infer_mapping(sample, ingested.headers, total_rows=ingested.row_count)

    parsed = parse_orders(
        ingested.rows,
        mapping,
        reference_date=reference_date,
        skip_warning_ratio=settings.ingestion.skip_warning_ratio,
    )
    warnings.extend(parsed.warnings)
    if not parsed.orders:
        warnings.append("No valid orders were found in the file")

    labels = {label for order in parsed.orders for label in order.raw_costs}
    classifications = ExpenseClassifier(meter, settings, logger=logger).classify(labels)

    analyses = analyze_orders(parsed.orders, classifications)
    summary = summarize(analyses)
    breakdown = cost_breakdown(analyses)
    losing = identify_losing_products(analyses)

    recommendations = RecommendationSynthesizer(meter, settings, logger=logger).for_profit(
        summary, breakdown, losing, currency=currency
    )

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    result = SmartProfitResult(
        summary=summary,
        cost_breakdown=breakdown,
        losing_products=losing,
        ai_recommendations=recommendations.value,
        order_analysis=analyses,
        data_quality=build_quality_report(parsed.total_rows, len(parsed.orders), warnings),
        platform=ingested.platform,
        mapping_source=mapping.source,
        recommendation_source=recommendations.source,
        tokens_used=meter.tokens_used if meter else 0,
        processing_time_ms=elapsed_ms,
    )

    log.info(
        "Profit audit complete",
        filename=ingested.filename,
        orders=summary.total_orders,
        skipped_rows=parsed.skipped_rows,
        losing_products=len(losing),
        mapping_source=mapping.source.value,
        recommendation_source=recommendations.source.value,
        ai_calls=meter.calls if meter else 0,
        tokens=result.tokens_used,
        duration_ms=elapsed_ms,
    )
    record_run("profit_audit", elapsed_ms / 1000, parsed.skipped_rows, result.tokens_used)
    return result


def analyze_profit(
    content: bytes,
    filename: str,
    mime_type: Optional[str] = None,
    client: Optional[Any] = None,
    settings: Optional[Settings] = None,
    logger: Optional[Any] = None,
    currency: str = "USD",
    reference_date: Optional[date] = None,
) -> SmartProfitResult:
    """
    Profit audit for one uploaded sales export.

    Args:
        content: Raw file bytes
        filename: Original filename (format detection)
        mime_type: Optional mime type (format detection)
        client: Chat client; built from settings when omitted
        currency: Currency code used in recommendation text
        reference_date: Date used for rows without a readable date

    Raises:
        IngestionError: file is unsupported, empty, too large or corrupt
        FatalProviderError: API key rejected or credits exhausted
    """
    settings = settings or get_settings()
    ingested = load_file(content, filename, mime_type, settings, logger)
    return audit_ingested_file(
        ingested,
        client=client,
        settings=settings,
        logger=logger,
        currency=currency,
        reference_date=reference_date,
    )
