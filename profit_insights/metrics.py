"""
Prometheus Metrics

Process-wide counters for analysis runs and assistant usage, exposed by the
API at /metrics.
"""

from prometheus_client import Counter, Histogram

from profit_insights.models import ResultSource


# =============================================================================
# METRICS
# =============================================================================

ANALYSES_COMPLETED = Counter(
    "profit_insights_analyses_total",
    "Completed analysis runs",
    ["workflow"],
)

ANALYSIS_DURATION = Histogram(
    "profit_insights_analysis_seconds",
    "Time spent on one analysis run",
    ["workflow"],
    buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120, 300),
)

ROWS_SKIPPED = Counter(
    "profit_insights_rows_skipped_total",
    "Rows skipped while parsing uploads",
    ["workflow"],
)

AI_STEPS = Counter(
    "profit_insights_ai_steps_total",
    "AI-dependent steps by the source of their result",
    ["step", "source"],
)

AI_TOKENS = Counter(
    "profit_insights_ai_tokens_total",
    "Provider tokens used",
    ["workflow"],
)


def record_step(step: str, source: ResultSource) -> None:
    AI_STEPS.labels(step=step, source=source.value).inc()


def record_run(workflow: str, duration_seconds: float, skipped_rows: int, tokens_used: int) -> None:
    """Record one finished workflow run"""
    ANALYSES_COMPLETED.labels(workflow=workflow).inc()
    ANALYSIS_DURATION.labels(workflow=workflow).observe(duration_seconds)
    if skipped_rows:
        ROWS_SKIPPED.labels(workflow=workflow).inc(skipped_rows)
    if tokens_used:
        AI_TOKENS.labels(workflow=workflow).inc(tokens_used)
