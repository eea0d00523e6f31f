"""
AI Step Fallback

Every AI-dependent step runs through run_with_fallback(): the caller gets
either the assistant-derived value or the deterministic fallback value,
tagged with its source. Recoverable failures are logged, never raised.
Fatal provider errors (credentials, credits) always propagate.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Type, TypeVar

from profit_insights.config.logging import get_logger
from profit_insights.errors import (
    MappingValidationError,
    MaxIterationsExceededError,
    ProfitInsightsError,
    ProviderError,
    ProviderUnavailableError,
)
from profit_insights.metrics import record_step
from profit_insights.models import ResultSource

T = TypeVar("T")

RECOVERABLE_ERRORS = (
    ProviderError,
    MappingValidationError,
    MaxIterationsExceededError,
    ValueError,
    KeyError,
    TypeError,
)


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """Outcome of one AI-dependent step"""
    value: T
    source: ResultSource
    error: Optional[Exception] = None

    @property
    def used_fallback(self) -> bool:
        return self.source == ResultSource.FALLBACK


def run_with_fallback(
    step: str,
    primary: Callable[[], T],
    fallback: Callable[[], T],
    wrap: Optional[Type[ProfitInsightsError]] = None,
    logger: Optional[Any] = None,
) -> StepResult[T]:
    """
    Run the AI path, substituting the fallback on any recoverable error.

    Args:
        step: Step name for logs
        primary: AI-backed computation
        fallback: Deterministic computation
        wrap: Step-specific error type recorded on the result
        logger: Injected structured logger

    Returns:
        StepResult with source "ai" or "fallback"
    """
    log = get_logger(__name__, logger).bind(step=step)
    try:
        value = primary()
    except RECOVERABLE_ERRORS as e:
        error: Exception = e
        if wrap is not None and not isinstance(e, wrap):
            error = wrap(str(e))
            error.__cause__ = e
        if isinstance(e, ProviderUnavailableError):
            log.info("AI step skipped, using fallback", reason=str(e))
        else:
            log.warning(
                "AI step failed, using fallback",
                error=str(e),
                error_type=type(e).__name__,
            )
        record_step(step, ResultSource.FALLBACK)
        return StepResult(value=fallback(), source=ResultSource.FALLBACK, error=error)

    log.debug("AI step succeeded")
    record_step(step, ResultSource.AI)
    return StepResult(value=value, source=ResultSource.AI)
