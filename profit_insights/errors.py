"""
Error Taxonomy

Exceptions raised across the ingestion, mapping, AI and analytics layers.

Fatal to the caller:
- IngestionError and its subclasses (unsupported, corrupt, empty, too large)
- FatalProviderError (invalid credentials, insufficient credits)

Recoverable (handled by a deterministic fallback and logged):
- MappingValidationError
- ProviderError and the per-step provider errors
- MaxIterationsExceededError
"""

from typing import List, Optional


class ProfitInsightsError(Exception):
    """Base class for all package errors"""


# =============================================================================
# INGESTION
# =============================================================================

class IngestionError(ProfitInsightsError):
    """File could not be turned into rows"""


class UnsupportedFormatError(IngestionError):
    """File extension / mime type is not csv, xlsx, xls or txt"""


class EmptyFileError(IngestionError):
    """File has no usable rows"""


class FileTooLargeError(IngestionError):
    """File exceeds the configured upload size"""


class CorruptFileError(IngestionError):
    """File could not be decoded or parsed"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


# =============================================================================
# MAPPING
# =============================================================================

class MappingValidationError(ProfitInsightsError):
    """A proposed column mapping does not fit the file headers"""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors) or "Invalid column mapping")
        self.errors = list(errors)


# =============================================================================
# AI PROVIDER
# =============================================================================

class ProviderError(ProfitInsightsError):
    """Recoverable failure talking to the chat-completion provider"""


class ProviderUnavailableError(ProviderError):
    """No provider is configured for this request"""


class ProviderTimeoutError(ProviderError):
    """Provider did not answer in time"""


class RateLimitedError(ProviderError):
    """Provider asked us to slow down"""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class InvalidResponseError(ProviderError):
    """Provider answered with something we cannot use"""


class ClassificationProviderError(ProviderError):
    """Expense classification for unknown labels failed"""


class ForecastProviderError(ProviderError):
    """Seasonality analysis failed"""


class RecommendationProviderError(ProviderError):
    """Recommendation synthesis failed"""


class FatalProviderError(ProfitInsightsError):
    """Provider error that must abort the request"""


class InvalidCredentialsError(FatalProviderError):
    """API key rejected"""


class InsufficientCreditsError(FatalProviderError):
    """Account has no remaining quota"""


# =============================================================================
# TOOL USE / CALCULATION
# =============================================================================

class MaxIterationsExceededError(ProfitInsightsError):
    """Tool-use loop hit its round cap without a final answer"""

    def __init__(self, iterations: int):
        super().__init__(f"Max iterations reached in tool use loop ({iterations})")
        self.iterations = iterations


class CalculationGuardError(ProfitInsightsError):
    """Arithmetic that has no defined result (e.g. division by zero)"""
