"""
Expense Classifier

Binds raw cost labels to expense categories. Keyword matching runs first;
only labels it cannot place are sent to the assistant, in one batched call
per chunk. An assistant answer never overrides a keyword match, and labels
it does not answer (or answers with an unknown category) stay "other".
"""

from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from profit_insights.ai.client import parse_json_content
from profit_insights.ai.fallback import StepResult, run_with_fallback
from profit_insights.config.logging import get_logger
from profit_insights.config.settings import Settings, get_settings
from profit_insights.errors import ClassificationProviderError, InvalidResponseError, ProviderUnavailableError
from profit_insights.models import ExpenseCategory, ResultSource

# Checked in order; the first category with a matching keyword wins
EXPENSE_PATTERNS: Tuple[Tuple[ExpenseCategory, Tuple[str, ...]], ...] = (
    (
        ExpenseCategory.PAYMENT_GATEWAY,
        ("payment", "gateway", "fee", "visa", "mada", "apple pay", "tabby", "stripe", "paypal", "stc"),
    ),
    (ExpenseCategory.SHIPPING, ("shipping", "delivery", "aramex", "smsa", "dhl", "fedex")),
    (ExpenseCategory.TAX, ("tax", "vat")),
    (ExpenseCategory.REFUND, ("refund", "return", "cancelled")),
)

EXPENSE_CLASSIFICATION_PROMPT = """You are a financial analyst specializing in e-commerce. Your task is to classify expenses in sales files.

Classify each expense into one of the following categories:
- payment_gateway: Payment gateway fees (Mada, Visa, Apple Pay, Tabby, STC Pay, PayPal, Stripe)
- shipping: Shipping costs (Aramex, SMSA, DHL, FedEx, Saudi Post, Naqel, SPL)
- tax: Taxes (VAT, value added tax)
- refund: Returns and refunds (refund, return, cancellation)
- other: Other expenses

Return the result in JSON format only without any additional text."""


def keyword_category(label: str) -> ExpenseCategory:
    """Category for a label by keyword, or OTHER when nothing matches"""
    text = label.lower()
    for category, keywords in EXPENSE_PATTERNS:
        if any(kw in text for kw in keywords):
            return category
    return ExpenseCategory.OTHER


def _chunks(items: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    size = max(1, size)
    for start in range(0, len(items), size):
        yield items[start:start + size]


class ExpenseClassifier:
    """
    Classifies cost labels, asking the assistant only about unknowns.

    Example:
        classifier = ExpenseClassifier(client)
        categories = classifier.classify(["Shipping Fee", "Packaging"])
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        settings: Optional[Settings] = None,
        logger: Optional[Any] = None,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__, logger)
        self.last_source = ResultSource.FALLBACK

    def _ask(self, labels: Sequence[str]) -> Dict[str, ExpenseCategory]:
        if self.client is None:
            raise ProviderUnavailableError("No assistant configured")

        answers: Dict[str, ExpenseCategory] = {}
        for chunk in _chunks(labels, self.settings.ingestion.classification_batch_size):
            listing = "\n".join(f"{i + 1}. {label}" for i, label in enumerate(chunk))
            messages = [
                {"role": "system", "content": EXPENSE_CLASSIFICATION_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Classify the following expenses:\n{listing}\n\n"
                        'Return JSON: {"classifications": {"label": "category", ...}}'
                    ),
                },
            ]
            response = self.client.chat(messages, temperature=0.1, max_tokens=500)
            payload = parse_json_content(response.content)
            if not isinstance(payload, dict) or not isinstance(payload.get("classifications"), dict):
                raise InvalidResponseError("Response has no classifications object")

            wanted = set(chunk)
            for label, category in payload["classifications"].items():
                if label not in wanted:
                    continue
                try:
                    answers[label] = ExpenseCategory(str(category).strip().lower())
                except ValueError:
                    self.logger.debug("Ignoring unknown category", label=label, category=category)
        return answers

    def classify(self, labels: Iterable[str]) -> Dict[str, ExpenseCategory]:
        """
        Classify every distinct label.

        Args:
            labels: Raw cost labels (duplicates allowed, order irrelevant)

        Returns:
            Mapping of each label to exactly one category
        """
        distinct = sorted(set(labels))
        result = {label: keyword_category(label) for label in distinct}
        unknown = [label for label in distinct if result[label] == ExpenseCategory.OTHER]

        if not unknown:
            self.last_source = ResultSource.FALLBACK
            self.logger.debug("All labels classified by keywords", labels=len(distinct))
            return result

        step: StepResult[Dict[str, ExpenseCategory]] = run_with_fallback(
            "expense_classification",
            lambda: self._ask(unknown),
            dict,
            wrap=ClassificationProviderError,
            logger=self.logger,
        )
        self.last_source = step.source
        for label, category in step.value.items():
            result[label] = category

        self.logger.info(
            "Expenses classified",
            labels=len(distinct),
            unknown=len(unknown),
            resolved_by_ai=len(step.value),
            source=step.source.value,
        )
        return result
