"""
Unit Tests - Expense Classification
"""
import json
import random
import re

import pytest

from profit_insights.ai.client import ChatResponse
from profit_insights.analytics.classifier import ExpenseClassifier, keyword_category
from profit_insights.config.settings import AIProviderSettings, IngestionSettings, Settings
from profit_insights.errors import InvalidCredentialsError, ProviderTimeoutError
from profit_insights.models import ExpenseCategory, ResultSource


class TestKeywordCategory:
    """Tests for keyword_category"""

    @pytest.mark.parametrize("label,expected", [
        ("Mada Fee", ExpenseCategory.PAYMENT_GATEWAY),
        ("Shipping Fee", ExpenseCategory.PAYMENT_GATEWAY),
        ("Aramex delivery", ExpenseCategory.SHIPPING),
        ("VAT 15%", ExpenseCategory.TAX),
        ("Refund Amount", ExpenseCategory.REFUND),
        ("Cancelled order", ExpenseCategory.REFUND),
        ("Packaging", ExpenseCategory.OTHER),
    ])
    def test_first_matching_category(self, label, expected):
        """Test categories are checked in order, case-insensitively"""
        assert keyword_category(label) == expected


class TestExpenseClassifier:
    """Tests for ExpenseClassifier"""

    def test_keywords_only(self, chat_script):
        """Test no assistant call when every label is known"""
        client = chat_script([])
        result = ExpenseClassifier(client).classify(["Shipping", "Tax", "Shipping"])

        assert result == {"Shipping": ExpenseCategory.SHIPPING, "Tax": ExpenseCategory.TAX}
        assert client.calls == []

    def test_without_assistant(self):
        """Test unknown labels stay other without an assistant"""
        classifier = ExpenseClassifier(None)
        result = classifier.classify(["Packaging", "Tax"])

        assert result["Packaging"] == ExpenseCategory.OTHER
        assert classifier.last_source == ResultSource.FALLBACK

    def test_assistant_resolves_unknowns(self, chat_script):
        """Test assistant answers apply to unknown labels only"""
        client = chat_script([{
            "classifications": {
                "Packaging": "shipping",
                "Warehouse": "storage",
                "Shipping": "tax",
            }
        }])
        classifier = ExpenseClassifier(client)
        result = classifier.classify(["Packaging", "Shipping", "Warehouse"])

        assert result == {
            "Packaging": ExpenseCategory.SHIPPING,
            "Shipping": ExpenseCategory.SHIPPING,
            "Warehouse": ExpenseCategory.OTHER,
        }
        assert classifier.last_source == ResultSource.AI
        assert len(client.calls) == 1
        prompt = client.calls[0]["messages"][1]["content"]
        assert "Packaging" in prompt
        assert "Shipping" not in prompt

    def test_batches(self, chat_script):
        """Test unknown labels are sent in chunks"""
        settings = Settings(
            ai=AIProviderSettings(api_key=None),
            ingestion=IngestionSettings(classification_batch_size=2),
        )
        client = chat_script([
            {"classifications": {"Box": "other", "Insurance": "other"}},
            {"classifications": {"Packaging": "shipping"}},
        ])
        result = ExpenseClassifier(client, settings).classify(["Packaging", "Insurance", "Box"])

        assert len(client.calls) == 2
        assert result["Packaging"] == ExpenseCategory.SHIPPING

    def test_provider_failure(self, chat_script):
        """Test provider errors leave unknown labels as other"""
        client = chat_script([ProviderTimeoutError("timed out")])
        classifier = ExpenseClassifier(client)
        result = classifier.classify(["Packaging"])

        assert result == {"Packaging": ExpenseCategory.OTHER}
        assert classifier.last_source == ResultSource.FALLBACK

    def test_fatal_error_propagates(self, chat_script):
        """Test invalid credentials are not swallowed"""
        client = chat_script([InvalidCredentialsError("bad key")])

        with pytest.raises(InvalidCredentialsError):
            ExpenseClassifier(client).classify(["Packaging"])


class LabelAnsweringClient:
    """Answers each classification prompt from a fixed label table"""

    def __init__(self, answers):
        self.answers = answers
        self.calls = 0

    def chat(self, messages, **kwargs):
        self.calls += 1
        listed = re.findall(r"^\d+\. (.+)$", messages[-1]["content"], flags=re.MULTILINE)
        payload = {label: self.answers[label] for label in listed if label in self.answers}
        return ChatResponse(content=json.dumps({"classifications": payload}), tokens_used=5)


class TestClassificationStability:
    """Tests for idempotent, order-independent classification"""

    LABELS = ["Packaging", "Shipping Fee", "Warehouse", "VAT", "Insurance", "Aramex"]
    ANSWERS = {"Packaging": "shipping", "Warehouse": "other", "Insurance": "refund"}

    @pytest.mark.parametrize("label", LABELS)
    def test_keyword_path(self, label):
        """Test a label gets the same category alone, in a batch and repeated"""
        classifier = ExpenseClassifier(None)
        alone = classifier.classify([label])[label]

        assert classifier.classify(self.LABELS)[label] == alone
        assert classifier.classify(list(reversed(self.LABELS)))[label] == alone
        assert classifier.classify([label, label])[label] == alone

    @pytest.mark.parametrize("label", LABELS)
    def test_assistant_path_with_chunking(self, label):
        """Test assistant answers do not depend on batch contents or order"""
        settings = Settings(
            ai=AIProviderSettings(api_key=None),
            ingestion=IngestionSettings(classification_batch_size=2),
        )
        classifier = ExpenseClassifier(LabelAnsweringClient(self.ANSWERS), settings)
        alone = classifier.classify([label])[label]

        shuffled = list(self.LABELS)
        random.Random(7).shuffle(shuffled)
        for batch in (self.LABELS, list(reversed(self.LABELS)), shuffled, [label, label]):
            assert classifier.classify(batch)[label] == alone

    def test_assistant_results(self):
        """Test unknown labels take the assistant's answer across chunks"""
        settings = Settings(
            ai=AIProviderSettings(api_key=None),
            ingestion=IngestionSettings(classification_batch_size=2),
        )
        client = LabelAnsweringClient(self.ANSWERS)
        result = ExpenseClassifier(client, settings).classify(self.LABELS)

        assert client.calls == 2
        assert result == {
            "Packaging": ExpenseCategory.SHIPPING,
            "Shipping Fee": ExpenseCategory.PAYMENT_GATEWAY,
            "Warehouse": ExpenseCategory.OTHER,
            "VAT": ExpenseCategory.TAX,
            "Insurance": ExpenseCategory.REFUND,
            "Aramex": ExpenseCategory.SHIPPING,
        }
