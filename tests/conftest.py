"""
Test Suite Configuration
"""
import json
from datetime import date
from types import SimpleNamespace
from typing import Any, Dict, List, Sequence

import pytest
import structlog

from profit_insights.ai.client import ChatResponse, ToolCall
from profit_insights.config.settings import AIProviderSettings, Settings
from profit_insights.errors import InvalidResponseError


class ScriptedChatClient:
    """Chat client double that replays a fixed script of responses"""

    def __init__(self, script: Sequence[Any]):
        self._script = list(script)
        self.calls: List[Dict[str, Any]] = []

    @property
    def available(self) -> bool:
        return True

    def chat(self, messages, **kwargs) -> ChatResponse:
        self.calls.append({"messages": list(messages), **kwargs})
        if not self._script:
            raise InvalidResponseError("Script exhausted")
        item = self._script.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, ChatResponse):
            return item
        if not isinstance(item, str):
            item = json.dumps(item)
        return ChatResponse(content=item, tokens_used=10, model="test-model")


def tool_call_response(name: str, arguments: Dict[str, Any], call_id: str = "call-1") -> ChatResponse:
    """Assistant turn that requests one tool call"""
    return ChatResponse(
        content="",
        tool_calls=(ToolCall(id=call_id, name=name, arguments=json.dumps(arguments)),),
        tokens_used=20,
        model="test-model",
    )


def fake_completion(content: str = "ok", tokens: int = 12, model: str = "test-model"):
    """Object shaped like an OpenAI chat completion"""
    message = SimpleNamespace(content=content, tool_calls=None)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message)],
        usage=SimpleNamespace(total_tokens=tokens),
        model=model,
    )


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings with no provider key"""
    return Settings(
        ai=AIProviderSettings(api_key=None, retry_delay_seconds=0),
    )


@pytest.fixture
def ai_settings() -> Settings:
    """Settings with a provider key and no retry delay"""
    return Settings(
        ai=AIProviderSettings(
            api_key="test-key",
            retry_delay_seconds=0,
            default_rate_limit_wait_seconds=0,
        ),
    )


@pytest.fixture
def chat_script():
    """Factory for scripted chat clients"""
    return ScriptedChatClient


@pytest.fixture
def log_output():
    """Capture structlog events emitted during a test"""
    with structlog.testing.capture_logs() as logs:
        yield logs


@pytest.fixture
def reference_date() -> date:
    return date(2025, 1, 31)


SALES_CSV = """Order ID,Date,Product,Quantity,Total,Shipping,Gateway Fee,Tax
1001,2025-01-05,Widget,1,10.00,15.00,0.00,0.00
1002,2025-01-06,Widget,1,10.00,15.00,0,0
1003,2025-01-07,Widget,1,10.00,15.00,0,0
1004,2025-01-08,Gadget,2,200.00,10.00,5.80,30.00
1005,2025-01-09,Gadget,1,100.00,10.00,2.90,15.00
1006,2025-01-10,Gizmo,1,N/A,5.00,1.00,0
"""

INVENTORY_CSV = """Date,SKU,Product Name,Units Sold,Stock On Hand
2025-01-01,SKU-1,Mug,10,30
2025-01-11,SKU-1,Mug,10,20
2025-01-11,SKU-2,Lamp,0,50
"""


@pytest.fixture
def sales_csv() -> bytes:
    """Sales export with one losing product and one unreadable row"""
    return SALES_CSV.encode("utf-8")


@pytest.fixture
def inventory_csv() -> bytes:
    """Sales history with one fast-moving and one idle product"""
    return INVENTORY_CSV.encode("utf-8")


@pytest.fixture
def sales_headers() -> List[str]:
    return ["Order ID", "Date", "Product", "Quantity", "Total", "Shipping", "Gateway Fee", "Tax"]


@pytest.fixture
def sales_rows(sales_headers) -> List[Dict[str, Any]]:
    """Rows as the file ingestor would return them for SALES_CSV"""
    rows = []
    for line in SALES_CSV.strip().splitlines()[1:]:
        values = [None if v in ("", "N/A") else v for v in line.split(",")]
        rows.append(dict(zip(sales_headers, values)))
    return rows


@pytest.fixture
def tool_response():
    """Factory for assistant turns that request a tool call"""
    return tool_call_response


@pytest.fixture
def completion():
    """Factory for raw provider completions"""
    return fake_completion
