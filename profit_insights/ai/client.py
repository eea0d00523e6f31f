"""
Chat-Completion Client

OpenAI-compatible client (OpenRouter by default) with the retry policy every
AI-dependent step relies on:
- Fixed attempt count per request
- Rate limits: wait for the advertised retry delay, then retry
- Timeouts and unexpected API errors: switch to the next fallback model
- Invalid credentials / insufficient credits: raise immediately
"""

import json
import math
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    OpenAI,
    RateLimitError,
)

from profit_insights.config import Settings, get_settings
from profit_insights.config.logging import get_logger
from profit_insights.errors import (
    InsufficientCreditsError,
    InvalidCredentialsError,
    InvalidResponseError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    RateLimitedError,
)

Message = Dict[str, Any]

_ARABIC = re.compile("[\\u0600-\\u06FF]")
_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass(frozen=True)
class ToolCall:
    """A function call requested by the assistant"""
    id: str
    name: str
    arguments: str


@dataclass(frozen=True)
class ChatResponse:
    """Normalized chat-completion response"""
    content: str
    tool_calls: Tuple[ToolCall, ...] = field(default_factory=tuple)
    tokens_used: int = 0
    model: str = ""

    def to_message(self) -> Message:
        """Assistant message to append to the conversation"""
        message: Message = {"role": "assistant", "content": self.content or None}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in self.tool_calls
            ]
        return message


def estimate_tokens(text: str) -> int:
    """Rough token count: 4 chars per token, 2 for Arabic script"""
    if not text:
        return 0
    arabic = len(_ARABIC.findall(text))
    other = len(text) - arabic
    return math.ceil(arabic / 2 + other / 4)


def parse_json_content(content: str) -> Any:
    """
    Parse assistant output as JSON, tolerating Markdown code fences.

    Raises:
        InvalidResponseError: content is not JSON
    """
    text = _FENCE.sub("", (content or "").strip()).strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Assistant wrapped the JSON in prose
    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = text.find(opener), text.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(text[start:end + 1])
            except json.JSONDecodeError:
                continue
    raise InvalidResponseError(f"Assistant returned non-JSON content: {text[:80]!r}")


class ChatClient:
    """
    Chat-completion client with retry and model fallback.

    Example:
        client = ChatClient()
        response = client.chat([{"role": "user", "content": "Hi"}])
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[Any] = None,
    ):
        self.settings = (settings or get_settings()).ai
        self.logger = get_logger(__name__, logger)
        self._sleep = sleep

        if client is not None:
            self._client = client
        elif self.settings.enabled:
            self._client = OpenAI(
                api_key=self.settings.api_key.get_secret_value(),
                base_url=self.settings.base_url,
                timeout=self.settings.request_timeout_seconds,
                max_retries=0,
                default_headers={
                    "HTTP-Referer": self.settings.app_referer,
                    "X-Title": self.settings.app_title,
                },
            )
        else:
            self._client = None

    @property
    def available(self) -> bool:
        return self._client is not None

    def _model_chain(self, model: Optional[str]) -> List[str]:
        first = model or self.settings.default_model
        return [first] + [m for m in self.settings.fallback_models if m != first]

    def _retry_after(self, error: RateLimitError) -> float:
        """Advertised retry delay from headers or body, else the configured default"""
        candidates = []
        response = getattr(error, "response", None)
        if response is not None:
            candidates.append(response.headers.get("retry-after"))
        body = getattr(error, "body", None)
        if isinstance(body, dict):
            candidates.append(body.get("retry_after"))
            nested = body.get("error")
            if isinstance(nested, dict):
                candidates.append(nested.get("retry_after"))

        for value in candidates:
            try:
                seconds = float(value)
            except (TypeError, ValueError):
                continue
            if seconds >= 0:
                return seconds
        return self.settings.default_rate_limit_wait_seconds

    def _normalize(self, completion: Any, model: str) -> ChatResponse:
        choices = getattr(completion, "choices", None) or []
        if not choices:
            raise InvalidResponseError("No choices in response")

        message = choices[0].message
        content = message.content or ""
        calls = tuple(
            ToolCall(id=c.id, name=c.function.name, arguments=c.function.arguments or "{}")
            for c in (getattr(message, "tool_calls", None) or [])
        )
        if not content.strip() and not calls:
            raise InvalidResponseError("Empty response from assistant")

        usage = getattr(completion, "usage", None)
        tokens = getattr(usage, "total_tokens", None) if usage is not None else None
        if tokens is None:
            tokens = estimate_tokens(content)

        return ChatResponse(
            content=content,
            tool_calls=calls,
            tokens_used=int(tokens),
            model=getattr(completion, "model", None) or model,
        )

    def chat(
        self,
        messages: Sequence[Message],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[str] = None,
    ) -> ChatResponse:
        """
        Send one chat-completion request.

        Raises:
            InvalidCredentialsError: API key rejected (401)
            InsufficientCreditsError: quota exhausted (402)
            ProviderError: every attempt failed
        """
        if self._client is None:
            raise ProviderUnavailableError("No AI provider API key configured")

        models = self._model_chain(model)
        model_idx = 0
        last_error: ProviderError = ProviderError("Request failed")
        attempts = self.settings.max_retries

        for attempt in range(attempts):
            current = models[model_idx % len(models)]
            request: Dict[str, Any] = {
                "model": current,
                "messages": list(messages),
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
            if tools:
                request["tools"] = tools
                request["tool_choice"] = tool_choice or "auto"

            log = self.logger.bind(attempt=attempt + 1, model=current)
            delay = self.settings.retry_delay_seconds * (attempt + 1)

            try:
                completion = self._client.chat.completions.create(**request)
                response = self._normalize(completion, current)
            except AuthenticationError as e:
                raise InvalidCredentialsError("Invalid API key") from e
            except RateLimitError as e:
                delay = self._retry_after(e)
                last_error = RateLimitedError("Rate limit exceeded", retry_after=delay)
                log.warning("Rate limited by provider", retry_after=delay)
            except APITimeoutError:
                last_error = ProviderTimeoutError(f"Request to {current} timed out")
                model_idx += 1
                log.warning("Provider timeout, switching model")
            except APIStatusError as e:
                if e.status_code == 401:
                    raise InvalidCredentialsError("Invalid API key") from e
                if e.status_code == 402:
                    raise InsufficientCreditsError("Insufficient credits") from e
                if e.status_code in (408, 504):
                    last_error = ProviderTimeoutError(f"Request to {current} timed out")
                else:
                    last_error = ProviderError(f"Provider error {e.status_code}: {e.message}")
                model_idx += 1
                log.warning("Provider API error, switching model", status=e.status_code)
            except APIConnectionError as e:
                last_error = ProviderError(f"Network error: {e}")
                log.warning("Provider connection error")
            except InvalidResponseError as e:
                last_error = e
                model_idx += 1
                log.warning("Unusable provider response, switching model", error=str(e))
            else:
                log.debug("Chat completion succeeded", tokens=response.tokens_used)
                return response

            if attempt < attempts - 1:
                self._sleep(delay)

        self.logger.error("Provider request failed", attempts=attempts, error=str(last_error))
        raise last_error


class UsageMeter:
    """Per-run wrapper that totals tokens across every chat call"""

    def __init__(self, client: Any):
        self._client = client
        self.tokens_used = 0
        self.calls = 0

    def chat(self, messages: Sequence[Message], **kwargs) -> ChatResponse:
        response = self._client.chat(messages, **kwargs)
        self.tokens_used += response.tokens_used
        self.calls += 1
        return response
