"""
Bounded Tool-Use Loop

Explicit state machine for conversations in which the assistant may ask
for local calculations before answering:

    AWAITING_RESPONSE -> EXECUTING_TOOLS -> AWAITING_RESPONSE -> ... -> DONE

Every request to the assistant counts as one iteration. When the cap is
reached and the assistant still wants tools, MaxIterationsExceededError
is raised.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from profit_insights.ai.client import ChatResponse, Message, ToolCall
from profit_insights.ai.tools import CALCULATOR_TOOLS, execute_tool_call
from profit_insights.config.logging import get_logger
from profit_insights.errors import MaxIterationsExceededError


class LoopState(str, Enum):
    """Tool loop states"""
    AWAITING_RESPONSE = "awaiting_response"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"


@dataclass
class ToolLoopResult:
    """Final assistant answer plus loop accounting"""
    content: str
    iterations: int
    tool_calls_executed: int
    tokens_used: int
    messages: List[Message] = field(default_factory=list)


class ToolUseLoop:
    """
    Drives one tool-enabled conversation to a final answer.

    Example:
        loop = ToolUseLoop(client, max_iterations=5)
        result = loop.run(messages)
    """

    def __init__(
        self,
        client: Any,
        max_iterations: int = 5,
        tools: Optional[List[Dict[str, Any]]] = None,
        executor: Callable[[ToolCall], str] = execute_tool_call,
        logger: Optional[Any] = None,
    ):
        self.client = client
        self.max_iterations = max_iterations
        self.tools = tools if tools is not None else CALCULATOR_TOOLS
        self.executor = executor
        self.logger = get_logger(__name__, logger)

    def run(
        self,
        messages: Sequence[Message],
        temperature: float = 0.7,
        max_tokens: int = 1500,
    ) -> ToolLoopResult:
        conversation: List[Message] = list(messages)
        state = LoopState.AWAITING_RESPONSE
        iterations = 0
        executed = 0
        tokens = 0
        response: Optional[ChatResponse] = None

        while state != LoopState.DONE:
            if state == LoopState.AWAITING_RESPONSE:
                if iterations >= self.max_iterations:
                    self.logger.warning("Tool loop hit iteration cap", iterations=iterations)
                    raise MaxIterationsExceededError(iterations)

                response = self.client.chat(
                    conversation,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    tools=self.tools,
                    tool_choice="auto",
                )
                iterations += 1
                tokens += response.tokens_used
                state = LoopState.EXECUTING_TOOLS if response.tool_calls else LoopState.DONE

            elif state == LoopState.EXECUTING_TOOLS:
                conversation.append(response.to_message())
                for call in response.tool_calls:
                    result = self.executor(call)
                    executed += 1
                    self.logger.debug("Tool executed", tool=call.name, iteration=iterations)
                    conversation.append({
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": result,
                    })
                state = LoopState.AWAITING_RESPONSE

        conversation.append(response.to_message())
        self.logger.info(
            "Tool loop finished",
            iterations=iterations,
            tool_calls=executed,
            tokens=tokens,
        )
        return ToolLoopResult(
            content=response.content,
            iterations=iterations,
            tool_calls_executed=executed,
            tokens_used=tokens,
            messages=conversation,
        )
