"""
AI Assistant Module
"""
from .client import ChatClient, ChatResponse, ToolCall, UsageMeter, estimate_tokens, parse_json_content
from .fallback import StepResult, run_with_fallback
from .tool_loop import LoopState, ToolLoopResult, ToolUseLoop
from .tools import CALCULATOR_TOOLS, execute_tool_call

__all__ = [
    "ChatClient",
    "ChatResponse",
    "ToolCall",
    "UsageMeter",
    "estimate_tokens",
    "parse_json_content",
    "StepResult",
    "run_with_fallback",
    "LoopState",
    "ToolLoopResult",
    "ToolUseLoop",
    "CALCULATOR_TOOLS",
    "execute_tool_call",
]
