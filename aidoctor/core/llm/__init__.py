"""
LLM Request Construction

Builds the requests sent to the completion service and validates what
comes back. Model inference itself happens behind CompletionClient.

- Chat: persona + patient context + recent changes + windowed history
- Analysis: one-shot prompt with a fixed JSON response schema
"""
from .messages import CompletionMessage, CompletionOptions, CompletionRequest, CompletionResponse
from .completion_client import CompletionClient
from .conversation import PreparedTurn, build_briefing, build_turn, prepare_turn, window_history
from .analysis import (
    AnalysisResult,
    build_analysis_prompt,
    build_analysis_request,
    parse_analysis_response,
    strip_code_fences,
)

__all__ = [
    "CompletionMessage",
    "CompletionOptions",
    "CompletionRequest",
    "CompletionResponse",
    "CompletionClient",
    "PreparedTurn",
    "build_briefing",
    "build_turn",
    "prepare_turn",
    "window_history",
    "AnalysisResult",
    "build_analysis_prompt",
    "build_analysis_request",
    "parse_analysis_response",
    "strip_code_fences",
]
