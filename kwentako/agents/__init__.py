"""AI Agents package."""

from kwentako.agents.ai_agents import (
    EmptyInputError,
    ExpenseExtractionAgent,
    ExtractionError,
    ExtractionOutcome,
    ResponseFormatError,
    build_prompt,
)
from kwentako.agents.heuristics import HeuristicExpenseParser, guess_category
from kwentako.agents.transport import (
    ErrorKind,
    ExpenseTransport,
    GeminiTransport,
    TransportError,
    classify_error,
)

__all__ = [
    "EmptyInputError",
    "ErrorKind",
    "ExpenseExtractionAgent",
    "ExpenseTransport",
    "ExtractionError",
    "ExtractionOutcome",
    "GeminiTransport",
    "HeuristicExpenseParser",
    "ResponseFormatError",
    "TransportError",
    "build_prompt",
    "classify_error",
    "guess_category",
]
