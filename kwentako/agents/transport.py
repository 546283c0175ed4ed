"""
Gemini Transport

The only module that talks to google.generativeai.

DESIGN DECISION: Error classification happens HERE, once, from the
exception types google-api-core raises - never by searching error
messages for "503" or "overloaded". Callers only see a TransportError
tagged TRANSIENT (worth retrying) or PERMANENT (do not retry).
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import TypedDict

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from kwentako.config.settings import GeminiSettings
from kwentako.models.expense import ExpenseCategory


class ErrorKind(str, Enum):
    """How the transport judged a failure."""
    TRANSIENT = "transient"  # Overloaded, rate limited, unavailable, timed out
    PERMANENT = "permanent"  # Bad request, auth, blocked response, ...


class TransportError(Exception):
    """A model call failed; `kind` says whether a retry could help."""

    def __init__(self, message: str, kind: ErrorKind):
        self.kind = kind
        super().__init__(message)

    @property
    def is_transient(self) -> bool:
        return self.kind == ErrorKind.TRANSIENT


# google-api-core exception classes that mean "try again later"
TRANSIENT_ERRORS = (
    google_exceptions.ResourceExhausted,
    google_exceptions.TooManyRequests,
    google_exceptions.ServiceUnavailable,
    google_exceptions.InternalServerError,
    google_exceptions.DeadlineExceeded,
    google_exceptions.GatewayTimeout,
)


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception raised by the Gemini SDK to an ErrorKind."""
    if isinstance(error, TRANSIENT_ERRORS):
        return ErrorKind.TRANSIENT
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TRANSIENT
    return ErrorKind.PERMANENT


class ExpenseItemSchema(TypedDict):
    """Response schema for one expense; the model returns a list of these."""
    description: str
    amount: float
    category: ExpenseCategory


class ExpenseTransport(ABC):
    """Sends a prompt to a generative model and returns the raw JSON text."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Run one model call.

        Raises:
            TransportError: with kind TRANSIENT or PERMANENT
        """
        pass


class GeminiTransport(ExpenseTransport):
    """Gemini implementation constrained to JSON matching ExpenseItemSchema."""

    def __init__(self, settings: GeminiSettings):
        self._settings = settings
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config=genai.GenerationConfig(
                temperature=self._settings.temperature,
                max_output_tokens=self._settings.max_output_tokens,
                response_mime_type="application/json",
                response_schema=list[ExpenseItemSchema],
            ),
        )

    async def generate(self, prompt: str) -> str:
        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt),
                timeout=self._settings.timeout_seconds,
            )
        except google_exceptions.GoogleAPICallError as e:
            raise TransportError(str(e), kind=classify_error(e)) from e
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Gemini did not answer within {self._settings.timeout_seconds}s",
                kind=ErrorKind.TRANSIENT,
            ) from e

        try:
            return response.text
        except ValueError as e:
            # Raised by the SDK when the candidate was blocked or empty
            raise TransportError(f"Gemini returned no text: {e}", kind=ErrorKind.PERMANENT) from e
