"""Exception hierarchy shared by the quiz engine, handlers and the form endpoint."""

from __future__ import annotations


class QuizError(Exception):
    """Base class for recoverable quiz errors; ``str(exc)`` is the user-facing notice."""


class ValidationError(QuizError):
    """Malformed wizard input or form payload; the current step does not advance."""


class NotFoundError(QuizError):
    """The referenced question or respondent does not exist."""


class DuplicateSubmissionError(QuizError):
    """The stage is already completed; the event is a no-op."""


class EnrichmentFailure(QuizError):
    """A best-effort lookup (display name, membership) failed."""


class DeliveryFailure(QuizError):
    """Sending to a single chat failed."""

    def __init__(self, chat_id: int, reason: str) -> None:
        super().__init__(f"delivery to {chat_id} failed: {reason}")
        self.chat_id = chat_id
        self.reason = reason


class ConfigurationError(Exception):
    """Required settings are missing; the process cannot start."""


__all__ = [
    "ConfigurationError",
    "DeliveryFailure",
    "DuplicateSubmissionError",
    "EnrichmentFailure",
    "NotFoundError",
    "QuizError",
    "ValidationError",
]
