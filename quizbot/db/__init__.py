"""Database package."""

from .models import Base, ClosedQuestion, OpenQuestion, Respondent, Subscriber

__all__ = [
    "Base",
    "ClosedQuestion",
    "OpenQuestion",
    "Respondent",
    "Subscriber",
]
