"""Telegram quiz bot: authoring wizards, answering flow, scoring, bonuses and grades."""

__version__ = "1.0.0"
