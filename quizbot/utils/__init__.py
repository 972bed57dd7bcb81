"""Telegram helpers shared by handlers."""
