"""Telegram routers in registration order."""
from __future__ import annotations

from aiogram import Router

__all__ = ["get_routers"]


def get_routers() -> list[Router]:
    # authoring first: its text handler must see wizard input before anything else
    from quizbot.handlers import admin, authoring, start, taker

    return [authoring.router, start.router, admin.router, taker.router]
