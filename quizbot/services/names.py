"""Best-effort lookups against the Telegram API."""

from __future__ import annotations

import logging
from html import escape

from aiogram import Bot

from quizbot.errors import EnrichmentFailure

logger = logging.getLogger(__name__)

NAME_PLACEHOLDER = "—"
MEMBER_STATUSES = frozenset({"member", "administrator", "creator"})


async def fetch_display_name(bot: Bot, user_id: int) -> str:
    """Return the chat's first/last name or username; raises :class:`EnrichmentFailure`."""

    try:
        chat = await bot.get_chat(user_id)
    except Exception as exc:
        raise EnrichmentFailure(f"get_chat failed for {user_id}: {exc}") from exc
    parts = [part for part in (chat.first_name, chat.last_name) if part]
    if parts:
        return " ".join(parts)
    if chat.username:
        return f"@{chat.username}"
    if chat.title:
        return chat.title
    raise EnrichmentFailure(f"chat {user_id} has no name")


async def resolve_display_name(bot: Bot, user_id: int, *, placeholder: str = NAME_PLACEHOLDER) -> str:
    """HTML-escaped display name, or ``placeholder`` when the lookup fails."""

    try:
        return escape(await fetch_display_name(bot, user_id))
    except EnrichmentFailure as exc:
        logger.debug("name lookup skipped: %s", exc)
        return placeholder


async def is_channel_member(bot: Bot, channel: str, user_id: int) -> bool:
    """Membership check; an unreachable channel counts as not subscribed."""

    if not channel:
        return True
    try:
        member = await bot.get_chat_member(channel, user_id)
    except Exception as exc:  # noqa: BLE001 - membership is advisory
        logger.warning("membership check failed channel=%s uid=%s: %s", channel, user_id, exc)
        return False
    status = getattr(member, "status", "")
    return str(getattr(status, "value", status)) in MEMBER_STATUSES


__all__ = ["NAME_PLACEHOLDER", "fetch_display_name", "is_channel_member", "resolve_display_name"]
