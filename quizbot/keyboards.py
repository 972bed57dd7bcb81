from aiogram.types import InlineKeyboardMarkup, ReplyKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder, ReplyKeyboardBuilder

from quizbot.config import settings

PROFILE_CALLBACK = "profile"
CHECK_SUB_CALLBACK = "check_sub"

ADMIN_PANEL_COMMANDS: tuple[tuple[str, ...], ...] = (
    ("/questions", "/users_count"),
    ("/respondents", "/results"),
    ("/delete_questions", "/delete_respondents"),
    ("/new_test", "/new_closed"),
    ("/start_test", "/finalize"),
)


def kb_greeting() -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    if settings.PURCHASE_URL:
        kb.button(text="🛒 Buy the test", url=settings.PURCHASE_URL)
    kb.button(text="📋 Profile", callback_data=PROFILE_CALLBACK)
    kb.adjust(1)
    return kb.as_markup()


def channel_url(channel: str) -> str:
    return f"https://t.me/{channel.lstrip('@')}"


def kb_subscribe(channel: str | None = None) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.button(text="📌 Subscribe", url=channel_url(channel or settings.CHANNEL))
    kb.button(text="✅ Check", callback_data=CHECK_SUB_CALLBACK)
    kb.adjust(1)
    return kb.as_markup()


def kb_admin_panel() -> ReplyKeyboardMarkup:
    kb = ReplyKeyboardBuilder()
    sizes: list[int] = []
    for row in ADMIN_PANEL_COMMANDS:
        for command in row:
            kb.button(text=command)
        sizes.append(len(row))
    kb.adjust(*sizes)
    return kb.as_markup(resize_keyboard=True, one_time_keyboard=False)
