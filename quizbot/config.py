from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from quizbot.errors import ConfigurationError


class Settings(BaseSettings):
    BOT_TOKEN: str = ""
    MAIN_ADMIN_ID: int = 0
    ADMIN_USER_IDS: list[int] | str = Field(default_factory=list)
    CHANNEL: str = "@xdev_blog"

    DB_URL: str = "sqlite+aiosqlite:///./var/quizbot.db"
    MIGRATE_ON_START: bool = True

    # Логи
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # пауза между исходящими сообщениями при рассылке
    RATE_LIMIT_DELAY_MS: int = Field(default=120, ge=0)

    # Бонусы и оценки
    BONUS_THRESHOLD: float = Field(default=0.90, ge=0.0, le=1.0)
    BONUS_POINTS: float = 0.5
    CLOSED_DEFAULT_POINTS: float = 1.0
    GRADE_BANDS: str = "0:F,55:C,60:C+,70:B,75:B+,85:A,90:A+"

    # Форма закрытых вопросов
    SERVICE_HOST: str = "127.0.0.1"
    FORM_PORT: int = 8080
    FORM_PATH: str = "/closed/submit"
    FORM_URL: str = ""

    PURCHASE_URL: str = "https://t.me/rayimberdiyev_08"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("MAIN_ADMIN_ID", mode="before")
    @classmethod
    def _fix_admin_id(cls, v):
        if v in (None, ""):
            return 0
        return int(v)

    @field_validator("ADMIN_USER_IDS", mode="before")
    @classmethod
    def _parse_admin_ids(cls, v):
        if v in (None, "", []):
            return []
        if isinstance(v, (list, tuple, set)):
            return [int(item) for item in v]
        parts = [part.strip() for part in str(v).split(",") if part.strip()]
        return [int(part) for part in parts]

    def admin_ids(self) -> set[int]:
        admins = {int(item) for item in self.ADMIN_USER_IDS or []}
        if self.MAIN_ADMIN_ID:
            admins.add(int(self.MAIN_ADMIN_ID))
        return {admin for admin in admins if admin}

    def is_admin(self, user_id: int | None) -> bool:
        if user_id is None:
            return False
        return int(user_id) in self.admin_ids()

    def require(self) -> None:
        """Raise :class:`ConfigurationError` when a connection parameter is missing."""

        missing = [name for name in ("BOT_TOKEN", "DB_URL") if not str(getattr(self, name) or "").strip()]
        if missing:
            raise ConfigurationError(f"required settings are not set: {', '.join(missing)}")


settings = Settings()
