import pytest

from quizbot.config import Settings
from quizbot.errors import ConfigurationError


def test_admin_ids_from_comma_list():
    cfg = Settings(MAIN_ADMIN_ID="5", ADMIN_USER_IDS="1, 2,,3", _env_file=None)
    assert cfg.admin_ids() == {1, 2, 3, 5}
    assert cfg.is_admin(5)
    assert not cfg.is_admin(None)
    assert not cfg.is_admin(9)


def test_empty_main_admin_is_zero():
    cfg = Settings(MAIN_ADMIN_ID="", ADMIN_USER_IDS="", _env_file=None)
    assert cfg.MAIN_ADMIN_ID == 0
    assert cfg.admin_ids() == set()


def test_require_reports_missing_settings():
    with pytest.raises(ConfigurationError) as exc:
        Settings(BOT_TOKEN="", DB_URL=" ", _env_file=None).require()
    assert "BOT_TOKEN" in str(exc.value)
    assert "DB_URL" in str(exc.value)

    Settings(BOT_TOKEN="123:abc", _env_file=None).require()


def test_defaults():
    cfg = Settings(_env_file=None)
    assert cfg.CHANNEL == "@xdev_blog"
    assert cfg.FORM_PATH == "/closed/submit"
    assert cfg.GRADE_BANDS.startswith("0:F")
