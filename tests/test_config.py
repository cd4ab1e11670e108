import logging
from pathlib import Path

import pytest

from config import Environment, Settings
from logger import configure_logging


def test_defaults():
    settings = Settings()

    assert settings.products_path == Path("data") / "products.json"
    assert settings.carts_path == Path("data") / "carts.json"
    assert settings.max_limit == 100
    assert settings.log_file is None


def test_env_vars_use_prefix(monkeypatch):
    monkeypatch.setenv("SHOP_DATA_DIR", "/srv/shop")
    monkeypatch.setenv("SHOP_PORT", "9000")
    monkeypatch.setenv("SHOP_ENVIRONMENT", "production")

    settings = Settings()

    assert settings.carts_path == Path("/srv/shop/carts.json")
    assert settings.port == 9000
    assert settings.environment == Environment.PRODUCTION


@pytest.mark.parametrize(
    "environment, expected",
    [(Environment.DEVELOPMENT, "DEBUG"), (Environment.PRODUCTION, "INFO"), (Environment.TEST, "WARNING")],
)
def test_log_level_follows_environment(environment, expected):
    assert Settings(environment=environment).effective_log_level == expected


def test_explicit_log_level_wins():
    assert Settings(environment=Environment.TEST, log_level="debug").effective_log_level == "DEBUG"


def test_validate_limits_lists_every_problem():
    with pytest.raises(ValueError) as exc:
        Settings(max_limit=0, default_page=0, port=70000).validate_limits()

    message = str(exc.value)
    assert "max_limit" in message
    assert "default_page" in message
    assert "port" in message


def test_configure_logging_does_not_stack_handlers(temp_workspace):
    log_file = temp_workspace / "logs" / "shop.log"

    configure_logging("INFO", log_file)
    root = configure_logging("INFO", log_file)
    ours = [h for h in root.handlers if getattr(h, "_shop_handler", False)]

    assert len(ours) == 2
    logging.getLogger("tests").warning("hello file")
    for handler in ours:
        handler.flush()
    assert "hello file" in log_file.read_text(encoding="utf-8")

    configure_logging("WARNING")
