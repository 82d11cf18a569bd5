import pytest
from loguru import logger

from santa_exchange.core.config import load_settings
from santa_exchange.core.logging import setup_logging


def test_settings_defaults(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///santa.db")
    for name in ("LOG_LEVEL", "LOG_PATH", "HOST", "PORT"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()
    assert settings.database_url == "sqlite:///santa.db"
    assert settings.log_level == "INFO"
    assert settings.port == 8080


def test_settings_require_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValueError):
        load_settings()


def test_settings_reject_bad_port(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///santa.db")
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(ValueError):
        load_settings()


def test_setup_logging_writes_file(tmp_path):
    log_path = tmp_path / "santa.log"
    setup_logging("WARNING", str(log_path))
    logger.bind(exchange_id=7).debug("exchange touched")
    logger.remove()

    content = log_path.read_text()
    assert "exchange touched" in content
    assert "exchange_id" in content
