"""Tests for settings loading and logger setup."""

import logging
import logging.handlers
import uuid

import pytest

from backoffice.core.config import Settings
from backoffice.core.logger import configure_logging


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.api_prefix == "/api/v1"
        assert settings.algorithm == "HS256"
        assert settings.max_page_size == 100
        assert settings.max_user_page_size == 50

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("MAX_GROUP_DEPTH", "8")
        monkeypatch.setenv("log_level", "debug")
        settings = Settings(_env_file=None)

        assert settings.max_group_depth == 8
        assert settings.log_level == "debug"

    def test_cors_origins_list(self):
        settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test,,")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_upload_size_in_bytes(self):
        assert Settings(_env_file=None, max_upload_size_mb=2).max_upload_size_bytes == 2 * 1024 * 1024


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture
    def name(self):
        logger_name = f"test-{uuid.uuid4().hex[:8]}"
        yield logger_name
        logger = logging.getLogger(logger_name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

    def test_console_only(self, name):
        logger = configure_logging(Settings(_env_file=None, log_level="warning"), name=name)

        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_file_handler_writes_log(self, name, tmp_path):
        settings = Settings(_env_file=None, log_to_file=True, log_dir=str(tmp_path))
        logger = configure_logging(settings, name=name, console=False)
        logger.info("document uploaded")
        for handler in logger.handlers:
            handler.flush()

        content = (tmp_path / f"{name}.log").read_text()
        assert "[INFO]" in content
        assert f"[{name}] document uploaded" in content

    def test_reconfigure_replaces_handlers(self, name, tmp_path):
        configure_logging(Settings(_env_file=None, log_to_file=True, log_dir=str(tmp_path)), name=name)
        logger = configure_logging(Settings(_env_file=None), name=name)
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0], logging.handlers.RotatingFileHandler)

    def test_invalid_level(self, name):
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(Settings(_env_file=None, log_level="LOUD"), name=name)

    def test_package_loggers_inherit_level(self, tmp_path):
        settings = Settings(_env_file=None, log_level="ERROR", log_to_file=False, log_dir=str(tmp_path))
        logger = configure_logging(settings, console=False)

        assert logger.name == "backoffice"
        assert logging.getLogger("backoffice.services.documents").getEffectiveLevel() == logging.ERROR
        logger.setLevel(logging.INFO)
