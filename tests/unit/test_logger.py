"""Tests for logging setup and job context binding."""

import logging

import structlog

from steam_apps_db.config import LoggingConfig
from steam_apps_db.logger import NOISY_LIBRARIES, job_context, setup_logging


class TestJobContext:
    """Tests for job_context."""

    def test_binds_and_clears(self) -> None:
        with job_context("details", 10, attempt=2):
            bound = structlog.contextvars.get_contextvars()
            assert bound == {"job_kind": "details", "app_id": 10, "attempt": 2}

        assert "job_kind" not in structlog.contextvars.get_contextvars()


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_quiets_libraries(self) -> None:
        setup_logging(LoggingConfig(level="INFO", format="console"))

        for name in NOISY_LIBRARIES:
            assert logging.getLogger(name).level == logging.WARNING

    def test_json_format(self) -> None:
        setup_logging(LoggingConfig(level="WARNING", format="json", include_timestamp=False))

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
