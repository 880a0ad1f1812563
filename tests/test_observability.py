"""
Tests for observability — logging setup.
"""

import logging

import pytest

from clickpkg.core.observability.logging_config import (
    ENGINE_LOGGER,
    _parse_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    engine_level = logging.getLogger(ENGINE_LOGGER).level
    raise_exceptions = logging.raiseExceptions
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger(ENGINE_LOGGER).setLevel(engine_level)
    logging.raiseExceptions = raise_exceptions


class TestParseLevel:
    def test_known_names(self):
        assert _parse_level("debug") == logging.DEBUG
        assert _parse_level("ERROR") == logging.ERROR

    def test_unknown_falls_back_to_warning(self):
        assert _parse_level("chatty") == logging.WARNING
        assert _parse_level(None) == logging.WARNING
        assert _parse_level("") == logging.WARNING


class TestSetupLogging:
    def test_console_only(self):
        applied = setup_logging("INFO")
        root = logging.getLogger()
        assert applied == logging.INFO
        assert len(root.handlers) == 1
        assert root.level == logging.INFO
        assert logging.getLogger(ENGINE_LOGGER).level == logging.INFO

    def test_warning_uses_short_format(self):
        setup_logging("WARNING")
        handler = logging.getLogger().handlers[0]
        assert handler.formatter._fmt.startswith("clickpkg:")

    def test_file_handler_gets_its_own_level(self, tmp_path):
        log_file = tmp_path / "engine.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert len(root.handlers) == 2
        # root must let DEBUG through for the file handler
        assert root.level == logging.DEBUG

        logging.getLogger("clickpkg.test").debug("into the file only")
        for h in root.handlers:
            h.flush()
        assert "into the file only" in log_file.read_text()

    def test_rerun_replaces_handlers(self):
        setup_logging("INFO")
        setup_logging("DEBUG")
        assert len(logging.getLogger().handlers) == 1
