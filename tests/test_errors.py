"""
Error Handling Tests
--------------------
Tests for error classification, user messages and history.
"""

import logging

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import (
    CommandNotFoundError, ErrorCategory, ErrorHandler, MenuError,
    create_not_found_error,
)


class TestMenuError:
    """Tests for MenuError."""

    def test_from_exception(self):
        try:
            raise KeyError("group")
        except KeyError as e:
            error = MenuError.from_exception(e, ErrorCategory.RESOLUTION_FAILURE, {"command": "ping"})

        assert error.category == ErrorCategory.RESOLUTION_FAILURE
        assert error.details == {"command": "ping"}
        assert "KeyError" in error.stack_trace
        assert error.recoverable

    def test_render_failure_not_recoverable(self):
        error = MenuError.from_exception(RuntimeError("boom"), ErrorCategory.RENDER_FAILURE)
        assert not error.recoverable

    def test_empty_message_uses_type_name(self):
        error = MenuError.from_exception(RuntimeError(), ErrorCategory.RENDER_FAILURE)
        assert error.message == "RuntimeError"

    def test_not_found_factory(self):
        assert create_not_found_error("ping").details == {"command": "ping"}


class TestErrorHandler:
    """Tests for ErrorHandler."""

    def test_user_messages(self):
        handler = ErrorHandler()
        assert handler.handle(create_not_found_error("ping")) == "Command not found: ping"
        message = handler.capture(OSError("disk full"), ErrorCategory.CACHE_WRITE_FAILURE, cache_key="menu_x")
        assert message == "The menu could not be cached."

    def test_history_bounded(self):
        handler = ErrorHandler(max_history=3)
        for i in range(5):
            handler.handle(create_not_found_error(f"cmd{i}"))
        assert [e.details["command"] for e in handler.history] == ["cmd2", "cmd3", "cmd4"]

    def test_stats_and_clear(self):
        handler = ErrorHandler()
        handler.handle(create_not_found_error("a"))
        handler.handle(create_not_found_error("b"))
        handler.capture(ValueError("x"), ErrorCategory.RESOLUTION_FAILURE)
        assert handler.get_error_stats() == {"NOT_FOUND": 2, "RESOLUTION_FAILURE": 1}

        handler.clear_history()
        assert handler.history == []

    def test_log_levels(self, caplog):
        handler = ErrorHandler()
        with caplog.at_level(logging.DEBUG, logger="menu.errors"):
            handler.handle(create_not_found_error("ping"))
            handler.capture(RuntimeError("boom"), ErrorCategory.RENDER_FAILURE)

        levels = [r.levelno for r in caplog.records if r.name == "menu.errors"]
        assert levels[0] == logging.INFO
        assert logging.ERROR in levels


def test_command_not_found_error():
    error = CommandNotFoundError("info.user")
    assert error.name == "info.user"
    assert "info.user" in str(error)
