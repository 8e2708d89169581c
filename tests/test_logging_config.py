# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for semantic_dom.logging_config: structlog + stdlib bridge."""

from __future__ import annotations

import json
import logging
import sys

import pytest
import structlog

from semantic_dom.logging_config import LOG_LEVELS, configure, level_for_verbosity, resolve_level


@pytest.fixture(autouse=True)
def _reset_logging():
    """Ensure clean logging state before/after each test."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    structlog.reset_defaults()


class TestConsoleRenderer:
    def test_single_stderr_handler(self):
        configure(json_output=False)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

    def test_output_is_human_readable(self, capsys):
        configure(json_output=False)
        logging.getLogger("test.console").warning("hello world")
        captured = capsys.readouterr()
        assert "hello world" in captured.err
        assert not captured.err.strip().startswith("{")
        assert captured.out == ""

    def test_reconfigure_replaces_handler(self):
        configure()
        configure()
        assert len(logging.getLogger().handlers) == 1


class TestJSONRenderer:
    def test_output_is_valid_json(self, capsys):
        configure(json_output=True)
        logging.getLogger("test.json").warning("Rejected %d bytes", 42)
        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "Rejected 42 bytes"
        assert record["level"] == "warning"
        assert record["logger"] == "test.json"
        assert "timestamp" in record


class TestLevels:
    def test_level_applied(self):
        configure(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_lowercase_level(self):
        configure(level="error")
        assert logging.getLogger().level == logging.ERROR

    def test_unknown_level_falls_back_to_info(self):
        configure(level="CHATTY")
        assert logging.getLogger().level == logging.INFO

    @pytest.mark.parametrize(
        "name,expected",
        [("warning", logging.WARNING), ("CRITICAL", logging.CRITICAL), ("NOTSET", logging.INFO)],
    )
    def test_resolve_level(self, name, expected):
        assert resolve_level(name) == expected

    def test_filtered_below_level(self, capsys):
        configure(level="WARNING")
        logging.getLogger("test.quiet").info("not shown")
        assert "not shown" not in capsys.readouterr().err

    @pytest.mark.parametrize("verbose,expected", [(0, "WARNING"), (1, "INFO"), (2, "DEBUG"), (5, "DEBUG")])
    def test_level_for_verbosity(self, verbose, expected):
        assert level_for_verbosity(verbose) == expected
        assert expected in LOG_LEVELS
