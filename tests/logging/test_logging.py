"""Tests for package logging setup and level control."""

import logging
from io import StringIO

import pytest

from flowmatch.logging import (
    LEVEL_ENV_VAR,
    ROOT_LOGGER_NAME,
    debug_logging,
    disable_debug_logging,
    enable_debug_logging,
    get_logger,
    reset_logging,
    set_global_log_level,
    setup_root_logger,
)


@pytest.fixture(autouse=True)
def _reset_logging_each_test():
    reset_logging()
    yield
    reset_logging()


def test_effective_levels_enable_disable():
    """INFO by default, DEBUG after enable, back to INFO after disable."""
    logger = get_logger("flowmatch.test")

    capture = StringIO()
    handler = logging.StreamHandler(capture)
    handler.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.addHandler(handler)

    logger.info("info-1")
    assert "info-1" in capture.getvalue()

    capture.seek(0)
    capture.truncate(0)
    logger.debug("debug-1")
    assert "debug-1" not in capture.getvalue()

    enable_debug_logging()
    logger.debug("debug-2")
    assert "debug-2" in capture.getvalue()

    capture.seek(0)
    capture.truncate(0)
    disable_debug_logging()
    logger.debug("debug-3")
    assert "debug-3" not in capture.getvalue()

    logger.removeHandler(handler)


def test_global_level_reaches_existing_and_new_loggers():
    solver_logger = get_logger("flowmatch.algorithms.push_relabel")
    matching_logger = get_logger("flowmatch.matching")

    assert solver_logger.getEffectiveLevel() == logging.INFO
    assert matching_logger.getEffectiveLevel() == logging.INFO

    set_global_log_level(logging.WARNING)
    assert solver_logger.getEffectiveLevel() == logging.WARNING
    assert matching_logger.getEffectiveLevel() == logging.WARNING

    late_logger = get_logger("flowmatch.graph.flow_network")
    assert late_logger.getEffectiveLevel() == logging.WARNING


def test_setup_root_logger_is_idempotent():
    capture = StringIO()
    setup_root_logger(level=logging.INFO, handler=logging.StreamHandler(capture))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    assert len(root_logger.handlers) == 1

    setup_root_logger(level=logging.DEBUG)
    assert len(root_logger.handlers) == 1
    assert root_logger.level == logging.INFO

    set_global_log_level(logging.ERROR)
    assert root_logger.level == logging.ERROR


def test_custom_format_string_applied():
    capture = StringIO()
    fmt = "LEVEL:%(levelname)s|NAME:%(name)s|MSG:%(message)s"
    setup_root_logger(
        level=logging.INFO, format_string=fmt, handler=logging.StreamHandler(capture)
    )

    get_logger("flowmatch.test.format").info("hello")
    out = capture.getvalue()
    assert "LEVEL:INFO" in out
    assert "NAME:flowmatch.test.format" in out
    assert "MSG:hello" in out


def test_solver_debug_output_reaches_root_handler(line1):
    from flowmatch.algorithms.push_relabel import PushRelabelMaxFlow

    capture = StringIO()
    setup_root_logger(level=logging.DEBUG, handler=logging.StreamHandler(capture))

    PushRelabelMaxFlow(line1).preflow_push()
    assert "flow value is 3" in capture.getvalue()


def test_level_names_accepted():
    set_global_log_level("warning")
    assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.WARNING

    with pytest.raises(ValueError, match="Unknown log level 'loud'"):
        set_global_log_level("loud")


def test_environment_level_applies_on_setup(monkeypatch):
    monkeypatch.setenv(LEVEL_ENV_VAR, "debug")
    logger = get_logger("flowmatch.matching")
    assert logger.getEffectiveLevel() == logging.DEBUG


def test_debug_logging_context_restores_level():
    set_global_log_level(logging.ERROR)
    logger = get_logger("flowmatch.algorithms.push_relabel")

    with debug_logging():
        assert logger.isEnabledFor(logging.DEBUG)
    assert logger.getEffectiveLevel() == logging.ERROR
