import io
import logging

from registry_report.logging_setup import configure_logging, get_logger


def test_package_is_silent_until_configured():
    get_logger("registry_report.report")

    handlers = logging.getLogger("registry_report").handlers
    assert any(isinstance(handler, logging.NullHandler) for handler in handlers)


def test_configure_logging_attaches_one_stream_handler():
    stream = io.StringIO()

    configure_logging("debug", fmt="%(name)s %(levelname)s %(message)s", stream=stream)
    configure_logging("error")
    get_logger("registry_report.excel").debug("serialized")

    handlers = logging.getLogger("registry_report").handlers
    assert len(handlers) == 1
    assert stream.getvalue() == "registry_report.excel DEBUG serialized\n"


def test_level_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("REGISTRY_REPORT_LOG_LEVEL", "WARNING")
    stream = io.StringIO()

    configure_logging(stream=stream)
    logger = get_logger("registry_report.cli")
    logger.info("hidden")
    logger.warning("shown")

    assert stream.getvalue().count("\n") == 1
    assert "shown" in stream.getvalue()


def test_unknown_environment_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("REGISTRY_REPORT_LOG_LEVEL", "verbose")

    logger = configure_logging(stream=io.StringIO())

    assert logger.level == logging.INFO


def test_unknown_explicit_level_uses_environment(monkeypatch):
    monkeypatch.setenv("REGISTRY_REPORT_LOG_LEVEL", "debug")

    logger = configure_logging("loud", stream=io.StringIO())

    assert logger.level == logging.DEBUG


def test_unknown_explicit_and_environment_levels_fall_back_to_info(monkeypatch):
    monkeypatch.setenv("REGISTRY_REPORT_LOG_LEVEL", "loud")

    logger = configure_logging("loud", stream=io.StringIO())

    assert logger.level == logging.INFO


def test_numeric_level_names_are_accepted():
    logger = configure_logging("15", stream=io.StringIO())

    assert logger.level == 15
