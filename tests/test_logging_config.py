import io
import logging

import pytest

from pfa_geometry.errors import AlreadyInitializedError
from pfa_geometry.utils import logging_config


@pytest.fixture
def package_logger():
    package_logger = logging.getLogger(logging_config.PACKAGE_LOGGER)
    old_handlers = package_logger.handlers[:]
    old_level = package_logger.level
    yield package_logger
    package_logger.handlers = old_handlers
    package_logger.setLevel(old_level)


def test_configure_explicit_level(package_logger):
    root_handlers = logging.getLogger().handlers[:]
    assert logging_config.configure("debug") is package_logger
    assert package_logger.level == logging.DEBUG
    assert logging.getLogger().handlers == root_handlers


def test_configure_from_environment(monkeypatch, package_logger):
    monkeypatch.setenv(logging_config.LOG_LEVEL_ENV, "WARNING")
    logging_config.configure()
    assert package_logger.level == logging.WARNING


def test_configure_unknown_level_falls_back_to_info(package_logger):
    logging_config.configure("chatty")
    assert package_logger.level == logging.INFO


def test_configure_twice_keeps_one_handler(package_logger):
    logging_config.configure("info")
    logging_config.configure("info")
    console_handlers = [h for h in package_logger.handlers if getattr(h, "_pfa_geometry_console", False)]
    assert len(console_handlers) == 1


def test_configured_stream_receives_geometry_messages(package_logger, initialized_helper, geometry_parameters):
    stream = io.StringIO()
    logging_config.configure("info", stream=stream)
    with pytest.raises(AlreadyInitializedError):
        initialized_helper.initialize(geometry_parameters)
    assert "ERROR:pfa_geometry.geometry_helper:Geometry helper initialize called twice" in stream.getvalue()


def test_initialize_is_logged(caplog, helper, geometry_parameters):
    caplog.set_level(logging.INFO, logger="pfa_geometry")
    helper.initialize(geometry_parameters)
    assert any("Geometry initialized" in record.getMessage() for record in caplog.records)
