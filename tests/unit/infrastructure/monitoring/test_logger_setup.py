import logging

import pytest

from corpusqa.infrastructure.config.settings import set_config_for_testing
from corpusqa.infrastructure.monitoring.logger_setup import configure_logging, resolve_log_level, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    httpx_level = logging.getLogger("httpx").level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(httpx_level)


@pytest.mark.parametrize("name, expected", [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("nonsense", logging.INFO)])
def test_resolve_log_level(name, expected):
    assert resolve_log_level(name) == expected


def test_setup_logging_accepts_level_names():
    setup_logging(log_level="error")

    assert logging.getLogger().level == logging.ERROR
    assert len(logging.getLogger().handlers) == 1


def test_configure_logging_reads_config(tmp_path):
    log_file = tmp_path / "corpusqa.log"
    set_config_for_testing({
        "logging.level": "debug",
        "logging.file": str(log_file),
        "logging.format": "%(levelname)s|%(message)s",
    })

    configure_logging()
    logging.getLogger("corpusqa.test").debug("hello from the test")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
    assert logging.getLogger("httpx").level == logging.WARNING
    for handler in root.handlers:
        handler.flush()
    assert "DEBUG|hello from the test" in log_file.read_text()
