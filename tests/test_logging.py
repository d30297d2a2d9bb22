import logging

from app.core.config import Settings
from app.core.logging import NOISY_LOGGERS, configure_logging, init_tracer, otlp_headers


def test_otlp_headers_parsing():
    assert otlp_headers(None) == {}
    assert otlp_headers("authorization=Bearer abc, x-team = desk,broken") == {
        "authorization": "Bearer abc",
        "x-team": "desk",
    }


def test_configure_logging_sets_levels():
    logger = configure_logging(Settings(_env_file=None, log_level="debug"))

    assert logger.name == "app"
    assert logger.level == logging.DEBUG
    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_unknown_log_level_falls_back_to_info():
    logger = configure_logging(Settings(_env_file=None, log_level="chatty"))

    assert logger.level == logging.INFO


def test_tracer_disabled_by_default():
    assert init_tracer(Settings(_env_file=None)) is None
