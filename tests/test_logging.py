import json
import logging

import structlog

from core.logging import BusinessEvents, configure_logging, get_log_renderer


class _TestLogger:
    def __init__(self):
        self.output = []

    def __call__(self, logger, method_name, event_dict):
        """Process log events and store them for test assertions"""
        self.output.append(event_dict.copy())
        return event_dict


def test_structlog_json():
    test_logger = _TestLogger()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            test_logger,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    log = structlog.get_logger("test")
    log.bind(foo="bar").info("hello world")

    assert len(test_logger.output) > 0
    log_dict = test_logger.output[-1]

    assert log_dict["foo"] == "bar"
    assert log_dict["event"] == "hello world"
    assert "timestamp" in log_dict
    assert log_dict["level"] == "info"


def test_conversion_log_format():
    test_logger = _TestLogger()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            test_logger,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    log = structlog.get_logger("test.payments")
    log.bind(method="DoCapture", token="EC-1", amt="32.50").info(
        BusinessEvents.NVP_CONVERSION_PUBLISHED
    )

    log_dict = test_logger.output[-1]
    assert log_dict["method"] == "DoCapture"
    assert log_dict["token"] == "EC-1"
    assert log_dict["amt"] == "32.50"
    assert log_dict["event"] == "nvp.conversion.published"
    assert log_dict["logger"] == "test.payments"


def test_json_renderer_keeps_currency_arrow(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    renderer = get_log_renderer()

    rendered = renderer(None, "info", {"event": "KWD→USD conversion applied"})

    assert json.loads(rendered)["event"] == "KWD→USD conversion applied"
    assert "→" in rendered


def test_development_uses_console_renderer(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "development")
    assert isinstance(get_log_renderer(), structlog.dev.ConsoleRenderer)


def test_configure_logging_sets_root_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    monkeypatch.setenv("ENVIRONMENT", "test")

    configure_logging()

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1


def test_configure_logging_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("ENVIRONMENT", "development")

    configure_logging("error", "test")

    assert logging.getLogger().level == logging.ERROR
    config = structlog.get_config()
    assert isinstance(config["processors"][-1], structlog.processors.JSONRenderer)
    assert config["cache_logger_on_first_use"] is False
