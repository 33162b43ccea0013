import logging
import sys
import structlog
import os
from opentelemetry.instrumentation.logging import LoggingInstrumentor

# Global variable to store test output
test_output = []


def get_log_level(log_level=None):
    """Get log level from the argument, the environment or default to INFO"""
    return (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()


def get_log_renderer(environment=None):
    """Get log renderer based on environment"""
    env = environment or os.getenv("ENVIRONMENT", "development")
    # JSON lines for tests and production
    if env in ["test", "production"]:
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=True, sort_keys=False)


def test_output_processor(logger, method_name, event_dict):
    """Keep a copy of each event for test assertions"""
    env = os.getenv("ENVIRONMENT", "development")
    if env == "test":
        test_output.append(event_dict.copy())
    return event_dict


def configure_logging(log_level=None, environment=None):
    """
    Set up structlog + OTEL context injection.

    Arguments win over the LOG_LEVEL and ENVIRONMENT variables, so the
    bootstrap can apply the loaded Settings.
    """
    env = environment or os.getenv("ENVIRONMENT", "development")
    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.ExceptionPrettyPrinter(),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            test_output_processor,
            get_log_renderer(env),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        # Cached loggers would ignore later reconfiguration in tests
        cache_logger_on_first_use=env != "test",
    )

    if env == "test":
        # In test mode, write to stdout for easier capture
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler()

    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]  # Replace any existing handlers
    root_logger.setLevel(get_log_level(log_level))

    # Initialize OpenTelemetry logging instrumentation AFTER configuring logging
    instrumentor = LoggingInstrumentor()
    if not instrumentor.is_instrumented_by_opentelemetry:
        instrumentor.instrument(set_logging_format=False)


# Business Event Log Names
class BusinessEvents:
    """Standard names for business event logs"""

    NVP_REWRITE_SKIPPED = "nvp.rewrite.skipped"
    NVP_CURRENCY_FORCED = "nvp.currency.forced"
    NVP_AMOUNTS_CONVERTED = "nvp.amounts.converted"
    NVP_CONVERSION_PUBLISHED = "nvp.conversion.published"
    AUDIT_ATTACHED = "audit.comment.attached"
    AUDIT_SKIPPED = "audit.comment.skipped"
    AUDIT_FAILED = "audit.comment.failed"


# Configure logging when module is imported
configure_logging()
