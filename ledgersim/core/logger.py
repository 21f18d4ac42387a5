import structlog
import logging

def configure_logging(log_level: str = "INFO"):
    """
    Configures structlog to output JSON logs to stdout.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer()
        ],
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(log_level.upper())),
        cache_logger_on_first_use=False,
    )

def bind_scenario(transaction_number: int, sender: str):
    """
    Binds the open transaction to every log line emitted until the next boundary.
    """
    structlog.contextvars.bind_contextvars(tx=transaction_number, sender=sender)

def clear_scenario():
    structlog.contextvars.unbind_contextvars("tx", "sender")

def get_logger(name: str):
    return structlog.get_logger(name)
