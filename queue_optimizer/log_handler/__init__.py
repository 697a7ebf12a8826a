# queue_optimizer/log_handler/__init__.py
from .logging_config import setup_logging, get_logger, shutdown_logging, LOG_FORMAT, DEFAULT_MODULE_LEVELS

__all__ = [
    "setup_logging",
    "get_logger",
    "shutdown_logging",
    "LOG_FORMAT",
    "DEFAULT_MODULE_LEVELS",
]
