# queue_optimizer/log_handler/logging_config.py
import logging
import queue
import os
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from typing import Optional, Dict, Union

# Logging is configured once per process
_logging_configured = False
_log_listener = None

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Applied before caller overrides; throttle admission logs each refusal at DEBUG
DEFAULT_MODULE_LEVELS: Dict[str, Union[int, str]] = {
    "queue_optimizer.throttle": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "ray": logging.WARNING,
}


def setup_logging(
    log_level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    module_levels: Optional[Dict[str, Union[int, str]]] = None
) -> QueueListener:
    """
    Central logging configuration for the analyzer service.

    Records are pushed through a queue so that request handlers and
    throttle admission never block on console or file I/O.

    Args:
        log_level: Base logging level for the application
        log_file: Optional file path to write logs to
        module_levels: Dictionary mapping logger names to specific log levels,
                      applied on top of DEFAULT_MODULE_LEVELS
                      e.g. {"queue_optimizer.throttle": logging.DEBUG}

    Returns:
        The running QueueListener; stop it with shutdown_logging()
    """
    global _logging_configured, _log_listener

    if _logging_configured and _log_listener is not None:
        return _log_listener

    if log_file and os.path.dirname(log_file):
        os.makedirs(os.path.dirname(log_file), exist_ok=True)

    log_queue = queue.Queue()
    formatter = logging.Formatter(LOG_FORMAT)

    handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    queue_handler = QueueHandler(log_queue)
    listener = QueueListener(
        log_queue, *handlers, respect_handler_level=True
    )

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    root_logger.addHandler(queue_handler)
    root_logger.setLevel(log_level)

    levels = dict(DEFAULT_MODULE_LEVELS)
    levels.update(module_levels or {})
    for module_name, level in levels.items():
        logging.getLogger(module_name).setLevel(level)

    listener.start()

    _logging_configured = True
    _log_listener = listener

    return listener


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module, typically called with __name__."""
    return logging.getLogger(name)


def shutdown_logging():
    """Stop the queue listener and flush pending records."""
    global _log_listener, _logging_configured

    if _log_listener is not None:
        _log_listener.stop()
        _log_listener = None
        _logging_configured = False
