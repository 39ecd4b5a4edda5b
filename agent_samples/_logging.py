# Copyright (c) Microsoft. All rights reserved.

import logging

from .exceptions import AgentSamplesException

__all__ = ["get_logger", "setup_logging"]

DEFAULT_LOG_FORMAT = "[%(asctime)s - %(name)s:%(lineno)d - %(levelname)s] %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER_NAME = "agent_samples"

logging.basicConfig(format=DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT)


def setup_logging(level: int = logging.INFO, fmt: str = DEFAULT_LOG_FORMAT) -> None:
    """Configure a stream handler for the ``agent_samples`` logger tree.

    Calling it more than once replaces the handler instead of stacking a new one. Records
    no longer propagate to the root logger configured at import.

    Args:
        level: The log level for the package loggers.
        fmt: The log record format.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DEFAULT_DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Get a logger with the specified name, defaulting to 'agent_samples'.

    Args:
        name: The name of the logger. Must be in the 'agent_samples' namespace.

    Returns:
        The configured logger instance.

    Raises:
        AgentSamplesException: If the name is outside the package namespace.
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        raise AgentSamplesException(f"Logger name must start with '{ROOT_LOGGER_NAME}', got '{name}'.")
    return logging.getLogger(name)
