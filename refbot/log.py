"""Logging setup for the referee bot.

   Modules get their loggers with logging.getLogger(__name__); this module
   only attaches the handlers to the root logger, once, at start-up.
"""

import logging
from logging.handlers import RotatingFileHandler
import sys

from refbot.config import cfg


LOG_FORMAT = ("[%(asctime)s] [%(levelname)s] "
              "[%(name)s:%(funcName)s:%(lineno)d] %(message)s")
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# The gateway and HTTP layers log every heartbeat and request at INFO.
NOISY_LOGGERS = ("discord.gateway", "discord.http", "discord.client")


def setup_logging(level=None, log_file=None) -> logging.Logger:
    """Attaches console and (optional) rotating file handlers to the root
       logger. Calling this more than once is a no-op.
    """
    root = logging.getLogger()
    if any(getattr(h, "_refbot", False) for h in root.handlers):
        return root

    level = level if level is not None else cfg("REFBOT_LOG_LEVEL")
    log_file = log_file if log_file is not None else cfg("REFBOT_LOG_FILE")
    root.setLevel(logging.getLevelName(level.upper()))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(RotatingFileHandler(log_file, maxBytes=5_000_000,
                                            backupCount=3, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        handler._refbot = True  # pylint: disable=protected-access
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def handle_exception(exc_type, exc_value, exc_traceback) -> None:
    """sys.excepthook that sends uncaught exceptions to the log."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logging.getLogger("refbot").critical(
        "Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))
