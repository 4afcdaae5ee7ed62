from __future__ import annotations
import logging


def configure_logging(level: str | int = logging.WARNING) -> logging.Logger:
    """Configure root logging for the command line client.

    Replies go to stdout, so logging goes to stderr and defaults to WARNING.
    Returns a module logger for the caller.
    """
    if isinstance(level, str):
        numeric = getattr(logging, level.upper(), None)
        if not isinstance(numeric, int):
            logging.getLogger(__name__).warning("Unknown log level %r; using WARNING", level)
            numeric = logging.WARNING
        level = numeric

    # Reconfigure root handlers to use the selected level and format
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s [%(name)s]: %(message)s')
    logger = logging.getLogger(__name__)

    # Keep known noisy libraries quiet by default
    logging.getLogger('redis').setLevel(logging.WARNING)
    logger.debug("Log level set to: %s", logging.getLevelName(level))

    return logger
