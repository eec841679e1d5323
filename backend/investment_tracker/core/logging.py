import logging
import sys

_HANDLER_NAME = "investment_tracker"


def setup_logging(level: str = "INFO") -> None:
    """Configure logging to stderr so stdout stays free for command output."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    if any(h.get_name() == _HANDLER_NAME for h in root_logger.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
