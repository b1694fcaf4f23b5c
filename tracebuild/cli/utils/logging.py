import logging
import sys


logger = logging.getLogger("tracebuild")

_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter("tracebuild: %(message)s"))


def configure_logging(debug: bool):
    """
    Configures the logging system based on the debug flag.

    Diagnostics go to stderr: stdout belongs to `id`/`now` output and to the
    wrapped command.
    """
    _handler.setStream(sys.stderr)

    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)

    if _handler not in logger.handlers:
        logger.addHandler(_handler)
