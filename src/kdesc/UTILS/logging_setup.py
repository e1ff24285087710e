"""
Console logging setup for the command line tool.
"""
import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
_HANDLER_NAME = "kdesc-console"


def setup_logging(verbosity: int = 0) -> None:
    """
    Configures the ``kdesc`` logger to write to the current stderr.

    Calling it again replaces the console handler, so the level and
    target stream always follow the latest call.

    :param verbosity: 0 shows warnings, 1 info, 2 or more debug.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logger = logging.getLogger("kdesc")
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)

    console = logging.StreamHandler()
    console.set_name(_HANDLER_NAME)
    console.setFormatter(logging.Formatter(_FORMAT))
    console.setLevel(level)
    logger.addHandler(console)
