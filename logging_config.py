import logging
import sys
from typing import Iterable, Optional, Union

APP_LOGGERS = ("server", "canvas", "judge", "gemini_service", "strings_loader")


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None,
                  names: Iterable[str] = APP_LOGGERS) -> None:
    """
    Attach a console handler (and optionally a file handler) to the lab's loggers.

    Args:
        level: Logging level (e.g. logging.DEBUG or "DEBUG")
        log_file: Optional path to also append logs to.
        names: Loggers to configure; the app's flat modules by default.
    """
    names = tuple(names)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='a', encoding='utf-8'))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    for name in names:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = False
        # Drop handlers from an earlier call so a reload does not print every line twice
        for old in list(logger.handlers):
            logger.removeHandler(old)
            old.close()
        for handler in handlers:
            logger.addHandler(handler)

    if names:
        logging.getLogger(names[0]).info("Logging initialized.")
