import logging
import os
from datetime import datetime

LOGGER_NAME = "alerta_rag"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(log_dir: str | None = None, level: int = logging.INFO) -> logging.Logger:
    """Configure the ``alerta_rag`` logger.

    With *log_dir* everything goes to a timestamped file in that
    directory; otherwise to stderr.  Calling it again replaces the
    handlers it installed before.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if getattr(handler, "_alerta_rag", False):
            logger.removeHandler(handler)
            handler.close()

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = os.path.join(log_dir, f"alerta_rag_{timestamp}.log")
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    handler._alerta_rag = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False
    return logger
