import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """Console logging always, info/error files when a log directory is configured."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # create_app may run many times in one process (tests)
    if any(getattr(h, "_travelplace", False) for h in root_logger.handlers):
        return

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = [logging.StreamHandler()]

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        info_handler = logging.FileHandler(path / "info.log", encoding="utf-8")
        error_handler = logging.FileHandler(path / "errors.log", encoding="utf-8")
        info_handler.setLevel(logging.INFO)
        error_handler.setLevel(logging.ERROR)
        handlers.extend([info_handler, error_handler])

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._travelplace = True
        root_logger.addHandler(handler)
