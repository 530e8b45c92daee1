from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT, level=numeric_level)
    # uvicorn installs its own handlers; only the level is ours to set.
    root.setLevel(numeric_level)
    logging.getLogger("classgrid").setLevel(numeric_level)
