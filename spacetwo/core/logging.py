from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if root.handlers:
        # Uvicorn / pytest may have installed handlers already; only adjust the level.
        root.setLevel(level.upper())
        return
    logging.basicConfig(level=level.upper(), format=_FORMAT)

    # Presigned URL calls are chatty at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
