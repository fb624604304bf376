from __future__ import annotations

import logging
import sys

_HANDLER_NAME = "chore_calendar"


def configure_logging(level: str = "INFO") -> None:
    """
    Attach one stderr handler to the root logger and set its level.

    Safe to call more than once (e.g. one app per test); the handler is only
    added the first time.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
