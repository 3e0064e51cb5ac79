"""
Logging setup shared by the app factory and the operator scripts.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level="INFO"):
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if not any(getattr(h, "_handoff_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._handoff_handler = True
        root.addHandler(handler)

    root.setLevel(level)
    # Socket.IO/engine.IO are chatty at INFO
    logging.getLogger("engineio").setLevel(max(level, logging.WARNING))
    logging.getLogger("socketio").setLevel(max(level, logging.WARNING))
    return root
