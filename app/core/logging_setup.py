import logging
import sys
from typing import Optional


def setup_logging(log_file: Optional[str] = "chat_debug.log", level: str = "INFO"):
    """Configures logging to write to the console and, if given, a file."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
    # Ensure specific loggers are also propagating or handled
    logging.getLogger("uvicorn").handlers = []  # Avoid double logging if uvicorn sets its own
    logging.getLogger("uvicorn").propagate = True
    # httpx loggt jede Anfrage auf INFO; das Gateway loggt Upstream-Calls selbst.
    logging.getLogger("httpx").setLevel(logging.WARNING)
