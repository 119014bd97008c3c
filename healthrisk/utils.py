"""
Shared utilities.
"""
import logging
import sys

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_configured = False


def _configure_root(level: int) -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root = logging.getLogger("healthrisk")
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a module logger under the package's logging namespace."""
    from healthrisk.config import settings

    _configure_root(logging.DEBUG if settings.debug else logging.INFO)
    if not name.startswith("healthrisk"):
        name = f"healthrisk.{name}"
    return logging.getLogger(name)
