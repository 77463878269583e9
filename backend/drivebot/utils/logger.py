"""
Logging setup shared by every module.
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once with a single stream handler.
    
    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)
    """
    global _configured
    
    root = logging.getLogger()
    root.setLevel(level.upper())
    
    if _configured:
        return
    
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    
    # httpx logs every request URL at INFO, which would include query strings
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""
    return logging.getLogger(name)
