import os
import sys
import json
import logging
from logging.handlers import RotatingFileHandler

from flask import g, has_request_context

# Configure logging
logger = logging.getLogger("solotoon")
logger.setLevel(logging.INFO)

# Determine log file path
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOG_DIR = os.environ.get('SOLOTOON_LOG_DIR', os.path.join(BASE_DIR, 'instance'))
os.makedirs(LOG_DIR, exist_ok=True)
LOG_FILE = os.path.join(LOG_DIR, 'solotoon.log')

if not logger.handlers:
    # File Handler
    file_handler = RotatingFileHandler(LOG_FILE, maxBytes=10*1024*1024, backupCount=5)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logger.addHandler(file_handler)

    # Stream Handler (stdout)
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter('%(message)s'))  # Keep stdout clean
    logger.addHandler(stream_handler)

# Debug logging (local-only file, one JSON object per line)
DEBUG_LOGGING = os.environ.get('DEBUG_LOGGING', 'false').lower() in ('1', 'true', 'yes', 'on')
DEBUG_LOG_FILE = os.path.join(LOG_DIR, 'debug.log')

debug_logger = logging.getLogger("solotoon.debug")
debug_logger.setLevel(logging.INFO)
debug_logger.propagate = False
if DEBUG_LOGGING and not any(getattr(h, "baseFilename", None) == DEBUG_LOG_FILE for h in debug_logger.handlers):
    debug_handler = RotatingFileHandler(DEBUG_LOG_FILE, maxBytes=10 * 1024 * 1024, backupCount=10)
    debug_handler.setFormatter(logging.Formatter('%(message)s'))
    debug_logger.addHandler(debug_handler)
if not DEBUG_LOGGING:
    debug_logger.disabled = True


def attach_library_loggers(*names: str) -> None:
    """Route `logging.getLogger(__name__)` output of library packages to our handlers."""
    for name in names:
        lib_logger = logging.getLogger(name)
        lib_logger.setLevel(logging.INFO)
        for handler in logger.handlers:
            if handler not in lib_logger.handlers:
                lib_logger.addHandler(handler)


def _request_prefix() -> str:
    """Return request id prefix if available."""
    if has_request_context() and getattr(g, "request_id", None):
        return f"[{g.request_id}] "
    return ""


def log(msg: str) -> None:
    """Log a message to console and file."""
    logger.info(f"{_request_prefix()}{msg}")


def debug_log_event(event: dict) -> None:
    """Write structured debug events to a local file."""
    if debug_logger.disabled:
        return
    try:
        debug_logger.info(json.dumps(event, ensure_ascii=True, separators=(',', ':')))
    except (TypeError, ValueError) as exc:
        logger.info(f"⚠️ Debug log failure: {exc}")
