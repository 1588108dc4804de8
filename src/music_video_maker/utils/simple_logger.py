"""Progress logging helpers for cleaner output."""

import logging
import sys


class CleanFormatter(logging.Formatter):
    """Formatter that renders progress records without the usual prefix noise."""

    def format(self, record):
        module = record.pathname.split('/')[-1].replace('.py', '') or record.name.split('.')[-1]

        if record.levelname == 'INFO':
            progress_type = getattr(record, 'progress_type', None)
            if progress_type == 'start':
                return f"🚀 {module}: {record.getMessage()}"
            elif progress_type == 'update':
                return f"   ▶ {record.getMessage()}"
            elif progress_type == 'complete':
                return f"✅ {module}: {record.getMessage()}"
            return f"INFO  | {module}: {record.getMessage()}"
        elif record.levelname == 'ERROR':
            return f"❌ ERROR | {module}: {record.getMessage()}"
        elif record.levelname == 'WARNING':
            return f"⚠️  WARN | {module}: {record.getMessage()}"
        return f"{record.levelname:5s} | {module}: {record.getMessage()}"


def setup_logging(level: int = logging.INFO):
    """Set up logging with clean format and suppressed external libraries."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(CleanFormatter())
    root_logger.addHandler(console_handler)

    for lib in ['httpx', 'httpcore', 'google.genai', 'google_genai', 'google.auth',
                'urllib3', 'numba', 'audioread', 'PIL']:
        logging.getLogger(lib).setLevel(logging.WARNING)


def _log_progress(logger: logging.Logger, progress_type: str, message: str):
    record = logger.makeRecord(
        logger.name, logging.INFO, "", 0, message, (), None
    )
    record.progress_type = progress_type
    logger.handle(record)


def log_start(logger: logging.Logger, message: str):
    """Log the start of a task."""
    _log_progress(logger, 'start', message)


def log_update(logger: logging.Logger, message: str):
    """Log a progress update."""
    _log_progress(logger, 'update', message)


def log_complete(logger: logging.Logger, message: str):
    """Log task completion."""
    _log_progress(logger, 'complete', message)
