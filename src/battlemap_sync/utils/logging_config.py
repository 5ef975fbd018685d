"""
Logging configuration for battlemap-sync.

Everything goes through the root logger: the console handler, the optional
rotating CSV file, and Qt's own diagnostics (QtNetwork SSL and socket
warnings, for example), which are forwarded from Qt's message handler.
"""

import logging
import logging.handlers
from typing import TYPE_CHECKING, Optional

from PySide6.QtCore import QMessageLogContext, QtMsgType, qInstallMessageHandler

if TYPE_CHECKING:
    from ..settings import AppSettings

CONSOLE_FORMAT = "%(asctime)s : %(levelname)-8s : %(name)s : %(message)s"
# Logs every GET/PUT at DEBUG; polling makes that one line every few seconds
NETWORK_LOGGER = "battlemap_sync.sync.transport"
QT_LOGGER = "battlemap_sync.qt"

QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        color = self.COLORS.get(record.levelname)
        if color is None:
            return formatted
        return formatted.replace(record.levelname, f"{color}{record.levelname}{self.RESET}", 1)


class CSVFormatter(logging.Formatter):
    """One ``;``-separated row per record: time, level, uptime, logger, line, message."""

    def format(self, record: logging.LogRecord) -> str:
        fields = (
            self.formatTime(record, self.datefmt),
            record.levelname,
            f"{int(record.relativeCreated)} ms",
            record.name,
            str(record.lineno),
            record.getMessage(),
        )
        return ";".join('"' + value.replace('"', '""') + '"' for value in fields)


def forward_qt_message(mode: QtMsgType, context: QMessageLogContext, message: str) -> None:
    """Qt message handler that re-emits Qt diagnostics on the ``battlemap_sync.qt`` logger."""
    category = context.category or "default"
    logging.getLogger(QT_LOGGER).log(QT_LEVELS.get(mode, logging.WARNING), f"[{category}] {message}")


def _console_handler(level: str, use_colors: bool) -> logging.Handler:
    formatter_class = ColoredFormatter if use_colors else logging.Formatter
    handler = logging.StreamHandler()
    handler.setLevel(getattr(logging, level, logging.INFO))
    handler.setFormatter(formatter_class(fmt=CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    return handler


def _file_handler(settings: "AppSettings") -> Optional[logging.handlers.RotatingFileHandler]:
    log_path = settings.log_file_absolute_path
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=settings.logging.file_max_bytes,
            backupCount=settings.logging.file_backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        logging.getLogger(__name__).warning(f"Could not open log file {log_path}: {e}")
        return None
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(CSVFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(settings: "AppSettings") -> None:
    """
    Install console and file handlers on the root logger.

    Safe to call again after settings change: existing root handlers are
    replaced.

    Args:
        settings: AppSettings instance for all logging configuration
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    logging.getLogger("battlemap_sync").setLevel(logging.DEBUG)
    logging.getLogger(NETWORK_LOGGER).setLevel(settings.logging.network_log_level)
    qInstallMessageHandler(forward_qt_message)

    if settings.console_logging:
        root_logger.addHandler(
            _console_handler(settings.console_log_level, settings.console_use_colors)
        )

    file_handler = _file_handler(settings) if settings.file_logging else None
    if file_handler is not None:
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info("Logging initialized")
    logger.debug(
        f"Console: {settings.console_logging} ({settings.console_log_level}), "
        f"file: {file_handler.baseFilename if file_handler else 'off'}, "
        f"network: {settings.logging.network_log_level}"
    )
