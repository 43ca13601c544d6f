"""Logging setup shared by every ipherald entry point.

configure_logging() is called once, before the scheduler starts.

Levels:
- DEBUG: timer arming, next-run computation, file writes
- INFO: scheduler state changes, address changes, messages sent
- WARNING: recoverable trouble (missing cache, channel restarted)
- ERROR: a cycle step failed; the next tick retries
- CRITICAL: startup failures (config, lock)

Events are snake_case messages; details travel as dotted ``extra`` keys:

    logger.info("ip_address_changed", extra={"ip.address": "1.2.3.4"})
"""

import logging
import logging.handlers
import os
import re
from pathlib import Path

from ipherald.errors import FatalError

SYSLOG = "syslog"
SYSLOG_SOCKET = Path("/dev/log")
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(component)s | %(message)s"
SYSLOG_FORMAT = "ipherald[%(process)d]: %(levelname)s %(component)s | %(message)s"
RICH_FORMAT = "%(component)s | %(message)s"

# Group 1, when present, is the secret; the rest of the match is kept.
DEFAULT_REDACT_PATTERNS: list[str] = [
    # <bot id>:<secret>, bare or embedded in api.telegram.org/bot<token>/
    r"(?<!\d)(\d{8,}:[A-Za-z0-9_-]{30,})\b",
    # FOO_TOKEN=..., FOO_SECRET: ...
    r"\b[A-Z0-9_]+(?:KEY|TOKEN|SECRET|PASSWORD|PASSWD)\s*[=:]\s*([^\s\"']{8,})",
    # Authorization headers
    r"\bBearer\s+([A-Za-z0-9._\-+=]{20,})\b",
]

# Libraries that chatter at INFO; capped at WARNING
NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "aiogram",
    "aiogram.event",
    "aiogram.dispatcher",
]

# Attributes every LogRecord has; anything else came from ``extra``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "component"}


def _mask(secret: str) -> str:
    if len(secret) < 12:
        return "***"
    return f"{secret[:4]}...{secret[-4:]}"


class SecretRedactor:
    """Masks credentials in log text, keeping four characters at each end."""

    def __init__(
        self,
        patterns: list[re.Pattern[str]] | None = None,
        enabled: bool = True,
    ):
        self.patterns = patterns or [
            re.compile(source, re.IGNORECASE) for source in DEFAULT_REDACT_PATTERNS
        ]
        self.enabled = enabled

    def redact(self, text: str) -> str:
        if not (self.enabled and text):
            return text
        for pattern in self.patterns:
            text = pattern.sub(self._replace, text)
        return text

    @staticmethod
    def _replace(match: re.Match[str]) -> str:
        whole = match.group(0)
        if not match.lastindex:
            return _mask(whole)
        secret = match.group(1)
        if "..." in secret:
            return whole
        start, end = match.span(1)
        offset = match.start(0)
        return whole[: start - offset] + _mask(secret) + whole[end - offset :]


class RedactingFilter(logging.Filter):
    """Runs the rendered message and string extras through a SecretRedactor."""

    def __init__(self, redactor: SecretRedactor | None = None):
        super().__init__()
        self._redactor = redactor or SecretRedactor()

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._redactor.redact(record.getMessage())
        record.args = None
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and isinstance(value, str):
                setattr(record, key, self._redactor.redact(value))
        return True


def _component(name: str) -> str:
    head, _, rest = name.partition(".")
    if head == "ipherald" and rest:
        return rest.partition(".")[0]
    return head


def format_extras(record: logging.LogRecord) -> str:
    """Render structured ``extra`` fields as ``key=value`` pairs."""
    return " ".join(
        f"{key}={value}"
        for key, value in sorted(record.__dict__.items())
        if key not in _RECORD_ATTRS and value is not None
    )


class ComponentFormatter(logging.Formatter):
    """Adds ``%(component)s`` and appends extras after the message.

    ``ipherald.scheduling.scheduler`` becomes ``scheduling``; loggers outside
    the package keep their first name segment.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.component = _component(record.name)
        rendered = super().format(record)
        extras = format_extras(record)
        return f"{rendered} {extras}" if extras else rendered


def _syslog_handler() -> logging.Handler:
    try:
        if SYSLOG_SOCKET.exists():
            return logging.handlers.SysLogHandler(address=str(SYSLOG_SOCKET))
        return logging.handlers.SysLogHandler()
    except OSError as e:
        raise FatalError(f"failed to create syslog logger: {e}") from e


def _file_handler(log_file: str) -> logging.Handler:
    path = Path(log_file).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Reopens the file after logrotate moves it
        return logging.handlers.WatchedFileHandler(path, encoding="utf-8")
    except OSError as e:
        raise FatalError(f"failed to open log file {path}: {e}") from e


def _build_handler(log_file: str | None, use_rich: bool) -> logging.Handler:
    if not log_file:
        if use_rich:
            from rich.logging import RichHandler

            handler: logging.Handler = RichHandler(
                rich_tracebacks=False,
                show_path=False,
                markup=False,
            )
            handler.setFormatter(ComponentFormatter(RICH_FORMAT))
            return handler
        handler = logging.StreamHandler()
    elif log_file == SYSLOG:
        handler = _syslog_handler()
        handler.setFormatter(ComponentFormatter(SYSLOG_FORMAT))
        return handler
    else:
        handler = _file_handler(log_file)
    handler.setFormatter(
        ComponentFormatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )
    return handler


def configure_logging(
    level: str | None = None,
    log_file: str | None = None,
    use_rich: bool = False,
) -> None:
    """Install the root handler.

    Args:
        level: DEBUG, INFO, WARNING or ERROR, case-insensitive. Defaults to
            $IPHERALD_LOG_LEVEL, then INFO; unknown names fall back to INFO.
        log_file: "" or None for the console, "syslog", or a file path.
        use_rich: Render console output with Rich. Ignored for files and syslog.

    Raises:
        FatalError: If the log destination cannot be opened.
    """
    name = (level or os.environ.get("IPHERALD_LOG_LEVEL") or "INFO").upper()
    if name not in LEVELS:
        name = "INFO"

    handler = _build_handler(log_file, use_rich)
    handler.addFilter(RedactingFilter())
    logging.basicConfig(level=getattr(logging, name), handlers=[handler], force=True)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
