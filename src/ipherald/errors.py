"""ipherald exception hierarchy.

Every collaborator failure is raised as a HeraldError. The severity decides
how the scheduler reacts:

- INFO: state transitions, never affect control flow
- WARNING: recoverable, logged and the cycle continues
- ERROR: the current cycle aborts, the next scheduled tick retries
- FATAL: unrecoverable at startup, the process must not start
"""

import logging
from enum import IntEnum


class Severity(IntEnum):
    """Error severity, ordered from least to most serious."""

    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    FATAL = logging.CRITICAL

    @property
    def log_level(self) -> int:
        return int(self)


class HeraldError(Exception):
    """Base exception for all ipherald errors."""

    default_severity = Severity.ERROR

    def __init__(self, message: str = "", *, severity: Severity | None = None):
        super().__init__(message)
        self.severity = severity if severity is not None else self.default_severity

    @property
    def is_recoverable(self) -> bool:
        """True when the current cycle may carry on after this error."""
        return self.severity <= Severity.WARNING


class NotFoundError(HeraldError):
    """A stored value does not exist yet."""

    default_severity = Severity.WARNING


class StoreError(HeraldError):
    """Reading or writing a persisted value failed."""


class AddressLookupError(HeraldError):
    """The live external address lookup failed."""


class ChannelError(HeraldError):
    """Error opening, sending on or closing the notification channel."""


class FatalError(HeraldError):
    """Unrecoverable startup failure."""

    default_severity = Severity.FATAL


class ConfigError(FatalError):
    """Invalid or missing configuration."""


class LockError(FatalError):
    """The process lock could not be acquired or released."""


def log_error(logger: logging.Logger, event: str, err: BaseException) -> None:
    """Log an error at the level matching its severity."""
    severity = getattr(err, "severity", Severity.ERROR)
    logger.log(
        severity.log_level,
        event,
        extra={
            "error.message": str(err),
            "error.severity": severity.name,
        },
    )
