"""Retry-or-fail classification of workflow errors."""

from __future__ import annotations

import enum

from permset_revoker.errors import ActionError

_RETRYABLE_SIGNALS = ("429", "502", "503", "504")
_FATAL_SIGNALS = ("401", "403")


class FailureDecision(str, enum.Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


def _status_signal(error: BaseException) -> str:
    """Text the status codes are looked for in.

    Our own errors only ever signal through ``status``; their messages embed
    caller data (usernames, record ids) that must not be read as a status.
    """
    status = getattr(error, "status", None)
    if isinstance(status, int):
        return str(status)
    if isinstance(error, ActionError):
        return ""
    return str(error)


def classify_failure(
    error: BaseException,
    default: FailureDecision = FailureDecision.RETRYABLE,
) -> FailureDecision:
    """Decide whether ``error`` is worth retrying.

    Rate limiting and gateway failures are retryable, authentication and
    authorization failures are fatal, anything else gets ``default``.
    """
    signal = _status_signal(error)
    if any(code in signal for code in _RETRYABLE_SIGNALS):
        return FailureDecision.RETRYABLE
    if any(code in signal for code in _FATAL_SIGNALS):
        return FailureDecision.FATAL
    return default
