"""Entrypoint: run one removal job described as JSON on stdin."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from typing import Any, TextIO

from permset_revoker import __version__
from permset_revoker.errors import ActionError
from permset_revoker.handlers import error, invoke
from permset_revoker.logging_utils import configure_logging, get_logger

_logger = logging.getLogger(__name__)

_HALT_SIGNALS = ("SIGTERM", "SIGINT")


def _read_job(stream: TextIO) -> tuple[dict[str, Any], dict[str, Any]]:
    try:
        job = json.load(stream)
    except json.JSONDecodeError as exc:
        raise ActionError(f"Job input is not valid JSON: {exc}") from exc
    if not isinstance(job, dict):
        raise ActionError("Job input must be a JSON object")
    return dict(job.get("params") or {}), dict(job.get("context") or {})


def _install_halt_handlers(halt_event: asyncio.Event) -> list[signal.Signals]:
    """Set ``halt_event`` on SIGTERM/SIGINT; returns the signals hooked."""
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []

    def _on_signal(signum: signal.Signals) -> None:
        _logger.warning("Received %s, halting after the current call", signum.name)
        halt_event.set()

    for name in _HALT_SIGNALS:
        signum = getattr(signal, name, None)
        if signum is None:
            continue
        try:
            loop.add_signal_handler(signum, _on_signal, signum)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform or outside the main thread.
            continue
        installed.append(signum)
    return installed


async def run_job(
    params: dict[str, Any],
    context: dict[str, Any],
    halt_event: asyncio.Event | None = None,
) -> dict[str, Any]:
    """Invoke the job; hand failures to the error handler.

    A termination signal received mid-job stops the workflow at its next
    decision point and yields the halted record.
    """
    if halt_event is None:
        halt_event = asyncio.Event()
    installed = _install_halt_handlers(halt_event)
    try:
        return await invoke(params, context, halt_event=halt_event)
    except Exception as exc:
        return await error({**params, "error": exc}, context)
    finally:
        loop = asyncio.get_running_loop()
        for signum in installed:
            loop.remove_signal_handler(signum)


def run_entrypoint(stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    configure_logging()
    logger = get_logger(__name__)
    logger.info("permset-revoker v%s", __version__)

    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    try:
        params, context = _read_job(stdin)
        result = asyncio.run(run_job(params, context))
    except Exception as exc:
        logger.error("Job failed: %s", exc)
        json.dump({"status": "failed", "error": str(exc)}, stdout)
        stdout.write("\n")
        return 1

    json.dump(result, stdout)
    stdout.write("\n")
    return 0


def main() -> None:  # pragma: no cover
    sys.exit(run_entrypoint())


if __name__ == "__main__":  # pragma: no cover
    main()
