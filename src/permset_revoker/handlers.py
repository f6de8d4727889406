"""Action lifecycle handlers: ``invoke``, ``error`` and ``halt``.

``params`` is the raw job parameter mapping; ``context`` carries secrets,
environment defaults and job data (see ``ActionContext``).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from permset_revoker.config import load_settings
from permset_revoker.errors import InvalidParameters, WorkflowHalted
from permset_revoker.models import ActionContext, RemovalParams
from permset_revoker.recovery import FailureDecision, classify_failure
from permset_revoker.transport import create_http_client
from permset_revoker.utils.masking import redact_sensitive_fields
from permset_revoker.utils.templates import resolve_templates
from permset_revoker.utils.time import utc_now_iso
from permset_revoker.workflow import remove_user_from_permission_set

logger = logging.getLogger(__name__)


def _as_context(context: ActionContext | Mapping[str, Any] | None) -> ActionContext:
    if isinstance(context, ActionContext):
        return context
    return ActionContext.model_validate(dict(context or {}))


def _parse_params(params: Mapping[str, Any], context: ActionContext) -> RemovalParams:
    resolved, errors = resolve_templates(dict(params), context.data)
    if errors:
        logger.warning("Template resolution errors: %s", errors)
    logger.debug("Resolved params: %s", resolved)
    try:
        return RemovalParams.model_validate(resolved)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise InvalidParameters(f"Invalid job parameters: {fields}") from exc


async def invoke(
    params: Mapping[str, Any],
    context: ActionContext | Mapping[str, Any] | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    halt_event: asyncio.Event | None = None,
) -> dict[str, Any]:
    """Remove the user from the permission set and return the result record.

    When ``halt_event`` is set before the workflow finishes, the halted
    record is returned instead and no further remote calls are made.
    """
    ctx = _as_context(context)
    logger.debug(
        "Job context: secrets=%s environment=%s",
        redact_sensitive_fields(ctx.secrets),
        redact_sensitive_fields(ctx.environment),
    )
    job = _parse_params(params, ctx)
    settings = load_settings()

    async def _run(http_client: httpx.AsyncClient) -> dict[str, Any]:
        outcome = await remove_user_from_permission_set(
            http_client,
            job.username,
            job.permission_set_id,
            secrets=ctx.secrets,
            environment=ctx.environment,
            address=job.address,
            api_version=settings.salesforce.api_version,
            halt_event=halt_event,
        )
        return outcome.to_record()

    try:
        if client is not None:
            return await _run(client)
        async with create_http_client(settings.http) as owned_client:
            return await _run(owned_client)
    except WorkflowHalted as exc:
        logger.info("Workflow stopped at %s: %s", exc.state, exc.reason)
        return await halt({"username": job.username, "reason": exc.reason}, ctx)


async def error(
    params: Mapping[str, Any],
    context: ActionContext | Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Recover from a failed ``invoke``.

    Retryable errors produce a ``retry_requested`` record; fatal errors are
    re-raised unchanged.
    """
    failure = params.get("error")
    if not isinstance(failure, BaseException):
        raise InvalidParameters("error handler requires an exception in params['error']")

    default = FailureDecision(load_settings().recovery.default_decision)
    decision = classify_failure(failure, default=default)
    if decision is FailureDecision.FATAL:
        logger.error("Fatal failure, not retrying: %s", failure)
        raise failure

    logger.warning("Retryable failure, requesting retry: %s", failure)
    return {
        "status": "retry_requested",
        "reason": decision.value,
        "error": str(failure),
    }


async def halt(
    params: Mapping[str, Any],
    context: ActionContext | Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Report a graceful shutdown."""
    reason = params.get("reason")
    username = params.get("username") or "unknown"
    logger.info("Permission set removal job halted (%s) for user %s", reason, username)
    return {
        "status": "halted",
        "username": username,
        "reason": reason,
        "halted_at": utc_now_iso(),
    }
