"""Tests for the invoke/error/halt action handlers."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import httpx
import pytest

from permset_revoker import handlers
from permset_revoker.errors import (
    InvalidParameters,
    NoAddressConfigured,
    NoAuthConfigured,
    QueryFailed,
)

USER_ID = "005000000000001"
ASSIGNMENT_ID = "0PA000000000001"


@pytest.fixture
def params() -> dict[str, str]:
    return {"username": "test@example.com", "permissionSetId": "0PS000000000001"}


@pytest.mark.asyncio
async def test_invoke_success(transport, records, params, bearer_context) -> None:
    transport.responses.extend([records(USER_ID), records(ASSIGNMENT_ID), httpx.Response(204)])

    async with transport.client() as client:
        result = await handlers.invoke(params, bearer_context, client=client)

    assert result == {
        "status": "success",
        "username": "test@example.com",
        "userId": USER_ID,
        "permissionSetId": "0PS000000000001",
        "assignmentId": ASSIGNMENT_ID,
        "removed": True,
        "address": "https://test.salesforce.com",
    }
    assert len(transport.requests) == 3


@pytest.mark.asyncio
async def test_invoke_resolves_templates(transport, records, bearer_context) -> None:
    transport.responses.extend([records(USER_ID), records()])
    context = {**bearer_context, "data": {"subject": {"login": "templated@example.com"}}}
    params = {"username": "{{$.subject.login}}", "permissionSetId": "0PS000000000001"}

    async with transport.client() as client:
        result = await handlers.invoke(params, context, client=client)

    assert result["username"] == "templated@example.com"
    assert result["removed"] is False
    assert "'templated@example.com'" in transport.requests[0].url.params["q"]


@pytest.mark.asyncio
async def test_invoke_builds_its_own_client(monkeypatch, transport, records, params, bearer_context) -> None:
    transport.responses.extend([records(USER_ID), records()])
    monkeypatch.setenv("HTTP_USER_AGENT", "acme-runner/2.0")
    monkeypatch.setattr(
        handlers, "create_http_client", lambda settings: transport.client(settings)
    )

    result = await handlers.invoke(params, bearer_context)

    assert result["removed"] is False
    assert transport.requests[0].headers["User-Agent"] == "acme-runner/2.0"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "bad_params",
    [
        {"permissionSetId": "0PS000000000001"},
        {"username": "  ", "permissionSetId": "0PS000000000001"},
        {"username": "test@example.com"},
    ],
)
async def test_invoke_rejects_missing_params(transport, bad_params, bearer_context) -> None:
    async with transport.client() as client:
        with pytest.raises(InvalidParameters):
            await handlers.invoke(bad_params, bearer_context, client=client)
    assert transport.requests == []


@pytest.mark.asyncio
async def test_invoke_without_address(transport, params) -> None:
    context = {"secrets": {"BEARER_AUTH_TOKEN": "t"}, "environment": {}}
    async with transport.client() as client:
        with pytest.raises(
            NoAddressConfigured,
            match="No URL specified. Provide address parameter or ADDRESS environment variable",
        ):
            await handlers.invoke(params, context, client=client)


@pytest.mark.asyncio
async def test_invoke_without_secrets(transport, params) -> None:
    context = {"environment": {"ADDRESS": "https://test.salesforce.com"}}
    async with transport.client() as client:
        with pytest.raises(NoAuthConfigured, match="No authentication configured"):
            await handlers.invoke(params, context, client=client)
    assert transport.requests == []


@pytest.mark.asyncio
async def test_invoke_halted_returns_halt_record(transport, params, bearer_context) -> None:
    halt_event = asyncio.Event()
    halt_event.set()

    async with transport.client() as client:
        result = await handlers.invoke(params, bearer_context, client=client, halt_event=halt_event)

    assert result["status"] == "halted"
    assert result["username"] == "test@example.com"
    assert result["reason"] == "halt requested"
    assert transport.requests == []


@pytest.mark.asyncio
async def test_error_retryable_requests_retry() -> None:
    failure = QueryFailed("user", 503, "Service Unavailable")

    result = await handlers.error({"username": "x", "error": failure})

    assert result == {
        "status": "retry_requested",
        "reason": "retryable",
        "error": "Failed to query user: 503 Service Unavailable",
    }


@pytest.mark.asyncio
async def test_error_fatal_is_reraised() -> None:
    failure = QueryFailed("user", 401, "Unauthorized")

    with pytest.raises(QueryFailed) as excinfo:
        await handlers.error({"error": failure})

    assert excinfo.value is failure


@pytest.mark.asyncio
async def test_error_default_decision_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("RECOVERY_DEFAULT_DECISION", "Fatal")
    failure = RuntimeError("malformed request body")

    with pytest.raises(RuntimeError, match="malformed request body"):
        await handlers.error({"error": failure})


@pytest.mark.asyncio
async def test_error_requires_exception() -> None:
    with pytest.raises(InvalidParameters):
        await handlers.error({"error": "not an exception"})


@pytest.mark.asyncio
async def test_halt_with_username() -> None:
    result = await handlers.halt({"username": "test@example.com", "reason": "timeout"})

    assert result["status"] == "halted"
    assert result["username"] == "test@example.com"
    assert result["reason"] == "timeout"
    assert result["halted_at"].endswith("Z")
    datetime.fromisoformat(result["halted_at"].replace("Z", "+00:00"))


@pytest.mark.asyncio
async def test_halt_without_username() -> None:
    result = await handlers.halt({"reason": "system_shutdown"})

    assert result["username"] == "unknown"
    assert result["reason"] == "system_shutdown"


@pytest.mark.asyncio
async def test_invoke_logs_context_without_secret_values(transport, records, params, caplog) -> None:
    transport.responses.extend([records(USER_ID), records()])
    context = {
        "environment": {"ADDRESS": "https://test.salesforce.com"},
        "secrets": {"BEARER_AUTH_TOKEN": "very-secret-token", "BASIC_USERNAME": "svc"},
    }

    with caplog.at_level(logging.DEBUG, logger="permset_revoker.handlers"):
        async with transport.client() as client:
            await handlers.invoke(params, context, client=client)

    assert "'BEARER_AUTH_TOKEN': '***'" in caplog.text
    assert "'BASIC_USERNAME': 'svc'" in caplog.text
    assert "very-secret-token" not in caplog.text
