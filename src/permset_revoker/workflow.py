"""Idempotent removal of a user from a permission set.

The workflow resolves the target and credentials, looks the user up by
username, looks up the user's assignment to the permission set and deletes
it when present. A missing assignment is a normal terminal state, so
repeated runs converge on ``removed=False`` without raising.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from permset_revoker.auth.credentials import resolve_authorization_header
from permset_revoker.errors import PrincipalNotFound, WorkflowHalted
from permset_revoker.salesforce.client import (
    SalesforceClient,
    assignment_query,
    user_by_username_query,
)
from permset_revoker.utils.http import resolve_base_url

logger = logging.getLogger(__name__)

ASSIGNMENT_SOBJECT = "PermissionSetAssignment"


class WorkflowState(str, enum.Enum):
    START = "start"
    RESOLVING_TARGET = "resolving_target"
    RESOLVING_AUTH = "resolving_auth"
    LOOKUP_PRINCIPAL = "lookup_principal"
    LOOKUP_RELATION = "lookup_relation"
    ALREADY_ABSENT = "already_absent"
    DELETING = "deleting"
    DONE = "done"


@dataclass(frozen=True)
class RemovalOutcome:
    username: str
    user_id: str
    permission_set_id: str
    assignment_id: str | None
    removed: bool
    address: str

    def __post_init__(self) -> None:
        if self.removed != (self.assignment_id is not None):
            raise ValueError("removed must be True exactly when assignment_id is set")

    def to_record(self) -> dict[str, Any]:
        return {
            "status": "success",
            "username": self.username,
            "userId": self.user_id,
            "permissionSetId": self.permission_set_id,
            "assignmentId": self.assignment_id,
            "removed": self.removed,
            "address": self.address,
        }


class RemovalWorkflow:
    """One invocation of the removal state machine."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_version: str = "v61.0",
        halt_event: asyncio.Event | None = None,
        halt_reason: str = "halt requested",
    ) -> None:
        self._client = client
        self._api_version = api_version
        self._halt_event = halt_event
        self._halt_reason = halt_reason
        self.state = WorkflowState.START

    def _enter(self, state: WorkflowState) -> None:
        self.state = state
        logger.debug("Workflow state: %s", state.value)

    def _checkpoint(self, state: WorkflowState) -> None:
        """Move to ``state`` unless a halt was signalled."""
        if self._halt_event is not None and self._halt_event.is_set():
            raise WorkflowHalted(self._halt_reason, self.state.value)
        self._enter(state)

    async def run(
        self,
        username: str,
        permission_set_id: str,
        *,
        secrets: Mapping[str, str | None],
        environment: Mapping[str, str | None],
        address: str | None = None,
    ) -> RemovalOutcome:
        self._checkpoint(WorkflowState.RESOLVING_TARGET)
        base_url = resolve_base_url(address, environment.get("ADDRESS"))

        self._checkpoint(WorkflowState.RESOLVING_AUTH)
        authorization = await resolve_authorization_header(secrets, environment, self._client)
        salesforce = SalesforceClient(
            self._client, base_url, authorization, api_version=self._api_version
        )

        logger.info("Removing user %s from permission set %s", username, permission_set_id)

        self._checkpoint(WorkflowState.LOOKUP_PRINCIPAL)
        user = await salesforce.query(user_by_username_query(username), subject="user")
        if user.record_id is None:
            raise PrincipalNotFound(username)
        user_id = user.record_id
        logger.info("Found user ID: %s", user_id)

        self._checkpoint(WorkflowState.LOOKUP_RELATION)
        assignment = await salesforce.query(
            assignment_query(user_id, permission_set_id),
            subject="permission set assignment",
        )

        if assignment.record_id is None:
            self._enter(WorkflowState.ALREADY_ABSENT)
            logger.info(
                "No permission set assignment found - user %s is already removed from %s",
                username,
                permission_set_id,
            )
            outcome = RemovalOutcome(
                username=username,
                user_id=user_id,
                permission_set_id=permission_set_id,
                assignment_id=None,
                removed=False,
                address=base_url,
            )
        else:
            assignment_id = assignment.record_id
            self._checkpoint(WorkflowState.DELETING)
            logger.info("Deleting permission set assignment %s", assignment_id)
            await salesforce.delete_record(
                ASSIGNMENT_SOBJECT, assignment_id, subject="permission set assignment"
            )
            logger.info("Removed user %s from permission set %s", username, permission_set_id)
            outcome = RemovalOutcome(
                username=username,
                user_id=user_id,
                permission_set_id=permission_set_id,
                assignment_id=assignment_id,
                removed=True,
                address=base_url,
            )

        self._enter(WorkflowState.DONE)
        return outcome


async def remove_user_from_permission_set(
    client: httpx.AsyncClient,
    username: str,
    permission_set_id: str,
    *,
    secrets: Mapping[str, str | None],
    environment: Mapping[str, str | None],
    address: str | None = None,
    api_version: str = "v61.0",
    halt_event: asyncio.Event | None = None,
) -> RemovalOutcome:
    workflow = RemovalWorkflow(client, api_version=api_version, halt_event=halt_event)
    return await workflow.run(
        username,
        permission_set_id,
        secrets=secrets,
        environment=environment,
        address=address,
    )
