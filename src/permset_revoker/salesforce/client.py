"""Salesforce REST calls used by the removal workflow."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from permset_revoker.errors import DeleteFailed, QueryFailed

logger = logging.getLogger(__name__)


def soql_literal(value: str) -> str:
    """Quote ``value`` as a SOQL string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def user_by_username_query(username: str) -> str:
    return (
        f"SELECT Id FROM User WHERE Username = {soql_literal(username)} ORDER BY Id ASC"
    )


def assignment_query(user_id: str, permission_set_id: str) -> str:
    return (
        "SELECT Id FROM PermissionSetAssignment "
        f"WHERE AssigneeId = {soql_literal(user_id)} "
        f"AND PermissionSetId = {soql_literal(permission_set_id)} "
        "ORDER BY Id ASC"
    )


@dataclass(frozen=True)
class LookupResult:
    """Outcome of a query; ``record_id`` is the first record's ``Id``."""

    record_id: str | None
    total_size: int
    records: tuple[dict[str, Any], ...] = field(default=(), repr=False)

    @property
    def found(self) -> bool:
        return self.record_id is not None

    @classmethod
    def from_payload(cls, payload: Any) -> "LookupResult":
        raw_records = payload.get("records") if isinstance(payload, dict) else None
        records = tuple(r for r in raw_records or () if isinstance(r, dict))
        total_size = payload.get("totalSize", len(records)) if isinstance(payload, dict) else 0
        record_id = records[0].get("Id") if records else None
        return cls(
            record_id=str(record_id) if record_id else None,
            total_size=int(total_size or 0),
            records=records,
        )


class SalesforceClient:
    """Thin wrapper over the REST query and sObject endpoints.

    Holds no state beyond what one invocation needs: the base URL, the
    resolved authorization header and the shared ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        authorization: str,
        api_version: str = "v61.0",
    ) -> None:
        self._client = client
        self._base_url = base_url
        self._authorization = authorization
        self._api_version = api_version

    @property
    def _data_url(self) -> str:
        return f"{self._base_url}/services/data/{self._api_version}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": self._authorization,
            "Accept": "application/json",
        }

    async def query(self, soql: str, *, subject: str = "records") -> LookupResult:
        """Run a SOQL query.

        Zero matching records is a valid result. Raises ``QueryFailed`` on a
        non-success response.
        """
        response = await self._client.get(
            f"{self._data_url}/query",
            params={"q": soql},
            headers=self._headers(),
        )
        if not response.is_success:
            raise QueryFailed(subject, response.status_code, response.reason_phrase)

        try:
            payload = response.json()
        except ValueError as exc:
            raise QueryFailed(subject, response.status_code, "invalid JSON") from exc

        result = LookupResult.from_payload(payload)
        if result.total_size > 1:
            logger.warning(
                "Query for %s matched %d records, using the first", subject, result.total_size
            )
        return result

    async def delete_record(self, sobject: str, record_id: str, *, subject: str | None = None) -> None:
        """Delete one sObject record. Raises ``DeleteFailed`` on a non-success response."""
        response = await self._client.delete(
            f"{self._data_url}/sobjects/{sobject}/{record_id}",
            headers=self._headers(),
        )
        if not response.is_success:
            raise DeleteFailed(subject or sobject, response.status_code, response.reason_phrase)
