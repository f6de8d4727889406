"""Job parameter and context models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RemovalParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    username: str = Field(min_length=1)
    permission_set_id: str = Field(alias="permissionSetId", min_length=1)
    address: str | None = None

    @field_validator("username", "permission_set_id")
    @classmethod
    def _require_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class ActionContext(BaseModel):
    """Execution context handed to every handler.

    ``secrets`` and ``environment`` carry credentials and defaults,
    ``data`` is the job data templates are resolved against.
    """

    model_config = ConfigDict(extra="ignore")

    secrets: dict[str, str | None] = Field(default_factory=dict)
    environment: dict[str, str | None] = Field(default_factory=dict)
    data: dict[str, Any] = Field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"ActionContext(secrets=<{len(self.secrets)} keys>, "
            f"environment={sorted(self.environment)!r})"
        )
