"""Typed failures raised by the removal workflow.

Every error is raised where it is detected and propagates unchanged to the
caller. ``code`` is stable and machine readable; ``status`` is present when
the remote service returned an HTTP status.
"""

from __future__ import annotations


class ActionError(Exception):
    """Base class for all workflow failures."""

    code = "action_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class InvalidParameters(ActionError):
    code = "invalid_parameters"


class NoAddressConfigured(ActionError):
    code = "no_address"

    def __init__(
        self,
        message: str = "No URL specified. Provide address parameter or ADDRESS environment variable",
    ) -> None:
        super().__init__(message)


class NoAuthConfigured(ActionError):
    code = "no_auth"

    def __init__(self, message: str = "No authentication configured") -> None:
        super().__init__(message)


class IncompleteClientCredentials(NoAuthConfigured):
    """Client secret is present but the token URL or client id is not."""

    code = "incomplete_client_credentials"


class _RemoteStatusError(ActionError):
    def __init__(self, message: str, status: int, status_text: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.status_text = status_text


class TokenRequestFailed(_RemoteStatusError):
    code = "token_request_failed"

    def __init__(self, status: int, status_text: str = "", body: str = "") -> None:
        super().__init__(
            f"OAuth2 token request failed: {status} {status_text} - {body}",
            status,
            status_text,
        )
        self.body = body


class MissingAccessToken(ActionError):
    code = "missing_access_token"

    def __init__(self, message: str = "No access_token in OAuth2 response") -> None:
        super().__init__(message)


class QueryFailed(_RemoteStatusError):
    code = "query_failed"

    def __init__(self, subject: str, status: int, status_text: str = "") -> None:
        super().__init__(f"Failed to query {subject}: {status} {status_text}", status, status_text)
        self.subject = subject


class PrincipalNotFound(ActionError):
    code = "user_not_found"

    def __init__(self, username: str) -> None:
        super().__init__(f"User not found: {username}")
        self.username = username


class DeleteFailed(_RemoteStatusError):
    code = "delete_failed"

    def __init__(self, subject: str, status: int, status_text: str = "") -> None:
        super().__init__(f"Failed to delete {subject}: {status} {status_text}", status, status_text)
        self.subject = subject


class WorkflowHalted(ActionError):
    """Raised at a decision point once the caller has signalled a halt."""

    code = "halted"

    def __init__(self, reason: str, state: str) -> None:
        super().__init__(f"Workflow halted ({reason}) at {state}")
        self.reason = reason
        self.state = state
