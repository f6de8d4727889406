"""Credential selection and authorization header resolution."""

from permset_revoker.auth.credentials import (
    BasicAuth,
    BearerToken,
    CredentialConfig,
    OAuth2AuthorizationCode,
    OAuth2ClientCredentials,
    resolve_authorization_header,
    select_credentials,
)

__all__ = [
    "BasicAuth",
    "BearerToken",
    "CredentialConfig",
    "OAuth2AuthorizationCode",
    "OAuth2ClientCredentials",
    "resolve_authorization_header",
    "select_credentials",
]
