"""Credential selection and authorization header resolution.

Four schemes are supported and checked in a fixed order; the first one whose
required secrets are present is used, lower schemes are ignored even when
partially configured:

1. Bearer token            (``BEARER_AUTH_TOKEN``)
2. HTTP basic              (``BASIC_USERNAME`` + ``BASIC_PASSWORD``)
3. OAuth2 authorization code access token
                           (``OAUTH2_AUTHORIZATION_CODE_ACCESS_TOKEN``)
4. OAuth2 client credentials
                           (``OAUTH2_CLIENT_CREDENTIALS_CLIENT_SECRET`` plus
                           token URL and client id from the environment)

Only the client credentials scheme performs network I/O.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx

from permset_revoker.errors import (
    IncompleteClientCredentials,
    MissingAccessToken,
    NoAuthConfigured,
    TokenRequestFailed,
)
from permset_revoker.utils.masking import redact_sensitive_fields

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
BASIC_PREFIX = "Basic "

_IN_PARAMS_STYLES = frozenset({"inparams", "in_params", "body"})

SECRET_BEARER_TOKEN = "BEARER_AUTH_TOKEN"
SECRET_BASIC_USERNAME = "BASIC_USERNAME"
SECRET_BASIC_PASSWORD = "BASIC_PASSWORD"
SECRET_AUTH_CODE_ACCESS_TOKEN = "OAUTH2_AUTHORIZATION_CODE_ACCESS_TOKEN"
SECRET_CLIENT_SECRET = "OAUTH2_CLIENT_CREDENTIALS_CLIENT_SECRET"
ENV_TOKEN_URL = "OAUTH2_CLIENT_CREDENTIALS_TOKEN_URL"
ENV_CLIENT_ID = "OAUTH2_CLIENT_CREDENTIALS_CLIENT_ID"
ENV_SCOPE = "OAUTH2_CLIENT_CREDENTIALS_SCOPE"
ENV_AUDIENCE = "OAUTH2_CLIENT_CREDENTIALS_AUDIENCE"
ENV_AUTH_STYLE = "OAUTH2_CLIENT_CREDENTIALS_AUTH_STYLE"


@dataclass(frozen=True)
class BearerToken:
    token: str = field(repr=False)


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class OAuth2AuthorizationCode:
    access_token: str = field(repr=False)


@dataclass(frozen=True)
class OAuth2ClientCredentials:
    token_url: str
    client_id: str
    client_secret: str = field(repr=False)
    scope: str | None = None
    audience: str | None = None
    auth_style: str | None = None

    @property
    def credentials_in_body(self) -> bool:
        return (self.auth_style or "").strip().lower() in _IN_PARAMS_STYLES


CredentialConfig = BearerToken | BasicAuth | OAuth2AuthorizationCode | OAuth2ClientCredentials


def _present(source: Mapping[str, str | None], key: str) -> str | None:
    value = source.get(key)
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


def select_credentials(
    secrets: Mapping[str, str | None],
    environment: Mapping[str, str | None],
) -> CredentialConfig:
    """Return the highest-precedence credential scheme that is configured.

    Raises ``NoAuthConfigured`` when no scheme has its required secrets and
    ``IncompleteClientCredentials`` when the client secret is present without
    a token URL or client id.
    """
    token = _present(secrets, SECRET_BEARER_TOKEN)
    if token:
        return BearerToken(token=token)

    username = _present(secrets, SECRET_BASIC_USERNAME)
    password = _present(secrets, SECRET_BASIC_PASSWORD)
    if username and password:
        return BasicAuth(username=username, password=password)

    access_token = _present(secrets, SECRET_AUTH_CODE_ACCESS_TOKEN)
    if access_token:
        return OAuth2AuthorizationCode(access_token=access_token)

    client_secret = _present(secrets, SECRET_CLIENT_SECRET)
    if client_secret:
        token_url = _present(environment, ENV_TOKEN_URL)
        client_id = _present(environment, ENV_CLIENT_ID)
        if not token_url or not client_id:
            raise IncompleteClientCredentials(
                "OAuth2 Client Credentials flow requires "
                f"{ENV_TOKEN_URL} and {ENV_CLIENT_ID}"
            )
        return OAuth2ClientCredentials(
            token_url=token_url,
            client_id=client_id,
            client_secret=client_secret,
            scope=_present(environment, ENV_SCOPE),
            audience=_present(environment, ENV_AUDIENCE),
            auth_style=_present(environment, ENV_AUTH_STYLE),
        )

    raise NoAuthConfigured()


def with_bearer_prefix(token: str) -> str:
    # Auth schemes are case-insensitive.
    if token[: len(BEARER_PREFIX)].lower() == BEARER_PREFIX.lower():
        return token
    return f"{BEARER_PREFIX}{token}"


def basic_header(username: str, password: str) -> str:
    encoded = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"{BASIC_PREFIX}{encoded}"


async def fetch_client_credentials_token(
    credentials: OAuth2ClientCredentials,
    client: httpx.AsyncClient,
) -> str:
    """Exchange client credentials for an access token at the token URL."""
    data = {"grant_type": "client_credentials"}
    if credentials.scope:
        data["scope"] = credentials.scope
    if credentials.audience:
        data["audience"] = credentials.audience

    auth: httpx.BasicAuth | None = None
    if credentials.credentials_in_body:
        data["client_id"] = credentials.client_id
        data["client_secret"] = credentials.client_secret
    else:
        auth = httpx.BasicAuth(credentials.client_id, credentials.client_secret)

    response = await client.post(
        credentials.token_url,
        data=data,
        auth=auth,
        headers={"Accept": "application/json"},
    )

    if not response.is_success:
        body = response.text[:1000]
        logger.warning(
            "Token request failed: url=%s status=%s form=%s",
            credentials.token_url,
            response.status_code,
            redact_sensitive_fields(data),
        )
        raise TokenRequestFailed(response.status_code, response.reason_phrase, body)

    try:
        payload = response.json()
    except ValueError as exc:
        raise MissingAccessToken("Token response is not valid JSON") from exc

    access_token = payload.get("access_token") if isinstance(payload, dict) else None
    if not access_token:
        raise MissingAccessToken()

    logger.info("Obtained client credentials token from %s", credentials.token_url)
    return str(access_token)


async def resolve_authorization_header(
    secrets: Mapping[str, str | None],
    environment: Mapping[str, str | None],
    client: httpx.AsyncClient,
) -> str:
    """Resolve the configured credentials into an ``Authorization`` value."""
    credentials = select_credentials(secrets, environment)
    logger.debug("Using %s credentials", type(credentials).__name__)

    if isinstance(credentials, BearerToken):
        return with_bearer_prefix(credentials.token)
    if isinstance(credentials, BasicAuth):
        return basic_header(credentials.username, credentials.password)
    if isinstance(credentials, OAuth2AuthorizationCode):
        return with_bearer_prefix(credentials.access_token)
    token = await fetch_client_credentials_token(credentials, client)
    return with_bearer_prefix(token)
