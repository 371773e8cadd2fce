"""Service-account authentication: sign a JWT assertion and trade it for a bearer token."""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path

import jwt
import requests

from pterobackup.errors import ConfigError, CryptoError, NetworkError

logger = logging.getLogger(__name__)

_ALGORITHM = "RS256"
_TOKEN_LIFETIME_SEC = 3600
STORAGE_SCOPE = "https://www.googleapis.com/auth/devstorage.read_write"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


@dataclass(frozen=True)
class ServiceAccountCredentials:
    private_key: str
    client_email: str
    token_uri: str


@dataclass(frozen=True)
class TokenResponse:
    access_token: str
    token_type: str
    expires_in: int


def load_credentials(path: Path) -> ServiceAccountCredentials:
    """Load a service-account JSON key file.

    Only ``private_key``, ``client_email`` and ``token_uri`` are read; other
    keys in the file are ignored.
    """
    path = Path(path)
    try:
        raw = path.read_text()
    except OSError as exc:
        raise ConfigError(f"failed to read credentials file {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"failed to parse credentials file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"credentials file {path} must contain a JSON object")

    fields = ("private_key", "client_email", "token_uri")
    missing = [f for f in fields if not isinstance(data.get(f), str) or not data[f]]
    if missing:
        raise ConfigError(f"credentials file {path} is missing: {', '.join(missing)}")
    return ServiceAccountCredentials(**{f: data[f] for f in fields})


def build_claims(credentials: ServiceAccountCredentials, now: int | None = None) -> dict:
    """Return the assertion claims; ``exp`` is always ``iat`` + one hour."""
    issued_at = int(time.time()) if now is None else int(now)
    return {
        "iss": credentials.client_email,
        "scope": STORAGE_SCOPE,
        "aud": credentials.token_uri,
        "iat": issued_at,
        "exp": issued_at + _TOKEN_LIFETIME_SEC,
    }


def sign_assertion(credentials: ServiceAccountCredentials, now: int | None = None) -> str:
    """Create an RS256-signed JWT assertion for the credentials."""
    claims = build_claims(credentials, now)
    try:
        return jwt.encode(claims, credentials.private_key, algorithm=_ALGORITHM)
    except (jwt.PyJWTError, ValueError, TypeError) as exc:
        raise CryptoError(f"failed to sign JWT assertion: {exc}") from exc


def exchange_assertion(
    token_uri: str,
    assertion: str,
    session: requests.Session | None = None,
) -> TokenResponse:
    """POST the assertion to the OAuth2 token endpoint.

    Raises NetworkError on transport failure, a non-2xx status, or a body
    that is not JSON with an ``access_token``.
    """
    http = session or requests
    try:
        resp = http.post(
            token_uri,
            data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
        )
    except requests.RequestException as exc:
        raise NetworkError(f"failed to send token request to {token_uri}: {exc}") from exc

    if not 200 <= resp.status_code < 300:
        raise NetworkError(f"token endpoint returned {resp.status_code}: {resp.text}")

    try:
        body = resp.json()
        return TokenResponse(
            access_token=body["access_token"],
            token_type=body.get("token_type", ""),
            expires_in=int(body.get("expires_in", 0)),
        )
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise NetworkError(f"failed to decode token response: {exc}") from exc


def get_access_token(credentials_path: Path, session: requests.Session | None = None) -> str:
    """Return a bearer token valid for one hour. There is no refresh."""
    credentials = load_credentials(credentials_path)
    logger.debug("Loaded credentials for %s", credentials.client_email)
    assertion = sign_assertion(credentials)
    token = exchange_assertion(credentials.token_uri, assertion, session=session)
    logger.info("Obtained %s token (expires in %ss)", token.token_type or "bearer", token.expires_in)
    return token.access_token
