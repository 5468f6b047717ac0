"""Google Cloud credentials: application default credentials and short-lived access tokens.

The ``Credentials`` field holds either the JSON document itself or the path
of a JSON key file, as found in ``GOOGLE_APPLICATION_CREDENTIALS``.

Ephemeral provisioning exchanges a user's refresh token for an access token
and, when a ``Service Account`` is set, trades that for an impersonated
token of the service account. Only impersonated tokens are revoked on
removal: revoking the user's own access token would also revoke the
refresh token it came from.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

import httpx

from shellcred.exceptions import (
    AuthError,
    ConnectionError_,
    ProvisionError,
    RemovalError,
    SourceParseError,
)
from shellcred.importer import EnvVarPair, FileContents, ImportAttempt, ImportInput, TryAll, TryFile
from shellcred.models import FieldName, ImportCandidate
from shellcred.provision import (
    ChainProvisioner,
    ProvisionInput,
    ProvisionOutput,
    TempFileProvisioner,
)
from shellcred.schema import CredentialField, CredentialType

logger = logging.getLogger(__name__)

NAME = "credentials"

ADC_PATH = "~/.config/gcloud/application_default_credentials.json"

TOKEN_URL = "https://oauth2.googleapis.com/token"
REVOKE_URL = "https://oauth2.googleapis.com/revoke"
IMPERSONATE_URL = (
    "https://iamcredentials.googleapis.com/v1/projects/-/serviceAccounts/{account}:generateAccessToken"
)
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

# Impersonated tokens cannot outlive one hour without an org policy change.
MAX_TOKEN_LIFETIME = 3600

TOKEN_KEY = "token"


# --- Discovery ---


def _parse_adc_file(contents: FileContents, in_: ImportInput, out: ImportAttempt) -> None:
    document = contents.to_json()
    if not isinstance(document, dict) or "type" not in document:
        raise SourceParseError(f"{contents.path} is not a Google credentials file")
    out.add_candidate(ImportCandidate(fields={FieldName.CREDENTIALS: contents.to_text()}))


def importer() -> TryAll:
    return TryAll(
        EnvVarPair({"GOOGLE_APPLICATION_CREDENTIALS": FieldName.CREDENTIALS}),
        TryFile(ADC_PATH, _parse_adc_file),
    )


# --- Credentials document ---


def credentials_json(in_: ProvisionInput) -> str:
    """Return the credentials JSON, reading it from disk when the field is a path.

    Raises:
        ProvisionError: If the field is empty or the key file cannot be read.
    """
    value = in_.get(FieldName.CREDENTIALS).strip()
    if not value:
        raise ProvisionError("No Google Cloud credentials given")
    if value.startswith("{"):
        return value
    path = Path(value)
    if value.startswith("~"):
        path = in_.home_dir / value[1:].lstrip("/")
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProvisionError(f"Could not read Google credentials file {path}: {exc}") from exc


def load_credentials(in_: ProvisionInput) -> dict[str, Any]:
    text = credentials_json(in_)
    try:
        info = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProvisionError(f"Google credentials are not valid JSON: {exc}") from exc
    if not isinstance(info, dict):
        raise ProvisionError("Google credentials must be a JSON object")
    return info


def render_credentials(in_: ProvisionInput) -> Optional[bytes]:
    if not in_.get(FieldName.CREDENTIALS):
        return None
    return credentials_json(in_).encode("utf-8")


def render_token(in_: ProvisionInput) -> Optional[bytes]:
    token = in_.get(FieldName.TOKEN)
    return token.encode("utf-8") if token else None


def provisioner() -> ChainProvisioner:
    return ChainProvisioner(
        TempFileProvisioner(
            render_credentials,
            "application_default_credentials.json",
            environment={"GOOGLE_APPLICATION_CREDENTIALS": "{{ path }}"},
        ),
        TempFileProvisioner(
            render_token,
            "access_token",
            environment={"CLOUDSDK_AUTH_ACCESS_TOKEN_FILE": "{{ path }}"},
        ),
    )


# --- Tokens ---


def _post(url: str, action: str, timeout: float, **kwargs: Any) -> dict[str, Any]:
    try:
        response = httpx.post(url, timeout=timeout, **kwargs)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        if status in (400, 401, 403):
            raise AuthError(
                f"Google rejected the credentials while trying to {action} "
                f"(status {status}): {exc.response.text}"
            ) from exc
        raise ProvisionError(f"Google refused to {action} (status {status})") from exc
    except httpx.TimeoutException as exc:
        raise ConnectionError_(f"Timed out trying to {action}") from exc
    except httpx.TransportError as exc:
        raise ConnectionError_(f"Could not reach Google to {action}: {exc}") from exc
    except ValueError as exc:
        raise ProvisionError(f"Google returned an invalid response trying to {action}") from exc


def refresh_access_token(info: dict[str, Any], timeout: float) -> str:
    """Exchange an ``authorized_user`` refresh token for an access token."""
    if info.get("type") != "authorized_user":
        raise ProvisionError(
            "Only user credentials (type 'authorized_user') can mint access tokens, "
            f"got {info.get('type')!r}"
        )
    missing = [k for k in ("client_id", "client_secret", "refresh_token") if not info.get(k)]
    if missing:
        raise ProvisionError(f"Google user credentials are missing {', '.join(missing)}")

    data = _post(
        TOKEN_URL,
        "refresh the access token",
        timeout,
        data={
            "grant_type": "refresh_token",
            "client_id": info["client_id"],
            "client_secret": info["client_secret"],
            "refresh_token": info["refresh_token"],
        },
        headers={"Accept": "application/json"},
    )
    token = data.get("access_token")
    if not token:
        raise ProvisionError("Token response missing 'access_token' field")
    return token


def impersonate(access_token: str, account: str, lifetime: int, timeout: float) -> str:
    """Mint a token for *account* using the caller's *access_token*."""
    data = _post(
        IMPERSONATE_URL.format(account=quote(account, safe="@")),
        f"impersonate {account}",
        timeout,
        json={"scope": [CLOUD_PLATFORM_SCOPE], "lifetime": f"{lifetime}s"},
        headers={"Authorization": f"Bearer {access_token}"},
    )
    token = data.get("accessToken")
    if not token:
        raise ProvisionError("Impersonation response missing 'accessToken' field")
    return token


def generate_token(in_: ProvisionInput, out: ProvisionOutput) -> dict[FieldName, str]:
    info = load_credentials(in_)
    token = refresh_access_token(info, in_.timeout)

    account = in_.get(FieldName.SERVICE_ACCOUNT)
    if not account:
        logger.info("Minted a user access token; it expires on its own")
        return {FieldName.TOKEN: token}

    if out.cache is None:
        raise ProvisionError("Impersonating a service account needs a session cache")
    lifetime = max(1, min(int(in_.ttl.total_seconds()), MAX_TOKEN_LIFETIME))
    impersonated = impersonate(token, account, lifetime, in_.timeout)
    out.cache.put(TOKEN_KEY, impersonated, in_.expires_at())
    logger.info("Minted an access token for %s (%ds)", account, lifetime)
    return {FieldName.TOKEN: impersonated}


def revoke_token(in_: ProvisionInput) -> None:
    """Revoke the cached impersonated token; an already invalid token is fine."""
    token = in_.cache.get_str(TOKEN_KEY)
    if token is None:
        return
    try:
        response = httpx.post(
            REVOKE_URL,
            data={"token": token},
            headers={"Accept": "application/json"},
            timeout=in_.timeout,
        )
    except httpx.TimeoutException as exc:
        raise ConnectionError_("Timed out revoking the access token") from exc
    except httpx.TransportError as exc:
        raise ConnectionError_(f"Could not reach Google to revoke the access token: {exc}") from exc

    if response.status_code == 200:
        logger.info("Revoked the impersonated access token")
        return
    if response.status_code == 400 and _oauth_error(response) == "invalid_token":
        logger.info("Access token was already invalid")
        return
    raise RemovalError(
        f"Google refused to revoke the access token (status {response.status_code})"
    )


def _oauth_error(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("error") if isinstance(body, dict) else None


# --- Credential type ---


def credentials() -> CredentialType:
    return CredentialType(
        name=NAME,
        docs_url="https://cloud.google.com/docs/authentication/application-default-credentials",
        fields=[
            CredentialField(
                FieldName.CREDENTIALS,
                "Credentials used to authenticate to Google Cloud.",
                secret=True,
            ),
            CredentialField(
                FieldName.SERVICE_ACCOUNT,
                "Service account to impersonate for short-lived tokens.",
                optional=True,
            ),
            CredentialField(
                FieldName.TOKEN,
                "Short-lived OAuth access token.",
                secret=True,
                optional=True,
            ),
        ],
        importer=importer(),
        default_provisioner=provisioner(),
        key_generator=generate_token,
        key_remover=revoke_token,
    )
