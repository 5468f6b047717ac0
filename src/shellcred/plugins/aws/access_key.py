"""AWS access key: discovery from the environment and the AWS CLI files, IAM-backed ephemeral keys.

Discovery runs, in order:

* the standard ``AWS_ACCESS_KEY_ID`` / ``AWS_SECRET_ACCESS_KEY`` variables,
* the ``AMAZON_*`` and legacy ``AWS_ACCESS_KEY`` aliases,
* ``~/.aws/credentials``, with each profile's region taken from the
  companion config file (``$AWS_CONFIG_FILE``, default ``~/.aws/config``).

Ephemeral keys belong to a transient IAM user: the generator creates the
user and one access key for it; the remover deletes every key of that user
and then the user.
"""

from __future__ import annotations

import configparser
import logging
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from shellcred.exceptions import (
    AuthError,
    ConnectionError_,
    ProvisionError,
    RemovalError,
    SourceError,
)
from shellcred.importer import (
    EnvVarPair,
    FileContents,
    ImportAttempt,
    ImportInput,
    TryAll,
    TryFile,
    extract_fields,
    is_complete,
    merge_fields,
    resolve_companion_path,
    sanitize_name_hint,
)
from shellcred.models import FieldName, ImportCandidate
from shellcred.provision import EnvVarProvisioner, ProvisionInput, ProvisionOutput
from shellcred.provision.names import transient_name
from shellcred.schema import CredentialField, CredentialType

logger = logging.getLogger(__name__)

NAME = "access_key"

DEFAULT_ENV_VARS = {
    "AWS_ACCESS_KEY_ID": FieldName.ACCESS_KEY_ID,
    "AWS_SECRET_ACCESS_KEY": FieldName.SECRET_ACCESS_KEY,
    "AWS_DEFAULT_REGION": FieldName.DEFAULT_REGION,
}

_CREDENTIALS_KEYS = {
    "aws_access_key_id": FieldName.ACCESS_KEY_ID,
    "aws_secret_access_key": FieldName.SECRET_ACCESS_KEY,
}

_CONFIG_KEYS = {
    "region": FieldName.DEFAULT_REGION,
}

_REQUIRED = (FieldName.ACCESS_KEY_ID, FieldName.SECRET_ACCESS_KEY)

_AUTH_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "ExpiredToken",
        "InvalidClientTokenId",
        "SignatureDoesNotMatch",
        "UnrecognizedClientException",
    }
)

# Cache keys shared by the generator and the remover.
USER_KEY = "user"
KEY_ID_KEY = "keyid"

IAM_USER_TAG = {"Key": "created-by", "Value": "shellcred"}


# --- Discovery ---


def _config_section(config: configparser.ConfigParser, profile: str) -> Optional[configparser.SectionProxy]:
    """Find a profile's section in the AWS CLI config file.

    The default profile is ``[default]``; every other profile is
    ``[profile <name>]``, though a bare ``[<name>]`` is accepted too.
    """
    if profile == "default":
        candidates = ["default", "profile default"]
    else:
        candidates = [f"profile {profile}", profile]
    for name in candidates:
        if config.has_section(name):
            return config[name]
    return None


def _read_config(in_: ImportInput, out: ImportAttempt) -> Optional[configparser.ConfigParser]:
    path = resolve_companion_path(in_, "AWS_CONFIG_FILE", ".aws", "config")
    try:
        contents = in_.read_file(path)
        if contents is None:
            return None
        return contents.to_ini()
    except SourceError as exc:
        out.add_error(exc)
        return None


def _parse_credentials_file(contents: FileContents, in_: ImportInput, out: ImportAttempt) -> None:
    credentials = contents.to_ini()
    config = _read_config(in_, out)

    for profile in credentials.sections():
        fields = extract_fields(credentials[profile], _CREDENTIALS_KEYS)
        if config is not None:
            section = _config_section(config, profile)
            if section is not None:
                merge_fields(fields, extract_fields(section, _CONFIG_KEYS))

        if not is_complete(fields, _REQUIRED):
            logger.debug("Profile '%s' has no complete access key, skipping", profile)
            continue
        out.add_candidate(ImportCandidate(fields=fields, name_hint=sanitize_name_hint(profile)))


def credentials_file_importer() -> TryFile:
    """Importer for ``~/.aws/credentials`` cross-referenced with the config file."""
    return TryFile("~/.aws/credentials", _parse_credentials_file)


def importer() -> TryAll:
    return TryAll(
        EnvVarPair(DEFAULT_ENV_VARS),
        EnvVarPair(
            {
                "AMAZON_ACCESS_KEY_ID": FieldName.ACCESS_KEY_ID,
                "AMAZON_SECRET_ACCESS_KEY": FieldName.SECRET_ACCESS_KEY,
                "AWS_DEFAULT_REGION": FieldName.DEFAULT_REGION,
            }
        ),
        EnvVarPair(
            {
                "AWS_ACCESS_KEY": FieldName.ACCESS_KEY_ID,
                "AWS_SECRET_KEY": FieldName.SECRET_ACCESS_KEY,
                "AWS_DEFAULT_REGION": FieldName.DEFAULT_REGION,
            }
        ),
        EnvVarPair(
            {
                "AWS_ACCESS_KEY": FieldName.ACCESS_KEY_ID,
                "AWS_ACCESS_SECRET": FieldName.SECRET_ACCESS_KEY,
                "AWS_DEFAULT_REGION": FieldName.DEFAULT_REGION,
            }
        ),
        credentials_file_importer(),
    )


# --- IAM ---


def iam_client(in_: ProvisionInput):
    """Build an IAM client authenticated with the static access key."""
    session = boto3.Session(
        aws_access_key_id=in_.get(FieldName.ACCESS_KEY_ID),
        aws_secret_access_key=in_.get(FieldName.SECRET_ACCESS_KEY),
        region_name=in_.get(FieldName.DEFAULT_REGION, "us-east-1"),
    )
    config = Config(
        connect_timeout=in_.timeout,
        read_timeout=in_.timeout,
        retries={"max_attempts": 3, "mode": "standard"},
    )
    return session.client("iam", config=config)


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _translate(exc: Exception, action: str) -> Exception:
    if isinstance(exc, ClientError):
        code = _error_code(exc)
        if code in _AUTH_ERROR_CODES:
            return AuthError(f"AWS rejected the access key while trying to {action}: {code}")
        return ProvisionError(f"AWS refused to {action}: {exc}")
    return ConnectionError_(f"Could not reach AWS IAM to {action}: {exc}")


def generate_access_key(in_: ProvisionInput, out: ProvisionOutput) -> dict[FieldName, str]:
    """Create a transient IAM user with one access key.

    The user name is cached as soon as the user exists so that a failed
    key creation can still be rolled back.
    """
    if out.cache is None:
        raise ProvisionError("Generating an access key needs a session cache")
    iam = iam_client(in_)
    user_name = transient_name(in_.rng)

    try:
        iam.create_user(UserName=user_name, Tags=[IAM_USER_TAG])
    except (ClientError, BotoCoreError) as exc:
        raise _translate(exc, "create an IAM user") from exc
    out.cache.put(USER_KEY, user_name, in_.expires_at())
    logger.info("Created IAM user %s", user_name)

    try:
        key = iam.create_access_key(UserName=user_name)["AccessKey"]
    except (ClientError, BotoCoreError) as exc:
        raise _translate(exc, "create an access key") from exc
    out.cache.put(KEY_ID_KEY, key["AccessKeyId"], in_.expires_at())
    logger.info("Created access key %s for %s", key["AccessKeyId"], user_name)

    return {
        FieldName.ACCESS_KEY_ID: key["AccessKeyId"],
        FieldName.SECRET_ACCESS_KEY: key["SecretAccessKey"],
    }


def remove_access_key(in_: ProvisionInput) -> None:
    """Delete the transient user's access keys, then the user.

    Anything already gone (``NoSuchEntity``) counts as removed.
    """
    user_name = in_.cache.get_str(USER_KEY)
    if user_name is None:
        return
    iam = iam_client(in_)

    key_ids: list[str] = []
    cached_key_id = in_.cache.get_str(KEY_ID_KEY)
    if cached_key_id:
        key_ids.append(cached_key_id)
    try:
        listed = iam.list_access_keys(UserName=user_name)["AccessKeyMetadata"]
    except ClientError as exc:
        if _error_code(exc) == "NoSuchEntity":
            logger.info("IAM user %s is already gone", user_name)
            return
        raise RemovalError(f"Could not list access keys of {user_name}: {exc}") from exc
    except BotoCoreError as exc:
        raise ConnectionError_(f"Could not reach AWS IAM: {exc}") from exc
    key_ids.extend(k["AccessKeyId"] for k in listed if k["AccessKeyId"] not in key_ids)

    for key_id in key_ids:
        try:
            iam.delete_access_key(UserName=user_name, AccessKeyId=key_id)
            logger.info("Deleted access key %s", key_id)
        except ClientError as exc:
            if _error_code(exc) != "NoSuchEntity":
                raise RemovalError(f"Could not delete access key {key_id}: {exc}") from exc
        except BotoCoreError as exc:
            raise ConnectionError_(f"Could not reach AWS IAM: {exc}") from exc

    try:
        iam.delete_user(UserName=user_name)
        logger.info("Deleted IAM user %s", user_name)
    except ClientError as exc:
        if _error_code(exc) != "NoSuchEntity":
            raise RemovalError(f"Could not delete IAM user {user_name}: {exc}") from exc
    except BotoCoreError as exc:
        raise ConnectionError_(f"Could not reach AWS IAM: {exc}") from exc


# --- Credential type ---


def access_key() -> CredentialType:
    return CredentialType(
        name=NAME,
        docs_url="https://docs.aws.amazon.com/IAM/latest/UserGuide/id_credentials_access-keys.html",
        fields=[
            CredentialField(
                FieldName.ACCESS_KEY_ID,
                "The ID of the access key used to authenticate to AWS.",
            ),
            CredentialField(
                FieldName.SECRET_ACCESS_KEY,
                "The secret access key used to authenticate to AWS.",
                secret=True,
            ),
            CredentialField(
                FieldName.DEFAULT_REGION,
                "The default region to use for this access key.",
                optional=True,
            ),
            CredentialField(
                FieldName.ONE_TIME_PASSWORD,
                "The one-time code value for MFA authentication.",
                secret=True,
                optional=True,
            ),
            CredentialField(
                FieldName.MFA_SERIAL,
                "ARN of the MFA device used with the one-time password.",
                optional=True,
            ),
        ],
        importer=importer(),
        default_provisioner=EnvVarProvisioner(DEFAULT_ENV_VARS),
        key_generator=generate_access_key,
        key_remover=remove_access_key,
    )
