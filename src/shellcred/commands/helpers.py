"""Shared plumbing for the CLI sub-commands.

Every command resolves the effective configuration, looks up a plugin and
credential type in the registry, and -- except for ``import``, which shows
everything -- picks one usable candidate from discovery.
"""

from __future__ import annotations

import logging
from typing import Optional

from shellcred.cache import ProvisionCache
from shellcred.config import get_provision_cache_dir, resolve_config
from shellcred.exceptions import NotFoundError
from shellcred.importer import ImportInput, ImportResult, select_candidate
from shellcred.models import FieldName, GlobalConfig
from shellcred.plugins.manager import PluginRegistry, create_default_registry
from shellcred.schema import CredentialType

logger = logging.getLogger(__name__)


def load_registry(config: GlobalConfig) -> PluginRegistry:
    return create_default_registry(config)


def load_credential_type(plugin: str, credential: Optional[str]) -> tuple[GlobalConfig, CredentialType]:
    config = resolve_config()
    registry = load_registry(config)
    return config, registry.credential(plugin, credential)


def discover(credential_type: CredentialType, in_: Optional[ImportInput] = None) -> ImportResult:
    """Run the credential type's importer against the real environment."""
    return credential_type.importer.attempt(in_ or ImportInput())


def resolve_fields(
    credential_type: CredentialType,
    profile: Optional[str] = None,
    in_: Optional[ImportInput] = None,
) -> dict[FieldName, str]:
    """Pick the first complete candidate, optionally by name hint.

    Raises:
        NotFoundError: If no candidate holds every required field.
    """
    result = discover(credential_type, in_)
    for err in result.errors:
        logger.warning("%s", err)
    candidate = select_candidate(result.candidates, credential_type.required_fields, profile)
    if candidate is None:
        wanted = f" for profile '{profile}'" if profile is not None else ""
        raise NotFoundError(
            f"No complete {credential_type.namespace} credentials found{wanted} "
            f"({len(result.candidates)} candidate(s), {len(result.errors)} error(s))"
        )
    logger.debug(
        "Using %s candidate %s", credential_type.namespace, candidate.name_hint or "(default)"
    )
    return dict(candidate.fields)


def open_cache(config: GlobalConfig) -> ProvisionCache:
    return ProvisionCache(get_provision_cache_dir(config))
