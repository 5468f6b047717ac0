"""Declarative description of plugins, credential types, and executables.

A :class:`Plugin` groups the :class:`CredentialType` objects a platform
offers and the :class:`Executable` commands that consume them. Everything a
host needs to discover, provision, and clean up credentials hangs off a
credential type: its importer strategy, default provisioner, and the
optional :class:`~shellcred.provision.base.KeyGenerator` /
:class:`~shellcred.provision.base.KeyRemover` pair.

Example::

    Plugin(
        name="aws",
        platform="AWS",
        homepage="https://aws.amazon.com/",
        credentials=[access_key()],
        executables=[Executable(name="AWS CLI", runs=["aws"], uses=["access_key"])],
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from shellcred.exceptions import NotFoundError
from shellcred.importer.strategies import Strategy
from shellcred.models import FieldName
from shellcred.provision.base import KeyGenerator, KeyRemover, Provisioner

_HELP_OR_VERSION = frozenset({"-h", "--help", "-help", "help", "-v", "--version", "version"})


def not_for_help_or_version(args: list[str]) -> bool:
    """Return ``False`` when *args* only ask for help or the version."""
    return not any(arg in _HELP_OR_VERSION for arg in args)


@dataclass(frozen=True)
class CredentialField:
    """One field of a credential type.

    Attributes:
        name: The field's identity.
        description: Markdown shown in listings.
        secret: Masked in output and never logged.
        optional: Not required for a candidate to be usable.
    """

    name: FieldName
    description: str = ""
    secret: bool = False
    optional: bool = False


@dataclass
class CredentialType:
    """A kind of credential a plugin can discover and provision."""

    name: str
    fields: list[CredentialField]
    importer: Strategy
    default_provisioner: Provisioner
    key_generator: Optional[KeyGenerator] = None
    key_remover: Optional[KeyRemover] = None
    docs_url: Optional[str] = None
    plugin: str = ""

    @property
    def namespace(self) -> str:
        """Cache namespace: ``<plugin>/<credential type>``."""
        return f"{self.plugin}/{self.name}" if self.plugin else self.name

    @property
    def required_fields(self) -> list[FieldName]:
        return [f.name for f in self.fields if not f.optional]

    @property
    def secret_fields(self) -> set[FieldName]:
        return {f.name for f in self.fields if f.secret}

    @property
    def supports_ephemeral(self) -> bool:
        return self.key_generator is not None and self.key_remover is not None

    def validate(self) -> list[str]:
        """Return a list of problems; empty when the definition is usable."""
        problems: list[str] = []
        if not self.name:
            problems.append("credential type has no name")
        if not self.fields:
            problems.append(f"{self.name}: no fields declared")
        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            problems.append(f"{self.name}: duplicate field names")
        if (self.key_generator is None) != (self.key_remover is None):
            problems.append(f"{self.name}: key generator and key remover must be declared together")
        return problems


@dataclass(frozen=True)
class Executable:
    """A command a plugin knows how to authenticate.

    Attributes:
        name: Display name (e.g. ``"AWS CLI"``).
        runs: Command names this executable matches.
        uses: Names of the credential types it consumes.
        needs_auth: Predicate over the command's arguments; provisioning
            is skipped when it returns ``False``.
    """

    name: str
    runs: list[str]
    uses: list[str]
    needs_auth: Callable[[list[str]], bool] = not_for_help_or_version
    docs_url: Optional[str] = None


@dataclass
class Plugin:
    """A platform's credential types and executables."""

    name: str
    platform: str
    credentials: list[CredentialType]
    executables: list[Executable] = field(default_factory=list)
    homepage: Optional[str] = None

    def __post_init__(self) -> None:
        for credential in self.credentials:
            if not credential.plugin:
                credential.plugin = self.name

    def credential(self, name: Optional[str] = None) -> CredentialType:
        """Look up a credential type by name; the first one when *name* is omitted.

        Raises:
            NotFoundError: If the plugin has no such credential type.
        """
        if name is None:
            if not self.credentials:
                raise NotFoundError(f"Plugin '{self.name}' declares no credential types")
            return self.credentials[0]
        for credential in self.credentials:
            if credential.name == name:
                return credential
        available = ", ".join(c.name for c in self.credentials)
        raise NotFoundError(
            f"Plugin '{self.name}' has no credential type '{name}' (available: {available})"
        )

    def executable(self, command: str) -> Optional[Executable]:
        """Return the executable that runs *command*, if any."""
        for executable in self.executables:
            if command in executable.runs:
                return executable
        return None

    def validate(self) -> list[str]:
        problems = [f"{self.name}: {p}" for c in self.credentials for p in c.validate()]
        known = {c.name for c in self.credentials}
        for executable in self.executables:
            for used in executable.uses:
                if used not in known:
                    problems.append(
                        f"{self.name}: executable '{executable.name}' uses unknown credential '{used}'"
                    )
        return problems
