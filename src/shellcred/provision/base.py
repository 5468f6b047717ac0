"""Inputs, outputs, and hook signatures shared by the provisioning engine.

A :class:`KeyGenerator` receives the static credential fields and a
writable session cache, and returns the fields the wrapped command should
see instead. A :class:`KeyRemover` receives the same static fields and a
read-only snapshot of that cache. A :class:`Provisioner` turns the final
field set into environment variables, files, and command-line arguments.

Contract for key generators: every value a remover needs must be written
to ``out.cache`` as soon as the corresponding resource exists (not at the
end), so that a failure half-way through can still be rolled back.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from shellcred.cache import CacheView
from shellcred.provision.names import new_rng

if TYPE_CHECKING:
    from shellcred.cache import SessionCache
    from shellcred.models import FieldName

DEFAULT_TTL = timedelta(hours=10)
"""Lifetime of provisioning state when no configuration overrides it."""

DEFAULT_TIMEOUT = 30.0
"""Seconds allowed for each call to a backing service."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProvisionInput:
    """Everything a hook may read.

    Attributes:
        item_fields: The resolved credential fields.
        cache: Snapshot of the session cache (empty while generating).
        rng: Random source for this invocation only.
        home_dir: The user's home directory.
        temp_dir: Scratch directory removed when the command exits.
        timeout: Seconds allowed for each network call.
        ttl: How long cached provisioning state must survive.
        clock: Source of the current UTC time.
    """

    item_fields: dict[FieldName, str]
    cache: CacheView = field(default_factory=lambda: CacheView({}))
    rng: random.Random = field(default_factory=new_rng)
    home_dir: Path = field(default_factory=Path.home)
    temp_dir: Optional[Path] = None
    timeout: float = DEFAULT_TIMEOUT
    ttl: timedelta = DEFAULT_TTL
    clock: Callable[[], datetime] = _utcnow

    def expires_at(self) -> datetime:
        """Expiry to use for cache entries written now."""
        return self.clock() + self.ttl

    def get(self, name: FieldName, default: str = "") -> str:
        return self.item_fields.get(name) or default


@dataclass
class ProvisionOutput:
    """Everything a hook may produce.

    Attributes:
        cache: Writable session cache; only set while generating.
        environment: Variables to add to the command's environment.
        args: Arguments inserted directly after the executable name.
        files: Files written into :attr:`ProvisionInput.temp_dir`.
    """

    cache: Optional[SessionCache] = None
    environment: dict[str, str] = field(default_factory=dict)
    args: list[str] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)

    def command_line(self, argv: list[str]) -> list[str]:
        """Return *argv* with :attr:`args` inserted after the executable."""
        if not argv:
            return list(self.args)
        return [argv[0], *self.args, *argv[1:]]


class KeyGenerator(Protocol):
    """Create an ephemeral credential and return its substitute fields."""

    def __call__(self, in_: ProvisionInput, out: ProvisionOutput) -> dict[FieldName, str]:
        ...


class KeyRemover(Protocol):
    """Tear down whatever the matching :class:`KeyGenerator` created.

    Must return quietly when the cache holds nothing to remove or the
    resource is already gone.
    """

    def __call__(self, in_: ProvisionInput) -> None:
        ...


class Provisioner(Protocol):
    """Expose credential fields to the wrapped command."""

    def provision(self, in_: ProvisionInput, out: ProvisionOutput) -> None:
        ...
