"""Run a command with credentials exposed, optionally ephemeral ones.

:func:`run_command` is the scoped bracket around one child process:

1. Create a private scratch directory for credential files.
2. If *ephemeral*, open a :class:`~shellcred.provision.session.ProvisioningSession`
   and generate substitute credentials.
3. Apply the credential type's default provisioner.
4. Run the command and wait for it.
5. Remove the ephemeral credentials and the scratch directory, whatever
   happened in between.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from contextlib import ExitStack
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Mapping, Optional, Sequence

from shellcred.exceptions import InvalidUsageError, NotFoundError
from shellcred.models import FieldName, ProvisioningConfig
from shellcred.provision.base import DEFAULT_TIMEOUT, ProvisionInput, ProvisionOutput
from shellcred.provision.names import new_rng
from shellcred.provision.session import ProvisioningSession

if TYPE_CHECKING:
    import random

    from shellcred.cache import ProvisionCache
    from shellcred.schema import CredentialType, Executable

logger = logging.getLogger(__name__)


def run_command(
    argv: Sequence[str],
    credential_type: CredentialType,
    fields: Mapping[FieldName, str],
    *,
    cache: Optional[ProvisionCache] = None,
    ephemeral: bool = False,
    config: Optional[ProvisioningConfig] = None,
    session_id: Optional[str] = None,
    executable: Optional[Executable] = None,
    rng: Optional[random.Random] = None,
    home_dir: Optional[Path] = None,
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> int:
    """Execute *argv* with *fields* provisioned into its environment.

    Args:
        argv: The command and its arguments.
        credential_type: Supplies the default provisioner and, for
            ephemeral runs, the key generator and remover.
        fields: The resolved static credential fields.
        cache: Provisioning cache; required when *ephemeral* is set.
        ephemeral: Replace the static credentials with short-lived ones for
            the duration of the command.
        config: TTL, timeout, and rollback settings.
        session_id: Fixed id for the ephemeral session (random by default).
        executable: When given, its ``needs_auth`` predicate may skip
            provisioning entirely (e.g. for ``--help``).
        rng: Random source for transient names.
        home_dir: Home directory handed to the hooks.
        runner: ``subprocess.run``-compatible callable.

    Returns:
        The command's exit status.

    Raises:
        InvalidUsageError: If *argv* is empty, or *ephemeral* is set
            without a cache.
        NotFoundError: If the executable cannot be found.
        ProvisionError: If ephemeral credentials could not be created.
    """
    if not argv:
        raise InvalidUsageError("No command given")
    if ephemeral and cache is None:
        raise InvalidUsageError("Ephemeral provisioning needs a provisioning cache")

    config = config or ProvisioningConfig()
    rng = rng if rng is not None else new_rng()
    home_dir = home_dir if home_dir is not None else Path.home()

    if executable is not None and not executable.needs_auth(list(argv[1:])):
        logger.debug("'%s' does not need credentials for %s", argv[0], list(argv[1:]))
        return _execute(list(argv), dict(os.environ), runner)

    with ExitStack() as stack:
        temp_dir = Path(stack.enter_context(tempfile.TemporaryDirectory(prefix="shellcred-")))
        os.chmod(temp_dir, 0o700)

        active = dict(fields)
        if ephemeral:
            assert cache is not None
            session = ProvisioningSession.open(
                credential_type,
                cache,
                session_id=session_id,
                config=config,
                rng=rng,
                home_dir=home_dir,
            )
            active = stack.enter_context(session.provisioned(fields))

        in_ = ProvisionInput(
            item_fields=active,
            rng=rng,
            home_dir=home_dir,
            temp_dir=temp_dir,
            timeout=config.network_timeout or DEFAULT_TIMEOUT,
        )
        out = ProvisionOutput()
        credential_type.default_provisioner.provision(in_, out)
        logger.debug(
            "Provisioned %s: env=%s args=%d files=%d",
            credential_type.namespace,
            sorted(out.environment),
            len(out.args),
            len(out.files),
        )

        env = dict(os.environ)
        env.update(out.environment)
        return _execute(out.command_line(list(argv)), env, runner)


def _execute(
    command: list[str],
    env: dict[str, str],
    runner: Callable[..., subprocess.CompletedProcess],
) -> int:
    try:
        completed = runner(command, env=env, check=False)
    except FileNotFoundError:
        raise NotFoundError(f"Command not found: {command[0]}") from None
    except PermissionError:
        raise NotFoundError(f"Command is not executable: {command[0]}") from None
    return completed.returncode
