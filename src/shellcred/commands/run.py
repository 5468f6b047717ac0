"""The ``run`` command -- execute a command with credentials provisioned.

Example::

    shellcred run aws -- aws s3 ls
    shellcred run aws --ephemeral --profile user1 -- aws sts get-caller-identity
    shellcred run mysql -- mysql -e 'select 1'
"""

from __future__ import annotations

from typing import List, Optional

import typer


def run_command(
    plugin: str = typer.Argument(help="Plugin name, e.g. 'aws'."),
    command: List[str] = typer.Argument(help="Command to run, after '--'."),
    credential: Optional[str] = typer.Option(
        None, "--credential", "-c", help="Credential type (defaults to the plugin's first)."
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Use the candidate with this name hint."
    ),
    ephemeral: bool = typer.Option(
        False, "--ephemeral", "-e", help="Use short-lived credentials, removed afterwards."
    ),
) -> None:
    """Discover credentials, expose them to COMMAND, and run it.

    With ``--ephemeral`` a transient credential is created first and
    removed when the command exits, whatever its outcome. The exit status
    is the command's own.
    """
    from shellcred.commands.helpers import load_registry, open_cache, resolve_fields
    from shellcred.config import resolve_config
    from shellcred.exceptions import InvalidUsageError
    from shellcred.output import debug
    from shellcred.provision import run_command as run_with_credentials

    if not command:
        raise InvalidUsageError("No command given; pass it after '--'")

    config = resolve_config()
    owner = load_registry(config).get(plugin)
    credential_type = owner.credential(credential)
    executable = owner.executable(command[0])

    if executable is not None and not executable.needs_auth(list(command[1:])):
        fields = {}
    else:
        fields = resolve_fields(credential_type, profile)
    debug(f"Running {command[0]} with {credential_type.namespace}")

    if ephemeral:
        with open_cache(config) as cache:
            code = run_with_credentials(
                command,
                credential_type,
                fields,
                cache=cache,
                ephemeral=True,
                config=config.provisioning,
                executable=executable,
            )
    else:
        code = run_with_credentials(
            command,
            credential_type,
            fields,
            config=config.provisioning,
            executable=executable,
        )
    raise typer.Exit(code=code)

