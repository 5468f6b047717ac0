"""Two-phase provisioning commands for callers that manage their own process.

``generate`` performs phase one and prints the session id together with
the substitute credentials; ``remove`` performs phase two, possibly from a
different process or after a crash. ``sessions`` lists what is still
pending in the provisioning cache.

Typical workflow::

    shellcred --json generate aws
    shellcred remove aws --session 3f2a9c...
    shellcred sessions
"""

from __future__ import annotations

from typing import Optional

import typer

from shellcred.output import format_data, info, print_table, success, suggest


def generate_command(
    plugin: str = typer.Argument(help="Plugin name, e.g. 'aws'."),
    credential: Optional[str] = typer.Option(
        None, "--credential", "-c", help="Credential type (defaults to the plugin's first)."
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Use the candidate with this name hint."
    ),
    session: Optional[str] = typer.Option(
        None, "--session", "-s", help="Session id to use (random by default)."
    ),
) -> None:
    """Create ephemeral credentials and print them with their session id.

    The credentials stay valid until ``shellcred remove`` is run with the
    printed session id, or until the backing service expires them.
    """
    from shellcred.commands.helpers import load_credential_type, open_cache, resolve_fields
    from shellcred.provision import ProvisioningSession

    config, credential_type = load_credential_type(plugin, credential)
    static_fields = resolve_fields(credential_type, profile)

    with open_cache(config) as cache:
        prov = ProvisioningSession.open(
            credential_type, cache, session_id=session, config=config.provisioning
        )
        fields = prov.generate(static_fields)

    data = {"session": prov.session_id}
    data.update({name.value: value for name, value in fields.items()})
    format_data(data)
    suggest(f"Clean up with: shellcred remove {plugin} --credential {credential_type.name} --session {prov.session_id}")


def remove_command(
    plugin: str = typer.Argument(help="Plugin name, e.g. 'aws'."),
    session: str = typer.Option(..., "--session", "-s", help="Session id printed by 'generate'."),
    credential: Optional[str] = typer.Option(
        None, "--credential", "-c", help="Credential type (defaults to the plugin's first)."
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Use the candidate with this name hint."
    ),
) -> None:
    """Remove the ephemeral credentials of a session. Safe to repeat."""
    from shellcred.commands.helpers import load_credential_type, open_cache, resolve_fields
    from shellcred.provision import ProvisioningSession

    config, credential_type = load_credential_type(plugin, credential)

    with open_cache(config) as cache:
        prov = ProvisioningSession.open(
            credential_type, cache, session_id=session, config=config.provisioning
        )
        if not prov.cache.view():
            info(f"Nothing to remove for session {session}.")
            return
        static_fields = resolve_fields(credential_type, profile)
        removed = prov.remove(static_fields)

    if removed:
        success(f"Removed {credential_type.namespace} credentials of session {session}.")
    else:
        info(f"Nothing to remove for session {session}.")


def sessions_command() -> None:
    """List provisioning sessions that still hold state."""
    from shellcred.commands.helpers import open_cache
    from shellcred.config import resolve_config

    with open_cache(resolve_config()) as cache:
        found = cache.sessions()

    if not found:
        info("No provisioning sessions.")
        return
    rows = [
        [s.namespace, s.session_id, s.state or "unknown", s.expires_at.isoformat()]
        for s in found
    ]
    print_table(["Credential", "Session", "State", "Expires"], rows, title="Sessions")
