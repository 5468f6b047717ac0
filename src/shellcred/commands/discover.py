"""Discovery commands -- list plugins and show what can be imported.

Typical workflow::

    shellcred plugins          # what is supported
    shellcred import aws       # what was found on this machine
"""

from __future__ import annotations

from typing import Optional

import typer

from shellcred.output import (
    OutputFormat,
    display_fields,
    format_data,
    get_output,
    info,
    print_table,
    warning,
)


def plugins_command() -> None:
    """List plugins, their credential types, and the executables they cover."""
    from shellcred.commands.helpers import load_registry
    from shellcred.config import resolve_config

    registry = load_registry(resolve_config())
    rows: list[list[str]] = []
    for plugin in registry.list_plugins():
        for credential in plugin.credentials:
            executables = [
                ", ".join(e.runs) for e in plugin.executables if credential.name in e.uses
            ]
            rows.append(
                [
                    plugin.name,
                    plugin.platform,
                    credential.name,
                    ", ".join(executables) or "-",
                    "yes" if credential.supports_ephemeral else "no",
                ]
            )
    print_table(
        ["Plugin", "Platform", "Credential", "Executables", "Ephemeral"],
        rows,
        title="Plugins",
    )


def import_command(
    plugin: str = typer.Argument(help="Plugin name, e.g. 'aws'."),
    credential: Optional[str] = typer.Option(
        None, "--credential", "-c", help="Credential type (defaults to the plugin's first)."
    ),
    show_secrets: bool = typer.Option(
        False, "--show-secrets", help="Print secret values instead of masking them."
    ),
) -> None:
    """Run discovery and print every candidate found.

    Secret fields are masked unless ``--show-secrets`` is given. Sources
    that exist but cannot be used are reported as warnings.

    Example::

        shellcred import aws
        shellcred --json import mysql
    """
    from shellcred.commands.helpers import discover, load_credential_type

    _, credential_type = load_credential_type(plugin, credential)
    result = discover(credential_type)
    secrets = credential_type.secret_fields

    for err in result.errors:
        warning(str(err))

    records = []
    for index, candidate in enumerate(result.candidates, 1):
        complete = candidate.has_fields(credential_type.required_fields)
        records.append(
            {
                "index": index,
                "name_hint": candidate.name_hint,
                "complete": complete,
                "fields": display_fields(candidate.fields, secrets, show_secrets),
            }
        )

    if not records:
        info(f"No {credential_type.namespace} credentials found.")
        if get_output().format == OutputFormat.JSON:
            format_data([])
        return

    if get_output().format == OutputFormat.JSON:
        format_data(records)
        return

    rows = [
        [
            str(r["index"]),
            r["name_hint"] or "(default)",
            "yes" if r["complete"] else "no",
            "; ".join(f"{k}={v}" for k, v in r["fields"].items()),
        ]
        for r in records
    ]
    print_table(["#", "Profile", "Complete", "Fields"], rows, title=credential_type.namespace)
