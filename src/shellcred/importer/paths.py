"""Resolution of companion files referenced next to a primary credential file."""

from __future__ import annotations

from pathlib import Path

from shellcred.importer.sources import ImportInput


def resolve_companion_path(
    in_: ImportInput,
    override_env: str,
    *default_parts: str,
) -> Path:
    """Locate a companion file such as the AWS CLI ``config`` file.

    Resolution order:

    1. ``$override_env`` starting with ``~`` -- relative to the home directory.
    2. ``$override_env`` as an absolute path -- used verbatim.
    3. ``$override_env`` as a relative path -- relative to the root directory.
    4. No override -- ``default_parts`` under the home directory.

    Example::

        resolve_companion_path(in_, "AWS_CONFIG_FILE", ".aws", "config")
    """
    override = in_.getenv(override_env)
    if override:
        if override.startswith("~"):
            return in_.from_home_dir(override[1:])
        path = Path(override)
        if path.is_absolute():
            return path
        return in_.from_root_dir(override)
    return in_.from_home_dir(*default_parts)
