"""Default provisioners: environment variables and scoped temporary files.

Argument and environment templates are rendered with :mod:`jinja2`; the
only variable available is ``path``, the absolute path of the written file::

    TempFileProvisioner(mysql_config, "my.cnf", args=["--defaults-file={{ path }}"])
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Mapping, Optional, Sequence

from jinja2 import Environment, StrictUndefined

from shellcred.exceptions import ProvisionError
from shellcred.models import FieldName
from shellcred.provision.base import ProvisionInput, ProvisionOutput, Provisioner

logger = logging.getLogger(__name__)

_templates = Environment(undefined=StrictUndefined, autoescape=False, keep_trailing_newline=True)


def _render(template: str, **context: str) -> str:
    return _templates.from_string(template).render(**context)


class EnvVarProvisioner:
    """Expose fields as environment variables.

    Only fields present in the input are exported; a missing optional field
    never shows up as an empty variable.

    Args:
        mapping: ``{ENV_VAR_NAME: FieldName}``.
    """

    def __init__(self, mapping: Mapping[str, FieldName]) -> None:
        self.mapping = dict(mapping)

    def provision(self, in_: ProvisionInput, out: ProvisionOutput) -> None:
        for var, name in self.mapping.items():
            value = in_.item_fields.get(name)
            if value:
                out.environment[var] = value


class TempFileProvisioner:
    """Write a file into the session's scratch directory and point the command at it.

    The scratch directory belongs to the caller (see
    :func:`~shellcred.provision.runner.run_command`) and is deleted with
    everything in it when the command exits.

    Args:
        render: Produces the file's bytes, or ``None`` to skip the file.
        filename: Name of the file inside the scratch directory.
        args: Argument templates inserted after the executable.
        environment: ``{ENV_VAR_NAME: template}`` entries to export.
    """

    def __init__(
        self,
        render: Callable[[ProvisionInput], Optional[bytes]],
        filename: str,
        args: Sequence[str] = (),
        environment: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.render = render
        self.filename = filename
        self.args = list(args)
        self.environment = dict(environment or {})

    def provision(self, in_: ProvisionInput, out: ProvisionOutput) -> None:
        content = self.render(in_)
        if content is None:
            return
        if in_.temp_dir is None:
            raise ProvisionError(f"No scratch directory available to write {self.filename}")

        path = in_.temp_dir / self.filename
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        out.files.append(path)
        logger.debug("Wrote %s (%d bytes)", path, len(content))

        out.args.extend(_render(arg, path=str(path)) for arg in self.args)
        for var, template in self.environment.items():
            out.environment[var] = _render(template, path=str(path))


class ChainProvisioner:
    """Apply several provisioners in order."""

    def __init__(self, *provisioners: Provisioner) -> None:
        self.provisioners = provisioners

    def provision(self, in_: ProvisionInput, out: ProvisionOutput) -> None:
        for provisioner in self.provisioners:
            provisioner.provision(in_, out)
