"""Ephemeral provisioning engine and default provisioners.

The engine brackets a command with two phases:

1. **Generate** -- authenticate to the backing service with the static
   credentials, create a transient identity and secret, and persist what is
   needed to undo that in the session cache.
2. **Remove** -- read the session cache back, delete the secret and the
   identity, and evict the session.

:class:`ProvisioningSession` owns the protocol; plugins only supply the
function-shaped :class:`KeyGenerator` and :class:`KeyRemover` hooks.
Default provisioners (:class:`EnvVarProvisioner`,
:class:`TempFileProvisioner`) then expose the resulting fields to the
wrapped command.
"""

from shellcred.provision.base import (
    KeyGenerator,
    KeyRemover,
    ProvisionInput,
    ProvisionOutput,
    Provisioner,
)
from shellcred.provision.provisioners import (
    ChainProvisioner,
    EnvVarProvisioner,
    TempFileProvisioner,
)
from shellcred.provision.runner import run_command
from shellcred.provision.session import ProvisioningSession, SessionState

__all__ = [
    "ChainProvisioner",
    "EnvVarProvisioner",
    "KeyGenerator",
    "KeyRemover",
    "ProvisionInput",
    "ProvisionOutput",
    "Provisioner",
    "ProvisioningSession",
    "SessionState",
    "TempFileProvisioner",
    "run_command",
]
