"""Session-scoped credential cache for ephemeral provisioning.

This package provides :class:`ProvisionCache`, a disk-backed store built on
:mod:`diskcache` that carries state from the generate phase of a
provisioning session to its remove phase -- possibly in a different process.
Every session reads and writes through its own :class:`SessionCache`, whose
keys are prefixed with the session id so that concurrent sessions on the
same host never see each other's entries.
"""

from shellcred.cache.cache import (
    INTENT_KEY,
    CacheView,
    ProvisionCache,
    SessionCache,
    SessionInfo,
)

__all__ = ["INTENT_KEY", "CacheView", "ProvisionCache", "SessionCache", "SessionInfo"]
