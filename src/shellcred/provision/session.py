"""Two-phase provisioning session: generate, run, remove.

A :class:`ProvisioningSession` drives one credential type's
:class:`~shellcred.provision.base.KeyGenerator` and
:class:`~shellcred.provision.base.KeyRemover` through a small state machine
persisted in the session cache::

    (none) --generate--> generating --ok--> provisioned --remove--> (none)
                             |                   |
                             | failure           | remover refused
                             v                   v
                  rolled back -> (none)     removal_failed
                  rollback refused -> quarantined

The intent record (``__intent__``) is written before the backing service is
touched, so a crash at any point leaves a session that ``shellcred
sessions`` can list and ``shellcred remove`` can retry.

The two phases may run in different processes: open the session again
with the same id and call :meth:`ProvisioningSession.remove`.
"""

from __future__ import annotations

import enum
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterator, Mapping, Optional

from shellcred.cache import INTENT_KEY, CacheView, ProvisionCache, SessionCache
from shellcred.exceptions import (
    CacheDecodeError,
    ProvisionError,
    RemovalError,
    ShellcredError,
)
from shellcred.models import FieldName, ProvisioningConfig
from shellcred.provision.base import ProvisionInput, ProvisionOutput
from shellcred.provision.names import new_rng

if TYPE_CHECKING:
    import random

    from shellcred.schema import CredentialType

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    """Lifecycle states recorded in a session's intent record."""

    GENERATING = "generating"
    PROVISIONED = "provisioned"
    QUARANTINED = "quarantined"
    REMOVAL_FAILED = "removal_failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProvisioningSession:
    """One generate/remove bracket for a single credential type.

    Args:
        credential_type: Supplies the key generator and remover.
        cache: This session's cache handle; not shared with any other session.
        config: TTL, network timeout, and rollback policy.
        rng: Random source for transient names; a fresh OS-seeded source
            is created when omitted.
        home_dir: Passed through to the hooks.
        clock: Source of the current UTC time.

    Example::

        session = ProvisioningSession.open(access_key, cache)
        with session.provisioned(static_fields) as fields:
            subprocess.run(["aws", "s3", "ls"], env=...)
    """

    def __init__(
        self,
        credential_type: CredentialType,
        cache: SessionCache,
        config: Optional[ProvisioningConfig] = None,
        rng: Optional[random.Random] = None,
        home_dir: Optional[Path] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.credential_type = credential_type
        self.cache = cache
        self.config = config or ProvisioningConfig()
        self._rng = rng if rng is not None else new_rng()
        self._home_dir = home_dir if home_dir is not None else Path.home()
        self._clock = clock

    @classmethod
    def open(
        cls,
        credential_type: CredentialType,
        cache: ProvisionCache,
        session_id: Optional[str] = None,
        **kwargs: object,
    ) -> ProvisioningSession:
        """Open a session by id, or start a new one with a random id."""
        session_id = session_id or uuid.uuid4().hex
        return cls(
            credential_type,
            cache.session(session_id, namespace=credential_type.namespace),
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def session_id(self) -> str:
        return self.cache.session_id

    @property
    def _ttl(self) -> timedelta:
        return timedelta(seconds=self.config.ttl_seconds)

    # ------------------------------------------------------------------
    # Intent record
    # ------------------------------------------------------------------

    def state(self) -> Optional[SessionState]:
        """Return the recorded state, or ``None`` for an empty session."""
        entry = self.cache.get(INTENT_KEY)
        if entry is None:
            return None
        try:
            record = CacheView({INTENT_KEY: entry}).value(INTENT_KEY)
            return SessionState(record["state"])
        except (CacheDecodeError, KeyError, TypeError, ValueError):
            logger.debug("Session %s has an unreadable intent record", self.session_id)
            return None

    def _write_intent(self, state: SessionState, expires_at: Optional[datetime] = None) -> None:
        if expires_at is None:
            current = self.cache.get(INTENT_KEY)
            expires_at = current.expires_at if current else self._clock() + self._ttl
        self.cache.put(
            INTENT_KEY,
            {
                "state": state.value,
                "credential": self.credential_type.namespace,
                "updated_at": self._clock().isoformat(),
            },
            expires_at,
        )

    def _resources(self, view: Mapping[str, object]) -> list[str]:
        return [key for key in view if key != INTENT_KEY]

    def _input(self, static_fields: Mapping[FieldName, str], view: CacheView) -> ProvisionInput:
        return ProvisionInput(
            item_fields=dict(static_fields),
            cache=view,
            rng=self._rng,
            home_dir=self._home_dir,
            timeout=self.config.network_timeout,
            ttl=self._ttl,
            clock=self._clock,
        )

    # ------------------------------------------------------------------
    # Generate
    # ------------------------------------------------------------------

    def generate(self, static_fields: Mapping[FieldName, str]) -> dict[FieldName, str]:
        """Create the ephemeral credential.

        Args:
            static_fields: Long-lived credentials used to authenticate to
                the backing service.

        Returns:
            *static_fields* with the generator's substitutes applied on top.

        Raises:
            ProvisionError: If the credential type cannot generate keys, the
                session is already in use, or generation failed. Errors
                raised by the generator as
                :class:`~shellcred.exceptions.ShellcredError` (e.g.
                ``AuthError``) keep their type when rollback succeeded.
        """
        generator = self.credential_type.key_generator
        if generator is None or self.credential_type.key_remover is None:
            raise ProvisionError(
                f"Credential type '{self.credential_type.namespace}' "
                "does not support ephemeral provisioning"
            )
        if self.state() is not None or self._resources(self.cache.view()):
            raise ProvisionError(
                f"Provisioning session {self.session_id} is already in use",
                session_id=self.session_id,
            )

        expires_at = self._clock() + self._ttl
        self._write_intent(SessionState.GENERATING, expires_at)
        logger.debug("Session %s: generating %s", self.session_id, self.credential_type.namespace)

        in_ = self._input(static_fields, CacheView({}))
        out = ProvisionOutput(cache=self.cache)
        try:
            substitutes = generator(in_, out)
        except Exception as exc:
            quarantined = self._rollback(static_fields)
            if isinstance(exc, ShellcredError) and not quarantined:
                raise
            raise ProvisionError(
                self._failure_message(exc, quarantined),
                session_id=self.session_id if quarantined else None,
            ) from exc
        except BaseException:
            self._rollback(static_fields)
            raise

        self._write_intent(SessionState.PROVISIONED, expires_at)
        logger.info(
            "Session %s: provisioned %s (%s)",
            self.session_id,
            self.credential_type.namespace,
            ", ".join(name.value for name in substitutes),
        )
        fields = dict(static_fields)
        fields.update(substitutes)
        return fields

    def _failure_message(self, exc: Exception, quarantined: bool) -> str:
        message = f"Generating {self.credential_type.namespace} credentials failed: {exc}"
        if quarantined:
            message += (
                f". Partially created resources were kept in session {self.session_id}; "
                f"retry cleanup with: shellcred remove {self.credential_type.plugin} "
                f"--credential {self.credential_type.name} --session {self.session_id}"
            )
        return message

    def _rollback(self, static_fields: Mapping[FieldName, str]) -> bool:
        """Undo a failed generation; returns ``True`` if the session was quarantined."""
        view = self.cache.view()
        if not self._resources(view):
            self.cache.invalidate()
            return False

        if not self.config.rollback_on_failure:
            logger.warning("Session %s: rollback disabled, quarantining", self.session_id)
            self._write_intent(SessionState.QUARANTINED)
            return True

        remover = self.credential_type.key_remover
        assert remover is not None  # checked in generate()
        try:
            remover(self._input(static_fields, view))
        except Exception as exc:
            logger.error(
                "Session %s: rollback failed, resources left behind: %s",
                self.session_id,
                exc,
            )
            self._write_intent(SessionState.QUARANTINED)
            return True

        logger.info("Session %s: rolled back partially created resources", self.session_id)
        self.cache.invalidate()
        return False

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def remove(self, static_fields: Mapping[FieldName, str]) -> bool:
        """Tear down whatever this session created.

        A session with no live entries -- never generated, already removed,
        or expired -- is a no-op and never reaches the backing service.

        Returns:
            ``True`` if the remover ran, ``False`` if there was nothing to remove.

        Raises:
            RemovalError: If the backing service refused the deletion. The
                session's entries are kept so the removal can be retried.
        """
        view = self.cache.view()
        if not self._resources(view):
            if len(view):
                self.cache.invalidate()
            logger.debug("Session %s: nothing to remove", self.session_id)
            return False

        remover = self.credential_type.key_remover
        if remover is None:
            logger.warning(
                "Session %s: %s has no key remover, dropping cached state",
                self.session_id,
                self.credential_type.namespace,
            )
            self.cache.invalidate()
            return False

        try:
            remover(self._input(static_fields, view))
        except Exception as exc:
            self._write_intent(SessionState.REMOVAL_FAILED)
            if isinstance(exc, RemovalError):
                raise
            raise RemovalError(
                f"Removing {self.credential_type.namespace} credentials "
                f"for session {self.session_id} failed: {exc}"
            ) from exc

        self.cache.invalidate()
        logger.info("Session %s: removed %s", self.session_id, self.credential_type.namespace)
        return True

    # ------------------------------------------------------------------
    # Bracket
    # ------------------------------------------------------------------

    @contextmanager
    def provisioned(self, static_fields: Mapping[FieldName, str]) -> Iterator[dict[FieldName, str]]:
        """Generate on entry, remove on every exit path.

        Removal runs on success, on exceptions, and on ``KeyboardInterrupt``.
        A failed removal is logged at ERROR level -- it means a credential
        leaked -- but never replaces the outcome of the wrapped block.
        """
        fields = self.generate(static_fields)
        try:
            yield fields
        finally:
            try:
                self.remove(static_fields)
            except RemovalError as exc:
                logger.error("%s", exc)
                logger.error(
                    "Retry with: shellcred remove %s --credential %s --session %s",
                    self.credential_type.plugin,
                    self.credential_type.name,
                    self.session_id,
                )
