"""Disk-based provisioning cache with per-entry expiry.

Uses :mod:`diskcache` to persist the values a key generator needs to hand
to its key remover: the name of a created identity, the id of a created
secret, and the session's intent record. Entries are stored as validated
:class:`~shellcred.models.CacheEntry` dicts whose ``data`` is a JSON
payload; anything that does not decode cleanly is treated as absent.

Keys are laid out as ``<namespace>/<session_id>/<key>`` and every entry of
a session carries the session prefix as its diskcache tag, so a whole
session can be evicted in one call.

See Also:
    :class:`~shellcred.provision.session.ProvisioningSession` -- the only
    writer of the intent record.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping, Optional

import diskcache
from pydantic import ValidationError

from shellcred.exceptions import CacheDecodeError
from shellcred.models import CacheEntry

logger = logging.getLogger(__name__)

INTENT_KEY = "__intent__"
"""Session-relative key of the intent record written by the provisioning engine."""

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _decode(entry: CacheEntry) -> Any:
    try:
        return json.loads(entry.data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CacheDecodeError(f"Cache entry '{entry.key}' is not valid JSON: {exc}") from exc


@dataclass(frozen=True)
class SessionInfo:
    """Summary of a live provisioning session found in the cache."""

    namespace: str
    session_id: str
    state: Optional[str]
    credential: Optional[str]
    expires_at: datetime


class CacheView(Mapping[str, CacheEntry]):
    """Read-only snapshot of a session's entries, keyed by session-relative key.

    Handed to key removers, which must treat a missing, expired, or
    undecodable entry as "nothing to remove".
    """

    def __init__(self, entries: Mapping[str, CacheEntry]) -> None:
        self._entries = dict(entries)

    def __getitem__(self, key: str) -> CacheEntry:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def value(self, key: str) -> Any:
        """Decode the JSON payload stored under *key*.

        Raises:
            KeyError: If there is no entry for *key*.
            CacheDecodeError: If the payload is not valid JSON.
        """
        return _decode(self._entries[key])

    def get_str(self, key: str) -> Optional[str]:
        """Return the string stored under *key*, or ``None``.

        ``None`` covers a missing entry, an undecodable payload, and a
        payload that is not a string.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        try:
            value = _decode(entry)
        except CacheDecodeError as exc:
            logger.debug("Ignoring cache entry: %s", exc)
            return None
        if not isinstance(value, str):
            logger.debug("Ignoring cache entry '%s': expected a string", key)
            return None
        return value


class SessionCache:
    """Read/write access to the entries of one provisioning session.

    Obtained from :meth:`ProvisionCache.session`; never constructed
    directly by plugins.

    Example::

        session = cache.session("3f2a...", namespace="aws/access_key")
        session.put("user", "shellcred_42", expires_at)
        session.view().get_str("user")
    """

    def __init__(
        self,
        backend: diskcache.Cache,
        namespace: str,
        session_id: str,
        clock: Clock = _utcnow,
    ) -> None:
        self._backend = backend
        self._clock = clock
        self.namespace = namespace
        self.session_id = session_id
        self.prefix = f"{namespace}/{session_id}/"

    def put(self, key: str, value: Any, expires_at: datetime) -> CacheEntry:
        """Store *value* (JSON-serialisable) under *key* until *expires_at*.

        Raises:
            TypeError: If *value* is not JSON-serialisable.
        """
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        entry = CacheEntry(
            key=key,
            data=json.dumps(value).encode("utf-8"),
            expires_at=expires_at,
        )
        ttl = max((expires_at - self._clock()).total_seconds(), 0.0)
        self._backend.set(
            self.prefix + key,
            entry.model_dump(mode="python"),
            expire=ttl,
            tag=self.prefix,
        )
        return entry

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for *key*, or ``None`` if missing or expired."""
        raw = self._backend.get(self.prefix + key)
        if raw is None:
            return None
        try:
            entry = CacheEntry.model_validate(raw)
        except ValidationError:
            logger.debug("Ignoring foreign cache value under %s%s", self.prefix, key)
            return None
        if entry.is_expired(self._clock()):
            self._backend.delete(self.prefix + key)
            return None
        return entry

    def delete(self, key: str) -> bool:
        """Delete *key*; returns ``True`` if an entry was removed."""
        return bool(self._backend.delete(self.prefix + key))

    def keys(self) -> list[str]:
        """Session-relative keys of every stored entry (expired ones included)."""
        return [
            key[len(self.prefix):]
            for key in self._backend.iterkeys()
            if isinstance(key, str) and key.startswith(self.prefix)
        ]

    def view(self) -> CacheView:
        """Snapshot the session's live entries."""
        entries: dict[str, CacheEntry] = {}
        for key in self.keys():
            entry = self.get(key)
            if entry is not None:
                entries[key] = entry
        return CacheView(entries)

    def is_empty(self) -> bool:
        return len(self.view()) == 0

    def invalidate(self) -> int:
        """Remove every entry of this session; returns the number removed."""
        removed = self._backend.evict(self.prefix)
        logger.debug("Evicted %d cache entries for %s", removed, self.prefix)
        return removed


class ProvisionCache:
    """Disk-backed store shared by every provisioning session on the host.

    Args:
        cache_dir: Root directory for the cache. A ``provision/``
            subdirectory is created inside it.
        clock: Source of the current UTC time, injectable for tests.

    Example::

        with ProvisionCache(get_cache_dir()) as cache:
            session = cache.session(session_id, namespace="mysql/database_credentials")
    """

    def __init__(self, cache_dir: str | Path, clock: Clock = _utcnow) -> None:
        self._cache_dir = Path(cache_dir)
        self._clock = clock
        self._cache = diskcache.Cache(str(self._cache_dir / "provision"))

    @property
    def directory(self) -> Path:
        return self._cache_dir / "provision"

    def session(self, session_id: str, namespace: str) -> SessionCache:
        """Return the cache handle for one session."""
        if not session_id or "/" in session_id:
            raise ValueError(f"Invalid session id: {session_id!r}")
        return SessionCache(self._cache, namespace, session_id, clock=self._clock)

    def sessions(self, namespace: Optional[str] = None) -> list[SessionInfo]:
        """List sessions that still have an intent record.

        Args:
            namespace: Restrict the listing to one credential type.
        """
        suffix = "/" + INTENT_KEY
        found: list[SessionInfo] = []
        for key in self._cache.iterkeys():
            if not isinstance(key, str) or not key.endswith(suffix):
                continue
            ns, _, session_id = key[: -len(suffix)].rpartition("/")
            if namespace is not None and ns != namespace:
                continue
            entry = self.session(session_id, ns).get(INTENT_KEY)
            if entry is None:
                continue
            try:
                record = _decode(entry)
            except CacheDecodeError:
                record = {}
            if not isinstance(record, dict):
                record = {}
            found.append(
                SessionInfo(
                    namespace=ns,
                    session_id=session_id,
                    state=record.get("state"),
                    credential=record.get("credential"),
                    expires_at=entry.expires_at,
                )
            )
        return sorted(found, key=lambda info: info.expires_at)

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()

    def __enter__(self) -> ProvisionCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
