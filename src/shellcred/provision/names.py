"""Transient identity names and passwords drawn from a per-invocation random source."""

from __future__ import annotations

import random
import string

TRANSIENT_PREFIX = "shellcred_"

_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def new_rng() -> random.Random:
    """Return a fresh random source for one invocation, seeded by the OS."""
    return random.SystemRandom()


def transient_name(rng: random.Random, prefix: str = TRANSIENT_PREFIX) -> str:
    """Return ``<prefix><non-negative 63-bit integer>``, e.g. ``shellcred_42``."""
    return f"{prefix}{rng.getrandbits(63)}"


def random_password(rng: random.Random, length: int = 32) -> str:
    """Return an alphanumeric password of *length* characters."""
    return "".join(rng.choice(_PASSWORD_ALPHABET) for _ in range(length))
