"""Sanitisation of candidate name hints."""

from __future__ import annotations

import re
from typing import Optional

MAX_NAME_HINT_LENGTH = 64

_UNSAFE = re.compile(r"[^A-Za-z0-9 ._@-]+")
_SPACES = re.compile(r"\s+")


def sanitize_name_hint(name: Optional[str]) -> Optional[str]:
    """Turn a raw profile or section name into a safe display key.

    The name is trimmed, a leading ``"profile "`` (AWS config syntax) is
    dropped, characters outside ``[A-Za-z0-9 ._@-]`` are removed and runs
    of whitespace collapsed. ``"default"`` carries no information and maps
    to ``None``, as does anything that ends up empty.

    Example::

        >>> sanitize_name_hint("  profile user1 ")
        'user1'
        >>> sanitize_name_hint("default") is None
        True
    """
    if name is None:
        return None
    hint = name.strip()
    if hint.lower().startswith("profile "):
        hint = hint[len("profile "):]
    hint = _UNSAFE.sub("", hint)
    hint = _SPACES.sub(" ", hint).strip()
    hint = hint[:MAX_NAME_HINT_LENGTH].strip()
    if not hint or hint.lower() == "default":
        return None
    return hint
