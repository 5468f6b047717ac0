"""Discovery strategies and the :class:`TryAll` combinator.

Every strategy exposes a single operation, ``attempt(in_) -> ImportResult``.
Strategies are plain values: a credential type declares its importer by
composing them, and the host runs it against an
:class:`~shellcred.importer.sources.ImportInput`.

* :class:`EnvVarPair` -- one candidate from a group of environment variables.
* :class:`TryFile` -- zero or more candidates from a file, via a callback.
* :class:`TryAll` -- every strategy in order, results concatenated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Protocol, Sequence

from shellcred.exceptions import SourceError
from shellcred.importer.attempt import ImportAttempt, ImportResult
from shellcred.importer.sources import FileContents, ImportInput
from shellcred.models import FieldName, ImportCandidate

logger = logging.getLogger(__name__)

FileCallback = Callable[[FileContents, ImportInput, ImportAttempt], None]
"""Signature of a :class:`TryFile` parse callback."""


class Strategy(Protocol):
    """A self-contained discovery method."""

    def attempt(self, in_: ImportInput) -> ImportResult:
        ...


@dataclass(frozen=True)
class EnvVarPair:
    """Build a candidate from a group of environment variables.

    If none of the variables in :attr:`mapping` is set, nothing is
    produced. Otherwise exactly one candidate is produced, holding the
    fields whose variable has a non-empty value.

    Attributes:
        mapping: ``{ENV_VAR_NAME: FieldName}``.
    """

    mapping: Mapping[str, FieldName]

    def attempt(self, in_: ImportInput) -> ImportResult:
        attempt = ImportAttempt()
        present = [var for var in self.mapping if in_.getenv(var) is not None]
        if not present:
            return attempt.result()

        fields = {self.mapping[var]: in_.env[var] for var in present if in_.env[var]}
        logger.debug("Environment variables %s produced a candidate", ", ".join(present))
        attempt.add_candidate(ImportCandidate(fields=fields))
        return attempt.result()


@dataclass(frozen=True)
class TryFile:
    """Read a file and let a callback turn it into candidates.

    A missing file produces nothing. A file that cannot be read, or whose
    callback raises :class:`~shellcred.exceptions.SourceError` (typically
    from :meth:`FileContents.to_ini` and friends), produces one error and no
    candidates.

    Attributes:
        path: Source path; ``~`` expands to the home directory.
        callback: Called once with the file contents, the import input, and
            an :class:`ImportAttempt` to fill.
    """

    path: str
    callback: FileCallback

    def attempt(self, in_: ImportInput) -> ImportResult:
        resolved = in_.expand_path(self.path)
        try:
            contents = in_.read_file(resolved)
        except SourceError as exc:
            logger.debug("Skipping unreadable %s: %s", resolved, exc)
            return ImportResult(errors=[exc])

        if contents is None:
            return ImportResult()

        attempt = ImportAttempt()
        try:
            self.callback(contents, in_, attempt)
        except SourceError as exc:
            logger.debug("Skipping malformed %s: %s", resolved, exc)
            return ImportResult(errors=[*attempt.errors, exc])
        return attempt.result()


class TryAll:
    """Run every strategy, in order, without stopping at the first success.

    Candidates and errors are concatenated in strategy order. Choosing
    between candidates -- and whether two of them describe the same
    profile -- is left to the caller.
    """

    def __init__(self, *strategies: Strategy) -> None:
        self.strategies: tuple[Strategy, ...] = strategies

    def attempt(self, in_: ImportInput) -> ImportResult:
        result = ImportResult()
        for strategy in self.strategies:
            result.extend(strategy.attempt(in_))
        return result

    def __repr__(self) -> str:
        return f"TryAll({', '.join(repr(s) for s in self.strategies)})"


def select_candidate(
    candidates: Iterable[ImportCandidate],
    required: Sequence[FieldName],
    name_hint: Optional[str] = None,
) -> Optional[ImportCandidate]:
    """Return the first candidate holding every *required* field.

    Args:
        candidates: Candidates in discovery order.
        required: Fields that must be present and non-empty.
        name_hint: When given, only candidates with this name hint match.
            Pass ``""`` to ask for the unnamed (default) candidate.
    """
    for candidate in candidates:
        if name_hint is not None and (candidate.name_hint or "") != name_hint:
            continue
        if candidate.has_fields(required):
            return candidate
    return None
