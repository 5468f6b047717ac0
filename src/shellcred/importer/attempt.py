"""Accumulators for the candidates and errors a strategy produces."""

from __future__ import annotations

from dataclasses import dataclass, field

from shellcred.models import ImportCandidate


@dataclass
class ImportResult:
    """Candidates and non-fatal errors from one or more strategies, in order."""

    candidates: list[ImportCandidate] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)

    def extend(self, other: ImportResult) -> None:
        """Append *other*'s candidates and errors after this result's own."""
        self.candidates.extend(other.candidates)
        self.errors.extend(other.errors)


class ImportAttempt:
    """Mutable accumulator handed to a single strategy invocation.

    File callbacks receive one of these and call :meth:`add_candidate` once
    per profile or section they recognise, and :meth:`add_error` for
    anything malformed. The attempt is discarded once :meth:`result` has
    been merged into the caller's :class:`ImportResult`.
    """

    def __init__(self) -> None:
        self._candidates: list[ImportCandidate] = []
        self._errors: list[Exception] = []

    @property
    def candidates(self) -> list[ImportCandidate]:
        return list(self._candidates)

    @property
    def errors(self) -> list[Exception]:
        return list(self._errors)

    def add_candidate(self, candidate: ImportCandidate) -> None:
        self._candidates.append(candidate)

    def add_error(self, error: Exception) -> None:
        self._errors.append(error)

    def result(self) -> ImportResult:
        """Snapshot the accumulated candidates and errors."""
        return ImportResult(candidates=list(self._candidates), errors=list(self._errors))
