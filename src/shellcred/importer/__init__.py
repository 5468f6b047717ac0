"""Credential discovery: source readers, field extractors, and strategy combinators.

A credential type's importer is a :class:`Strategy` -- usually a
:class:`TryAll` over several :class:`EnvVarPair` and :class:`TryFile`
strategies. Running it against an :class:`ImportInput` yields an
:class:`ImportResult` holding every candidate found and every non-fatal
error encountered, in strategy order.

Typical usage::

    from shellcred.importer import EnvVarPair, ImportInput, TryAll

    importer = TryAll(EnvVarPair({"MY_TOKEN": FieldName.TOKEN}))
    result = importer.attempt(ImportInput())
    for candidate in result.candidates:
        ...
"""

from shellcred.importer.attempt import ImportAttempt, ImportResult
from shellcred.importer.fields import extract_fields, is_complete, merge_fields
from shellcred.importer.names import sanitize_name_hint
from shellcred.importer.paths import resolve_companion_path
from shellcred.importer.sources import FileContents, ImportInput
from shellcred.importer.strategies import (
    EnvVarPair,
    Strategy,
    TryAll,
    TryFile,
    select_candidate,
)

__all__ = [
    "EnvVarPair",
    "FileContents",
    "ImportAttempt",
    "ImportInput",
    "ImportResult",
    "Strategy",
    "TryAll",
    "TryFile",
    "extract_fields",
    "is_complete",
    "merge_fields",
    "resolve_companion_path",
    "sanitize_name_hint",
    "select_candidate",
]
