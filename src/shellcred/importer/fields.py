"""Field extractors: map raw source keys onto :class:`~shellcred.models.FieldName`.

These are pure functions with no I/O. A plugin describes a source once as a
``{raw_key: FieldName}`` mapping and reuses :func:`extract_fields` for every
section it reads.
"""

from __future__ import annotations

from typing import Iterable, Mapping, MutableMapping, Optional

from shellcred.models import FieldName


def extract_fields(
    section: Mapping[str, Optional[str]],
    mapping: Mapping[str, FieldName],
) -> dict[FieldName, str]:
    """Pick the mapped keys out of *section*.

    Keys that are absent, value-less, or empty are omitted entirely rather
    than carried as empty strings.

    Example::

        >>> extract_fields({"aws_access_key_id": "AKIA", "output": "json"},
        ...                {"aws_access_key_id": FieldName.ACCESS_KEY_ID})
        {<FieldName.ACCESS_KEY_ID: 'Access Key ID'>: 'AKIA'}
    """
    fields: dict[FieldName, str] = {}
    for raw_key, name in mapping.items():
        value = section.get(raw_key)
        if value:
            fields[name] = value
    return fields


def merge_fields(
    primary: MutableMapping[FieldName, str],
    secondary: Mapping[FieldName, str],
) -> MutableMapping[FieldName, str]:
    """Fill the gaps in *primary* from *secondary*, in place.

    A field already set in *primary* is never overwritten, so merging into
    a complete field set is a no-op.

    Returns:
        *primary*, for chaining.
    """
    for name, value in secondary.items():
        if value and not primary.get(name):
            primary[name] = value
    return primary


def is_complete(fields: Mapping[FieldName, str], required: Iterable[FieldName]) -> bool:
    """Return ``True`` if every *required* field is present and non-empty."""
    return all(fields.get(name) for name in required)
