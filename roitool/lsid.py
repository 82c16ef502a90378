# roitool/lsid.py
"""Deterministic LSIDs for persisted model objects.

An LSID names one object at one revision::

    urn:lsid:<authority>:<database-uuid>:<Kind>_<id>:<update-event>

The authority and database uuid are fixed per store connection; the kind is
the concrete name from :mod:`roitool.model.kinds` (``Rectangle``, never the
abstract ``Shape``).  The same object at the same revision always yields the
same string, and objects of different kinds never share one even when their
numeric ids collide.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from roitool.errors import UnhydratedObjectError
from roitool.model.kinds import kind_of
from roitool.model.objects import ModelObject

# Reference-only suffixes appended to filter references.  They never appear
# in a container identifier.
CUSTOM_SUFFIXES = ("OMERO_EMISSION_FILTER", "OMERO_EXCITATION_FILTER")

_LSID_PATTERN = re.compile(
    r"^(?P<prefix>urn:lsid:(?P<authority>[^:]+):(?P<database_uuid>[^:]+))"
    r":(?P<kind>[A-Za-z]+)_(?P<object_id>-?\d+):(?P<update_event>-?\d+)$"
)


@dataclass(frozen=True)
class LsidParts:
    authority: str
    database_uuid: str
    kind: str
    object_id: int
    update_event: int


class LsidFormatter:
    """Computes identifiers for one store connection."""

    def __init__(self, authority: str, database_uuid: str):
        self.authority = authority
        self.database_uuid = database_uuid
        self.prefix = f"urn:lsid:{authority}:{database_uuid}"

    def __repr__(self) -> str:
        return f"LsidFormatter({self.prefix!r})"

    def __call__(self, obj: ModelObject) -> str:
        return self.identifier_of(obj)

    def identifier_of(self, obj: ModelObject) -> str:
        """Return the LSID of a hydrated model object.

        Raises
        ------
        InvalidObjectKindError
            If *obj* is not an instance of a concrete kind.
        UnhydratedObjectError
            If the id or the update event is missing.
        """
        kind = kind_of(obj).name
        if obj.id is None:
            raise UnhydratedObjectError(kind, None, "id")
        update_event = obj.details.update_event if obj.details else None
        if update_event is None:
            raise UnhydratedObjectError(kind, obj.id, "update event")
        return f"{self.prefix}:{kind}_{obj.id}:{update_event}"


def strip_custom_suffix(identifier: str) -> str:
    """Drop a trailing reference-only suffix so the identifier can be looked up."""
    for suffix in CUSTOM_SUFFIXES:
        if identifier.endswith(":" + suffix):
            return identifier[: -len(suffix) - 1]
    return identifier


def parse_lsid(identifier: str) -> LsidParts:
    """Split an identifier produced by :class:`LsidFormatter`."""
    match = _LSID_PATTERN.match(strip_custom_suffix(identifier))
    if match is None:
        raise ValueError(f"Not a roitool LSID: {identifier!r}")
    return LsidParts(
        authority=match.group("authority"),
        database_uuid=match.group("database_uuid"),
        kind=match.group("kind"),
        object_id=int(match.group("object_id")),
        update_event=int(match.group("update_event")),
    )
