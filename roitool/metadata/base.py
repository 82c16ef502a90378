# roitool/metadata/base.py
"""Shared plumbing for the read-only metadata projections."""

from __future__ import annotations

import re
from typing import Callable, Optional, Sequence, TypeVar

from roitool.model.objects import ModelObject

T = TypeVar("T")

LsidFunction = Callable[[ModelObject], str]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def snake_case(name: str) -> str:
    """``"XmlAnnotation"`` -> ``"xml_annotation"``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def item_at(items: Sequence[T], index: int) -> Optional[T]:
    """``items[index]``, or ``None`` for a negative or out-of-range index."""
    if index < 0 or index >= len(items):
        return None
    return items[index]


class MetadataBase:
    """Base of the projection facades.

    Every getter takes plain indexes and returns ``None`` (or ``-1`` for a
    count under an unknown parent) instead of raising.  Identifiers come
    from the LSID function bound to the store session.
    """

    def __init__(self, lsids: LsidFunction):
        self._lsids = lsids

    def lsid(self, obj: Optional[ModelObject]) -> Optional[str]:
        return self._lsids(obj) if obj is not None else None

    def _ref(self, refs: Sequence[ModelObject], index: int) -> Optional[str]:
        return self.lsid(item_at(refs, index))
