# roitool/model/kinds.py
"""Closed table of concrete model kinds.

Every concrete class in :mod:`roitool.model.objects` is listed exactly once
with its canonical name, its family and the role the object-graph linker
gives it.  Abstract bases (``ModelObject``, ``Shape``, ``Annotation``) are
deliberately absent, so looking one of them up fails.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from roitool.errors import InvalidObjectKindError
from roitool.model import objects as m


class ObjectRole(str, Enum):
    """Where the linker places an object."""

    ROOT = "root"
    CHILD = "child"
    CROSS_CUTTING = "cross-cutting"


@dataclass(frozen=True)
class KindInfo:
    name: str
    cls: type
    family: str
    role: Optional[ObjectRole]


def _shape(cls: type) -> KindInfo:
    return KindInfo(cls.__name__, cls, "Shape", ObjectRole.CHILD)


def _annotation(cls: type) -> KindInfo:
    return KindInfo(cls.__name__, cls, "Annotation", ObjectRole.CROSS_CUTTING)


KINDS: tuple[KindInfo, ...] = (
    KindInfo("Roi", m.Roi, "Roi", ObjectRole.ROOT),
    _shape(m.Rectangle),
    _shape(m.Ellipse),
    _shape(m.Point),
    _shape(m.Line),
    _shape(m.Polyline),
    _shape(m.Polygon),
    _shape(m.Label),
    _shape(m.Mask),
    _annotation(m.BooleanAnnotation),
    _annotation(m.CommentAnnotation),
    _annotation(m.DoubleAnnotation),
    _annotation(m.LongAnnotation),
    _annotation(m.MapAnnotation),
    _annotation(m.TagAnnotation),
    _annotation(m.TermAnnotation),
    _annotation(m.TimestampAnnotation),
    _annotation(m.XmlAnnotation),
    KindInfo("Image", m.Image, "Image", None),
    KindInfo("Pixels", m.Pixels, "Pixels", None),
    KindInfo("Channel", m.Channel, "Channel", None),
    KindInfo("Plane", m.Plane, "Plane", None),
)

KIND_BY_CLASS: dict[type, KindInfo] = {k.cls: k for k in KINDS}
KIND_BY_NAME: dict[str, KindInfo] = {k.name: k for k in KINDS}

SHAPE_KINDS: tuple[str, ...] = tuple(k.name for k in KINDS if k.family == "Shape")
ANNOTATION_KINDS: tuple[str, ...] = tuple(
    k.name for k in KINDS if k.family == "Annotation"
)


def kind_of(obj: object) -> KindInfo:
    """Return the kind entry for *obj*'s exact class."""
    info = KIND_BY_CLASS.get(type(obj))
    if info is None:
        raise InvalidObjectKindError(type(obj).__name__)
    return info


def kind_named(name: str) -> KindInfo:
    info = KIND_BY_NAME.get(name)
    if info is None:
        raise InvalidObjectKindError(name)
    return info
