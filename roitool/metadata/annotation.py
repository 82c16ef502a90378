# roitool/metadata/annotation.py
"""Projection of annotations, split into one list per annotation kind.

The export gathers annotations from the image, every ROI and every shape,
so the same annotation usually arrives more than once.  Each distinct
annotation (by LSID) is kept once, at its first position.

Getters follow the same pattern for every kind::

    meta.get_xml_annotation_count()
    meta.get_map_annotation_value(0)      # list of (key, value) pairs
    meta.get_tag_annotation_namespace(2)
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from roitool.metadata.base import LsidFunction, MetadataBase, item_at, snake_case
from roitool.model.kinds import ANNOTATION_KINDS, kind_of
from roitool.model.objects import Annotation

# Annotation kind -> field holding its value
VALUE_FIELDS: dict[str, str] = {
    "BooleanAnnotation": "bool_value",
    "CommentAnnotation": "text_value",
    "DoubleAnnotation": "double_value",
    "LongAnnotation": "long_value",
    "MapAnnotation": "map_value",
    "TagAnnotation": "text_value",
    "TermAnnotation": "term_value",
    "TimestampAnnotation": "time_value",
    "XmlAnnotation": "text_value",
}


class AnnotationMetadata(MetadataBase):
    """Indexed getters over annotations, per kind."""

    def __init__(self, lsids: LsidFunction, annotations: Iterable[Annotation]):
        super().__init__(lsids)
        self._by_kind: dict[str, list[Annotation]] = {kind: [] for kind in ANNOTATION_KINDS}
        seen: set[str] = set()
        for annotation in annotations:
            lsid = self._lsids(annotation)
            if lsid in seen:
                continue
            seen.add(lsid)
            self._by_kind[kind_of(annotation).name].append(annotation)

    def _annotation(self, kind: str, index: int) -> Optional[Annotation]:
        annotations = self._by_kind.get(kind)
        return item_at(annotations, index) if annotations is not None else None

    def get_annotation_count(self, kind: str) -> int:
        annotations = self._by_kind.get(kind)
        return len(annotations) if annotations is not None else -1

    def get_annotation_id(self, kind: str, index: int) -> Optional[str]:
        return self.lsid(self._annotation(kind, index))

    def get_annotation_namespace(self, kind: str, index: int) -> Optional[str]:
        annotation = self._annotation(kind, index)
        return annotation.namespace if annotation is not None else None

    def get_annotation_description(self, kind: str, index: int) -> Optional[str]:
        annotation = self._annotation(kind, index)
        return annotation.description if annotation is not None else None

    def get_annotation_value(self, kind: str, index: int) -> Any:
        annotation = self._annotation(kind, index)
        if annotation is None:
            return None
        value = getattr(annotation, VALUE_FIELDS[kind])
        if kind == "MapAnnotation":
            return list(value)
        return value


def _count_getter(kind: str):
    def getter(self: AnnotationMetadata) -> int:
        return self.get_annotation_count(kind)

    return getter


def _indexed_getter(kind: str, generic):
    def getter(self: AnnotationMetadata, index: int) -> Any:
        return generic(self, kind, index)

    return getter


def _install_annotation_getters() -> None:
    for kind in ANNOTATION_KINDS:
        prefix = f"get_{snake_case(kind)}"
        setattr(AnnotationMetadata, f"{prefix}_count", _count_getter(kind))
        for field in ("id", "namespace", "description", "value"):
            generic = getattr(AnnotationMetadata, f"get_annotation_{field}")
            setattr(AnnotationMetadata, f"{prefix}_{field}", _indexed_getter(kind, generic))


_install_annotation_getters()
