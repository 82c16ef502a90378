# roitool/metadata/roi.py
"""Projection of ROIs and their shapes.

Besides the generic ``get_shape_*`` getters every shape kind gets its own
typed family, generated from the kind's dataclass fields::

    meta.get_rectangle_x(0, 0)        # None unless shape 0 of ROI 0 is a Rectangle
    meta.get_line_marker_end(2, 1)
    meta.get_polygon_annotation_ref(0, 0, 3)

The ROI list may contain ``None`` gaps left by display ordering; a gap
counts as a slot but behaves like an unknown ROI for every getter.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Optional, Sequence

from roitool.metadata.base import LsidFunction, MetadataBase, item_at, snake_case
from roitool.model.kinds import KIND_BY_NAME, SHAPE_KINDS, kind_of
from roitool.model.objects import Roi, Shape

# Fields that are structure, not shape properties
_NON_VALUE_FIELDS = {"id", "details", "loaded", "annotations", "roi"}

# Getter names that read better than the field name
_GETTER_ALIASES = {"mask_bytes": "bytes"}


def shape_fields(kind: str) -> tuple[str, ...]:
    """Value fields of a shape kind, common style fields first."""
    cls = KIND_BY_NAME[kind].cls
    return tuple(f.name for f in dataclasses.fields(cls) if f.name not in _NON_VALUE_FIELDS)


class RoiMetadata(MetadataBase):
    """Indexed getters over an ordered list of ROIs."""

    def __init__(self, lsids: LsidFunction, rois: Sequence[Optional[Roi]]):
        super().__init__(lsids)
        self._rois = list(rois)

    def _roi(self, roi_index: int) -> Optional[Roi]:
        return item_at(self._rois, roi_index)

    def _shape(
        self, roi_index: int, shape_index: int, kind: Optional[str] = None
    ) -> Optional[Shape]:
        roi = self._roi(roi_index)
        if roi is None:
            return None
        shape = item_at(roi.shapes, shape_index)
        if shape is None or (kind is not None and kind_of(shape).name != kind):
            return None
        return shape

    # -- ROI ----------------------------------------------------------------

    def get_roi_count(self) -> int:
        return len(self._rois)

    def get_roi_id(self, roi_index: int) -> Optional[str]:
        return self.lsid(self._roi(roi_index))

    def get_roi_name(self, roi_index: int) -> Optional[str]:
        roi = self._roi(roi_index)
        return roi.name if roi is not None else None

    def get_roi_description(self, roi_index: int) -> Optional[str]:
        roi = self._roi(roi_index)
        return roi.description if roi is not None else None

    def get_roi_annotation_ref_count(self, roi_index: int) -> int:
        roi = self._roi(roi_index)
        return len(roi.annotations) if roi is not None else -1

    def get_roi_annotation_ref(self, roi_index: int, annotation_ref_index: int) -> Optional[str]:
        roi = self._roi(roi_index)
        return self._ref(roi.annotations, annotation_ref_index) if roi is not None else None

    # -- shapes, any kind ---------------------------------------------------

    def get_shape_count(self, roi_index: int) -> int:
        roi = self._roi(roi_index)
        return len(roi.shapes) if roi is not None else -1

    def get_shape_type(self, roi_index: int, shape_index: int) -> Optional[str]:
        shape = self._shape(roi_index, shape_index)
        return kind_of(shape).name if shape is not None else None

    def get_shape_id(
        self, roi_index: int, shape_index: int, kind: Optional[str] = None
    ) -> Optional[str]:
        return self.lsid(self._shape(roi_index, shape_index, kind))

    def get_shape_value(
        self, roi_index: int, shape_index: int, name: str, kind: Optional[str] = None
    ) -> Any:
        """Field *name* of a shape; ``None`` if absent or not of *kind*."""
        shape = self._shape(roi_index, shape_index, kind)
        if shape is None:
            return None
        return getattr(shape, name, None)

    def get_shape_annotation_ref_count(
        self, roi_index: int, shape_index: int, kind: Optional[str] = None
    ) -> int:
        shape = self._shape(roi_index, shape_index, kind)
        return len(shape.annotations) if shape is not None else -1

    def get_shape_annotation_ref(
        self,
        roi_index: int,
        shape_index: int,
        annotation_ref_index: int,
        kind: Optional[str] = None,
    ) -> Optional[str]:
        shape = self._shape(roi_index, shape_index, kind)
        if shape is None:
            return None
        return self._ref(shape.annotations, annotation_ref_index)


# ---------------------------------------------------------------------------
# Typed per-kind getters
# ---------------------------------------------------------------------------


def _value_getter(kind: str, name: str):
    def getter(self: RoiMetadata, roi_index: int, shape_index: int) -> Any:
        return self.get_shape_value(roi_index, shape_index, name, kind)

    return getter


def _id_getter(kind: str):
    def getter(self: RoiMetadata, roi_index: int, shape_index: int) -> Optional[str]:
        return self.get_shape_id(roi_index, shape_index, kind)

    return getter


def _ref_count_getter(kind: str):
    def getter(self: RoiMetadata, roi_index: int, shape_index: int) -> int:
        return self.get_shape_annotation_ref_count(roi_index, shape_index, kind)

    return getter


def _ref_getter(kind: str):
    def getter(
        self: RoiMetadata, roi_index: int, shape_index: int, annotation_ref_index: int
    ) -> Optional[str]:
        return self.get_shape_annotation_ref(roi_index, shape_index, annotation_ref_index, kind)

    return getter


def _install_shape_getters() -> None:
    for kind in SHAPE_KINDS:
        prefix = f"get_{snake_case(kind)}"
        for name in shape_fields(kind):
            getter_name = f"{prefix}_{_GETTER_ALIASES.get(name, name)}"
            setattr(RoiMetadata, getter_name, _value_getter(kind, name))
        setattr(RoiMetadata, f"{prefix}_id", _id_getter(kind))
        setattr(RoiMetadata, f"{prefix}_annotation_ref_count", _ref_count_getter(kind))
        setattr(RoiMetadata, f"{prefix}_annotation_ref", _ref_getter(kind))


_install_shape_getters()
