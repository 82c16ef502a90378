# roitool/store/memory.py
"""In-process object store.

Behaves like the remote store from the converter's point of view: fetches
return detached copies, saves assign ids and a fresh update event per batch,
and ROIs are persisted together with their shapes and linked annotations.
Used by the test-suite and for offline round trips.
"""

from __future__ import annotations

import copy
from itertools import count
from typing import Optional, Sequence

from roitool.errors import PersistenceError, StoreError
from roitool.lsid import LsidFormatter
from roitool.model.objects import (
    Annotation,
    Details,
    Image,
    MapAnnotation,
    ModelObject,
    Pixels,
    Roi,
    Shape,
)
from roitool.store.base import AnnotationParent, StoreGateway
from roitool.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_AUTHORITY = "export.openmicroscopy.org"
DEFAULT_DATABASE_UUID = "00000000-0000-0000-0000-000000000000"


class InMemoryStore(StoreGateway):
    """Object store kept in Python dictionaries."""

    def __init__(
        self,
        authority: str = DEFAULT_AUTHORITY,
        database_uuid: str = DEFAULT_DATABASE_UUID,
    ):
        self.authority = authority
        self.database_uuid = database_uuid
        self.images: dict[int, Image] = {}
        self.rois: dict[int, Roi] = {}
        self.shapes: dict[int, Shape] = {}
        self.annotations: dict[int, Annotation] = {}
        self.closed = False
        self.save_calls = 0
        self._ids = count(1)
        self._events = count(1)

    # -- session ------------------------------------------------------------

    def connect(self) -> None:
        self.closed = False
        self._lsids = LsidFormatter(self.authority, self.database_uuid)

    def close(self) -> None:
        self.closed = True
        self._lsids = None

    # -- queries ------------------------------------------------------------

    def fetch_image(self, image_id: int) -> Optional[Image]:
        image = self.images.get(image_id)
        if image is None:
            return None
        return _detach_image(image)

    def fetch_rois(self, image_id: int) -> list[Roi]:
        return [
            _detach_roi(roi)
            for roi_id, roi in sorted(self.rois.items())
            if roi.image is not None and roi.image.id == image_id
        ]

    def fetch_annotations(self, parent: AnnotationParent, object_id: int) -> list[Annotation]:
        table: dict[int, ModelObject]
        if parent == "image":
            table = self.images
        elif parent == "roi":
            table = self.rois
        elif parent == "shape":
            table = self.shapes
        else:
            raise StoreError(f"Unknown annotation parent kind: {parent!r}")
        owner = table.get(object_id)
        if owner is None:
            return []
        return [_detach_plain(a) for a in owner.annotations]

    # -- writes -------------------------------------------------------------

    def save_and_return(self, objects: Sequence[ModelObject]) -> list[ModelObject]:
        """Persist ROIs (and what hangs off them) or images in one batch."""
        self.save_calls += 1
        event = next(self._events)
        memo: dict[int, ModelObject] = {}
        staged_rois: list[Roi] = []
        staged_images: list[Image] = []
        for obj in objects:
            if isinstance(obj, Roi):
                staged_rois.append(self._stage_roi(obj, event, memo))
            elif isinstance(obj, Image):
                staged_images.append(self._stage_image(obj, event, memo))
            else:
                raise PersistenceError(
                    f"Cannot save {type(obj).__name__} as a batch root"
                )

        for image in staged_images:
            self.images[image.id] = image
        for roi in staged_rois:
            self.rois[roi.id] = roi
            for shape in roi.shapes:
                self.shapes[shape.id] = shape
        for obj in memo.values():
            if isinstance(obj, Annotation):
                self.annotations[obj.id] = obj
        logger.debug(
            "Saved %d ROIs, %d images in update event %d",
            len(staged_rois),
            len(staged_images),
            event,
        )
        return [_detach_roi(r) for r in staged_rois] + [
            _detach_image(i) for i in staged_images
        ]

    def add_image(self, image: Image) -> Image:
        """Persist a new image tree; convenience for setting up a store."""
        (saved,) = self.save_and_return([image])
        assert isinstance(saved, Image)
        return saved

    # -- staging helpers ----------------------------------------------------

    def _assign(self, staged: ModelObject, source: ModelObject, event: int) -> None:
        staged.id = source.id if source.id is not None else next(self._ids)
        staged.details = Details(update_event=event)
        staged.loaded = True

    def _stage_annotation(
        self, annotation: Annotation, event: int, memo: dict[int, ModelObject]
    ) -> Annotation:
        key = id(annotation)
        if key not in memo:
            if annotation.id is not None and not annotation.loaded:
                existing = self.annotations.get(annotation.id)
                if existing is None:
                    raise PersistenceError(f"Annotation {annotation.id} does not exist")
                memo[key] = existing
            else:
                staged = _detach_plain(annotation)
                self._assign(staged, annotation, event)
                memo[key] = staged
        staged_annotation = memo[key]
        assert isinstance(staged_annotation, Annotation)
        return staged_annotation

    def _stage_roi(self, roi: Roi, event: int, memo: dict[int, ModelObject]) -> Roi:
        if roi.image is None or roi.image.id not in self.images:
            target = roi.image.id if roi.image is not None else None
            raise PersistenceError(f"ROI must be linked to an existing image, got {target}")
        if roi.id is not None and roi.id not in self.rois:
            raise PersistenceError(f"Roi {roi.id} does not exist")
        staged = copy.copy(roi)
        self._assign(staged, roi, event)
        staged.image = self.images[roi.image.id]
        staged.annotations = [self._stage_annotation(a, event, memo) for a in roi.annotations]
        staged.shapes = []
        for shape in roi.shapes:
            staged_shape = copy.copy(shape)
            self._assign(staged_shape, shape, event)
            staged_shape.annotations = [
                self._stage_annotation(a, event, memo) for a in shape.annotations
            ]
            staged.add_shape(staged_shape)
        return staged

    def _stage_image(self, image: Image, event: int, memo: dict[int, ModelObject]) -> Image:
        staged = copy.copy(image)
        self._assign(staged, image, event)
        staged.rois = []
        staged.annotations = [self._stage_annotation(a, event, memo) for a in image.annotations]
        if image.pixels is not None:
            pixels = copy.copy(image.pixels)
            self._assign(pixels, image.pixels, event)
            pixels.channels = []
            for channel in image.pixels.channels:
                staged_channel = copy.copy(channel)
                self._assign(staged_channel, channel, event)
                pixels.channels.append(staged_channel)
            pixels.planes = []
            for plane in image.pixels.planes:
                staged_plane = copy.copy(plane)
                self._assign(staged_plane, plane, event)
                pixels.planes.append(staged_plane)
            staged.pixels = pixels
        return staged


# ---------------------------------------------------------------------------
# Detached copies handed out by queries
# ---------------------------------------------------------------------------


def _detach_plain(obj):
    detached = copy.copy(obj)
    detached.details = copy.copy(obj.details)
    if isinstance(detached, MapAnnotation):
        detached.map_value = list(obj.map_value)
    return detached


def _detach_shape(shape: Shape, roi: Roi) -> Shape:
    detached = _detach_plain(shape)
    detached.annotations = [_detach_plain(a) for a in shape.annotations]
    detached.roi = roi
    return detached


def _detach_roi(roi: Roi) -> Roi:
    detached = _detach_plain(roi)
    detached.annotations = [_detach_plain(a) for a in roi.annotations]
    detached.shapes = [_detach_shape(s, detached) for s in roi.shapes]
    if roi.image is not None:
        detached.image = Image(id=roi.image.id, loaded=False)
    return detached


def _detach_image(image: Image) -> Image:
    detached = _detach_plain(image)
    detached.annotations = [_detach_plain(a) for a in image.annotations]
    detached.rois = []
    if image.pixels is not None:
        pixels: Pixels = _detach_plain(image.pixels)
        pixels.channels = [_detach_plain(c) for c in image.pixels.channels]
        pixels.planes = [_detach_plain(p) for p in image.pixels.planes]
        detached.pixels = pixels
    return detached
