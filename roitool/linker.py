# roitool/linker.py
"""Object-graph linker for ROI import.

A document reader produces two record streams:

* container records ``(lsid, object, indexes)``, one per ROI, shape and
  annotation, where ``indexes`` locates the object in the document tree;
* reference records ``(target, reference)`` saying "link the object named
  *reference* onto the object named *target*".

References may point forwards or backwards in the document, so the linker
works in two phases.  Containers are placed as they arrive (ROIs by
``roiIndex``, shapes onto their ROI, annotations only registered); once every
container is in, :meth:`ObjectGraphLinker.resolve` walks the references
against the complete registry.  :meth:`ObjectGraphLinker.commit` then hangs
every ROI off the target image and saves them in one batch.

States::

    EMPTY -> ACCUMULATING -> RESOLVED -> COMMITTED
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Optional

from roitool.errors import (
    GraphError,
    LinkerStateError,
    NoLinkHandlerError,
    OrphanChildError,
    PersistenceError,
    StoreError,
    UnresolvedReferenceError,
    UnsupportedObjectError,
)
from roitool.lsid import strip_custom_suffix
from roitool.model.kinds import ObjectRole, kind_of
from roitool.model.objects import AnnotatedObject, Annotation, Image, ModelObject, Roi, Shape
from roitool.utils.logging import get_logger

if TYPE_CHECKING:
    from roitool.store.base import StoreGateway

logger = get_logger(__name__)

ROI_INDEX = "roiIndex"
SHAPE_INDEX = "shapeIndex"
ANNOTATION_INDEX = "annotationIndex"


class LinkerState(str, Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    RESOLVED = "resolved"
    COMMITTED = "committed"


@dataclass(frozen=True)
class ContainerRecord:
    """A model object plus its identifier and tree position."""

    lsid: str
    obj: ModelObject
    indexes: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ReferenceRecord:
    """Link the object named ``reference`` onto the object named ``target``."""

    target: str
    reference: str


# ---------------------------------------------------------------------------
# Link table
# ---------------------------------------------------------------------------


def _link_annotation(target: ModelObject, reference: ModelObject) -> bool:
    assert isinstance(target, AnnotatedObject) and isinstance(reference, Annotation)
    return target.link_annotation(reference)


LinkFunction = Callable[[ModelObject, ModelObject], bool]

# (target role, reference role) -> link function.  A link function returns
# False when the link already existed.
LINK_HANDLERS: dict[tuple[ObjectRole, ObjectRole], LinkFunction] = {
    (ObjectRole.ROOT, ObjectRole.CROSS_CUTTING): _link_annotation,
    (ObjectRole.CHILD, ObjectRole.CROSS_CUTTING): _link_annotation,
}


# ---------------------------------------------------------------------------
# Linker
# ---------------------------------------------------------------------------


class ObjectGraphLinker:
    """Rebuilds a linked ROI graph from container and reference records.

    One instance serves exactly one import run.
    """

    def __init__(self, link_handlers: Optional[dict[tuple[ObjectRole, ObjectRole], LinkFunction]] = None):
        self.state = LinkerState.EMPTY
        self._registry: dict[str, ModelObject] = {}
        self._rois: dict[int, Roi] = {}
        self._references: list[ReferenceRecord] = []
        self._container_count = 0
        self._link_count = 0
        self._link_handlers = dict(LINK_HANDLERS if link_handlers is None else link_handlers)
        self._placers: dict[ObjectRole, Callable[[ContainerRecord], None]] = {
            ObjectRole.ROOT: self._place_root,
            ObjectRole.CHILD: self._place_child,
            ObjectRole.CROSS_CUTTING: self._place_cross_cutting,
        }

    # -- read-only views ----------------------------------------------------

    @property
    def rois(self) -> list[Roi]:
        """ROIs in first-insertion order of their ``roiIndex``."""
        return list(self._rois.values())

    def lookup(self, lsid: str) -> Optional[ModelObject]:
        return self._registry.get(strip_custom_suffix(lsid))

    def summary(self) -> dict[str, object]:
        return {
            "state": self.state.value,
            "containers": self._container_count,
            "registered": len(self._registry),
            "rois": len(self._rois),
            "pending_references": len(self._references),
            "links": self._link_count,
        }

    # -- accumulation -------------------------------------------------------

    def _require(self, *states: LinkerState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise LinkerStateError(
                f"Linker is {self.state.value}; operation needs {allowed}"
            )

    def add_container(self, record: ContainerRecord) -> None:
        """Place one container record into the graph."""
        self._require(LinkerState.EMPTY, LinkerState.ACCUMULATING)
        self.state = LinkerState.ACCUMULATING
        info = kind_of(record.obj)
        if info.role is None:
            raise UnsupportedObjectError(
                f"Missing object handler for object type: {info.name} ({record.lsid})"
            )
        logger.debug("Handling %s %s %s", info.name, record.lsid, dict(record.indexes))
        self._placers[info.role](record)
        self._container_count += 1

    def add_containers(self, records: Iterable[ContainerRecord]) -> None:
        for record in records:
            self.add_container(record)

    def add_reference(self, record: ReferenceRecord) -> None:
        self._require(LinkerState.EMPTY, LinkerState.ACCUMULATING)
        self._references.append(record)

    def add_references(self, records: Iterable[ReferenceRecord]) -> None:
        for record in records:
            self.add_reference(record)

    def _register(self, record: ContainerRecord) -> None:
        if record.lsid in self._registry:
            logger.debug("Replacing registry entry for %s", record.lsid)
        self._registry[record.lsid] = record.obj

    def _place_root(self, record: ContainerRecord) -> None:
        roi_index = _axis(record, ROI_INDEX)
        assert isinstance(record.obj, Roi)
        self._rois[roi_index] = record.obj
        self._register(record)

    def _place_child(self, record: ContainerRecord) -> None:
        roi_index = record.indexes.get(ROI_INDEX)
        roi = self._rois.get(roi_index) if roi_index is not None else None
        if roi is None:
            raise OrphanChildError(record.lsid, roi_index)
        assert isinstance(record.obj, Shape)
        logger.debug("Adding shape %s to ROI %d", record.lsid, roi_index)
        roi.add_shape(record.obj)
        self._register(record)

    def _place_cross_cutting(self, record: ContainerRecord) -> None:
        # Attached later, by reference resolution
        self._register(record)

    # -- resolution ---------------------------------------------------------

    def resolve(self) -> int:
        """Realise every collected reference as a structural link.

        Returns the number of links created.
        """
        self._require(LinkerState.EMPTY, LinkerState.ACCUMULATING)
        references, self._references = self._references, []
        logger.debug(
            "Resolving %d references against %d registered objects",
            len(references),
            len(self._registry),
        )
        for record in references:
            self._resolve_one(record)
        self.state = LinkerState.RESOLVED
        return self._link_count

    def _resolve_one(self, record: ReferenceRecord) -> None:
        target = self._registry.get(record.target)
        if target is None:
            raise UnresolvedReferenceError(record.target, record.reference, record.target)
        reference_lsid = strip_custom_suffix(record.reference)
        reference = self._registry.get(reference_lsid)
        if reference is None:
            raise UnresolvedReferenceError(record.target, record.reference, reference_lsid)

        target_info = kind_of(target)
        reference_info = kind_of(reference)
        handler = None
        if target_info.role is not None and reference_info.role is not None:
            handler = self._link_handlers.get((target_info.role, reference_info.role))
        if handler is None:
            raise NoLinkHandlerError(target_info.name, reference_info.name)

        logger.debug(
            "Linking %s(%s) --> %s(%s)",
            reference_info.name,
            reference_lsid,
            target_info.name,
            record.target,
        )
        if handler(target, reference):
            self._link_count += 1

    # -- commit -------------------------------------------------------------

    def link_image(self, image_id: int) -> None:
        """Point every ROI at an unloaded reference to the target image."""
        self._require(LinkerState.RESOLVED)
        image = Image(id=image_id, loaded=False)
        logger.info("Linking ROIs to Image:%d", image_id)
        for roi in self._rois.values():
            logger.debug("ROI name: %s", roi.name)
            roi.image = image

    def commit(self, store: "StoreGateway", image_id: int) -> list[Roi]:
        """Attach all ROIs to *image_id* and save them as one batch."""
        self._require(LinkerState.RESOLVED)
        self.link_image(image_id)
        rois = self.rois
        logger.info("Saving %d ROIs", len(rois))
        try:
            saved = store.save_and_return(rois)
        except PersistenceError:
            raise
        except StoreError as exc:
            raise PersistenceError(f"Saving ROIs failed: {exc}") from exc
        self.state = LinkerState.COMMITTED
        self._registry.clear()
        for roi in saved:
            logger.info("Saved ROI with ID: %s", roi.id)
        return [roi for roi in saved if isinstance(roi, Roi)]


def _axis(record: ContainerRecord, axis: str) -> int:
    try:
        return int(record.indexes[axis])
    except KeyError:
        raise GraphError(f"{record.lsid} has no {axis} position") from None
