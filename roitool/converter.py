# roitool/converter.py
"""Import and export of ROIs for one image.

:class:`RoiConverter` binds an image id to a store session and runs either
direction:

* export: store -> display ordering -> projections -> OME-XML file
* import: OME-XML file -> linker -> one batch save into the store

The store session is released when the converter is closed, so use it as a
context manager::

    with RoiConverter(42, RemoteStore.from_config(cfg)) as converter:
        converter.export_rois_to_file("rois.ome.xml")
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from roitool.config import RoitoolConfig, get_config
from roitool.errors import IdentityError, RoitoolError, StoreError
from roitool.linker import ObjectGraphLinker
from roitool.lsid import LsidFormatter
from roitool.metadata import AnnotationMetadata, ImageMetadata, RoiMetadata
from roitool.model.objects import Annotation, Image, Roi
from roitool.ome.reader import DocumentRecords, read_ome_xml
from roitool.ome.writer import write_ome_xml
from roitool.ordering import order_rois
from roitool.store.base import StoreGateway
from roitool.utils.logging import get_logger, log_run_complete, log_run_start

logger = get_logger(__name__)


class RoiConverter:
    """Moves ROI metadata between an OME-XML document and an object store."""

    def __init__(
        self,
        image_id: int,
        store: StoreGateway,
        config: Optional[RoitoolConfig] = None,
    ) -> None:
        self.image_id = image_id
        self.store = store
        self.config = config or get_config()
        if not store.connected:
            try:
                store.connect()
            except RoitoolError:
                store.close()
                raise

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "RoiConverter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- export -------------------------------------------------------------

    def _collect_annotations(self, image: Image, rois: list[Roi]) -> list[Annotation]:
        """Image annotations, then per ROI its own followed by its shapes'."""
        annotations = list(self.store.fetch_annotations("image", image.id))
        for roi in rois:
            annotations.extend(self.store.fetch_annotations("roi", roi.id))
            for shape in roi.shapes:
                annotations.extend(self.store.fetch_annotations("shape", shape.id))
        return annotations

    def _image_metadata(self, lsids: LsidFormatter, image: Image) -> Optional[ImageMetadata]:
        meta = ImageMetadata(lsids, [image])
        try:
            meta.identifiers()
        except IdentityError as exc:
            logger.warning("Exporting without image metadata: %s", exc)
            return None
        return meta

    def export_rois_to_file(self, path: Path | str) -> list[Optional[Roi]]:
        """Write the image's ROIs and annotations to *path*.

        Returns the exported ROI order; ``None`` marks a display-order entry
        that matched no ROI.
        """
        path = Path(path)
        log_run_start(logger, "export", self.image_id, path)
        start_time = time.time()
        try:
            image = self.store.fetch_image(self.image_id)
            if image is None:
                raise StoreError(f"Image {self.image_id} not found")
            rois = self.store.fetch_rois(self.image_id)
            logger.info("Fetched %d ROIs for Image:%d", len(rois), self.image_id)
            annotations = self._collect_annotations(image, rois)
            logger.debug("Fetched %d annotation links", len(annotations))

            ordered = order_rois(rois, annotations, self.config.display_order_ns)
            image.rois = [roi for roi in ordered if roi is not None]

            lsids = self.store.lsid_formatter
            write_ome_xml(
                path,
                self._image_metadata(lsids, image),
                RoiMetadata(lsids, ordered),
                AnnotationMetadata(lsids, annotations),
            )
        except RoitoolError:
            logger.exception("Export of Image:%d failed", self.image_id)
            log_run_complete(logger, "export", False, duration_seconds=time.time() - start_time)
            raise

        log_run_complete(
            logger,
            "export",
            True,
            roi_count=len(image.rois),
            duration_seconds=time.time() - start_time,
        )
        return ordered

    # -- import -------------------------------------------------------------

    def _dump_records(self, records: DocumentRecords) -> None:
        for container in records.containers:
            logger.debug("Container %s %s", container.lsid, dict(container.indexes))
        for reference in records.references:
            logger.debug("Reference %s -> %s", reference.target, reference.reference)

    def import_rois_from_file(self, path: Path | str) -> list[Roi]:
        """Read ROIs from *path*, link them and save them onto the image."""
        path = Path(path)
        log_run_start(logger, "import", self.image_id, path)
        start_time = time.time()
        try:
            records = read_ome_xml(path)
            self._dump_records(records)

            linker = ObjectGraphLinker()
            linker.add_containers(records.containers)
            linker.add_references(records.references)
            links = linker.resolve()
            logger.info("Resolved %d annotation links: %s", links, linker.summary())
            saved = linker.commit(self.store, self.image_id)
        except RoitoolError:
            logger.exception("Import into Image:%d failed", self.image_id)
            log_run_complete(logger, "import", False, duration_seconds=time.time() - start_time)
            raise

        log_run_complete(
            logger,
            "import",
            True,
            roi_count=len(saved),
            duration_seconds=time.time() - start_time,
        )
        return saved
