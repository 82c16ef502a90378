# roitool/store/base.py
"""Store query interface used by the import and export orchestrators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal, Optional, Sequence

from roitool.errors import StoreError
from roitool.lsid import LsidFormatter
from roitool.model.objects import Annotation, Image, ModelObject, Roi

AnnotationParent = Literal["image", "roi", "shape"]
ANNOTATION_PARENTS: tuple[str, ...] = ("image", "roi", "shape")


class StoreGateway(ABC):
    """A session against an identity-bearing object store.

    Subclasses must set ``_lsids`` in :meth:`connect`.  Use as a context
    manager so the session is released on every exit path::

        with RemoteStore.from_config(cfg) as store:
            rois = store.fetch_rois(image_id)
    """

    _lsids: Optional[LsidFormatter] = None

    @property
    def lsid_formatter(self) -> LsidFormatter:
        """Identifier scheme bound to this store; available after connect()."""
        if self._lsids is None:
            raise StoreError("Store session is not connected")
        return self._lsids

    @property
    def connected(self) -> bool:
        return self._lsids is not None

    @abstractmethod
    def connect(self) -> None:
        """Open the session and fetch the identifier authority."""

    @abstractmethod
    def fetch_image(self, image_id: int) -> Optional[Image]:
        """Image with pixels, channels, planes and linked annotations."""

    @abstractmethod
    def fetch_rois(self, image_id: int) -> list[Roi]:
        """ROIs of an image, each with its shapes and annotation links."""

    @abstractmethod
    def fetch_annotations(self, parent: AnnotationParent, object_id: int) -> list[Annotation]:
        """Distinct annotations linked to one image, ROI or shape."""

    @abstractmethod
    def save_and_return(self, objects: Sequence[ModelObject]) -> list[ModelObject]:
        """Persist a batch of root objects and return them with identities."""

    @abstractmethod
    def close(self) -> None:
        """Release the session."""

    def __enter__(self) -> "StoreGateway":
        if not self.connected:
            self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
