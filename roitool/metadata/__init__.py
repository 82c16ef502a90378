"""Read-only metadata projections consumed by the document writer."""

from .annotation import AnnotationMetadata
from .base import MetadataBase
from .image import ImageMetadata
from .roi import RoiMetadata

__all__ = ["AnnotationMetadata", "ImageMetadata", "MetadataBase", "RoiMetadata"]
