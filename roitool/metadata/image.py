# roitool/metadata/image.py
"""Projection of images with their pixels, channels and planes."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from roitool.metadata.base import LsidFunction, MetadataBase, item_at
from roitool.model.objects import Channel, Image, Pixels, Plane, Quantity


class ImageMetadata(MetadataBase):
    """Indexed getters over a list of images."""

    def __init__(self, lsids: LsidFunction, images: Sequence[Image]):
        super().__init__(lsids)
        self._images = list(images)

    # -- lookups ------------------------------------------------------------

    def _image(self, image_index: int) -> Optional[Image]:
        return item_at(self._images, image_index)

    def _pixels(self, image_index: int) -> Optional[Pixels]:
        image = self._image(image_index)
        return image.pixels if image is not None else None

    def _channel(self, image_index: int, channel_index: int) -> Optional[Channel]:
        pixels = self._pixels(image_index)
        return item_at(pixels.channels, channel_index) if pixels is not None else None

    def _plane(self, image_index: int, plane_index: int) -> Optional[Plane]:
        pixels = self._pixels(image_index)
        return item_at(pixels.planes, plane_index) if pixels is not None else None

    @staticmethod
    def _field(obj: Any, name: str) -> Any:
        return getattr(obj, name) if obj is not None else None

    def identifiers(self) -> list[str]:
        """LSIDs of every image, pixels and channel in the projection.

        Raises :class:`~roitool.errors.IdentityError` if any of them cannot
        be computed, which lets callers decide up front whether image
        metadata can be written at all.
        """
        found: list[str] = []
        for image in self._images:
            found.append(self._lsids(image))
            if image.pixels is not None:
                found.append(self._lsids(image.pixels))
                found.extend(self._lsids(channel) for channel in image.pixels.channels)
        return found

    # -- image --------------------------------------------------------------

    def get_image_count(self) -> int:
        return len(self._images)

    def get_image_id(self, image_index: int) -> Optional[str]:
        return self.lsid(self._image(image_index))

    def get_image_name(self, image_index: int) -> Optional[str]:
        return self._field(self._image(image_index), "name")

    def get_image_description(self, image_index: int) -> Optional[str]:
        return self._field(self._image(image_index), "description")

    def get_image_acquisition_date(self, image_index: int) -> Optional[datetime]:
        return self._field(self._image(image_index), "acquisition_date")

    def get_image_annotation_ref_count(self, image_index: int) -> int:
        image = self._image(image_index)
        return len(image.annotations) if image is not None else -1

    def get_image_annotation_ref(self, image_index: int, annotation_ref_index: int) -> Optional[str]:
        image = self._image(image_index)
        return self._ref(image.annotations, annotation_ref_index) if image is not None else None

    def get_image_roi_ref_count(self, image_index: int) -> int:
        image = self._image(image_index)
        return len(image.rois) if image is not None else -1

    def get_image_roi_ref(self, image_index: int, roi_ref_index: int) -> Optional[str]:
        image = self._image(image_index)
        return self._ref(image.rois, roi_ref_index) if image is not None else None

    # -- pixels -------------------------------------------------------------

    def get_pixels_id(self, image_index: int) -> Optional[str]:
        return self.lsid(self._pixels(image_index))

    def get_pixels_value(self, image_index: int, name: str) -> Any:
        """Any :class:`~roitool.model.objects.Pixels` field by name."""
        return self._field(self._pixels(image_index), name)

    def get_pixels_dimension_order(self, image_index: int) -> Optional[str]:
        return self.get_pixels_value(image_index, "dimension_order")

    def get_pixels_type(self, image_index: int) -> Optional[str]:
        return self.get_pixels_value(image_index, "pixels_type")

    def get_pixels_size_x(self, image_index: int) -> Optional[int]:
        return self.get_pixels_value(image_index, "size_x")

    def get_pixels_size_y(self, image_index: int) -> Optional[int]:
        return self.get_pixels_value(image_index, "size_y")

    def get_pixels_size_z(self, image_index: int) -> Optional[int]:
        return self.get_pixels_value(image_index, "size_z")

    def get_pixels_size_c(self, image_index: int) -> Optional[int]:
        return self.get_pixels_value(image_index, "size_c")

    def get_pixels_size_t(self, image_index: int) -> Optional[int]:
        return self.get_pixels_value(image_index, "size_t")

    def get_pixels_physical_size_x(self, image_index: int) -> Optional[Quantity]:
        return self.get_pixels_value(image_index, "physical_size_x")

    def get_pixels_physical_size_y(self, image_index: int) -> Optional[Quantity]:
        return self.get_pixels_value(image_index, "physical_size_y")

    def get_pixels_physical_size_z(self, image_index: int) -> Optional[Quantity]:
        return self.get_pixels_value(image_index, "physical_size_z")

    def get_pixels_time_increment(self, image_index: int) -> Optional[Quantity]:
        return self.get_pixels_value(image_index, "time_increment")

    # -- channels -----------------------------------------------------------

    def get_channel_count(self, image_index: int) -> int:
        pixels = self._pixels(image_index)
        return len(pixels.channels) if pixels is not None else -1

    def get_channel_id(self, image_index: int, channel_index: int) -> Optional[str]:
        return self.lsid(self._channel(image_index, channel_index))

    def get_channel_value(self, image_index: int, channel_index: int, name: str) -> Any:
        """Any :class:`~roitool.model.objects.Channel` field by name."""
        return self._field(self._channel(image_index, channel_index), name)

    def get_channel_name(self, image_index: int, channel_index: int) -> Optional[str]:
        return self.get_channel_value(image_index, channel_index, "name")

    def get_channel_color(self, image_index: int, channel_index: int) -> Optional[int]:
        return self.get_channel_value(image_index, channel_index, "color")

    def get_channel_fluor(self, image_index: int, channel_index: int) -> Optional[str]:
        return self.get_channel_value(image_index, channel_index, "fluor")

    def get_channel_excitation_wavelength(self, image_index: int, channel_index: int) -> Optional[Quantity]:
        return self.get_channel_value(image_index, channel_index, "excitation_wavelength")

    def get_channel_emission_wavelength(self, image_index: int, channel_index: int) -> Optional[Quantity]:
        return self.get_channel_value(image_index, channel_index, "emission_wavelength")

    def get_channel_nd_filter(self, image_index: int, channel_index: int) -> Optional[float]:
        return self.get_channel_value(image_index, channel_index, "nd_filter")

    def get_channel_pinhole_size(self, image_index: int, channel_index: int) -> Optional[Quantity]:
        return self.get_channel_value(image_index, channel_index, "pinhole_size")

    def get_channel_pockel_cell_setting(self, image_index: int, channel_index: int) -> Optional[int]:
        return self.get_channel_value(image_index, channel_index, "pockel_cell_setting")

    def get_channel_samples_per_pixel(self, image_index: int, channel_index: int) -> Optional[int]:
        return self.get_channel_value(image_index, channel_index, "samples_per_pixel")

    def get_channel_illumination_type(self, image_index: int, channel_index: int) -> Optional[str]:
        return self.get_channel_value(image_index, channel_index, "illumination_type")

    def get_channel_acquisition_mode(self, image_index: int, channel_index: int) -> Optional[str]:
        return self.get_channel_value(image_index, channel_index, "acquisition_mode")

    def get_channel_contrast_method(self, image_index: int, channel_index: int) -> Optional[str]:
        return self.get_channel_value(image_index, channel_index, "contrast_method")

    # -- planes -------------------------------------------------------------

    def get_plane_count(self, image_index: int) -> int:
        pixels = self._pixels(image_index)
        return len(pixels.planes) if pixels is not None else -1

    def get_plane_value(self, image_index: int, plane_index: int, name: str) -> Any:
        """Any :class:`~roitool.model.objects.Plane` field by name."""
        return self._field(self._plane(image_index, plane_index), name)

    def get_plane_the_z(self, image_index: int, plane_index: int) -> Optional[int]:
        return self.get_plane_value(image_index, plane_index, "the_z")

    def get_plane_the_c(self, image_index: int, plane_index: int) -> Optional[int]:
        return self.get_plane_value(image_index, plane_index, "the_c")

    def get_plane_the_t(self, image_index: int, plane_index: int) -> Optional[int]:
        return self.get_plane_value(image_index, plane_index, "the_t")

    def get_plane_delta_t(self, image_index: int, plane_index: int) -> Optional[Quantity]:
        return self.get_plane_value(image_index, plane_index, "delta_t")

    def get_plane_exposure_time(self, image_index: int, plane_index: int) -> Optional[Quantity]:
        return self.get_plane_value(image_index, plane_index, "exposure_time")

    def get_plane_position_x(self, image_index: int, plane_index: int) -> Optional[Quantity]:
        return self.get_plane_value(image_index, plane_index, "position_x")

    def get_plane_position_y(self, image_index: int, plane_index: int) -> Optional[Quantity]:
        return self.get_plane_value(image_index, plane_index, "position_y")

    def get_plane_position_z(self, image_index: int, plane_index: int) -> Optional[Quantity]:
        return self.get_plane_value(image_index, plane_index, "position_z")
