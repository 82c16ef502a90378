# roitool/model/objects.py
"""Domain records for images, ROIs, shapes and annotations.

Objects compare by identity (``eq=False``): two ROIs with the same name are
still two ROIs, and the linker and stores key dictionaries on the objects
themselves.  ``id`` and ``details.update_event`` are ``None`` until a store
assigns them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Quantity:
    """A value with a unit symbol (``"µm"``, ``"s"``, ``"pt"``, ...)."""

    value: float
    unit: str


@dataclass(frozen=True)
class AffineTransform:
    """2D affine transform in OME row-major order."""

    a00: float
    a10: float
    a01: float
    a11: float
    a02: float
    a12: float


@dataclass
class Details:
    """Store bookkeeping for an object."""

    update_event: Optional[int] = None


@dataclass(eq=False)
class ModelObject:
    """Abstract root of the domain model."""

    id: Optional[int] = None
    details: Details = field(default_factory=Details)
    loaded: bool = True


@dataclass(eq=False)
class AnnotatedObject(ModelObject):
    """Model object that can carry annotation links."""

    annotations: list["Annotation"] = field(default_factory=list, repr=False)

    def link_annotation(self, annotation: "Annotation") -> bool:
        """Link *annotation*; returns False if it was already linked."""
        if any(a is annotation for a in self.annotations):
            return False
        self.annotations.append(annotation)
        return True


# ---------------------------------------------------------------------------
# Annotations
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class Annotation(ModelObject):
    namespace: Optional[str] = None
    description: Optional[str] = None


@dataclass(eq=False)
class BooleanAnnotation(Annotation):
    bool_value: Optional[bool] = None


@dataclass(eq=False)
class CommentAnnotation(Annotation):
    text_value: Optional[str] = None


@dataclass(eq=False)
class DoubleAnnotation(Annotation):
    double_value: Optional[float] = None


@dataclass(eq=False)
class LongAnnotation(Annotation):
    long_value: Optional[int] = None


@dataclass(eq=False)
class MapAnnotation(Annotation):
    map_value: list[tuple[str, str]] = field(default_factory=list)


@dataclass(eq=False)
class TagAnnotation(Annotation):
    text_value: Optional[str] = None


@dataclass(eq=False)
class TermAnnotation(Annotation):
    term_value: Optional[str] = None


@dataclass(eq=False)
class TimestampAnnotation(Annotation):
    time_value: Optional[datetime] = None


@dataclass(eq=False)
class XmlAnnotation(Annotation):
    text_value: Optional[str] = None


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class Shape(AnnotatedObject):
    the_z: Optional[int] = None
    the_t: Optional[int] = None
    the_c: Optional[int] = None
    fill_color: Optional[int] = None
    fill_rule: Optional[str] = None
    stroke_color: Optional[int] = None
    stroke_width: Optional[Quantity] = None
    stroke_dash_array: Optional[str] = None
    font_family: Optional[str] = None
    font_size: Optional[Quantity] = None
    font_style: Optional[str] = None
    locked: Optional[bool] = None
    text_value: Optional[str] = None
    transform: Optional[AffineTransform] = None
    roi: Optional["Roi"] = field(default=None, repr=False)


@dataclass(eq=False)
class Rectangle(Shape):
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None


@dataclass(eq=False)
class Ellipse(Shape):
    x: Optional[float] = None
    y: Optional[float] = None
    radius_x: Optional[float] = None
    radius_y: Optional[float] = None


@dataclass(eq=False)
class Point(Shape):
    x: Optional[float] = None
    y: Optional[float] = None


@dataclass(eq=False)
class Label(Shape):
    x: Optional[float] = None
    y: Optional[float] = None


@dataclass(eq=False)
class Line(Shape):
    x1: Optional[float] = None
    y1: Optional[float] = None
    x2: Optional[float] = None
    y2: Optional[float] = None
    marker_start: Optional[str] = None
    marker_end: Optional[str] = None


@dataclass(eq=False)
class Polyline(Shape):
    points: Optional[str] = None
    marker_start: Optional[str] = None
    marker_end: Optional[str] = None


@dataclass(eq=False)
class Polygon(Shape):
    points: Optional[str] = None


@dataclass(eq=False)
class Mask(Shape):
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    mask_bytes: Optional[bytes] = field(default=None, repr=False)


# ---------------------------------------------------------------------------
# ROI
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class Roi(AnnotatedObject):
    name: Optional[str] = None
    description: Optional[str] = None
    shapes: list[Shape] = field(default_factory=list)
    image: Optional["Image"] = field(default=None, repr=False)

    def add_shape(self, shape: Shape) -> None:
        shape.roi = self
        self.shapes.append(shape)

    def first_shape(self) -> Optional[Shape]:
        return self.shapes[0] if self.shapes else None


# ---------------------------------------------------------------------------
# Image tree
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class Channel(ModelObject):
    name: Optional[str] = None
    color: Optional[int] = None
    fluor: Optional[str] = None
    excitation_wavelength: Optional[Quantity] = None
    emission_wavelength: Optional[Quantity] = None
    nd_filter: Optional[float] = None
    pinhole_size: Optional[Quantity] = None
    pockel_cell_setting: Optional[int] = None
    samples_per_pixel: Optional[int] = None
    illumination_type: Optional[str] = None
    acquisition_mode: Optional[str] = None
    contrast_method: Optional[str] = None


@dataclass(eq=False)
class Plane(ModelObject):
    the_z: Optional[int] = None
    the_c: Optional[int] = None
    the_t: Optional[int] = None
    delta_t: Optional[Quantity] = None
    exposure_time: Optional[Quantity] = None
    position_x: Optional[Quantity] = None
    position_y: Optional[Quantity] = None
    position_z: Optional[Quantity] = None


@dataclass(eq=False)
class Pixels(ModelObject):
    size_x: Optional[int] = None
    size_y: Optional[int] = None
    size_z: Optional[int] = None
    size_c: Optional[int] = None
    size_t: Optional[int] = None
    physical_size_x: Optional[Quantity] = None
    physical_size_y: Optional[Quantity] = None
    physical_size_z: Optional[Quantity] = None
    time_increment: Optional[Quantity] = None
    pixels_type: Optional[str] = None
    dimension_order: str = "XYCZT"
    channels: list[Channel] = field(default_factory=list)
    planes: list[Plane] = field(default_factory=list)


@dataclass(eq=False)
class Image(AnnotatedObject):
    name: Optional[str] = None
    description: Optional[str] = None
    acquisition_date: Optional[datetime] = None
    pixels: Optional[Pixels] = None
    rois: list[Roi] = field(default_factory=list, repr=False)
