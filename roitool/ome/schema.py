# roitool/ome/schema.py
"""OME 2016-06 names shared by the document reader and writer.

Model fields map to XML attributes through the tables below; each entry
also names the attribute's value type so both directions agree on the
lexical form (``true``/``false`` for booleans, ``repr`` for floats, a
sibling ``...Unit`` attribute for quantities).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from roitool.model.objects import Quantity

OME_NS = "http://www.openmicroscopy.org/Schemas/OME/2016-06"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = f"{OME_NS} {OME_NS}/ome.xsd"

# Value types
INT = "int"
FLOAT = "float"
BOOL = "bool"
STR = "str"
QUANTITY = "quantity"

# (field, attribute, type, default unit for quantities)
SHAPE_COMMON_ATTRIBUTES: tuple[tuple[str, str, str, Optional[str]], ...] = (
    ("fill_color", "FillColor", INT, None),
    ("fill_rule", "FillRule", STR, None),
    ("stroke_color", "StrokeColor", INT, None),
    ("stroke_width", "StrokeWidth", QUANTITY, "pixel"),
    ("stroke_dash_array", "StrokeDashArray", STR, None),
    ("text_value", "Text", STR, None),
    ("font_family", "FontFamily", STR, None),
    ("font_size", "FontSize", QUANTITY, "pt"),
    ("font_style", "FontStyle", STR, None),
    ("locked", "Locked", BOOL, None),
    ("the_z", "TheZ", INT, None),
    ("the_t", "TheT", INT, None),
    ("the_c", "TheC", INT, None),
)

SHAPE_ATTRIBUTES: dict[str, tuple[tuple[str, str, str, Optional[str]], ...]] = {
    "Rectangle": (
        ("x", "X", FLOAT, None),
        ("y", "Y", FLOAT, None),
        ("width", "Width", FLOAT, None),
        ("height", "Height", FLOAT, None),
    ),
    "Ellipse": (
        ("x", "X", FLOAT, None),
        ("y", "Y", FLOAT, None),
        ("radius_x", "RadiusX", FLOAT, None),
        ("radius_y", "RadiusY", FLOAT, None),
    ),
    "Point": (
        ("x", "X", FLOAT, None),
        ("y", "Y", FLOAT, None),
    ),
    "Label": (
        ("x", "X", FLOAT, None),
        ("y", "Y", FLOAT, None),
    ),
    "Line": (
        ("x1", "X1", FLOAT, None),
        ("y1", "Y1", FLOAT, None),
        ("x2", "X2", FLOAT, None),
        ("y2", "Y2", FLOAT, None),
        ("marker_start", "MarkerStart", STR, None),
        ("marker_end", "MarkerEnd", STR, None),
    ),
    "Polyline": (
        ("points", "Points", STR, None),
        ("marker_start", "MarkerStart", STR, None),
        ("marker_end", "MarkerEnd", STR, None),
    ),
    "Polygon": (
        ("points", "Points", STR, None),
    ),
    "Mask": (
        ("x", "X", FLOAT, None),
        ("y", "Y", FLOAT, None),
        ("width", "Width", FLOAT, None),
        ("height", "Height", FLOAT, None),
    ),
}

PIXELS_ATTRIBUTES: tuple[tuple[str, str, str, Optional[str]], ...] = (
    ("dimension_order", "DimensionOrder", STR, None),
    ("pixels_type", "Type", STR, None),
    ("size_x", "SizeX", INT, None),
    ("size_y", "SizeY", INT, None),
    ("size_z", "SizeZ", INT, None),
    ("size_c", "SizeC", INT, None),
    ("size_t", "SizeT", INT, None),
    ("physical_size_x", "PhysicalSizeX", QUANTITY, "µm"),
    ("physical_size_y", "PhysicalSizeY", QUANTITY, "µm"),
    ("physical_size_z", "PhysicalSizeZ", QUANTITY, "µm"),
    ("time_increment", "TimeIncrement", QUANTITY, "s"),
)

CHANNEL_ATTRIBUTES: tuple[tuple[str, str, str, Optional[str]], ...] = (
    ("name", "Name", STR, None),
    ("samples_per_pixel", "SamplesPerPixel", INT, None),
    ("illumination_type", "IlluminationType", STR, None),
    ("pinhole_size", "PinholeSize", QUANTITY, "µm"),
    ("acquisition_mode", "AcquisitionMode", STR, None),
    ("contrast_method", "ContrastMethod", STR, None),
    ("excitation_wavelength", "ExcitationWavelength", QUANTITY, "nm"),
    ("emission_wavelength", "EmissionWavelength", QUANTITY, "nm"),
    ("fluor", "Fluor", STR, None),
    ("nd_filter", "NDFilter", FLOAT, None),
    ("pockel_cell_setting", "PockelCellSetting", INT, None),
    ("color", "Color", INT, None),
)

PLANE_ATTRIBUTES: tuple[tuple[str, str, str, Optional[str]], ...] = (
    ("the_z", "TheZ", INT, None),
    ("the_t", "TheT", INT, None),
    ("the_c", "TheC", INT, None),
    ("delta_t", "DeltaT", QUANTITY, "s"),
    ("exposure_time", "ExposureTime", QUANTITY, "s"),
    ("position_x", "PositionX", QUANTITY, "reference frame"),
    ("position_y", "PositionY", QUANTITY, "reference frame"),
    ("position_z", "PositionZ", QUANTITY, "reference frame"),
)

# Element name of each annotation kind inside StructuredAnnotations
ANNOTATION_ELEMENTS: dict[str, str] = {
    "XmlAnnotation": "XMLAnnotation",
    "LongAnnotation": "LongAnnotation",
    "BooleanAnnotation": "BooleanAnnotation",
    "DoubleAnnotation": "DoubleAnnotation",
    "CommentAnnotation": "CommentAnnotation",
    "MapAnnotation": "MapAnnotation",
    "TimestampAnnotation": "TimestampAnnotation",
    "TagAnnotation": "TagAnnotation",
    "TermAnnotation": "TermAnnotation",
}
ANNOTATION_KIND_BY_ELEMENT: dict[str, str] = {v: k for k, v in ANNOTATION_ELEMENTS.items()}

AFFINE_ATTRIBUTES = ("A00", "A10", "A01", "A11", "A02", "A12")


# ---------------------------------------------------------------------------
# Lexical forms
# ---------------------------------------------------------------------------


def format_value(value: Any, value_type: str) -> str:
    if value_type == BOOL:
        return "true" if value else "false"
    if value_type == FLOAT:
        return repr(float(value))
    if value_type == INT:
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def parse_value(text: str, value_type: str) -> Any:
    """Inverse of :func:`format_value`; raises ``ValueError`` on bad input."""
    if value_type == BOOL:
        lowered = text.strip().lower()
        if lowered not in ("true", "false", "1", "0"):
            raise ValueError(f"not a boolean: {text!r}")
        return lowered in ("true", "1")
    if value_type == FLOAT:
        return float(text)
    if value_type == INT:
        return int(text)
    return text


def set_attributes(element, value_of: Callable[[str], Any], table) -> None:
    """Write every field in *table* for which ``value_of(field)`` is not ``None``."""
    for field, attribute, value_type, _unit in table:
        value = value_of(field)
        if value is None:
            continue
        if value_type == QUANTITY:
            element.set(attribute, format_value(value.value, FLOAT))
            element.set(f"{attribute}Unit", value.unit)
        else:
            element.set(attribute, format_value(value, value_type))


def read_attributes(element, table) -> dict[str, Any]:
    """Collect keyword arguments for a model class from *element*."""
    values: dict[str, Any] = {}
    for field, attribute, value_type, unit in table:
        text = element.get(attribute)
        if text is None:
            continue
        if value_type == QUANTITY:
            values[field] = Quantity(
                value=parse_value(text, FLOAT),
                unit=element.get(f"{attribute}Unit", unit),
            )
        else:
            values[field] = parse_value(text, value_type)
    return values
