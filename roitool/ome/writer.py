# roitool/ome/writer.py
"""OME-XML document writer driven by the metadata projections.

The writer only talks to :class:`~roitool.metadata.ImageMetadata`,
:class:`~roitool.metadata.RoiMetadata` and
:class:`~roitool.metadata.AnnotationMetadata`; it never touches model
objects directly.  Output is a pure function of what the projections
return, so exporting unchanged state twice gives byte-identical files.
"""

from __future__ import annotations

import base64
import os
import tempfile
import xml.etree.ElementTree as ET
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from roitool.metadata import AnnotationMetadata, ImageMetadata, RoiMetadata
from roitool.model.kinds import ANNOTATION_KINDS
from roitool.ome.schema import (
    AFFINE_ATTRIBUTES,
    ANNOTATION_ELEMENTS,
    BOOL,
    CHANNEL_ATTRIBUTES,
    FLOAT,
    INT,
    OME_NS,
    PIXELS_ATTRIBUTES,
    PLANE_ATTRIBUTES,
    SCHEMA_LOCATION,
    SHAPE_ATTRIBUTES,
    SHAPE_COMMON_ATTRIBUTES,
    STR,
    XSI_NS,
    format_value,
    set_attributes,
)
from roitool.utils.logging import get_logger

logger = get_logger(__name__)

ET.register_namespace("", OME_NS)
ET.register_namespace("xsi", XSI_NS)

# Lexical type of each annotation kind's Value element
_ANNOTATION_VALUE_TYPES: dict[str, str] = {
    "BooleanAnnotation": BOOL,
    "CommentAnnotation": STR,
    "DoubleAnnotation": FLOAT,
    "LongAnnotation": INT,
    "TagAnnotation": STR,
    "TermAnnotation": STR,
    "TimestampAnnotation": STR,
}


def _q(tag: str) -> str:
    return f"{{{OME_NS}}}{tag}"


def _sub(parent: ET.Element, tag: str, attrib: Optional[dict[str, str]] = None) -> ET.Element:
    return ET.SubElement(parent, _q(tag), attrib or {})


def _text_child(parent: ET.Element, tag: str, text: Optional[str]) -> None:
    if text is not None:
        _sub(parent, tag).text = text


def _xml_value(parent: ET.Element, body: str) -> None:
    """Inline *body* as child elements of ``Value`` when it is well-formed XML."""
    try:
        parsed = ET.fromstring(f"<Value>{body}</Value>")
    except ET.ParseError:
        _text_child(parent, "Value", body)
        return
    value = _sub(parent, "Value")
    value.text = parsed.text
    value.extend(parsed)


# ---------------------------------------------------------------------------
# Image
# ---------------------------------------------------------------------------


def _image_element(meta: ImageMetadata, i: int) -> ET.Element:
    image = ET.Element(_q("Image"), {"ID": meta.get_image_id(i)})
    name = meta.get_image_name(i)
    if name is not None:
        image.set("Name", name)
    acquired = meta.get_image_acquisition_date(i)
    if acquired is not None:
        _text_child(image, "AcquisitionDate", acquired.isoformat())
    _text_child(image, "Description", meta.get_image_description(i))

    pixels_id = meta.get_pixels_id(i)
    if pixels_id is not None:
        pixels = _sub(image, "Pixels", {"ID": pixels_id})
        set_attributes(pixels, lambda f: meta.get_pixels_value(i, f), PIXELS_ATTRIBUTES)
        for c in range(meta.get_channel_count(i)):
            channel = _sub(pixels, "Channel", {"ID": meta.get_channel_id(i, c)})
            set_attributes(channel, lambda f: meta.get_channel_value(i, c, f), CHANNEL_ATTRIBUTES)
        _sub(pixels, "MetadataOnly")
        for p in range(meta.get_plane_count(i)):
            plane = _sub(pixels, "Plane")
            set_attributes(plane, lambda f: meta.get_plane_value(i, p, f), PLANE_ATTRIBUTES)

    for r in range(meta.get_image_roi_ref_count(i)):
        _sub(image, "ROIRef", {"ID": meta.get_image_roi_ref(i, r)})
    for a in range(meta.get_image_annotation_ref_count(i)):
        _sub(image, "AnnotationRef", {"ID": meta.get_image_annotation_ref(i, a)})
    return image


# ---------------------------------------------------------------------------
# Annotations
# ---------------------------------------------------------------------------


def _annotation_element(parent: ET.Element, meta: AnnotationMetadata, kind: str, i: int) -> None:
    element = _sub(parent, ANNOTATION_ELEMENTS[kind], {"ID": meta.get_annotation_id(kind, i)})
    namespace = meta.get_annotation_namespace(kind, i)
    if namespace is not None:
        element.set("Namespace", namespace)
    _text_child(element, "Description", meta.get_annotation_description(kind, i))

    value = meta.get_annotation_value(kind, i)
    if value is None:
        return
    if kind == "MapAnnotation":
        pairs = _sub(element, "Value")
        for key, text in value:
            _sub(pairs, "M", {"K": key}).text = text
    elif kind == "XmlAnnotation":
        _xml_value(element, value)
    else:
        _text_child(element, "Value", format_value(value, _ANNOTATION_VALUE_TYPES[kind]))


def _structured_annotations(meta: AnnotationMetadata) -> ET.Element:
    container = ET.Element(_q("StructuredAnnotations"))
    for kind in ANNOTATION_KINDS:
        for i in range(meta.get_annotation_count(kind)):
            _annotation_element(container, meta, kind, i)
    return container


# ---------------------------------------------------------------------------
# ROIs
# ---------------------------------------------------------------------------


def _shape_element(parent: ET.Element, meta: RoiMetadata, r: int, s: int) -> None:
    kind = meta.get_shape_type(r, s)
    shape = _sub(parent, kind, {"ID": meta.get_shape_id(r, s)})

    def value_of(field: str):
        return meta.get_shape_value(r, s, field)

    set_attributes(shape, value_of, SHAPE_ATTRIBUTES[kind])
    set_attributes(shape, value_of, SHAPE_COMMON_ATTRIBUTES)

    transform = value_of("transform")
    if transform is not None:
        _sub(
            shape,
            "Transform",
            {name: format_value(getattr(transform, name.lower()), FLOAT) for name in AFFINE_ATTRIBUTES},
        )
    for a in range(meta.get_shape_annotation_ref_count(r, s)):
        _sub(shape, "AnnotationRef", {"ID": meta.get_shape_annotation_ref(r, s, a)})
    if kind == "Mask":
        data = value_of("mask_bytes")
        if data is not None:
            encoded = base64.b64encode(data).decode("ascii")
            _sub(shape, "BinData", {"BigEndian": "false", "Length": str(len(encoded))}).text = encoded


def _roi_element(meta: RoiMetadata, r: int, roi_id: str) -> ET.Element:
    roi = ET.Element(_q("ROI"), {"ID": roi_id})
    name = meta.get_roi_name(r)
    if name is not None:
        roi.set("Name", name)
    union = _sub(roi, "Union")
    for s in range(meta.get_shape_count(r)):
        _shape_element(union, meta, r, s)
    for a in range(meta.get_roi_annotation_ref_count(r)):
        _sub(roi, "AnnotationRef", {"ID": meta.get_roi_annotation_ref(r, a)})
    _text_child(roi, "Description", meta.get_roi_description(r))
    return roi


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_document(
    image_meta: Optional[ImageMetadata],
    roi_meta: RoiMetadata,
    annotation_meta: AnnotationMetadata,
) -> ET.Element:
    """Assemble the ``OME`` root element.  ``None`` ROI slots are skipped."""
    root = ET.Element(_q("OME"), {f"{{{XSI_NS}}}schemaLocation": SCHEMA_LOCATION})
    if image_meta is not None:
        for i in range(image_meta.get_image_count()):
            root.append(_image_element(image_meta, i))

    annotations = _structured_annotations(annotation_meta)
    if len(annotations):
        root.append(annotations)

    for r in range(roi_meta.get_roi_count()):
        roi_id = roi_meta.get_roi_id(r)
        if roi_id is None:
            continue
        root.append(_roi_element(roi_meta, r, roi_id))
    return root


def to_bytes(root: ET.Element) -> bytes:
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="UTF-8", xml_declaration=True) + b"\n"


@contextmanager
def _atomic_output(path: Path) -> Iterator:
    """Write to a hidden sibling and move it over *path* on success."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(suffix=".tmp", prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            yield fh
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def write_ome_xml(
    path: Path | str,
    image_meta: Optional[ImageMetadata],
    roi_meta: RoiMetadata,
    annotation_meta: AnnotationMetadata,
) -> Path:
    """Serialise the projections to an OME-XML file at *path*.

    The whole document is built in memory first; the destination is only
    replaced once it has been written completely.
    """
    path = Path(path)
    payload = to_bytes(build_document(image_meta, roi_meta, annotation_meta))
    with _atomic_output(path) as fh:
        fh.write(payload)
    logger.info("Wrote %d bytes to %s", len(payload), path)
    return path
