# roitool/ome/reader.py
"""OME-XML document reader producing linker records.

Only ``StructuredAnnotations`` and ``ROI`` elements are read; ``Image`` and
everything else is ignored.  Element names are matched without their
namespace so documents from neighbouring schema versions load as long as
the ROI vocabulary is the same.
"""

from __future__ import annotations

import base64
import binascii
import copy
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from roitool.errors import DocumentError
from roitool.linker import (
    ANNOTATION_INDEX,
    ROI_INDEX,
    SHAPE_INDEX,
    ContainerRecord,
    ReferenceRecord,
)
from roitool.lsid import strip_custom_suffix
from roitool.model.kinds import KIND_BY_NAME
from roitool.model.objects import AffineTransform, Annotation, Roi, Shape
from roitool.ome.schema import (
    AFFINE_ATTRIBUTES,
    ANNOTATION_KIND_BY_ELEMENT,
    BOOL,
    FLOAT,
    INT,
    SHAPE_ATTRIBUTES,
    SHAPE_COMMON_ATTRIBUTES,
    parse_value,
    read_attributes,
)
from roitool.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DocumentRecords:
    """Everything the linker needs from one document."""

    containers: list[ContainerRecord] = field(default_factory=list)
    references: list[ReferenceRecord] = field(default_factory=list)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local(child.tag) == name]


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    found = _children(element, name)
    return found[0].text if found else None


def _require_id(element: ET.Element) -> str:
    identifier = element.get("ID")
    if not identifier:
        raise DocumentError(f"<{_local(element.tag)}> element has no ID")
    return identifier


def _inner_xml(element: ET.Element) -> str:
    """Serialise the content of *element*.

    Inline elements inherit the document namespace; they are written back
    unqualified so the body reads the same as the XML that was embedded.
    """
    prefix = element.tag.split("}", 1)[0] + "}" if element.tag.startswith("{") else None
    parts = [element.text or ""]
    for child in element:
        if prefix is not None:
            child = copy.deepcopy(child)
            for node in child.iter():
                if isinstance(node.tag, str) and node.tag.startswith(prefix):
                    node.tag = node.tag[len(prefix):]
        parts.append(ET.tostring(child, encoding="unicode"))
    return "".join(parts)


# ---------------------------------------------------------------------------
# Annotations
# ---------------------------------------------------------------------------


def _annotation_value(kind: str, element: ET.Element) -> dict[str, Any]:
    values = _children(element, "Value")
    if not values:
        return {}
    value = values[0]
    text = value.text or ""
    if kind == "MapAnnotation":
        return {"map_value": [(m.get("K", ""), m.text or "") for m in _children(value, "M")]}
    if kind == "XmlAnnotation":
        return {"text_value": _inner_xml(value).strip()}
    if kind == "BooleanAnnotation":
        return {"bool_value": parse_value(text, BOOL)}
    if kind == "DoubleAnnotation":
        return {"double_value": parse_value(text, FLOAT)}
    if kind == "LongAnnotation":
        return {"long_value": parse_value(text, INT)}
    if kind == "TimestampAnnotation":
        return {"time_value": datetime.fromisoformat(text.strip())}
    if kind == "TermAnnotation":
        return {"term_value": text}
    return {"text_value": text}


def _read_annotation(kind: str, element: ET.Element) -> Annotation:
    identifier = _require_id(element)
    try:
        values = _annotation_value(kind, element)
    except ValueError as exc:
        raise DocumentError(f"Bad value in {kind} {identifier}: {exc}") from exc
    return KIND_BY_NAME[kind].cls(
        namespace=element.get("Namespace"),
        description=_child_text(element, "Description"),
        **values,
    )


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


def _read_transform(element: ET.Element, shape_id: str) -> AffineTransform:
    try:
        return AffineTransform(**{name.lower(): float(element.get(name)) for name in AFFINE_ATTRIBUTES})
    except (TypeError, ValueError) as exc:
        raise DocumentError(f"Bad Transform on shape {shape_id}") from exc


def _read_shape(kind: str, element: ET.Element, shape_id: str) -> Shape:
    try:
        values = read_attributes(element, SHAPE_ATTRIBUTES[kind])
        values.update(read_attributes(element, SHAPE_COMMON_ATTRIBUTES))
    except ValueError as exc:
        raise DocumentError(f"Bad attribute on {kind} {shape_id}: {exc}") from exc

    transforms = _children(element, "Transform")
    if transforms:
        values["transform"] = _read_transform(transforms[0], shape_id)
    if kind == "Mask":
        bin_data = _children(element, "BinData")
        if bin_data and bin_data[0].text:
            try:
                values["mask_bytes"] = base64.b64decode(bin_data[0].text.strip(), validate=True)
            except binascii.Error as exc:
                raise DocumentError(f"Bad BinData on Mask {shape_id}") from exc
    return KIND_BY_NAME[kind].cls(**values)


# ---------------------------------------------------------------------------
# Document walk
# ---------------------------------------------------------------------------


class _DocumentWalker:
    def __init__(self) -> None:
        self.records = DocumentRecords()
        self._annotation_index = 0
        self._roi_index = 0
        self._skipped: set[str] = set()

    def walk(self, root: ET.Element) -> DocumentRecords:
        for element in root:
            name = _local(element.tag)
            if name == "StructuredAnnotations":
                self._structured_annotations(element)
            elif name == "ROI":
                self._roi(element)
        self._drop_skipped_references()
        return self.records

    def _drop_skipped_references(self) -> None:
        kept = []
        for reference in self.records.references:
            if strip_custom_suffix(reference.reference) in self._skipped:
                logger.warning(
                    "Dropping link %s -> %s: annotation kind is not supported",
                    reference.reference,
                    reference.target,
                )
            else:
                kept.append(reference)
        self.records.references = kept

    def _references(self, target: str, element: ET.Element) -> None:
        for ref in _children(element, "AnnotationRef"):
            self.records.references.append(ReferenceRecord(target, _require_id(ref)))

    def _structured_annotations(self, element: ET.Element) -> None:
        for child in element:
            kind = ANNOTATION_KIND_BY_ELEMENT.get(_local(child.tag))
            if kind is None:
                if child.get("ID"):
                    self._skipped.add(strip_custom_suffix(child.get("ID")))
                logger.warning("Skipping unsupported annotation <%s>", _local(child.tag))
                continue
            identifier = _require_id(child)
            annotation = _read_annotation(kind, child)
            self.records.containers.append(
                ContainerRecord(identifier, annotation, {ANNOTATION_INDEX: self._annotation_index})
            )
            self._annotation_index += 1

    def _roi(self, element: ET.Element) -> None:
        roi_id = _require_id(element)
        roi_index = self._roi_index
        self._roi_index += 1
        roi = Roi(name=element.get("Name"), description=_child_text(element, "Description"))
        self.records.containers.append(ContainerRecord(roi_id, roi, {ROI_INDEX: roi_index}))

        shape_index = 0
        for union in _children(element, "Union"):
            for shape_element in union:
                kind = _local(shape_element.tag)
                if kind not in SHAPE_ATTRIBUTES:
                    logger.warning("Skipping unsupported shape <%s> in %s", kind, roi_id)
                    continue
                shape_id = _require_id(shape_element)
                shape = _read_shape(kind, shape_element, shape_id)
                self.records.containers.append(
                    ContainerRecord(
                        shape_id, shape, {ROI_INDEX: roi_index, SHAPE_INDEX: shape_index}
                    )
                )
                self._references(shape_id, shape_element)
                shape_index += 1
        self._references(roi_id, element)


def read_ome_xml(source: Path | str) -> DocumentRecords:
    """Read container and reference records from an OME-XML file or string.

    *source* is treated as XML text when it is a string starting with
    ``<``; otherwise it is a path.

    Raises
    ------
    DocumentError
        If the document cannot be read or parsed, or an element needed for
        linking is malformed.
    """
    try:
        if isinstance(source, str) and source.lstrip().startswith("<"):
            root = ET.fromstring(source)
        else:
            root = ET.parse(source).getroot()
    except ET.ParseError as exc:
        raise DocumentError(f"Malformed XML: {exc}") from exc
    except OSError as exc:
        raise DocumentError(f"Cannot read {source}: {exc}") from exc

    if _local(root.tag) != "OME":
        raise DocumentError(f"Expected an <OME> document, found <{_local(root.tag)}>")
    records = _DocumentWalker().walk(root)
    logger.debug(
        "Read %d containers and %d references",
        len(records.containers),
        len(records.references),
    )
    return records
