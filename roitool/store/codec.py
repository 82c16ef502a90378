# roitool/store/codec.py
"""JSON marshalling of model objects for the remote store.

Objects travel as self-describing dicts::

    {
      "@type": "Rectangle",
      "@id": 42,
      "omero:details": {"updateEvent": {"@id": 7}},
      "omero:loaded": true,
      "x": 10.0,
      "stroke_width": {"@type": "Quantity", "value": 1.0, "unit": "pt"},
      "annotations": [...]
    }

Field keys are the dataclass field names.  Value objects (quantities,
transforms, timestamps, raw bytes) carry their own ``@type`` so decoding does
not need the field's declared type.  Back references are either dropped
(``Shape.roi``, ``Image.rois``) or sent as unloaded references
(``Roi.image``).

Inside one batch (:func:`encode_batch` / :func:`decode_batch`) every object
gets a batch-local ``@ref`` number.  The first occurrence carries the full
body; later occurrences are sent as ``{"@ref": n}`` and decode to the same
object, so an annotation linked from several ROIs stays one object.
"""

from __future__ import annotations

import base64
import dataclasses
from datetime import datetime
from typing import Any, Iterable, Optional

from roitool.model.kinds import kind_named, kind_of
from roitool.model.objects import AffineTransform, Details, ModelObject, Quantity

_SKIPPED_FIELDS = {"id", "details", "loaded", "roi", "rois"}
_REFERENCE_FIELDS = {"image"}

REF_KEY = "@ref"


def encode(obj: ModelObject, refs: Optional[dict[int, int]] = None) -> dict[str, Any]:
    """Marshal a model object (and everything it owns) to a JSON dict.

    *refs* maps ``id(obj)`` to batch reference numbers; pass the same dict
    for every object of one batch.
    """
    info = kind_of(obj)
    data: dict[str, Any] = {"@type": info.name}
    if refs is not None:
        seen = refs.get(id(obj))
        if seen is not None:
            return {REF_KEY: seen}
        data[REF_KEY] = refs[id(obj)] = len(refs)
    if obj.id is not None:
        data["@id"] = obj.id
    if obj.details.update_event is not None:
        data["omero:details"] = {"updateEvent": {"@id": obj.details.update_event}}
    if not obj.loaded:
        data["omero:loaded"] = False
        return data
    for f in dataclasses.fields(obj):
        if f.name in _SKIPPED_FIELDS:
            continue
        value = getattr(obj, f.name)
        if value is None:
            continue
        if f.name in _REFERENCE_FIELDS:
            data[f.name] = {"@type": kind_of(value).name, "@id": value.id, "omero:loaded": False}
        else:
            data[f.name] = _encode_value(value, refs)
    return data


def encode_batch(objects: Iterable[ModelObject]) -> list[dict[str, Any]]:
    """Encode *objects* as one batch, sending shared objects once."""
    refs: dict[int, int] = {}
    return [encode(obj, refs) for obj in objects]


def _encode_value(value: Any, refs: Optional[dict[int, int]]) -> Any:
    if isinstance(value, ModelObject):
        return encode(value, refs)
    if isinstance(value, Quantity):
        return {"@type": "Quantity", "value": value.value, "unit": value.unit}
    if isinstance(value, AffineTransform):
        return {"@type": "AffineTransform", **dataclasses.asdict(value)}
    if isinstance(value, datetime):
        return {"@type": "Timestamp", "value": value.isoformat()}
    if isinstance(value, (bytes, bytearray)):
        return {"@type": "Bytes", "value": base64.b64encode(value).decode("ascii")}
    if isinstance(value, (list, tuple)):
        return [_encode_value(v, refs) for v in value]
    return value


def decode(data: dict[str, Any], refs: Optional[dict[int, ModelObject]] = None) -> ModelObject:
    """Rebuild a model object from :func:`encode` output.

    Raises ``KeyError``, ``TypeError`` or ``ValueError`` on a malformed body
    and :class:`~roitool.errors.InvalidObjectKindError` on an unknown type.
    """
    if "@type" not in data and REF_KEY in data:
        if refs is None or data[REF_KEY] not in refs:
            raise ValueError(f"Unknown batch reference {data[REF_KEY]!r}")
        return refs[data[REF_KEY]]

    info = kind_named(data["@type"])
    names = {f.name for f in dataclasses.fields(info.cls)}
    kwargs: dict[str, Any] = {}
    for key, raw in data.items():
        if key.startswith(("@", "omero:")) or key not in names or key in _SKIPPED_FIELDS:
            continue
        kwargs[key] = _decode_value(raw, refs)
    if "map_value" in kwargs:
        kwargs["map_value"] = [tuple(pair) for pair in kwargs["map_value"]]

    update_event = data.get("omero:details", {}).get("updateEvent", {}).get("@id")
    obj = info.cls(
        id=data.get("@id"),
        details=Details(update_event=update_event),
        loaded=data.get("omero:loaded", True),
        **{k: v for k, v in kwargs.items() if k != "shapes"},
    )
    for shape in kwargs.get("shapes", []):
        obj.add_shape(shape)
    if refs is not None and REF_KEY in data:
        refs[data[REF_KEY]] = obj
    return obj


def decode_batch(items: Iterable[dict[str, Any]]) -> list[ModelObject]:
    """Decode a batch written by :func:`encode_batch`."""
    refs: dict[int, ModelObject] = {}
    return [decode(item, refs) for item in items]


def _decode_value(raw: Any, refs: Optional[dict[int, ModelObject]]) -> Any:
    if isinstance(raw, list):
        return [_decode_value(v, refs) for v in raw]
    if not isinstance(raw, dict) or ("@type" not in raw and REF_KEY not in raw):
        return raw
    tag = raw.get("@type")
    if tag == "Quantity":
        return Quantity(value=raw["value"], unit=raw["unit"])
    if tag == "AffineTransform":
        return AffineTransform(**{k: v for k, v in raw.items() if k != "@type"})
    if tag == "Timestamp":
        return datetime.fromisoformat(raw["value"])
    if tag == "Bytes":
        return base64.b64decode(raw["value"])
    return decode(raw, refs)
