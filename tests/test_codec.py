# tests/test_codec.py
"""Tests for the JSON marshalling used by the remote store."""

import json
from datetime import datetime

import pytest


class TestEncode:

    def test_wire_shape(self):
        from roitool.model import Details, Quantity, Rectangle
        from roitool.store.codec import encode

        data = encode(
            Rectangle(id=4, details=Details(update_event=9), x=1.0, stroke_width=Quantity(2.0, "pt"))
        )
        assert data["@type"] == "Rectangle"
        assert data["@id"] == 4
        assert data["omero:details"] == {"updateEvent": {"@id": 9}}
        assert data["x"] == 1.0
        assert data["stroke_width"] == {"@type": "Quantity", "value": 2.0, "unit": "pt"}
        assert "y" not in data
        assert "roi" not in data

    def test_unsaved_object_has_no_identity(self):
        from roitool.model import TagAnnotation
        from roitool.store.codec import encode

        data = encode(TagAnnotation(text_value="t"))
        assert "@id" not in data
        assert "omero:details" not in data

    def test_image_link_is_unloaded_reference(self):
        from roitool.model import Image, Point, Roi
        from roitool.store.codec import encode

        roi = Roi(name="r", image=Image(id=3, name="full image"))
        roi.add_shape(Point(x=1.0))
        data = encode(roi)
        assert data["image"] == {"@type": "Image", "@id": 3, "omero:loaded": False}
        assert data["shapes"][0]["@type"] == "Point"
        assert "roi" not in data["shapes"][0]

    def test_unloaded_object_has_no_fields(self):
        from roitool.model import TagAnnotation
        from roitool.store.codec import encode

        data = encode(TagAnnotation(id=8, loaded=False, text_value="hidden"))
        assert data == {"@type": "TagAnnotation", "@id": 8, "omero:loaded": False}

    def test_json_serialisable(self):
        from roitool.model import AffineTransform, Mask, Roi, TimestampAnnotation
        from roitool.store.codec import encode

        roi = Roi(annotations=[TimestampAnnotation(time_value=datetime(2024, 1, 1))])
        roi.add_shape(Mask(mask_bytes=b"\xff\x00", transform=AffineTransform(1, 0, 0, 1, 0, 0)))
        json.dumps(encode(roi))


class TestDecode:

    def test_rebuilds_graph(self):
        from roitool.model import CommentAnnotation, Details, Ellipse, Mask, Quantity, Roi
        from roitool.store.codec import decode, encode

        roi = Roi(id=1, details=Details(update_event=2), name="r")
        roi.add_shape(Ellipse(id=5, details=Details(update_event=2), radius_x=3.0, font_size=Quantity(9.0, "pt")))
        roi.add_shape(Mask(id=6, details=Details(update_event=2), mask_bytes=b"\x01\x02"))
        roi.annotations.append(CommentAnnotation(id=7, text_value="c"))

        decoded = decode(json.loads(json.dumps(encode(roi))))
        assert isinstance(decoded, Roi)
        assert decoded.details.update_event == 2
        assert [type(s).__name__ for s in decoded.shapes] == ["Ellipse", "Mask"]
        assert all(s.roi is decoded for s in decoded.shapes)
        assert decoded.shapes[0].font_size == Quantity(9.0, "pt")
        assert decoded.shapes[1].mask_bytes == b"\x01\x02"
        assert decoded.annotations[0].text_value == "c"
        assert decoded.annotations[0].details.update_event is None

    def test_map_pairs_become_tuples(self):
        from roitool.store.codec import decode

        decoded = decode({"@type": "MapAnnotation", "@id": 1, "map_value": [["a", "1"], ["b", "2"]]})
        assert decoded.map_value == [("a", "1"), ("b", "2")]

    def test_unknown_keys_ignored(self):
        from roitool.store.codec import decode

        decoded = decode({"@type": "Point", "x": 1.0, "omero:permissions": {}, "legacy": True})
        assert decoded.x == 1.0
        assert decoded.loaded is True

    def test_unloaded_reference(self):
        from roitool.store.codec import decode

        decoded = decode({"@type": "Image", "@id": 3, "omero:loaded": False})
        assert decoded.id == 3
        assert decoded.loaded is False


class TestBatch:

    def test_shared_object_encoded_once(self):
        from roitool.model import Roi, TagAnnotation
        from roitool.store.codec import encode_batch

        tag = TagAnnotation(text_value="shared")
        first = Roi(name="a", annotations=[tag])
        second = Roi(name="b", annotations=[tag])
        data = encode_batch([first, second])
        assert [item["@ref"] for item in data] == [0, 2]
        assert data[0]["annotations"][0] == {"@type": "TagAnnotation", "@ref": 1, "text_value": "shared"}
        assert data[1]["annotations"] == [{"@ref": 1}]

    def test_references_decode_to_one_object(self):
        from roitool.model import Roi, TagAnnotation
        from roitool.store.codec import decode_batch, encode_batch

        tag = TagAnnotation(text_value="shared")
        wire = json.loads(json.dumps(encode_batch([Roi(annotations=[tag]), Roi(annotations=[tag])])))
        first, second = decode_batch(wire)
        assert first.annotations[0] is second.annotations[0]
        assert first.annotations[0].text_value == "shared"

    def test_separate_batches_do_not_share(self):
        from roitool.model import TagAnnotation
        from roitool.store.codec import decode_batch, encode_batch

        tag = TagAnnotation(text_value="t")
        (one,) = decode_batch(encode_batch([tag]))
        (two,) = decode_batch(encode_batch([tag]))
        assert one is not two

    def test_unknown_reference(self):
        from roitool.store.codec import decode_batch

        with pytest.raises(ValueError):
            decode_batch([{"@ref": 3}])
