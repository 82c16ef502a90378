# tests/test_metadata.py
"""Tests for the image, ROI and annotation projections."""

from datetime import datetime

import pytest


def _lsids():
    from roitool.lsid import LsidFormatter

    return LsidFormatter("example.org", "db")


def _hydrate(obj, object_id, event=1):
    from roitool.model import Details

    obj.id = object_id
    obj.details = Details(update_event=event)
    return obj


def _rois():
    from roitool.model import Ellipse, Line, Mask, Quantity, Rectangle, Roi, TagAnnotation

    tag = _hydrate(TagAnnotation(text_value="t"), 90)
    r0 = _hydrate(Roi(name="first", description="d", annotations=[tag]), 1)
    r0.add_shape(
        _hydrate(
            Rectangle(x=1.0, y=2.0, width=3.0, height=4.0, stroke_width=Quantity(1.5, "pixel")),
            10,
        )
    )
    r0.add_shape(_hydrate(Line(x1=0.0, y1=0.0, x2=5.0, y2=5.0, marker_end="Arrow", annotations=[tag]), 11))
    r1 = _hydrate(Roi(name="second"), 2)
    r1.add_shape(_hydrate(Ellipse(x=7.0, radius_x=2.0), 12))
    r1.add_shape(_hydrate(Mask(width=2.0, mask_bytes=b"\x01"), 13))
    return [r0, None, r1]


class TestRoiMetadata:

    def test_roi_getters(self):
        from roitool.metadata import RoiMetadata

        meta = RoiMetadata(_lsids(), _rois())
        assert meta.get_roi_count() == 3
        assert meta.get_roi_id(0) == "urn:lsid:example.org:db:Roi_1:1"
        assert meta.get_roi_name(2) == "second"
        assert meta.get_roi_description(0) == "d"
        assert meta.get_roi_annotation_ref_count(0) == 1
        assert meta.get_roi_annotation_ref(0, 0) == "urn:lsid:example.org:db:TagAnnotation_90:1"

    def test_gap_slot_behaves_as_unknown(self):
        from roitool.metadata import RoiMetadata

        meta = RoiMetadata(_lsids(), _rois())
        assert meta.get_roi_id(1) is None
        assert meta.get_roi_name(1) is None
        assert meta.get_shape_count(1) == -1
        assert meta.get_roi_annotation_ref_count(1) == -1

    def test_shape_type_and_count(self):
        from roitool.metadata import RoiMetadata

        meta = RoiMetadata(_lsids(), _rois())
        assert meta.get_shape_count(0) == 2
        assert meta.get_shape_type(0, 0) == "Rectangle"
        assert meta.get_shape_type(0, 1) == "Line"
        assert meta.get_shape_type(2, 1) == "Mask"

    def test_typed_getters(self):
        from roitool.metadata import RoiMetadata
        from roitool.model import Quantity

        meta = RoiMetadata(_lsids(), _rois())
        assert meta.get_rectangle_x(0, 0) == 1.0
        assert meta.get_rectangle_height(0, 0) == 4.0
        assert meta.get_rectangle_stroke_width(0, 0) == Quantity(1.5, "pixel")
        assert meta.get_rectangle_id(0, 0) == "urn:lsid:example.org:db:Rectangle_10:1"
        assert meta.get_line_marker_end(0, 1) == "Arrow"
        assert meta.get_ellipse_radius_x(2, 0) == 2.0
        assert meta.get_mask_bytes(2, 1) == b"\x01"

    def test_typed_getter_wrong_kind_is_none(self):
        from roitool.metadata import RoiMetadata

        meta = RoiMetadata(_lsids(), _rois())
        assert meta.get_ellipse_x(0, 0) is None
        assert meta.get_rectangle_id(0, 1) is None
        assert meta.get_polygon_annotation_ref_count(0, 0) == -1

    def test_shape_annotation_refs(self):
        from roitool.metadata import RoiMetadata

        meta = RoiMetadata(_lsids(), _rois())
        assert meta.get_shape_annotation_ref_count(0, 0) == 0
        assert meta.get_line_annotation_ref_count(0, 1) == 1
        assert meta.get_line_annotation_ref(0, 1, 0).endswith(":TagAnnotation_90:1")
        assert meta.get_line_annotation_ref(0, 1, 1) is None

    @pytest.mark.parametrize("roi_index,shape_index", [(-1, 0), (0, -1), (5, 0), (0, 9), (1, 0)])
    def test_out_of_range_never_raises(self, roi_index, shape_index):
        from roitool.metadata import RoiMetadata

        meta = RoiMetadata(_lsids(), _rois())
        assert meta.get_shape_type(roi_index, shape_index) is None
        assert meta.get_shape_id(roi_index, shape_index) is None
        assert meta.get_rectangle_x(roi_index, shape_index) is None
        assert meta.get_shape_annotation_ref(roi_index, shape_index, 0) is None

    def test_negative_roi_count_sentinel(self):
        from roitool.metadata import RoiMetadata

        meta = RoiMetadata(_lsids(), _rois())
        assert meta.get_shape_count(-1) == -1
        assert meta.get_shape_count(99) == -1


class TestAnnotationMetadata:

    def _annotations(self):
        from roitool.model import (
            BooleanAnnotation,
            LongAnnotation,
            MapAnnotation,
            TagAnnotation,
            TimestampAnnotation,
            XmlAnnotation,
        )

        tag = _hydrate(TagAnnotation(namespace="ns", description="desc", text_value="t"), 1)
        same_tag_refetched = _hydrate(TagAnnotation(namespace="ns", text_value="t"), 1)
        return [
            tag,
            _hydrate(LongAnnotation(long_value=7), 2),
            same_tag_refetched,
            _hydrate(MapAnnotation(map_value=[("k", "v")]), 3),
            _hydrate(BooleanAnnotation(bool_value=False), 4),
            _hydrate(TimestampAnnotation(time_value=datetime(2020, 1, 2, 3, 4, 5)), 5),
            _hydrate(XmlAnnotation(text_value="<a/>"), 6),
            _hydrate(TagAnnotation(text_value="second"), 7),
        ]

    def test_split_by_kind_and_deduplicated(self):
        from roitool.metadata import AnnotationMetadata

        meta = AnnotationMetadata(_lsids(), self._annotations())
        assert meta.get_tag_annotation_count() == 2
        assert meta.get_tag_annotation_value(0) == "t"
        assert meta.get_tag_annotation_description(0) == "desc"
        assert meta.get_tag_annotation_value(1) == "second"
        assert meta.get_comment_annotation_count() == 0

    def test_values_per_kind(self):
        from roitool.metadata import AnnotationMetadata

        meta = AnnotationMetadata(_lsids(), self._annotations())
        assert meta.get_long_annotation_value(0) == 7
        assert meta.get_map_annotation_value(0) == [("k", "v")]
        assert meta.get_boolean_annotation_value(0) is False
        assert meta.get_timestamp_annotation_value(0) == datetime(2020, 1, 2, 3, 4, 5)
        assert meta.get_xml_annotation_value(0) == "<a/>"
        assert meta.get_xml_annotation_id(0) == "urn:lsid:example.org:db:XmlAnnotation_6:1"
        assert meta.get_tag_annotation_namespace(0) == "ns"

    def test_out_of_range(self):
        from roitool.metadata import AnnotationMetadata

        meta = AnnotationMetadata(_lsids(), self._annotations())
        assert meta.get_long_annotation_value(1) is None
        assert meta.get_long_annotation_id(-1) is None
        assert meta.get_annotation_count("Rectangle") == -1
        assert meta.get_annotation_value("Rectangle", 0) is None


class TestImageMetadata:

    def _image(self):
        from conftest import make_image
        from roitool.store import InMemoryStore

        store = InMemoryStore(authority="example.org", database_uuid="db")
        store.connect()
        saved = store.add_image(make_image())
        return store, store.fetch_image(saved.id)

    def test_image_and_pixels(self):
        from roitool.metadata import ImageMetadata
        from roitool.model import Quantity

        store, image = self._image()
        meta = ImageMetadata(store.lsid_formatter, [image])
        assert meta.get_image_count() == 1
        assert meta.get_image_id(0).startswith("urn:lsid:example.org:db:Image_")
        assert meta.get_image_name(0) == "slide-1"
        assert meta.get_image_acquisition_date(0) == datetime(2023, 5, 17, 9, 30)
        assert meta.get_pixels_size_x(0) == 512
        assert meta.get_pixels_type(0) == "uint8"
        assert meta.get_pixels_dimension_order(0) == "XYCZT"
        assert meta.get_pixels_physical_size_x(0) == Quantity(0.25, "µm")
        assert meta.get_image_annotation_ref_count(0) == 1

    def test_channels_and_planes(self):
        from roitool.metadata import ImageMetadata
        from roitool.model import Quantity

        store, image = self._image()
        meta = ImageMetadata(store.lsid_formatter, [image])
        assert meta.get_channel_count(0) == 2
        assert meta.get_channel_name(0, 1) == "FITC"
        assert meta.get_channel_emission_wavelength(0, 0) == Quantity(461.0, "nm")
        assert meta.get_channel_id(0, 0).split(":")[-2].startswith("Channel_")
        assert meta.get_plane_count(0) == 2
        assert meta.get_plane_the_c(0, 1) == 1
        assert meta.get_plane_exposure_time(0, 0) == Quantity(0.1, "s")

    def test_remaining_pixels_values(self):
        from roitool.metadata import ImageMetadata
        from roitool.model import Quantity

        store, image = self._image()
        meta = ImageMetadata(store.lsid_formatter, [image])
        sizes = [meta.get_pixels_size_y(0), meta.get_pixels_size_z(0), meta.get_pixels_size_c(0), meta.get_pixels_size_t(0)]
        assert sizes == [256, 1, 2, 1]
        assert meta.get_pixels_physical_size_y(0) == Quantity(0.25, "µm")
        assert meta.get_pixels_physical_size_z(0) is None
        assert meta.get_pixels_time_increment(0) is None
        assert meta.get_channel_color(0, 0) == 65535
        assert meta.get_plane_the_t(0, 1) == 0

    @pytest.mark.parametrize(
        "getter",
        [
            "get_channel_fluor",
            "get_channel_excitation_wavelength",
            "get_channel_nd_filter",
            "get_channel_pinhole_size",
            "get_channel_pockel_cell_setting",
            "get_channel_samples_per_pixel",
            "get_channel_illumination_type",
            "get_channel_acquisition_mode",
            "get_channel_contrast_method",
            "get_plane_delta_t",
            "get_plane_position_x",
            "get_plane_position_y",
            "get_plane_position_z",
        ],
    )
    def test_unset_values_are_none(self, getter):
        from roitool.metadata import ImageMetadata

        store, image = self._image()
        meta = ImageMetadata(store.lsid_formatter, [image])
        assert getattr(meta, getter)(0, 0) is None

    def test_out_of_range(self):
        from roitool.metadata import ImageMetadata

        store, image = self._image()
        meta = ImageMetadata(store.lsid_formatter, [image])
        assert meta.get_image_name(1) is None
        assert meta.get_pixels_size_x(-1) is None
        assert meta.get_channel_count(3) == -1
        assert meta.get_channel_name(0, 5) is None
        assert meta.get_plane_the_z(0, -1) is None
        assert meta.get_image_roi_ref(0, 0) is None
        assert meta.get_image_annotation_ref_count(4) == -1

    def test_identifiers_require_hydration(self):
        from roitool.errors import UnhydratedObjectError
        from roitool.metadata import ImageMetadata

        from conftest import make_image

        meta = ImageMetadata(_lsids(), [make_image()])
        with pytest.raises(UnhydratedObjectError):
            meta.identifiers()
