# tests/conftest.py
"""Shared fixtures: isolated config/logging and a populated in-memory store."""

import json
from datetime import datetime

import pytest


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point config and log files at a temp dir; drop cached config."""
    from roitool.config import get_config

    home = tmp_path / "roitool-home"
    monkeypatch.setenv("ROITOOL_HOME_DIR", str(home))
    monkeypatch.setenv("ROITOOL_LOG_DIR", str(home / "logs"))
    for name in ("ROITOOL_USERNAME", "ROITOOL_PASSWORD", "ROITOOL_SESSION_KEY"):
        monkeypatch.delenv(name, raising=False)
    get_config.cache_clear()
    yield home
    get_config.cache_clear()


def make_image(name="slide-1"):
    from roitool.model import Channel, Image, Pixels, Plane, Quantity, TagAnnotation

    pixels = Pixels(
        size_x=512,
        size_y=256,
        size_z=1,
        size_c=2,
        size_t=1,
        physical_size_x=Quantity(0.25, "µm"),
        physical_size_y=Quantity(0.25, "µm"),
        pixels_type="uint8",
        channels=[
            Channel(name="DAPI", color=65535, emission_wavelength=Quantity(461.0, "nm")),
            Channel(name="FITC", color=16711935),
        ],
        planes=[
            Plane(the_z=0, the_c=0, the_t=0, exposure_time=Quantity(0.1, "s")),
            Plane(the_z=0, the_c=1, the_t=0),
        ],
    )
    return Image(
        name=name,
        description="H&E section",
        acquisition_date=datetime(2023, 5, 17, 9, 30),
        pixels=pixels,
        annotations=[TagAnnotation(text_value="reviewed")],
    )


def populate(store, display_order=None):
    """Image with three ROIs: polygon, mask, ellipse + rectangle.

    Returns ``(image_id, [roi ids])``.  With *display_order* given as a list
    of ROI positions, a display-order annotation listing those ROIs' first
    shape ids is linked to the image.
    """
    from roitool.config import PATHVIEWER_DISPLAY_ORDER_NS
    from roitool.model import (
        AffineTransform,
        CommentAnnotation,
        Ellipse,
        Image,
        MapAnnotation,
        Mask,
        Polygon,
        Quantity,
        Rectangle,
        Roi,
        TagAnnotation,
        XmlAnnotation,
    )

    image = store.add_image(make_image())
    ref = Image(id=image.id, loaded=False)

    shared = TagAnnotation(namespace="tumour", text_value="region")

    r1 = Roi(name="R1", image=ref, annotations=[shared])
    r1.add_shape(
        Polygon(
            points="1,1 10,1 10,10",
            stroke_color=-16776961,
            stroke_width=Quantity(2.0, "pixel"),
            the_z=0,
            annotations=[CommentAnnotation(text_value="outline")],
        )
    )

    r2 = Roi(name="R2", image=ref)
    r2.add_shape(Mask(x=0.0, y=0.0, width=2.0, height=2.0, mask_bytes=b"\x01\x00\x01\x01"))

    r3 = Roi(
        name="R3",
        description="two shapes",
        image=ref,
        annotations=[shared, MapAnnotation(map_value=[("grade", "2"), ("site", "left")])],
    )
    r3.add_shape(Ellipse(x=50.0, y=60.0, radius_x=5.0, radius_y=7.5, text_value="nucleus"))
    r3.add_shape(
        Rectangle(
            x=10.0,
            y=20.0,
            width=30.0,
            height=40.0,
            transform=AffineTransform(1.0, 0.0, 0.0, 1.0, 5.0, 6.0),
            locked=True,
        )
    )

    saved = store.save_and_return([r1, r2, r3])
    roi_ids = [roi.id for roi in saved]

    if display_order is not None:
        ids = [saved[i].shapes[0].id for i in display_order]
        fetched = store.fetch_image(image.id)
        fetched.annotations.append(
            XmlAnnotation(
                namespace=PATHVIEWER_DISPLAY_ORDER_NS,
                text_value=json.dumps({"displayorder": ids}),
            )
        )
        store.save_and_return([fetched])
    return image.id, roi_ids


@pytest.fixture
def populated_store():
    """Connected in-memory store plus the populated image id."""
    from roitool.store import InMemoryStore

    store = InMemoryStore()
    store.connect()
    image_id, _ = populate(store)
    return store, image_id
