# tests/integration/test_e2e.py
"""End-to-end integration tests -- store -> OME-XML -> store over HTTP.

An in-memory store sits behind a mocked HTTP server so the remote gateway,
the JSON codec, the converter and the document reader/writer all run
together without a real server.
"""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from pathlib import Path

import httpx
import pytest

OME = "http://www.openmicroscopy.org/Schemas/OME/2016-06"


class StoreServer:
    """Serves an InMemoryStore through the remote store's HTTP routes."""

    def __init__(self, store) -> None:
        self.store = store
        self.logged_out = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        from roitool.store.codec import decode_batch, encode_batch

        path = request.url.path.removeprefix("/api")
        if path == "/session":
            if request.method == "DELETE":
                self.logged_out = True
                return httpx.Response(204)
            return httpx.Response(
                200, json={"session_key": "s-1", "database_uuid": self.store.database_uuid}
            )
        if path == "/config/omero.db.authority":
            return httpx.Response(200, json={"value": self.store.authority})
        if path == "/save":
            objects = decode_batch(json.loads(request.content)["objects"])
            saved = self.store.save_and_return(objects)
            return httpx.Response(200, json={"objects": encode_batch(saved)})

        match = re.fullmatch(r"/(images|rois|shapes)/(\d+)(/\w+)?", path)
        if match is None:
            return httpx.Response(404)
        collection, object_id, tail = match.group(1), int(match.group(2)), match.group(3)
        if tail == "/annotations":
            annotations = self.store.fetch_annotations(collection[:-1], object_id)
            return httpx.Response(200, json=encode_batch(annotations))
        if collection == "images" and tail == "/rois":
            return httpx.Response(200, json=encode_batch(self.store.fetch_rois(object_id)))
        if collection == "images" and tail is None:
            image = self.store.fetch_image(object_id)
            if image is None:
                return httpx.Response(404)
            return httpx.Response(200, json=encode_batch([image])[0])
        return httpx.Response(404)


def _remote(server: StoreServer):
    from roitool.store import RemoteStore

    return RemoteStore(
        "http://store.test:4064/api",
        username="alice",
        password="secret",
        transport=httpx.MockTransport(server),
    )


@pytest.mark.integration
class TestEndToEnd:
    """Full export and import runs through the HTTP gateway."""

    def test_export_over_http(self, tmp_path: Path) -> None:
        from roitool.converter import RoiConverter
        from roitool.store import InMemoryStore

        from conftest import populate

        backing = InMemoryStore(authority="images.example.org")
        backing.connect()
        image_id, _ = populate(backing)
        server = StoreServer(backing)

        output = tmp_path / "export.ome.xml"
        with RoiConverter(image_id, _remote(server)) as converter:
            ordered = converter.export_rois_to_file(output)

        assert [roi.name for roi in ordered] == ["R1", "R3"]
        assert server.logged_out
        root = ET.parse(output).getroot()
        image = root.find(f"{{{OME}}}Image")
        assert image.get("ID").startswith("urn:lsid:images.example.org:")
        assert image.find(f"{{{OME}}}Pixels").get("SizeX") == "512"
        assert len(root.findall(f"{{{OME}}}ROI")) == 2

    def test_export_then_import_over_http(self, tmp_path: Path) -> None:
        from roitool.converter import RoiConverter
        from roitool.store import InMemoryStore

        from conftest import make_image, populate

        source = InMemoryStore()
        source.connect()
        source_image, _ = populate(source, display_order=[2, 0])
        exported = tmp_path / "a.ome.xml"
        with RoiConverter(source_image, _remote(StoreServer(source))) as converter:
            converter.export_rois_to_file(exported)

        target = InMemoryStore()
        target.connect()
        target_image = target.add_image(make_image("copy")).id
        with RoiConverter(target_image, _remote(StoreServer(target))) as converter:
            saved = converter.import_rois_from_file(exported)

        assert [roi.name for roi in saved] == ["R3", "R1"]
        rois = target.fetch_rois(target_image)
        assert [roi.name for roi in rois] == ["R3", "R1"]
        r3, r1 = rois
        assert [type(s).__name__ for s in r3.shapes] == ["Ellipse", "Rectangle"]
        assert r3.shapes[1].transform is not None
        assert [a.text_value for a in r1.shapes[0].annotations] == ["outline"]
        assert r3.annotations[0].namespace == "tumour"
        tumour_ids = {
            a.id for roi in rois for a in roi.annotations if a.namespace == "tumour"
        }
        assert len(tumour_ids) == 1

    def test_failed_login_leaves_no_file(self, tmp_path: Path) -> None:
        from roitool.converter import RoiConverter
        from roitool.errors import AuthenticationError
        from roitool.store import RemoteStore

        def reject(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401)

        store = RemoteStore(
            "http://store.test:4064/api",
            session_key="expired",
            transport=httpx.MockTransport(reject),
        )
        with pytest.raises(AuthenticationError):
            RoiConverter(1, store)
        assert list(tmp_path.iterdir()) == []
