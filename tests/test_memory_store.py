# tests/test_memory_store.py
"""Tests for the in-process object store."""

import pytest


class TestSession:

    def test_lsid_formatter_needs_connect(self):
        from roitool.errors import StoreError
        from roitool.store import InMemoryStore

        store = InMemoryStore()
        assert not store.connected
        with pytest.raises(StoreError):
            store.lsid_formatter

    def test_context_manager_connects_and_closes(self):
        from roitool.store import InMemoryStore

        store = InMemoryStore(authority="example.org", database_uuid="db")
        with store as session:
            assert session.connected
            assert session.lsid_formatter.prefix == "urn:lsid:example.org:db"
        assert store.closed
        assert not store.connected


class TestSave:

    def test_ids_and_update_event_assigned(self, populated_store):
        store, image_id = populated_store
        rois = store.fetch_rois(image_id)
        assert [r.name for r in rois] == ["R1", "R2", "R3"]
        events = {r.details.update_event for r in rois}
        assert len(events) == 1
        for roi in rois:
            assert roi.id is not None
            assert all(s.id is not None for s in roi.shapes)
            assert all(s.roi is roi for s in roi.shapes)

    def test_shared_annotation_saved_once(self, populated_store):
        store, image_id = populated_store
        r1, _, r3 = store.fetch_rois(image_id)
        assert r1.annotations[0].id == r3.annotations[0].id

    def test_roi_needs_existing_image(self):
        from roitool.errors import PersistenceError
        from roitool.model import Image, Roi
        from roitool.store import InMemoryStore

        store = InMemoryStore()
        store.connect()
        with pytest.raises(PersistenceError):
            store.save_and_return([Roi(name="stray", image=Image(id=5, loaded=False))])
        with pytest.raises(PersistenceError):
            store.save_and_return([Roi(name="no image")])

    def test_unsupported_batch_root(self):
        from roitool.errors import PersistenceError
        from roitool.model import TagAnnotation
        from roitool.store import InMemoryStore

        store = InMemoryStore()
        store.connect()
        with pytest.raises(PersistenceError):
            store.save_and_return([TagAnnotation(text_value="loose")])

    def test_unloaded_annotation_reference(self, populated_store):
        from roitool.errors import PersistenceError
        from roitool.model import Image, Roi, TagAnnotation

        store, image_id = populated_store
        existing = next(iter(store.annotations.values()))
        roi = Roi(name="linked", image=Image(id=image_id, loaded=False))
        roi.annotations.append(TagAnnotation(id=existing.id, loaded=False))
        (saved,) = store.save_and_return([roi])
        assert saved.annotations[0].id == existing.id

        roi = Roi(name="dangling", image=Image(id=image_id, loaded=False))
        roi.annotations.append(TagAnnotation(id=9999, loaded=False))
        with pytest.raises(PersistenceError):
            store.save_and_return([roi])


class TestQueries:

    def test_fetch_returns_detached_copies(self, populated_store):
        store, image_id = populated_store
        roi = store.fetch_rois(image_id)[0]
        roi.name = "changed"
        roi.shapes.clear()
        again = store.fetch_rois(image_id)[0]
        assert again.name == "R1"
        assert len(again.shapes) == 1

    def test_missing_image(self):
        from roitool.store import InMemoryStore

        store = InMemoryStore()
        store.connect()
        assert store.fetch_image(1) is None
        assert store.fetch_rois(1) == []

    def test_fetch_annotations_per_parent(self, populated_store):
        store, image_id = populated_store
        r1, r2, r3 = store.fetch_rois(image_id)
        assert [a.text_value for a in store.fetch_annotations("image", image_id)] == ["reviewed"]
        assert [type(a).__name__ for a in store.fetch_annotations("roi", r3.id)] == [
            "TagAnnotation",
            "MapAnnotation",
        ]
        assert [a.text_value for a in store.fetch_annotations("shape", r1.shapes[0].id)] == ["outline"]
        assert store.fetch_annotations("roi", r2.id) == []
        assert store.fetch_annotations("shape", 12345) == []

    def test_unknown_parent(self, populated_store):
        from roitool.errors import StoreError

        store, image_id = populated_store
        with pytest.raises(StoreError):
            store.fetch_annotations("dataset", image_id)
