# tests/test_package.py
"""Tests for top-level package API."""


class TestPackageImports:
    """Verify the public API surface."""

    def test_version(self):
        import roitool

        assert hasattr(roitool, "__version__")
        assert roitool.__version__.count(".") == 2

    def test_public_names(self):
        import roitool

        for name in roitool.__all__:
            assert getattr(roitool, name) is not None

    def test_config_importable(self):
        from roitool.config import RoitoolConfig, get_config

        assert RoitoolConfig is not None
        assert callable(get_config)

    def test_cli_importable(self):
        from roitool.cli import cli, main

        assert callable(cli)
        assert callable(main)

    def test_subpackages_importable(self):
        from roitool.metadata import AnnotationMetadata, ImageMetadata, RoiMetadata
        from roitool.ome import read_ome_xml, write_ome_xml
        from roitool.store import InMemoryStore, RemoteStore, StoreGateway

        assert issubclass(InMemoryStore, StoreGateway)
        assert issubclass(RemoteStore, StoreGateway)
        assert callable(read_ome_xml) and callable(write_ome_xml)
        assert {AnnotationMetadata, ImageMetadata, RoiMetadata}
