# tests/test_cli.py
"""Tests for the roitool command line."""

import xml.etree.ElementTree as ET

import pytest
from click.testing import CliRunner

OME = "http://www.openmicroscopy.org/Schemas/OME/2016-06"


@pytest.fixture
def stores(monkeypatch):
    """Route build_store() to in-memory stores; returns the list it handed out."""
    import roitool.cli
    from roitool.store import InMemoryStore

    from conftest import make_image, populate

    source = InMemoryStore()
    source.connect()
    populate(source)
    target = InMemoryStore()
    target.connect()
    target.add_image(make_image("empty"))
    handed_out = []

    def fake_build_store(cfg):
        store = target if handed_out else source
        handed_out.append((cfg, store))
        return store

    monkeypatch.setattr(roitool.cli, "build_store", fake_build_store)
    return source, target, handed_out


class TestCLISkeleton:

    def test_cli_group_exists(self):
        from roitool.cli import cli

        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "import" in result.output
        assert "export" in result.output

    @pytest.mark.parametrize("command", ["import", "export", "config"])
    def test_command_registered(self, command):
        from roitool.cli import cli

        result = CliRunner().invoke(cli, [command, "--help"])
        assert result.exit_code == 0

    def test_version_flag(self):
        from roitool import __version__
        from roitool.cli import cli

        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_bare_invocation_prints_help(self):
        from roitool.cli import cli

        result = CliRunner().invoke(cli, [])
        assert result.exit_code == 0
        assert "Usage" in result.output


class TestExportCommand:

    def test_export(self, stores, tmp_path):
        from roitool.cli import cli

        source, _, handed_out = stores
        output = tmp_path / "rois.ome.xml"
        result = CliRunner().invoke(cli, ["export", "1", str(output), "-u", "alice", "-w", "secret"])
        assert result.exit_code == 0, result.output
        assert "Exported 2 ROIs" in result.output
        root = ET.parse(output).getroot()
        assert [el.get("Name") for el in root.findall(f"{{{OME}}}ROI")] == ["R1", "R3"]
        cfg, _ = handed_out[0]
        assert cfg.username == "alice"
        assert cfg.password == "secret"
        assert source.closed

    def test_connection_flags_override_config(self, stores, tmp_path, monkeypatch):
        from roitool.cli import cli

        monkeypatch.setenv("ROITOOL_SERVER", "from-env.example.org")
        _, _, handed_out = stores
        result = CliRunner().invoke(
            cli,
            ["export", "1", str(tmp_path / "o.xml"), "--key", "abc", "-s", "cli.example.org", "-p", "443"],
        )
        assert result.exit_code == 0, result.output
        cfg, _ = handed_out[0]
        assert cfg.server == "cli.example.org"
        assert cfg.port == 443
        assert cfg.session_key == "abc"

    def test_missing_credentials(self, stores, tmp_path):
        from roitool.cli import cli

        _, _, handed_out = stores
        result = CliRunner().invoke(cli, ["export", "1", str(tmp_path / "o.xml")])
        assert result.exit_code == 1
        assert "No credentials" in result.output
        assert handed_out == []

    def test_credentials_from_environment(self, stores, tmp_path, monkeypatch):
        from roitool.cli import cli

        monkeypatch.setenv("ROITOOL_SESSION_KEY", "env-key")
        result = CliRunner().invoke(cli, ["export", "1", str(tmp_path / "o.xml")])
        assert result.exit_code == 0, result.output

    def test_missing_image_fails(self, stores, tmp_path):
        from roitool.cli import cli

        output = tmp_path / "o.xml"
        result = CliRunner().invoke(cli, ["export", "77", str(output), "-k", "abc"])
        assert result.exit_code == 1
        assert "Image 77 not found" in result.output
        assert not output.exists()

    def test_writes_log_file(self, stores, tmp_path, isolated_home):
        from roitool.cli import cli

        CliRunner().invoke(cli, ["export", "1", str(tmp_path / "o.xml"), "-k", "abc"])
        logs = list((isolated_home / "logs").glob("roitool_*.log"))
        assert len(logs) == 1
        text = logs[0].read_text(encoding="utf-8")
        assert "ROI EXPORT START" in text
        assert "ROI EXPORT SUCCEEDED" in text


class TestImportCommand:

    def test_export_then_import(self, stores, tmp_path):
        from roitool.cli import cli

        _, target, _ = stores
        exported = tmp_path / "rois.ome.xml"
        runner = CliRunner()
        assert runner.invoke(cli, ["export", "1", str(exported), "-k", "abc"]).exit_code == 0

        target_image = next(iter(target.images))
        result = runner.invoke(cli, ["import", str(target_image), str(exported), "-k", "abc"])
        assert result.exit_code == 0, result.output
        assert f"Imported 2 ROIs into Image:{target_image}" in result.output
        assert [r.name for r in target.fetch_rois(target_image)] == ["R1", "R3"]

    def test_input_must_exist(self, stores, tmp_path):
        from roitool.cli import cli

        result = CliRunner().invoke(cli, ["import", "1", str(tmp_path / "absent.xml"), "-k", "abc"])
        assert result.exit_code == 2

    def test_bad_document_fails(self, stores, tmp_path):
        from roitool.cli import cli

        document = tmp_path / "bad.xml"
        document.write_text("<OME><ROI>", encoding="utf-8")
        result = CliRunner().invoke(cli, ["import", "1", str(document), "-k", "abc"])
        assert result.exit_code == 1
        assert "Malformed XML" in result.output


class TestConfigCommand:

    def test_show_masks_secrets(self, monkeypatch):
        from roitool.cli import cli

        monkeypatch.setenv("ROITOOL_PASSWORD", "hunter2")
        monkeypatch.setenv("ROITOOL_SESSION_KEY", "0123456789abcdef")
        result = CliRunner().invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        assert "hunter2" not in result.output
        assert "0123456789abcdef" not in result.output
        assert "display_order_ns" in result.output
        assert "glencoesoftware.com/pathviewer/roidisplayorder" in result.output


class TestBuildStore:

    def test_password_login_drops_session_key(self):
        from roitool.cli import build_store
        from roitool.config import RoitoolConfig

        store = build_store(RoitoolConfig(username="alice", password="pw", session_key="k"))
        assert store.username == "alice"
        assert store.session_key is None
        assert not store.detach_on_destroy

    def test_key_login_detaches(self):
        from roitool.cli import build_store
        from roitool.config import RoitoolConfig

        store = build_store(RoitoolConfig(session_key="k"))
        assert store.username is None
        assert store.detach_on_destroy
