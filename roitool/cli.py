# roitool/cli.py
"""
roitool CLI -- Click commands with a coral/greige terminal UI.

Provides the ``roitool`` console entry-point declared in pyproject.toml as
``roitool.cli:main``.  Commands call into the converter:

- import:  OME-XML file -> ROIs saved onto an existing image
- export:  ROIs and annotations of an image -> OME-XML file
- config:  RoitoolConfig display
"""

from __future__ import annotations

import io
import re
from pathlib import Path
from typing import Any, Optional

import click
import httpx
from rich.console import Console
from rich.markup import escape as _esc

from . import __version__
from . import cli_theme as theme
from .config import RoitoolConfig, get_config
from .converter import RoiConverter
from .errors import RoitoolError
from .store.base import StoreGateway
from .store.remote import RemoteStore
from .utils.logging import get_current_log_file, setup_logging

console = Console()

# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

_VERSION_NUMBER = __version__


def _print_version(
    ctx: click.Context,
    _param: click.Parameter,
    value: bool,
) -> None:
    if not value or ctx.resilient_parsing:
        return
    theme.print_version(_VERSION_NUMBER, console)
    ctx.exit()


# ---------------------------------------------------------------------------
# Styled help
# ---------------------------------------------------------------------------


def _render_styled_help(plain: str, width: int = 80) -> str:
    """Re-render Click help with coral/greige colors + 2-space indent."""
    buf = io.StringIO()
    # Extra width avoids Rich re-wrapping lines after we add 2-space indent
    rc = Console(file=buf, force_terminal=True, width=width + 4, highlight=False)
    section: str | None = None

    for line in plain.splitlines():
        stripped = line.strip()
        if not stripped:
            rc.print()
            continue

        # Section headers (no leading whitespace in Click output)
        if line == stripped:
            if stripped.startswith("Usage:"):
                rest = stripped[6:].strip()
                rc.print(
                    f"  [bold {theme.CORAL}]Usage:[/bold {theme.CORAL}]"
                    f" [{theme.GREIGE}]{_esc(rest)}[/{theme.GREIGE}]"
                )
                section = None
                continue

            bare = stripped.rstrip(":")
            if bare in ("Options", "Commands", "Arguments"):
                rc.print(f"  [bold {theme.CORAL}]{stripped}[/bold {theme.CORAL}]")
                section = bare.lower()
                continue

        if section == "commands":
            m = re.match(r"^(\s+)(\S+)(\s{2,})(.+)$", line)
            if m:
                ind, name, gap, desc = m.groups()
                rc.print(
                    f"  {ind}[bold {theme.CORAL}]{_esc(name)}[/bold {theme.CORAL}]"
                    f"{gap}[{theme.MUTED}]{_esc(desc)}[/{theme.MUTED}]"
                )
                continue

        if section == "options":
            m = re.match(r"^(\s+)(-.+?)(\s{2,})(.+)$", line)
            if m:
                ind, flags, gap, desc = m.groups()
                rc.print(
                    f"  {ind}[{theme.GREIGE}]{_esc(flags)}[/{theme.GREIGE}]"
                    f"{gap}[{theme.MUTED}]{_esc(desc)}[/{theme.MUTED}]"
                )
                continue

        if section:
            rc.print(f"  [{theme.MUTED}]{_esc(line)}[/{theme.MUTED}]")
        else:
            rc.print(f"  [{theme.MUTED}]{_esc(stripped)}[/{theme.MUTED}]")

    return buf.getvalue()


class RoitoolGroup(click.Group):
    """Click group with styled help output."""

    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        if ctx.parent is None:
            theme.print_banner(_VERSION_NUMBER, console)
        tmp = click.HelpFormatter(width=formatter.width)
        super().format_help(ctx, tmp)
        formatter.write(_render_styled_help(tmp.getvalue(), formatter.width or 80))

    def group(self, *args, **kwargs):
        kwargs.setdefault("cls", RoitoolGroup)
        return super().group(*args, **kwargs)

    def command(self, *args, **kwargs):
        kwargs.setdefault("cls", RoitoolCommand)
        return super().command(*args, **kwargs)


class RoitoolCommand(click.Command):
    """Click command with styled help output."""

    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        tmp = click.HelpFormatter(width=formatter.width)
        super().format_help(ctx, tmp)
        formatter.write(_render_styled_help(tmp.getvalue(), formatter.width or 80))


# ---------------------------------------------------------------------------
# Store connection helpers
# ---------------------------------------------------------------------------


def _connection_options(fn):
    """Attach the shared store connection options to a command."""
    options = [
        click.option("--server", "-s", default=None, help="Store server address [default: from config]."),
        click.option("--port", "-p", type=int, default=None, help="Store server port [default: from config]."),
        click.option("--username", "-u", default=None, help="Login name."),
        click.option("--password", "-w", default=None, help="Login password."),
        click.option("--key", "-k", "session_key", default=None, help="Existing session key to join instead of logging in."),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _resolve_config(**overrides: Any) -> RoitoolConfig:
    """Config with CLI flags layered on top; fails without credentials."""
    cfg = get_config()
    updates = {k: v for k, v in overrides.items() if v is not None}
    if updates:
        cfg = cfg.model_copy(update=updates)
    if not cfg.username and not cfg.session_key:
        raise click.ClickException(
            "No credentials given. Pass --username/--password or --key, "
            "or set ROITOOL_USERNAME / ROITOOL_SESSION_KEY."
        )
    return cfg


def build_store(cfg: RoitoolConfig) -> StoreGateway:
    """Store gateway used by the import and export commands."""
    if cfg.username:
        return RemoteStore.from_config(cfg, session_key=None)
    return RemoteStore.from_config(cfg, username=None, password=None)


def _run_failed(exc: Exception) -> click.ClickException:
    log_file = get_current_log_file()
    hint = f"\nSee {log_file} for details." if log_file else ""
    return click.ClickException(f"{exc}{hint}")


# ---------------------------------------------------------------------------
# Main CLI group
# ---------------------------------------------------------------------------


@click.group(invoke_without_command=True, cls=RoitoolGroup)
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--debug", is_flag=True, help="Log at DEBUG level and echo log records to stderr.")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """roitool -- move ROIs between OME-XML documents and an object store."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return
    cfg = get_config()
    setup_logging(
        level="DEBUG" if debug else cfg.log_level,
        log_dir=cfg.log_dir,
        console_output=debug,
    )


# ---------------------------------------------------------------------------
# import / export
# ---------------------------------------------------------------------------


@cli.command("import")
@click.argument("image_id", type=int)
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_connection_options
def import_cmd(image_id: int, input_path: Path, **connection: Optional[str]) -> None:
    """Import ROIs from an OME-XML file onto an existing image.

    \b
    Examples:
      roitool import 42 rois.ome.xml -u alice -w secret
      roitool import 42 rois.ome.xml --key 6f1c...
    """
    cfg = _resolve_config(**connection)
    theme.print_banner(_VERSION_NUMBER, console, server=f"{cfg.server}:{cfg.port}")
    try:
        with theme.spinner(f"Importing {input_path.name}...", console):
            with RoiConverter(image_id, build_store(cfg), cfg) as converter:
                saved = converter.import_rois_from_file(input_path)
    except (RoitoolError, httpx.HTTPError) as exc:
        raise _run_failed(exc)

    theme.section("Import", console, "01")
    t = theme.make_kv_table()
    t.add_row("image", str(image_id))
    t.add_row("source", str(input_path))
    t.add_row("rois saved", str(len(saved)))
    t.add_row("shapes saved", str(sum(len(roi.shapes) for roi in saved)))
    console.print(t)
    console.print(theme.ok(f"Imported {len(saved)} ROIs into Image:{image_id}"))


@cli.command("export")
@click.argument("image_id", type=int)
@click.argument("output_path", metavar="OUTPUT", type=click.Path(dir_okay=False, path_type=Path))
@_connection_options
def export_cmd(image_id: int, output_path: Path, **connection: Optional[str]) -> None:
    """Export the ROIs of an image to an OME-XML file.

    \b
    Examples:
      roitool export 42 rois.ome.xml -u alice -w secret
      roitool --debug export 42 rois.ome.xml --key 6f1c...
    """
    cfg = _resolve_config(**connection)
    theme.print_banner(_VERSION_NUMBER, console, server=f"{cfg.server}:{cfg.port}")
    try:
        with theme.spinner(f"Exporting Image:{image_id}...", console):
            with RoiConverter(image_id, build_store(cfg), cfg) as converter:
                ordered = converter.export_rois_to_file(output_path)
    except (RoitoolError, httpx.HTTPError) as exc:
        raise _run_failed(exc)

    exported = [roi for roi in ordered if roi is not None]
    gaps = len(ordered) - len(exported)
    theme.section("Export", console, "01")
    t = theme.make_kv_table()
    t.add_row("image", str(image_id))
    t.add_row("output", str(output_path))
    t.add_row("rois written", str(len(exported)))
    if gaps:
        t.add_row("unmatched", theme.badge(f"{gaps} display-order ids", "warn"))
    console.print(t)
    console.print(theme.ok(f"Exported {len(exported)} ROIs to {output_path}"))


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@cli.group()
def config() -> None:
    """View roitool configuration."""


@config.command("show")
def config_show() -> None:
    """Show current configuration.

    \b
    Examples:
      roitool config show
    """
    cfg = get_config()
    dump = cfg.model_dump()

    # 01 · Store connection
    theme.section("Store Connection", console, "01")
    t = theme.make_kv_table()
    t.add_row("server", dump["server"])
    t.add_row("port", str(dump["port"]))
    t.add_row("use_tls", str(dump["use_tls"]))
    t.add_row("base_url", cfg.base_url)
    t.add_row("username", dump["username"] or "[dim]not set[/dim]")
    password = dump["password"]
    t.add_row("password", "***" if password else "[dim]not set[/dim]")
    session_key = dump["session_key"]
    if session_key:
        masked = session_key[:4] + "···" + session_key[-4:] if len(session_key) > 8 else "***"
    else:
        masked = "[dim]not set[/dim]"
    t.add_row("session_key", masked)
    t.add_row("request_timeout", f"{dump['request_timeout']}s")
    t.add_row("group_context", dump["group_context"])
    console.print(t)

    # 02 · Export
    theme.section("Export", console, "02")
    t = theme.make_kv_table()
    t.add_row("display_order_ns", dump["display_order_ns"])
    console.print(t)

    # 03 · Logging & paths
    theme.section("Logging & Paths", console, "03")
    t = theme.make_kv_table()
    t.add_row("log_level", theme.badge(dump["log_level"]))
    t.add_row("home_dir", str(dump["home_dir"]))
    t.add_row("log_dir", str(cfg.log_dir))
    console.print(t)
    console.print()


def main() -> None:
    """Console-script entry point."""
    cli(prog_name="roitool")
