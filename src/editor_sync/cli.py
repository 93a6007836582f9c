"""CLI interface for editor-sync."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

import click

from editor_sync import __version__
from editor_sync.config import (
    CustomEditorConfig,
    EditorOverride,
    default_config_path,
    load_config,
    save_config,
)
from editor_sync.exceptions import EditorNotFoundError, EditorSyncError
from editor_sync.index import read_index
from editor_sync.profiles import ProfileRegistry, build_registry
from editor_sync.status import cli_status, probe, probe_all, scan_installed
from editor_sync.sync import SyncEngine, SyncRequest

EXIT_ERROR = 1
EXIT_CONFLICTS = 3


def styled(text: str, **kwargs) -> str:
    return click.style(text, **kwargs)


def info(msg: str) -> None:
    click.echo(f"  {msg}")


def success(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='green')}")


def warn(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='yellow')}")


def error(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='red')}", err=True)


def heading(msg: str) -> None:
    click.echo(f"\n  {styled(msg, bold=True)}")


def emit_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def fail(msg: str, code: int = EXIT_ERROR) -> NoReturn:
    error(msg)
    sys.exit(code)


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@click.group()
@click.version_option(version=__version__, prog_name="editor-sync")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Path to config file.",
)
@click.option(
    "--output",
    "-o",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None, output: str) -> None:
    """Sync installed extensions between VS Code family editors."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["output"] = output
    ctx.obj["config_path"] = config_path or default_config_path()
    try:
        ctx.obj["config"] = load_config(ctx.obj["config_path"])
        ctx.obj["registry"] = build_registry(ctx.obj["config"])
    except EditorSyncError as e:
        fail(str(e))


def _registry(ctx: click.Context) -> ProfileRegistry:
    return ctx.obj["registry"]


def _json_output(ctx: click.Context) -> bool:
    return ctx.obj["output"] == "json"


@cli.command("list-editors")
@click.pass_context
def list_editors(ctx: click.Context) -> None:
    """Show known editors and their extension paths."""
    profiles = _registry(ctx).list_profiles()

    if _json_output(ctx):
        emit_json([p.to_dict() for p in profiles])
        return

    heading(f"Known editors ({len(profiles)})")
    click.echo()
    info(f"{'ID':<20} {'CLI Command':<15} Extensions Path")
    info("-" * 80)
    for p in profiles:
        cli_command = p.cli_command or "(none)"
        info(f"{p.id:<20} {cli_command:<15} {p.extensions_root}")
    click.echo()


@cli.command()
@click.argument("editor_id", required=False)
@click.pass_context
def status(ctx: click.Context, editor_id: str | None) -> None:
    """Show availability, extension count and CLI status."""
    registry = _registry(ctx)

    if editor_id is None:
        statuses = probe_all(registry)
        if _json_output(ctx):
            emit_json([s.to_dict() for s in statuses])
            return

        heading("Editor status")
        click.echo()
        info(f"{'Editor':<20} {'Available':<10} {'Exts':<6} {'CLI':<5} Path")
        info("-" * 80)
        for s in statuses:
            available = "yes" if s.available_overall else "no"
            cli_flag = "yes" if s.cli_available else "no"
            info(
                f"{s.profile.id:<20} {available:<10} {s.extension_count:<6} "
                f"{cli_flag:<5} {s.profile.extensions_root}"
            )
        clis = cli_status(registry)
        click.echo()
        if clis.any_available:
            info(f"Preferred CLI: {clis.preferred} ({clis.paths[clis.preferred]})")
        else:
            warn("No VS Code family CLI found on PATH.")
        click.echo()
        return

    try:
        profile = registry.get_profile(editor_id)
    except EditorNotFoundError:
        fail(f"Unknown editor: {editor_id}")

    s = probe(profile)
    if _json_output(ctx):
        emit_json(s.to_dict())
        return

    heading(f"Editor status: {profile.display_name}")
    info(f"ID:              {profile.id}")
    info(f"Extensions dir:  {profile.extensions_root}")
    info(f"Dir exists:      {s.directory_exists}")
    info(f"Index exists:    {s.index_file_exists}")
    info(f"Extension count: {s.extension_count}")
    info(f"CLI available:   {s.cli_available}")
    if s.cli_path:
        info(f"CLI path:        {s.cli_path}")
    if s.unavailable_reason:
        warn(f"Unavailable:     {s.unavailable_reason}")
    click.echo()


@cli.command()
@click.argument("editor_id")
@click.option("--scan", is_flag=True, help="Read package.json files instead of the index.")
@click.pass_context
def extensions(ctx: click.Context, editor_id: str, scan: bool) -> None:
    """List the extensions installed for an editor."""
    try:
        profile = _registry(ctx).get_profile(editor_id)
        if scan:
            found = scan_installed(profile.extensions_root)
            rows = [(e.id, e.version, str(e.path)) for e in found]
            payload = [e.to_dict() for e in found]
        else:
            entries = read_index(profile.extensions_root, profile.index_file_name)
            rows = [(e.id, e.version, e.relative_location) for e in entries]
            payload = [e.to_dict() for e in entries]
    except EditorSyncError as e:
        fail(str(e))

    if _json_output(ctx):
        emit_json(payload)
        return

    heading(f"Extensions for {profile.display_name} ({len(rows)})")
    click.echo()
    if not rows:
        info("No extensions found.")
        click.echo()
        return

    info(f"{'Extension ID':<45} {'Version':<15} Location")
    info("-" * 80)
    for ext_id, version, location in rows:
        info(f"{ext_id:<45} {version:<15} {location}")
    click.echo()


@cli.group("config")
def config_group() -> None:
    """Change editor paths and custom editors in the config file."""


@config_group.command("set-dir")
@click.argument("editor_id")
@click.argument("extensions_dir")
@click.pass_context
def config_set_dir(ctx: click.Context, editor_id: str, extensions_dir: str) -> None:
    """Point an editor at a different extensions directory."""
    config = ctx.obj["config"]
    if editor_id not in _registry(ctx):
        fail(f"Unknown editor: {editor_id}")

    custom = next((c for c in config.custom_editors if c.id == editor_id), None)
    if custom is not None:
        custom.extensions_dir = extensions_dir
    else:
        config.editors[editor_id] = EditorOverride(extensions_dir=extensions_dir)

    save_config(config, ctx.obj["config_path"])
    success(f"{editor_id} now uses {extensions_dir}")
    info(f"Config saved to {ctx.obj['config_path']}")


@config_group.command("add-editor")
@click.argument("editor_id")
@click.option("--dir", "extensions_dir", required=True, help="Extensions directory.")
@click.option("--name", default=None, help="Display name (defaults to the ID).")
@click.option("--index-file", default="extensions.json", show_default=True, help="Index file name.")
@click.option("--cli", "cli_command", default="", help="CLI command, if the editor has one.")
@click.pass_context
def config_add_editor(
    ctx: click.Context,
    editor_id: str,
    extensions_dir: str,
    name: str | None,
    index_file: str,
    cli_command: str,
) -> None:
    """Register an editor that is not built in."""
    config = ctx.obj["config"]
    if editor_id in _registry(ctx):
        fail(f"Editor already exists: {editor_id}")

    config.custom_editors.append(
        CustomEditorConfig(
            id=editor_id,
            name=name or editor_id,
            extensions_dir=extensions_dir,
            index_file=index_file,
            cli_command=cli_command,
        )
    )
    save_config(config, ctx.obj["config_path"])
    success(f"Added editor {editor_id}")
    info(f"Config saved to {ctx.obj['config_path']}")


@cli.group()
def sync() -> None:
    """Copy extensions from one editor into others."""


def _selection_options(func):
    func = click.option("--all", "all_extensions", is_flag=True, help="Sync every extension in the source index.")(func)
    func = click.option("--ext", "ext", default=None, help="Extension IDs, comma-separated.")(func)
    func = click.option("--to", "to", required=True, help="Target editor(s), comma-separated.")(func)
    func = click.option("--from", "source", required=True, help="Source editor (e.g. vscode).")(func)
    return func


def _requested_ids(engine: SyncEngine, source: str, ext: str | None, all_extensions: bool) -> list[str]:
    if not ext and not all_extensions:
        fail("--ext or --all is required")
    try:
        return engine.resolve_extension_ids(source, _split_csv(ext), all_extensions)
    except EditorSyncError as e:
        fail(f"Error reading source extensions: {e}")


@sync.command("run")
@_selection_options
@click.option("--overwrite", is_flag=True, help="Replace extensions that already exist in a target.")
@click.pass_context
def sync_run(
    ctx: click.Context,
    source: str,
    to: str,
    ext: str | None,
    all_extensions: bool,
    overwrite: bool,
) -> None:
    """Copy extensions and update each target's index."""
    engine = SyncEngine(_registry(ctx))
    extension_ids = _requested_ids(engine, source, ext, all_extensions)
    request = SyncRequest(
        source_editor=source,
        target_editors=_split_csv(to),
        extension_ids=extension_ids,
        overwrite_conflicts=overwrite,
    )

    try:
        report = engine.sync(request)
    except EditorSyncError as e:
        fail(f"Error syncing extensions: {e}")

    if _json_output(ctx):
        emit_json(report.to_dict())
    else:
        heading("Sync report")
        info(f"Source: {report.source_editor}")
        info(f"Extensions: {len(extension_ids)}")
        for result in report.results:
            heading(f"{result.target_editor}")
            if result.success:
                success("  Success")
            else:
                error("  Failed")
            info(
                f"  Copied: {result.copied_count}, Skipped: {result.skipped_count}, "
                f"Overwritten: {result.overwritten_count}"
            )
            if result.conflicts:
                warn(f"  Conflicts: {', '.join(result.conflicts)}")
            for msg in result.errors:
                error(f"  - {msg}")
        click.echo()
        info(
            f"Total: copied {report.total_copied}, skipped {report.total_skipped}, "
            f"errors {report.total_errors}"
        )
        if report.has_unresolved_conflicts:
            warn("Use --overwrite to replace existing extensions.")
        click.echo()

    if report.total_errors:
        sys.exit(EXIT_ERROR)
    if report.has_unresolved_conflicts:
        sys.exit(EXIT_CONFLICTS)


@sync.command("preview")
@_selection_options
@click.pass_context
def sync_preview(
    ctx: click.Context,
    source: str,
    to: str,
    ext: str | None,
    all_extensions: bool,
) -> None:
    """Show what a sync would do without changing anything."""
    engine = SyncEngine(_registry(ctx))
    extension_ids = _requested_ids(engine, source, ext, all_extensions)
    previews = engine.preview(
        SyncRequest(
            source_editor=source,
            target_editors=_split_csv(to),
            extension_ids=extension_ids,
        )
    )

    if _json_output(ctx):
        emit_json([p.to_dict() for p in previews])
        return

    heading("Sync preview")
    info(f"Source: {source}")
    info(f"Extensions to sync: {len(extension_ids)}")
    for p in previews:
        heading(p.target_editor)
        if p.error:
            error(f"  {p.error}")
            continue
        info(f"  New (to install): {p.new_count}")
        info(f"  Conflicts (overwrite): {p.overwrite_count}")
        if p.conflicts:
            warn(f"  Conflicting IDs: {', '.join(p.conflicts)}")
    click.echo()


@sync.command("conflicts")
@_selection_options
@click.pass_context
def sync_conflicts(
    ctx: click.Context,
    source: str,
    to: str,
    ext: str | None,
    all_extensions: bool,
) -> None:
    """List requested extensions that already exist in a target."""
    engine = SyncEngine(_registry(ctx))
    extension_ids = _requested_ids(engine, source, ext, all_extensions)
    try:
        conflicts = engine.detect_conflicts(source, to, extension_ids)
    except EditorSyncError as e:
        fail(f"Error detecting conflicts: {e}")

    if _json_output(ctx):
        emit_json(
            {
                "source": source,
                "target": to,
                "totalChecked": len(extension_ids),
                "conflictCount": len(conflicts),
                "conflicts": conflicts,
            }
        )
    else:
        heading(f"Sync conflicts: {source} -> {to}")
        info(f"Extensions checked: {len(extension_ids)}")
        info(f"Conflicts found: {len(conflicts)}")
        click.echo()
        if not conflicts:
            success("No conflicts found. All extensions can be synced safely.")
        else:
            info("Already present in target:")
            for c in conflicts:
                info(f"  - {styled(c, fg='yellow')}")
        click.echo()

    if conflicts:
        sys.exit(EXIT_CONFLICTS)
