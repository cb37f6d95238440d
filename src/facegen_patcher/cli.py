"""CLI for the facegen patcher.

Commands:
    init-db                  - Create the record store tables
    import-records <dump>    - Load a JSON record dump into the store
    patch                    - Match targets to templates and stage facegen
    show-npc <form-key>      - Show an NPC's records and facegen status
    stats                    - Show record store statistics
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from sqlalchemy import Engine, func, select

from facegen_patcher.config import ConfigurationError, Settings, settings
from facegen_patcher.db import init_db, make_engine, session_scope
from facegen_patcher.matching import AssetLayout, PatchRun, RunReport, parse_patched_keyword
from facegen_patcher.models import FormKey, NpcRecord, VoiceTypeRecord
from facegen_patcher.schemas import RecordDump
from facegen_patcher.store import SqlEntityStore, import_dump

app = typer.Typer(
    name="facegen-patcher",
    help="Facegen patcher: give male NPCs matching female faces from template NPCs",
    no_args_is_help=True,
)
console = Console()

DatabaseUrl = Annotated[
    str | None, typer.Option("--database-url", help="SQLAlchemy URL of the record store")
]
DataDir = Annotated[
    Path | None, typer.Option("--data-dir", help="Game Data folder with the source facegen")
]
OutputDir = Annotated[
    Path | None, typer.Option("--output-dir", help="Output mod folder")
]


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def open_store(database_url: str | None) -> Engine:
    """Engine for the record store, with tables created."""
    engine = make_engine(database_url)
    init_db(engine)
    return engine


def fail(message: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {message}")
    return typer.Exit(1)


def patched_keyword() -> str:
    try:
        return parse_patched_keyword(settings.patched_keyword)
    except ConfigurationError as e:
        raise fail(str(e)) from None


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────


@app.command("init-db")
def init_db_command(database_url: DatabaseUrl = None):
    """Create the record store tables if they don't exist."""
    open_store(database_url)
    console.print("[green]Record store initialized.[/green]")


@app.command("import-records")
def import_records(
    dump_path: Annotated[Path, typer.Argument(help="JSON record dump")],
    replace: Annotated[
        bool, typer.Option("--replace", help="Clear the store before importing")
    ] = False,
    database_url: DatabaseUrl = None,
):
    """Validate a record dump and load it into the store."""
    if not dump_path.is_file():
        raise fail(f"Dump not found: {dump_path}")

    try:
        dump = RecordDump.model_validate_json(dump_path.read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"[red]Invalid record dump:[/red] {dump_path}")
        console.print(str(e))
        raise typer.Exit(1) from None

    engine = open_store(database_url)
    try:
        with session_scope(engine) as session:
            summary = import_dump(session, dump, replace=replace)
    except ValueError as e:
        raise fail(str(e)) from None

    console.print(
        f"[green]Imported[/green] {summary.npcs} NPC rows and {summary.voice_types} voice types "
        f"from {len(summary.plugins)} plugin(s)"
    )


@app.command()
def patch(
    data_dir: DataDir = None,
    output_dir: OutputDir = None,
    lists_dir: Annotated[
        Path | None, typer.Option("--lists-dir", help="Folder with the configuration lists")
    ] = None,
    seed: Annotated[
        int | None, typer.Option("--seed", help="Random seed for reproducible runs")
    ] = None,
    batch_size: Annotated[
        int | None, typer.Option("--batch-size", min=1, help="Copy operations per batch")
    ] = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Match without copying or saving overrides")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log every decision")
    ] = False,
    database_url: DatabaseUrl = None,
):
    """Match every target NPC to a template and stage its facegen."""
    configure_logging(verbose)

    overrides: dict[str, Any] = {
        "data_dir": data_dir,
        "output_dir": output_dir,
        "lists_dir": lists_dir,
        "random_seed": seed,
        "copy_batch_size": batch_size,
        "database_url": database_url,
    }
    run_settings = settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})

    engine = open_store(run_settings.database_url)
    try:
        with session_scope(engine) as session:
            store = SqlEntityStore(session, patch_plugin=run_settings.patch_plugin)
            report = PatchRun(run_settings, store, dry_run=dry_run).execute()
    except ConfigurationError as e:
        raise fail(str(e)) from None
    except OSError as e:
        raise fail(f"Copying facegen failed: {e}") from None

    print_report(report, run_settings)


@app.command("show-npc")
def show_npc(
    form_key: Annotated[str, typer.Argument(help="FormKey, e.g. 01A694:Skyrim.esm")],
    data_dir: DataDir = None,
    output_dir: OutputDir = None,
    database_url: DatabaseUrl = None,
):
    """Show every version of an NPC record and its facegen status."""
    try:
        key = FormKey.parse(form_key)
    except ValueError as e:
        raise fail(str(e)) from None
    keyword = patched_keyword()

    engine = open_store(database_url)
    with session_scope(engine) as session:
        rows = list(
            session.scalars(
                select(NpcRecord)
                .where(NpcRecord.origin_plugin == key.plugin, NpcRecord.form_id == key.form_id)
                .order_by(NpcRecord.load_index)
            )
        )
        if not rows:
            raise fail(f"NPC not found: {key}")

        table = Table(title=f"Records for {key}")
        table.add_column("Plugin")
        table.add_column("Load", justify="right")
        table.add_column("EditorID")
        table.add_column("Race")
        table.add_column("Female")
        table.add_column("Voice")
        table.add_column("Patched")
        for row in rows:
            table.add_row(
                row.plugin,
                str(row.load_index),
                row.editor_id or "-",
                row.race or "-",
                "yes" if row.female else "no",
                row.voice or "-",
                "yes" if row.has_keyword(keyword) else "no",
            )
        console.print(table)

    panel_content: list[str] = []
    layouts = (
        ("Source", AssetLayout(data_dir or settings.data_dir)),
        ("Output", AssetLayout(output_dir or settings.output_dir)),
    )
    for name, layout in layouts:
        mesh = layout.mesh_path(key)
        tint = layout.tint_path(key)
        panel_content.append(f"[bold]{name} mesh:[/bold] {_presence(mesh)} {mesh}")
        panel_content.append(f"[bold]{name} tint:[/bold] {_presence(tint)} {tint}")
    console.print(Panel("\n".join(panel_content), title="Facegen"))


@app.command()
def stats(database_url: DatabaseUrl = None):
    """Show record store statistics."""
    keyword = patched_keyword()
    engine = open_store(database_url)
    with session_scope(engine) as session:
        plugin_counts = dict(
            session.execute(
                select(NpcRecord.plugin, func.count()).group_by(NpcRecord.plugin)
            ).all()
        )
        race_counts = dict(
            session.execute(
                select(NpcRecord.race, func.count()).group_by(NpcRecord.race)
            ).all()
        )
        voice_types = session.scalar(select(func.count()).select_from(VoiceTypeRecord))
        patch_rows = list(
            session.scalars(select(NpcRecord).where(NpcRecord.plugin == settings.patch_plugin))
        )
        patched = sum(1 for row in patch_rows if row.has_keyword(keyword))

    console.print(Panel(
        f"[bold]NPC rows:[/bold] {sum(plugin_counts.values())}\n"
        f"[bold]Voice types:[/bold] {voice_types}\n"
        f"[bold]Patched NPCs:[/bold] {patched}",
        title="Facegen Patcher Statistics",
    ))

    if plugin_counts:
        table = Table(title="Records by Plugin")
        table.add_column("Plugin")
        table.add_column("Count", justify="right")
        for plugin, count in sorted(plugin_counts.items(), key=lambda x: -x[1]):
            table.add_row(plugin, str(count))
        console.print(table)

    if race_counts:
        table = Table(title="Records by Race")
        table.add_column("Race")
        table.add_column("Count", justify="right")
        for race, count in sorted(race_counts.items(), key=lambda x: -x[1]):
            table.add_row(race or "(none)", str(count))
        console.print(table)


# ─────────────────────────────────────────────────────────────────────────────
# Output
# ─────────────────────────────────────────────────────────────────────────────


def _presence(path: Path) -> str:
    return "[green]present[/green]" if path.is_file() else "[red]missing[/red]"


def print_report(report: RunReport, run_settings: Settings) -> None:
    """Render a run report as rich panels and tables."""
    title = "Patch Run (dry run)" if report.dry_run else "Patch Run"
    copies = f"{report.enqueued} queued" if report.dry_run else f"{report.copied} copied"
    console.print(Panel(
        f"[bold]Records:[/bold] {report.records}\n"
        f"[bold]Templates:[/bold] {report.templates}\n"
        f"[bold]Targets:[/bold] {report.targets}\n"
        f"[bold]Matched:[/bold] {report.matched}\n"
        f"[bold]Fallback:[/bold] {report.fallback}\n"
        f"[bold]Unpatched:[/bold] {report.unpatched}\n"
        f"[bold]Already patched:[/bold] {report.already_patched}\n"
        f"[bold]Facegen files:[/bold] {copies} in {len(report.flush_sizes)} batch(es)\n"
        f"[bold]Output:[/bold] {run_settings.output_dir}",
        title=title,
    ))

    if report.template_counts:
        table = Table(title="Templates by Race")
        table.add_column("Race")
        table.add_column("Templates", justify="right")
        for race, count in report.template_counts.items():
            table.add_row(race, str(count))
        console.print(table)

    if report.skipped_templates:
        table = Table(title="Skipped Templates")
        table.add_column("Template")
        table.add_column("Plugin")
        table.add_column("Reason")
        for label, skip in sorted(report.skipped_templates.items()):
            table.add_row(label, skip.plugin, skip.reason)
        console.print(table)

    if report.unpatched_reasons:
        table = Table(title="Unpatched NPCs")
        table.add_column("NPC")
        table.add_column("Reason")
        for label, reason in sorted(report.unpatched_reasons.items()):
            table.add_row(label, reason)
        console.print(table)

    if report.filtered:
        console.print(f"[yellow]Excluded by name:[/yellow] {', '.join(sorted(report.filtered))}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
