"""CLI entry point for coden."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from coden.config import CodenConfig, load_config
from coden.config.loader import DEFAULT_CONFIG_TEMPLATE
from coden.fingerprint import generate_fingerprint, language_for_path
from coden.integration import TrackingSession, WorkspaceWatcher, dispatch_saves
from coden.ledger import StatusSummary
from coden.log import configure_logging

app = typer.Typer(
    name="coden",
    help="Track what happens to machine-inserted code after it lands.",
)

config_app = typer.Typer(help="Manage coden configuration.")
app.add_typer(config_app, name="config")

# Global state
_config: CodenConfig | None = None


def _get_config() -> CodenConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to coden.yaml")
    ] = None,
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="debug | info | warn | error")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)
    if log_level is not None:
        if log_level.lower() not in ("debug", "info", "warn", "error"):
            rprint(f"[red]Unknown log level:[/red] {log_level}")
            raise typer.Exit(1)
        _config = _config.model_copy(update={"log_level": log_level.lower()})
    configure_logging(_config.log_level, _config.log_format)


def _open_session(root: Path) -> TrackingSession:
    if not root.is_dir():
        rprint(f"[red]Not a directory:[/red] {root}")
        raise typer.Exit(1)
    session = TrackingSession(root, _get_config())
    session.load()
    return session


def _read_document(root: Path, document_id: str) -> str:
    path = root / document_id
    try:
        return path.read_text(encoding="utf-8") if path.is_file() else ""
    except (OSError, UnicodeDecodeError):
        return ""


def _summary_table(title: str, summaries: dict[str, StatusSummary]) -> Table:
    table = Table(title=title)
    table.add_column("File", style="cyan")
    table.add_column("Active", justify="right")
    table.add_column("Modified", justify="right", style="yellow")
    table.add_column("Deleted", justify="right", style="red")
    for file, s in summaries.items():
        table.add_row(file, str(s.active), str(s.modified_count), str(s.deleted_count))
    return table


@app.command()
def fingerprint(
    file: Path = typer.Argument(..., help="Source file to fingerprint"),
    language: str | None = typer.Option(None, "--language", "-l", help="Language tag (default: from extension)"),
) -> None:
    """Print the fingerprint of a file's content."""
    if not file.is_file():
        rprint(f"[red]File not found:[/red] {file}")
        raise typer.Exit(1)
    text = file.read_text(encoding="utf-8", errors="replace")
    fp = generate_fingerprint(text, language or language_for_path(file), _get_config().fingerprint)

    rprint(Panel(
        f"[bold]Hash:[/bold] {fp.hash}\n"
        f"[bold]Language:[/bold] {fp.language}\n"
        f"[bold]Lines:[/bold] {fp.line_count}\n"
        f"[bold]Identifiers:[/bold] {', '.join(fp.identifiers) or '-'}\n"
        f"[bold]Patterns:[/bold] {', '.join(fp.semantic_patterns) or '-'}",
        title=str(file),
    ))
    if fp.structural_elements:
        table = Table(title=f"Structural elements ({len(fp.structural_elements)})")
        table.add_column("Kind", style="cyan")
        table.add_column("Name")
        table.add_column("Importance", justify="right")
        for el in fp.structural_elements:
            table.add_row(el.kind, el.name, f"{el.importance:.1f}")
        rprint(table)


@app.command()
def status(
    root: Path = typer.Argument(Path("."), help="Workspace root"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
) -> None:
    """Show tracked fragments per file."""
    session = _open_session(root)
    summaries = {
        file: session.ledger.get_status_summary(file, _read_document(root, file))
        for file in session.ledger.files()
    }
    if as_json:
        print(json.dumps({f: s.model_dump() for f, s in summaries.items()}, indent=2))
        return
    if not summaries:
        rprint("[yellow]No tracked fragments.[/yellow]")
        return
    rprint(_summary_table(f"Tracked files ({len(summaries)})", summaries))


@app.command()
def validate(
    root: Path = typer.Argument(Path("."), help="Workspace root"),
) -> None:
    """Re-check every tracked file on disk and reclassify false deletions."""
    session = _open_session(root)
    files = session.ledger.files()
    if not files:
        rprint("[yellow]No tracked fragments.[/yellow]")
        return

    summaries: dict[str, StatusSummary] = {}
    for file in files:
        session.on_document_saved(file, _read_document(root, file))
        summaries[file] = session.get_status_summary(file)
    rprint(_summary_table(f"Validated {len(files)} files", summaries))
    for message in session.store.diagnostics:
        rprint(f"  [yellow]warn:[/yellow] {message}")


@app.command()
def watch(
    root: Path = typer.Argument(Path("."), help="Workspace root"),
    debounce: float | None = typer.Option(None, "--debounce", help="Seconds between events per path"),
    timeout: float = typer.Option(0.0, "--timeout", help="Stop after N seconds (0 = until interrupted)"),
) -> None:
    """Track saves on disk until interrupted."""
    session = _open_session(root)
    cfg = session.config.integration
    watcher = WorkspaceWatcher(
        root,
        debounce_seconds=cfg.debounce_seconds if debounce is None else debounce,
        ignore_patterns=cfg.ignore_patterns,
    )
    watcher.start()
    rprint(f"[bold]Watching[/bold] {root.resolve()} (Ctrl+C to stop)")
    started = time.monotonic()
    try:
        while not timeout or time.monotonic() - started < timeout:
            time.sleep(0.2)
            for file in dispatch_saves(session, watcher.drain()):
                s = session.get_status_summary(file)
                rprint(
                    f"[cyan]{file}[/cyan] active={s.active} "
                    f"modified={s.modified_count} deleted={s.deleted_count}"
                )
            session.sweep()
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(by_alias=True), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default coden.yaml in current directory."""
    target = Path("coden.yaml")
    if target.exists() and not force:
        rprint("[yellow]coden.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
