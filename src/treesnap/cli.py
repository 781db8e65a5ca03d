"""CLI for treesnap."""

import logging
import os
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .api import default_title, snap_directory
from .config import SnapConfig, load_snap_config
from .constants import TREESNAP_VERSION
from .core import GenerationStatus, IntegrityLevel, IntegrityStatus, ScanOptions, ScanProgress
from .errors import ConfigError
from .scanner import FolderScanner
from .utils import humanize_size


app = typer.Typer(help="""\
Snapshot a directory tree into a single self-contained, browsable HTML file.
Records folder and file sizes and timestamps, with optional content hashes
and image integrity checks.""")

console = Console()

EXIT_CANCELLED = 130


def _configure_logging(verbose: bool) -> None:
    """Route log records through rich; DEBUG=1 has the same effect as --verbose."""
    level = logging.DEBUG if verbose or os.environ.get("DEBUG") else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@contextmanager
def _cancel_on_interrupt() -> Iterator[threading.Event]:
    """Turn Ctrl+C into a cancellation event for the duration of the block."""
    cancel = threading.Event()

    def handler(signum: int, frame: object) -> None:
        cancel.set()

    # Signal handlers can only be installed from the main thread
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return

    old_handler = signal.signal(signal.SIGINT, handler)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, old_handler)


def _load_config(config_path: Optional[Path]) -> SnapConfig:
    try:
        return load_snap_config(config_path)
    except ConfigError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)


def _require_root(root: Path) -> str:
    """Validate the root folder before any output is produced."""
    if not root.is_dir():
        console.print(f"[red]✗[/red] Input path does not exist: {root}")
        raise typer.Exit(1)
    return os.path.abspath(root)


def _default_output(root: str) -> Path:
    """Output file named after the root folder, in the current directory."""
    name = os.path.basename(root) or "snapshot"
    return Path.cwd() / f"{name}.html"


def _pick(flag, default):
    return default if flag is None else flag


@app.command()
def snap(
    root: Path = typer.Argument(..., help="Folder to snapshot"),
    outfile: Optional[Path] = typer.Option(None, "--outfile", "-o", help="Output HTML file (default: <folder name>.html)"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Page title (default: 'Snapshot of <folder>')"),
    hidden: Optional[bool] = typer.Option(None, "--hidden/--skip-hidden", help="Include hidden files and folders"),
    system: Optional[bool] = typer.Option(None, "--system/--skip-system", help="Include system files and folders"),
    hash_files: Optional[bool] = typer.Option(None, "--hash/--no-hash", help="Record SHA-256 of file contents"),
    integrity: Optional[IntegrityLevel] = typer.Option(None, "--integrity", "-i", help="Image integrity validation level"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Scan worker threads"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-x", help="Gitignore-style pattern to leave out (repeatable)"),
    link: Optional[str] = typer.Option(None, "--link", help="Make files clickable, linking under this root"),
    template: Optional[Path] = typer.Option(None, "--template", help="Template file (default: bundled template)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (default: ./.treesnap.yaml)"),
    open_browser: Optional[bool] = typer.Option(None, "--open/--no-open", help="Open the snapshot when done"),
    silent: bool = typer.Option(False, "--silent", "-s", help="Print nothing except errors"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Scan a folder and write its snapshot file."""
    _configure_logging(verbose)
    cfg = _load_config(config)
    root_path = _require_root(root)

    output = outfile or _default_output(root_path)
    if not output.parent.exists():
        console.print(f"[red]✗[/red] Output path does not exist: {output.parent}")
        raise typer.Exit(1)

    template_path = template or cfg.template
    snap_kwargs = dict(
        title=title or default_title(root_path),
        skip_hidden=not _pick(hidden, not cfg.skip_hidden),
        skip_system=not _pick(system, not cfg.skip_system),
        enable_hashing=_pick(hash_files, cfg.enable_hashing),
        integrity_level=_pick(integrity, cfg.integrity_level),
        max_concurrency=_pick(workers, cfg.max_concurrency),
        exclude=list(cfg.exclude) + list(exclude or []),
        link_root=link if link is not None else cfg.link_root,
        template_path=str(template_path) if template_path else None,
    )

    with _cancel_on_interrupt() as cancel:
        if silent:
            result = snap_directory(root_path, str(output), cancel=cancel, **snap_kwargs)
        else:
            with console.status("Scanning...") as status:
                def on_progress(p: ScanProgress) -> None:
                    status.update(p.message)

                def on_write(written: int, total: int) -> None:
                    status.update(f"Writing output... {written}/{total}")

                result = snap_directory(
                    root_path, str(output),
                    progress=on_progress,
                    write_progress=on_write,
                    cancel=cancel,
                    **snap_kwargs,
                )

    if result.status == GenerationStatus.CANCELLED:
        if not silent:
            console.print("[yellow]⚠[/yellow] Snapshot cancelled")
        raise typer.Exit(EXIT_CANCELLED)

    if result.status == GenerationStatus.ERROR:
        console.print(f"[red]✗[/red] {result.error}")
        raise typer.Exit(1)

    if not silent:
        scan = result.scan
        console.print(f"[green]✓[/green] Snapshot written to {result.output_path}")
        if scan is not None:
            console.print(
                f"[dim]{scan.total_files} files in {scan.total_directories} folders, "
                f"{humanize_size(scan.total_size)}[/dim]"
            )

    if _pick(open_browser, cfg.open_in_browser):
        typer.launch(str(result.output_path))


@app.command()
def scan(
    root: Path = typer.Argument(..., help="Folder to scan"),
    hidden: Optional[bool] = typer.Option(None, "--hidden/--skip-hidden", help="Include hidden files and folders"),
    system: Optional[bool] = typer.Option(None, "--system/--skip-system", help="Include system files and folders"),
    hash_files: Optional[bool] = typer.Option(None, "--hash/--no-hash", help="Record SHA-256 of file contents"),
    integrity: Optional[IntegrityLevel] = typer.Option(None, "--integrity", "-i", help="Image integrity validation level"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Scan worker threads"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-x", help="Gitignore-style pattern to leave out (repeatable)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (default: ./.treesnap.yaml)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Scan a folder and print a summary without writing a snapshot."""
    _configure_logging(verbose)
    cfg = _load_config(config)
    root_path = _require_root(root)

    options_kwargs = dict(
        root=root_path,
        skip_hidden=not _pick(hidden, not cfg.skip_hidden),
        skip_system=not _pick(system, not cfg.skip_system),
        enable_hashing=_pick(hash_files, cfg.enable_hashing),
        integrity_level=_pick(integrity, cfg.integrity_level),
        exclude=tuple(cfg.exclude) + tuple(exclude or []),
    )
    max_concurrency = _pick(workers, cfg.max_concurrency)
    if max_concurrency is not None:
        options_kwargs["max_concurrency"] = max_concurrency
    options = ScanOptions(**options_kwargs)

    with _cancel_on_interrupt() as cancel, console.status("Scanning...") as status:
        result = FolderScanner().scan(
            options,
            progress=lambda p: status.update(p.message),
            cancel=cancel,
        )

    if result.error:
        console.print(f"[red]✗[/red] {result.error}")
        raise typer.Exit(1)

    table = Table(title=f"Scan of {root_path}")
    table.add_column("Item", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Folders", str(result.total_directories))
    table.add_row("Files", str(result.total_files))
    table.add_row("Total size", humanize_size(result.total_size))

    if options.integrity_level != IntegrityLevel.NONE:
        summary = result.integrity_summary()
        labels = {
            IntegrityStatus.VALID: "[green]Valid images[/green]",
            IntegrityStatus.INVALID_SIGNATURE: "[red]Invalid signature[/red]",
            IntegrityStatus.DECODE_FAILED: "[red]Decode failed[/red]",
            IntegrityStatus.NOT_AN_IMAGE: "[dim]Not an image[/dim]",
            IntegrityStatus.UNKNOWN: "[dim]Unknown[/dim]",
        }
        for status_value, label in labels.items():
            table.add_row(label, str(summary.get(status_value, 0)))

    console.print(table)

    if result.cancelled:
        console.print("[yellow]⚠[/yellow] Scan cancelled; counts are partial")
        raise typer.Exit(EXIT_CANCELLED)


@app.command()
def version():
    """Show the treesnap version."""
    console.print(f"treesnap {TREESNAP_VERSION}")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
