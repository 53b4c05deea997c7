"""CLI for Inkshare - stroke geometry and stored canvases.

Usage:
    inkshare smooth POINTS.json
    inkshare simplify POINTS.json --tolerance 2.0
    inkshare list
    inkshare show CANVAS_ID
    inkshare replay CANVAS_ID EVENTS.jsonl
    inkshare clear CANVAS_ID
"""

import asyncio
import json
from pathlib import Path as FilePath
from typing import Any

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from inkshare.config import settings
from inkshare.controller import CanvasController
from inkshare.errors import InkshareError
from inkshare.geometry import (
    SIMPLIFY_TOLERANCE,
    SMOOTHING_STEPS,
    path_length,
    simplify_points,
    smooth_points,
)
from inkshare.logging_config import setup_cli_logging
from inkshare.store import FileStore, validate_canvas_id
from inkshare.types import CanvasDocument, EditResult, Point, ensure_finite

app = typer.Typer(
    name="inkshare",
    help="CLI for Inkshare shared canvases",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

StoreDirOption = typer.Option(None, "--store-dir", "-d", help="Canvas store directory")


@app.callback()
def main() -> None:
    """Shared drawing canvases: geometry tools and store inspection."""
    setup_cli_logging()


def _store(store_dir: FilePath | None) -> FileStore:
    return FileStore(store_dir or settings.store_dir)


def _check_canvas_id(canvas_id: str) -> None:
    try:
        validate_canvas_id(canvas_id)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e


# =============================================================================
# Geometry Commands
# =============================================================================


def _load_points(file: FilePath) -> list[Point]:
    """Read a JSON list of {"x": .., "y": ..} objects or [x, y] pairs."""
    try:
        raw = json.loads(file.read_text())
        if not isinstance(raw, list):
            raise ValueError("expected a JSON list of points")
        points = [
            Point(x=item[0], y=item[1]) if isinstance(item, list) else Point.model_validate(item)
            for item in raw
        ]
        ensure_finite(points)
    except (OSError, ValueError, IndexError, ValidationError) as e:
        console.print(f"[red]Invalid points file {file}: {e}[/red]")
        raise typer.Exit(1) from e
    return points


def _print_points(points: list[Point]) -> None:
    typer.echo(json.dumps([p.to_dict() for p in points]))


@app.command("smooth")
def smooth(
    file: FilePath = typer.Argument(..., help="JSON file with raw points"),
    steps: int = typer.Option(SMOOTHING_STEPS, "--steps", "-s", help="Samples per window"),
) -> None:
    """Smooth raw points with a Catmull-Rom spline and print them as JSON.

    Fewer than 4 points are printed unchanged.
    """
    if steps < 1:
        console.print("[red]Steps must be at least 1[/red]")
        raise typer.Exit(1)

    _print_points(smooth_points(_load_points(file), steps))


@app.command("simplify")
def simplify(
    file: FilePath = typer.Argument(..., help="JSON file with points"),
    tolerance: float = typer.Option(
        SIMPLIFY_TOLERANCE, "--tolerance", "-t", help="Max perpendicular deviation"
    ),
) -> None:
    """Simplify a polyline (Ramer-Douglas-Peucker) and print it as JSON.

    A summary table goes to stderr so stdout stays valid JSON.
    """
    if tolerance < 0:
        console.print("[red]Tolerance must not be negative[/red]")
        raise typer.Exit(1)

    points = _load_points(file)
    simplified = simplify_points(points, tolerance)
    _print_points(simplified)

    table = Table(title="Simplification", box=box.ROUNDED)
    table.add_column("", style="cyan")
    table.add_column("Points", justify="right")
    table.add_column("Length", justify="right")
    table.add_row("Input", str(len(points)), f"{path_length(points):.2f}")
    table.add_row("Output", str(len(simplified)), f"{path_length(simplified):.2f}")
    err_console.print(table)


# =============================================================================
# Canvas Commands
# =============================================================================


@app.command("list")
def list_canvases(store_dir: FilePath | None = StoreDirOption) -> None:
    """List canvases in the store."""
    store = _store(store_dir)
    canvas_ids = asyncio.run(store.list_canvases())

    if not canvas_ids:
        console.print(f"[yellow]No canvases in {store.base_dir}[/yellow]")
        return

    for canvas_id in canvas_ids:
        console.print(canvas_id)


def _print_document(document: CanvasDocument) -> None:
    console.print(
        f"[bold]Canvas {document.canvas_id}[/bold]  "
        f"v{document.version}  "
        f"{document.stroke_count} strokes ({document.stroke_limit_percentage:.0%} of limit)  "
        f"updated {document.last_updated.strftime('%Y-%m-%d %H:%M:%S')}"
    )
    if not document.strokes:
        console.print("[yellow]Canvas is empty[/yellow]")
        return

    table = Table(title="Strokes", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Stroke ID", style="cyan")
    table.add_column("Author", style="green")
    table.add_column("Color")
    table.add_column("Width", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Authored", style="dim")

    for index, stroke in enumerate(document.strokes, start=1):
        table.add_row(
            str(index),
            stroke.id,
            stroke.author_id,
            f"[{stroke.color[:7]}]{stroke.color}[/]",
            f"{stroke.width:g}",
            str(stroke.point_count),
            stroke.authored_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)


@app.command("show")
def show(
    canvas_id: str = typer.Argument(..., help="Canvas ID"),
    store_dir: FilePath | None = StoreDirOption,
) -> None:
    """Show a stored canvas and its strokes."""
    _check_canvas_id(canvas_id)
    try:
        document = asyncio.run(_store(store_dir).load_canvas(canvas_id))
    except InkshareError as e:
        console.print(f"[red]Failed to load canvas: {e}[/red]")
        raise typer.Exit(1) from e

    _print_document(document)


def _load_events(file: FilePath) -> list[dict[str, Any]]:
    try:
        lines = file.read_text().splitlines()
    except OSError as e:
        console.print(f"[red]Cannot read events file {file}: {e}[/red]")
        raise typer.Exit(1) from e

    events: list[dict[str, Any]] = []
    for line_no, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError as e:
            console.print(f"[red]Line {line_no}: invalid JSON: {e}[/red]")
            raise typer.Exit(1) from e
        if not isinstance(event, dict) or "type" not in event:
            console.print(f"[red]Line {line_no}: event must be an object with a type[/red]")
            raise typer.Exit(1)
        event["_line"] = line_no
        events.append(event)
    return events


def _apply_event(controller: CanvasController, event: dict[str, Any]) -> str:
    """Feed one recorded input event to the controller. Returns the outcome name."""
    match event["type"]:
        case "start":
            started = controller.start_stroke(
                Point(x=event["x"], y=event["y"]),
                event.get("color", "#000000"),
                event.get("width", 2.0),
            )
            return "started" if started else "ignored"
        case "point":
            appended = controller.append_point(Point(x=event["x"], y=event["y"]))
            return "point" if appended else "ignored"
        case "cancel":
            return "cancelled" if controller.cancel_stroke() else "ignored"
        case "end":
            result: EditResult = controller.finalize_stroke()
        case "undo":
            result = controller.undo()
        case "redo":
            result = controller.redo()
        case "clear":
            result = controller.clear()
        case other:
            raise ValueError(f"unknown event type {other!r}")
    return f"{event['type']}:{result.outcome.value}"


async def _replay_async(
    canvas_id: str, store: FileStore, events: list[dict[str, Any]]
) -> tuple[dict[str, int], CanvasDocument]:
    outcomes: dict[str, int] = {}
    async with CanvasController(canvas_id, store) as controller:
        for event in events:
            try:
                outcome = _apply_event(controller, event)
            except (KeyError, ValueError) as e:
                raise ValueError(f"Line {event['_line']}: {e}") from e
            outcomes[outcome] = outcomes.get(outcome, 0) + 1
        await controller.reconciler.wait_for_pending_writes()
    return outcomes, await store.load_canvas(canvas_id)


@app.command("replay")
def replay(
    canvas_id: str = typer.Argument(..., help="Canvas ID"),
    events_file: FilePath = typer.Argument(..., help="JSON lines file of input events"),
    store_dir: FilePath | None = StoreDirOption,
) -> None:
    """Replay recorded input events against a stored canvas.

    Event types: start (x, y, color, width), point (x, y), end, cancel,
    undo, redo, clear.
    """
    _check_canvas_id(canvas_id)
    events = _load_events(events_file)

    try:
        outcomes, document = asyncio.run(_replay_async(canvas_id, _store(store_dir), events))
    except (ValueError, InkshareError) as e:
        console.print(f"[red]Replay failed: {e}[/red]")
        raise typer.Exit(1) from e

    table = Table(title=f"Replayed {len(events)} events", box=box.ROUNDED)
    table.add_column("Outcome", style="cyan")
    table.add_column("Count", justify="right")
    for outcome, count in sorted(outcomes.items()):
        table.add_row(outcome, str(count))
    console.print(table)

    _print_document(document)


@app.command("clear")
def clear(
    canvas_id: str = typer.Argument(..., help="Canvas ID"),
    store_dir: FilePath | None = StoreDirOption,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Remove every stroke from a stored canvas."""
    _check_canvas_id(canvas_id)
    if not yes:
        typer.confirm(f"Clear canvas {canvas_id}?", abort=True)

    try:
        asyncio.run(_store(store_dir).clear_canvas(canvas_id))
    except InkshareError as e:
        console.print(f"[red]Failed to clear canvas: {e}[/red]")
        raise typer.Exit(1) from e

    console.print(f"[green]Canvas cleared: {canvas_id}[/green]")


# Entry point
if __name__ == "__main__":
    app()
