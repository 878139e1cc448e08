"""CLI entry point for the first interactive trace auditor."""

import json
import logging
import typer
from pathlib import Path
from rich.console import Console
from rich.logging import RichHandler
from first_interactive.config import DEFAULT_POLICY, DEFAULT_SCHEMA_VERSION, DEFAULT_TOP_N, LONG_TASK_THRESHOLD_MS
from first_interactive.errors import FirstInteractiveError
from first_interactive.interactive import compute_first_interactive
from first_interactive.models import LongTask, TimingReferences
from first_interactive.trace import analyze_trace

app = typer.Typer(
    help="First Interactive - Audit browser traces for time to first interactive",
    no_args_is_help=True
)
console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True
    )


def _validate_file(path: Path, label: str) -> None:
    if not path.exists():
        console.print(f"[red]Error:[/red] {label} not found: {path}")
        raise typer.Exit(code=1)

    if not path.is_file():
        console.print(f"[red]Error:[/red] Path is not a file: {path}")
        raise typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """First Interactive - Audit browser traces for time to first interactive."""
    if ctx.invoked_subcommand is None:
        # Show help if no subcommand is provided
        pass


@app.command()
def analyze(
    trace: Path = typer.Option(..., "--trace", help="Path to Chrome trace file"),
    out: Path = typer.Option("analysis.json", "--out", help="Output JSON file path"),
    long_task_ms: float = typer.Option(LONG_TASK_THRESHOLD_MS, "--long-task-ms", help="Threshold for long tasks in milliseconds"),
    top_n: int = typer.Option(DEFAULT_TOP_N, "--top-n", help="Number of longest tasks to report"),
    schema_version: str = typer.Option(DEFAULT_SCHEMA_VERSION, "--schema-version", help="Schema version to emit in JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Analyze a Chrome trace and generate analysis.json."""
    _configure_logging(verbose)
    _validate_file(trace, "Trace file")

    console.print(f"[blue]Analyzing trace:[/blue] {trace}")
    console.print(f"[blue]Output file:[/blue] {out}")
    console.print(f"[blue]Long task threshold:[/blue] {long_task_ms}ms")

    try:
        result = analyze_trace(
            trace_path=str(trace),
            long_task_ms=long_task_ms,
            top_n=top_n,
            schema_version=schema_version
        )

        with open(out, 'w') as f:
            json.dump(result, f, indent=2)

    except Exception as e:
        console.print(f"[red]Error during analysis:[/red] {e}")
        raise typer.Exit(code=1)

    if result["first_interactive"] is not None:
        console.print(f"[green]✓[/green] First interactive: {result['first_interactive']['timeInMs']:.1f}ms")
    else:
        console.print(f"[yellow]First interactive unavailable:[/yellow] {result['error']['message']}")
    console.print(f"[green]✓[/green] Analysis complete: {out}")


@app.command()
def compute(
    input_path: Path = typer.Option(..., "--input", help="JSON file with timings and long_tasks"),
    out: Path = typer.Option("first_interactive.json", "--out", help="Output JSON file path"),
    long_task_ms: float = typer.Option(LONG_TASK_THRESHOLD_MS, "--long-task-ms", help="Threshold for long tasks in milliseconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Compute first interactive from pre-extracted timings and long tasks."""
    _configure_logging(verbose)
    _validate_file(input_path, "Input file")

    try:
        with open(input_path, "r") as f:
            data = json.load(f)
        timings = TimingReferences.from_dict(data.get("timings") or {})
        long_tasks = sorted(
            (LongTask.from_dict(item) for item in data.get("long_tasks") or []),
            key=lambda task: task.start
        )
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        console.print(f"[red]Error:[/red] Invalid input: {e}")
        raise typer.Exit(code=1)

    policy = DEFAULT_POLICY.with_overrides(long_task_threshold_ms=long_task_ms)
    try:
        result = compute_first_interactive(timings, long_tasks, policy)
    except FirstInteractiveError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    with open(out, "w") as f:
        json.dump(result.to_dict(), f, indent=2)

    console.print(f"[green]✓[/green] First interactive: {result.time_in_ms:.1f}ms (timestamp {result.timestamp:.0f})")
    console.print(f"[green]✓[/green] Result written to: {out}")


if __name__ == "__main__":
    app()
