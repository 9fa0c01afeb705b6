"""knitcheck CLI: structural defect analysis for DI wiring."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from knitcheck import __version__
from knitcheck.config.settings import AnalysisSettings, load_settings
from knitcheck.core.errors import ComponentLoadError, SettingsError
from knitcheck.core.symbols import Component, Severity

console = Console()

app = typer.Typer(
    name="knitcheck",
    help="knitcheck: find cycles, ambiguity and unresolved bindings in DI wiring.",
    no_args_is_help=True,
)

_SEVERITY_STYLES: dict[Severity, str] = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}


def _version_callback(value: bool) -> None:
    """Print the version and exit."""
    if value:
        console.print(f"knitcheck v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """knitcheck: find cycles, ambiguity and unresolved bindings in DI wiring."""


def _load_components(input_path: Path) -> list[Component]:
    from knitcheck.core.loader import load_components

    try:
        return load_components(input_path)
    except ComponentLoadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e


def _load_settings(config: Path | None) -> AnalysisSettings:
    try:
        return load_settings(config)
    except SettingsError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e


@app.command()
def analyze(
    input_path: Path = typer.Argument(..., help="JSON file with extracted component records."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the graph export JSON to this file."
    ),
    project_name: Optional[str] = typer.Option(
        None, "--project-name", help="Project name for the export (default: file stem)."
    ),
    knit_version: Optional[str] = typer.Option(
        None, "--knit-version", help="DI framework version recorded in the export."
    ),
    expected: Optional[int] = typer.Option(
        None, "--expected", help="Expected issue count; prints an accuracy report."
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Settings file (knitcheck.toml or pyproject.toml)."
    ),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", help="Confidence needed to count an issue as a true positive."
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
    strict: bool = typer.Option(False, "--strict", help="Exit with code 2 if any error is found."),
) -> None:
    """Analyse a component snapshot and report structural issues."""
    from knitcheck.core.accuracy import format_accuracy_report
    from knitcheck.core.context import DiagnosticLevel
    from knitcheck.core.pipeline import AnalysisStatus, analyze as run_analysis

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    settings = _load_settings(config)
    if threshold is not None:
        try:
            settings = settings.with_overrides(true_positive_threshold=threshold)
        except SettingsError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(code=1) from e

    components = _load_components(input_path)
    console.print(f"[bold]Analyzing[/bold] {input_path} ({len(components)} components)")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting...", total=None)

        def on_progress(stage: str, pct: float) -> None:
            progress.update(task, description=f"{stage} ({pct:.0%})")

        result = run_analysis(
            components,
            settings,
            project_name=project_name or input_path.stem,
            knit_version=knit_version,
            expected_issues=expected,
            progress_callback=on_progress,
        )

    for diagnostic in result.diagnostics:
        if diagnostic.level != DiagnosticLevel.INFO or verbose:
            console.print(
                f"[dim]{diagnostic.level.value.lower()} ({diagnostic.stage}):[/dim] "
                f"{diagnostic.message}"
            )

    if result.status == AnalysisStatus.FATAL:
        console.print("[bold red]Analysis failed.[/bold red]")
        raise typer.Exit(code=1)

    errors = sum(1 for i in result.issues if i.severity == Severity.ERROR)
    warnings = sum(1 for i in result.issues if i.severity == Severity.WARNING)

    console.print()
    console.print(f"[bold green]Analysis complete[/bold green] ({result.status.value})")
    console.print(f"  Components:     {result.graph.node_count}")
    console.print(f"  Dependencies:   {result.graph.edge_count}")
    console.print(f"  Cycles:         {len(result.cycle_report.cycles)}")
    console.print(f"  Errors:         {errors}")
    console.print(f"  Warnings:       {warnings}")
    console.print(f"  Duration:       {result.duration_seconds:.2f}s")

    if result.issues:
        table = Table(title="Issues")
        table.add_column("Severity")
        table.add_column("Type")
        table.add_column("Components")
        table.add_column("Message")
        table.add_column("Confidence", justify="right")
        for issue in result.issues:
            style = _SEVERITY_STYLES[issue.severity]
            table.add_row(
                f"[{style}]{issue.severity.value}[/{style}]",
                issue.type.value,
                issue.component_name,
                issue.message,
                f"{issue.confidence_score:.2f}",
            )
        console.print(table)

    if result.accuracy is not None:
        console.print()
        console.print(format_accuracy_report(result.accuracy), markup=False)

    if output is not None and result.document is not None:
        output.write_text(result.document.to_json() + "\n", encoding="utf-8")
        console.print(f"Export written to {output}")

    if strict and errors:
        raise typer.Exit(code=2)


@app.command()
def cycles(
    input_path: Path = typer.Argument(..., help="JSON file with extracted component records."),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Settings file (knitcheck.toml or pyproject.toml)."
    ),
) -> None:
    """List dependency cycles and strongly connected components."""
    from knitcheck.core.context import build_snapshot
    from knitcheck.core.graph.cycles import CycleAnalyzer

    settings = _load_settings(config)
    components = _load_components(input_path)
    snapshot = build_snapshot(components, settings)
    report = CycleAnalyzer(snapshot.graph).cycle_report()

    if not report.has_cycles:
        console.print("[green]No cycles found.[/green]")
        return

    labels = snapshot.labels
    console.print(f"[bold]{len(report.cycles)} cycle(s)[/bold], "
                  f"{report.nodes_in_cycles} components involved")
    for index, cycle in enumerate(report.cycles, start=1):
        console.print(f"  {index}. {cycle.display_path(labels)}")

    if report.shortest is not None and report.longest is not None:
        console.print(f"  Shortest: {report.shortest.length}  Longest: {report.longest.length}")

    console.print(f"\n[bold]Strongly connected components:[/bold] "
                  f"{len(report.strongly_connected_components)}")
    for scc in report.strongly_connected_components:
        console.print("  - " + ", ".join(labels.get(n, n) for n in scc))
