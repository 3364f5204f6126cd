"""Rich display utilities for the sandpreview CLI."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sandpreview.core.schemas import ImportCandidate, PipelineOutcome, ResolutionResult

console = Console()


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]✓[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]✗[/] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]⚠[/] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[bold blue]ℹ[/] {message}")


def _format_size(size_bytes: int) -> str:
    if size_bytes <= 0:
        return "-"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KiB"
    return f"{size_bytes / (1024 * 1024):.1f} MiB"


def print_candidates(candidates: list[ImportCandidate]) -> None:
    """Print a table of discovered packages."""
    if not candidates:
        print_info("No external packages referenced")
        return

    table = Table(title="Imported packages")
    table.add_column("Package", style="cyan")
    table.add_column("Specifiers", style="dim")

    for candidate in candidates:
        table.add_row(candidate.name, ", ".join(candidate.specifiers))

    console.print(table)


def print_resolution(resolution: ResolutionResult) -> None:
    """Print admission decisions."""
    if not resolution.records:
        print_info("No packages needed resolving")
        return

    table = Table(title="Package admission")
    table.add_column("Package", style="cyan")
    table.add_column("Version")
    table.add_column("Size", justify="right")
    table.add_column("Decision")

    for record in resolution.records:
        decision = "[green]accepted[/]" if record.accepted else f"[red]{record.reason}[/]"
        table.add_row(record.name, record.version or "-", _format_size(record.size_bytes), decision)

    console.print(table)
    console.print(f"[dim]Accepted total: {_format_size(resolution.total_bytes)}[/]")


def print_outcome(outcome: PipelineOutcome) -> None:
    """Print the result of a pipeline run."""
    if outcome.resolution is not None:
        print_resolution(outcome.resolution)

    resource = outcome.session.resource if outcome.session else None
    if resource and resource.startswith("data:"):
        resource = "inline document"

    border = "yellow" if outcome.fell_back else "green"
    status = "[bold yellow]Fallback loaded[/]" if outcome.fell_back else "[bold green]Loaded[/]"
    path = " → ".join(state.value for state in outcome.history)

    console.print()
    console.print(
        Panel(
            f"{status}\n\n"
            f"[bold]Run:[/] {outcome.run_id}\n"
            f"[bold]Project:[/] {outcome.project_id}\n"
            f"[bold]Kind:[/] {outcome.kind.value}\n"
            f"[bold]States:[/] {path}\n"
            f"[bold]Resource:[/] {resource or '-'}",
            title="[bold]sandpreview[/]",
            border_style=border,
        )
    )

    for diagnostic in outcome.diagnostics:
        message = f"{diagnostic.stage}: {diagnostic.message}"
        if diagnostic.severity == "warning":
            print_warning(message)
        else:
            print_error(message)
