"""sandpreview CLI - Main entry point.

Commands:
- run: Preview a source file in an isolated surface
- classify: Show how a source file would be treated
- deps: List (and optionally vet) the packages a source file imports
- clean: Remove ephemeral run directories
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Annotated, Optional

import typer

from sandpreview import __version__
from sandpreview.analysis.classifier import explain
from sandpreview.analysis.imports import extract_imports
from sandpreview.config import PreviewConfig, load_preview_config, merge_cli_overrides
from sandpreview.core.schemas import PersistenceMode, SourceArtifact
from sandpreview.display import (
    console,
    print_candidates,
    print_error,
    print_info,
    print_outcome,
    print_resolution,
    print_success,
)
from sandpreview.engine.container import Container
from sandpreview.exceptions import PreviewError
from sandpreview.registry.resolver import PackageSafetyResolver

app = typer.Typer(
    help="sandpreview - Preview untrusted front-end source in an isolated surface.",
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="YAML config file (default: ./sandpreview.yaml)"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"sandpreview {__version__}")
        raise typer.Exit()


def _setup(config_path: Path | None, home: Path | None = None) -> PreviewConfig:
    try:
        config = load_preview_config(config_path)
    except PreviewError as e:
        print_error(e.message)
        raise typer.Exit(1) from e

    config = merge_cli_overrides(config, home=home)
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    Container.set_config(config)
    return config


def _read_source(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print_error(f"Cannot read {path}: {e}")
        raise typer.Exit(1) from e


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """sandpreview - isolated previews of untrusted source."""
    pass


@app.command()
def run(
    source: Annotated[Path, typer.Argument(help="Markup or component source file")],
    project_id: Annotated[
        str, typer.Option("--project-id", "-p", help="Project identity (names persistent scaffolds)")
    ] = "scratch",
    persistent: Annotated[
        bool, typer.Option("--persistent", help="Reuse a per-project scaffold and dependency cache")
    ] = False,
    title: Annotated[Optional[str], typer.Option("--title", help="Window title")] = None,
    home: Annotated[
        Optional[Path], typer.Option("--home", help="Override the sandpreview home directory")
    ] = None,
    config_path: ConfigOption = None,
) -> None:
    """Preview a source file.

    Component scripts are scaffolded, installed and bundled; markup is
    loaded directly. Any failure falls back to showing the raw source.

    Examples:
        sandpreview run app.tsx
        sandpreview run app.tsx --persistent --project-id demo
        sandpreview run page.html
    """
    _setup(config_path, home=home)
    text = _read_source(source)

    try:
        artifact = SourceArtifact(
            text=text,
            project_id=project_id,
            mode=PersistenceMode.PERSISTENT if persistent else PersistenceMode.EPHEMERAL,
            title=title or source.name,
        )
    except ValueError as e:
        print_error(f"Invalid project id '{project_id}': use letters, digits, '.', '_' or '-'")
        raise typer.Exit(1) from e

    outcome = asyncio.run(Container.orchestrator().run(artifact))
    print_outcome(outcome)
    raise typer.Exit(1 if outcome.fell_back else 0)


@app.command()
def classify(
    source: Annotated[Path, typer.Argument(help="Source file to classify")],
) -> None:
    """Show whether a file is treated as markup or a component script."""
    kind, rule = explain(_read_source(source))
    console.print(f"{kind.value} [dim](rule: {rule})[/]")


@app.command()
def deps(
    source: Annotated[Path, typer.Argument(help="Component source file")],
    resolve: Annotated[
        bool, typer.Option("--resolve", help="Query the registry and apply the size caps")
    ] = False,
    config_path: ConfigOption = None,
) -> None:
    """List the external packages a source file imports, baseline packages excluded."""
    config = _setup(config_path)
    candidates = extract_imports(
        _read_source(source),
        max_candidates=config.limits.max_packages,
        exclude=config.baseline_dependencies,
    )
    print_candidates(candidates)

    if not resolve:
        return

    resolver = PackageSafetyResolver(
        Container.registry(),
        limits=config.limits,
        query_timeout=config.registry.timeout_seconds,
    )
    print_resolution(asyncio.run(resolver.resolve(candidates)))


@app.command()
def clean(
    home: Annotated[
        Optional[Path], typer.Option("--home", help="Override the sandpreview home directory")
    ] = None,
    config_path: ConfigOption = None,
) -> None:
    """Remove ephemeral run directories. Persistent scaffolds are kept."""
    config = _setup(config_path, home=home)
    runs_dir = config.runs_dir

    if not runs_dir.exists():
        print_info("Nothing to clean")
        return

    removed = 0
    for run_dir in sorted(runs_dir.iterdir()):
        if run_dir.is_dir():
            shutil.rmtree(run_dir)
            removed += 1
    print_success(f"Removed {removed} run director{'y' if removed == 1 else 'ies'} from {runs_dir}")


if __name__ == "__main__":
    app()
