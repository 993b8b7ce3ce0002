"""
Command line interface for sitefront.

Each command runs one group of deployment phases against the project in
the current directory (or --project).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from .config import DEFAULT_CONFIG_FILE, load_frontend_config, resolve_config
from .errors import BuildFailure, SitefrontError
from .orchestrator import DeploymentOrchestrator

app = typer.Typer(
    help="Deploy web-framework build output to CloudFront and S3",
    no_args_is_help=True,
)

console = Console()

ProjectOption = Annotated[
    Path,
    typer.Option(
        "--project",
        "-p",
        help="Frontend project directory",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help=f"Configuration file (default: <project>/{DEFAULT_CONFIG_FILE})"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _orchestrator(project_dir: Path, config_path: Path | None) -> DeploymentOrchestrator:
    config = load_frontend_config(config_path or project_dir / DEFAULT_CONFIG_FILE)
    return DeploymentOrchestrator(resolve_config(config, project_dir.resolve()))


@contextmanager
def _reporting() -> Iterator[None]:
    try:
        yield
    except BuildFailure as e:
        console.print(f"[red]Build failed:[/red] {escape(e.args[0])}")
        if e.stdout:
            console.print(e.stdout, markup=False, highlight=False)
        if e.stderr:
            console.print(e.stderr, markup=False, highlight=False)
        raise typer.Exit(1) from e
    except SitefrontError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e


@app.command(name="add-functions")
def add_functions(project_dir: ProjectOption = Path("."), config: ConfigOption = None) -> None:
    """Show the server function registered for the detected framework."""
    with _reporting():
        orchestrator = _orchestrator(project_dir, config)
        unit = orchestrator.add_functions()
        orchestrator.complete()
    if unit is None:
        console.print("No server function needed")
    else:
        console.print(f"Server function [cyan]{unit.name}[/cyan] ({unit.handler})")


@app.command()
def build(project_dir: ProjectOption = Path("."), config: ConfigOption = None) -> None:
    """Build the frontend and package the server function."""
    with _reporting():
        orchestrator = _orchestrator(project_dir, config)
        with console.status("Building frontend..."):
            artifact = orchestrator.build_and_package()
    console.print("[green]Build complete[/green]")
    if artifact is not None:
        console.print(f"  Artifact: {artifact}")


@app.command()
def synth(project_dir: ProjectOption = Path("."), config: ConfigOption = None) -> None:
    """Synthesize the CloudFormation template from the current build output."""
    with _reporting():
        orchestrator = _orchestrator(project_dir, config)
        topology = orchestrator.synth()
    console.print(f"Synthesized [cyan]{orchestrator.config.stack_name}[/cyan] into {orchestrator.assembly_dir}")
    for behavior in topology.cache_behaviors:
        console.print(f"  {behavior.path_pattern} -> {behavior.target_origin_id}")
    console.print(f"  * -> {topology.default_cache_behavior.target_origin_id}")
    for warning in topology.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


@app.command()
def deploy(project_dir: ProjectOption = Path("."), config: ConfigOption = None) -> None:
    """Build, upload and deploy the site."""
    with _reporting():
        orchestrator = _orchestrator(project_dir, config)
        orchestrator.run()
        url = orchestrator.site_url()
    console.print("[green]Deployment complete[/green]")
    if url:
        console.print(f"  site: {url}")


@app.command()
def upload(project_dir: ProjectOption = Path("."), config: ConfigOption = None) -> None:
    """Upload the build output to the deployed site bucket."""
    with _reporting():
        count = _orchestrator(project_dir, config).upload()
    console.print(f"Uploaded {count} files")


@app.command()
def invalidate(project_dir: ProjectOption = Path("."), config: ConfigOption = None) -> None:
    """Invalidate every cached path of the distribution."""
    with _reporting():
        orchestrator = _orchestrator(project_dir, config)
        invalidation_id = orchestrator.invalidate()
        orchestrator.complete()
    if invalidation_id is None:
        console.print("Distribution not found, nothing to invalidate")
    else:
        console.print(f"Created invalidation {invalidation_id}")


@app.command()
def remove(project_dir: ProjectOption = Path("."), config: ConfigOption = None) -> None:
    """Empty the site bucket and delete the stack."""
    with _reporting():
        _orchestrator(project_dir, config).remove()
    console.print("[green]Stack removed[/green]")


@app.command()
def info(project_dir: ProjectOption = Path("."), config: ConfigOption = None) -> None:
    """Show the detected framework and the deployed site URL."""
    with _reporting():
        orchestrator = _orchestrator(project_dir, config)
        profile = orchestrator.profile
        console.print(f"  stack: [cyan]{orchestrator.config.stack_name}[/cyan]")
        console.print(f"  framework: {profile.framework.value if profile else 'none'}")
        url = orchestrator.site_url()
        if url:
            console.print(f"  site: {url}")


if __name__ == "__main__":
    app()
