"""Command-line interface for Scatter3D.

Usage:
    scatter3d build scene.json [options]
    scatter3d info scene.json
    scatter3d modifiers
    scatter3d init-config [options]
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
import numpy as np
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .core.builder import build_scatter, load_scene
from .core.config import Scatter3DConfig
from .modifiers.modifiers import list_modifiers
from .scatter.scatter import Scatter

console = Console()
logger = logging.getLogger(__name__)

MESH_FORMATS = {".glb", ".gltf", ".obj", ".ply", ".stl", ".off"}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False)],
    )


def _load_config(config_path: str | None) -> tuple[Scatter3DConfig, Path | None]:
    """Load a config file, or the built-in demo scene when no path is given."""
    if config_path is None:
        return Scatter3DConfig.default(), None
    try:
        return Scatter3DConfig.from_file(config_path), Path(config_path).parent
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid config {config_path}:[/red]\n{e}")
        raise click.Abort()


def _format_vec(values) -> str:
    return "(" + ", ".join(f"{v:.2f}" for v in values) + ")"


def _export(scatter: Scatter, output_path: Path) -> None:
    """Write the scatter result as a mesh or as raw transforms (.npz)."""
    suffix = output_path.suffix.lower()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if suffix == ".npz":
        arrays = {
            item.name: scatter.get_instance_transforms(item)
            for item in scatter.items
        }
        np.savez_compressed(output_path, **arrays)
        console.print(f"[green]Saved transforms for {len(arrays)} items to {output_path}[/green]")
        return

    if suffix not in MESH_FORMATS:
        console.print(
            f"[red]Unsupported output format: {suffix}. "
            f"Use .npz or one of {sorted(MESH_FORMATS)}[/red]"
        )
        raise click.Abort()

    mesh = scatter.to_trimesh()
    if mesh is None:
        console.print("[yellow]Nothing to export: no instances were placed[/yellow]")
        return
    mesh.export(str(output_path))
    console.print(
        f"[green]Saved {len(mesh.faces):,} faces to {output_path}[/green]"
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Scatter3D - Weighted instance scattering over shape regions."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@main.command()
@click.argument("config_path", type=click.Path(exists=True), required=False)
@click.option(
    "--output", "-o",
    type=click.Path(),
    help="Export result (.glb/.obj/.ply/.stl merged mesh or .npz transforms)",
)
@click.option("--seed", type=int, help="Override the scatter seed")
@click.option(
    "--instancing/--no-instancing",
    default=None,
    help="Override batched instancing",
)
def build(
    config_path: str | None,
    output: str | None,
    seed: int | None,
    instancing: bool | None,
) -> None:
    """Run a scatter and report per-item instance counts.

    CONFIG_PATH: Scene description JSON (omit for the built-in demo scene)
    """
    cfg, base_dir = _load_config(config_path)
    if seed is not None:
        cfg.scatter.seed = seed
    if instancing is not None:
        cfg.scatter.use_instancing = instancing

    console.print("\n[bold]Scatter3D Build[/bold]\n")

    try:
        tree, scatter = load_scene(cfg, base_dir)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()

    stats = scatter.stats()
    logger.info(
        f"{stats['transforms']} transforms, "
        f"{sum(stats['instances'].values())} instances placed"
    )

    table = Table(title=f"Scatter: {scatter.name} (seed {scatter.seed})")
    table.add_column("Item", style="cyan")
    table.add_column("Proportion", style="yellow", justify="right")
    table.add_column("Share", style="magenta", justify="right")
    table.add_column("Instances", style="green", justify="right")

    total = stats["total_item_proportion"]
    for item in scatter.items:
        share = item.proportion / total if total else 0.0
        table.add_row(
            item.name,
            str(item.proportion),
            f"{share:.0%}",
            f"{stats['instances'].get(item.name, 0):,}",
        )
    console.print(table)

    placed = sum(stats["instances"].values())
    if placed < stats["transforms"]:
        console.print(
            f"[dim]{stats['transforms'] - placed} of {stats['transforms']} "
            f"transforms left unused by rounding[/dim]"
        )

    if output:
        _export(scatter, Path(output))


@main.command()
@click.argument("config_path", type=click.Path(exists=True))
def info(config_path: str) -> None:
    """Show the shapes, items and modifiers of a scene description.

    CONFIG_PATH: Scene description JSON
    """
    cfg, base_dir = _load_config(config_path)

    console.print(f"\n[bold]Scene Info: {Path(config_path).name}[/bold]\n")

    try:
        scatter = build_scatter(cfg, base_dir)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading: {e}[/red]")
        raise click.Abort()
    scatter.discover()

    bounds = scatter.domain.bounds
    console.print(f"[cyan]Seed:[/cyan] {scatter.seed}")
    console.print(f"[cyan]Instancing:[/cyan] {'Yes' if scatter.use_instancing else 'No'}")
    if bounds is not None:
        console.print(
            f"[cyan]Domain bounds:[/cyan] {_format_vec(bounds.min)} to {_format_vec(bounds.max)}"
        )
    else:
        console.print("[yellow]Domain is empty: no inclusive shapes[/yellow]")
    console.print()

    shapes = Table(title="Shapes")
    shapes.add_column("Name", style="cyan")
    shapes.add_column("Type", style="white")
    shapes.add_column("Position", style="green")
    shapes.add_column("Mode", style="yellow")
    for shape in cfg.shapes:
        shapes.add_row(
            shape.name,
            shape.type,
            _format_vec(shape.transform.position),
            "exclusive" if shape.exclusive else "inclusive",
        )
    console.print(shapes)

    items = Table(title="Items")
    items.add_column("Name", style="cyan")
    items.add_column("Mesh", style="white")
    items.add_column("Proportion", style="yellow", justify="right")
    for item in cfg.items:
        items.add_row(item.name, item.mesh, str(item.proportion))
    console.print(items)

    modifiers = Table(title="Modifier Stack")
    modifiers.add_column("#", style="dim", justify="right")
    modifiers.add_column("Modifier", style="cyan")
    modifiers.add_column("Parameters", style="white")
    for index, entry in enumerate(cfg.modifiers):
        name = entry.name if entry.enabled else f"[dim]{entry.name} (disabled)[/dim]"
        modifiers.add_row(str(index), name, str(entry.params or ""))
    console.print(modifiers)


@main.command()
def modifiers() -> None:
    """List available modifiers."""
    console.print("\n[bold]Available Modifiers[/bold]\n")

    table = Table()
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Defaults", style="dim")

    for modifier in list_modifiers():
        table.add_row(modifier["name"], modifier["description"], str(modifier["defaults"]))

    console.print(table)


@main.command("init-config")
@click.option(
    "--output", "-o",
    type=click.Path(),
    default="scatter3d_scene.json",
    help="Output path for config file",
)
def init_config(output: str) -> None:
    """Generate a default scene description."""
    try:
        cfg = Scatter3DConfig.default()
        cfg.to_file(output)
        console.print(f"[green]Created config file: {output}[/green]")
    except OSError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()


if __name__ == "__main__":
    main()
