import logging
from enum import StrEnum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from stackgraph._errors import GraphError
from stackgraph._io import detect_format, load_stacks, write_templates
from stackgraph._report import export_report_to_toml
from stackgraph._template import StackSet, TemplateError

from .config import (
    ConfigError,
    Move,
    get_config,
    load_move_plan,
    parse_move_argument,
    parse_stack_argument,
)
from .graph_query import get_deployment_order, get_stack_summaries

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()


class OutputFormat(StrEnum):
    JSON = "json"
    YAML = "yaml"


StacksArgument = Annotated[
    list[str] | None,
    typer.Argument(help="Templates as STACK=PATH (defaults to the stacks table in pyproject.toml)"),
]


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Stackgraph CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _stack_paths(stacks: list[str] | None) -> dict[str, Path]:
    """Resolve stack templates from arguments, falling back to the config."""
    if stacks:
        return dict(parse_stack_argument(argument) for argument in stacks)

    config = get_config()
    if not config.stacks:
        msg = "No stacks given. Pass STACK=PATH arguments or set [tool.stackgraph].stacks in pyproject.toml"
        raise ConfigError(msg)
    return dict(config.stacks)


def _load(stacks: list[str] | None) -> StackSet:
    try:
        paths = _stack_paths(stacks)
        for name, path in paths.items():
            err_console.print(f"[cyan]Loading stack[/cyan] [bold]{escape(name)}[/bold] [cyan]from:[/cyan] {path}")
        stack_set = load_stacks(paths)
    except (ConfigError, TemplateError, GraphError) as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    err_console.print()
    return stack_set


@app.command()
def show(stacks: StacksArgument = None) -> None:
    """Show a summary of each stack and the references between stacks."""
    err_console.print()
    stack_set = _load(stacks)
    graph = stack_set.graph

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Stack", style="bold")
    table.add_column("Resources", justify="right", style="yellow")
    table.add_column("Exports", justify="right", style="green")
    table.add_column("Imports", justify="right", style="magenta")

    for summary in get_stack_summaries(graph, tuple(stack_set.sections)):
        table.add_row(
            escape(summary.name),
            str(summary.resource_count),
            str(summary.export_count),
            str(summary.import_count),
        )

    out_console.print(
        Panel(
            table,
            title="[bold]Stacks[/bold]",
            subtitle=f"[dim]{len(graph)} resources[/dim]",
            border_style="cyan",
        ),
    )

    cross_stack_edges = graph.get_cross_group_edges()
    if cross_stack_edges:
        edge_table = Table(show_header=True, header_style="bold cyan", box=None)
        edge_table.add_column("From")
        edge_table.add_column("To")
        edge_table.add_column("Kind", style="dim")
        for edge in cross_stack_edges:
            target = str(edge.target) if edge.attribute is None else f"{edge.target}.{edge.attribute}"
            edge_table.add_row(escape(str(edge.source)), escape(target), str(edge.kind))
        out_console.print(Panel(edge_table, title="[bold]Cross-stack references[/bold]", border_style="cyan"))


@app.command()
def order(stacks: StacksArgument = None) -> None:
    """Print resources in deployment order (dependencies first)."""
    err_console.print()
    stack_set = _load(stacks)

    try:
        node_ids = get_deployment_order(stack_set.graph)
    except GraphError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    for node_id in node_ids:
        out_console.print(escape(str(node_id)))


@app.command()
def move(  # noqa: PLR0913
    stacks: StacksArgument = None,
    *,
    moves: Annotated[
        list[str] | None,
        typer.Option("-m", "--move", help="Relocation as stack::Name=stack::NewName (repeatable)"),
    ] = None,
    plan: Annotated[
        Path | None,
        typer.Option("--plan", help="TOML relocation plan (applied before --move options)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Directory for regenerated templates"),
    ] = None,
    fmt: Annotated[
        OutputFormat | None,
        typer.Option("--format", help="Output format (defaults to config, then to the first input's format)"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Apply the moves but do not write any file"),
    ] = False,
) -> None:
    """Move or rename resources and regenerate every stack's template."""
    err_console.print()

    config = get_config()
    try:
        relocations: list[Move] = load_move_plan(plan) if plan is not None else []
        relocations.extend(parse_move_argument(argument) for argument in moves or [])
    except ConfigError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    if not relocations:
        err_console.print("[yellow]No moves given (use --move or --plan)[/yellow]")
        raise typer.Exit(code=1)

    stack_set = _load(stacks)

    for relocation in relocations:
        err_console.print(f"[cyan]Moving[/cyan] {relocation.source} [cyan]->[/cyan] {relocation.destination}")
        try:
            stack_set.move_node(relocation.source, relocation.destination)
        except GraphError as e:
            err_console.print(f"[red]✗ {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from e

    documents = stack_set.generate_all()
    err_console.print()

    if dry_run:
        err_console.print("[yellow]🔍 Dry run - no files will be modified[/yellow]")
        for name, document in documents.items():
            err_console.print(f"  [bold]{escape(name)}[/bold]: {len(document.resources)} resource(s)")
        err_console.print()
        return

    output_dir = output or config.output
    if output_dir is None:
        err_console.print(f"[red]✗ {escape('No output directory (use -o or set [tool.stackgraph].output)')}[/red]")
        raise typer.Exit(code=1)

    output_format = fmt.value if fmt is not None else config.format
    if output_format is None:
        first_input = next(iter(_stack_paths(stacks).values()))
        output_format = detect_format(first_input)

    written = write_templates(documents, output_dir, output_format)
    for path in written:
        err_console.print(f"[cyan]Wrote:[/cyan] {path}")

    err_console.print()
    err_console.print(f"[green]✓ Applied {len(relocations)} move(s)[/green]")
    err_console.print()


@app.command()
def report(
    stacks: StacksArgument = None,
    *,
    output: Annotated[
        Path,
        typer.Option("-o", "--output", help="Path to output TOML file"),
    ],
) -> None:
    """Write a TOML report of resources, edges and exports."""
    err_console.print()
    stack_set = _load(stacks)

    err_console.print(f"[cyan]Exporting report to:[/cyan] {output}")
    export_report_to_toml(stack_set.graph, output)

    err_console.print()
    err_console.print("[green]✓ Report written[/green]")
    err_console.print()


def main() -> None:
    app()
