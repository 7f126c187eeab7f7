"""
CLI interface for SmartCube Core
"""
import json
import os
import sys
from pathlib import Path

import click
import uvicorn
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..core.bootstrap import build_container
from ..core.config import Config
from ..core.errors import SmartCubeError
from ..core.execution.validator import WorkflowValidator
from ..core.types import ExecutionLog, ExecutionStatus

console = Console()

LEVEL_STYLES = {
    "info": "white",
    "warning": "yellow",
    "error": "bold red",
}

STATUS_STYLES = {
    ExecutionStatus.COMPLETED.value: "bold green",
    ExecutionStatus.FAILED.value: "bold red",
    ExecutionStatus.CANCELLED.value: "bold yellow",
}


def _load_workflow(file: str) -> dict:
    try:
        with open(file, 'r', encoding='utf-8') as f:
            workflow = json.load(f)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{file} is not valid JSON: {e.msg} (line {e.lineno})")
    if not isinstance(workflow, dict):
        raise click.ClickException(f"{file} must contain a workflow object")
    workflow.setdefault('name', Path(file).stem)
    workflow.setdefault('connections', [])
    return workflow


def _print_log(entry: ExecutionLog) -> None:
    line = Text()
    line.append(f"[{entry.cube_name}] ", style="cyan")
    line.append(entry.message, style=LEVEL_STYLES.get(entry.level, "white"))
    console.print(line)


def _preview(data, limit: int = 80) -> str:
    text = data if isinstance(data, str) else json.dumps(data, default=str)
    return text if len(text) <= limit else text[:limit - 1] + "…"


@click.group()
def cli():
    """SmartCube Core - typed cube workflow engine"""
    pass


@cli.command()
@click.option('--port', default=None, type=int, help='Port to run the API server on (default: SMARTCUBE_PORT or 7790)')
@click.option('--mode', type=click.Choice(['solo', 'prod']), default=None, help='Mode: solo or prod')
@click.option('--host', default=None, help='Host to bind to (default: SMARTCUBE_HOST or 0.0.0.0)')
def serve(port, mode, host):
    """Run the API server"""
    if mode:
        os.environ['SMARTCUBE_MODE'] = mode
        Config.MODE = mode

    if not Config.validate():
        click.echo("❌ Configuration validation failed. Please check your environment variables.")
        sys.exit(1)

    host = host or Config.API_HOST
    port = port or Config.API_PORT

    click.echo(f"🚀 Starting SmartCube Core API server in {Config.MODE} mode...")
    click.echo(f"   Host: {host}")
    click.echo(f"   Port: {port}")

    from ..api.server import app
    uvicorn.run(app, host=host, port=port)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
def validate(file):
    """Check a workflow JSON file without running it"""
    workflow = _load_workflow(file)
    result = WorkflowValidator.validate(workflow)

    if not result.valid:
        console.print(f"[bold red]✗[/bold red] [bold]{workflow['name']}[/bold] is invalid")
        for error in result.errors:
            console.print(f"  [red]•[/red] {error}")
        sys.exit(1)

    order = WorkflowValidator.get_execution_order(workflow['cubes'], workflow['connections'])
    console.print(f"[bold green]✓[/bold green] [bold]{workflow['name']}[/bold] is valid")
    console.print(f"  Execution order: {' → '.join(order)}")


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--user', 'user_id', default='cli_user', help='User id the run is recorded under')
@click.option('--mode', type=click.Choice(['solo', 'prod']), default=None, help='Mode: solo or prod')
@click.option('--storage-path', default=None, help='Local storage directory (solo mode)')
@click.option('--uploads-path', default=None, help='Directory saver cubes write into')
def run(file, user_id, mode, storage_path, uploads_path):
    """Execute a workflow JSON file and print its logs and results"""
    workflow = _load_workflow(file)

    storage = None
    if storage_path:
        from ..storage import LocalJSONStorage
        storage = LocalJSONStorage(storage_path)

    try:
        container = build_container(mode=mode, storage=storage, uploads_path=uploads_path)
    except (SmartCubeError, ValueError) as e:
        raise click.ClickException(str(e))

    console.print(Panel(
        Text(workflow['name'], style="bold white"),
        box=box.ROUNDED,
        border_style="cyan",
        title="[bold cyan]◊ Running[/bold cyan]",
    ))

    record = container.manager.execute_workflow(workflow, user_id, on_log=_print_log)

    results = record.get('results') or {}
    if results:
        table = Table(box=box.SIMPLE_HEAVY, title="Results")
        table.add_column("Cube", style="cyan")
        table.add_column("Type")
        table.add_column("Data")
        for cube_id, envelope in results.items():
            table.add_row(cube_id, str(envelope.get('type')), _preview(envelope.get('data')))
        console.print(table)

    status = record.get('status')
    console.print(f"Status: [{STATUS_STYLES.get(status, 'white')}]{status}[/]  (execution {record['executionId']})")
    if record.get('error'):
        console.print(f"[red]{record['error']}[/red]")

    if status != ExecutionStatus.COMPLETED.value:
        sys.exit(1)


@cli.command('cube-types')
def cube_types():
    """List the cube types the engine can dispatch"""
    from ..core.execution.cube_registry import build_default_registry

    registry = build_default_registry()
    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("Type", style="cyan")
    table.add_column("Required inputs")
    table.add_column("AI", justify="center")
    for cube_type in registry.types():
        handler = registry.get(cube_type)
        table.add_row(cube_type, ", ".join(handler.required_inputs) or "-", "✓" if handler.ai_backed else "")
    console.print(table)


if __name__ == '__main__':
    cli()
