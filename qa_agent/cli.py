"""CLI entry point for the AI QA agent."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.table import Table

from qa_agent.ai.errors import AIServiceError
from qa_agent.models.config import DEFAULT_CONFIG_FILE, AgentConfig
from qa_agent.models.test_case import ALL_TEST_TYPES, GeneratedTestCase, TestStatus, TestType
from qa_agent.orchestrator import Orchestrator
from qa_agent.planner.generator import BatchAbortedError

console = Console()

TYPE_CHOICES = click.Choice([t.value for t in ALL_TEST_TYPES], case_sensitive=False)
STATUS_CHOICES = click.Choice([s.value for s in TestStatus], case_sensitive=False)
config_option = click.option(
    "--config", "-c", default=DEFAULT_CONFIG_FILE, help="Config file path",
)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _orchestrator(config: str) -> Orchestrator:
    return Orchestrator(AgentConfig.load_or_default(config))


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    sys.exit(1)


def _test_type(value: str) -> TestType:
    return next(t for t in ALL_TEST_TYPES if t.value.lower() == value.lower())


def _status(value: str) -> TestStatus:
    return next(s for s in TestStatus if s.value.lower() == value.lower())


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """AI-assisted QA test management"""
    setup_logging(verbose)


@cli.command()
@config_option
def init(config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return
    AgentConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nNext, describe your application:")
    console.print('  [blue]qa-agent setup --url https://example.com --description "..."[/blue]')


@cli.command()
@click.option("--url", help="Application URL")
@click.option("--description", help="Application description")
@click.option("--login", help="Login details for testers")
@click.option("--sheet", help="Google Sheet link for results")
@config_option
def setup(url, description, login, sheet, config: str) -> None:
    """View or update the application setup."""
    orchestrator = _orchestrator(config)
    changes = {
        k: v for k, v in {
            "app_url": url, "app_description": description,
            "login_details": login, "google_sheet_link": sheet,
        }.items() if v is not None
    }
    info = orchestrator.update_setup(**changes) if changes else orchestrator.state.setup_info

    table = Table(title="Setup")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("App URL", info.app_url or "-")
    table.add_row("Description", info.app_description or "-")
    table.add_row("Login details", info.login_details or "-")
    table.add_row("Sheet link", info.google_sheet_link or "-")
    console.print(table)


@cli.command()
@click.option("--refresh", is_flag=True, help="Ignore the cache and ask the AI again")
@click.option("--add", "add_all", is_flag=True, help="Add every suggestion to the project")
@click.option("--pick", "-p", multiple=True, help="Add only the named suggestions")
@config_option
def discover(refresh: bool, add_all: bool, pick: tuple[str, ...], config: str) -> None:
    """Discover application modules with AI."""
    orchestrator = _orchestrator(config)
    try:
        modules, cached = asyncio.run(orchestrator.discover_modules(force_refresh=refresh))
    except AIServiceError as e:
        _fail(f"Discovery failed: {e.message}")
        return

    source = "from cache" if cached else "by AI"
    console.print(f"[green]{len(modules)} modules suggested {source}[/green]")
    for m in modules:
        console.print(f"  [bold]{m.name}[/bold]: {m.description}")

    chosen = modules if add_all else [m for m in modules if m.name in set(pick)]
    if chosen:
        added = orchestrator.add_modules(chosen)
        console.print(f"[green]Added {len(added)} modules[/green]")


@cli.group()
def modules() -> None:
    """Manage project modules."""
    pass


@modules.command("list")
@config_option
def modules_list(config: str) -> None:
    """List project modules."""
    orchestrator = _orchestrator(config)
    if not orchestrator.state.discovered_modules:
        console.print("[yellow]No modules yet. Run 'qa-agent discover' or 'qa-agent modules add'.[/yellow]")
        return
    for m in orchestrator.state.discovered_modules:
        marker = " [green](analyzed)[/green]" if m.insights else ""
        console.print(f"  [bold]{m.name}[/bold]{marker}: {m.description}")


@modules.command("add")
@click.argument("name")
@click.option("--description", "-d", default="", help="Module description")
@config_option
def modules_add(name: str, description: str, config: str) -> None:
    """Add a module manually."""
    orchestrator = _orchestrator(config)
    try:
        module = orchestrator.add_manual_module(name, description)
    except ValueError as e:
        _fail(str(e))
        return
    if module is None:
        console.print(f"[yellow]Module already exists: {name}[/yellow]")
    else:
        console.print(f"[green]Added module:[/green] {module.name}")


@cli.command()
@click.argument("module")
@click.option("--refresh", is_flag=True, help="Replace existing insights")
@config_option
def analyze(module: str, refresh: bool, config: str) -> None:
    """Get AI testing insights for a module."""
    orchestrator = _orchestrator(config)
    try:
        insights = asyncio.run(orchestrator.analyze_module(module, refresh=refresh))
    except (AIServiceError, ValueError) as e:
        _fail(f"Analysis failed: {e}")
        return
    console.print(Markdown(insights))


@cli.command()
@click.option("--module", "-m", "module_names", multiple=True, help="Module to generate for (repeatable)")
@click.option("--all-modules", is_flag=True, help="Generate for every known module")
@click.option("--type", "-t", "types", multiple=True, type=TYPE_CHOICES, help="Test methodology (repeatable)")
@click.option("--count", "-n", type=int, default=None, help="Tests per module")
@config_option
def generate(module_names, all_modules: bool, types, count, config: str) -> None:
    """Generate test cases with AI, one module at a time."""
    orchestrator = _orchestrator(config)
    names = orchestrator.available_modules() if all_modules else list(module_names)
    test_types = [_test_type(t) for t in types] if types else None
    try:
        created = asyncio.run(orchestrator.generate_tests(names, test_types, count))
    except BatchAbortedError as e:
        console.print(f"[yellow]{len(e.completed)} test cases were kept before the failure.[/yellow]")
        _fail(e.message)
        return
    except (AIServiceError, ValueError) as e:
        _fail(str(e))
        return
    console.print(f"[green]Batch generation complete![/green] Added {len(created)} new test cases.")


@cli.group()
def cases() -> None:
    """Manage test cases."""
    pass


@cases.command("list")
@click.option("--module", "-m", default=None, help="Filter by module")
@click.option("--type", "-t", "test_type", type=TYPE_CHOICES, default=None, help="Filter by type")
@click.option("--status", "-s", type=STATUS_CHOICES, default=None, help="Filter by status")
@config_option
def cases_list(module, test_type, status, config: str) -> None:
    """List test cases."""
    orchestrator = _orchestrator(config)
    rows = orchestrator.filter_test_cases(
        module,
        _test_type(test_type) if test_type else None,
        _status(status) if status else None,
    )
    table = Table(title=f"Test Cases ({len(rows)})")
    for column in ("ID", "Module", "Title", "Type", "Status"):
        table.add_column(column)
    for tc in rows:
        table.add_row(tc.id, tc.module, tc.title, tc.type.value, tc.status.value)
    console.print(table)


@cases.command("add")
@click.option("--module", "-m", required=True, help="Module name")
@click.option("--title", required=True, help="Test title")
@click.option("--step", "steps", multiple=True, required=True, help="Test step (repeatable)")
@click.option("--expected", default="", help="Expected results")
@click.option("--description", default="", help="Description")
@click.option("--type", "-t", "test_type", type=TYPE_CHOICES, default=TestType.FUNCTIONAL.value)
@config_option
def cases_add(module, title, steps, expected, description, test_type, config: str) -> None:
    """Add a test case manually."""
    orchestrator = _orchestrator(config)
    draft = GeneratedTestCase(
        title=title, description=description, steps=list(steps),
        expected_results=expected, type=_test_type(test_type).value, module=module,
    )
    tc = orchestrator.add_test_case(draft)
    console.print(f"[green]Added {tc.id}[/green]")


@cases.command("delete")
@click.argument("test_id")
@config_option
def cases_delete(test_id: str, config: str) -> None:
    """Delete a test case."""
    orchestrator = _orchestrator(config)
    try:
        orchestrator.delete_test_case(test_id)
    except ValueError as e:
        _fail(str(e))
        return
    console.print(f"[green]Deleted {test_id}[/green]")


@cli.command()
@click.argument("test_id")
@click.argument("status", type=STATUS_CHOICES)
@click.option("--actual", "-a", default="", help="Actual results observed")
@config_option
def record(test_id: str, status: str, actual: str, config: str) -> None:
    """Record a manual execution result."""
    orchestrator = _orchestrator(config)
    try:
        tc = orchestrator.record_result(test_id, _status(status), actual)
    except ValueError as e:
        _fail(str(e))
        return
    console.print(f"[green]{tc.id}[/green] -> {tc.status.value}")


@cli.command()
@click.option("--module", "-m", default=None, help="Only this module")
@click.option("--type", "-t", "test_type", type=TYPE_CHOICES, default=None, help="Only this type")
@config_option
def execute(module, test_type, config: str) -> None:
    """Predict outcomes of pending test cases with AI."""
    orchestrator = _orchestrator(config)
    try:
        summary = asyncio.run(orchestrator.auto_execute(
            module=module, test_type=_test_type(test_type) if test_type else None,
        ))
    except (AIServiceError, ValueError) as e:
        _fail(f"Auto-execution failed: {e}")
        return
    console.print(
        f"[green]Auto-execution complete![/green] {len(summary.executed)} executed, "
        f"AI identified {summary.failed_count} potential bug(s)."
    )


@cli.command("import-csv")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@config_option
def import_csv(csv_file: str, config: str) -> None:
    """Import test cases from a CSV file."""
    orchestrator = _orchestrator(config)
    try:
        imported = orchestrator.import_csv(Path(csv_file).read_text(encoding="utf-8"))
    except ValueError as e:
        _fail(str(e))
        return
    console.print(f"[green]{len(imported)} test cases imported from CSV.[/green]")


@cli.command()
@click.argument("output", type=click.Path(dir_okay=False))
@click.option("--bugs", is_flag=True, help="Export a bug report of failed/blocked cases")
@click.option("--module", "-m", default=None, help="Only this module")
@click.option("--type", "-t", "test_type", type=TYPE_CHOICES, default=None, help="Only this type")
@click.option("--status", "-s", type=STATUS_CHOICES, default=None, help="Only this status")
@config_option
def export(output: str, bugs: bool, module, test_type, status, config: str) -> None:
    """Export test results (or a bug report) to CSV."""
    orchestrator = _orchestrator(config)
    filters = dict(
        module=module,
        test_type=_test_type(test_type) if test_type else None,
        status=_status(status) if status else None,
    )
    text = orchestrator.export_bugs_csv(**filters) if bugs else orchestrator.export_results_csv(**filters)
    if not text:
        console.print("[yellow]Nothing to export[/yellow]")
        return
    Path(output).write_text(text, encoding="utf-8")
    console.print(f"[green]Exported to[/green] [blue]{output}[/blue]")


@cli.command()
@config_option
def status(config: str) -> None:
    """Show the dashboard summary."""
    summary = _orchestrator(config).dashboard()
    table = Table(title="Dashboard")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Modules", str(summary.total_modules))
    table.add_row("Test cases", str(summary.total_test_cases))
    table.add_row("Passed", f"[green]{summary.status_counts.get('Passed', 0)}[/green]")
    table.add_row("Failed", f"[red]{summary.status_counts.get('Failed', 0)}[/red]")
    table.add_row("Blocked", f"[yellow]{summary.status_counts.get('Blocked', 0)}[/yellow]")
    table.add_row("Pending", str(summary.status_counts.get("Pending", 0)))
    table.add_row("Pass rate", f"{summary.pass_rate:.0%}")
    console.print(table)

    if not summary.modules:
        return
    by_module = Table(title="By Module")
    for column in ("Module", "Total", "Passed", "Failed", "Blocked", "Pending"):
        by_module.add_column(column)
    for m in summary.modules:
        by_module.add_row(
            m.module, str(m.total), f"[green]{m.passed}[/green]", f"[red]{m.failed}[/red]",
            f"[yellow]{m.blocked}[/yellow]", str(m.pending),
        )
    console.print(by_module)


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@config_option
def reset(yes: bool, config: str) -> None:
    """Clear all stored modules, test cases and setup."""
    if not yes and not click.confirm("This deletes all stored data. Continue?"):
        return
    _orchestrator(config).reset()
    console.print("[green]State reset[/green]")


if __name__ == "__main__":
    cli()
