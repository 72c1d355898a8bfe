"""
Plan Bridge CLI - Typer Commands

Command-line access to the plan store and review loop. Each command maps
onto a named tool from planbridge.tools, so the CLI and programmatic
callers share one code path.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from planbridge import __version__
from planbridge.config import load_config
from planbridge.exceptions import PlanBridgeError
from planbridge.persistence.repository import PlanRepository
from planbridge.tools import ToolDispatcher

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    name="plan-bridge",
    help="Review loop for implementation plans: submit, review, fix, split into phases",
    add_completion=False,
    no_args_is_help=True,
)

STATUS_STYLES = {
    "submitted": "cyan",
    "in_progress": "blue",
    "review_requested": "yellow",
    "needs_fixes": "red",
    "completed": "green",
}


def _dispatcher() -> ToolDispatcher:
    config = load_config()
    repository = PlanRepository(config)
    repository.initialize()
    return ToolDispatcher(repository, config)


def _run(tool: str, arguments: dict[str, Any]) -> str:
    """Call a tool, exiting with status 1 on Plan Bridge errors."""
    try:
        return _dispatcher().call(tool, arguments)
    except PlanBridgeError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _print_result(text: str) -> None:
    """Pretty-print JSON results; plain messages mean nothing was found."""
    try:
        json.loads(text)
    except json.JSONDecodeError:
        console.print(f"[yellow]{text}[/yellow]")
        raise typer.Exit(1)
    console.print_json(text)


def _styled_status(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


@app.command()
def version() -> None:
    """Show the Plan Bridge version."""
    console.print(f"plan-bridge {__version__}")


@app.command()
def submit(
    name: str = typer.Argument(..., help="Short plan name"),
    plan_file: Path = typer.Argument(..., help="Markdown file with the plan", exists=True, dir_okay=False),
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Project the plan applies to (default: cwd)"),
    source: Optional[str] = typer.Option(None, help="Who submitted the plan"),
    scope: Optional[str] = typer.Option(None, help="Storage scope: global or local"),
    no_split: bool = typer.Option(False, "--no-split", help="Never split into phases"),
) -> None:
    """Submit a new implementation plan."""
    arguments: dict[str, Any] = {
        "name": name,
        "content": plan_file.read_text(encoding="utf-8"),
        "project_path": str((project or Path.cwd()).expanduser().resolve()),
        "source": source,
        "storage_scope": scope,
    }
    if no_split:
        arguments["auto_split"] = False
    text = _run("submit_plan", arguments)
    data = json.loads(text)

    lines = [
        f"[bold]{data['name']}[/bold]",
        f"ID: [cyan]{data['id']}[/cyan]",
        f"Status: {_styled_status(data['status'])}",
    ]
    if "complexity_score" in data:
        lines.append(f"Complexity score: {data['complexity_score']}")
    for phase in data.get("phases", []):
        lines.append(f"  Phase {phase['phase_number']}: {phase['name']}")
    console.print(Panel.fit("\n".join(lines), title="Plan submitted", border_style="green"))


@app.command()
def show(
    plan_id: Optional[str] = typer.Argument(None, help="Plan ID (latest plan if omitted)"),
    status: Optional[str] = typer.Option(None, help="Latest plan with this status"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Latest plan for this project"),
) -> None:
    """Show a plan."""
    _print_result(_run("get_plan", {"id": plan_id, "status": status, "project_path": project}))


@app.command(name="list")
def list_plans(
    status: Optional[str] = typer.Option(None, help="Filter by status"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Filter by project path"),
    scope: Optional[str] = typer.Option(None, help="Filter by storage scope"),
) -> None:
    """List plans, most recently updated first."""
    plans = json.loads(
        _run("list_plans", {"status": status, "project_path": project, "storage_scope": scope})
    )
    if not plans:
        console.print("[dim]No plans found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Status")
    table.add_column("Phase", justify="right")
    table.add_column("Scope", style="dim")
    table.add_column("Project", style="dim")
    table.add_column("Updated", style="dim")

    for plan in plans:
        phase = "-"
        if plan.get("is_phased"):
            current = plan.get("current_phase")
            phase = f"{current or 'done'}/{plan.get('phase_count', 0)}"
        table.add_row(
            plan["id"][:8],
            plan["name"],
            _styled_status(plan["status"]),
            phase,
            plan["storage_scope"],
            plan["project_path"],
            plan["updated_at"][:19],
        )
    console.print(table)


@app.command()
def status(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    new_status: str = typer.Argument(..., help="New status"),
) -> None:
    """Overwrite a plan's status."""
    _print_result(_run("update_plan_status", {"id": plan_id, "status": new_status}))


@app.command()
def review(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    finding: list[str] = typer.Option([], "--finding", "-f", help="A finding (repeatable); none = approve"),
) -> None:
    """Submit a review of the plan or its current phase."""
    _print_result(_run("submit_review", {"plan_id": plan_id, "findings": list(finding)}))


@app.command(name="latest-review")
def latest_review(plan_id: str = typer.Argument(..., help="Plan ID")) -> None:
    """Show the latest review."""
    _print_result(_run("get_review", {"plan_id": plan_id}))


@app.command()
def fix(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    review_id: str = typer.Argument(..., help="Review the fixes address"),
    fix_applied: list[str] = typer.Option([], "--fix", help="A fix applied (repeatable)"),
) -> None:
    """Report fixes and request a re-review."""
    _print_result(
        _run(
            "submit_fix_report",
            {"plan_id": plan_id, "review_id": review_id, "fixes_applied": list(fix_applied)},
        )
    )


@app.command()
def assess(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    file_changed: list[str] = typer.Option([], "--file", help="File changed (repeatable)"),
    tests_run: bool = typer.Option(False, "--tests-run", help="Tests were run"),
    tests_passed: bool = typer.Option(False, "--tests-passed", help="Tests passed"),
    test_summary: Optional[str] = typer.Option(None, help="Test run summary"),
    requirement: list[str] = typer.Option([], "--met", help="Requirement met (repeatable)"),
    concern: list[str] = typer.Option([], "--concern", help="Open concern (repeatable)"),
    question: list[str] = typer.Option([], "--question", help="Question for the reviewer (repeatable)"),
    diff_summary: str = typer.Option("", help="Summary of the diff"),
) -> None:
    """Record a self-assessment for the plan or its current phase."""
    _print_result(
        _run(
            "submit_self_assessment",
            {
                "plan_id": plan_id,
                "files_changed": list(file_changed),
                "tests_run": tests_run,
                "tests_passed": tests_passed,
                "test_summary": test_summary,
                "requirements_met": list(requirement),
                "concerns": list(concern),
                "questions": list(question),
                "diff_summary": diff_summary,
            },
        )
    )


@app.command()
def complete(plan_id: str = typer.Argument(..., help="Plan ID")) -> None:
    """Force-mark a plan as completed."""
    _print_result(_run("mark_complete", {"id": plan_id}))


@app.command()
def wait(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    target_status: str = typer.Argument(..., help="Status to wait for"),
    timeout: Optional[int] = typer.Option(None, "--timeout", "-t", help="Max seconds to wait"),
) -> None:
    """Block until a plan reaches a status."""
    arguments: dict[str, Any] = {"plan_id": plan_id, "target_status": target_status}
    if timeout is not None:
        arguments["timeout_seconds"] = timeout
    with console.status(f"Waiting for plan {plan_id[:8]} to reach {target_status}..."):
        text = _run("wait_for_status", arguments)
    _print_result(text)


@app.command()
def analyze(
    plan_file: Optional[Path] = typer.Argument(None, help="Markdown file to analyse", dir_okay=False),
    plan_id: Optional[str] = typer.Option(None, "--plan", help="Analyse a stored plan instead"),
) -> None:
    """Score a plan's complexity and show recommended phases."""
    if plan_file is None and plan_id is None:
        console.print("[bold red]Error:[/bold red] give a plan file or --plan")
        raise typer.Exit(1)

    arguments: dict[str, Any] = {"plan_id": plan_id}
    if plan_file is not None:
        arguments["content"] = plan_file.read_text(encoding="utf-8")
    text = _run("analyze_complexity", arguments)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        console.print(f"[yellow]{text}[/yellow]")
        raise typer.Exit(1)

    indicators = data["indicators"]
    verdict = "[red]complex[/red]" if data["is_complex"] else "[green]simple[/green]"
    console.print(
        Panel.fit(
            f"Score: [bold]{data['score']}[/bold] ({verdict})\n"
            f"Files: {indicators['file_count']}  Steps: {indicators['estimated_steps']}  "
            f"Lines: {indicators['total_lines']}\n"
            f"Phase markers: {indicators['has_phases']}  "
            f"Dependencies: {indicators['has_dependencies']}",
            title="Complexity",
            border_style="blue",
        )
    )

    if data["recommended_phases"]:
        table = Table(show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Phase", style="bold")
        table.add_column("Files", style="cyan")
        table.add_column("Rationale", style="dim")
        for idx, rec in enumerate(data["recommended_phases"], 1):
            table.add_row(str(idx), rec["name"], ", ".join(rec["estimated_files"]), rec["rationale"])
        console.print(table)


@app.command()
def split(plan_id: str = typer.Argument(..., help="Plan ID")) -> None:
    """Split an existing plan into phases."""
    _print_result(_run("split_plan", {"plan_id": plan_id}))


@app.command()
def phase(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    number: Optional[int] = typer.Option(None, "--number", "-n", help="Phase number (current if omitted)"),
) -> None:
    """Show the current phase, or a phase by number."""
    _print_result(_run("get_phase", {"plan_id": plan_id, "phase_number": number}))


@app.command()
def advance(plan_id: str = typer.Argument(..., help="Plan ID")) -> None:
    """Complete the current phase and move to the next."""
    _print_result(_run("advance_phase", {"plan_id": plan_id}))


@app.command()
def reset(plan_id: str = typer.Argument(..., help="Plan ID")) -> None:
    """Reset a plan (and its phases) to submitted."""
    _print_result(_run("reset_plan", {"plan_id": plan_id}))


@app.command()
def migrate(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    project: Path = typer.Argument(..., help="Project whose local store receives the plan"),
) -> None:
    """Move a plan into a project's local store."""
    _print_result(
        _run("migrate_plan", {"plan_id": plan_id, "project_path": str(project.expanduser().resolve())})
    )


@app.command()
def delete(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a plan from its store."""
    if not yes and not typer.confirm(f"Delete plan {plan_id}?"):
        raise typer.Exit(0)
    _print_result(_run("delete_plan", {"plan_id": plan_id}))


@app.command()
def tool(
    name: str = typer.Argument(..., help="Tool name"),
    arguments: str = typer.Argument("{}", help="Tool arguments as a JSON object"),
) -> None:
    """Call a tool directly with JSON arguments."""
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as e:
        console.print(f"[bold red]Invalid JSON arguments:[/bold red] {e}")
        raise typer.Exit(1)
    if not isinstance(parsed, dict):
        console.print("[bold red]Tool arguments must be a JSON object[/bold red]")
        raise typer.Exit(1)
    console.print(_run(name, parsed), markup=False, highlight=False)


def main() -> None:
    """Entry point for the plan-bridge console script."""
    app()


if __name__ == "__main__":
    main()
