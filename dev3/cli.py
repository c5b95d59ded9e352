"""Dev3 CLI — Typer + Rich terminal interface.

Commands: voters, decisions, respond, consensus, stats, config, serve.
Every command opens the configured Decision Store, runs one operation,
and closes it again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from dev3 import __version__
from dev3.errors import (
    DecisionNotFoundError,
    IncompleteResponsesError,
    ValidationFailedError,
)
from dev3.persistence import DecisionStore, export_json, export_markdown, open_store
from dev3.schemas.config import Dev3Config, StoreBackend
from dev3.schemas.decision import (
    Consensus,
    Decision,
    DecisionCategory,
    DecisionPriority,
    DecisionStatus,
    VoteChoice,
)
from dev3.schemas.voters import REQUIRED_VOTERS, VOTER_PROFILES, Voter
from dev3.settings import load_config
from dev3.stats import compute_stats

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="dev3",
    help="Multi-model decision deliberation: collect votes, reach consensus.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

decisions_app = typer.Typer(
    name="decisions",
    help="Create, inspect, and manage decisions.",
    no_args_is_help=True,
)
app.add_typer(decisions_app, name="decisions")

consensus_app = typer.Typer(
    name="consensus",
    help="Calculate or show a decision's consensus.",
    no_args_is_help=True,
)
app.add_typer(consensus_app, name="consensus")

config_app = typer.Typer(
    name="config",
    help="Show configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"dev3 {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    ),
) -> None:
    """Dev3 — multi-model decision deliberation."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# ── Helpers ──────────────────────────────────────────────────────


def _load_config() -> Dev3Config:
    """Load configuration, exit on error."""
    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None
    if config.store.backend == StoreBackend.MEMORY:
        console.print(
            "[dim]Store backend is 'memory': changes made by this command "
            "will not be kept.[/dim]"
        )
    return config


def _run(operation: Callable[[DecisionStore], Awaitable[T]]) -> T:
    """Open the store, run one operation, close the store.

    Store errors are printed and turned into exit code 1.
    """
    config = _load_config()

    async def _main() -> T:
        store = await open_store(config)
        try:
            return await operation(store)
        finally:
            await store.close()

    try:
        return asyncio.run(_main())
    except DecisionNotFoundError as e:
        console.print(f"[red]Decision not found:[/red] {e.decision_id}")
        raise typer.Exit(1) from None
    except IncompleteResponsesError as e:
        console.print(
            "[red]Cannot reach consensus:[/red] waiting on "
            f"{', '.join(VOTER_PROFILES[v].name for v in e.missing)}"
        )
        if e.responded:
            console.print(
                f"[dim]Responded: {', '.join(VOTER_PROFILES[v].name for v in e.responded)}[/dim]"
            )
        raise typer.Exit(1) from None
    except ValidationFailedError as e:
        console.print(f"[red]{e}[/red]")
        for detail in e.details:
            loc = ".".join(str(part) for part in detail.get("loc", ()))
            console.print(f"  [yellow]{loc}[/yellow]: {detail.get('msg', '')}")
        raise typer.Exit(1) from None


async def _resolve_id(store: DecisionStore, id_or_prefix: str) -> str:
    """Resolve a decision ID or unique prefix (min 4 chars) to a full ID."""
    decisions = await store.list_decisions()
    if any(d.id == id_or_prefix for d in decisions):
        return id_or_prefix
    if len(id_or_prefix) >= 4:
        matches = [d.id for d in decisions if d.id.startswith(id_or_prefix)]
        if len(matches) == 1:
            return matches[0]
    raise DecisionNotFoundError(id_or_prefix)


def _status_style(status: str) -> str:
    return {
        "pending": "yellow",
        "deliberating": "cyan",
        "consensus_reached": "bold green",
        "deadlock": "bold red",
    }.get(status, "white")


def _vote_style(vote: str) -> str:
    """Return a Rich style string for a vote or outcome value."""
    return {
        "approve": "bold green",
        "approved": "bold green",
        "reject": "bold red",
        "rejected": "bold red",
        "abstain": "dim",
        "needs_revision": "bold yellow",
    }.get(vote, "white")


def _print_consensus(consensus: Consensus) -> None:
    summary = consensus.vote_summary
    header = Text()
    header.append(consensus.outcome.upper(), style=_vote_style(consensus.outcome))
    if consensus.unanimity:
        header.append("  (unanimous)", style="dim")
    header.append(
        f"\n{summary.approve} approve · {summary.reject} reject · "
        f"{summary.abstain} abstain\n\n"
    )
    header.append(consensus.synthesized_reasoning)
    console.print(Panel(header, title="[bold]Consensus[/bold]", border_style="blue"))

    if consensus.action_items:
        for item in consensus.action_items:
            console.print(f"  [cyan]▸[/cyan] {item}")


# ── dev3 voters ──────────────────────────────────────────────────


@app.command()
def voters() -> None:
    """List the required voters and their roles."""
    table = Table(title=f"Required Voters ({len(REQUIRED_VOTERS)})")
    table.add_column("Key", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Role")
    table.add_column("Mandate", style="dim")
    for voter in REQUIRED_VOTERS:
        profile = VOTER_PROFILES[voter]
        table.add_row(voter.value, profile.name, profile.role, profile.mandate)
    console.print(table)


# ── dev3 decisions ───────────────────────────────────────────────


@decisions_app.command("create")
def decisions_create(
    title: str = typer.Option(..., "--title", "-t", help="Short title"),
    description: str = typer.Option(..., "--description", "-d", help="What is proposed"),
    category: DecisionCategory = typer.Option(..., "--category", "-c", help="Category"),
    priority: DecisionPriority = typer.Option(
        DecisionPriority.MEDIUM, "--priority", "-p", help="Priority",
    ),
    context: str = typer.Option(None, "--context", help="Background for the voters"),
) -> None:
    """Create a new decision for the voters to deliberate."""
    data = {
        "title": title,
        "description": description,
        "category": category,
        "priority": priority,
        "context": context,
    }
    decision = _run(lambda store: store.create_decision(data))
    console.print(f"[green]Decision created:[/green] {decision.id}")


@decisions_app.command("list")
def decisions_list(
    status: DecisionStatus = typer.Option(None, "--status", help="Filter by status"),
    category: DecisionCategory = typer.Option(None, "--category", help="Filter by category"),
    limit: int = typer.Option(20, "--limit", "-n", help="Max decisions to show"),
) -> None:
    """Show decisions, newest first."""
    async def _list(store: DecisionStore) -> tuple[tuple[Voter, ...], list[Decision]]:
        return store.voters, await store.list_decisions()

    voters, decisions = _run(_list)
    if status:
        decisions = [d for d in decisions if d.status == status]
    if category:
        decisions = [d for d in decisions if d.category == category]
    decisions = decisions[:limit]

    if not decisions:
        console.print("[dim]No decisions found.[/dim]")
        return

    table = Table(title=f"Decisions ({len(decisions)} shown)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", max_width=40)
    table.add_column("Category", style="dim")
    table.add_column("Priority", style="dim")
    table.add_column("Status")
    table.add_column("Votes", justify="right")
    table.add_column("Outcome")

    for d in decisions:
        outcome = (
            Text(d.consensus.outcome.value, style=_vote_style(d.consensus.outcome))
            if d.consensus
            else Text("-", style="dim")
        )
        table.add_row(
            d.id[:8],
            d.title[:40],
            d.category.value,
            d.priority.value,
            Text(d.status.value, style=_status_style(d.status)),
            f"{len(d.responses)}/{len(voters)}",
            outcome,
        )

    console.print(table)


def _print_decision(decision: Decision, voters: tuple[Voter, ...]) -> None:
    meta = Table(title=f"Decision: {decision.id}", show_header=False, show_lines=True)
    meta.add_column("Field", style="bold")
    meta.add_column("Value")
    meta.add_row("Title", decision.title)
    meta.add_row("Description", decision.description)
    if decision.context:
        meta.add_row("Context", decision.context)
    meta.add_row("Category", decision.category.value)
    meta.add_row("Priority", decision.priority.value)
    meta.add_row("Status", Text(decision.status.value, style=_status_style(decision.status)))
    meta.add_row("Created", decision.created_at.isoformat())
    meta.add_row("Updated", decision.updated_at.isoformat())
    console.print(meta)

    if decision.responses:
        console.print()
        responses = Table(title="Responses", show_lines=True)
        responses.add_column("Voter", style="cyan")
        responses.add_column("Vote")
        responses.add_column("Confidence", justify="right")
        responses.add_column("Reasoning", max_width=60)
        for r in decision.responses:
            responses.add_row(
                VOTER_PROFILES[r.voter].name,
                Text(r.vote.upper(), style=_vote_style(r.vote)),
                f"{r.confidence}%",
                r.reasoning,
            )
        console.print(responses)

    missing = [v for v in voters if v not in {r.voter for r in decision.responses}]
    if missing:
        console.print(
            f"[dim]Awaiting: {', '.join(VOTER_PROFILES[v].name for v in missing)}[/dim]"
        )

    if decision.consensus:
        console.print()
        _print_consensus(decision.consensus)


@decisions_app.command("show")
def decisions_show(
    decision_id: str = typer.Argument(..., help="Decision ID or prefix (min 4 chars)"),
) -> None:
    """Show a decision with its responses and consensus."""

    async def _get(store: DecisionStore) -> tuple[Decision, tuple[Voter, ...]]:
        return await store.get_decision(await _resolve_id(store, decision_id)), store.voters

    _print_decision(*_run(_get))


@decisions_app.command("update")
def decisions_update(
    decision_id: str = typer.Argument(..., help="Decision ID or prefix (min 4 chars)"),
    title: str = typer.Option(None, "--title", "-t", help="New title"),
    description: str = typer.Option(None, "--description", "-d", help="New description"),
    context: str = typer.Option(None, "--context", help="New context"),
    category: DecisionCategory = typer.Option(None, "--category", "-c", help="New category"),
    priority: DecisionPriority = typer.Option(None, "--priority", "-p", help="New priority"),
    status: DecisionStatus = typer.Option(
        None, "--status",
        help="Mark the decision deadlocked (only 'deadlock' is accepted)",
    ),
) -> None:
    """Update fields of an existing decision."""
    updates = {
        key: value
        for key, value in {
            "title": title,
            "description": description,
            "context": context,
            "category": category,
            "priority": priority,
            "status": status,
        }.items()
        if value is not None
    }
    if not updates:
        console.print("[yellow]Nothing to update.[/yellow]")
        raise typer.Exit(1)

    async def _update(store: DecisionStore) -> Decision:
        return await store.update_decision(await _resolve_id(store, decision_id), updates)

    decision = _run(_update)
    console.print(f"[green]Decision updated:[/green] {decision.id}")


@decisions_app.command("delete")
def decisions_delete(
    decision_id: str = typer.Argument(..., help="Decision ID or prefix (min 4 chars)"),
    yes: bool = typer.Option(
        False, "--yes", "-y",
        help="Skip confirmation prompt",
    ),
) -> None:
    """Delete a decision with its responses and consensus."""
    if not yes:
        confirm = typer.confirm(
            f"Delete decision {decision_id}? This cannot be undone."
        )
        if not confirm:
            console.print("[dim]Cancelled.[/dim]")
            return

    async def _delete(store: DecisionStore) -> bool:
        return await store.delete_decision(await _resolve_id(store, decision_id))

    if _run(_delete):
        console.print(f"[green]Decision deleted:[/green] {decision_id}")


@decisions_app.command("export")
def decisions_export(
    decision_id: str = typer.Argument(..., help="Decision ID or prefix (min 4 chars)"),
    fmt: str = typer.Option(
        "markdown", "--format", "-f",
        help="Export format: json or markdown",
    ),
) -> None:
    """Export a decision as JSON or Markdown."""
    if fmt not in ("json", "markdown"):
        console.print(f"[red]Invalid format:[/red] '{fmt}'. Choose json or markdown.")
        raise typer.Exit(1)

    async def _get(store: DecisionStore) -> Decision:
        return await store.get_decision(await _resolve_id(store, decision_id))

    decision = _run(_get)
    if fmt == "json":
        console.print_json(export_json(decision))
    else:
        console.print(export_markdown(decision), markup=False, highlight=False)


# ── dev3 respond ─────────────────────────────────────────────────


@app.command()
def respond(
    decision_id: str = typer.Argument(..., help="Decision ID or prefix (min 4 chars)"),
    voter: Voter = typer.Option(..., "--voter", help="Who is voting"),
    vote: VoteChoice = typer.Option(..., "--vote", help="approve, reject, or abstain"),
    confidence: int = typer.Option(..., "--confidence", help="Confidence percentage (0-100)"),
    reasoning: str = typer.Option(..., "--reasoning", "-r", help="Why this vote"),
    risk: list[str] = typer.Option(None, "--risk", help="A risk (repeatable)"),
    recommend: list[str] = typer.Option(
        None, "--recommend", help="A recommended action (repeatable)",
    ),
) -> None:
    """Submit a voter's response. Replaces that voter's earlier response."""

    async def _submit(store: DecisionStore) -> tuple[Decision, tuple[Voter, ...]]:
        full_id = await _resolve_id(store, decision_id)
        await store.submit_response({
            "decision_id": full_id,
            "voter": voter,
            "vote": vote,
            "confidence": confidence,
            "reasoning": reasoning,
            "risks": list(risk) if risk else None,
            "recommendations": list(recommend) if recommend else None,
        })
        return await store.get_decision(full_id), store.voters

    decision, voters = _run(_submit)
    console.print(
        f"[green]Recorded[/green] {VOTER_PROFILES[voter].name}: "
        f"[{_vote_style(vote)}]{vote.upper()}[/] ({confidence}%)"
    )
    console.print(
        f"[dim]{len(decision.responses)}/{len(voters)} voters responded · "
        f"status {decision.status.value}[/dim]"
    )


# ── dev3 consensus ───────────────────────────────────────────────


@consensus_app.command("reach")
def consensus_reach(
    decision_id: str = typer.Argument(..., help="Decision ID or prefix (min 4 chars)"),
) -> None:
    """Calculate the consensus once every voter has responded."""

    async def _reach(store: DecisionStore) -> Consensus:
        return await store.reach_consensus(await _resolve_id(store, decision_id))

    _print_consensus(_run(_reach))


@consensus_app.command("show")
def consensus_show(
    decision_id: str = typer.Argument(..., help="Decision ID or prefix (min 4 chars)"),
) -> None:
    """Show the stored consensus for a decision."""

    async def _get(store: DecisionStore) -> Consensus | None:
        return await store.get_consensus(await _resolve_id(store, decision_id))

    consensus = _run(_get)
    if consensus is None:
        console.print("[yellow]No consensus reached yet.[/yellow]")
        raise typer.Exit(1)
    _print_consensus(consensus)


# ── dev3 stats ───────────────────────────────────────────────────


@app.command()
def stats() -> None:
    """Show aggregate statistics across all decisions."""
    summary = compute_stats(_run(lambda store: store.list_decisions()))

    console.print(f"[bold]Total decisions:[/bold] {summary.total_decisions}")
    console.print(f"[bold]Unanimous:[/bold] {summary.unanimous_decisions}")

    for title, counts in (
        ("By Status", summary.by_status),
        ("By Category", summary.by_category),
        ("By Priority", summary.by_priority),
        ("Consensus Outcomes", summary.consensus_outcomes),
    ):
        if not counts:
            continue
        table = Table(title=title)
        table.add_column("Value", style="cyan")
        table.add_column("Count", justify="right")
        for key, count in counts.items():
            table.add_row(key, str(count))
        console.print(table)


# ── dev3 config ──────────────────────────────────────────────────


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration."""
    config = _load_config()
    table = Table(title="Configuration", show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("store.backend", config.store.backend.value)
    table.add_row("store.db_path", config.store.db_path)
    table.add_row("server.host", config.server.host)
    table.add_row("server.port", str(config.server.port))
    console.print(table)


# ── dev3 serve ───────────────────────────────────────────────────


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port (default from config)"),
) -> None:
    """Start the JSON API server.

    Requires: pip install dev3[server]
    """
    try:
        import uvicorn

        from dev3.server import create_app
    except ImportError:
        console.print(
            "[red]The API server requires extra dependencies.[/red]\n"
            "Install with: [bold]pip install dev3\\[server][/bold]"
        )
        raise typer.Exit(1) from None

    config = _load_config()
    bind_host = host or config.server.host
    bind_port = port or config.server.port

    console.print(Panel(
        f"[bold]URL:[/bold] http://{bind_host}:{bind_port}/api\n"
        f"[bold]Store:[/bold] {config.store.backend.value}",
        title="[bold blue]Dev3 API[/bold blue]",
        border_style="blue",
    ))
    uvicorn.run(create_app(config=config), host=bind_host, port=bind_port, log_level="warning")
