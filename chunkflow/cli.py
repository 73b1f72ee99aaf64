"""chunkflow command line: limits catalog, chunk plans and streamed runs.

Commands: limits (show, list, check), plan, run.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from chunkflow import __version__
from chunkflow.chunking.chunker import MessageChunker
from chunkflow.errors import ChunkflowError
from chunkflow.limits.catalog import ModelLimitsCatalog
from chunkflow.schemas.messages import Message

console = Console()

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="chunkflow",
    help="Token-aware request shaping and chunked LLM streaming.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

limits_app = typer.Typer(
    name="limits",
    help="Inspect the model token limits catalog.",
    no_args_is_help=True,
)
app.add_typer(limits_app, name="limits")


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"chunkflow {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log chunking and backend activity.",
    ),
) -> None:
    """Token-aware request shaping and chunked LLM streaming."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


# ── Helpers ──────────────────────────────────────────────────────


def _load_catalog() -> ModelLimitsCatalog:
    """Load the limits catalog, exit on error."""
    try:
        return ModelLimitsCatalog.from_config()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading limits table:[/red] {e}")
        raise typer.Exit(1) from None


def _load_conversation(path: Path) -> list[Message]:
    """Read a JSON array of {role, content} objects, exit on error."""
    if not path.exists():
        console.print(f"[red]File not found:[/red] {path}")
        raise typer.Exit(1)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError("expected a JSON array of messages")
        return [Message.model_validate(item) for item in raw]
    except (json.JSONDecodeError, ValidationError, ValueError) as e:
        console.print(f"[red]Invalid conversation file:[/red] {e}")
        raise typer.Exit(1) from None


def _preview(message: Message, width: int = 60) -> str:
    text = message.text.replace("\n", " ")
    return text if len(text) <= width else text[:width - 1] + "…"


# ── limits ───────────────────────────────────────────────────────


@limits_app.command("show")
def limits_show(
    model: str = typer.Argument(..., help="Model name"),
    provider: str = typer.Option("", "--provider", "-p", help="Provider name"),
) -> None:
    """Show the resolved limits report for one model."""
    catalog = _load_catalog()
    console.print(Panel(catalog.report(model, provider), title=model, border_style="cyan"))


@limits_app.command("list")
def limits_list() -> None:
    """Show every model in the limits table."""
    catalog = _load_catalog()

    table = Table(title="Model Token Limits", show_lines=True)
    table.add_column("Model", style="bold cyan")
    table.add_column("Provider", style="dim")
    table.add_column("Context", justify="right")
    table.add_column("Completion", justify="right")
    table.add_column("Updated", style="dim")

    for entry in catalog.entries:
        table.add_row(
            entry.model_name,
            entry.provider,
            f"{entry.max_context_tokens:,}",
            f"{entry.max_completion_tokens:,}",
            entry.last_updated,
        )

    console.print(table)
    console.print(
        f"\n[dim]{len(catalog.entries)} models, "
        f"{len(catalog.providers)} provider defaults[/dim]"
    )


@limits_app.command("check")
def limits_check(
    model: str = typer.Argument(..., help="Model name"),
    requested: int = typer.Argument(..., help="Requested completion tokens"),
    provider: str = typer.Option("", "--provider", "-p", help="Provider name"),
) -> None:
    """Check a requested completion budget against a model's ceiling."""
    catalog = _load_catalog()
    result = catalog.validate(model, provider, requested)

    if result.valid:
        console.print(
            f"[green]✓[/green] {requested:,} tokens fits {model} "
            f"(limit {result.actual_limit:,})"
        )
        return

    console.print(f"[yellow]⚠[/yellow] {result.error}")
    console.print(f"[dim]Requests will be clamped to {result.actual_limit:,} tokens.[/dim]")


# ── plan ─────────────────────────────────────────────────────────


@app.command()
def plan(
    file: Path = typer.Argument(..., help="JSON file with the conversation"),
    max_tokens: int = typer.Option(4096, "--max-tokens", "-m", help="Token budget per chunk"),
    reserve: int = typer.Option(
        1000, "--reserve", "-r", help="Tokens reserved for the system prompt"
    ),
) -> None:
    """Show how a conversation would be split into chunks."""
    messages = _load_conversation(file)
    chunks = MessageChunker().chunk(messages, max_tokens, reserve)

    table = Table(title=f"Chunk plan ({len(chunks)} chunks)", show_lines=True)
    table.add_column("#", justify="right", style="bold")
    table.add_column("Partial")
    table.add_column("Messages", justify="right")
    table.add_column("Preview")

    for chunk in chunks:
        first = chunk.messages[0] if chunk.messages else None
        table.add_row(
            f"{chunk.chunk_index + 1}/{chunk.total_chunks}",
            "yes" if chunk.is_partial else "no",
            str(len(chunk.messages)),
            _preview(first) if first else "[dim]empty[/dim]",
        )

    console.print(table)


# ── run ──────────────────────────────────────────────────────────


async def _run(
    messages: list[Message], model: str | None, prompt: str | None, chat_mode: str
) -> None:
    from chunkflow.orchestrator import stream_text

    result = await stream_text(messages, model, prompt, chat_mode=chat_mode)
    async for delta in result.text_stream:
        console.print(delta, end="", markup=False, highlight=False)
    console.print()

    usage = await result.usage()
    console.print(
        f"[dim]finish: {await result.finish_reason()} · "
        f"prompt {usage.prompt_tokens:,} · completion {usage.completion_tokens:,}[/dim]"
    )


@app.command()
def run(
    file: Path = typer.Argument(..., help="JSON file with the conversation"),
    model: str = typer.Option(
        None, "--model", "-m", help="Model hint, 'Provider/model' or a bare name"
    ),
    prompt: str = typer.Option(None, "--prompt", help="System prompt id"),
    discuss: bool = typer.Option(False, "--discuss", help="Use the discussion prompt"),
) -> None:
    """Run a conversation through the orchestrator and stream the answer."""
    messages = _load_conversation(file)
    try:
        asyncio.run(_run(messages, model, prompt, "discuss" if discuss else "build"))
    except ChunkflowError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
