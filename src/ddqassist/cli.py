"""Command line interface for ddqassist."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ddqassist.assist.controller import AssistController, AssistOutcome
from ddqassist.config import AppConfig
from ddqassist.errors import DocumentReadError
from ddqassist.questionnaire import load_questionnaire
from ddqassist.telemetry.ledger import TelemetryLedger
from ddqassist.web.app import app as web_app

console = Console()
app = typer.Typer(help="ddqassist - CSDDD due diligence questionnaire with AI assist")

_VARIANT_STYLES = {"success": "green", "info": "cyan", "error": "red"}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _print_outcome(outcome: AssistOutcome) -> None:
    style = _VARIANT_STYLES.get(outcome.variant, "white")
    console.print(f"[{style}]{outcome.message}[/{style}]")
    if outcome.decision is not None and outcome.decision.reason:
        console.print(f"Reason: {outcome.decision.reason}")

    if outcome.evidence:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Rank")
        table.add_column("Score")
        table.add_column("Chunk")
        table.add_column("Excerpt")
        for item in outcome.evidence:
            snippet = item.text.replace("\n", " ")
            table.add_row(str(item.rank), f"{item.score:.2f}", str(item.chunk_id), snippet[:180])
        console.print(table)


def _print_telemetry(ledger: TelemetryLedger) -> None:
    table = Table(show_header=True, header_style="bold magenta", title="API calls")
    table.add_column("#")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("HTTP")
    table.add_column("Payload")
    table.add_column("Tokens")
    table.add_column("ms")
    table.add_column("Detail")
    for record in ledger.snapshot():
        total = record.token_usage.total
        table.add_row(
            str(record.id),
            f"{record.call_type}/{record.subtype}",
            record.status.value,
            str(record.http_status or ""),
            str(record.payload_size),
            "-" if total is None else str(total),
            "" if record.duration_ms is None else f"{record.duration_ms:.0f}",
            record.error_message or record.decision,
        )
    console.print(table)


@app.command()
def questions() -> None:
    """List the questionnaire."""
    questionnaire = load_questionnaire()
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Number")
    table.add_column("Question")
    table.add_column("Options")
    for question in questionnaire.questions():
        options = ", ".join(f"{opt.label} ({opt.score})" for opt in question.options)
        table.add_row(question.number, question.text, options)
    console.print(table)


@app.command()
def ask(
    document: Path = typer.Argument(..., help="Evidence document (text or PDF).", exists=True, dir_okay=False),
    question: str = typer.Argument(..., help="Question number, e.g. 3.1"),
    api_key: str = typer.Option(
        "", "--api-key", envvar="OPENAI_API_KEY", help="API key for the model provider"
    ),
    model: str = typer.Option(AppConfig().completion_model, help="Completion model name"),
    embedding_model: str = typer.Option(AppConfig().embedding_model, help="Embedding model name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Answer one question from a document."""
    _setup_logging(verbose)
    config = AppConfig(completion_model=model, embedding_model=embedding_model)
    controller = AssistController.from_config(config)
    if question not in controller.questionnaire:
        raise typer.BadParameter(f"Unknown question: {question}")

    try:
        loaded = controller.load_document(document.name, document.read_bytes())
    except DocumentReadError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    note = " [yellow](truncated for analysis)[/yellow]" if loaded.truncated else ""
    console.print(
        f"Loaded [bold]{loaded.name}[/bold]: {len(loaded.content)} characters, "
        f"{len(controller.session.chunks)} chunks{note}"
    )

    outcome = asyncio.run(controller.on_ask_ai(question, api_key))
    _print_outcome(outcome)
    _print_telemetry(controller.ledger)
    if outcome.error is not None:
        raise typer.Exit(code=1)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the web interface."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    console.print(f"Starting web interface on http://{host}:{port}")
    uvicorn.run(web_app, host=host, port=port, reload=False, log_level="info")
