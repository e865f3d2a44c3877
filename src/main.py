"""
Lecture Study Material - CLI Entry Point
-----------------------------------------
Exposes Typer commands for each stage of the pipeline.

Usage:
    python -m src.main extract lecture.pdf notes.docx --out chunks.json
    python -m src.main generate chunks.json --kind quiz --out quiz.json
    python -m src.main run lecture.pdf --kind flashcard --out cards.json
"""
from __future__ import annotations

import sys

# Windows cp1252 terminal fix: force UTF-8 so lecture text with
# symbols does not crash the Rich console renderer.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from src.chunking.schemas import TextChunk
from src.config import DEFAULT_CONFIG_PATH, PipelineConfig, load_config
from src.errors import StudyPipelineError
from src.schemas import GenerationBatchResult, GenerationKind
from src.serving.pipeline import StudyPipeline, load_documents
from src.utils.helpers import load_json, save_json, truncate_text
from src.utils.logger import setup_logger

app = typer.Typer(
    name="lecture-study",
    help="Turn lecture documents into quizzes and flashcards",
    add_completion=False,
)
console = Console()


# --- Helpers ------------------------------------------------------------------

def _setup(config_path: str, max_tokens: Optional[int] = None) -> PipelineConfig:
    cfg = load_config(config_path)
    if max_tokens is not None:
        cfg.chunking.max_tokens = max_tokens
    setup_logger(log_level=cfg.logging.level, log_file=cfg.logging.file)
    return cfg


def _print_chunks(chunks: list[TextChunk]) -> None:
    table = Table("No.", "Tokens", "Preview", box=box.SIMPLE, header_style="bold dim")
    for chunk in chunks:
        table.add_row(
            str(chunk.chunk_index),
            str(chunk.token_count),
            truncate_text(chunk.text.replace("\n", " "), 80),
        )
    console.print(table)
    console.print(f"[green][OK] {len(chunks)} chunk(s)[/green]")


def _print_result(result: GenerationBatchResult) -> None:
    records = result.to_records()
    if result.kind is GenerationKind.QUIZ:
        table = Table("No.", "Question", "Answer", box=box.SIMPLE, header_style="bold dim")
        for i, rec in enumerate(records, start=1):
            table.add_row(str(i), truncate_text(rec["question"], 70), truncate_text(rec["correctAnswer"], 40))
    else:
        table = Table("No.", "Front", "Back", box=box.SIMPLE, header_style="bold dim")
        for i, rec in enumerate(records, start=1):
            table.add_row(str(i), truncate_text(rec["front"], 55), truncate_text(rec["back"], 55))
    console.print(table)

    status = "[yellow]partial[/yellow]" if result.partial else "[green]complete[/green]"
    console.print(
        f"{status} | {len(records)} item(s) | "
        f"chunks ok={len(result.succeeded_chunks)} failed={len(result.failed_chunks)} "
        f"of {result.total_chunks}"
    )


def _write_result(result: GenerationBatchResult, out: Optional[str]) -> None:
    if out:
        save_json(result.to_records(), out)
        console.print(f"[dim]Saved -> {out}[/dim]")


# --- Commands -----------------------------------------------------------------

@app.command()
def extract(
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="PDF/DOCX/TXT files"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Write chunks to this JSON file"),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens", help="Token budget per chunk"),
    config: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config YAML"),
) -> None:
    """Extract text from lecture files and split it into chunks."""
    cfg = _setup(config, max_tokens)
    pipeline = StudyPipeline(cfg)
    try:
        chunks = pipeline.prepare(load_documents(files))
    except StudyPipelineError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)

    _print_chunks(chunks)
    if out:
        save_json([c.model_dump() for c in chunks], out)
        console.print(f"[dim]Saved -> {out}[/dim]")


@app.command()
def generate(
    chunks_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON from `extract --out`"),
    kind: GenerationKind = typer.Option(GenerationKind.QUIZ, "--kind", "-k", help="quiz or flashcard"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Write items to this JSON file"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Model API key (else GROQ_API_KEY)"),
    config: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config YAML"),
) -> None:
    """Generate quiz questions or flashcards from saved chunks."""
    cfg = _setup(config)
    chunks = [TextChunk.model_validate(c) for c in load_json(chunks_file)]
    pipeline = StudyPipeline(cfg, api_key=api_key)

    with console.status(f"[cyan]Generating {kind.value} items from {len(chunks)} chunk(s)...[/cyan]"):
        try:
            result = asyncio.run(pipeline.generate(chunks, kind))
        except StudyPipelineError as exc:
            console.print(f"[red]{exc}[/red]")
            raise typer.Exit(1)

    _print_result(result)
    _write_result(result, out)


@app.command()
def run(
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="PDF/DOCX/TXT files"),
    kind: GenerationKind = typer.Option(GenerationKind.QUIZ, "--kind", "-k", help="quiz or flashcard"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Write items to this JSON file"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Model API key (else GROQ_API_KEY)"),
    config: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config YAML"),
) -> None:
    """Extract, chunk and generate in one go."""
    cfg = _setup(config)
    pipeline = StudyPipeline(cfg, api_key=api_key)

    with console.status("[cyan]Processing lecture files...[/cyan]"):
        try:
            result = asyncio.run(pipeline.run(load_documents(files), kind))
        except StudyPipelineError as exc:
            console.print(f"[red]{exc}[/red]")
            raise typer.Exit(1)

    _print_result(result)
    _write_result(result, out)


# --- Entry Point --------------------------------------------------------------

if __name__ == "__main__":
    app()
