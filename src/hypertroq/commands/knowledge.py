"""Knowledge base commands."""

from pathlib import Path

import click

from ..db import KnowledgeRepository, get_db_path
from ..llm.client import GeminiClient
from ..rag.embeddings import EmbeddingService
from ..rag.file_processor import guess_mime_type
from ..rag.vector_search import VectorSearch
from ..services.ingestion import KnowledgeIngestionService, ProcessingResult
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    format_table,
    truncate,
)


def _ingestion_service() -> KnowledgeIngestionService:
    return KnowledgeIngestionService(EmbeddingService(GeminiClient()), db_path=get_db_path())


def _report(result: ProcessingResult) -> None:
    for warning in result.warnings:
        echo_warning(warning)
    if result.success:
        echo_success(
            f"Item {result.knowledge_item_id} ready: {result.chunks_created} chunks, "
            f"{result.embeddings_generated} embeddings ({result.processing_time:.1f}s)"
        )
    else:
        for error in result.errors:
            echo_error(error)


@click.group()
@click.pass_context
def knowledge(ctx):
    """Manage the coaching knowledge base.

    Add documents, inspect their chunks and test retrieval.
    """
    ensure_initialized(ctx)


@knowledge.command()
@click.argument("title")
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("--category", "-c", help="Knowledge category (e.g. chest, hypertrophy_principles)")
@click.option("--user", "-u", "user_id", type=int, help="Owner (omit for the shared base)")
@click.pass_context
@async_command
async def add(ctx, title: str, source, category: str | None, user_id: int | None):
    """Add text from SOURCE (a file or - for stdin) as a knowledge item."""
    content = source.read()
    item, result = await _ingestion_service().ingest_text(
        title, content, category=category, user_id=user_id
    )
    echo_info(f"Created knowledge item {item.id}: {item.title}")
    _report(result)
    if not result.success:
        ctx.exit(1)


@knowledge.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--title", "-t", help="Title (defaults to the file name)")
@click.option("--category", "-c", help="Knowledge category")
@click.option("--user", "-u", "user_id", type=int, help="Owner (omit for the shared base)")
@click.pass_context
@async_command
async def upload(ctx, path: Path, title: str | None, category: str | None, user_id: int | None):
    """Upload a PDF, text, Markdown or HTML file."""
    mime_type = guess_mime_type(path.name)
    if mime_type is None:
        echo_error(f"Cannot tell the file type of {path.name}")
        ctx.exit(1)

    item, result = await _ingestion_service().ingest_file(
        path.read_bytes(), path.name, mime_type, title=title, category=category, user_id=user_id
    )
    echo_info(f"Created knowledge item {item.id}: {item.title}")
    _report(result)
    if not result.success:
        ctx.exit(1)


@knowledge.command(name="list")
@click.option("--user", "-u", "user_id", type=int, help="Only items visible to this user")
@async_command
async def list_items(user_id: int | None):
    """List knowledge items."""
    items = await KnowledgeRepository(get_db_path()).list_all(user_id=user_id)

    if not items:
        echo_info("No knowledge items found. Add one with 'hypertroq knowledge upload'")
        return

    headers = ["ID", "Title", "Type", "Status", "Category", "Owner"]
    rows = [
        [
            str(item.id),
            truncate(item.title),
            item.source_type.value,
            item.status.value,
            item.category or "-",
            str(item.user_id) if item.user_id is not None else "shared",
        ]
        for item in items
    ]

    click.echo()
    click.echo(format_table(headers, rows))
    click.echo()
    click.echo(f"Total: {len(items)} item(s)")


@knowledge.command()
@click.argument("item_id", type=int)
@click.option("--chunks", is_flag=True, help="Print every chunk")
@click.pass_context
@async_command
async def show(ctx, item_id: int, chunks: bool):
    """Show a knowledge item and its processing stats."""
    item = await KnowledgeRepository(get_db_path()).get(item_id, include_chunks=True)
    if item is None:
        echo_error(f"Knowledge item {item_id} not found")
        ctx.exit(1)

    click.echo()
    click.echo("=" * 60)
    click.echo(f"{item.title} (ID: {item.id})")
    click.echo("=" * 60)
    click.echo(f"Status:   {item.status.value}")
    click.echo(f"Source:   {item.source_type.value}" + (f" ({item.file_name})" if item.file_name else ""))
    click.echo(f"Category: {item.category or '-'}")
    if item.error_message:
        click.echo(f"Error:    {item.error_message}")

    with_embeddings = sum(1 for c in item.chunks if c.embedding is not None)
    click.echo(f"Chunks:   {len(item.chunks)} ({with_embeddings} embedded)")
    click.echo(f"Length:   {len(item.content)} characters")

    if chunks:
        for chunk in item.chunks:
            click.echo()
            click.echo(f"--- Chunk {chunk.chunk_index} [{chunk.start_char}:{chunk.end_char}] ---")
            click.echo(chunk.content)


@knowledge.command()
@click.argument("item_id", type=int)
@click.confirmation_option(prompt="Delete this item and its chunks?")
@click.pass_context
@async_command
async def delete(ctx, item_id: int):
    """Delete a knowledge item."""
    if not await KnowledgeRepository(get_db_path()).delete(item_id):
        echo_error(f"Knowledge item {item_id} not found")
        ctx.exit(1)
    echo_success(f"Deleted knowledge item {item_id}")


@knowledge.command()
@click.argument("item_id", type=int)
@click.pass_context
@async_command
async def reprocess(ctx, item_id: int):
    """Re-chunk and re-embed an item from its stored text."""
    result = await _ingestion_service().reprocess(item_id)
    _report(result)
    if not result.success:
        ctx.exit(1)


@knowledge.command()
@click.argument("query")
@click.option("--max-chunks", "-n", default=8, type=int, help="Chunks to return (default: 8)")
@click.option("--threshold", default=0.05, type=float, help="Similarity threshold (default: 0.05)")
@click.option("--user", "-u", "user_id", type=int, help="Search as this user")
@async_command
async def search(query: str, max_chunks: int, threshold: float, user_id: int | None):
    """Run hybrid retrieval for QUERY and print the ranked chunks."""
    db_path = get_db_path()
    retriever = VectorSearch(KnowledgeRepository(db_path), EmbeddingService(GeminiClient()))
    results = await retriever.fetch_enhanced_knowledge_context(
        query, max_chunks=max_chunks, similarity_threshold=threshold, user_id=user_id
    )

    if not results:
        echo_info("No matching knowledge found")
        return

    for rank, chunk in enumerate(results, 1):
        click.echo()
        click.echo(
            click.style(f"{rank}. {chunk.title}", bold=True)
            + f"  (item {chunk.knowledge_id}, chunk {chunk.chunk_index}, score {chunk.similarity:.3f})"
        )
        click.echo(truncate(chunk.content.replace("\n", " "), 300))
