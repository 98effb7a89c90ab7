"""Coaching chat and program generation commands."""

import click

from ..coach.chat import ChatResponse, CoachChatService
from ..db import KnowledgeRepository, get_db_path
from ..llm.client import ChatMessage, GeminiClient
from ..rag.embeddings import EmbeddingService
from ..rag.vector_search import VectorSearch
from .base import async_command, echo_info, echo_success, ensure_initialized

EXIT_WORDS = {"exit", "quit", "q"}


def _chat_service() -> CoachChatService:
    db_path = get_db_path()
    llm = GeminiClient()
    retriever = VectorSearch(KnowledgeRepository(db_path), EmbeddingService(llm))
    return CoachChatService(llm, retriever, db_path=db_path)


def _print_response(response: ChatResponse, show_sources: bool) -> None:
    click.echo()
    click.echo(response.content)
    click.echo()
    if show_sources and response.citations:
        click.echo(click.style("Sources: ", fg="cyan") + ", ".join(response.citations))
    if response.memory_updated:
        echo_info("Saved new details to your coaching memory")


@click.command()
@click.argument("user_id", type=int)
@click.argument("message", required=False)
@click.option("--model", type=click.Choice(["flash", "pro"]), help="Model for program requests")
@click.option("--sources/--no-sources", default=True, help="Show cited knowledge titles")
@click.pass_context
@async_command
async def chat(ctx, user_id: int, message: str | None, model: str | None, sources: bool):
    """Chat with the coach as USER_ID.

    With MESSAGE, answer once. Without it, start an interactive session
    (type 'exit' to leave).

    Examples:

        hypertroq chat 1 "How many sets per week for side delts?"

        hypertroq chat 1
    """
    ensure_initialized(ctx)
    service = _chat_service()

    if message:
        response = await service.generate_response(user_id, [], message, model)
        _print_response(response, sources)
        return

    history: list[ChatMessage] = []
    echo_info("Chat session started. Type 'exit' to leave.")
    while True:
        text = click.prompt(click.style("you", fg="green"), prompt_suffix="> ")
        if text.strip().lower() in EXIT_WORDS:
            break
        response = await service.generate_response(user_id, history, text, model)
        _print_response(response, sources)
        history.extend(
            [ChatMessage(role="user", content=text), ChatMessage(role="model", content=response.content)]
        )


@click.command()
@click.argument("user_id", type=int)
@click.argument("prompt")
@click.option(
    "--model",
    type=click.Choice(["flash", "pro"]),
    default="pro",
    help="Model to generate with (default: pro)",
)
@click.option("--output", "-o", type=click.File("w", encoding="utf-8"), help="Write the program to a file")
@click.pass_context
@async_command
async def generate(ctx, user_id: int, prompt: str, model: str, output):
    """Generate a workout program for USER_ID from PROMPT.

    The program is grounded in the knowledge base and limited to the
    approved exercise library.

    Example:

        hypertroq generate 1 "Design a 4 day upper/lower split focused on back width"
    """
    ensure_initialized(ctx)
    echo_info("Searching knowledge base and designing your program...")

    result = await _chat_service().generate_program(user_id, prompt, selected_model=model)

    if output:
        output.write(result.content)
        echo_success(f"Program written to {output.name}")
    else:
        click.echo()
        click.echo(result.content)
        click.echo()
    if result.citations:
        click.echo(click.style("Sources: ", fg="cyan") + ", ".join(result.citations))
