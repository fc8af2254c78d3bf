"""Main entry point for the corpusqa application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Coroutine, Dict, Optional

import typer
from typing_extensions import Annotated

# --- Setup Logging Early ---
# Use basic config until setup_logging is called with the configured settings
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# --- Core Layer ---
from corpusqa.core.command_handler import CommandHandler
from corpusqa.core.services.ingestion_service import IngestionService
from corpusqa.core.services.search_service import SearchService, SearchSettings

# --- Domain Layer ---
from corpusqa.domain.models.ai import CompletionParameters
from corpusqa.domain.models.common import Corpus

# --- Infrastructure Layer ---
from corpusqa.infrastructure.ai.openai.gpt_client import GptClient
from corpusqa.infrastructure.cli.display import ConsoleDisplay
from corpusqa.infrastructure.config.settings import (
    ConfigurationError,
    get_config,
    get_optional_number,
    load_configuration,
    require_secrets,
)
from corpusqa.infrastructure.filesystem.corpus_loader import CorpusLoader
from corpusqa.infrastructure.monitoring.logger_setup import configure_logging
from corpusqa.infrastructure.resilience.api_retry import ApiRetryService
from corpusqa.infrastructure.resilience.rate_limiter import RateLimiter
from corpusqa.infrastructure.storage.supabase_store import SupabaseVectorStore

# --- Dependency Injection Container (Manual) ---

def create_dependencies(ui: Optional[ConsoleDisplay] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root. The single RateLimiter created here is
    shared by every service that calls the AI provider.

    Raises:
        ConfigurationError: If a required secret is missing.
    """
    logger.info("Initializing application dependencies...")
    dependencies: Dict[str, Any] = {}

    # 1. Load Configuration First
    load_configuration()
    configure_logging()
    secrets = require_secrets() # Fail fast before anything can be scheduled

    # 2. Instantiate Infrastructure Adapters & Services
    dependencies['ui'] = ui or ConsoleDisplay()
    max_queue_size = get_optional_number('api.rate_limit.max_queue_size')
    dependencies['rate_limiter'] = RateLimiter(
        requests_per_minute=int(get_config('api.rate_limit.requests_per_minute', 3)),
        max_queue_size=int(max_queue_size) if max_queue_size else None,
    )
    dependencies['api_retry_service'] = ApiRetryService(
        rate_limiter=dependencies['rate_limiter'],
        max_attempts=int(get_config('api.retry.max_attempts', 3)),
        cooldown_seconds=float(get_config('api.retry.cooldown_seconds', 25)),
        admission_timeout=get_optional_number('api.rate_limit.admission_timeout_seconds'),
    )
    completion_parameters = CompletionParameters(
        temperature=float(get_config('ai.temperature', 0.7)),
        max_tokens=int(get_config('ai.max_tokens', 150)),
        presence_penalty=float(get_config('ai.presence_penalty', 0.0)),
        frequency_penalty=float(get_config('ai.frequency_penalty', 0.0)),
    )
    dependencies['ai_model'] = GptClient(
        api_key=secrets['OPENAI_API_KEY'],
        chat_model=get_config('ai.chat_model'),
        embedding_model=get_config('ai.embedding_model'),
        default_parameters=completion_parameters,
    )
    dependencies['vector_store'] = SupabaseVectorStore(
        url=secrets['SUPABASE_URL'],
        api_key=secrets['SUPABASE_API_KEY'],
    )
    dependencies['corpus_loader'] = CorpusLoader(
        chunk_size=int(get_config('ingestion.chunk_size', 500)),
        chunk_overlap=int(get_config('ingestion.chunk_overlap', 50)),
    )

    # 3. Instantiate Core Services (injecting dependencies)
    dependencies['ingestion_service'] = IngestionService(
        ai_model=dependencies['ai_model'],
        vector_store=dependencies['vector_store'],
        api_retry_service=dependencies['api_retry_service'],
        corpus_loader=dependencies['corpus_loader'],
        item_delay_seconds=float(get_config('ingestion.item_delay_seconds', 1.0)),
    )
    dependencies['search_service'] = SearchService(
        ai_model=dependencies['ai_model'],
        vector_store=dependencies['vector_store'],
        api_retry_service=dependencies['api_retry_service'],
        settings=SearchSettings(
            match_threshold=float(get_config('search.match_threshold', 0.5)),
            match_count=int(get_config('search.match_count', 3)),
        ),
        completion_parameters=completion_parameters,
    )

    # 4. Instantiate Command Handler
    dependencies['command_handler'] = CommandHandler(
        ingestion_service=dependencies['ingestion_service'],
        search_service=dependencies['search_service'],
        ui=dependencies['ui'],
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies

# --- Typer App Definition ---
app = typer.Typer(
    name="corpusqa",
    help="Ask questions about podcasts and movies, answered from a Supabase vector store.",
    add_completion=False,
)


def _command_handler(ctx: typer.Context) -> CommandHandler:
    """Builds the dependencies on first use, exiting with code 1 on bad configuration."""
    if ctx.obj is None:
        ctx.obj = {}
    if 'command_handler' not in ctx.obj:
        ui = ConsoleDisplay()
        try:
            ctx.obj.update(create_dependencies(ui=ui))
        except ConfigurationError as e:
            logger.error(f"Fatal configuration error: {e}")
            ui.display_error(f"Configuration error: {e}")
            raise typer.Exit(code=1)
    return ctx.obj['command_handler']


def run_async(coro: Coroutine[Any, Any, bool]) -> None:
    """Runs a handler coroutine and turns a False result into exit code 1."""
    if not asyncio.run(coro):
        raise typer.Exit(code=1)

# --- CLI Commands ---

CorpusArgument = Annotated[Corpus, typer.Argument(help="Which corpus to use ('podcasts' or 'movies').")]


@app.command()
def ingest(
    ctx: typer.Context,
    corpus: CorpusArgument,
    source: Annotated[Optional[Path], typer.Option("--source", "-s",
                                                   exists=True, file_okay=True, dir_okay=False,
                                                   readable=True, resolve_path=True,
                                                   help="Text file to ingest instead of the bundled corpus.")] = None,
    force: Annotated[bool, typer.Option("--force", help="Ingest even if the corpus is already stored.")] = False,
):
    """Embed a corpus and store it in Supabase (skipped if already stored)."""
    handler = _command_handler(ctx)
    run_async(handler.handle_ingest(corpus, source=source, force=force))


@app.command()
def search(
    ctx: typer.Context,
    corpus: CorpusArgument,
    query: Annotated[str, typer.Argument(help="Your question.")],
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", min=1, help="Maximum number of snippets.")] = None,
    no_answer: Annotated[bool, typer.Option("--no-answer", help="Only list matching snippets.")] = False,
):
    """Answer a question from the closest snippets in a corpus."""
    handler = _command_handler(ctx)
    run_async(handler.handle_search(corpus, query, limit=limit, answer=not no_answer))

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
