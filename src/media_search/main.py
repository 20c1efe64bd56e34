from typing import Annotated

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from typer import Argument, Exit, Option, Typer

from .errors import MediaSearchError
from .config import resolve_db_path
from .indexing import index_stats, load_manifest
from .logging import configure_logging
from .search import SearchResult
from .service import SearchService
from .storage import DuckDBStorage

app = Typer(help="Hybrid keyword search over ingested media.")
console = Console()

DbPathOption = Annotated[
    str | None,
    Option("--db-path", help="DuckDB file (defaults to MEDIA_SEARCH_DB_PATH)."),
]
TopKOption = Annotated[
    int | None, Option("--top-k", "-k", help="Maximum number of results.")
]
MinSimilarityOption = Annotated[
    float | None,
    Option("--min-similarity", "-m", help="Minimum cosine similarity (0-1)."),
]


@app.callback()
def _setup() -> None:
    configure_logging()


def _build_service(db_path: str | None) -> SearchService:
    return SearchService.from_db_path(db_path)


def _fail(exc: Exception) -> Exit:
    console.print(f"[bold red]Error:[/] {escape(str(exc))}")
    return Exit(code=1)


def _render_result(result: SearchResult) -> Panel:
    matched = ", ".join(
        f"{escape(m.keyword)} ({m.score:.2f})" for m in result.matched_keywords
    )
    lines = [
        f"[bold]{escape(result.filepath)}[/]  ({result.filetype})",
        f"Matched: {matched}",
    ]
    if result.matched_frames:
        frames = ", ".join(
            f"#{frame.frame_index}"
            + (f" @ {frame.timestamp:.1f}s" if frame.timestamp is not None else "")
            for frame in result.matched_frames
        )
        lines.append(f"Frames: {frames}")
    if result.transcription:
        lines.append(f"Transcription: {escape(result.transcription)}")
    if result.summary:
        lines.append(f"Summary: {escape(result.summary)}")
    return Panel(
        "\n".join(lines),
        title=f"{escape(result.filename)}  score={result.score:.3f}",
        title_align="left",
        border_style="bold green",
    )


@app.command()
def search(
    query: Annotated[str, Argument(help="Search text.")],
    top_k: TopKOption = None,
    min_similarity: MinSimilarityOption = None,
    asset_type: Annotated[
        str | None,
        Option("--type", "-t", help="Restrict to video, audio, image, document or text."),
    ] = None,
    db_path: DbPathOption = None,
) -> None:
    """Search files by keyword, literally and semantically."""
    try:
        with _build_service(db_path) as service:
            results = service.search(
                query,
                top_k=top_k,
                min_similarity=min_similarity,
                asset_type=asset_type,
            )
    except (MediaSearchError, ValueError) as exc:
        raise _fail(exc) from exc

    if not results:
        console.print("[yellow]No matching files.[/]")
        return
    for result in results:
        console.print(_render_result(result))


@app.command()
def keywords(
    query: Annotated[str, Argument(help="Search text.")],
    top_k: TopKOption = None,
    min_similarity: MinSimilarityOption = None,
    db_path: DbPathOption = None,
) -> None:
    """List stored keywords most similar to the query."""
    try:
        with _build_service(db_path) as service:
            matches = service.find_similar_keywords(
                query, top_k=top_k, min_similarity=min_similarity
            )
    except (MediaSearchError, ValueError) as exc:
        raise _fail(exc) from exc

    table = Table(title=f"Keywords similar to {escape(repr(query))}")
    table.add_column("Keyword")
    table.add_column("Similarity", justify="right")
    for match in matches:
        table.add_row(escape(match.keyword), f"{match.similarity:.4f}")
    console.print(table)


@app.command()
def index(db_path: DbPathOption = None) -> None:
    """Embed every keyword that has no stored vector yet."""
    try:
        with _build_service(db_path) as service:
            with console.status("Embedding keywords..."):
                result = service.index_all()
    except (MediaSearchError, ValueError) as exc:
        raise _fail(exc) from exc
    console.print(
        f"[bold green]Indexed {result.embeddings_written} new keywords[/] "
        f"({result.keywords_seen} distinct keywords seen)."
    )


@app.command()
def stats(db_path: DbPathOption = None) -> None:
    """Show how many keywords have embeddings."""
    try:
        storage = DuckDBStorage(resolve_db_path(db_path))
        try:
            current = index_stats(storage)
        finally:
            storage.close()
    except MediaSearchError as exc:
        raise _fail(exc) from exc

    table = Table(title="Keyword index")
    table.add_column("Total keywords", justify="right")
    table.add_column("Indexed keywords", justify="right")
    table.add_row(str(current.total_keywords), str(current.indexed_keywords))
    console.print(table)


@app.command()
def ingest(
    manifest: Annotated[str, Argument(help="JSON manifest of assets to load.")],
    skip_index: Annotated[
        bool, Option("--skip-index", help="Load keywords without embedding them.")
    ] = False,
    db_path: DbPathOption = None,
) -> None:
    """Load files, metadata, keywords and frames from a JSON manifest."""
    try:
        parsed = load_manifest(manifest)
        with _build_service(db_path) as service:
            ingested, written = service.ingest(
                parsed.assets, index="none" if skip_index else "sync"
            )
    except (MediaSearchError, ValueError) as exc:
        raise _fail(exc) from exc

    console.print(f"[bold green]Ingested {len(ingested)} assets.[/]")
    if written is not None:
        console.print(f"Embedded {written} new keywords.")


@app.command()
def serve(
    host: Annotated[str, Option("--host")] = "127.0.0.1",
    port: Annotated[int, Option("--port")] = 8000,
) -> None:
    """Run the HTTP search API."""
    from .server import run_server

    run_server(host=host, port=port)
