"""
StudyShelf CLI - manage the materials database and run searches.

Commands:
- db init: Create the database schema
- db import: Load materials from a JSON file
- db stats: Display database statistics
- search: Search materials
- trending: Show trending searches
- serve: Run the HTTP API
"""

# Load environment variables before any other imports
# This ensures credentials and paths are available to config modules
from pathlib import Path
from dotenv import load_dotenv

env_path = Path.cwd() / '.env'
if env_path.exists():
    load_dotenv(env_path)

# Standard library imports
import asyncio
import json
import logging

# Third-party imports
import click
from rich.console import Console
from rich.table import Table

from config.search_config import DATABASE_PATH, LOG_LEVEL, RETRIEVAL_CONFIG, TRENDING_CONFIG
from studyshelf.search.errors import FallbackExhausted
from studyshelf.search.query_tracker import QueryTracker
from studyshelf.search.search_engine import SearchEngine
from studyshelf.storage.database import init_database
from studyshelf.storage.materials_store import SQLiteMaterialsStore

console = Console()

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
def cli():
    """StudyShelf CLI - Manage the materials database and search it."""
    pass


# ============================================================================
# Database Commands
# ============================================================================

@cli.group()
def db():
    """Manage the materials database."""
    pass


@db.command(name='init')
@click.option('--db-path', '-d', default=DATABASE_PATH, help='Database path')
def db_init(db_path):
    """Create the database schema."""
    console.print("[yellow]Initializing database...[/yellow]")
    init_database(db_path).close()
    console.print(f"[green]✓[/green] Database initialized at {db_path}\n")


@db.command(name='import')
@click.argument('json_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--db-path', '-d', default=DATABASE_PATH, help='Database path')
def db_import(json_file, db_path):
    """
    Import materials from a JSON file.

    The file holds an array of material records (id, title, description,
    tags, category, sub_category, file_name, created_at, ...).
    """
    with open(json_file, 'r', encoding='utf-8') as f:
        records = json.load(f)

    if not isinstance(records, list):
        raise click.ClickException("Expected a JSON array of material records")

    database = init_database(db_path)
    try:
        store = SQLiteMaterialsStore(database.connect())
        try:
            count = store.add_materials(records)
        except ValueError as e:
            raise click.ClickException(f"Invalid material record: {e}")
    finally:
        database.close()

    console.print(f"[green]✓[/green] Imported {count} materials\n")


@db.command(name='stats')
@click.option('--db-path', '-d', default=DATABASE_PATH, help='Database path')
def db_stats(db_path):
    """Display database statistics."""
    database = init_database(db_path)
    try:
        conn = database.connect()
        store = SQLiteMaterialsStore(conn)

        table = Table(title="Database Statistics")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Materials", str(store.count_materials()))

        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM search_queries")
        table.add_row("Logged Searches", str(cursor.fetchone()[0]))

        cursor.execute("SELECT MIN(created_at), MAX(created_at) FROM materials")
        earliest, latest = cursor.fetchone()
        table.add_row("Oldest Material", earliest or "N/A")
        table.add_row("Newest Material", latest or "N/A")

        console.print(table)

        cursor.execute(
            "SELECT category, COUNT(*) AS n FROM materials GROUP BY category ORDER BY n DESC"
        )
        rows = cursor.fetchall()
        if rows:
            categories = Table(title="Materials by Category")
            categories.add_column("Category", style="cyan")
            categories.add_column("Count", justify="right")
            for row in rows:
                categories.add_row(row[0], str(row[1]))
            console.print(categories)
    finally:
        database.close()

    console.print()


# ============================================================================
# Search Commands
# ============================================================================

@cli.command()
@click.argument('query')
@click.option('--limit', '-n', default=RETRIEVAL_CONFIG['default_limit'], help='Maximum results')
@click.option('--candidate-limit', default=RETRIEVAL_CONFIG['default_candidate_limit'],
              help='Maximum candidates ranked')
@click.option('--category', '-c', default=None, help='Filter by category')
@click.option('--sub-category', '-s', default=None, help='Filter by subcategory')
@click.option('--db-path', '-d', default=DATABASE_PATH, help='Database path')
def search(query, limit, candidate_limit, category, sub_category, db_path):
    """Search materials."""
    database = init_database(db_path)
    try:
        conn = database.connect()
        engine = SearchEngine(SQLiteMaterialsStore(conn))

        try:
            outcome = asyncio.run(engine.search_with_details(
                query,
                limit=limit,
                candidate_limit=candidate_limit,
                category=category,
                sub_category=sub_category
            ))
        except FallbackExhausted as e:
            raise click.ClickException(f"Search failed: {e.last_error or e}")

        QueryTracker(conn).save_query(query)
    finally:
        database.close()

    if not outcome.results:
        console.print(f"\n[yellow]No materials found for '{query}'[/yellow]\n")
        return

    table = Table(title=f"Results for '{outcome.query}' ({outcome.mode})")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Category", style="green")
    table.add_column("Subcategory", style="yellow")
    table.add_column("Score", justify="right")

    scores = {c.material.id: c.blended_score for c in outcome.scored}

    for i, material in enumerate(outcome.results, 1):
        score = scores.get(material.id)
        table.add_row(
            str(i),
            material.title,
            material.category or '',
            material.sub_category or '',
            f"{score:.3f}" if score is not None else '-'
        )

    console.print(table)
    console.print(
        f"\n[green]{len(outcome.results)} results[/green] in {outcome.query_time_ms}ms "
        f"(semantic scoring {'used' if outcome.semantic_used else 'not used'})\n"
    )


@cli.command()
@click.option('--limit', '-n', default=TRENDING_CONFIG['default_limit'], help='Maximum queries')
@click.option('--db-path', '-d', default=DATABASE_PATH, help='Database path')
def trending(limit, db_path):
    """Show trending searches."""
    database = init_database(db_path)
    try:
        queries = asyncio.run(QueryTracker(database.connect()).trending(limit))
    finally:
        database.close()

    table = Table(title="Trending Searches")
    table.add_column("#", justify="right")
    table.add_column("Query", style="cyan")
    for i, query in enumerate(queries, 1):
        table.add_row(str(i), query)

    console.print(table)


@cli.command()
def serve():
    """Run the HTTP API."""
    from studyshelf.api.main import run

    run()


if __name__ == '__main__':
    cli()
