"""
Command Line Interface for Git Analytics.
"""

from contextlib import contextmanager
from typing import Callable, Iterator, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..categorization.extractor import CategoryExtractor
from ..categorization.validator import CategoryValidator
from ..config import get_settings
from ..db.base import StoreConnectionError, get_database_url, init_database, open_session
from ..db.services import CategoryService, CategoryWeightError, RepositoryService
from ..logging_config import configure_logging
from ..pipeline import run_pipeline
from ..reporting import render_header, render_pipeline, render_summary
from ..weights.revert_linker import RevertWeightCalculator
from ..weights.synchronizer import CategoryWeightSynchronizer

app = typer.Typer(help="Git Analytics - commit categorization and weighting")
console = Console()

# Session factory override (tests inject an in-memory database here)
session_factory: Optional[Callable[[], Session]] = None

DRY_RUN_HELP = "Show what would be done without making changes"
REPO_HELP = "Only process commits from specific repository"


@app.callback()
def main_callback() -> None:
    """Configure logging before any command runs."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)


@contextmanager
def _session() -> Iterator[Session]:
    """Open a verified session, exiting with status 1 if the store is unreachable."""
    try:
        db = open_session(session_factory)
    except StoreConnectionError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(code=1)
    try:
        yield db
    finally:
        db.close()


def _warn_unknown_repo(db: Session, repo: Optional[str]) -> None:
    if repo and RepositoryService(db).get_by_name(repo) is None:
        console.print(f"⚠️  Repository '{repo}' not found; nothing to process")


def _validator() -> CategoryValidator:
    return CategoryValidator(prevent_numeric=get_settings().prevent_numeric_categories)


@app.command()
def categorize(
    dry_run: bool = typer.Option(False, "--dry-run", help=DRY_RUN_HELP),
    repo: Optional[str] = typer.Option(None, "--repo", help=REPO_HELP),
    force: bool = typer.Option(
        False, "--force", help="Re-derive categories of already categorized commits"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="List every write"),
):
    """Extract categories from commit subjects."""
    render_header(console, CategoryExtractor.pass_name, dry_run, repo)
    with _session() as db:
        _warn_unknown_repo(db, repo)
        summary = CategoryExtractor(db, validator=_validator(), force=force).run(
            dry_run=dry_run, repo_filter=repo
        )
    render_summary(console, summary, verbose=verbose)


@app.command()
def calculate_weights(
    dry_run: bool = typer.Option(False, "--dry-run", help=DRY_RUN_HELP),
    repo: Optional[str] = typer.Option(None, "--repo", help=REPO_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="List every write"),
):
    """Zero the weight of revert commits and the commits they revert."""
    render_header(console, RevertWeightCalculator.pass_name, dry_run, repo)
    with _session() as db:
        _warn_unknown_repo(db, repo)
        summary = RevertWeightCalculator(db).run(dry_run=dry_run, repo_filter=repo)
    render_summary(console, summary, verbose=verbose)


@app.command()
def sync_weights(
    dry_run: bool = typer.Option(False, "--dry-run", help=DRY_RUN_HELP),
    repo: Optional[str] = typer.Option(None, "--repo", help=REPO_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="List every write"),
):
    """Apply category weights to non-reverted commits."""
    render_header(console, CategoryWeightSynchronizer.pass_name, dry_run, repo)
    with _session() as db:
        _warn_unknown_repo(db, repo)
        summary = CategoryWeightSynchronizer(db).run(dry_run=dry_run, repo_filter=repo)
    render_summary(console, summary, verbose=verbose)


@app.command()
def run(
    dry_run: bool = typer.Option(False, "--dry-run", help=DRY_RUN_HELP),
    repo: Optional[str] = typer.Option(None, "--repo", help=REPO_HELP),
    force: bool = typer.Option(False, "--force", help="Recategorize all commits"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="List every write"),
):
    """Run categorize, calculate-weights and sync-weights in order."""
    with _session() as db:
        _warn_unknown_repo(db, repo)
        result = run_pipeline(
            db, get_settings(), dry_run=dry_run, repo_filter=repo, force=force
        )
    render_pipeline(console, result, verbose=verbose)


@app.command()
def set_category_weight(
    name: str = typer.Argument(..., help="Category name"),
    weight: int = typer.Argument(..., help="Weight between 0 and 100"),
):
    """Set a category's weight (applied to commits by sync-weights)."""
    with _session() as db:
        try:
            category = CategoryService(db).set_weight(name.upper(), weight)
        except CategoryWeightError as e:
            console.print(f"❌ {e}")
            raise typer.Exit(code=2)

    if category is None:
        console.print(f"❌ Category '{name.upper()}' not found")
        raise typer.Exit(code=1)

    console.print(f"✅ {category.name} weight set to {category.weight}")
    console.print("Run sync-weights to apply it to commits")


@app.command()
def check_db():
    """Test the database connection and report which tables exist."""
    console.print(f"Database: {get_database_url()}")
    with _session() as db:
        tables = set(inspect(db.get_bind()).get_table_names())
    console.print("✓ Connection successful!")
    for table in ("repositories", "commits", "categories"):
        mark = "✓" if table in tables else "✗"
        console.print(f"  {mark} {table}")


@app.command()
def init_db():
    """Create all tables (development databases)."""
    try:
        init_database()
    except SQLAlchemyError as e:
        console.print(f"❌ Failed to initialize database: {e}")
        raise typer.Exit(code=1)
    console.print("✅ Database initialized")


@app.command()
def version():
    """Show version information."""
    from .. import __version__

    rprint(Panel.fit(f"Git Analytics v{__version__}", style="bold green"))


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
