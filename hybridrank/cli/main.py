"""CLI commands for the hybrid relevance pipeline."""

import json
import logging
import sys
from pathlib import Path

import click
import structlog

from hybridrank import __version__
from hybridrank.config.loader import ConfigLoader, ConfigValidationError
from hybridrank.config.schemas import ScoringConfig
from hybridrank.embeddings.errors import EmbeddingError
from hybridrank.embeddings.factory import create_embedding_provider
from hybridrank.embeddings.gateway import EmbeddingGateway
from hybridrank.enrichment.models import RunRequest
from hybridrank.enrichment.orchestrator import EnrichmentOrchestrator
from hybridrank.observability.logging import configure_logging
from hybridrank.scoring.hybrid import scoring_configuration
from hybridrank.scoring.stats import score_distribution
from hybridrank.settings import AppSettings, get_settings
from hybridrank.store.store import FeatureStore


logger = structlog.get_logger()

_DB_OPTION_HELP = "Path to SQLite feature database (default: HYBRIDRANK_DB_PATH)."
_CONFIG_OPTION_HELP = "Path to scoring.yaml (default: HYBRIDRANK_SCORING_CONFIG)."


def _load_scoring_config(config_path: Path | None, settings: AppSettings) -> ScoringConfig:
    """Load scoring configuration, exit on failure."""
    loader = ConfigLoader()
    try:
        return loader.load(config_path or settings.scoring_config_path)
    except ConfigValidationError as e:
        click.echo(f"Scoring configuration invalid: {e.file_path}", err=True)
        for error in e.errors:
            click.echo(f"  - {error['loc']}: {error['msg']}", err=True)
        sys.exit(1)


def _create_gateway(
    settings: AppSettings, config: ScoringConfig, store: FeatureStore
) -> EmbeddingGateway | None:
    """Build the embedding gateway, exit if the provider is unusable."""
    try:
        provider = create_embedding_provider(settings, config.embedding)
    except EmbeddingError as e:
        click.echo(f"Embedding provider unavailable: {e}", err=True)
        click.echo("Use --no-embed to score existing embeddings only.", err=True)
        sys.exit(1)
    if provider is None:
        return None
    return EmbeddingGateway(provider, store=store, config=config.embedding)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Hybrid relevance scoring CLI."""


@cli.command()
@click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help=_DB_OPTION_HELP,
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help=_CONFIG_OPTION_HELP,
)
@click.option(
    "--statement",
    "statement_id",
    type=int,
    default=None,
    help="Only rerank this research statement.",
)
@click.option(
    "--force",
    is_flag=True,
    help="Clear similarity, final scores and tiers before scoring.",
)
@click.option(
    "--keep-feedback",
    is_flag=True,
    help="With --force, keep existing feedback scores.",
)
@click.option(
    "--batch-size",
    type=click.IntRange(1, 1000),
    default=None,
    help="Rows per page (default: from scoring config).",
)
@click.option(
    "--no-embed",
    is_flag=True,
    help="Skip the embedding phase and only score stored embeddings.",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON format for logs (default: true).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
def rerank(  # noqa: PLR0913
    db_path: Path | None,
    config_path: Path | None,
    statement_id: int | None,
    force: bool,
    keep_feedback: bool,
    batch_size: int | None,
    no_embed: bool,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Compute missing scores for active research statements.

    Runs embedding, similarity, keyword, feedback and hybrid phases. Rows
    that already have a score are left alone unless --force is given.
    """
    configure_logging(
        level=logging.DEBUG if verbose else logging.INFO, json_format=json_logs
    )
    settings = get_settings()
    config = _load_scoring_config(config_path, settings)

    with FeatureStore(db_path or settings.db_path) as store:
        gateway = None if no_embed else _create_gateway(settings, config, store)
        orchestrator = EnrichmentOrchestrator(store, config=config, gateway=gateway)
        result = orchestrator.run(
            RunRequest(
                statement_id=statement_id,
                force=force,
                reset_feedback=not keep_feedback,
                batch_size=batch_size or config.enrichment.batch_size,
            )
        )
        status = orchestrator.get_status()

    if not result.ok:
        click.echo(f"Rerank failed: {result.error}", err=True)
        sys.exit(1)

    click.echo(
        f"Rerank complete. Run ID: {result.run_id} "
        f"processed={status.processed} updated={status.updated} failed={status.failed}"
    )


@cli.command()
@click.option(
    "--db",
    "db_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help=_DB_OPTION_HELP,
)
@click.option(
    "--statement",
    "statement_id",
    type=int,
    default=None,
    help="Only show this research statement.",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output as JSON.",
)
def counts(db_path: Path | None, statement_id: int | None, json_output: bool) -> None:
    """Show scoring progress per research statement."""
    configure_logging(level=logging.WARNING, json_format=False)
    settings = get_settings()

    with FeatureStore(db_path or settings.db_path) as store:
        statements = store.get_active_statements()
        if statement_id is not None:
            statements = [s for s in statements if s.id == statement_id]

        report = []
        for statement in statements:
            report.append(
                {
                    "statement_id": statement.id,
                    "name": statement.name,
                    "has_embedding": statement.embedding is not None,
                    "counts": store.get_counts(statement.id).model_dump(),
                    "ratings": store.get_rating_stats(statement.id).model_dump(),
                    "scores": score_distribution(
                        store.get_final_scores(statement.id)
                    ).to_dict(),
                }
            )
        usage = store.get_ai_usage()

    if json_output:
        output = {
            "statements": report,
            "ai_usage_today": usage.model_dump() if usage else None,
        }
        click.echo(json.dumps(output, indent=2))
        return

    if not report:
        click.echo("No active research statements.")
    for entry in report:
        click.echo(f"[{entry['statement_id']}] {entry['name']}")
        click.echo("=" * 40)
        for name, value in entry["counts"].items():
            click.echo(f"  {name}: {value}")
        click.echo(f"  ratings: {entry['ratings']['total']}")
        click.echo(f"  score buckets: {entry['scores']['buckets']}")
        click.echo("")
    if usage is not None:
        click.echo(
            f"AI usage today: {usage.tokens_used} tokens, "
            f"{usage.requests_count} requests, ${usage.estimated_cost:.4f}"
        )


@cli.command("embed-statements")
@click.option(
    "--db",
    "db_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help=_DB_OPTION_HELP,
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help=_CONFIG_OPTION_HELP,
)
@click.option(
    "--all",
    "recompute_all",
    is_flag=True,
    help="Recompute embeddings that already exist.",
)
def embed_statements(
    db_path: Path | None, config_path: Path | None, recompute_all: bool
) -> None:
    """Compute embeddings for active research statements."""
    configure_logging(json_format=False)
    settings = get_settings()
    config = _load_scoring_config(config_path, settings)
    log = logger.bind(component="cli", command="embed-statements")

    embedded = 0
    failed = 0
    with FeatureStore(db_path or settings.db_path) as store:
        gateway = _create_gateway(settings, config, store)
        if gateway is None:
            click.echo("Embedding provider is disabled.", err=True)
            sys.exit(1)

        for statement in store.get_active_statements():
            if statement.embedding is not None and not recompute_all:
                continue
            try:
                result = gateway.embed_statement(statement)
            except EmbeddingError as e:
                failed += 1
                log.warning(
                    "statement_embedding_failed", statement_id=statement.id, error=str(e)
                )
                continue
            store.update_statement_embedding(statement.id, result.vector)
            embedded += 1

    click.echo(f"Embedded {embedded} statements ({failed} failed).")
    if failed:
        sys.exit(1)


@cli.command("show-config")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help=_CONFIG_OPTION_HELP,
)
def show_config(config_path: Path | None) -> None:
    """Print the effective scoring configuration as JSON."""
    configure_logging(level=logging.WARNING, json_format=False)
    config = _load_scoring_config(config_path, get_settings())
    output = {
        "config": config.model_dump(mode="json"),
        "hybrid": scoring_configuration(config.hybrid),
    }
    click.echo(json.dumps(output, indent=2))


if __name__ == "__main__":
    cli()
