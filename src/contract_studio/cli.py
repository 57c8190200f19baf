"""
Command-line interface for Contract Studio.
"""

import asyncio
import json
from datetime import timedelta
from pathlib import Path
from typing import Optional

import click
import structlog

from contract_studio.config import get_settings
from contract_studio.exceptions import ContractStudioError
from contract_studio.logging_config import configure_logging
from contract_studio.models.contract import JURISDICTIONS, ContractType, Intensity

logger = structlog.get_logger(__name__)

CLI_OWNER_ID = "cli"


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Contract Studio: AI-assisted legal document analysis and drafting."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    settings = get_settings()
    if debug:
        settings = settings.model_copy(update={"debug": True, "log_level": "DEBUG"})
    configure_logging(settings)


# =========================================================================
# Server Commands
# =========================================================================


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def serve(host: Optional[str], port: Optional[int], reload: bool) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    click.echo(f"Starting Contract Studio API server on {host}:{port}")

    uvicorn.run(
        "contract_studio.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


@cli.command()
def init_db() -> None:
    """Initialize database schema."""
    from contract_studio.storage import get_store

    settings = get_settings()
    if not settings.uses_database:
        click.echo("DATABASE_URL is not set; the in-memory store needs no schema.")
        return

    async def run_init():
        store = get_store()
        try:
            await store.init_schema()
        finally:
            await store.close()

    click.echo("Initializing database schema...")
    asyncio.run(run_init())
    click.echo("Done.")


# =========================================================================
# Workflow Commands
# =========================================================================


@cli.command()
@click.argument("document_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--title", help="Document title (defaults to the file name)")
def analyze(document_path: str, title: Optional[str]) -> None:
    """Analyze a text document and print the risk assessment as JSON."""
    from contract_studio.services.analysis import AnalysisOrchestrator
    from contract_studio.services.lifecycle import LifecycleCoordinator
    from contract_studio.services.providers import get_provider_registry
    from contract_studio.storage import InMemoryStore

    path = Path(document_path)
    content = path.read_text(encoding="utf-8")

    async def run_analysis():
        lifecycle = LifecycleCoordinator(InMemoryStore())
        orchestrator = AnalysisOrchestrator(get_settings(), get_provider_registry(), lifecycle)
        document = await lifecycle.create_document(CLI_OWNER_ID, title or path.name, content)
        return await orchestrator.analyze(document.id, content)

    try:
        result = asyncio.run(run_analysis())
    except ContractStudioError as e:
        raise click.ClickException(e.message) from e

    click.echo(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))


@cli.command()
@click.option(
    "--type",
    "contract_type",
    required=True,
    type=click.Choice([t.value for t in ContractType]),
    help="Contract type",
)
@click.option("--first-party", required=True, help="First party name")
@click.option("--first-party-address", help="First party address")
@click.option("--second-party", required=True, help="Second party name")
@click.option("--second-party-address", help="Second party address")
@click.option("--jurisdiction", type=click.Choice(list(JURISDICTIONS)), help="Governing state")
@click.option("--description", help="What the agreement covers")
@click.option("--key-terms", help="Key terms to include")
@click.option(
    "--intensity",
    type=click.Choice([i.value for i in Intensity]),
    default=Intensity.MODERATE.value,
    show_default=True,
    help="Protection level",
)
@click.option("--ai-model", default="openai", show_default=True, help="AI backend route")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write markup to a file")
def generate(
    contract_type: str,
    first_party: str,
    first_party_address: Optional[str],
    second_party: str,
    second_party_address: Optional[str],
    jurisdiction: Optional[str],
    description: Optional[str],
    key_terms: Optional[str],
    intensity: str,
    ai_model: str,
    output: Optional[str],
) -> None:
    """Generate a contract and print its HTML markup."""
    from contract_studio.services.generation import ContractGenerator, build_params
    from contract_studio.services.providers import get_provider_registry

    async def run_generation():
        params = build_params(
            {
                "contract_type": contract_type,
                "first_party": {"name": first_party, "address": first_party_address},
                "second_party": {"name": second_party, "address": second_party_address},
                "jurisdiction": jurisdiction,
                "description": description,
                "key_terms": key_terms,
                "intensity": intensity,
                "ai_model": ai_model,
            }
        )
        generator = ContractGenerator(get_settings(), get_provider_registry())
        return await generator.generate(params)

    try:
        markup = asyncio.run(run_generation())
    except ContractStudioError as e:
        raise click.ClickException(e.message) from e

    if output:
        Path(output).write_text(markup, encoding="utf-8")
        click.echo(f"Contract written to {output}")
    else:
        click.echo(markup)


@cli.command()
@click.option(
    "--minutes",
    type=int,
    default=None,
    help="Maximum analysis age (defaults to STALE_ANALYSIS_MINUTES)",
)
@click.option(
    "--generation-minutes",
    type=int,
    default=None,
    help="Maximum generation age (defaults to STALE_GENERATION_MINUTES)",
)
def expire_stale(minutes: Optional[int], generation_minutes: Optional[int]) -> None:
    """Move long-running analyses and generations to a failed state."""
    from contract_studio.services import get_lifecycle
    from contract_studio.storage import get_store

    settings = get_settings()
    max_age = timedelta(minutes=minutes if minutes is not None else settings.stale_analysis_minutes)
    max_generation_age = timedelta(
        minutes=generation_minutes if generation_minutes is not None else settings.stale_generation_minutes
    )

    async def run_expire():
        lifecycle = get_lifecycle()
        try:
            documents = await lifecycle.expire_stale(max_age)
            contracts = await lifecycle.expire_stale_contracts(max_generation_age)
            return documents, contracts
        finally:
            await get_store().close()

    expired, expired_contracts = asyncio.run(run_expire())
    click.echo(f"Expired {len(expired)} stale analysis(es).")
    for document in expired:
        click.echo(f"  {document.id}: {document.title}")
    click.echo(f"Expired {len(expired_contracts)} stale generation(s).")
    for contract in expired_contracts:
        click.echo(f"  {contract.id}: {contract.title}")


@cli.command()
def config() -> None:
    """Show current configuration."""
    from contract_studio.services.providers import get_provider_registry

    settings = get_settings()

    click.echo("\n=== Contract Studio Configuration ===\n")
    click.echo(f"Environment: {settings.environment}")
    click.echo(f"Debug: {settings.debug}")
    click.echo(f"Store: {'sql' if settings.uses_database else 'in-memory'}")
    click.echo(f"\nAnalysis route: {settings.analysis_ai_model} ({settings.analysis_model})")
    click.echo("AI routes:")
    for key, configured in get_provider_registry().health_check().items():
        click.echo(f"  {key}: {'configured' if configured else 'missing credential'}")


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
