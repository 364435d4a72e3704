"""
Command-line interface for the PDB Analysis toolkit.

This module provides CLI commands for raw fetches, the two report tools
and the MCP / REST servers.
"""

import asyncio
import json
import sys

import click

from .config import SystemConfig, load_config_from_file, set_config
from .errors import ValidationError
from .logging_config import setup_logging


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """PDB Analysis - protein structure lookups against the RCSB PDB."""
    ctx.ensure_object(dict)

    if config:
        system_config = load_config_from_file(config)
    else:
        system_config = SystemConfig.from_env()
        set_config(system_config)

    if verbose:
        system_config.logging.level = "DEBUG"

    setup_logging(system_config.logging)

    ctx.obj['config'] = system_config


@cli.command()
@click.argument('url')
@click.option('--method', '-X', type=click.Choice(['GET', 'POST'], case_sensitive=False),
              default='GET', help='HTTP method')
@click.option('--body', '-d', help='JSON request body')
@click.option('--timeout-ms', type=int, help='Per-attempt timeout in milliseconds')
@click.pass_context
def fetch(ctx, url, method, body, timeout_ms):
    """Fetch URL through the resilient fetcher and print the JSON result."""
    from .api.fetcher import make_api_request

    payload = None
    if body is not None:
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"not valid JSON: {e}", param_hint="--body")

    result = asyncio.run(make_api_request(url, method=method, body=payload, timeout_ms=timeout_ms))

    if result is None:
        click.echo(f"Failed to retrieve data from {url}", err=True)
        sys.exit(1)

    click.echo(json.dumps(result, indent=2))


@cli.command()
@click.argument('pdb_id')
@click.option('--knowledge-file', type=click.Path(exists=True, dir_okay=False),
              help='JSON file with curated active-site data')
def analyze(pdb_id, knowledge_file):
    """Analyze the active site of a protein structure."""
    from .knowledge import KnownActiveSiteStore
    from .tools import analyze_active_site

    store = KnownActiveSiteStore.from_file(knowledge_file) if knowledge_file else None

    try:
        text = asyncio.run(analyze_active_site(pdb_id, store=store))
    except ValidationError as e:
        click.echo(e.message, err=True)
        sys.exit(2)

    click.echo(text)


@cli.command()
@click.argument('disease')
def search(disease):
    """Search for proteins related to a disease."""
    from .tools import search_disease_proteins

    try:
        text = asyncio.run(search_disease_proteins(disease))
    except ValidationError as e:
        click.echo(e.message, err=True)
        sys.exit(2)

    click.echo(text)


@cli.command()
@click.option('--host', help='Host to bind to')
@click.option('--port', type=int, help='Port to bind to')
@click.option('--reload', is_flag=True, help='Enable auto-reload for development')
@click.option('--workers', default=1, type=int, help='Number of worker processes')
@click.pass_context
def serve(ctx, host, port, reload, workers):
    """Start the REST API server."""
    from .server import run_server

    config = ctx.obj['config']
    host = host or config.server.host
    port = port or config.server.port

    click.echo("=== PDB Analysis API Server ===")
    click.echo(f"API Documentation: http://{host}:{port}/docs")
    click.echo(f"Health Check: http://{host}:{port}/health")

    try:
        run_server(host=host, port=port, reload=reload, workers=workers)
    except KeyboardInterrupt:
        click.echo("\nServer stopped by user.")


@cli.command()
@click.pass_context
def mcp(ctx):
    """Run the MCP server on stdio."""
    from .mcp_server import run_mcp_server

    # Nothing may be echoed here: stdout carries the MCP protocol
    run_mcp_server(ctx.obj['config'])


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
