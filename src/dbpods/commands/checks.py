"""Inspection commands. All of them require a ClickHouse pod."""

from typing import Optional

import click

from .common import execute, target_argument


@click.command()
@target_argument
def schemacheck(target: Optional[str]):
    """List database schemas (ClickHouse only)."""
    execute("schemacheck", target)


@click.command()
@target_argument
def datacheck(target: Optional[str]):
    """Show table sizes (ClickHouse only)."""
    execute("datacheck", target)


@click.command()
@target_argument
def grantcheck(target: Optional[str]):
    """View user permissions (ClickHouse only)."""
    execute("grantcheck", target)


@click.command()
@target_argument
def healthcheck(target: Optional[str]):
    """Verify database health: ping, query, system tables, replicas (ClickHouse only)."""
    execute("healthcheck", target)


@click.command()
@target_argument
def conncheck(target: Optional[str]):
    """Probe the query protocol with retries (ClickHouse only)."""
    execute("conncheck", target)
