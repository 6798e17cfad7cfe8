"""Shell, log and maintenance commands for database pods."""

from typing import Optional

import click

from .common import execute, target_argument


@click.command(name="install-tools")
@target_argument
def install_tools(target: Optional[str]):
    """Install essential tools (vim, less) in the container."""
    execute("install-tools", target)


@click.command()
@target_argument
def sql(target: Optional[str]):
    """Connect to the database interactive shell."""
    execute("sql", target)


@click.command()
@target_argument
def crashlog(target: Optional[str]):
    """View critical error logs (Fatal/ERROR level)."""
    execute("crashlog", target)


@click.command()
@target_argument
def log(target: Optional[str]):
    """View full application logs."""
    execute("log", target)
