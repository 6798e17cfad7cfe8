"""Main CLI entry point for dbpods."""

import click

from .commands import checks, pods

EPILOG = """\b
Pod specification:
  all                Apply command to all matching pods
  <pod_name>         Target specific pod (auto-detects namespace)
  <namespace>/<pod>  Explicit namespace specification

\b
Examples:
  dbpods sql clickhouse-server-0
  dbpods install-tools all
  dbpods schemacheck analytics/clickhouse-analytics-pod
"""


@click.group(
    invoke_without_command=True,
    epilog=EPILOG,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(package_name="dbpods")
@click.pass_context
def main(ctx: click.Context):
    """Manage database pods (ClickHouse/PostgreSQL) in Kubernetes."""
    if ctx.invoked_subcommand is None:
        click.echo("Error: Missing required arguments", err=True)
        click.echo(ctx.get_help())
        ctx.exit(1)


@main.command(name="help")
@click.argument("topics", nargs=-1)
@click.pass_context
def help_command(ctx: click.Context, topics: tuple[str, ...]):
    """Show this message and exit."""
    click.echo(ctx.find_root().get_help())


# Pod commands
main.add_command(pods.install_tools)
main.add_command(pods.sql)
main.add_command(pods.crashlog)
main.add_command(pods.log)

# ClickHouse checks
main.add_command(checks.schemacheck)
main.add_command(checks.datacheck)
main.add_command(checks.grantcheck)
main.add_command(checks.healthcheck)
main.add_command(checks.conncheck)


if __name__ == "__main__":
    main()
