"""Shared plumbing for the pod commands."""

from __future__ import annotations

from typing import Optional

import click
import yaml
from pydantic import ValidationError
from rich.console import Console

from ..config import Settings, load_settings
from ..dispatcher import CommandDispatcher
from ..errors import DbPodsError, PodNotFoundError
from ..kubectl import KubectlClient
from ..logging_config import configure_logging
from ..models import CommandName, CommandRequest
from ..resolver import PodResolver
from ..runlog import RunLog
from ..runner import run_command
from ..terminal import build_terminal

console = Console(soft_wrap=True)

target_argument = click.argument("target", required=False, metavar="<pod_name|all|namespace/pod>")


def execute(command: CommandName, target: Optional[str]) -> None:
    """Run `command` against `target` and exit with the aggregated status."""
    ctx = click.get_current_context()
    if not target:
        click.echo("Error: Missing required arguments", err=True)
        click.echo(ctx.find_root().get_help())
        ctx.exit(1)

    settings = _load_settings_or_fail()
    configure_logging(settings)

    run_log = RunLog(settings.run_log_path, console)
    with run_log:
        run_log.start([ctx.find_root().info_name or "dbpods", command, target])
        exit_code = _run(settings, run_log, command, target)
        run_log.finish()
    ctx.exit(exit_code)


def _run(settings: Settings, run_log: RunLog, command: CommandName, target: str) -> int:
    kubectl = KubectlClient(context=settings.context, binary=settings.kubectl_binary)
    resolver = PodResolver(kubectl)
    dispatcher = CommandDispatcher.from_settings(
        settings,
        kubectl=kubectl,
        terminal=build_terminal(settings.interactive, console),
        run_log=run_log,
    )

    try:
        request = CommandRequest(command=command, target_spec=target)
        exit_code, _ = run_command(
            request,
            resolver=resolver,
            dispatcher=dispatcher,
            run_log=run_log,
        )
    except ValidationError:
        run_log.error(f"Error: invalid target '{target}'")
        return 1
    except PodNotFoundError as exc:
        run_log.error(f"Error: {exc}")
        run_log.info("Available pods:")
        for candidate in exc.candidates:
            run_log.info(f"- {candidate.name} (namespace: {candidate.namespace})")
        return 1
    except DbPodsError as exc:
        run_log.error(f"Error: {exc}")
        return 1
    return exit_code


def _load_settings_or_fail() -> Settings:
    try:
        return load_settings()
    except (ValueError, OSError, yaml.YAMLError) as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
