from __future__ import annotations

import logging

from .dispatcher import CommandDispatcher
from .models import CommandRequest, ExecutionResult, aggregate_exit_code
from .resolver import ALL_TARGETS, PodResolver
from .runlog import RunLog

LOGGER = logging.getLogger("dbpods.runner")


def run_command(
    request: CommandRequest,
    *,
    resolver: PodResolver,
    dispatcher: CommandDispatcher,
    run_log: RunLog,
) -> tuple[int, list[ExecutionResult]]:
    """Resolve the target and run the command on each pod in turn.

    Resolution errors propagate; per-pod failures are collected and the run
    moves on to the next pod.
    """
    targets = resolver.resolve(request.target_spec)
    is_fan_out = request.target_spec == ALL_TARGETS
    if is_fan_out:
        run_log.info("Processing all relevant pods...")
        if not targets:
            run_log.warning("No database pods found in any namespace")

    results: list[ExecutionResult] = []
    for target in targets:
        if is_fan_out:
            run_log.info(
                f"=== Processing pod: {target.name} in namespace: {target.namespace} ==="
            )
        result = dispatcher.dispatch(request.command, target)
        LOGGER.info(
            "command finished command=%s pod=%s outcome=%s",
            request.command,
            target.qualified_name,
            result.outcome,
        )
        results.append(result)
        if is_fan_out:
            run_log.info("")

    return aggregate_exit_code(results), results
