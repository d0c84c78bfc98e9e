"""Command line entry point for running acceptance suites."""

import asyncio
import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click

from ..browser.errors import ConfigurationError
from ..config.harness_config import HarnessConfig
from ..execution.coordinator import ExecutionCoordinator
from ..execution.registry import TestRegistry, default_registry
from ..models.execution_models import AggregateResult
from ..session.lifecycle import SessionLifecycleManager
from .renderer import SummaryRenderer

logger = logging.getLogger(__name__)

EXIT_FAILED = 1
EXIT_FATAL = 2


def load_test_modules(targets: Tuple[str, ...]) -> None:
    """Import test modules so their units register themselves.

    Each target is either a dotted module name or a path to a .py file.
    """
    for target in targets:
        path = Path(target)
        if path.suffix == ".py":
            if not path.exists():
                raise click.BadParameter(f"No such file: {target}")
            spec = importlib.util.spec_from_file_location(path.stem, path)
            module = importlib.util.module_from_spec(spec)
            sys.modules[path.stem] = module
            spec.loader.exec_module(module)
        else:
            importlib.import_module(target)
        logger.debug(f"Loaded test module {target}")


async def run_suite(
    config: HarnessConfig,
    registry: TestRegistry,
    test_ids: Optional[List[str]] = None,
) -> AggregateResult:
    """Run the selected units and release browser resources afterwards."""
    lifecycle = SessionLifecycleManager.from_config(config)
    coordinator = ExecutionCoordinator(lifecycle, registry)
    try:
        return await coordinator.run_plan(coordinator.plan(test_ids=test_ids))
    finally:
        await lifecycle.aclose()


@click.command()
@click.argument("targets", nargs=-1, required=True)
@click.option("--seed", type=int, help="Ordering seed to replay a previous run")
@click.option(
    "--concurrency", "-n",
    type=click.IntRange(min=1),
    help="Maximum concurrently running test units",
)
@click.option(
    "--mode",
    type=click.Choice(["LOCAL", "REMOTE"], case_sensitive=False),
    help="Override the configured execution mode",
)
@click.option("--tag", help="Only run test units with this tag")
@click.option("--test", "tests", multiple=True, help="Run only this test unit id")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def main(
    targets: Tuple[str, ...],
    seed: Optional[int],
    concurrency: Optional[int],
    mode: Optional[str],
    tag: Optional[str],
    tests: Tuple[str, ...],
    verbose: bool,
) -> None:
    """
    Run acceptance test units concurrently in seed-derived order.

    Run every unit in a module:
        harness-run suites.checkout

    Replay a failing order:
        harness-run suites/checkout.py --seed=1234
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    config = HarnessConfig()
    if seed is not None:
        config.seed = seed
    if concurrency is not None:
        config.concurrency_limit = concurrency
    if mode is not None:
        config.execution_mode_value = mode

    try:
        config.execution_mode()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_FATAL)

    load_test_modules(targets)
    registry = default_registry
    if tests:
        test_ids = list(dict.fromkeys(tests))
    else:
        test_ids = registry.ids(tag)

    try:
        result = asyncio.run(run_suite(config, registry, test_ids))
    except KeyboardInterrupt:
        sys.exit(EXIT_FATAL)

    SummaryRenderer().render(result)

    if result.fatal_error:
        sys.exit(EXIT_FATAL)
    if not result.passed:
        sys.exit(EXIT_FAILED)


if __name__ == "__main__":
    main()
