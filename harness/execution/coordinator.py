"""Concurrent execution of test units with reproducible ordering."""

import asyncio
import logging
import time
from typing import List, Optional

from harness.browser.errors import ConfigurationError
from harness.execution.registry import TestRegistry, default_registry
from harness.models.execution_models import AggregateResult, ExecutionPlan, Outcome
from harness.session.lifecycle import SessionLifecycleManager

logger = logging.getLogger(__name__)


class ExecutionCoordinator:
    """
    Run execution plans on a bounded pool of workers.

    PATTERN: Fixed worker pool pulling from a queue in seed-derived order
    CRITICAL: A worker takes its next unit only after the previous unit's
    teardown completed, so no two units ever share a live session
    GOTCHA: concurrency_limit above the remote provider's quota leads to
    provider-side rejections, which surface as ERROR outcomes
    """

    def __init__(
        self,
        lifecycle: SessionLifecycleManager,
        registry: Optional[TestRegistry] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            lifecycle: Session lifecycle manager shared by all workers
            registry: Test unit registry (default registry if None)
        """
        self.lifecycle = lifecycle
        self.registry = registry if registry is not None else default_registry
        self.logger = logging.getLogger(__name__)

    def plan(
        self,
        test_ids: Optional[List[str]] = None,
        concurrency_limit: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> ExecutionPlan:
        """Build a plan from configuration defaults and explicit overrides."""
        config = self.lifecycle.config
        return ExecutionPlan(
            test_ids=test_ids if test_ids is not None else self.registry.ids(),
            concurrency_limit=concurrency_limit or config.concurrency_limit,
            seed=seed if seed is not None else config.seed,
        )

    async def run_test_unit(self, test_id: str) -> Outcome:
        """
        Run a single registered test unit.

        Raises:
            ValueError: If no unit is registered under the id
            ConfigurationError: If the execution mode is missing or unrecognized
        """
        unit = self.registry.get(test_id)
        if unit is None:
            raise ValueError(f"Unknown test unit '{test_id}'")
        return await self.lifecycle.run_test_unit(unit)

    async def run_plan(self, plan: ExecutionPlan) -> AggregateResult:
        """
        Run every unit of a plan with at most ``concurrency_limit`` active.

        Individual failures become outcomes; a coordinator-level failure
        stops dispatch and is reported as ``fatal_error``.

        Args:
            plan: Execution plan

        Returns:
            AggregateResult with outcomes, start order and replay seed
        """
        seed = plan.resolved_seed()
        if plan.seed is None:
            self.logger.info(f"No seed supplied, generated seed {seed}")
        order = plan.ordered(seed)
        result = AggregateResult(seed=seed)
        started = time.monotonic()

        unknown = [test_id for test_id in order if test_id not in self.registry]
        if unknown:
            result.fatal_error = f"Unknown test units: {', '.join(unknown)}"
            self.logger.error(f"Run aborted: {result.fatal_error}")
            return result

        self.logger.info(
            f"Running {len(order)} test units "
            f"(concurrency_limit={plan.concurrency_limit}, seed={seed})"
        )

        queue: asyncio.Queue = asyncio.Queue()
        for test_id in order:
            queue.put_nowait(test_id)

        async def worker(worker_id: int) -> None:
            while result.fatal_error is None:
                try:
                    test_id = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                result.start_order.append(test_id)
                self.logger.debug(f"Worker {worker_id} starting '{test_id}'")
                try:
                    outcome = await self.run_test_unit(test_id)
                except ConfigurationError as e:
                    result.fatal_error = f"Configuration error: {e}"
                    return
                except Exception as e:
                    self.logger.error(
                        f"Worker {worker_id} failed on '{test_id}': {e}", exc_info=True
                    )
                    result.fatal_error = f"Coordinator failure on '{test_id}': {e}"
                    return
                result.outcomes.append(outcome)
                self.logger.info(
                    f"[{outcome.status.value}] {test_id}"
                    f"{': ' + outcome.detail if outcome.detail else ''}"
                )

        workers = min(plan.concurrency_limit, len(order)) or 1
        await asyncio.gather(*[worker(i) for i in range(workers)])

        result.duration_ms = int((time.monotonic() - started) * 1000)
        counts = result.counts

        if result.fatal_error:
            self.logger.error(
                f"Run aborted after {len(result.outcomes)} units: {result.fatal_error} "
                f"(replay with {result.replay_hint})"
            )
        else:
            self.logger.info(
                f"Run complete: {counts['PASS']} passed, {counts['FAIL']} failed, "
                f"{counts['ERROR']} errors in {result.duration_ms}ms "
                f"(replay with {result.replay_hint})"
            )
        return result
