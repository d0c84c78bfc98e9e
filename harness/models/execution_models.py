"""Execution data models: outcomes, plans and aggregated run results."""

import random
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Optional
from enum import Enum
from datetime import datetime

# Upper bound for generated seeds, small enough to type on a command line
SEED_RANGE = 2**32


class OutcomeStatus(str, Enum):
    """Final status of one test unit."""

    PASS = "PASS"
    FAIL = "FAIL"
    ERROR = "ERROR"


class Outcome(BaseModel):
    """Result produced by a test unit at completion."""

    test_id: str = Field(description="Test unit identifier")
    status: OutcomeStatus
    detail: Optional[str] = Field(default=None, description="Failure detail")
    failure_kind: Optional[str] = Field(
        default=None, description="Classified failure kind, if any"
    )
    duration_ms: int = Field(default=0, description="Wall time of the unit")
    job_id: Optional[str] = Field(default=None, description="Remote job, if any")
    finished_at: datetime = Field(default_factory=datetime.now)

    @property
    def passed(self) -> bool:
        return self.status == OutcomeStatus.PASS


def generate_seed() -> int:
    """Pick a fresh ordering seed."""
    return random.SystemRandom().randrange(SEED_RANGE)


class ExecutionPlan(BaseModel):
    """Ordered test unit ids, a concurrency cap and an optional ordering seed."""

    model_config = ConfigDict(frozen=True)

    test_ids: List[str] = Field(default_factory=list)
    concurrency_limit: int = Field(default=1, ge=1)
    seed: Optional[int] = Field(default=None, ge=0)

    @field_validator("test_ids")
    @classmethod
    def unique_test_ids(cls, v: List[str]) -> List[str]:
        """Each test unit may appear in a plan only once."""
        seen = set()
        duplicates = []
        for test_id in v:
            if test_id in seen and test_id not in duplicates:
                duplicates.append(test_id)
            seen.add(test_id)
        if duplicates:
            raise ValueError(f"Duplicate test unit ids: {', '.join(duplicates)}")
        return v

    def resolved_seed(self) -> int:
        """Return the configured seed, or a freshly generated one."""
        if self.seed is not None:
            return self.seed
        return generate_seed()

    def ordered(self, seed: int) -> List[str]:
        """Deterministic shuffle of the test ids for the given seed.

        The same seed always yields the same order for the same id list.
        """
        order = list(self.test_ids)
        random.Random(seed).shuffle(order)
        return order


class AggregateResult(BaseModel):
    """Aggregated outcome of an execution plan."""

    seed: int = Field(description="Seed that produced the start order")
    start_order: List[str] = Field(default_factory=list)
    outcomes: List[Outcome] = Field(default_factory=list)
    fatal_error: Optional[str] = Field(
        default=None, description="Coordinator failure that aborted the run"
    )
    duration_ms: int = Field(default=0)

    @property
    def passed(self) -> bool:
        if self.fatal_error:
            return False
        return all(outcome.passed for outcome in self.outcomes)

    @property
    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in OutcomeStatus}
        for outcome in self.outcomes:
            counts[outcome.status.value] += 1
        return counts

    @property
    def failures(self) -> List[Outcome]:
        return [outcome for outcome in self.outcomes if not outcome.passed]

    @property
    def replay_hint(self) -> str:
        return f"--seed={self.seed}"
