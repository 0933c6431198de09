from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass
class ResetState:
    """Mutable reset bookkeeping for one machine, owned by its ResetWorker."""

    device_id: str

    last_attempt_at: datetime | None = None
    retry_count: int = 0
    last_reset_succeeded: bool = False

    def mark_success(self, now: datetime) -> None:
        self.last_attempt_at = now
        self.retry_count = 0
        self.last_reset_succeeded = True

    def mark_failure(self) -> int:
        self.retry_count += 1
        return self.retry_count

    def mark_exhausted(self) -> None:
        self.retry_count = 0
        self.last_reset_succeeded = False

    def mark_interrupted(self) -> None:
        """A cancelled chain leaves the outcome of the last completed run untouched."""
        self.retry_count = 0


@dataclass
class FleetCycleState:
    """Fleet-wide guards, mutated only by ResetCoordinator."""

    reset_in_progress: bool = False
    last_reset_date: date | None = None


@dataclass(frozen=True)
class ResetOutcome:
    device_id: str
    succeeded: bool
    attempts: int = 0
    error_msg: str | None = None

    def __repr__(self):
        status = "OK" if self.succeeded else "FAILED"
        msg = f"ResetOutcome({self.device_id}: {status}, attempts={self.attempts}"
        if self.error_msg:
            msg += f", error={self.error_msg}"
        return msg + ")"


@dataclass
class CycleResult:
    cycle_date: date
    forced: bool = False
    outcome_list: list[ResetOutcome] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return all(outcome.succeeded for outcome in self.outcome_list)

    @property
    def failed_device_ids(self) -> list[str]:
        return [outcome.device_id for outcome in self.outcome_list if not outcome.succeeded]
