"""
Status Waiter - Poll a plan until it reaches a status.

Used to automate the review loop: the implementer waits for the reviewer
(or the reverse) by blocking until the plan's status changes. The plan is
re-read from the store on every poll; the only way out besides reaching
the target is the plan completing or the timeout elapsing.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from planbridge.persistence.repository import PlanRepository
from planbridge.state import PlanStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_TIMEOUT_SECONDS = 300


@dataclass
class WaitResult:
    """Outcome of waiting for a status."""

    found: bool
    reached: bool
    plan_id: str
    status: PlanStatus | None
    waited_seconds: int
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        if not self.found:
            return {"found": False, "plan_id": self.plan_id, "message": self.message}
        data: dict[str, Any] = {
            "reached": self.reached,
            "plan_id": self.plan_id,
            "status": self.status.value if self.status else None,
            "waited_seconds": self.waited_seconds,
        }
        if self.message:
            data["message"] = self.message
        return data


def wait_for_status(
    repository: PlanRepository,
    plan_id: str,
    target_status: PlanStatus,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> WaitResult:
    """
    Block until a plan reaches target_status.

    Args:
        repository: Store the plan is re-read from on every poll
        plan_id: Plan to watch
        target_status: Status to wait for
        timeout_seconds: Give up after this many seconds
        poll_interval: Seconds between reads
        sleep: Sleep function (injected by tests)
        clock: Monotonic clock (injected by tests)

    Returns:
        WaitResult; reached=False on timeout or when the plan completed
        without ever showing the target status
    """
    started = clock()

    def elapsed() -> int:
        return int(round(clock() - started))

    last_status: PlanStatus | None = None
    while clock() - started < timeout_seconds:
        plan = repository.load(plan_id)
        if plan is None:
            return WaitResult(
                found=False,
                reached=False,
                plan_id=plan_id,
                status=None,
                waited_seconds=elapsed(),
                message="Plan not found.",
            )

        last_status = plan.status
        if plan.status == target_status:
            logger.info(f"Plan {plan_id} reached {target_status.value} after {elapsed()}s")
            return WaitResult(
                found=True,
                reached=True,
                plan_id=plan_id,
                status=plan.status,
                waited_seconds=elapsed(),
            )

        if plan.status == PlanStatus.COMPLETED:
            return WaitResult(
                found=True,
                reached=False,
                plan_id=plan_id,
                status=plan.status,
                waited_seconds=elapsed(),
                message="Plan already completed.",
            )

        sleep(poll_interval)

    # One last read so the timeout reports the freshest status
    plan = repository.load(plan_id)
    if plan is not None:
        last_status = plan.status

    logger.info(f"Timed out waiting for plan {plan_id} to reach {target_status.value}")
    status_text = last_status.value if last_status else "unknown"
    return WaitResult(
        found=True,
        reached=False,
        plan_id=plan_id,
        status=last_status,
        waited_seconds=elapsed(),
        message=f"Timeout after {timeout_seconds:g}s. Plan status is still: {status_text}",
    )
