"""Wall-clock execution budget for a validation run."""

import time
from collections.abc import Callable
from typing import Optional

from .models import BudgetStatus

TIME_LIMIT_MS = 2 * 60 * 1000
WARNING_THRESHOLD = 0.8


class ExecutionBudgetMonitor:
    """Measures elapsed time against the budget. Advisory only."""

    def __init__(
        self,
        limit_ms: int = TIME_LIMIT_MS,
        threshold: float = WARNING_THRESHOLD,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.limit_ms = limit_ms
        self.threshold = threshold
        self._clock = clock or time.monotonic
        self._started = self._clock()

    @property
    def warning_ms(self) -> int:
        return int(self.limit_ms * self.threshold)

    def elapsed_ms(self) -> int:
        return int((self._clock() - self._started) * 1000)

    def status(self) -> BudgetStatus:
        elapsed = self.elapsed_ms()
        over = elapsed > self.limit_ms
        near = elapsed > self.warning_ms
        seconds = f"{elapsed / 1000:.2f}"
        limit_minutes = self.limit_ms // 60000

        warnings = []
        if over:
            warnings.append(
                f"Validation took {seconds}s, exceeding the {limit_minutes}-minute limit. "
                "Consider optimizing checks or splitting into parallel jobs."
            )
        elif near:
            warnings.append(
                f"Validation took {seconds}s, approaching the {limit_minutes}-minute limit "
                f"(>{round(self.warning_ms / 1000)}s). Consider monitoring for performance degradation."
            )

        return BudgetStatus(
            elapsed_ms=elapsed,
            limit_ms=self.limit_ms,
            percent_of_limit=round(elapsed / self.limit_ms * 100, 1),
            over_limit=over,
            near_limit=near,
            warnings=warnings,
        )
