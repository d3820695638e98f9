"""After-commit side effects.

Work that must be attempted after an order mutation, but must never undo or
block it (voucher marking, sold counters, carrier sync, cart clearing), is
queued as named ``SideEffect``s and run by ``SideEffectRunner`` once the
primary write is persisted.

Each effect is retried with exponential backoff and jitter. Permanent
failures (not-found, validation, invalid state) are not retried. A failure
never propagates; it is logged and returned as a ``SideEffectFailure``.
``record_failures`` stores failures on the order for operators.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from orderflow.domain.exceptions import (
    EntityNotFoundError,
    InvalidStateError,
    ValidationError,
)
from orderflow.domain.model.order import Order

logger = logging.getLogger(__name__)

FAILURES_KEY = "side_effect_failures"

# Retrying these cannot change the outcome.
PERMANENT_ERRORS: tuple[type[Exception], ...] = (
    EntityNotFoundError,
    InvalidStateError,
    ValidationError,
)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.5           # seconds
    max_delay: float = 5.0            # cap per wait
    exponential_base: float = 2.0
    jitter_factor: float = 0.5        # +/- share of the delay

    def delay_for(self, attempt: int, rng: random.Random | None = None) -> float:
        """Wait before retry number *attempt* (1 = first retry)."""
        rng = rng or random.Random()
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        delay += delay * self.jitter_factor * (2 * rng.random() - 1)
        return max(0.0, min(delay, self.max_delay))


@dataclass(frozen=True)
class SideEffect:
    name: str
    action: Callable[[], Any]
    retry: RetryPolicy | None = None


@dataclass(frozen=True)
class SideEffectFailure:
    name: str
    error: str
    attempts: int
    failed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_record(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "error": self.error,
            "attempts": self.attempts,
            "failed_at": self.failed_at.isoformat(),
        }


@dataclass
class SideEffectReport:
    succeeded: list[str] = field(default_factory=list)
    failures: list[SideEffectFailure] = field(default_factory=list)
    results: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    def failed(self, name: str) -> bool:
        return any(f.name == name for f in self.failures)


class SideEffectRunner:

    def __init__(
        self,
        default_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._default_policy = default_policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def run(self, effects: list[SideEffect]) -> SideEffectReport:
        """Run every effect independently; one failure never skips the rest."""
        report = SideEffectReport()
        for effect in effects:
            outcome = self._run_one(effect)
            if isinstance(outcome, SideEffectFailure):
                report.failures.append(outcome)
            else:
                report.succeeded.append(effect.name)
                report.results[effect.name] = outcome
        return report

    def _run_one(self, effect: SideEffect) -> Any:
        policy = effect.retry or self._default_policy
        attempts = max(1, policy.max_attempts)

        for attempt in range(1, attempts + 1):
            try:
                return effect.action()
            except PERMANENT_ERRORS as exc:
                logger.exception("Side effect %s failed permanently", effect.name)
                return SideEffectFailure(effect.name, str(exc), attempt)
            except Exception as exc:
                if attempt == attempts:
                    logger.exception(
                        "Side effect %s failed after %d attempts", effect.name, attempt
                    )
                    return SideEffectFailure(effect.name, str(exc), attempt)
                delay = policy.delay_for(attempt, self._rng)
                logger.warning(
                    "Side effect %s failed (attempt %d/%d): %s; retrying in %.2fs",
                    effect.name, attempt, attempts, exc, delay,
                )
                self._sleep(delay)

        raise AssertionError("unreachable")


def record_failures(order: Order, failures: list[SideEffectFailure]) -> None:
    """Append *failures* to the order's audit metadata. The caller saves."""
    for failure in failures:
        order.append_record(FAILURES_KEY, failure.to_record())
