"""Retrying after-commit side effects."""

import random

from orderflow.application.side_effects import (
    FAILURES_KEY,
    RetryPolicy,
    SideEffect,
    SideEffectFailure,
    SideEffectRunner,
    record_failures,
)
from orderflow.domain.exceptions import EntityNotFoundError
from orderflow.domain.model.order import Order, OrderLineItem, ShippingAddress
from orderflow.domain.model.value_objects import Money, Quantity


class Flaky:
    """Fails *failures* times, then returns "ok"."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"boom {self.calls}")
        return "ok"


def _runner(attempts: int = 3) -> tuple[SideEffectRunner, list[float]]:
    sleeps: list[float] = []
    policy = RetryPolicy(max_attempts=attempts, jitter_factor=0)
    return SideEffectRunner(policy, sleep=sleeps.append, rng=random.Random(0)), sleeps


class TestRetryPolicy:

    def test_exponential_without_jitter(self):
        policy = RetryPolicy(base_delay=0.5, jitter_factor=0)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]

    def test_capped_at_max_delay(self):
        policy = RetryPolicy(base_delay=0.5, max_delay=5.0, jitter_factor=0)
        assert policy.delay_for(10) == 5.0

    def test_jitter_stays_within_bounds(self):
        policy = RetryPolicy(base_delay=1.0, jitter_factor=0.5)
        rng = random.Random(42)
        for _ in range(50):
            assert 0.5 <= policy.delay_for(1, rng) <= 1.5


class TestSideEffectRunner:

    def test_transient_failure_is_retried(self):
        runner, sleeps = _runner()
        action = Flaky(2)

        report = runner.run([SideEffect("sync", action)])

        assert report.ok
        assert report.results["sync"] == "ok"
        assert action.calls == 3
        assert sleeps == [0.5, 1.0]

    def test_gives_up_after_max_attempts(self):
        runner, _ = _runner(attempts=2)

        report = runner.run([SideEffect("sync", Flaky(5))])

        assert report.failed("sync")
        assert report.failures[0].attempts == 2
        assert report.failures[0].error == "boom 2"

    def test_permanent_errors_are_not_retried(self):
        runner, sleeps = _runner()

        def missing():
            raise EntityNotFoundError("voucher gone")

        report = runner.run([SideEffect("voucher", missing)])

        assert report.failures[0].attempts == 1
        assert sleeps == []

    def test_one_failure_does_not_skip_the_rest(self):
        runner, _ = _runner(attempts=1)

        report = runner.run([
            SideEffect("first", Flaky(1)),
            SideEffect("second", Flaky(0)),
        ])

        assert report.succeeded == ["second"]
        assert [f.name for f in report.failures] == ["first"]

    def test_per_effect_policy_overrides_default(self):
        runner, _ = _runner(attempts=3)
        action = Flaky(1)

        runner.run([SideEffect("ship", action, retry=RetryPolicy(max_attempts=1))])

        assert action.calls == 1


def test_record_failures_appends_to_order_metadata():
    order = Order.create(
        "YM1", "u1", [OrderLineItem("p1", "x", Quantity(1), Money.of("10"))],
        ShippingAddress("A", "0912345678", "1 Street", "W", "D", "P"),
        Money.of("10"), Money.of("10"),
    )

    record_failures(order, [SideEffectFailure("clear_cart", "down", 3)])
    record_failures(order, [SideEffectFailure("create_shipment", "timeout", 1)])

    assert [f["name"] for f in order.metadata[FAILURES_KEY]] == ["clear_cart", "create_shipment"]
    assert order.metadata[FAILURES_KEY][0]["attempts"] == 3
