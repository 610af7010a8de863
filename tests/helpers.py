from collections.abc import Iterable, Iterator
from typing import Any

from ticketgen.core.models import StrategyName, StrategyResult
from ticketgen.strategies.base import StrategyContext, StrategyHandler
from ticketgen.strategies.metadata import build_metadata


class FakeClock:
    """Monotonic clock in seconds that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def report(self, name: str, fields: dict[str, Any]) -> None:
        self.events.append((name, fields))


class ExplodingSink:
    def report(self, name: str, fields: dict[str, Any]) -> None:
        raise ConnectionError("metrics backend down")


def scripted_handler(
    name: StrategyName, tickets: Iterable[list[int]]
) -> StrategyHandler:
    """Handler returning the given tickets in order, repeating the last."""
    queue: Iterator[list[int]] = iter(tickets)
    last: list[int] = []

    def handler(context: StrategyContext) -> StrategyResult:
        nonlocal last
        last = next(queue, last)
        return StrategyResult(
            numbers=list(last),
            metadata=build_metadata(name, context.seed, last),
        )

    return handler


def failing_handler(message: str = "stats unavailable") -> StrategyHandler:
    def handler(context: StrategyContext) -> StrategyResult:
        raise RuntimeError(message)

    return handler
