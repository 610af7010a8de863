from collections.abc import Sequence
from typing import Any

from ticketgen.core.models import (
    MAX_NUMBER,
    MIN_NUMBER,
    ParityDistribution,
    QuadrantDistribution,
    StrategyMetadata,
    StrategyName,
)

QUADRANT_SIZE = 10
# ("01-10", 1, 10), ("11-20", 11, 20), ... ("51-60", 51, 60)
QUADRANT_RANGES: tuple[tuple[str, int, int], ...] = tuple(
    (f"{start:02d}-{end:02d}", start, end)
    for start, end in (
        (lo, lo + QUADRANT_SIZE - 1)
        for lo in range(MIN_NUMBER, MAX_NUMBER + 1, QUADRANT_SIZE)
    )
)


def quadrant_index(value: int) -> int:
    if not MIN_NUMBER <= value <= MAX_NUMBER:
        raise ValueError(
            f"number {value} outside [{MIN_NUMBER}, {MAX_NUMBER}]"
        )
    return (value - MIN_NUMBER) // QUADRANT_SIZE


def numbers_in_quadrant(index: int) -> list[int]:
    if not 0 <= index < len(QUADRANT_RANGES):
        raise ValueError(f"unknown quadrant index: {index}")
    _, start, end = QUADRANT_RANGES[index]
    return list(range(start, end + 1))


def build_quadrant_distribution(
    numbers: Sequence[int],
) -> list[QuadrantDistribution]:
    return [
        QuadrantDistribution(
            range=name,
            count=sum(1 for n in numbers if start <= n <= end),
        )
        for name, start, end in QUADRANT_RANGES
    ]


def build_parity_distribution(numbers: Sequence[int]) -> ParityDistribution:
    even = sum(1 for n in numbers if n % 2 == 0)
    return ParityDistribution(even=even, odd=len(numbers) - even)


def build_metadata(
    strategy: StrategyName,
    seed: str,
    numbers: Sequence[int],
    details: dict[str, Any] | None = None,
    score: float | None = None,
) -> StrategyMetadata:
    ordered = sorted(numbers)
    return StrategyMetadata(
        strategy=strategy,
        seed=seed,
        k=len(ordered),
        sum=sum(ordered),
        parity=build_parity_distribution(ordered),
        quadrants=build_quadrant_distribution(ordered),
        score=score,
        details=details,
    )
