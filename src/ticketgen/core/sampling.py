import random
import zlib
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def stable_seed(label: str) -> int:
    return zlib.crc32(label.encode()) & 0xFFFFFFFF


def rng_for(label: str) -> random.Random:
    """Deterministic generator for a seed label, stable across processes."""
    return random.Random(stable_seed(label))


def sample_unique_numbers(
    rng: random.Random,
    value_range: tuple[int, int],
    count: int,
) -> list[int]:
    lo, hi = value_range
    if lo > hi:
        raise ValueError(
            f"value_range is malformed: low ({lo}) must be <= high ({hi})"
        )
    if count > hi - lo + 1:
        raise ValueError(
            f"cannot sample {count} unique numbers from [{lo}, {hi}]"
        )
    return sorted(rng.sample(range(lo, hi + 1), count))


def weighted_pick(
    items: Sequence[T],
    weights: Sequence[float],
    rng: random.Random,
) -> T:
    """Pick one item proportionally to its weight.

    Negative weights count as zero; an all-zero table degrades to a
    uniform pick.
    """
    if not items:
        raise ValueError("items must contain at least one item")
    if len(items) != len(weights):
        raise ValueError("items and weights must have the same length")
    clipped = [max(weight, 0.0) for weight in weights]
    if sum(clipped) <= 0:
        return rng.choice(list(items))
    return rng.choices(list(items), weights=clipped, k=1)[0]


def weighted_sample_without_replacement(
    items: Sequence[T],
    weights: Sequence[float],
    count: int,
    rng: random.Random,
) -> list[T]:
    if count > len(items):
        raise ValueError(
            f"cannot pick {count} items from a pool of {len(items)}"
        )
    pool = list(items)
    pool_weights = list(weights)
    picked: list[T] = []
    for _ in range(count):
        choice = weighted_pick(pool, pool_weights, rng)
        index = pool.index(choice)
        picked.append(pool.pop(index))
        pool_weights.pop(index)
    return picked


def weighted_pick_from_preferred(
    available: Sequence[T],
    preferred: Sequence[T],
    weights: dict[T, float],
    rng: random.Random,
) -> T:
    if not available:
        raise ValueError("available must contain at least one item")
    preferred_available = [item for item in preferred if item in available]
    candidates = preferred_available or list(available)
    return weighted_pick(
        candidates, [weights.get(item, 0.0) for item in candidates], rng
    )
