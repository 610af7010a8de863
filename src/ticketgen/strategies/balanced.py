"""balanced strategy: spread picks across quadrants with even/odd balance.

Each quadrant gets ``k // 6`` numbers; the remainder goes to the
quadrants that were drawn most often in the stats window. Inside a
quadrant, the parity still short of its target is preferred and
candidates are weighted by ``frequency + 1``.
"""

import math
import random
from dataclasses import dataclass, field

from ticketgen.core.models import StrategyName, StrategyResult
from ticketgen.core.sampling import rng_for, weighted_pick_from_preferred
from ticketgen.strategies.base import (
    StrategyContext,
    normalize_seed,
    resolve_k,
)
from ticketgen.strategies.metadata import (
    QUADRANT_RANGES,
    QUADRANT_SIZE,
    build_metadata,
    numbers_in_quadrant,
    quadrant_index,
)
from ticketgen.strategies.stats import DrawStats


@dataclass
class _SelectionState:
    rng: random.Random
    frequencies: dict[int, int]
    even_target: int
    odd_target: int
    remaining: list[set[int]] = field(
        default_factory=lambda: [
            set(numbers_in_quadrant(i)) for i in range(len(QUADRANT_RANGES))
        ]
    )
    selected: list[int] = field(default_factory=list)
    even: int = 0
    odd: int = 0


def quadrant_totals(frequencies: dict[int, int]) -> list[int]:
    totals = [0] * len(QUADRANT_RANGES)
    for number, count in frequencies.items():
        totals[quadrant_index(number)] += count
    return totals


def compute_quadrant_targets(totals: list[int], k: int) -> list[int]:
    n_quadrants = len(QUADRANT_RANGES)
    if len(totals) != n_quadrants:
        raise ValueError(
            f"expected {n_quadrants} quadrant totals, got {len(totals)}"
        )
    base, remainder = divmod(k, n_quadrants)
    if base > QUADRANT_SIZE or (base == QUADRANT_SIZE and remainder):
        raise ValueError(f"k={k} exceeds the number space")
    # Most drawn quadrants first; ties keep quadrant order.
    order = sorted(range(n_quadrants), key=lambda i: -totals[i])
    targets = [base] * n_quadrants
    for index in order[:remainder]:
        targets[index] += 1
    return targets


def _decide_parity(state: _SelectionState) -> int:
    if state.even >= state.even_target:
        return 1
    if state.odd >= state.odd_target:
        return 0
    return 0 if state.rng.random() < 0.5 else 1


def _pick_for_quadrant(state: _SelectionState, index: int) -> int:
    available = sorted(state.remaining[index])
    if not available:
        raise ValueError(f"no numbers left in quadrant {index}")
    parity = _decide_parity(state)
    preferred = [n for n in available if n % 2 == parity]
    weights = {n: float(state.frequencies.get(n, 0) + 1) for n in available}
    value = weighted_pick_from_preferred(
        available, preferred, weights, state.rng
    )
    state.remaining[index].discard(value)
    state.selected.append(value)
    if value % 2 == 0:
        state.even += 1
    else:
        state.odd += 1
    return value


def balanced_strategy(
    context: StrategyContext, stats: DrawStats
) -> StrategyResult:
    seed = normalize_seed(context.seed)
    k = resolve_k(context.k, context.limits)
    window = context.window

    frequencies = stats.frequencies(window)
    total_draws = stats.total_draws(window)
    targets = compute_quadrant_targets(quadrant_totals(frequencies), k)

    even_target = math.ceil(k / 2)
    state = _SelectionState(
        rng=rng_for(seed),
        frequencies=frequencies,
        even_target=even_target,
        odd_target=k - even_target,
    )
    for index, target in enumerate(targets):
        for _ in range(target):
            _pick_for_quadrant(state, index)

    numbers = sorted(state.selected)
    average_frequency = sum(frequencies.get(n, 0) for n in numbers) / len(
        numbers
    )
    names = [name for name, _, _ in QUADRANT_RANGES]
    details = {
        "targets": dict(zip(names, targets, strict=True)),
        "totalDraws": total_draws,
        "averageFrequency": average_frequency,
    }
    return StrategyResult(
        numbers=numbers,
        metadata=build_metadata(
            StrategyName.BALANCED, seed, numbers, details, average_frequency
        ),
    )
