"""Read-only draw statistics consumed by the strategies."""

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Protocol

import srsly

from ticketgen.core.models import MAX_NUMBER, MIN_NUMBER


class DrawStats(Protocol):
    def frequencies(self, window: int | None = None) -> dict[int, int]: ...

    def total_draws(self, window: int | None = None) -> int: ...

    def contests_since_last(self) -> dict[int, int | None]: ...


class DrawHistory:
    """In-memory statistics over past draws, oldest first."""

    def __init__(self, draws: Iterable[Sequence[int]] = ()) -> None:
        self._draws: list[tuple[int, ...]] = []
        for position, draw in enumerate(draws):
            numbers = tuple(sorted(int(n) for n in draw))
            for n in numbers:
                if not MIN_NUMBER <= n <= MAX_NUMBER:
                    raise ValueError(
                        f"draws[{position}]: number {n} outside "
                        f"[{MIN_NUMBER}, {MAX_NUMBER}]"
                    )
            self._draws.append(numbers)

    @classmethod
    def from_jsonl(cls, path: Path) -> "DrawHistory":
        """Load rows shaped either ``[n, ...]`` or ``{"numbers": [...]}``."""
        draws: list[Sequence[int]] = []
        for line_number, row in enumerate(srsly.read_jsonl(path), start=1):
            draws.append(_row_numbers(row, line_number))
        return cls(draws)

    def __len__(self) -> int:
        return len(self._draws)

    def _recent(self, window: int | None) -> list[tuple[int, ...]]:
        if window is None:
            return self._draws
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        return self._draws[-window:]

    def frequencies(self, window: int | None = None) -> dict[int, int]:
        counts = dict.fromkeys(range(MIN_NUMBER, MAX_NUMBER + 1), 0)
        for draw in self._recent(window):
            for n in draw:
                counts[n] += 1
        return counts

    def total_draws(self, window: int | None = None) -> int:
        return len(self._recent(window))

    def contests_since_last(self) -> dict[int, int | None]:
        """Draws elapsed since each number last appeared (0 = latest)."""
        since: dict[int, int | None] = dict.fromkeys(
            range(MIN_NUMBER, MAX_NUMBER + 1)
        )
        for age, draw in enumerate(reversed(self._draws)):
            for n in draw:
                if since[n] is None:
                    since[n] = age
        return since


def _row_numbers(row: Any, line_number: int) -> list[int]:
    if isinstance(row, dict):
        row = row.get("numbers")
    if not isinstance(row, list) or not all(
        isinstance(n, int) and not isinstance(n, bool) for n in row
    ):
        raise ValueError(
            f"line {line_number}: expected a list of ints or "
            "an object with a 'numbers' list"
        )
    return row
