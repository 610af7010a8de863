from ticketgen.core.models import (
    BatchMetrics,
    QuadrantCoverageMetrics,
    StrategyMetadata,
)


def _mean(values: list[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


class MetricsAccumulator:
    """Collects ticket metadata and summarizes it once the batch is done."""

    def __init__(self) -> None:
        self._entries: list[StrategyMetadata] = []

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, metadata: StrategyMetadata) -> None:
        self._entries.append(metadata)

    def build(self) -> BatchMetrics:
        if not self._entries:
            return BatchMetrics()

        sums = [float(item.sum) for item in self._entries]
        scores = [float(item.score or 0) for item in self._entries]
        parity_diffs = [
            float(abs(item.parity.even - item.parity.odd))
            for item in self._entries
        ]
        coverage = [
            float(sum(1 for q in item.quadrants if q.count > 0))
            for item in self._entries
        ]
        return BatchMetrics(
            average_sum=_mean(sums),
            average_score=_mean(scores),
            parity_spread=_mean(parity_diffs),
            quadrant_coverage=QuadrantCoverageMetrics(
                min=min(coverage),
                max=max(coverage),
                average=_mean(coverage),
            ),
        )
