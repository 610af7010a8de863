import logging
from dataclasses import dataclass
from typing import Literal

from ticketgen.pricing.gateway import TicketCostCache

logger = logging.getLogger(__name__)

SizeSource = Literal["override", "fallback", "default"]


@dataclass(frozen=True)
class AffordableSize:
    k: int
    cost_cents: int
    source: SizeSource
    warning: str | None = None


class AffordabilityResolver:
    """Pick the ticket size to generate given what is left of the budget.

    Candidates are tried as override, then the slot's planned size, then
    the batch default; the first one whose cost fits wins.
    """

    def __init__(self, costs: TicketCostCache) -> None:
        self._costs = costs

    def resolve(
        self,
        desired_k: int | None,
        fallback_k: int,
        default_k: int,
        budget_remaining: int,
    ) -> AffordableSize | None:
        candidates: list[tuple[int, SizeSource]] = []
        if desired_k is not None:
            candidates.append((desired_k, "override"))
        candidates.append((fallback_k, "fallback"))
        candidates.append((default_k, "default"))

        seen: set[int] = set()
        for k, source in candidates:
            if k in seen:
                continue
            seen.add(k)
            cost = self._costs.cost(k)
            if cost > budget_remaining:
                continue
            logger.debug(
                "Resolved k=%d (%s) at %d cents with %d remaining",
                k,
                source,
                cost,
                budget_remaining,
            )
            warning = None
            if desired_k is not None and k != desired_k:
                warning = (
                    f"k_override={desired_k} does not fit the remaining "
                    f"budget of {budget_remaining} cents; using k={k}"
                )
            return AffordableSize(
                k=k, cost_cents=cost, source=source, warning=warning
            )

        logger.debug(
            "No affordable size among %s with %d cents remaining",
            sorted(seen),
            budget_remaining,
        )
        return None
