"""Ticket pricing port, reference implementation and per-call cost memo."""

import logging
import math
from typing import Protocol

from pydantic import BaseModel

from ticketgen.core.errors import PricingError
from ticketgen.core.models import BettingLimits
from ticketgen.pricing.limits import (
    DEFAULT_BETTING_LIMITS,
    assert_budget_in_range,
    assert_k_in_range,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_PRICE_CENTS = 600


class BudgetAllocation(BaseModel):
    budget_cents: int
    ticket_cost_cents: int
    max_tickets: int
    leftover_cents: int
    constrained_by_ticket_limit: bool = False


class PricingGateway(Protocol):
    def resolve_ticket_cost(self, k: int) -> int: ...

    def calculate_budget_allocation(
        self, budget_cents: int, k: int
    ) -> BudgetAllocation: ...


def combination_cost(k: int, min_k: int, base_price_cents: int) -> int:
    """Price of a k-number ticket as the number of min_k-combinations."""
    return math.comb(k, min_k) * base_price_cents


class TablePricingGateway:
    """Prices from an explicit per-k table, else the combination formula."""

    def __init__(
        self,
        *,
        limits: BettingLimits | None = None,
        base_price_cents: int = DEFAULT_BASE_PRICE_CENTS,
        price_table: dict[int, int] | None = None,
    ) -> None:
        if base_price_cents <= 0:
            raise ValueError(
                f"base_price_cents must be > 0, got {base_price_cents}"
            )
        self.limits = limits or DEFAULT_BETTING_LIMITS
        self.base_price_cents = base_price_cents
        self.price_table = dict(price_table or {})

    def resolve_ticket_cost(self, k: int) -> int:
        assert_k_in_range(k, self.limits)
        if k in self.price_table:
            cost = self.price_table[k]
            if cost <= 0:
                raise PricingError(
                    "PRICE_NOT_FOUND",
                    f"price table has no valid entry for k={k}",
                )
            return cost
        return combination_cost(
            k, self.limits.min_dezena_count, self.base_price_cents
        )

    def calculate_budget_allocation(
        self, budget_cents: int, k: int
    ) -> BudgetAllocation:
        assert_budget_in_range(budget_cents, self.limits)
        ticket_cost = self.resolve_ticket_cost(k)
        max_by_budget = budget_cents // ticket_cost
        if max_by_budget <= 0:
            raise PricingError(
                "BUDGET_BELOW_MIN",
                f"budget of {budget_cents} cents cannot buy a k={k} ticket "
                f"costing {ticket_cost}",
            )
        max_tickets = min(max_by_budget, self.limits.max_tickets_per_batch)
        return BudgetAllocation(
            budget_cents=budget_cents,
            ticket_cost_cents=ticket_cost,
            max_tickets=max_tickets,
            leftover_cents=budget_cents - max_tickets * ticket_cost,
            constrained_by_ticket_limit=max_tickets < max_by_budget,
        )


class TicketCostCache:
    """Memoizes ``resolve_ticket_cost`` for the duration of one batch."""

    def __init__(self, pricing: PricingGateway) -> None:
        self._pricing = pricing
        self._costs: dict[int, int] = {}

    def cost(self, k: int) -> int:
        cached = self._costs.get(k)
        if cached is None:
            cached = self._pricing.resolve_ticket_cost(k)
            logger.debug("Resolved ticket cost k=%d -> %d cents", k, cached)
            self._costs[k] = cached
        return cached

    def known_costs(self) -> dict[int, int]:
        return dict(self._costs)
