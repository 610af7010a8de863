"""Pricing and betting-limit ports with reference implementations."""

from ticketgen.pricing.gateway import (
    BudgetAllocation,
    PricingGateway,
    TablePricingGateway,
    TicketCostCache,
)
from ticketgen.pricing.limits import (
    DEFAULT_BETTING_LIMITS,
    LimitsProvider,
    StaticLimitsProvider,
)

__all__ = [
    "DEFAULT_BETTING_LIMITS",
    "BudgetAllocation",
    "LimitsProvider",
    "PricingGateway",
    "StaticLimitsProvider",
    "TablePricingGateway",
    "TicketCostCache",
]
