from typing import Protocol

from ticketgen.core.errors import PricingError
from ticketgen.core.models import BettingLimits

DEFAULT_BETTING_LIMITS = BettingLimits()


class LimitsProvider(Protocol):
    def get_betting_limits(self) -> BettingLimits: ...


class StaticLimitsProvider:
    def __init__(self, limits: BettingLimits | None = None) -> None:
        self._limits = limits or DEFAULT_BETTING_LIMITS

    def get_betting_limits(self) -> BettingLimits:
        return self._limits


def assert_k_in_range(k: int, limits: BettingLimits) -> None:
    if isinstance(k, bool) or not (
        limits.min_dezena_count <= k <= limits.max_dezena_count
    ):
        raise PricingError(
            "K_OUT_OF_RANGE",
            f"k={k} outside [{limits.min_dezena_count}, "
            f"{limits.max_dezena_count}]",
        )


def assert_budget_in_range(budget_cents: int, limits: BettingLimits) -> None:
    if budget_cents < limits.min_budget_cents:
        raise PricingError(
            "BUDGET_BELOW_MIN",
            f"minimum budget is {limits.min_budget_cents} cents, "
            f"got {budget_cents}",
        )
    if budget_cents > limits.max_budget_cents:
        raise PricingError(
            "BUDGET_ABOVE_MAX",
            f"maximum budget is {limits.max_budget_cents} cents, "
            f"got {budget_cents}",
        )
