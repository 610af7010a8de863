from __future__ import annotations

import pytest
from helpers import FakeClock

from ticketgen.core.models import BettingLimits
from ticketgen.pricing.gateway import TablePricingGateway
from ticketgen.pricing.limits import StaticLimitsProvider
from ticketgen.strategies.registry import StrategyRegistry, build_registry


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--verification-level",
        action="store",
        default="standard",
        choices=("fast", "standard", "full"),
        help=(
            "Select test verification level: "
            "fast (skip slow+full), "
            "standard (skip full), "
            "full (run all)."
        ),
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    level = config.getoption("--verification-level")

    if level == "full":
        return

    skip_full = pytest.mark.skip(reason="requires --verification-level=full")
    skip_slow = pytest.mark.skip(reason="skipped in fast verification level")

    for item in items:
        if "full" in item.keywords:
            item.add_marker(skip_full)
            continue
        if level == "fast" and "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def limits() -> BettingLimits:
    return BettingLimits()


@pytest.fixture
def pricing(limits: BettingLimits) -> TablePricingGateway:
    return TablePricingGateway(limits=limits)


@pytest.fixture
def limits_provider(limits: BettingLimits) -> StaticLimitsProvider:
    return StaticLimitsProvider(limits)


@pytest.fixture
def registry() -> StrategyRegistry:
    return build_registry()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
