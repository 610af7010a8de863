import logging
from pathlib import Path

import srsly
from pydantic import BaseModel, Field, field_validator

from ticketgen.core.models import BettingLimits
from ticketgen.engine.generate import DEFAULT_TIMEOUT_MS
from ticketgen.pricing.gateway import (
    DEFAULT_BASE_PRICE_CENTS,
    TablePricingGateway,
)
from ticketgen.pricing.limits import StaticLimitsProvider

logger = logging.getLogger(__name__)


class GeneratorConfig(BaseModel):
    """Deployment settings: betting limits, pricing and the default deadline.

    ``price_table`` maps a ticket size to an explicit price in cents and
    wins over the combination formula for that size.
    """

    limits: BettingLimits = Field(default_factory=BettingLimits)
    base_price_cents: int = Field(default=DEFAULT_BASE_PRICE_CENTS, gt=0)
    price_table: dict[int, int] = Field(default_factory=dict)
    default_timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, ge=1)

    @field_validator("price_table")
    @classmethod
    def validate_price_table(cls, value: dict[int, int]) -> dict[int, int]:
        for k, price in value.items():
            if k < 1:
                raise ValueError(f"price_table key must be >= 1, got {k}")
            if price <= 0:
                raise ValueError(
                    f"price_table[{k}] must be > 0 cents, got {price}"
                )
        return value

    def pricing_gateway(self) -> TablePricingGateway:
        return TablePricingGateway(
            limits=self.limits,
            base_price_cents=self.base_price_cents,
            price_table=self.price_table,
        )

    def limits_provider(self) -> StaticLimitsProvider:
        return StaticLimitsProvider(self.limits)


def load_config(path: Path | None = None) -> GeneratorConfig:
    """Read a JSON config file, or return the defaults when no path."""
    if path is None:
        return GeneratorConfig()
    data = srsly.read_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: config must be a JSON object")
    config = GeneratorConfig.model_validate(data)
    logger.debug("Loaded generator config from %s", path)
    return config
