from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = "1.0"
MIN_NUMBER = 1
MAX_NUMBER = 60


class StrategyName(str, Enum):
    UNIFORM = "uniform"
    BALANCED = "balanced"
    HOT_STREAK = "hot-streak"
    COLD_SURGE = "cold-surge"


class WireModel(BaseModel):
    """Base for models that leave the process as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Limits ---


class BettingLimits(WireModel):
    model_config = ConfigDict(frozen=True)

    min_dezena_count: int = Field(default=6, ge=1, le=MAX_NUMBER)
    max_dezena_count: int = Field(default=15, ge=1, le=MAX_NUMBER)
    default_dezena_count: int = Field(default=6, ge=1, le=MAX_NUMBER)
    max_tickets_per_batch: int = Field(default=100, ge=1)
    min_budget_cents: int = Field(default=600, ge=1)
    max_budget_cents: int = Field(default=50_000, ge=1)

    @model_validator(mode="after")
    def validate_limits(self) -> "BettingLimits":
        if self.min_dezena_count > self.max_dezena_count:
            raise ValueError(
                f"min_dezena_count ({self.min_dezena_count}) must be <= "
                f"max_dezena_count ({self.max_dezena_count})"
            )
        if not (
            self.min_dezena_count
            <= self.default_dezena_count
            <= self.max_dezena_count
        ):
            raise ValueError(
                f"default_dezena_count ({self.default_dezena_count}) must be "
                f"within [{self.min_dezena_count}, {self.max_dezena_count}]"
            )
        if self.min_budget_cents > self.max_budget_cents:
            raise ValueError(
                f"min_budget_cents ({self.min_budget_cents}) must be <= "
                f"max_budget_cents ({self.max_budget_cents})"
            )
        return self


# --- Requests ---


class StrategyRequest(WireModel):
    name: StrategyName
    weight: float = Field(default=1.0, ge=0, allow_inf_nan=False)
    window: int | None = Field(default=None, ge=1)
    k_override: int | None = Field(default=None, ge=1)


class GenerateBatchRequest(WireModel):
    model_config = ConfigDict(frozen=True)

    budget_cents: int = Field(gt=0)
    seed: str = Field(min_length=1)
    strategies: list[StrategyRequest] | None = None
    k: int | None = Field(default=None, ge=1)
    window: int | None = Field(default=None, ge=1)
    timeout_ms: int | None = Field(default=None, ge=1)
    spread_budget: bool = False

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("seed must not be blank")
        return value


# --- Strategy output ---


class ParityDistribution(WireModel):
    even: int = Field(ge=0)
    odd: int = Field(ge=0)


class QuadrantDistribution(WireModel):
    range: str
    count: int = Field(ge=0)


class StrategyMetadata(WireModel):
    strategy: StrategyName
    seed: str
    k: int
    sum: int
    parity: ParityDistribution
    quadrants: list[QuadrantDistribution]
    score: float | None = None
    details: dict[str, Any] | None = None


class StrategyResult(BaseModel):
    numbers: list[int]
    metadata: StrategyMetadata


class StrategyTicket(WireModel):
    model_config = ConfigDict(frozen=True)

    strategy: StrategyName
    numbers: list[int]
    metadata: StrategyMetadata
    cost_cents: int = Field(ge=0)
    seed: str

    @property
    def k(self) -> int:
        return len(self.numbers)

    @property
    def key(self) -> str:
        return ticket_key(self.numbers)


def ticket_key(numbers: list[int]) -> str:
    return "-".join(str(n) for n in sorted(numbers))


@dataclass
class TicketSlot:
    """Planned ticket position; k/cost are rewritten if downgraded."""

    index: int
    k: int
    cost_cents: int


# --- Summaries and metrics ---


class StrategyExecutionSummary(WireModel):
    name: StrategyName
    weight: float = Field(ge=0)
    generated: int = 0
    attempts: int = 0
    failures: int = 0


class QuadrantCoverageMetrics(WireModel):
    min: float = 0
    max: float = 0
    average: float = 0


class BatchMetrics(WireModel):
    average_sum: float = 0
    average_score: float = 0
    parity_spread: float = 0
    quadrant_coverage: QuadrantCoverageMetrics = Field(
        default_factory=QuadrantCoverageMetrics
    )


class TicketCostBreakdownEntry(WireModel):
    k: int
    cost_cents: int = Field(ge=0)
    planned: int = Field(ge=0)
    emitted: int = Field(ge=0)


# --- Payload ---


class PayloadConfig(WireModel):
    strategies: list[StrategyRequest]
    k: int
    window: int | None = None
    timeout_ms: int
    spread_budget: bool = False


class TicketAudit(WireModel):
    strategy: StrategyName
    metadata: StrategyMetadata
    seed: str
    cost_cents: int = Field(ge=0)


class StrategyPayload(WireModel):
    model_config = ConfigDict(frozen=True)

    version: Literal["1.0"] = SCHEMA_VERSION
    seed: str
    requested_budget_cents: int
    ticket_cost_cents: int
    average_ticket_cost_cents: int
    ticket_cost_breakdown: list[TicketCostBreakdownEntry]
    total_cost_cents: int
    leftover_cents: int
    tickets_generated: int
    strategies: list[StrategyExecutionSummary]
    metrics: BatchMetrics
    config: PayloadConfig
    warnings: list[str] = Field(default_factory=list)
    ticket: TicketAudit | None = None


class BatchGenerationResult(WireModel):
    tickets: list[StrategyTicket]
    ticket_cost_cents: int
    average_ticket_cost_cents: int
    ticket_cost_breakdown: list[TicketCostBreakdownEntry]
    total_cost_cents: int
    budget_cents: int
    leftover_cents: int
    payload: StrategyPayload
    warnings: list[str]
