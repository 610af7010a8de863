"""Error taxonomy for batch generation.

Every error carries a stable upper-case ``code`` so callers can branch on
it without parsing messages.
"""

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from ticketgen.core.models import BatchGenerationResult

PricingErrorCode = Literal[
    "K_OUT_OF_RANGE",
    "PRICE_NOT_FOUND",
    "BUDGET_BELOW_MIN",
    "BUDGET_ABOVE_MAX",
]

BatchGenerationErrorCode = Literal[
    "GENERATION_TIMEOUT",
    "NO_STRATEGY_AVAILABLE",
]


class TicketgenError(RuntimeError):
    def __init__(self, code: str, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        message = f"{code}:{detail}" if detail else code
        super().__init__(message)


class PricingError(TicketgenError):
    """Budget or ticket size rejected before any ticket was generated."""

    def __init__(self, code: PricingErrorCode, detail: str | None = None):
        super().__init__(code, detail)


class BatchGenerationError(TicketgenError):
    """Batch aborted or refused.

    ``partial`` holds a schema-valid result for everything generated
    before a ``GENERATION_TIMEOUT``; it is ``None`` for errors raised
    before the generation loop started.
    """

    def __init__(
        self,
        code: BatchGenerationErrorCode,
        detail: str | None = None,
        partial: "BatchGenerationResult | None" = None,
    ) -> None:
        super().__init__(code, detail)
        self.partial = partial


class PayloadSchemaError(TicketgenError):
    """Assembled payload violates its own schema (internal defect)."""

    def __init__(self, detail: str, errors: list[str] | None = None):
        super().__init__("PAYLOAD_SCHEMA_VIOLATION", detail)
        self.errors = list(errors or [])


def reason_code(exc: Exception) -> str:
    if isinstance(exc, TicketgenError):
        return exc.code
    return "INTERNAL_ERROR"
