from collections import Counter
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ticketgen.core.models import (
    MAX_NUMBER,
    MIN_NUMBER,
    BatchGenerationResult,
)
from ticketgen.core.schema import payload_schema_errors

CODE_RESULT_DESERIALIZE_ERROR = "RESULT_DESERIALIZE_ERROR"
CODE_PAYLOAD_SCHEMA = "PAYLOAD_SCHEMA"
CODE_COST_MISMATCH = "COST_MISMATCH"
CODE_OVER_BUDGET = "OVER_BUDGET"
CODE_COUNT_MISMATCH = "COUNT_MISMATCH"
CODE_DUPLICATE_TICKET = "DUPLICATE_TICKET"
CODE_INVALID_NUMBERS = "INVALID_NUMBERS"
CODE_BREAKDOWN_MISMATCH = "BREAKDOWN_MISMATCH"
CODE_SHORT_BATCH = "SHORT_BATCH"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class Issue(BaseModel):
    code: str = Field(description="Issue code, e.g. COST_MISMATCH")
    severity: Severity = Field(description="Error or warning")
    message: str = Field(description="Human-readable description")
    location: str = Field(description="Path to issue, e.g. tickets[3]")


def _error(code: str, message: str, location: str) -> Issue:
    return Issue(
        code=code, severity=Severity.ERROR, message=message, location=location
    )


def _validate_schema(result: BatchGenerationResult) -> list[Issue]:
    return [
        _error(CODE_PAYLOAD_SCHEMA, message, "payload")
        for message in payload_schema_errors(result.payload.to_wire())
    ]


def _validate_costs(result: BatchGenerationResult) -> list[Issue]:
    issues: list[Issue] = []
    total = sum(ticket.cost_cents for ticket in result.tickets)
    if result.total_cost_cents != total:
        issues.append(
            _error(
                CODE_COST_MISMATCH,
                f"total_cost_cents={result.total_cost_cents} but tickets "
                f"sum to {total}",
                "total_cost_cents",
            )
        )
    if result.total_cost_cents > result.budget_cents:
        issues.append(
            _error(
                CODE_OVER_BUDGET,
                f"total cost {result.total_cost_cents} exceeds budget "
                f"{result.budget_cents}",
                "total_cost_cents",
            )
        )
    expected_leftover = max(0, result.budget_cents - result.total_cost_cents)
    if result.leftover_cents != expected_leftover:
        issues.append(
            _error(
                CODE_COST_MISMATCH,
                f"leftover_cents={result.leftover_cents}, expected "
                f"{expected_leftover}",
                "leftover_cents",
            )
        )
    payload = result.payload
    if payload.total_cost_cents != result.total_cost_cents:
        issues.append(
            _error(
                CODE_COST_MISMATCH,
                "payload total differs from result total",
                "payload.total_cost_cents",
            )
        )
    if payload.leftover_cents != result.leftover_cents:
        issues.append(
            _error(
                CODE_COST_MISMATCH,
                "payload leftover differs from result leftover",
                "payload.leftover_cents",
            )
        )
    return issues


def _validate_tickets(result: BatchGenerationResult) -> list[Issue]:
    issues: list[Issue] = []
    if result.payload.tickets_generated != len(result.tickets):
        issues.append(
            _error(
                CODE_COUNT_MISMATCH,
                f"tickets_generated={result.payload.tickets_generated} but "
                f"{len(result.tickets)} tickets present",
                "payload.tickets_generated",
            )
        )

    seen: dict[str, int] = {}
    for i, ticket in enumerate(result.tickets):
        location = f"tickets[{i}]"
        numbers = ticket.numbers
        if (
            len(set(numbers)) != len(numbers)
            or numbers != sorted(numbers)
            or any(not MIN_NUMBER <= n <= MAX_NUMBER for n in numbers)
        ):
            issues.append(
                _error(
                    CODE_INVALID_NUMBERS,
                    f"numbers {numbers} must be sorted, distinct and within "
                    f"[{MIN_NUMBER}, {MAX_NUMBER}]",
                    location,
                )
            )
        if ticket.metadata.k != len(numbers):
            issues.append(
                _error(
                    CODE_INVALID_NUMBERS,
                    f"metadata.k={ticket.metadata.k} but ticket has "
                    f"{len(numbers)} numbers",
                    f"{location}.metadata.k",
                )
            )
        first = seen.setdefault(ticket.key, i)
        if first != i:
            issues.append(
                _error(
                    CODE_DUPLICATE_TICKET,
                    f"ticket {ticket.key} repeats tickets[{first}]",
                    location,
                )
            )
    return issues


def _validate_breakdown(result: BatchGenerationResult) -> list[Issue]:
    issues: list[Issue] = []
    by_k = {entry.k: entry for entry in result.ticket_cost_breakdown}
    emitted = Counter(ticket.k for ticket in result.tickets)

    for i, ticket in enumerate(result.tickets):
        entry = by_k.get(ticket.k)
        if entry is None:
            issues.append(
                _error(
                    CODE_BREAKDOWN_MISMATCH,
                    f"no breakdown entry for k={ticket.k}",
                    f"tickets[{i}]",
                )
            )
        elif entry.cost_cents != ticket.cost_cents:
            issues.append(
                _error(
                    CODE_COST_MISMATCH,
                    f"ticket costs {ticket.cost_cents} but k={ticket.k} is "
                    f"priced {entry.cost_cents}",
                    f"tickets[{i}].cost_cents",
                )
            )

    for entry in result.ticket_cost_breakdown:
        if entry.emitted != emitted.get(entry.k, 0):
            issues.append(
                _error(
                    CODE_BREAKDOWN_MISMATCH,
                    f"k={entry.k} reports {entry.emitted} emitted, found "
                    f"{emitted.get(entry.k, 0)}",
                    f"ticket_cost_breakdown[k={entry.k}]",
                )
            )

    planned = sum(entry.planned for entry in result.ticket_cost_breakdown)
    if len(result.tickets) < planned:
        issues.append(
            Issue(
                code=CODE_SHORT_BATCH,
                severity=Severity.WARNING,
                message=f"{len(result.tickets)} of {planned} planned tickets",
                location="tickets",
            )
        )
    return issues


def validate_batch_result(
    result: BatchGenerationResult | dict[str, Any],
) -> list[Issue]:
    """Check a generated (or saved) batch against its own accounting."""
    if not isinstance(result, BatchGenerationResult):
        try:
            result = BatchGenerationResult.model_validate(result)
        except ValidationError as e:
            return [
                _error(
                    CODE_RESULT_DESERIALIZE_ERROR,
                    f"Failed to deserialize result: {e}",
                    "result",
                )
            ]

    issues: list[Issue] = []
    issues.extend(_validate_schema(result))
    issues.extend(_validate_costs(result))
    issues.extend(_validate_tickets(result))
    issues.extend(_validate_breakdown(result))
    return issues
