"""JSON Schema for the versioned strategy payload + validation."""

from typing import Any

from jsonschema import Draft202012Validator

_STRATEGY_NAMES = ["uniform", "balanced", "hot-streak", "cold-surge"]

_NON_NEGATIVE_INT = {"type": "integer", "minimum": 0}

_STRATEGY_REQUEST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "enum": _STRATEGY_NAMES},
        "weight": {"type": "number", "minimum": 0},
        "window": {"type": "integer", "minimum": 1},
        "kOverride": {"type": "integer", "minimum": 1},
    },
    "additionalProperties": False,
}

STRATEGY_PAYLOAD_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "ticketgen/strategy_payload.schema.json",
    "title": "StrategyPayload",
    "type": "object",
    "required": [
        "version",
        "seed",
        "requestedBudgetCents",
        "ticketCostCents",
        "averageTicketCostCents",
        "ticketCostBreakdown",
        "totalCostCents",
        "leftoverCents",
        "ticketsGenerated",
        "strategies",
        "metrics",
        "config",
    ],
    "properties": {
        "version": {"type": "string", "const": "1.0"},
        "seed": {"type": "string", "minLength": 1},
        "requestedBudgetCents": _NON_NEGATIVE_INT,
        "ticketCostCents": _NON_NEGATIVE_INT,
        "averageTicketCostCents": _NON_NEGATIVE_INT,
        "ticketCostBreakdown": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["k", "costCents", "planned", "emitted"],
                "properties": {
                    "k": {"type": "integer", "minimum": 1},
                    "costCents": _NON_NEGATIVE_INT,
                    "planned": _NON_NEGATIVE_INT,
                    "emitted": _NON_NEGATIVE_INT,
                },
                "additionalProperties": False,
            },
        },
        "totalCostCents": _NON_NEGATIVE_INT,
        "leftoverCents": _NON_NEGATIVE_INT,
        "ticketsGenerated": _NON_NEGATIVE_INT,
        "strategies": {
            "type": "array",
            "items": {
                "type": "object",
                "required": [
                    "name",
                    "weight",
                    "generated",
                    "attempts",
                    "failures",
                ],
                "properties": {
                    "name": {"type": "string", "enum": _STRATEGY_NAMES},
                    "weight": {"type": "number", "minimum": 0},
                    "generated": _NON_NEGATIVE_INT,
                    "attempts": _NON_NEGATIVE_INT,
                    "failures": _NON_NEGATIVE_INT,
                },
                "additionalProperties": False,
            },
        },
        "metrics": {
            "type": "object",
            "required": [
                "averageSum",
                "averageScore",
                "paritySpread",
                "quadrantCoverage",
            ],
            "properties": {
                "averageSum": {"type": "number"},
                "averageScore": {"type": "number"},
                "paritySpread": {"type": "number", "minimum": 0},
                "quadrantCoverage": {
                    "type": "object",
                    "required": ["min", "max", "average"],
                    "properties": {
                        "min": {"type": "number", "minimum": 0},
                        "max": {"type": "number", "minimum": 0},
                        "average": {"type": "number", "minimum": 0},
                    },
                    "additionalProperties": False,
                },
            },
            "additionalProperties": False,
        },
        "config": {
            "type": "object",
            "required": ["strategies", "k", "timeoutMs", "spreadBudget"],
            "properties": {
                "strategies": {
                    "type": "array",
                    "items": _STRATEGY_REQUEST_SCHEMA,
                },
                "k": {"type": "integer", "minimum": 1},
                "window": {"type": "integer", "minimum": 1},
                "timeoutMs": {"type": "integer", "minimum": 1},
                "spreadBudget": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
        "warnings": {"type": "array", "items": {"type": "string"}},
        "ticket": {
            "type": "object",
            "required": ["strategy", "metadata", "seed", "costCents"],
            "properties": {
                "strategy": {"type": "string", "enum": _STRATEGY_NAMES},
                "seed": {"type": "string"},
                "costCents": _NON_NEGATIVE_INT,
                "metadata": {"type": "object", "additionalProperties": True},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}

_VALIDATOR = Draft202012Validator(STRATEGY_PAYLOAD_SCHEMA)


def payload_schema_errors(payload: dict[str, Any]) -> list[str]:
    """Return human-readable schema violations, empty when valid."""
    errors = sorted(
        _VALIDATOR.iter_errors(payload),
        key=lambda e: [str(part) for part in e.absolute_path],
    )
    messages: list[str] = []
    for error in errors:
        location = "/".join(str(part) for part in error.absolute_path)
        messages.append(f"{location or '<root>'}: {error.message}")
    return messages
