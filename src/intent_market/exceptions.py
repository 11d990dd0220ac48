"""Error types raised by the marketplace."""

from decimal import Decimal
from typing import Any


class MarketError(Exception):
    """Base class for marketplace errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(MarketError, ValueError):
    """A numeric allocation parameter is negative or not finite."""

    def __init__(self, field_name: str, value: Any) -> None:
        super().__init__(
            f"{field_name} must be a non-negative number, got {value!r}"
        )
        self.field_name = field_name
        self.value = value


class BudgetExceededError(MarketError):
    """Computed payout total is strictly greater than the budget."""

    def __init__(self, total_usd: Decimal, budget_usd: Decimal) -> None:
        super().__init__(
            f"Total payout {total_usd} exceeds budget {budget_usd}"
        )
        self.total_usd = total_usd
        self.budget_usd = budget_usd


class IntentionStateError(MarketError):
    """Operation not permitted in the intention's current status."""


class SubmissionLimitError(MarketError):
    """Agent already reached its submission cap for an intention."""

    def __init__(self, agent_id: str, limit: int) -> None:
        super().__init__(
            f"Submission limit reached for agent {agent_id} ({limit})"
        )
        self.agent_id = agent_id
        self.limit = limit
