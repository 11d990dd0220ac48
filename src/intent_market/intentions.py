"""Intention model and its lifecycle."""

from decimal import Decimal
from enum import Enum
from uuid import UUID
from uuid import uuid4

from pydantic import BaseModel
from pydantic import Field

from intent_market.exceptions import IntentionStateError


class IntentionStatus(str, Enum):
    """Where an intention is in its lifecycle."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"
    PAYOUTS_PENDING = "PAYOUTS_PENDING"
    COMPLETE = "COMPLETE"


ALLOWED_TRANSITIONS: dict[IntentionStatus, frozenset[IntentionStatus]] = {
    IntentionStatus.OPEN: frozenset(
        {IntentionStatus.CLOSED, IntentionStatus.PAYOUTS_PENDING}
    ),
    IntentionStatus.CLOSED: frozenset({IntentionStatus.PAYOUTS_PENDING}),
    IntentionStatus.PAYOUTS_PENDING: frozenset({IntentionStatus.COMPLETE}),
    IntentionStatus.COMPLETE: frozenset(),
}

ALLOCATABLE = frozenset({IntentionStatus.OPEN, IntentionStatus.CLOSED})


class Intention(BaseModel):
    """A requester's broadcast intent with its reward terms."""

    id: UUID = Field(default_factory=uuid4)
    prompt: str = Field(description="What the requester is looking for")
    budget_usd: Decimal = Field(ge=0, description="Total reward budget")
    winners_count: int = Field(ge=0, description="Max selection payouts")
    participation_usd: Decimal = Field(
        ge=0, description="Flat participation payout"
    )
    selection_usd: Decimal = Field(ge=0, description="Flat selection payout")
    status: IntentionStatus = Field(default=IntentionStatus.OPEN)


def transition(intention: Intention, target: IntentionStatus) -> Intention:
    """
    Move an intention to a new status.

    Args:
        intention: Current intention.
        target: Desired status.

    Returns:
        Updated copy; the input is left unchanged.

    Raises:
        IntentionStateError: The move is not allowed.
    """
    if target not in ALLOWED_TRANSITIONS[intention.status]:
        raise IntentionStateError(
            f"Intention {intention.id} cannot move from "
            f"{intention.status.value} to {target.value}"
        )
    return intention.model_copy(update={"status": target})


def ensure_allocatable(intention: Intention) -> None:
    """Raise unless the intention is ready for allocation."""
    if intention.status not in ALLOCATABLE:
        raise IntentionStateError(
            f"Intention {intention.id} not ready for allocation "
            f"({intention.status.value})"
        )
