"""
Reward Allocation.

Splits an intention's budget between participation and selection payouts.

Given a budget, flat per-recipient amounts, a score threshold and the
candidate submissions, the allocator decides which submissions are paid
for participating and which are paid as winners:

1. Qualify: keep submissions with score >= threshold.
2. Deduplicate: one submission per dedupe hash, the highest scoring
   (first seen wins a tie).
3. Rank: stable sort by score, descending.
4. Reserve: selection budget for caller-chosen winners.
5. Size: as many participation payouts as the remaining budget covers.
6. Select: caller-chosen winners verbatim, else the top ranked.
7. Check: the grand total may never exceed the budget.

Caller-chosen winners (``selected_ids``) are authoritative. They are not
checked against the threshold or the deduplicated pool, so a curator can
select a submission that earns no participation pay.

The function is pure: no I/O, no clock, no randomness, inputs untouched.

Example usage:
    result = allocate(
        AllocationRequest(
            budget_usd=Decimal("100"),
            winners_count=2,
            participation_usd=Decimal("5"),
            selection_usd=Decimal("10"),
            threshold=50,
            submissions=submissions,
        )
    )
"""

from decimal import Decimal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from intent_market.exceptions import BudgetExceededError
from intent_market.exceptions import InvalidInputError


# --8<-- [start:models]
class Submission(BaseModel):
    """A scored candidate answer, as seen by the allocator."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique submission identifier")
    score: float = Field(description="Quality score, higher is better")
    dedupe_hash: str = Field(description="Content fingerprint")
    agent_id: str = Field(description="Submitting agent")
    status: str = Field(default="PENDING", description="Caller label")


class AllocationRequest(BaseModel):
    """Everything the allocator needs for one intention."""

    model_config = ConfigDict(frozen=True)

    budget_usd: Decimal = Field(
        allow_inf_nan=True, description="Total funds available"
    )
    winners_count: int = Field(description="Max selection recipients")
    participation_usd: Decimal = Field(
        allow_inf_nan=True,
        description="Flat payout per participation recipient",
    )
    selection_usd: Decimal = Field(
        allow_inf_nan=True,
        description="Flat payout per selection recipient",
    )
    threshold: float = Field(description="Minimum score for any payout")
    submissions: tuple[Submission, ...] = Field(
        default=(),
        description="Candidate submissions",
    )
    selected_ids: tuple[str, ...] = Field(
        default=(),
        description="Caller-chosen winners; empty lets the allocator pick",
    )


class AllocationTotals(BaseModel):
    """Money computed for an allocation."""

    model_config = ConfigDict(frozen=True)

    participation_usd: Decimal
    selection_usd: Decimal
    total_usd: Decimal


class AllocationResult(BaseModel):
    """Recipients and totals for one allocation."""

    model_config = ConfigDict(frozen=True)

    participation_ids: tuple[str, ...] = Field(
        description="Ranked participation recipients"
    )
    selection_ids: tuple[str, ...] = Field(
        description="Selection recipients (may overlap participation)"
    )
    totals: AllocationTotals


# --8<-- [end:models]


# --8<-- [start:allocate]
def _validate(request: AllocationRequest) -> None:
    """Reject negative or non-finite parameters."""
    for name in ("budget_usd", "participation_usd", "selection_usd"):
        value: Decimal = getattr(request, name)
        if not value.is_finite() or value < 0:
            raise InvalidInputError(name, value)
    if request.winners_count < 0:
        raise InvalidInputError("winners_count", request.winners_count)


def rank_submissions(
    submissions: tuple[Submission, ...] | list[Submission],
    threshold: float,
) -> list[Submission]:
    """
    Qualify, deduplicate and rank submissions.

    Args:
        submissions: Candidates in input order.
        threshold: Minimum score to qualify.

    Returns:
        One submission per dedupe hash, best first. Equal scores keep
        their relative input order.
    """
    best: dict[str, Submission] = {}
    for sub in submissions:
        if not sub.score >= threshold:
            continue
        current = best.get(sub.dedupe_hash)
        if current is None or sub.score > current.score:
            best[sub.dedupe_hash] = sub

    return sorted(best.values(), key=lambda s: s.score, reverse=True)


def participation_capacity(
    budget_usd: Decimal,
    reserved_usd: Decimal,
    participation_usd: Decimal,
) -> int:
    """How many participation payouts fit after the reservation."""
    remaining = budget_usd - reserved_usd
    if participation_usd <= 0 or remaining < 0:
        return 0
    return int(remaining // participation_usd)


def allocate(request: AllocationRequest) -> AllocationResult:
    """
    Compute participation and selection recipients for a budget.

    Args:
        request: Budget, payout amounts, threshold and candidates.

    Returns:
        AllocationResult with ranked recipients and exact totals.

    Raises:
        InvalidInputError: A budget, amount or count is negative.
        BudgetExceededError: The computed total is above the budget.
    """
    _validate(request)

    ranked = rank_submissions(request.submissions, request.threshold)
    selected = request.selected_ids

    reserved_slots = min(len(selected), request.winners_count)
    reserved = reserved_slots * request.selection_usd
    max_participation = participation_capacity(
        request.budget_usd, reserved, request.participation_usd
    )
    participation_ids = tuple(s.id for s in ranked[:max_participation])

    if selected:
        selection_ids = tuple(selected[: request.winners_count])
    else:
        selection_ids = tuple(s.id for s in ranked[: request.winners_count])

    participation_total = len(participation_ids) * request.participation_usd
    selection_total = len(selection_ids) * request.selection_usd
    total = participation_total + selection_total

    if total > request.budget_usd:
        raise BudgetExceededError(total, request.budget_usd)

    return AllocationResult(
        participation_ids=participation_ids,
        selection_ids=selection_ids,
        totals=AllocationTotals(
            participation_usd=participation_total,
            selection_usd=selection_total,
            total_usd=total,
        ),
    )


# --8<-- [end:allocate]
