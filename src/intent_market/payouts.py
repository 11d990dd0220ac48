"""
Payout planning and execution.

Turns an AllocationResult into one fixed-amount transfer per recipient.
Wallet lookup and money movement are injected collaborators, so this
module never holds keys or talks to a chain itself.

Execution is at-most-once per ``(intention_id, submission_id, kind)``:
keys already recorded in the PayoutLedger are skipped, which makes a
re-run after a partial failure safe. A failed transfer is recorded on its
payout and does not stop the rest, nor does it undo the allocation.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from decimal import Decimal
from enum import Enum
from typing import Protocol
from typing import runtime_checkable
from uuid import UUID

import logfire
from pydantic import BaseModel
from pydantic import Field

from intent_market.allocation import AllocationResult
from intent_market.allocation import Submission
from intent_market.intentions import Intention


# --8<-- [start:models]
class PayoutKind(str, Enum):
    """Which reward a payout settles."""

    PARTICIPATION = "PARTICIPATION"
    SELECTION = "SELECTION"


class PayoutStatus(str, Enum):
    """Delivery state of a payout."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


PayoutKey = tuple[UUID, str, PayoutKind]


class Payout(BaseModel):
    """One transfer instruction for one recipient."""

    intention_id: UUID = Field(description="Intention being settled")
    submission_id: str = Field(description="Rewarded submission")
    agent_id: str = Field(description="Owner of the submission")
    kind: PayoutKind = Field(description="Participation or selection")
    amount_usd: Decimal = Field(ge=0, description="Transfer amount")
    wallet_from: str | None = Field(default=None)
    wallet_to: str | None = Field(default=None)
    status: PayoutStatus = Field(default=PayoutStatus.PENDING)
    tx_hash: str | None = Field(default=None)
    error_message: str | None = Field(default=None)

    @property
    def key(self) -> PayoutKey:
        """Idempotency key for this payout."""
        return (self.intention_id, self.submission_id, self.kind)


@runtime_checkable
class WalletDirectory(Protocol):
    """Resolves an agent to its receiving address."""

    async def address_for(self, agent_id: str) -> str | None:
        """Return the agent's address, or None if it has no wallet."""
        ...


@runtime_checkable
class TransferBackend(Protocol):
    """Moves funds between addresses."""

    async def transfer(
        self,
        wallet_from: str,
        wallet_to: str,
        amount_usd: Decimal,
    ) -> str:
        """Send funds and return the transaction hash."""
        ...


@dataclass
class PayoutLedger:
    """Keys of payouts that have already been sent."""

    sent: set[PayoutKey] = field(default_factory=set)

    def has_sent(self, key: PayoutKey) -> bool:
        return key in self.sent

    def record(self, key: PayoutKey) -> None:
        self.sent.add(key)


# --8<-- [end:models]


# --8<-- [start:plan]
def plan_payouts(
    intention: Intention,
    result: AllocationResult,
    submissions: Iterable[Submission],
) -> list[Payout]:
    """
    Build pending payouts for an allocation.

    Participation payouts come first, then selection payouts, each in
    result order. Selected ids with no matching submission (possible when
    a curator supplied them) cannot be routed to an agent and are left out.

    Args:
        intention: The intention being settled (supplies amounts).
        result: Output of allocate().
        submissions: Submissions of the intention.

    Returns:
        List of PENDING payouts.
    """
    by_id = {s.id: s for s in submissions}
    plan: list[Payout] = []

    batches = [
        (PayoutKind.PARTICIPATION, result.participation_ids,
         intention.participation_usd),
        (PayoutKind.SELECTION, result.selection_ids, intention.selection_usd),
    ]
    for kind, ids, amount in batches:
        for submission_id in ids:
            submission = by_id.get(submission_id)
            if submission is None:
                logfire.warn(
                    "No submission for payout recipient",
                    intention_id=str(intention.id),
                    submission_id=submission_id,
                    kind=kind.value,
                )
                continue
            plan.append(
                Payout(
                    intention_id=intention.id,
                    submission_id=submission_id,
                    agent_id=submission.agent_id,
                    kind=kind,
                    amount_usd=amount,
                )
            )
    return plan


# --8<-- [end:plan]


# --8<-- [start:execute]
async def execute_payouts(
    plan: list[Payout],
    *,
    wallets: WalletDirectory,
    transfers: TransferBackend,
    wallet_from: str,
    ledger: PayoutLedger | None = None,
) -> list[Payout]:
    """
    Execute planned payouts one at a time.

    Args:
        plan: Payouts from plan_payouts().
        wallets: Address lookup for recipients.
        transfers: Backend that moves funds.
        wallet_from: Requester's paying address.
        ledger: Keys already paid (default: empty ledger).

    Returns:
        Payouts with final status, in plan order.
    """
    ledger = ledger if ledger is not None else PayoutLedger()
    settled: list[Payout] = []

    with logfire.span("execute_payouts", count=len(plan)):
        for payout in plan:
            if ledger.has_sent(payout.key):
                logfire.info(
                    "Payout already sent, skipping",
                    submission_id=payout.submission_id,
                    kind=payout.kind.value,
                )
                settled.append(
                    payout.model_copy(update={"status": PayoutStatus.SKIPPED})
                )
                continue

            try:
                wallet_to = await wallets.address_for(payout.agent_id)
            except Exception as e:
                logfire.error(
                    "Wallet lookup failed",
                    agent_id=payout.agent_id,
                    submission_id=payout.submission_id,
                    error=str(e),
                )
                settled.append(
                    payout.model_copy(
                        update={
                            "status": PayoutStatus.FAILED,
                            "wallet_from": wallet_from,
                            "error_message": str(e),
                        }
                    )
                )
                continue

            if wallet_to is None:
                logfire.warn(
                    "Agent has no wallet, skipping payout",
                    agent_id=payout.agent_id,
                    submission_id=payout.submission_id,
                )
                settled.append(
                    payout.model_copy(
                        update={
                            "status": PayoutStatus.SKIPPED,
                            "wallet_from": wallet_from,
                            "error_message": "No wallet for agent",
                        }
                    )
                )
                continue

            try:
                tx_hash = await transfers.transfer(
                    wallet_from, wallet_to, payout.amount_usd
                )
            except Exception as e:
                logfire.error(
                    "Transfer failed",
                    submission_id=payout.submission_id,
                    kind=payout.kind.value,
                    error=str(e),
                )
                settled.append(
                    payout.model_copy(
                        update={
                            "status": PayoutStatus.FAILED,
                            "wallet_from": wallet_from,
                            "wallet_to": wallet_to,
                            "error_message": str(e),
                        }
                    )
                )
                continue

            ledger.record(payout.key)
            settled.append(
                payout.model_copy(
                    update={
                        "status": PayoutStatus.SENT,
                        "wallet_from": wallet_from,
                        "wallet_to": wallet_to,
                        "tx_hash": tx_hash,
                    }
                )
            )

    return settled


# --8<-- [end:execute]
