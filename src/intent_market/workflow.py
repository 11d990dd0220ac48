"""
Intention Workflow.

Runs one intention end to end: agents answer, the intention closes, the
budget is allocated, and payouts are issued.

Flow diagram:

```mermaid
--8<-- [start:diagram]
stateDiagram-v2
    [*] --> CollectSubmissions: Intention OPEN
    CollectSubmissions --> CloseIntention: Agents answered
    note right of CollectSubmissions
        Agents answer concurrently;
        answers are hashed, scored, capped
    end note

    CloseIntention --> Allocate: Intention CLOSED
    Allocate --> Payouts: Allocation fits budget
    Allocate --> [*]: Invalid input / over budget
    note right of Allocate
        Failure leaves the intention CLOSED
        so allocation can be retried
    end note

    Payouts --> [*]: Intention COMPLETE
    note right of Payouts
        One transfer per recipient,
        failures recorded per payout
    end note
--8<-- [end:diagram]
```

Example usage:
    outcome = await run_intention(
        intention=Intention(prompt="Find date-night restaurants",
                            budget_usd=Decimal("100"), winners_count=2,
                            participation_usd=Decimal("5"),
                            selection_usd=Decimal("10")),
        submitters=[(p, create_submitter_agent(p)) for p in DEFAULT_PERSONAS],
        wallets=my_wallets,
        transfers=my_transfers,
        wallet_from="0xrequester",
    )
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from uuid import UUID

import logfire
from pydantic import BaseModel
from pydantic import Field
from pydantic_ai import Agent
from pydantic_graph import BaseNode
from pydantic_graph import End
from pydantic_graph import Graph
from pydantic_graph import GraphRunContext

from intent_market._models import DEFAULT_THRESHOLD
from intent_market.agents import AgentPersona
from intent_market.agents import SubmitterContext
from intent_market.allocation import AllocationRequest
from intent_market.allocation import AllocationResult
from intent_market.allocation import Submission
from intent_market.allocation import allocate
from intent_market.exceptions import MarketError
from intent_market.intentions import Intention
from intent_market.intentions import IntentionStatus
from intent_market.intentions import ensure_allocatable
from intent_market.intentions import transition
from intent_market.payouts import Payout
from intent_market.payouts import PayoutLedger
from intent_market.payouts import TransferBackend
from intent_market.payouts import WalletDirectory
from intent_market.payouts import execute_payouts
from intent_market.payouts import plan_payouts
from intent_market.submissions import DEFAULT_MAX_PER_AGENT
from intent_market.submissions import DEFAULT_QUALIFY_ABOVE
from intent_market.submissions import Scorer
from intent_market.submissions import SubmissionPayload
from intent_market.submissions import SubmissionStatus
from intent_market.submissions import accept_submission


# --8<-- [start:models]
class MarketOutcome(BaseModel):
    """Final report for one intention run."""

    intention_id: UUID = Field(description="Intention that was run")
    status: IntentionStatus = Field(description="Status at the end of run")
    success: bool = Field(description="Whether payouts were issued")
    submissions: list[Submission] = Field(default_factory=list)
    allocation: AllocationResult | None = Field(default=None)
    payouts: list[Payout] = Field(default_factory=list)
    error_message: str | None = Field(default=None)


# Callback type aliases
OnSubmission = Callable[[Submission], Awaitable[None]]
OnAllocated = Callable[[AllocationResult], Awaitable[None]]
OnPayout = Callable[[Payout], Awaitable[None]]


@dataclass
class MarketCallbacks:
    """Optional callbacks for workflow events."""

    on_submission: OnSubmission | None = None
    on_allocated: OnAllocated | None = None
    on_payout: OnPayout | None = None


@dataclass
class MarketConfig:
    """Configuration for workflow behavior."""

    threshold: float = DEFAULT_THRESHOLD
    submission_timeout_seconds: float = 30.0
    max_submissions_per_agent: int = DEFAULT_MAX_PER_AGENT
    qualify_above: float = DEFAULT_QUALIFY_ABOVE


Submitter = tuple[AgentPersona, Agent[SubmitterContext, SubmissionPayload]]


@dataclass
class MarketState:
    """Graph state for an intention run."""

    intention: Intention
    wallets: WalletDirectory
    transfers: TransferBackend
    wallet_from: str
    submitters: list[Submitter] = field(default_factory=list)
    selected_ids: list[str] = field(default_factory=list)
    scorer: Scorer | None = None
    config: MarketConfig = field(default_factory=MarketConfig)
    callbacks: MarketCallbacks = field(default_factory=MarketCallbacks)
    ledger: PayoutLedger = field(default_factory=PayoutLedger)
    submissions: list[Submission] = field(default_factory=list)
    allocation: AllocationResult | None = None
    payouts: list[Payout] = field(default_factory=list)

    def outcome(
        self,
        success: bool,
        error_message: str | None = None,
    ) -> MarketOutcome:
        """Snapshot the state as a MarketOutcome."""
        return MarketOutcome(
            intention_id=self.intention.id,
            status=self.intention.status,
            success=success,
            submissions=list(self.submissions),
            allocation=self.allocation,
            payouts=list(self.payouts),
            error_message=error_message,
        )


# --8<-- [end:models]


# --8<-- [start:graph_nodes]
@dataclass
class CollectSubmissionsNode(BaseNode[MarketState, None, MarketOutcome]):
    """Ask every submitter agent for an answer in parallel."""

    async def run(
        self,
        ctx: GraphRunContext[MarketState],
    ) -> CloseIntentionNode:
        """Gather answers, then run each through intake."""
        state = ctx.state
        prompt = state.intention.prompt
        timeout = state.config.submission_timeout_seconds

        async def ask(
            persona: AgentPersona,
            agent: Agent[SubmitterContext, SubmissionPayload],
        ) -> tuple[str, SubmissionPayload] | None:
            try:
                result = await asyncio.wait_for(
                    agent.run(
                        prompt,
                        deps=SubmitterContext(prompt=prompt, persona=persona),
                    ),
                    timeout=timeout,
                )
            except TimeoutError:
                logfire.warn(
                    "Submitter timed out",
                    agent_id=persona.agent_id,
                    timeout=timeout,
                )
                return None
            except Exception as e:
                logfire.warn(
                    "Submitter failed",
                    agent_id=persona.agent_id,
                    error=str(e),
                )
                return None
            return persona.agent_id, result.output

        with logfire.span(
            "collect_submissions",
            intention_id=str(state.intention.id),
            submitters=len(state.submitters),
        ):
            answers = await asyncio.gather(
                *(ask(persona, agent) for persona, agent in state.submitters)
            )

            for answer in answers:
                if answer is None:
                    continue
                agent_id, payload = answer
                try:
                    submission = accept_submission(
                        state.intention,
                        agent_id,
                        payload,
                        state.submissions,
                        scorer=state.scorer,
                        max_per_agent=state.config.max_submissions_per_agent,
                        qualify_above=state.config.qualify_above,
                    )
                except MarketError as e:
                    logfire.warn(
                        "Submission rejected",
                        agent_id=agent_id,
                        error=e.message,
                    )
                    continue

                state.submissions.append(submission)
                if state.callbacks.on_submission:
                    await state.callbacks.on_submission(submission)

            logfire.info(
                "Collected {count} submissions",
                count=len(state.submissions),
            )

        return CloseIntentionNode()


@dataclass
class CloseIntentionNode(BaseNode[MarketState, None, MarketOutcome]):
    """Stop accepting submissions."""

    async def run(
        self,
        ctx: GraphRunContext[MarketState],
    ) -> AllocateNode:
        """Close an open intention; other statuses pass through."""
        if ctx.state.intention.status is IntentionStatus.OPEN:
            ctx.state.intention = transition(
                ctx.state.intention, IntentionStatus.CLOSED
            )
        return AllocateNode()


@dataclass
class AllocateNode(BaseNode[MarketState, None, MarketOutcome]):
    """Split the budget between participants and winners."""

    async def run(
        self,
        ctx: GraphRunContext[MarketState],
    ) -> PayoutNode | End[MarketOutcome]:
        """Run the allocator; failures end the run with the reason."""
        state = ctx.state
        intention = state.intention

        with logfire.span("allocate", intention_id=str(intention.id)):
            try:
                ensure_allocatable(intention)
                state.allocation = allocate(
                    AllocationRequest(
                        budget_usd=intention.budget_usd,
                        winners_count=intention.winners_count,
                        participation_usd=intention.participation_usd,
                        selection_usd=intention.selection_usd,
                        threshold=state.config.threshold,
                        submissions=tuple(state.submissions),
                        selected_ids=tuple(state.selected_ids),
                    )
                )
            except MarketError as e:
                logfire.error(
                    "Allocation failed",
                    intention_id=str(intention.id),
                    error=e.message,
                )
                return End(
                    state.outcome(success=False, error_message=e.message)
                )

            logfire.info(
                "Allocated {participants} participation and {winners} "
                "selection payouts totalling {total}",
                participants=len(state.allocation.participation_ids),
                winners=len(state.allocation.selection_ids),
                total=str(state.allocation.totals.total_usd),
            )

        if state.callbacks.on_allocated:
            await state.callbacks.on_allocated(state.allocation)

        return PayoutNode()


@dataclass
class PayoutNode(BaseNode[MarketState, None, MarketOutcome]):
    """Issue payouts and complete the intention."""

    async def run(
        self,
        ctx: GraphRunContext[MarketState],
    ) -> End[MarketOutcome]:
        """Pay every recipient, mark winners, then complete."""
        state = ctx.state
        allocation = state.allocation
        if allocation is None:
            return End(
                state.outcome(success=False, error_message="No allocation")
            )

        state.intention = transition(
            state.intention, IntentionStatus.PAYOUTS_PENDING
        )

        plan = plan_payouts(state.intention, allocation, state.submissions)
        state.payouts = await execute_payouts(
            plan,
            wallets=state.wallets,
            transfers=state.transfers,
            wallet_from=state.wallet_from,
            ledger=state.ledger,
        )

        if state.callbacks.on_payout:
            for payout in state.payouts:
                await state.callbacks.on_payout(payout)

        winners = set(allocation.selection_ids)
        state.submissions = [
            s.model_copy(update={"status": SubmissionStatus.SELECTED.value})
            if s.id in winners
            else s
            for s in state.submissions
        ]

        state.intention = transition(state.intention, IntentionStatus.COMPLETE)
        return End(state.outcome(success=True))


# Define the workflow graph
market_graph: Graph[MarketState, None, MarketOutcome] = Graph(
    nodes=[
        CollectSubmissionsNode,
        CloseIntentionNode,
        AllocateNode,
        PayoutNode,
    ],
)
# --8<-- [end:graph_nodes]


# --8<-- [start:entrypoints]
async def run_intention(
    intention: Intention,
    submitters: list[Submitter],
    *,
    wallets: WalletDirectory,
    transfers: TransferBackend,
    wallet_from: str,
    selected_ids: list[str] | None = None,
    scorer: Scorer | None = None,
    config: MarketConfig | None = None,
    callbacks: MarketCallbacks | None = None,
    ledger: PayoutLedger | None = None,
) -> MarketOutcome:
    """
    Run an intention from collection to payout.

    Args:
        intention: An OPEN intention.
        submitters: List of (persona, agent) tuples.
        wallets: Address lookup for agents.
        transfers: Backend that moves funds.
        wallet_from: Requester's paying address.
        selected_ids: Curator-chosen winners (default: allocator picks).
        scorer: Scoring strategy (default: ConfidenceScorer).
        config: Thresholds, caps and timeouts.
        callbacks: Optional event callbacks.
        ledger: Keys of payouts already sent, for retries.

    Returns:
        MarketOutcome describing what happened.
    """
    state = MarketState(
        intention=intention,
        wallets=wallets,
        transfers=transfers,
        wallet_from=wallet_from,
        submitters=submitters,
        selected_ids=selected_ids or [],
        scorer=scorer,
        config=config or MarketConfig(),
        callbacks=callbacks or MarketCallbacks(),
        ledger=ledger or PayoutLedger(),
    )
    with logfire.span("run_intention", intention_id=str(intention.id)):
        result = await market_graph.run(CollectSubmissionsNode(), state=state)
    return result.output


async def allocate_intention(
    intention: Intention,
    submissions: list[Submission],
    *,
    wallets: WalletDirectory,
    transfers: TransferBackend,
    wallet_from: str,
    selected_ids: list[str] | None = None,
    config: MarketConfig | None = None,
    callbacks: MarketCallbacks | None = None,
    ledger: PayoutLedger | None = None,
) -> MarketOutcome:
    """
    Allocate and pay out an intention whose submissions are already in.

    Use this to retry after a failed allocation (e.g. with corrected
    selected_ids); pass the same ledger to avoid paying anyone twice.
    Only CLOSED or OPEN intentions are accepted. A run whose transfers
    failed still ends COMPLETE, so retry those payouts by calling
    execute_payouts() on the FAILED entries with the same ledger.
    """
    state = MarketState(
        intention=intention,
        wallets=wallets,
        transfers=transfers,
        wallet_from=wallet_from,
        selected_ids=selected_ids or [],
        config=config or MarketConfig(),
        callbacks=callbacks or MarketCallbacks(),
        ledger=ledger or PayoutLedger(),
        submissions=list(submissions),
    )
    result = await market_graph.run(CloseIntentionNode(), state=state)
    return result.output


# --8<-- [end:entrypoints]


if __name__ == "__main__":
    from decimal import Decimal

    from intent_market.agents import DEFAULT_PERSONAS
    from intent_market.agents import create_submitter_agent

    class DemoWallets:
        async def address_for(self, agent_id: str) -> str | None:
            return f"0x{agent_id}"

    class DemoTransfers:
        def __init__(self) -> None:
            self.count = 0

        async def transfer(
            self, wallet_from: str, wallet_to: str, amount_usd: Decimal
        ) -> str:
            self.count += 1
            return f"0xdemo{self.count:04d}"

    async def main() -> None:
        print("=" * 60)
        print("DEMO: Intent Marketplace")
        print("=" * 60)

        intention = Intention(
            prompt="Find date-night restaurants in the Mission",
            budget_usd=Decimal("100"),
            winners_count=2,
            participation_usd=Decimal("5"),
            selection_usd=Decimal("10"),
        )
        submitters = [
            (p, create_submitter_agent(p)) for p in DEFAULT_PERSONAS
        ]

        outcome = await run_intention(
            intention,
            submitters,
            wallets=DemoWallets(),
            transfers=DemoTransfers(),
            wallet_from="0xrequester",
        )

        print(f"Status: {outcome.status.value}")
        for sub in sorted(outcome.submissions, key=lambda s: -s.score):
            print(f"  {sub.agent_id}: score={sub.score:.0f} {sub.status}")
        if outcome.allocation:
            totals = outcome.allocation.totals
            print(f"Participation: ${totals.participation_usd}")
            print(f"Selection: ${totals.selection_usd}")
            print(f"Total: ${totals.total_usd}")
        if outcome.error_message:
            print(f"FAILED: {outcome.error_message}")

    asyncio.run(main())
