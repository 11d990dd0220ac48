"""Tests for the intention workflow."""

from decimal import Decimal
from unittest.mock import AsyncMock
from unittest.mock import MagicMock

import pytest

from intent_market.agents import AgentPersona
from intent_market.allocation import AllocationResult
from intent_market.intentions import IntentionStatus
from intent_market.payouts import PayoutKind
from intent_market.payouts import PayoutLedger
from intent_market.payouts import PayoutStatus
from intent_market.submissions import SubmissionPayload
from intent_market.submissions import SubmissionStatus
from intent_market.workflow import AllocateNode
from intent_market.workflow import CloseIntentionNode
from intent_market.workflow import CollectSubmissionsNode
from intent_market.workflow import MarketCallbacks
from intent_market.workflow import MarketConfig
from intent_market.workflow import MarketOutcome
from intent_market.workflow import MarketState
from intent_market.workflow import PayoutNode
from intent_market.workflow import allocate_intention
from intent_market.workflow import run_intention


def persona(agent_id: str) -> AgentPersona:
    return AgentPersona(
        agent_id=agent_id,
        name=agent_id.title(),
        role="tester",
        style="terse",
    )


def mock_agent(suggestion: str, confidence: float) -> MagicMock:
    agent = MagicMock()
    result = MagicMock()
    result.output = SubmissionPayload(
        suggestion=suggestion,
        details=f"About {suggestion}",
        confidence=confidence,
    )
    agent.run = AsyncMock(return_value=result)
    return agent


@pytest.fixture
def submitters():
    return [
        (persona("agent-a"), mock_agent("Nopa", 0.9)),
        (persona("agent-b"), mock_agent("Lazy Bear", 0.8)),
        (persona("agent-c"), mock_agent("Chain Diner", 0.3)),
    ]


@pytest.fixture
def config():
    return MarketConfig(threshold=50.0)


@pytest.fixture
def state(intention, wallets, transfers, config):
    return MarketState(
        intention=intention,
        wallets=wallets,
        transfers=transfers,
        wallet_from="0xrequester",
        config=config,
    )


class TestModels:
    """Test workflow dataclasses and models."""

    def test_config_defaults(self):
        config = MarketConfig()
        assert config.submission_timeout_seconds == 30.0
        assert config.max_submissions_per_agent == 2
        assert config.qualify_above == 50.0

    def test_state_defaults(self, state):
        assert state.submissions == []
        assert state.allocation is None
        assert state.payouts == []
        assert state.selected_ids == []

    def test_outcome_snapshot(self, state):
        outcome = state.outcome(success=False, error_message="boom")
        assert isinstance(outcome, MarketOutcome)
        assert outcome.intention_id == state.intention.id
        assert outcome.status == IntentionStatus.OPEN
        assert outcome.error_message == "boom"


class TestCollectSubmissionsNode:
    """Test CollectSubmissionsNode behavior."""

    @pytest.mark.asyncio
    async def test_collects_from_all_agents(self, state, submitters):
        state.submitters = submitters
        ctx = MagicMock()
        ctx.state = state

        result = await CollectSubmissionsNode().run(ctx)

        assert isinstance(result, CloseIntentionNode)
        assert [s.agent_id for s in state.submissions] == [
            "agent-a",
            "agent-b",
            "agent-c",
        ]
        assert state.submissions[2].status == SubmissionStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_failing_agent_skipped(self, state, submitters):
        broken = MagicMock()
        broken.run = AsyncMock(side_effect=RuntimeError("model offline"))
        state.submitters = [*submitters[:1], (persona("agent-x"), broken)]
        ctx = MagicMock()
        ctx.state = state

        await CollectSubmissionsNode().run(ctx)

        assert [s.agent_id for s in state.submissions] == ["agent-a"]

    @pytest.mark.asyncio
    async def test_timeout_skipped(self, state, submitters):
        slow = MagicMock()
        slow.run = AsyncMock(side_effect=TimeoutError())
        state.submitters = [(persona("agent-slow"), slow), submitters[1]]
        ctx = MagicMock()
        ctx.state = state

        await CollectSubmissionsNode().run(ctx)

        assert [s.agent_id for s in state.submissions] == ["agent-b"]

    @pytest.mark.asyncio
    async def test_cap_applied(self, state):
        state.config = MarketConfig(
            threshold=50.0, max_submissions_per_agent=1
        )
        state.submitters = [
            (persona("agent-a"), mock_agent("Nopa", 0.9)),
            (persona("agent-a"), mock_agent("Zuni", 0.7)),
        ]
        ctx = MagicMock()
        ctx.state = state

        await CollectSubmissionsNode().run(ctx)

        assert len(state.submissions) == 1

    @pytest.mark.asyncio
    async def test_on_submission_callback(self, state, submitters):
        seen = []

        async def track(submission):
            seen.append(submission.agent_id)

        state.submitters = submitters
        state.callbacks = MarketCallbacks(on_submission=track)
        ctx = MagicMock()
        ctx.state = state

        await CollectSubmissionsNode().run(ctx)

        assert seen == ["agent-a", "agent-b", "agent-c"]


class TestCloseIntentionNode:
    """Test CloseIntentionNode behavior."""

    @pytest.mark.asyncio
    async def test_closes_open_intention(self, state):
        ctx = MagicMock()
        ctx.state = state

        result = await CloseIntentionNode().run(ctx)

        assert isinstance(result, AllocateNode)
        assert state.intention.status == IntentionStatus.CLOSED

    @pytest.mark.asyncio
    async def test_closed_passes_through(self, state):
        state.intention = state.intention.model_copy(
            update={"status": IntentionStatus.CLOSED}
        )
        ctx = MagicMock()
        ctx.state = state

        result = await CloseIntentionNode().run(ctx)

        assert isinstance(result, AllocateNode)
        assert state.intention.status == IntentionStatus.CLOSED


class TestAllocateNode:
    """Test AllocateNode behavior."""

    @pytest.mark.asyncio
    async def test_allocates(self, state, make_submission):
        state.submissions = [
            make_submission("s1", 90),
            make_submission("s2", 70),
        ]
        ctx = MagicMock()
        ctx.state = state

        result = await AllocateNode().run(ctx)

        assert isinstance(result, PayoutNode)
        assert state.allocation.participation_ids == ("s1", "s2")
        assert state.allocation.selection_ids == ("s1", "s2")

    @pytest.mark.asyncio
    async def test_over_budget_ends_run(self, state, make_submission):
        state.intention = state.intention.model_copy(
            update={
                "budget_usd": Decimal("5"),
                "winners_count": 1,
                "status": IntentionStatus.CLOSED,
            }
        )
        state.submissions = [make_submission("s1", 90)]
        state.selected_ids = ["s1"]
        ctx = MagicMock()
        ctx.state = state

        result = await AllocateNode().run(ctx)

        assert hasattr(result, "data")
        assert not result.data.success
        assert "exceeds budget" in result.data.error_message
        assert result.data.status == IntentionStatus.CLOSED

    @pytest.mark.asyncio
    async def test_completed_intention_rejected(self, state):
        state.intention = state.intention.model_copy(
            update={"status": IntentionStatus.COMPLETE}
        )
        ctx = MagicMock()
        ctx.state = state

        result = await AllocateNode().run(ctx)

        assert not result.data.success
        assert "not ready" in result.data.error_message

    @pytest.mark.asyncio
    async def test_on_allocated_callback(self, state, make_submission):
        on_allocated = AsyncMock()
        state.callbacks = MarketCallbacks(on_allocated=on_allocated)
        state.submissions = [make_submission("s1", 90)]
        ctx = MagicMock()
        ctx.state = state

        await AllocateNode().run(ctx)

        on_allocated.assert_awaited_once()
        assert isinstance(on_allocated.await_args.args[0], AllocationResult)


class TestRunIntention:
    """End-to-end workflow runs."""

    @pytest.mark.asyncio
    async def test_happy_path(
        self, intention, submitters, wallets, transfers, config
    ):
        outcome = await run_intention(
            intention,
            submitters,
            wallets=wallets,
            transfers=transfers,
            wallet_from="0xrequester",
            config=config,
        )

        assert outcome.success
        assert outcome.status == IntentionStatus.COMPLETE
        assert len(outcome.submissions) == 3

        by_agent = {s.agent_id: s for s in outcome.submissions}
        ids_a = by_agent["agent-a"].id
        ids_b = by_agent["agent-b"].id
        assert outcome.allocation.participation_ids == (ids_a, ids_b)
        assert outcome.allocation.selection_ids == (ids_a, ids_b)
        assert outcome.allocation.totals.total_usd == Decimal("30")

        assert len(outcome.payouts) == 4
        assert all(p.status == PayoutStatus.SENT for p in outcome.payouts)
        assert sum(call[2] for call in transfers.calls) == Decimal("30")

        assert by_agent["agent-a"].status == SubmissionStatus.SELECTED.value
        assert by_agent["agent-c"].status == SubmissionStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_duplicate_answers_paid_once(
        self, intention, wallets, transfers, config
    ):
        submitters = [
            (persona("agent-a"), mock_agent("Nopa", 0.9)),
            (persona("agent-b"), mock_agent("Nopa", 0.9)),
        ]
        outcome = await run_intention(
            intention,
            submitters,
            wallets=wallets,
            transfers=transfers,
            wallet_from="0xr",
            config=config,
        )

        assert len(outcome.submissions) == 2
        assert len(outcome.allocation.participation_ids) == 1
        assert (
            outcome.allocation.participation_ids[0]
            == outcome.submissions[0].id
        )

    @pytest.mark.asyncio
    async def test_no_submitters(self, intention, wallets, transfers, config):
        outcome = await run_intention(
            intention,
            [],
            wallets=wallets,
            transfers=transfers,
            wallet_from="0xr",
            config=config,
        )

        assert outcome.success
        assert outcome.status == IntentionStatus.COMPLETE
        assert outcome.payouts == []
        assert transfers.calls == []

    @pytest.mark.asyncio
    async def test_transfer_failure_still_completes(
        self, intention, submitters, wallets, failing_transfers, config
    ):
        outcome = await run_intention(
            intention,
            submitters,
            wallets=wallets,
            transfers=failing_transfers,
            wallet_from="0xr",
            config=config,
        )

        assert outcome.success
        assert outcome.status == IntentionStatus.COMPLETE
        failed = [
            p for p in outcome.payouts if p.status == PayoutStatus.FAILED
        ]
        assert {p.agent_id for p in failed} == {"agent-b"}
        assert {p.kind for p in failed} == {
            PayoutKind.PARTICIPATION,
            PayoutKind.SELECTION,
        }

    @pytest.mark.asyncio
    async def test_on_payout_callback(
        self, intention, submitters, wallets, transfers, config
    ):
        on_payout = AsyncMock()
        await run_intention(
            intention,
            submitters,
            wallets=wallets,
            transfers=transfers,
            wallet_from="0xr",
            config=config,
            callbacks=MarketCallbacks(on_payout=on_payout),
        )

        assert on_payout.await_count == 4


class TestAllocateIntention:
    """Allocation runs on already-collected submissions."""

    @pytest.mark.asyncio
    async def test_budget_failure_then_retry(
        self, intention, make_submission, wallets, transfers, config
    ):
        subs = [
            make_submission("s1", 90, agent_id="agent-a"),
            make_submission("s2", 80, agent_id="agent-b"),
        ]
        tight = intention.model_copy(
            update={"budget_usd": Decimal("5"), "winners_count": 1}
        )

        failed = await allocate_intention(
            tight,
            subs,
            wallets=wallets,
            transfers=transfers,
            wallet_from="0xr",
            selected_ids=["s2"],
            config=config,
        )

        assert not failed.success
        assert failed.status == IntentionStatus.CLOSED
        assert failed.allocation is None
        assert transfers.calls == []

        retry_intention = tight.model_copy(
            update={
                "budget_usd": Decimal("20"),
                "status": failed.status,
            }
        )
        outcome = await allocate_intention(
            retry_intention,
            subs,
            wallets=wallets,
            transfers=transfers,
            wallet_from="0xr",
            selected_ids=["s2"],
            config=config,
        )

        assert outcome.success
        assert outcome.status == IntentionStatus.COMPLETE
        assert outcome.allocation.selection_ids == ("s2",)
        assert outcome.allocation.participation_ids == ("s1", "s2")
        assert outcome.allocation.totals.total_usd == Decimal("20")

    @pytest.mark.asyncio
    async def test_shared_ledger_prevents_double_pay(
        self, intention, make_submission, wallets, transfers, config
    ):
        subs = [make_submission("s1", 90, agent_id="agent-a")]
        ledger = PayoutLedger()

        await allocate_intention(
            intention,
            subs,
            wallets=wallets,
            transfers=transfers,
            wallet_from="0xr",
            config=config,
            ledger=ledger,
        )
        second = await allocate_intention(
            intention,
            subs,
            wallets=wallets,
            transfers=transfers,
            wallet_from="0xr",
            config=config,
            ledger=ledger,
        )

        assert len(transfers.calls) == 2
        assert all(p.status == PayoutStatus.SKIPPED for p in second.payouts)
