"""Shared pytest fixtures for all tests."""

from decimal import Decimal

import pytest

from intent_market.allocation import Submission
from intent_market.intentions import Intention


class FakeWallets:
    """Wallet directory backed by a dict."""

    def __init__(self, addresses: dict[str, str]) -> None:
        self.addresses = addresses

    async def address_for(self, agent_id: str) -> str | None:
        return self.addresses.get(agent_id)


class FakeTransfers:
    """Transfer backend that records calls and can fail on demand."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.fail_for = fail_for or set()
        self.calls: list[tuple[str, str, Decimal]] = []

    async def transfer(
        self,
        wallet_from: str,
        wallet_to: str,
        amount_usd: Decimal,
    ) -> str:
        if wallet_to in self.fail_for:
            raise ConnectionError(f"transfer to {wallet_to} refused")
        self.calls.append((wallet_from, wallet_to, amount_usd))
        return f"0xtx{len(self.calls):04d}"


@pytest.fixture
def make_submission():
    """Factory for allocator submissions; hash defaults to the id."""

    def _make(
        id: str,
        score: float,
        dedupe_hash: str | None = None,
        agent_id: str | None = None,
    ) -> Submission:
        return Submission(
            id=id,
            score=score,
            dedupe_hash=dedupe_hash or f"hash-{id}",
            agent_id=agent_id or f"agent-{id}",
            status="QUALIFIED",
        )

    return _make


@pytest.fixture
def intention():
    """Open intention with the demo reward terms."""
    return Intention(
        prompt="Find date-night restaurants",
        budget_usd=Decimal("100"),
        winners_count=2,
        participation_usd=Decimal("5"),
        selection_usd=Decimal("10"),
    )


@pytest.fixture
def wallets():
    return FakeWallets(
        {
            "agent-a": "0xa",
            "agent-b": "0xb",
            "agent-c": "0xc",
            "agent-d": "0xd",
        }
    )


@pytest.fixture
def transfers():
    return FakeTransfers()


@pytest.fixture
def failing_transfers():
    """Transfers to agent-b's wallet are refused."""
    return FakeTransfers(fail_for={"0xb"})
