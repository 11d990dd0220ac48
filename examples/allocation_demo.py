from decimal import Decimal

from intent_market.allocation import AllocationRequest
from intent_market.allocation import Submission
from intent_market.allocation import allocate
from intent_market.exceptions import BudgetExceededError


def main() -> None:
    """
    Walk through allocation with and without curator-chosen winners.
    """
    print("=== Reward Allocation Demo ===")

    submissions = [
        Submission(id="nopa", score=92, dedupe_hash="h1", agent_id="foodie"),
        Submission(id="nopa-2", score=88, dedupe_hash="h1", agent_id="local"),
        Submission(id="zuni", score=81, dedupe_hash="h2", agent_id="classic"),
        Submission(id="tacos", score=64, dedupe_hash="h3", agent_id="budget"),
        Submission(id="chain", score=31, dedupe_hash="h4", agent_id="trend"),
    ]

    base = dict(
        budget_usd=Decimal("40"),
        winners_count=2,
        participation_usd=Decimal("5"),
        selection_usd=Decimal("10"),
        threshold=50,
        submissions=submissions,
    )

    # 1. Allocator picks the winners
    result = allocate(AllocationRequest(**base))
    print("\nAllocator picks:")
    print(f"  Participation: {', '.join(result.participation_ids)}")
    print(f"  Selection:     {', '.join(result.selection_ids)}")
    print(f"  Total:         ${result.totals.total_usd}")

    # 2. Curator forces a winner below the threshold
    result = allocate(AllocationRequest(**base, selected_ids=["chain"]))
    print("\nCurator picks 'chain':")
    print(f"  Participation: {', '.join(result.participation_ids)}")
    print(f"  Selection:     {', '.join(result.selection_ids)}")
    print(f"  Total:         ${result.totals.total_usd}")

    # 3. Budget too small for the forced winners
    try:
        allocate(
            AllocationRequest(
                **{**base, "budget_usd": Decimal("15")},
                selected_ids=["zuni", "tacos"],
            )
        )
    except BudgetExceededError as e:
        print(f"\nRejected: {e}")


if __name__ == "__main__":
    main()
