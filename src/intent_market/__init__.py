"""
Intent marketplace built with pydantic-ai.

Requesters broadcast an intention, agents answer it, and the budget is
split between everyone who took part and the chosen winners.
"""

from intent_market._models import get_model
from intent_market.agents import DEFAULT_PERSONAS
from intent_market.agents import AgentPersona
from intent_market.agents import create_submitter_agent
from intent_market.allocation import AllocationRequest
from intent_market.allocation import AllocationResult
from intent_market.allocation import AllocationTotals
from intent_market.allocation import Submission
from intent_market.allocation import allocate
from intent_market.exceptions import BudgetExceededError
from intent_market.exceptions import IntentionStateError
from intent_market.exceptions import InvalidInputError
from intent_market.exceptions import MarketError
from intent_market.exceptions import SubmissionLimitError
from intent_market.intentions import Intention
from intent_market.intentions import IntentionStatus
from intent_market.intentions import transition
from intent_market.payouts import Payout
from intent_market.payouts import PayoutKind
from intent_market.payouts import PayoutLedger
from intent_market.payouts import PayoutStatus
from intent_market.payouts import TransferBackend
from intent_market.payouts import WalletDirectory
from intent_market.payouts import execute_payouts
from intent_market.payouts import plan_payouts
from intent_market.submissions import ConfidenceScorer
from intent_market.submissions import Scorer
from intent_market.submissions import SubmissionPayload
from intent_market.submissions import accept_submission
from intent_market.submissions import dedupe_hash
from intent_market.workflow import MarketCallbacks
from intent_market.workflow import MarketConfig
from intent_market.workflow import MarketOutcome
from intent_market.workflow import allocate_intention
from intent_market.workflow import run_intention

__all__ = [
    "get_model",
    # Allocation
    "allocate",
    "AllocationRequest",
    "AllocationResult",
    "AllocationTotals",
    "Submission",
    # Errors
    "MarketError",
    "InvalidInputError",
    "BudgetExceededError",
    "IntentionStateError",
    "SubmissionLimitError",
    # Intentions
    "Intention",
    "IntentionStatus",
    "transition",
    # Submissions
    "SubmissionPayload",
    "Scorer",
    "ConfidenceScorer",
    "accept_submission",
    "dedupe_hash",
    # Payouts
    "Payout",
    "PayoutKind",
    "PayoutStatus",
    "PayoutLedger",
    "WalletDirectory",
    "TransferBackend",
    "plan_payouts",
    "execute_payouts",
    # Agents
    "AgentPersona",
    "DEFAULT_PERSONAS",
    "create_submitter_agent",
    # Workflow
    "run_intention",
    "allocate_intention",
    "MarketConfig",
    "MarketCallbacks",
    "MarketOutcome",
]
__version__ = "0.1.0"
