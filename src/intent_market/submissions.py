"""
Submission intake.

Turns an agent's raw answer into a scored, fingerprinted Submission ready
for allocation. Fingerprints are SHA-256 over canonical JSON, so two
payloads with the same content hash identically regardless of key order.
"""

import hashlib
import json
from collections.abc import Iterable
from enum import Enum
from typing import Protocol
from typing import runtime_checkable
from uuid import uuid4

from pydantic import BaseModel
from pydantic import Field

from intent_market.allocation import Submission
from intent_market.exceptions import IntentionStateError
from intent_market.exceptions import SubmissionLimitError
from intent_market.intentions import Intention
from intent_market.intentions import IntentionStatus

DEFAULT_MAX_PER_AGENT = 2
DEFAULT_QUALIFY_ABOVE = 50.0


class SubmissionStatus(str, Enum):
    """Labels attached to submissions by intake and payout."""

    PENDING = "PENDING"
    QUALIFIED = "QUALIFIED"
    SELECTED = "SELECTED"


class SubmissionPayload(BaseModel):
    """An agent's answer to an intention."""

    suggestion: str = Field(description="Name of the recommended option")
    details: str = Field(description="Short compelling description")
    confidence: float = Field(
        ge=0.0,
        le=1.0,
        description="Agent's confidence in the suggestion (0-1)",
    )


@runtime_checkable
class Scorer(Protocol):
    """Assigns a quality score to a payload."""

    def score(self, payload: SubmissionPayload) -> float:
        """Return a score, higher is better."""
        ...


class ConfidenceScorer:
    """Score as the agent's confidence on a 0-100 scale."""

    def score(self, payload: SubmissionPayload) -> float:
        return payload.confidence * 100


def dedupe_hash(payload: SubmissionPayload | dict) -> str:
    """
    Content fingerprint for a payload.

    Args:
        payload: Submission payload or plain dict.

    Returns:
        Hex SHA-256 of the canonical JSON encoding.

    Example:
        >>> dedupe_hash({"b": 1, "a": 2}) == dedupe_hash({"a": 2, "b": 1})
        True
    """
    data = (
        payload.model_dump(mode="json")
        if isinstance(payload, BaseModel)
        else payload
    )
    normalized = json.dumps(data, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def accept_submission(
    intention: Intention,
    agent_id: str,
    payload: SubmissionPayload,
    existing: Iterable[Submission] = (),
    *,
    scorer: Scorer | None = None,
    max_per_agent: int = DEFAULT_MAX_PER_AGENT,
    qualify_above: float = DEFAULT_QUALIFY_ABOVE,
) -> Submission:
    """
    Validate and score one submission for an open intention.

    Args:
        intention: Intention being answered.
        agent_id: Submitting agent.
        payload: The agent's answer.
        existing: Submissions already accepted for this intention.
        scorer: Scoring strategy (default: ConfidenceScorer).
        max_per_agent: Cap on submissions per agent.
        qualify_above: Scores strictly above this are labelled QUALIFIED.

    Returns:
        New Submission with id, hash, score and status.

    Raises:
        IntentionStateError: Intention is not accepting submissions.
        SubmissionLimitError: Agent already hit max_per_agent.
    """
    if intention.status is not IntentionStatus.OPEN:
        raise IntentionStateError(
            f"Intention {intention.id} not open for submissions"
        )

    count = sum(1 for s in existing if s.agent_id == agent_id)
    if count >= max_per_agent:
        raise SubmissionLimitError(agent_id, max_per_agent)

    score = (scorer or ConfidenceScorer()).score(payload)
    status = (
        SubmissionStatus.QUALIFIED
        if score > qualify_above
        else SubmissionStatus.PENDING
    )
    return Submission(
        id=str(uuid4()),
        score=score,
        dedupe_hash=dedupe_hash(payload),
        agent_id=agent_id,
        status=status.value,
    )
