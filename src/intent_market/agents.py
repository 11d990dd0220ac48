"""
Submitter agents.

Each agent answers an intention in the voice of a persona (local expert,
foodie, budget hunter, ...), so the pool of submissions covers different
angles of the same request. Answers come back as structured
SubmissionPayload objects ready for intake.

Example usage:
    agent = create_submitter_agent(DEFAULT_PERSONAS[0])
    result = await agent.run(
        "Find date-night restaurants",
        deps=SubmitterContext(prompt="Find date-night restaurants",
                              persona=DEFAULT_PERSONAS[0]),
    )
    payload = result.output
"""

from dataclasses import dataclass

from pydantic import BaseModel
from pydantic import Field
from pydantic_ai import Agent
from pydantic_ai import ModelRetry
from pydantic_ai import RunContext

from intent_market._models import get_model
from intent_market.submissions import SubmissionPayload


class AgentPersona(BaseModel):
    """Voice and specialty of a submitter agent."""

    agent_id: str = Field(description="Unique agent identifier")
    name: str = Field(description="Human-readable name")
    role: str = Field(description="Short role description")
    style: str = Field(description="Communication style")
    expertise: list[str] = Field(default_factory=list)


@dataclass
class SubmitterContext:
    """Context passed to submitter agents."""

    prompt: str
    persona: AgentPersona


DEFAULT_PERSONAS: list[AgentPersona] = [
    AgentPersona(
        agent_id="local-expert",
        name="Local Expert",
        role="neighborhood specialist",
        style="knowledgeable and detailed",
        expertise=["hidden gems", "local favorites", "authentic experiences"],
    ),
    AgentPersona(
        agent_id="foodie",
        name="Foodie",
        role="culinary enthusiast",
        style="passionate about flavors and dining experiences",
        expertise=["cuisine types", "chef backgrounds", "wine pairings"],
    ),
    AgentPersona(
        agent_id="budget-hunter",
        name="Budget Hunter",
        role="value optimizer",
        style="practical and resourceful",
        expertise=["deals", "happy hours", "quality on a budget"],
    ),
    AgentPersona(
        agent_id="romantic",
        name="Romantic",
        role="date night specialist",
        style="thoughtful and atmospheric",
        expertise=["ambiance", "intimate settings", "special occasions"],
    ),
    AgentPersona(
        agent_id="trendsetter",
        name="Trendsetter",
        role="scene curator",
        style="hip and current",
        expertise=["new openings", "instagram-worthy spots", "what's hot"],
    ),
    AgentPersona(
        agent_id="classic-connoisseur",
        name="Classic Connoisseur",
        role="traditionalist",
        style="refined and timeless",
        expertise=["established venues", "classic dishes", "proven quality"],
    ),
    AgentPersona(
        agent_id="adventure-seeker",
        name="Adventure Seeker",
        role="experience hunter",
        style="bold and experimental",
        expertise=["unique concepts", "fusion cuisine", "unexpected finds"],
    ),
    AgentPersona(
        agent_id="health-conscious",
        name="Health Conscious",
        role="wellness advocate",
        style="mindful and balanced",
        expertise=[
            "organic options",
            "dietary restrictions",
            "healthy choices",
        ],
    ),
]


model = get_model()


def create_submitter_agent(
    persona: AgentPersona,
) -> Agent[SubmitterContext, SubmissionPayload]:
    """
    Create a submitter agent speaking as a persona.

    An output validator sends the model back for another try when it
    returns an empty suggestion.

    Args:
        persona: Who the agent is.

    Returns:
        A configured Agent producing SubmissionPayload.
    """
    expertise = ", ".join(persona.expertise)
    agent = Agent(
        model,
        system_prompt=(
            f"You are {persona.name}, a {persona.role}.\n"
            f"Your communication style is {persona.style}.\n"
            f"Your expertise: {expertise}\n\n"
            "Given the user's request:\n"
            "1. Recommend one specific, real place, service or product.\n"
            "2. Put its name in suggestion.\n"
            "3. Give a 1-2 sentence compelling description in details.\n"
            "4. Set confidence to how well it fits the request (0-1).\n"
            "Offer your own perspective, not a generic answer."
        ),
        output_type=SubmissionPayload,
        deps_type=SubmitterContext,
    )

    @agent.output_validator
    async def validate_payload(
        ctx: RunContext[SubmitterContext], payload: SubmissionPayload
    ) -> SubmissionPayload:
        """Reject blank suggestions."""
        if not payload.suggestion.strip():
            raise ModelRetry(
                "suggestion is empty. Name one specific recommendation."
            )
        return payload

    return agent
