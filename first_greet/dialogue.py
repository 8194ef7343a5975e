"""
Call-screening dialogue definition.

The dialogue is a small state machine submitted wholesale to Retell as the
configuration of a Retell LLM. Transitions are natural-language predicates
that the remote model evaluates during a call; nothing here runs them.

    screening ──wanted──▶ calling_mike ──declined / no answer──▶ take_message
        │
        └──unwanted──▶ voicemail
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from first_greet import prompts
from first_greet.config import Settings

STARTING_STATE = "screening"


class Edge(BaseModel):
    destination_state_name: str
    description: str


class Tool(BaseModel):
    type: str                      # transfer_call | send_sms | end_call
    name: str
    description: str
    transfer_destination: dict[str, Any] | None = None
    transfer_option: dict[str, Any] | None = None
    sms_content: dict[str, Any] | None = None


class State(BaseModel):
    name: str
    state_prompt: str
    edges: list[Edge] = Field(default_factory=list)
    tools: list[Tool] = Field(default_factory=list)


class LlmDocument(BaseModel):
    # Retell field names start with "model_"
    model_config = ConfigDict(protected_namespaces=())

    model: str
    model_temperature: float
    start_speaker: str = "agent"
    begin_message: str
    general_prompt: str
    general_tools: list[Tool] = Field(default_factory=list)
    starting_state: str = STARTING_STATE
    states: list[State]

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


def transfer_tool(number: str, owner: str) -> Tool:
    return Tool(
        type="transfer_call",
        name="transfer_to_mike",
        description=(
            f"Initiate warm transfer to {owner}. You will speak to {owner} first "
            "while caller is on hold."
        ),
        transfer_destination={"type": "predefined", "number": number},
        transfer_option={"type": "warm_transfer", "show_transferee_as_caller": False},
    )


def sms_tool(name: str, description: str, prompt: str) -> Tool:
    return Tool(
        type="send_sms",
        name=name,
        description=description,
        sms_content={"type": "inferred", "prompt": prompt},
    )


def end_call_tool(name: str, description: str) -> Tool:
    return Tool(type="end_call", name=name, description=description)


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------


def build_states(settings: Settings) -> list[State]:
    owner = settings.owner_name

    screening = State(
        name="screening",
        state_prompt=prompts.render(prompts.SCREENING_PROMPT, owner),
        edges=[
            Edge(
                destination_state_name="calling_mike",
                description=(
                    f"Transition when the call seems legitimate and {owner} should be "
                    "consulted. Use this for business, personal, or important calls."
                ),
            ),
            Edge(
                destination_state_name="voicemail",
                description=(
                    "Transition when the call is likely spam, telemarketing, or unwanted. "
                    f"{owner} should NOT be bothered."
                ),
            ),
        ],
    )

    calling = State(
        name="calling_mike",
        state_prompt=prompts.render(prompts.CALLING_OWNER_PROMPT, owner),
        tools=[transfer_tool(settings.transfer_phone_number, owner)],
        edges=[
            Edge(
                destination_state_name="take_message",
                description=(
                    f"{owner} declined, said pass, pressed 2, did not answer, or went to "
                    "voicemail. Return to caller and take a message."
                ),
            ),
        ],
    )

    voicemail = State(
        name="voicemail",
        state_prompt=prompts.render(prompts.VOICEMAIL_PROMPT, owner),
        tools=[
            sms_tool(
                "text_mike_summary",
                f"Send SMS to {owner} with call summary after gathering info from caller.",
                prompts.render(prompts.SUMMARY_SMS_PROMPT, owner),
            ),
            end_call_tool(
                "end_call",
                f"End the call after gathering info and sending SMS to {owner}.",
            ),
        ],
    )

    take_message = State(
        name="take_message",
        state_prompt=prompts.render(prompts.TAKE_MESSAGE_PROMPT, owner),
        tools=[
            sms_tool(
                "text_mike_message",
                f"Send SMS to {owner} with the caller message after taking their info.",
                prompts.render(prompts.MESSAGE_SMS_PROMPT, owner),
            ),
            end_call_tool(
                "end_call",
                f"End the call after taking message and sending SMS to {owner}.",
            ),
        ],
    )

    return [screening, calling, voicemail, take_message]


def build_llm_document(settings: Settings) -> LlmDocument:
    """Assemble the full Retell LLM configuration for the screening dialogue."""
    owner = settings.owner_name
    return LlmDocument(
        model=settings.llm_model,
        model_temperature=settings.llm_temperature,
        start_speaker="agent",
        begin_message=prompts.render(prompts.BEGIN_MESSAGE, owner),
        general_prompt=prompts.render(prompts.GENERAL_PROMPT, owner),
        general_tools=[
            end_call_tool(
                "emergency_end",
                "Only use if the caller hangs up, becomes abusive, or an unexpected error occurs.",
            ),
        ],
        starting_state=STARTING_STATE,
        states=build_states(settings),
    )


def check_state_machine(document: LlmDocument) -> list[str]:
    """Return structural problems Retell would reject the document for.

    Checks that state names are unique, the starting state is declared and
    every edge points at a declared state. An empty list means the document
    is well formed.
    """
    problems = []
    names = [state.name for state in document.states]
    declared = set(names)

    for name in sorted(declared):
        if names.count(name) > 1:
            problems.append(f"state {name!r} is declared {names.count(name)} times")

    if document.starting_state not in declared:
        problems.append(f"starting state {document.starting_state!r} is not declared")

    for state in document.states:
        for edge in state.edges:
            if edge.destination_state_name not in declared:
                problems.append(
                    f"edge {state.name!r} -> {edge.destination_state_name!r} "
                    "points at an undeclared state"
                )
    return problems
