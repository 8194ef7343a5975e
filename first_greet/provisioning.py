"""
Provisioning pipeline for the First Greet assistant.

Three sequential stages against the Retell API, each feeding the next:

  1. create the Retell LLM holding the screening state machine
  2. point the "First Greet" agent at that LLM (update, or create if absent)
  3. make sure the "First Greet" phone number routes to that agent

Routine states: start → llm_created → agent_resolved → phone_verified → done,
with any stage dropping to failed on the first error. Nothing is retried.
Every stage that mutates Retell registers a compensation; they run in
reverse order on failure only when rollback is enabled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from first_greet import prompts
from first_greet.config import Settings
from first_greet.dialogue import build_llm_document
from first_greet.retell_client import RetellAPIError, RetellClient

logger = logging.getLogger(__name__)

VERSION_DESCRIPTION = "Enhanced call screening with owner approval and voicemail mode"


class Stage(str, Enum):
    START = "start"
    LLM_CREATED = "llm_created"
    AGENT_RESOLVED = "agent_resolved"
    PHONE_VERIFIED = "phone_verified"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Stage results
# ---------------------------------------------------------------------------


@dataclass
class LlmResult:
    llm_id: str


@dataclass
class AgentResult:
    agent_id: str
    created: bool


@dataclass
class PhoneResult:
    phone_number: str
    pretty: str
    rebound: bool


@dataclass
class ProvisioningResult:
    llm: LlmResult
    agent: AgentResult
    phone: PhoneResult | None


class ProvisioningError(Exception):
    """Provisioning stopped. ``reached`` is the last stage that completed."""

    def __init__(self, reached: Stage, cause: Exception, completed: dict | None = None):
        self.reached = reached
        self.cause = cause
        self.completed = completed or {}
        super().__init__(self._describe())

    @property
    def mutated(self) -> bool:
        """True when Retell resources were created or changed before the failure."""
        return self.reached != Stage.START

    def _describe(self) -> str:
        if self.reached == Stage.START:
            return f"LLM creation failed, nothing was changed: {self.cause}"
        if self.reached == Stage.LLM_CREATED:
            return f"LLM created but agent step failed: {self.cause}"
        return f"failed after {self.reached.value}: {self.cause}"

    def to_dict(self) -> dict:
        if isinstance(self.cause, RetellAPIError):
            cause = self.cause.to_dict()
        else:
            cause = {"type": type(self.cause).__name__, "message": str(self.cause)}
        return {
            "reached": self.reached.value,
            "mutated": self.mutated,
            "completed": {
                name: vars(result) for name, result in self.completed.items()
            },
            "cause": cause,
        }


Compensation = Callable[[], Awaitable[None]]


def _find(records: list[dict], predicate: Callable[[dict], bool]) -> dict | None:
    for record in records:
        if predicate(record):
            return record
    return None


def _response_engine(llm_id: str) -> dict:
    return {"type": "retell-llm", "llm_id": llm_id}


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class Provisioner:
    def __init__(
        self,
        client: RetellClient,
        settings: Settings,
        progress: Callable[[str], None] | None = None,
    ):
        self.client = client
        self.settings = settings
        self.stage = Stage.START
        self._progress = progress or (lambda line: None)
        self._compensations: list[tuple[str, Compensation]] = []
        self._completed: dict = {}

    def _advance(self, stage: Stage) -> None:
        logger.info("Provisioning %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    async def run(self) -> ProvisioningResult:
        reached = self.stage
        try:
            llm = await self.create_llm()
            self._completed["llm"] = llm
            self._advance(Stage.LLM_CREATED)
            reached = self.stage

            agent = await self.resolve_agent(llm.llm_id)
            self._completed["agent"] = agent
            self._advance(Stage.AGENT_RESOLVED)
            reached = self.stage

            phone = await self.verify_phone(agent.agent_id)
            self._advance(Stage.PHONE_VERIFIED)
        except Exception as exc:
            self._advance(Stage.FAILED)
            if self.settings.rollback_on_failure:
                await self._compensate()
            raise ProvisioningError(reached, exc, dict(self._completed)) from exc

        self._advance(Stage.DONE)
        return ProvisioningResult(llm=llm, agent=agent, phone=phone)

    async def _compensate(self) -> None:
        while self._compensations:
            label, undo = self._compensations.pop()
            try:
                await undo()
                logger.info("Rolled back: %s", label)
                self._progress(f"  ↺ Rolled back: {label}")
            except Exception as exc:
                # Keep unwinding; the original failure is what gets reported
                logger.error("Rollback of %s failed: %s", label, exc)

    # ------------------------------------------------------------------
    # Stage 1: LLM
    # ------------------------------------------------------------------

    async def create_llm(self) -> LlmResult:
        self._progress("Step 1: Creating LLM with state-based screening...")
        payload = build_llm_document(self.settings).to_payload()
        llm = await self.client.create_llm(payload)
        llm_id = llm["llm_id"]

        async def delete_llm() -> None:
            await self.client.delete_llm(llm_id)

        self._compensations.append((f"delete LLM {llm_id}", delete_llm))
        self._progress(f"  ✓ LLM created: {llm_id}\n")
        return LlmResult(llm_id=llm_id)

    # ------------------------------------------------------------------
    # Stage 2: agent
    # ------------------------------------------------------------------

    def agent_payload(self, llm_id: str) -> dict:
        """Full voice/behaviour profile used when the agent has to be created."""
        return {
            "response_engine": _response_engine(llm_id),
            "voice_id": self.settings.voice_id,
            "agent_name": self.settings.agent_name,
            "version_description": VERSION_DESCRIPTION,
            "language": "en-US",
            "voice_speed": 1.0,
            "responsiveness": 0.9,
            "interruption_sensitivity": 0.7,
            "enable_backchannel": True,
            "backchannel_frequency": 0.6,
            "enable_voicemail_detection": True,
            "voicemail_message": prompts.render(
                prompts.VOICEMAIL_GREETING, self.settings.owner_name
            ),
            "end_call_after_silence_ms": 30000,
            "max_call_duration_ms": 3600000,
        }

    async def resolve_agent(self, llm_id: str) -> AgentResult:
        self._progress(f"Step 2: Updating {self.settings.agent_name} agent...")

        if self.settings.retell_agent_id:
            existing = await self.client.get_agent(self.settings.retell_agent_id)
        else:
            agents = await self.client.list_agents()
            existing = _find(agents, lambda a: a.get("agent_name") == self.settings.agent_name)

        if existing is None:
            self._progress("  Creating new agent...")
            agent = await self.client.create_agent(self.agent_payload(llm_id))
            agent_id = agent["agent_id"]

            async def delete_agent() -> None:
                await self.client.delete_agent(agent_id)

            self._compensations.append((f"delete agent {agent_id}", delete_agent))
            self._progress(f"  ✓ Agent created: {agent_id}\n")
            return AgentResult(agent_id=agent_id, created=True)

        agent_id = existing["agent_id"]
        previous_engine = existing.get("response_engine")
        self._progress("  Found existing agent, updating...")
        await self.client.update_agent(agent_id, {"response_engine": _response_engine(llm_id)})

        if previous_engine:
            async def restore_agent() -> None:
                await self.client.update_agent(agent_id, {"response_engine": previous_engine})

            self._compensations.append((f"restore agent {agent_id}", restore_agent))
        self._progress(f"  ✓ Agent updated: {agent_id}\n")
        return AgentResult(agent_id=agent_id, created=False)

    # ------------------------------------------------------------------
    # Stage 3: phone number
    # ------------------------------------------------------------------

    async def verify_phone(self, agent_id: str) -> PhoneResult | None:
        self._progress("Step 3: Verifying phone number binding...")
        match = self.settings.phone_nickname_match
        numbers = await self.client.list_phone_numbers()
        number = _find(numbers, lambda p: bool(p.get("nickname")) and match in p["nickname"])

        if number is None:
            logger.warning("No phone number with nickname containing %r", match)
            self._progress(f"  No phone number nicknamed {match!r} found\n")
            return None

        phone_number = number["phone_number"]
        pretty = number.get("phone_number_pretty") or phone_number

        if number.get("inbound_agent_id") == agent_id:
            self._progress(f"  ✓ Phone number already bound: {pretty}\n")
            return PhoneResult(phone_number=phone_number, pretty=pretty, rebound=False)

        await self.client.update_phone_number(
            phone_number,
            {"inbound_agent_id": agent_id, "outbound_agent_id": agent_id},
        )
        self._progress("  ✓ Phone number re-bound to updated agent\n")
        return PhoneResult(phone_number=phone_number, pretty=pretty, rebound=True)


async def provision(
    settings: Settings,
    client: RetellClient | None = None,
    progress: Callable[[str], None] | None = None,
) -> ProvisioningResult:
    """Run the full pipeline, opening (and closing) a client when none is given."""
    if client is None:
        client = RetellClient.from_settings(settings)
    async with client:
        return await Provisioner(client, settings, progress=progress).run()
