"""Interchangeable decision policies.

All policies expose ``decide(state, demanda_raw, user_input) -> action``:

- ``RuleBasedPolicy``: the deterministic parse-phase rules.
- ``AgentPolicy``: the backend-driven decision (with local fallback).
- ``StagedPolicy``: rules until the demand is parsed, agent afterwards.
"""

from typing import Protocol

from contestacion_engine.chains.decide_next_action import get_agent_decision
from contestacion_engine.core.config import get_settings
from contestacion_engine.core.contestacion_actions import OrchestratorAction
from contestacion_engine.core.contestacion_rules import get_next_action
from contestacion_engine.core.contestacion_state import coerce_state
from contestacion_engine.core.llm import GenerativeBackend
from contestacion_engine.core.schemas_contestacion import ContestacionSessionState


class DecisionPolicy(Protocol):
    name: str

    async def decide(
        self,
        state: ContestacionSessionState | None,
        demanda_raw: str | None = None,
        user_input: str | None = None,
    ) -> OrchestratorAction:
        ...


class RuleBasedPolicy:
    name = "rules"

    async def decide(
        self,
        state: ContestacionSessionState | None,
        demanda_raw: str | None = None,
        user_input: str | None = None,
    ) -> OrchestratorAction:
        return get_next_action(state, demanda_raw)


class AgentPolicy:
    name = "agent"

    def __init__(self, backend: GenerativeBackend | None = None):
        self.backend = backend

    async def decide(
        self,
        state: ContestacionSessionState | None,
        demanda_raw: str | None = None,
        user_input: str | None = None,
    ) -> OrchestratorAction:
        return await get_agent_decision(coerce_state(state), user_input, backend=self.backend)


class StagedPolicy:
    name = "staged"

    def __init__(self, backend: GenerativeBackend | None = None):
        self.rules = RuleBasedPolicy()
        self.agent = AgentPolicy(backend)

    async def decide(
        self,
        state: ContestacionSessionState | None,
        demanda_raw: str | None = None,
        user_input: str | None = None,
    ) -> OrchestratorAction:
        if state is not None and state.bloques:
            return await self.agent.decide(state, demanda_raw, user_input)
        return await self.rules.decide(state, demanda_raw, user_input)


def get_decision_policy(
    name: str | None = None,
    backend: GenerativeBackend | None = None,
) -> DecisionPolicy:
    """
    Build the configured decision policy.

    Raises:
        ValueError: If the policy name is unknown
    """
    name = (name or get_settings().DECISION_POLICY).strip().lower()
    if name == "rules":
        return RuleBasedPolicy()
    if name == "agent":
        return AgentPolicy(backend)
    if name == "staged":
        return StagedPolicy(backend)
    raise ValueError(f"Unknown decision policy: {name}")
