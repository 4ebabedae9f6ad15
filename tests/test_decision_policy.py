"""Tests for the decision policy strategies."""

import pytest

from contestacion_engine.core.decision_policy import (
    AgentPolicy,
    RuleBasedPolicy,
    StagedPolicy,
    get_decision_policy,
)
from tests.fakes.fake_backend import FakeBackend


@pytest.mark.asyncio
async def test_rule_policy_never_calls_backend(parsed_state):
    policy = RuleBasedPolicy()
    assert (await policy.decide(None, "Texto")).type == "parse"
    assert (await policy.decide(parsed_state)).type == "complete"


@pytest.mark.asyncio
async def test_agent_policy_uses_backend(parsed_state):
    backend = FakeBackend({"action": "analyze", "reason": "", "bloque_ids": [], "preguntas_prioritarias": []})
    action = await AgentPolicy(backend).decide(parsed_state)
    assert action.type == "analyze"
    assert len(backend.calls) == 1


@pytest.mark.asyncio
async def test_staged_policy_uses_rules_before_parse():
    backend = FakeBackend()
    action = await StagedPolicy(backend).decide(None, "Texto de demanda")
    assert action.type == "parse"
    assert backend.calls == []


@pytest.mark.asyncio
async def test_staged_policy_uses_agent_after_parse(parsed_state):
    backend = FakeBackend({"action": "analyze", "reason": "", "bloque_ids": [], "preguntas_prioritarias": []})
    action = await StagedPolicy(backend).decide(parsed_state, None, "seguí")
    assert action.type == "analyze"
    assert "seguí" in backend.calls[0]["prompt"]


def test_get_decision_policy_by_name():
    assert get_decision_policy("rules").name == "rules"
    assert get_decision_policy(" Agent ").name == "agent"
    assert get_decision_policy("staged").name == "staged"


def test_get_decision_policy_defaults_to_settings():
    assert get_decision_policy().name == "staged"


def test_get_decision_policy_unknown():
    with pytest.raises(ValueError):
        get_decision_policy("oracle")
