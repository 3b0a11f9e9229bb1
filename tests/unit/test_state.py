"""Unit tests for typed session state."""

from __future__ import annotations

from typing import Any

import pytest

from agent_workflow_engine.engine.workflow.definition import parse_definition
from agent_workflow_engine.engine.workflow.errors import SchemaViolation
from agent_workflow_engine.engine.workflow.state import StateStore


@pytest.fixture
def store(morning_doc: dict[str, Any]) -> StateStore:
    return StateStore(parse_definition(morning_doc).state_schema)


def test_fresh_state_equals_schema_defaults(store: StateStore) -> None:
    state = store.initial()

    assert dict(state) == {
        "user_response_detected": False,
        "wake_attempts": 0,
        "calendar_summary": "",
        "preferences": {},
    }


def test_sessions_do_not_share_mutable_defaults(store: StateStore) -> None:
    first = store.initial()
    second = store.initial()

    first.set("preferences", {"volume": 3})
    first["preferences"]["volume"] = 9

    assert second["preferences"] == {}
    assert store.default("preferences") == {}


def test_apply_delta_drops_unknown_keys_and_wrong_types(store: StateStore) -> None:
    state = store.initial()

    applied, violations = state.apply_delta(
        {
            "user_response_detected": True,
            "mood": "grumpy",
            "wake_attempts": "three",
            "calendar_summary": "Standup at 9",
        }
    )

    assert applied == {"user_response_detected": True, "calendar_summary": "Standup at 9"}
    assert sorted(v.key for v in violations) == ["mood", "wake_attempts"]
    assert state["user_response_detected"] is True
    assert state["wake_attempts"] == 0
    assert "mood" not in state


def test_booleans_are_not_integers(store: StateStore) -> None:
    state = store.initial()

    _, violations = state.apply_delta({"wake_attempts": True, "user_response_detected": 1})

    assert len(violations) == 2
    assert dict(state)["wake_attempts"] == 0


def test_set_raises_schema_violation(store: StateStore) -> None:
    state = store.initial()

    with pytest.raises(SchemaViolation) as excinfo:
        state.set("undeclared", 1)
    assert excinfo.value.key == "undeclared"


def test_snapshot_is_a_copy(store: StateStore) -> None:
    state = store.initial()
    snap = state.snapshot()
    snap["wake_attempts"] = 5

    assert state["wake_attempts"] == 0
