"""Unit tests for the graph traversal state machine."""

from __future__ import annotations

from typing import Any

import pytest

from agent_workflow_engine.engine.workflow.definition import END, parse_definition
from agent_workflow_engine.engine.workflow.errors import GraphStuck
from agent_workflow_engine.engine.workflow.traversal import GraphTraversal


@pytest.fixture
def traversal(morning_doc: dict[str, Any]) -> GraphTraversal:
    return GraphTraversal(parse_definition(morning_doc))


def test_initial_node_is_start_edge_target(traversal: GraphTraversal) -> None:
    assert traversal.initial() == "wake_user_1"


def test_condition_true_routes_to_true_target(traversal: GraphTraversal) -> None:
    nxt = traversal.next_node(current="wake_user_1", state={"user_response_detected": True})
    assert nxt == "get_todays_calendar_data"


def test_condition_false_routes_to_false_target(traversal: GraphTraversal) -> None:
    nxt = traversal.next_node(current="wake_user_1", state={"user_response_detected": False})
    assert nxt == "wake_user_aggressively"


def test_missing_key_uses_schema_default(morning_doc: dict[str, Any]) -> None:
    morning_doc["state_schema"]["user_response_detected"]["default"] = True
    traversal = GraphTraversal(parse_definition(morning_doc))

    assert traversal.next_node(current="wake_user_1", state={}) == "get_todays_calendar_data"


def test_false_branch_may_target_its_own_node(traversal: GraphTraversal) -> None:
    nxt = traversal.next_node(
        current="wake_user_aggressively", state={"user_response_detected": False}
    )
    assert nxt == "wake_user_aggressively"


def test_normal_edges_are_unconditional(traversal: GraphTraversal) -> None:
    assert traversal.next_node(current="get_todays_calendar_data", state={}) == "morning_message"
    assert traversal.next_node(current="morning_message", state={}) == END
    assert traversal.is_terminal(END)
    assert not traversal.is_terminal("morning_message")


def test_no_matching_edge_is_graph_stuck(traversal: GraphTraversal) -> None:
    with pytest.raises(GraphStuck) as excinfo:
        traversal.next_node(current="not_a_node", state={"wake_attempts": 2})

    assert excinfo.value.node_id == "not_a_node"
    assert excinfo.value.state == {"wake_attempts": 2}
