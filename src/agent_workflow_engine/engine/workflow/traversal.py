"""The graph state machine: (current node, session state) -> next node.

Traversal is pure. It never mutates state and never calls the agent; the
driver loop owns both. Ambiguous nodes are rejected when the definition is
loaded, so at runtime each node has at most one candidate edge.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .definition import END, START, ConditionEdge, NormalEdge, WorkflowDefinition
from .errors import GraphStuck


class GraphTraversal:
    def __init__(self, definition: WorkflowDefinition) -> None:
        self._definition = definition
        self._normal: dict[str, NormalEdge] = {}
        self._condition: dict[str, ConditionEdge] = {}
        for edge in definition.edges:
            if isinstance(edge, NormalEdge):
                self._normal.setdefault(edge.source, edge)
            else:
                self._condition.setdefault(edge.source, edge)

    @property
    def definition(self) -> WorkflowDefinition:
        return self._definition

    def initial(self) -> str:
        """Target of the unique START edge."""

        edge = self._normal.get(START)
        if edge is None:
            raise GraphStuck(f"No edge from {START}", node_id=START, state={})
        return edge.target

    @staticmethod
    def is_terminal(node_id: str) -> bool:
        return node_id == END

    def next_node(self, *, current: str, state: Mapping[str, Any]) -> str:
        normal = self._normal.get(current)
        if normal is not None:
            return normal.target

        condition = self._condition.get(current)
        if condition is not None:
            key = condition.state_key
            if key in state:
                value = state[key]
            else:
                value = self._definition.state_schema[key].default
            if not isinstance(value, bool):
                raise GraphStuck(
                    f"Condition edge '{condition.id}' needs a boolean at '{key}', "
                    f"got {value!r}",
                    node_id=current,
                    state=dict(state),
                )
            return condition.target.when_true if value else condition.target.when_false

        raise GraphStuck(
            f"No outgoing edge matches node '{current}'", node_id=current, state=dict(state)
        )
