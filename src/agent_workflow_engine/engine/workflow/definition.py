"""Workflow documents: typed models plus graph-level validation.

Field-level shape is enforced by pydantic. Graph-level invariants (reference
resolution, edge ambiguity, condition typing) are checked by
:func:`check_graph`, which raises :class:`DefinitionError` with a message naming
the offending node or edge.
"""

from __future__ import annotations

import json
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import DefinitionError

START = "START"
END = "END"
SENTINELS = frozenset({START, END})

StateType = Literal["boolean", "integer", "string", "object"]

_ZERO_VALUES: dict[str, Any] = {"boolean": False, "integer": 0, "string": "", "object": {}}


def matches_type(type_name: str, value: Any) -> bool:
    """Return True when `value` is acceptable for a state variable of `type_name`."""

    if type_name == "boolean":
        return isinstance(value, bool)
    if type_name == "integer":
        # bool is an int subclass; keep the two apart.
        return isinstance(value, int) and not isinstance(value, bool)
    if type_name == "string":
        return isinstance(value, str)
    if type_name == "object":
        return isinstance(value, dict)
    return False


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class StateVariable(_Record):
    type: StateType
    default: Any = None

    @model_validator(mode="before")
    @classmethod
    def _fill_default(cls, data: Any) -> Any:
        if isinstance(data, dict) and "default" not in data:
            zero = _ZERO_VALUES.get(str(data.get("type")))
            return {**data, "default": dict(zero) if isinstance(zero, dict) else zero}
        return data

    @model_validator(mode="after")
    def _check_default(self) -> StateVariable:
        if not matches_type(self.type, self.default):
            raise ValueError(f"default {self.default!r} is not a valid {self.type}")
        return self


class Node(_Record):
    id: str = Field(min_length=1)
    intent: str
    preferred_actions: tuple[str, ...] = ()


class NormalEdge(_Record):
    id: str = Field(min_length=1)
    type: Literal["normal"]
    source: str
    target: str


class ConditionTarget(_Record):
    when_true: str = Field(alias="true")
    when_false: str = Field(alias="false")


class ConditionEdge(_Record):
    id: str = Field(min_length=1)
    type: Literal["condition"]
    source: str
    state_key: str
    target: ConditionTarget


Edge = Annotated[NormalEdge | ConditionEdge, Field(discriminator="type")]


class WorkflowDefinition(_Record):
    id: str = Field(min_length=1)
    name: str
    description: str = ""
    author: str = ""
    created_at: datetime = Field(alias="createdAt")
    state_schema: dict[str, StateVariable] = Field(default_factory=dict)
    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]

    def node(self, node_id: str) -> Node:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def defaults(self) -> dict[str, Any]:
        return {key: var.default for key, var in self.state_schema.items()}

    def to_document(self) -> dict[str, Any]:
        """Serialize back to the on-disk document shape."""

        return self.model_dump(mode="json", by_alias=True)


def _edge_targets(edge: NormalEdge | ConditionEdge) -> list[str]:
    if isinstance(edge, ConditionEdge):
        return [edge.target.when_true, edge.target.when_false]
    return [edge.target]


def check_graph(definition: WorkflowDefinition) -> None:
    """Validate graph-level invariants of a parsed definition."""

    wf = definition.id

    node_counts = Counter(node.id for node in definition.nodes)
    dupes = sorted(n for n, c in node_counts.items() if c > 1)
    if dupes:
        raise DefinitionError(f"Duplicate node ids: {dupes}", workflow=wf)
    reserved = sorted(SENTINELS & node_counts.keys())
    if reserved:
        raise DefinitionError(f"Node ids may not use reserved names: {reserved}", workflow=wf)

    edge_counts = Counter(edge.id for edge in definition.edges)
    dupes = sorted(e for e, c in edge_counts.items() if c > 1)
    if dupes:
        raise DefinitionError(f"Duplicate edge ids: {dupes}", workflow=wf)

    node_ids = set(node_counts)
    outgoing: dict[str, list[NormalEdge | ConditionEdge]] = {}
    for edge in definition.edges:
        if edge.source != START and edge.source not in node_ids:
            raise DefinitionError(
                f"Edge '{edge.id}' has unknown source '{edge.source}'", workflow=wf
            )
        for target in _edge_targets(edge):
            if target != END and target not in node_ids:
                raise DefinitionError(
                    f"Edge '{edge.id}' has unknown target '{target}'", workflow=wf
                )
        if isinstance(edge, ConditionEdge):
            var = definition.state_schema.get(edge.state_key)
            if var is None:
                raise DefinitionError(
                    f"Condition edge '{edge.id}' references undeclared state key "
                    f"'{edge.state_key}'",
                    workflow=wf,
                )
            if var.type != "boolean":
                raise DefinitionError(
                    f"Condition edge '{edge.id}' state key '{edge.state_key}' must be "
                    f"boolean, not {var.type}",
                    workflow=wf,
                )
        outgoing.setdefault(edge.source, []).append(edge)

    start_edges = outgoing.get(START, [])
    if len(start_edges) != 1:
        raise DefinitionError(
            f"Expected exactly one edge from {START}, found {len(start_edges)}", workflow=wf
        )
    if not isinstance(start_edges[0], NormalEdge):
        raise DefinitionError(f"The edge from {START} must be a normal edge", workflow=wf)

    for node in definition.nodes:
        edges = outgoing.get(node.id, [])
        if not edges:
            raise DefinitionError(f"Node '{node.id}' has no outgoing edge", workflow=wf)
        if len(edges) > 1:
            kinds = sorted({edge.type for edge in edges})
            label = f"multiple {kinds[0]} edges" if len(kinds) == 1 else "mixed edge kinds"
            raise DefinitionError(
                f"Node '{node.id}' is ambiguous: {label} "
                f"({', '.join(edge.id for edge in edges)})",
                workflow=wf,
            )


def parse_definition(raw: Any, *, source: str | None = None) -> WorkflowDefinition:
    """Build and validate a definition from an already-decoded document."""

    if not isinstance(raw, dict):
        raise DefinitionError("Workflow document must be a JSON object", workflow=source)
    try:
        definition = WorkflowDefinition.model_validate(raw)
    except ValidationError as e:
        raise DefinitionError(f"Invalid workflow document: {e}", workflow=source) from e
    check_graph(definition)
    return definition


def load_definition(path: Path) -> WorkflowDefinition:
    """Read, parse and validate one workflow document from disk."""

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise DefinitionError(f"Cannot read {path}: {e}", workflow=str(path)) from e
    return parse_definition(raw, source=str(path))
