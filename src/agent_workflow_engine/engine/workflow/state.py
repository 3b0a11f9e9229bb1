"""Typed per-session state and the execution cursor."""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from .definition import StateVariable, matches_type
from .errors import SchemaViolation
from .tools import ToolInvocation

logger = logging.getLogger(__name__)


class SessionState(Mapping[str, Any]):
    """Session variables restricted to the keys and types of a state schema.

    Reads go through the Mapping interface. The only write path is
    :meth:`set` (raises :class:`SchemaViolation`) and :meth:`apply_delta`
    (drops offending keys and reports them).
    """

    def __init__(self, schema: Mapping[str, StateVariable]) -> None:
        self._schema = schema
        self._values: dict[str, Any] = {
            key: copy.deepcopy(var.default) for key, var in schema.items()
        }

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"SessionState({self._values!r})"

    def check(self, key: str, value: Any) -> None:
        var = self._schema.get(key)
        if var is None:
            raise SchemaViolation(key, value, "key is not declared in the state schema")
        if not matches_type(var.type, value):
            raise SchemaViolation(
                key, value, f"expected {var.type}, got {type(value).__name__}"
            )

    def set(self, key: str, value: Any) -> None:
        self.check(key, value)
        self._values[key] = copy.deepcopy(value)

    def apply_delta(self, delta: Mapping[str, Any]) -> tuple[dict[str, Any], list[SchemaViolation]]:
        """Apply every valid entry of `delta`.

        Returns:
            The entries that were applied and the violations that were dropped.
        """

        applied: dict[str, Any] = {}
        violations: list[SchemaViolation] = []
        for key, value in delta.items():
            try:
                self.check(key, value)
            except SchemaViolation as e:
                violations.append(e)
                continue
            applied[key] = value
        for key, value in applied.items():
            self._values[key] = copy.deepcopy(value)
        return applied, violations

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._values)


class StateStore:
    """Creates fresh session state for a workflow's schema."""

    def __init__(self, schema: Mapping[str, StateVariable]) -> None:
        self._schema = schema

    def initial(self) -> SessionState:
        return SessionState(self._schema)

    def default(self, key: str) -> Any:
        var = self._schema.get(key)
        return None if var is None else copy.deepcopy(var.default)


@dataclass(frozen=True, slots=True)
class StepRecord:
    step: int
    node_id: str
    tool_calls: tuple[ToolInvocation, ...]
    applied: dict[str, Any]
    violations: tuple[SchemaViolation, ...]
    node_complete: bool
    next_node: str | None

    def to_json(self) -> dict[str, object]:
        return {
            "step": self.step,
            "node_id": self.node_id,
            "tool_calls": [
                {"name": c.name, "arguments": c.arguments, "result": c.result.to_json()}
                for c in self.tool_calls
            ],
            "applied": self.applied,
            "violations": [{"key": v.key, "reason": v.reason} for v in self.violations],
            "node_complete": self.node_complete,
            "next_node": self.next_node,
        }


@dataclass
class ExecutionCursor:
    """Where a session is, what it has seen, and how many steps it has taken."""

    node_id: str
    state: SessionState
    history: list[str] = field(default_factory=list)
    steps: int = 0
    records: list[StepRecord] = field(default_factory=list)

    def advance(self, record: StepRecord) -> None:
        self.steps += 1
        self.records.append(record)
        if record.next_node is not None:
            self.node_id = record.next_node
