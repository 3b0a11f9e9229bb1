"""A deterministic agent that replays pre-written turns.

Script shape (JSON)::

    {
      "wake_user_1": [
        {"tool_calls": [{"name": "play_sound", "arguments": {"volume": 3}}],
         "state_delta": {"user_response_detected": false}},
        {"state_delta": {"user_response_detected": true}}
      ]
    }

Turns for a node are used in order and the last one repeats. Nodes without
a script complete immediately without touching state.
"""

from __future__ import annotations

import json
from collections import defaultdict
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .bridge import NodeTurn, TurnReport
from .tools import ToolResult


class ScriptedToolCall(BaseModel):
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ScriptedTurn(BaseModel):
    tool_calls: list[ScriptedToolCall] = Field(default_factory=list)
    state_delta: dict[str, Any] = Field(default_factory=dict)
    node_complete: bool = True


AgentScript = dict[str, list[ScriptedTurn]]

_script_adapter: TypeAdapter[AgentScript] = TypeAdapter(AgentScript)


def parse_script(raw: Any) -> AgentScript:
    """Validate a decoded script document.

    Raises:
        ValueError: If the script does not have the expected shape.
    """

    try:
        return _script_adapter.validate_python(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid agent script: {e}") from e


def load_script(path: Path) -> AgentScript:
    return parse_script(json.loads(path.read_text(encoding="utf-8")))


class ScriptedAgent:
    def __init__(self, script: AgentScript | None = None) -> None:
        self.script: AgentScript = script or {}
        self.turns: list[NodeTurn] = []
        self.results: list[ToolResult] = []
        self._visits: defaultdict[str, int] = defaultdict(int)

    async def take_turn(self, turn: NodeTurn) -> TurnReport:
        self.turns.append(turn)
        planned = self.script.get(turn.node_id)
        if not planned:
            return TurnReport()

        index = min(self._visits[turn.node_id], len(planned) - 1)
        self._visits[turn.node_id] += 1
        step = planned[index]

        for call in step.tool_calls:
            self.results.append(await turn.tools.invoke(call.name, call.arguments))

        return TurnReport(state_delta=dict(step.state_delta), node_complete=step.node_complete)
