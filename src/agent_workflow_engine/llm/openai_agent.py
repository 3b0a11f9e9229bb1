"""OpenAI chat-completions agent.

Each node turn is a short function-calling conversation: the model sees the
node intent and the current state, may call any workflow tool, and ends the
turn by calling ``complete_node`` with the state delta it wants applied.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from openai import AsyncOpenAI

from agent_workflow_engine.engine.config import LLMAgentConfig
from agent_workflow_engine.engine.workflow.bridge import NodeTurn, TurnReport
from agent_workflow_engine.engine.workflow.tools import ToolSpec

logger = logging.getLogger(__name__)

COMPLETE_NODE = "complete_node"

_COMPLETE_NODE_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": COMPLETE_NODE,
        "description": (
            "Finish the current step. Put every state variable you want to change "
            "in state_delta. Set node_complete to false to stay on this step."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "state_delta": {"type": "object"},
                "node_complete": {"type": "boolean"},
            },
            "required": ["state_delta"],
        },
    },
}


def tool_schema(spec: ToolSpec) -> dict[str, Any]:
    """Function-calling schema for a workflow tool."""

    return {
        "type": "function",
        "function": {
            "name": spec.name,
            "description": spec.description,
            "parameters": {
                "type": "object",
                "properties": {name: {} for name in spec.parameters},
                "required": list(spec.required),
            },
        },
    }


def build_messages(turn: NodeTurn) -> list[dict[str, Any]]:
    preferred = ", ".join(turn.preferred_actions) or "none"
    system = (
        "You are driving one step of a workflow. Carry out the step's intent using "
        "the available tools, then call complete_node exactly once.\n"
        f"Preferred tools for this step: {preferred}."
    )
    user = (
        f"Step: {turn.node_id}\n"
        f"Intent: {turn.intent}\n"
        f"Current state: {json.dumps(dict(turn.state), ensure_ascii=False, default=str)}"
    )
    return [{"role": "system", "content": system}, {"role": "user", "content": user}]


def _parse_arguments(raw: str | None) -> dict[str, Any] | None:
    try:
        value = json.loads(raw or "{}")
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


class OpenAIAgent:
    """Agent backed by an OpenAI-compatible chat completions endpoint."""

    def __init__(self, config: LLMAgentConfig, client: AsyncOpenAI | None = None) -> None:
        """Initialize the agent.

        Args:
            config: LLM agent configuration.
            client: Pre-built client (tests inject a mock here).

        Raises:
            ValueError: If no client is given and no API key is configured.
        """
        if client is None:
            if not config.api_key:
                raise ValueError("ENGINE_LLM_API_KEY is required for the OpenAI agent")
            client = AsyncOpenAI(api_key=config.api_key, base_url=config.base_url)

        self.config = config
        self.client = client

        logger.info("OpenAI agent initialized", extra={"model": config.model})

    async def take_turn(self, turn: NodeTurn) -> TurnReport:
        messages = build_messages(turn)
        tools = [tool_schema(spec) for spec in turn.tools.registry.describe()]
        tools.append(_COMPLETE_NODE_TOOL)

        for _ in range(self.config.max_tool_rounds):
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=messages,  # type: ignore[arg-type]
                tools=tools,  # type: ignore[arg-type]
                temperature=self.config.temperature,
            )
            message = response.choices[0].message
            calls = message.tool_calls or []
            if not calls:
                logger.debug(
                    "Model replied without tool calls", extra={"node_id": turn.node_id}
                )
                return TurnReport(node_complete=False)

            messages.append(
                {
                    "role": "assistant",
                    "content": message.content,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {
                                "name": call.function.name,
                                "arguments": call.function.arguments,
                            },
                        }
                        for call in calls
                    ],
                }
            )

            for call in calls:
                arguments = _parse_arguments(call.function.arguments)
                if call.function.name == COMPLETE_NODE:
                    args = arguments or {}
                    delta = args.get("state_delta")
                    complete = args.get("node_complete", True)
                    return TurnReport(
                        state_delta=delta if isinstance(delta, dict) else {},
                        node_complete=complete if isinstance(complete, bool) else True,
                    )

                if arguments is None:
                    content: dict[str, object] = {
                        "tool": call.function.name,
                        "ok": False,
                        "error": "Arguments were not a JSON object",
                        "error_type": "ToolInvocationError",
                    }
                else:
                    result = await turn.tools.invoke(call.function.name, arguments)
                    content = result.to_json()
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": json.dumps(content, ensure_ascii=False, default=str),
                    }
                )

        logger.warning(
            "Tool round limit reached without complete_node",
            extra={"node_id": turn.node_id, "rounds": self.config.max_tool_rounds},
        )
        return TurnReport(node_complete=False)
