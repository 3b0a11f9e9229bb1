"""Factory for creating agents."""

import logging
from typing import Literal

from agent_workflow_engine.engine.config import LLMAgentConfig
from agent_workflow_engine.engine.workflow.bridge import Agent
from agent_workflow_engine.engine.workflow.scripted import AgentScript, ScriptedAgent
from agent_workflow_engine.llm.openai_agent import OpenAIAgent

logger = logging.getLogger(__name__)

AgentKind = Literal["scripted", "openai"]


class AgentFactory:
    """Factory for creating agent instances."""

    @staticmethod
    def create(
        kind: str,
        *,
        script: AgentScript | None = None,
        config: LLMAgentConfig | None = None,
    ) -> Agent:
        """Create an agent of the given kind.

        Args:
            kind: "scripted" or "openai".
            script: Turns for the scripted agent.
            config: Configuration for the OpenAI agent (loaded from env if None).

        Returns:
            A new agent. Agents keep per-session memory; create one per session.

        Raises:
            ValueError: If the agent kind is not supported.
        """
        logger.info("Creating agent", extra={"kind": kind})

        if kind == "scripted":
            return ScriptedAgent(script)
        elif kind == "openai":
            return OpenAIAgent(config or LLMAgentConfig())
        else:
            raise ValueError(f"Unsupported agent kind: {kind}")
