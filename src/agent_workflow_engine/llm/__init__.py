"""Agent adapters for external decision makers."""

from agent_workflow_engine.llm.factory import AgentFactory
from agent_workflow_engine.llm.openai_agent import OpenAIAgent

__all__ = [
    "AgentFactory",
    "OpenAIAgent",
]
