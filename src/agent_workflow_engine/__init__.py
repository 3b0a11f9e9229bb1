"""Agent Workflow Engine.

Loads declarative workflow graphs, drives an external agent through them one
node at a time, and dispatches the workflow's tools on the agent's behalf.
"""

__version__ = "0.1.0"

from agent_workflow_engine.engine.config import EngineSettings

__all__ = ["__version__", "EngineSettings"]
