"""FastAPI server adapter for agent-workflow-engine.

This module exposes a REST API over the loaded workflow catalog.

Design intent:
- Keep engine logic in `agent_workflow_engine.engine.*`
- Keep server-specific concerns (routing, CORS, request models) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from agent_workflow_engine.server.app import create_app
