"""Pydantic models for the REST server."""

from __future__ import annotations

from pydantic import BaseModel, Field

from agent_workflow_engine.engine.workflow.scripted import ScriptedTurn


class WorkflowSummary(BaseModel):
    id: str
    name: str
    description: str
    author: str
    nodes: int
    tools: list[str]


class ApiToolSpec(BaseModel):
    name: str
    description: str
    parameters: list[str]
    required: list[str]


class SessionRequest(BaseModel):
    script: dict[str, list[ScriptedTurn]] = Field(default_factory=dict)
    step_budget: int | None = Field(default=None, gt=0)
