"""FastAPI app factory.

Endpoints are intentionally thin wrappers over the workflow catalog and the
agent bridge. The catalog is loaded once, when the app is created.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from agent_workflow_engine import __version__
from agent_workflow_engine.engine.workflow.bridge import AgentBridge
from agent_workflow_engine.engine.workflow.errors import UnknownWorkflow
from agent_workflow_engine.engine.workflow.loader import (
    LoadedWorkflow,
    WorkflowCatalog,
    WorkflowLoader,
)
from agent_workflow_engine.engine.workflow.scripted import ScriptedAgent
from agent_workflow_engine.server.config import ServerSettings
from agent_workflow_engine.server.models import ApiToolSpec, SessionRequest, WorkflowSummary

logger = logging.getLogger(__name__)


def _get(catalog: WorkflowCatalog, workflow_id: str) -> LoadedWorkflow:
    try:
        return catalog[workflow_id]
    except UnknownWorkflow:
        raise HTTPException(status_code=404, detail="Workflow not loaded") from None


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    settings = settings or ServerSettings()

    app = FastAPI(
        title="Agent Workflow Engine",
        version=__version__,
        description="REST API over loaded workflow graphs and scripted sessions.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    catalog = WorkflowLoader(settings.workflows_dir).load(settings.parsed_active_workflows())
    bridge = AgentBridge(catalog, step_budget=settings.step_budget)

    app.state.settings = settings
    app.state.catalog = catalog

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health() -> dict[str, object]:
        return {"status": "ok", "version": __version__, "workflows": len(catalog)}

    @app.get("/api/workflows", response_model=list[WorkflowSummary])
    def list_workflows() -> list[WorkflowSummary]:
        return [WorkflowSummary.model_validate(w.summary()) for w in catalog.values()]

    @app.get("/api/workflows/{workflow_id}")
    def get_workflow(workflow_id: str) -> dict[str, Any]:
        return _get(catalog, workflow_id).definition.to_document()

    @app.get("/api/workflows/{workflow_id}/tools", response_model=list[ApiToolSpec])
    def get_tools(workflow_id: str) -> list[ApiToolSpec]:
        workflow = _get(catalog, workflow_id)
        return [ApiToolSpec.model_validate(spec.to_json()) for spec in workflow.tools.describe()]

    @app.post("/api/workflows/{workflow_id}/sessions")
    async def run_session(workflow_id: str, req: SessionRequest) -> dict[str, object]:
        _get(catalog, workflow_id)
        result = await bridge.run_session(
            workflow_id, ScriptedAgent(req.script), step_budget=req.step_budget
        )
        return result.to_json()

    return app
