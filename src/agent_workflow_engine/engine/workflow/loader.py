"""Discover, validate and register workflows.

Directory convention (one directory per workflow name)::

    <workflows_dir>/<name>/workflow.json   # definition (required)
    <workflows_dir>/<name>/tools.py        # tool module (optional)

A broken workflow is skipped with a warning; it never prevents the rest of
the batch from loading.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from .definition import WorkflowDefinition, load_definition
from .errors import DefinitionError, UnknownWorkflow
from .state import StateStore
from .tools import ToolRegistry, load_tool_module
from .traversal import GraphTraversal

logger = logging.getLogger(__name__)

DEFINITION_FILENAME = "workflow.json"
TOOLS_FILENAME = "tools.py"


@dataclass(frozen=True, slots=True)
class LoadedWorkflow:
    name: str
    definition: WorkflowDefinition
    tools: ToolRegistry
    traversal: GraphTraversal
    state_store: StateStore

    @property
    def id(self) -> str:
        return self.definition.id

    def summary(self) -> dict[str, object]:
        return {
            "id": self.definition.id,
            "name": self.definition.name,
            "description": self.definition.description,
            "author": self.definition.author,
            "nodes": len(self.definition.nodes),
            "tools": list(self.tools.names()),
        }


class WorkflowCatalog(Mapping[str, LoadedWorkflow]):
    """Read-only workflow id -> loaded workflow."""

    def __init__(self, workflows: Mapping[str, LoadedWorkflow] | None = None) -> None:
        self._workflows = MappingProxyType(dict(workflows or {}))

    def __getitem__(self, workflow_id: str) -> LoadedWorkflow:
        try:
            return self._workflows[workflow_id]
        except KeyError:
            raise UnknownWorkflow(workflow_id) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._workflows)

    def __len__(self) -> int:
        return len(self._workflows)


def resolve_preferred_actions(definition: WorkflowDefinition, tools: ToolRegistry) -> None:
    """Fail fast on preferred actions that name tools the workflow does not have."""

    for node in definition.nodes:
        missing = [action for action in node.preferred_actions if action not in tools]
        if missing:
            raise DefinitionError(
                f"Node '{node.id}' prefers unknown tools: {missing}", workflow=definition.id
            )


class WorkflowLoader:
    def __init__(self, workflows_dir: Path) -> None:
        self.workflows_dir = workflows_dir

    def discover(self) -> list[str]:
        """Names of every workflow directory, in a stable order."""

        if not self.workflows_dir.is_dir():
            return []
        return sorted(
            p.name
            for p in self.workflows_dir.iterdir()
            if p.is_dir() and (p / DEFINITION_FILENAME).is_file()
        )

    def load_one(self, name: str) -> LoadedWorkflow:
        if not name or Path(name).name != name or name in {".", ".."}:
            raise DefinitionError(f"Invalid workflow name {name!r}", workflow=name)

        root = self.workflows_dir / name
        definition_path = root / DEFINITION_FILENAME
        if not definition_path.is_file():
            raise DefinitionError(f"No {DEFINITION_FILENAME} in {root}", workflow=name)

        definition = load_definition(definition_path)

        tools_path = root / TOOLS_FILENAME
        tools = (
            load_tool_module(tools_path, workflow=name) if tools_path.is_file() else ToolRegistry()
        )
        resolve_preferred_actions(definition, tools)

        return LoadedWorkflow(
            name=name,
            definition=definition,
            tools=tools,
            traversal=GraphTraversal(definition),
            state_store=StateStore(definition.state_schema),
        )

    def load(self, names: Iterable[str] | None = None) -> WorkflowCatalog:
        """Load the selected workflows (all discovered ones when `names` is None)."""

        selected = self.discover() if names is None else list(names)
        loaded: dict[str, LoadedWorkflow] = {}
        for name in selected:
            try:
                workflow = self.load_one(name)
            except DefinitionError as e:
                logger.warning(
                    "Skipping workflow", extra={"workflow": name, "reason": str(e)}
                )
                continue
            if workflow.id in loaded:
                logger.warning(
                    "Skipping workflow with duplicate id",
                    extra={"workflow": name, "workflow_id": workflow.id},
                )
                continue
            loaded[workflow.id] = workflow
            logger.info(
                "Workflow loaded",
                extra={
                    "workflow": name,
                    "workflow_id": workflow.id,
                    "nodes": len(workflow.definition.nodes),
                    "tools": len(workflow.tools),
                },
            )
        return WorkflowCatalog(loaded)
