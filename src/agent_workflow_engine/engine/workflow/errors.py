"""Error kinds raised by the workflow engine.

Load-time problems are :class:`DefinitionError`. Runtime problems carry the
offending node id and the last known session state so a failed session can be
diagnosed without re-running it.
"""

from __future__ import annotations

from typing import Any


class WorkflowError(Exception):
    """Base class for every engine error."""


class DefinitionError(WorkflowError):
    """A workflow document or tool module is malformed or inconsistent."""

    def __init__(self, message: str, *, workflow: str | None = None) -> None:
        self.workflow = workflow
        prefix = f"[{workflow}] " if workflow else ""
        super().__init__(prefix + message)


class UnknownWorkflow(WorkflowError, KeyError):
    def __init__(self, workflow_id: str) -> None:
        self.workflow_id = workflow_id
        super().__init__(f"Workflow not loaded: {workflow_id}")

    def __str__(self) -> str:
        return self.args[0]


class SchemaViolation(WorkflowError):
    """A state write outside the declared schema (recovered, never fatal)."""

    def __init__(self, key: str, value: Any, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Schema violation for '{key}': {reason}")


class SessionError(WorkflowError):
    """A fatal runtime error that terminates a single session."""

    def __init__(self, message: str, *, node_id: str, state: dict[str, Any]) -> None:
        self.node_id = node_id
        self.state = dict(state)
        super().__init__(message)


class GraphStuck(SessionError):
    pass


class BudgetExceeded(SessionError):
    def __init__(self, *, budget: int, node_id: str, state: dict[str, Any]) -> None:
        self.budget = budget
        super().__init__(
            f"Step budget of {budget} exhausted at node '{node_id}'",
            node_id=node_id,
            state=state,
        )


class ToolInvocationError(WorkflowError):
    """Unknown tool, malformed arguments, or a fault inside a tool.

    Never propagated out of the registry; it is converted to an error-shaped
    :class:`~agent_workflow_engine.engine.workflow.tools.ToolResult`.
    """

    def __init__(self, tool: str, message: str) -> None:
        self.tool = tool
        super().__init__(message)
