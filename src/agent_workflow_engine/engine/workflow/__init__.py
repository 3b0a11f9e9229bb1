"""Workflow graph engine.

This package introduces first-class types for:
- Workflow definitions (nodes with intents, typed state schema, edges)
- Tool registries (per-workflow name -> capability tables)
- Typed session state
- A pure graph traversal state machine
- The agent-driving session loop

Definitions and registries are loaded once and never mutated; sessions own
their state exclusively, so any number of them may run concurrently.
"""

from .bridge import Agent, AgentBridge, NodeTurn, SessionResult, TurnReport
from .definition import END, START, WorkflowDefinition, load_definition, parse_definition
from .errors import (
    BudgetExceeded,
    DefinitionError,
    GraphStuck,
    SchemaViolation,
    ToolInvocationError,
    UnknownWorkflow,
    WorkflowError,
)
from .loader import LoadedWorkflow, WorkflowCatalog, WorkflowLoader
from .scripted import ScriptedAgent
from .state import SessionState, StateStore
from .tools import ToolRegistry, ToolResult, ToolSession
from .traversal import GraphTraversal

__all__ = [
    "END",
    "START",
    "Agent",
    "AgentBridge",
    "BudgetExceeded",
    "DefinitionError",
    "GraphStuck",
    "GraphTraversal",
    "LoadedWorkflow",
    "NodeTurn",
    "SchemaViolation",
    "ScriptedAgent",
    "SessionResult",
    "SessionState",
    "StateStore",
    "ToolInvocationError",
    "ToolRegistry",
    "ToolResult",
    "ToolSession",
    "TurnReport",
    "UnknownWorkflow",
    "WorkflowCatalog",
    "WorkflowDefinition",
    "WorkflowError",
    "WorkflowLoader",
    "load_definition",
    "parse_definition",
]
