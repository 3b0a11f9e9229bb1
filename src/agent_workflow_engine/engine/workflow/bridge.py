"""The driver loop pairing each node's intent with an external agent.

One session is one coroutine. The only await on the agent side is
``agent.take_turn``; everything else (state writes, traversal) happens
synchronously between turns, so a cancelled session never half-applies a
turn.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Protocol

from .errors import BudgetExceeded, SessionError
from .loader import LoadedWorkflow, WorkflowCatalog
from .state import ExecutionCursor, StepRecord
from .tools import ToolSession

logger = logging.getLogger(__name__)

DEFAULT_STEP_BUDGET = 100


@dataclass(frozen=True, slots=True)
class NodeTurn:
    """Everything the agent is shown for one turn at one node."""

    session_id: str
    workflow_id: str
    node_id: str
    intent: str
    preferred_actions: tuple[str, ...]
    available_tools: tuple[str, ...]
    state: Mapping[str, Any]
    step: int
    tools: ToolSession


@dataclass(frozen=True, slots=True)
class TurnReport:
    """What the agent hands back at the end of a turn."""

    state_delta: dict[str, Any] = field(default_factory=dict)
    node_complete: bool = True


class Agent(Protocol):
    """An external decision maker driven one node at a time."""

    async def take_turn(self, turn: NodeTurn) -> TurnReport: ...


SessionStatus = Literal["succeeded", "failed"]


@dataclass(frozen=True, slots=True)
class SessionResult:
    session_id: str
    workflow_id: str
    status: SessionStatus
    steps: int
    history: tuple[str, ...]
    state: dict[str, Any]
    records: tuple[StepRecord, ...]
    node_id: str | None = None
    error_type: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "succeeded"

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "session_id": self.session_id,
            "workflow_id": self.workflow_id,
            "status": self.status,
            "steps": self.steps,
            "history": list(self.history),
            "state": self.state,
            "records": [r.to_json() for r in self.records],
        }
        if not self.ok:
            out["node_id"] = self.node_id
            out["error_type"] = self.error_type
            out["error"] = self.error
        return out


class AgentBridge:
    """Runs sessions of loaded workflows against an agent."""

    def __init__(self, catalog: WorkflowCatalog, *, step_budget: int = DEFAULT_STEP_BUDGET) -> None:
        if step_budget <= 0:
            raise ValueError("step_budget must be positive")
        self.catalog = catalog
        self.step_budget = step_budget

    async def run_session(
        self,
        workflow_id: str,
        agent: Agent,
        *,
        step_budget: int | None = None,
        session_id: str | None = None,
    ) -> SessionResult:
        """Drive one session from START to END.

        Raises:
            UnknownWorkflow: If `workflow_id` is not in the catalog.
            ValueError: If `step_budget` is not positive.
            asyncio.CancelledError: If cancelled while awaiting the agent.
        """

        if step_budget is not None and step_budget <= 0:
            raise ValueError("step_budget must be positive")
        workflow = self.catalog[workflow_id]
        budget = self.step_budget if step_budget is None else step_budget
        sid = session_id or uuid.uuid4().hex
        tools = ToolSession(registry=workflow.tools, session_id=sid)
        cursor = ExecutionCursor(
            node_id=workflow.traversal.initial(),
            state=workflow.state_store.initial(),
        )

        logger.info(
            "Session started",
            extra={"session_id": sid, "workflow_id": workflow_id, "node_id": cursor.node_id},
        )
        try:
            await self._drive(workflow, agent, cursor, tools, sid, budget)
        except SessionError as e:
            logger.warning(
                "Session failed",
                extra={
                    "session_id": sid,
                    "workflow_id": workflow_id,
                    "node_id": e.node_id,
                    "error_type": type(e).__name__,
                    "state": e.state,
                },
            )
            return self._result(
                sid, workflow_id, cursor, "failed", node_id=e.node_id, error=e
            )
        except Exception as e:
            logger.exception(
                "Agent failed",
                extra={"session_id": sid, "workflow_id": workflow_id, "node_id": cursor.node_id},
            )
            return self._result(
                sid, workflow_id, cursor, "failed", node_id=cursor.node_id, error=e
            )
        finally:
            tools.close()

        logger.info(
            "Session succeeded",
            extra={"session_id": sid, "workflow_id": workflow_id, "steps": cursor.steps},
        )
        return self._result(sid, workflow_id, cursor, "succeeded")

    async def _drive(
        self,
        workflow: LoadedWorkflow,
        agent: Agent,
        cursor: ExecutionCursor,
        tools: ToolSession,
        session_id: str,
        budget: int,
    ) -> None:
        traversal = workflow.traversal
        while not traversal.is_terminal(cursor.node_id):
            if cursor.steps >= budget:
                raise BudgetExceeded(
                    budget=budget, node_id=cursor.node_id, state=cursor.state.snapshot()
                )

            node = workflow.definition.node(cursor.node_id)
            cursor.history.append(node.id)
            turn = NodeTurn(
                session_id=session_id,
                workflow_id=workflow.id,
                node_id=node.id,
                intent=node.intent,
                preferred_actions=node.preferred_actions,
                available_tools=tools.available,
                state=MappingProxyType(cursor.state.snapshot()),
                step=cursor.steps,
                tools=tools,
            )

            report = await agent.take_turn(turn)

            applied, violations = cursor.state.apply_delta(report.state_delta or {})
            for v in violations:
                logger.warning(
                    "Dropped state write",
                    extra={
                        "session_id": session_id,
                        "node_id": node.id,
                        "key": v.key,
                        "reason": v.reason,
                    },
                )

            next_node = (
                traversal.next_node(current=node.id, state=cursor.state)
                if report.node_complete
                else None
            )
            cursor.advance(
                StepRecord(
                    step=cursor.steps,
                    node_id=node.id,
                    tool_calls=tuple(tools.drain()),
                    applied=applied,
                    violations=tuple(violations),
                    node_complete=report.node_complete,
                    next_node=next_node,
                )
            )
            logger.debug(
                "Step completed",
                extra={
                    "session_id": session_id,
                    "node_id": node.id,
                    "next_node": next_node,
                    "steps": cursor.steps,
                },
            )

    @staticmethod
    def _result(
        session_id: str,
        workflow_id: str,
        cursor: ExecutionCursor,
        status: SessionStatus,
        *,
        node_id: str | None = None,
        error: Exception | None = None,
    ) -> SessionResult:
        return SessionResult(
            session_id=session_id,
            workflow_id=workflow_id,
            status=status,
            steps=cursor.steps,
            history=tuple(cursor.history),
            state=cursor.state.snapshot(),
            records=tuple(cursor.records),
            node_id=node_id,
            error_type=type(error).__name__ if error is not None else None,
            error=str(error) if error is not None else None,
        )
