#!/usr/bin/env python3
"""Programmatic session example.

This demonstrates using the engine components directly:

* load settings from `.env`
* load the selected workflows into a catalog
* run one session with a scripted agent and print the outcome

The workflow id and script path are passed as arguments.
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Sequence

from agent_workflow_engine.engine.config import EngineSettings
from agent_workflow_engine.engine.logging import configure_logging
from agent_workflow_engine.engine.workflow import AgentBridge, ScriptedAgent, WorkflowLoader
from agent_workflow_engine.engine.workflow.scripted import load_script


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one workflow session (example).")
    parser.add_argument("--workflow", default="morning_routine", help="Workflow id to run")
    parser.add_argument(
        "--script",
        default="workflows/morning_routine/script.json",
        help="Per-node turns for the scripted agent",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = EngineSettings()
    configure_logging(settings.log_level)

    catalog = WorkflowLoader(settings.workflows_dir).load(settings.parsed_active_workflows())
    bridge = AgentBridge(catalog, step_budget=settings.step_budget)
    agent = ScriptedAgent(load_script(Path(args.script)))

    result = asyncio.run(bridge.run_session(args.workflow, agent))

    print(f"Session {result.session_id}: {result.status} after {result.steps} steps")
    print(f"Path: {' -> '.join(result.history)}")
    if not result.ok:
        print(f"Failed at {result.node_id}: {result.error_type}: {result.error}")
        return 4
    print(f"Final state: {result.state}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
