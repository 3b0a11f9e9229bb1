"""CLI entrypoint for the workflow engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from agent_workflow_engine import __version__
from agent_workflow_engine.engine.config import EngineSettings
from agent_workflow_engine.engine.logging import configure_logging
from agent_workflow_engine.engine.workflow.bridge import AgentBridge
from agent_workflow_engine.engine.workflow.errors import DefinitionError, UnknownWorkflow
from agent_workflow_engine.engine.workflow.loader import WorkflowLoader
from agent_workflow_engine.engine.workflow.scripted import load_script
from agent_workflow_engine.llm.factory import AgentFactory

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-workflow",
        description="Load workflow graphs and drive agents through them",
    )
    parser.add_argument(
        "--version", action="version", version=f"agent-workflow-engine {__version__}"
    )
    parser.add_argument(
        "--workflows-dir",
        default=None,
        help="Override WORKFLOWS_DIR",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List the active workflows that load cleanly")

    validate = subparsers.add_parser("validate", help="Validate workflows by name")
    validate.add_argument("names", nargs="+", help="Workflow directory names")

    run = subparsers.add_parser("run", help="Run one session of a workflow")
    run.add_argument("workflow_id", help="Id of a loaded workflow")
    run.add_argument(
        "--agent",
        choices=["scripted", "openai"],
        default="scripted",
        help="Agent that drives the session",
    )
    run.add_argument(
        "--script",
        default=None,
        help="JSON file of per-node turns for the scripted agent",
    )
    run.add_argument(
        "--step-budget",
        type=_positive_int,
        default=None,
        help="Maximum node turns (defaults to ENGINE_STEP_BUDGET)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = EngineSettings()
    except ValidationError as e:
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    workflows_dir = Path(args.workflows_dir) if args.workflows_dir else settings.workflows_dir
    loader = WorkflowLoader(workflows_dir)

    try:
        if args.command == "list":
            catalog = loader.load(settings.parsed_active_workflows())
            if not catalog:
                print(f"No workflows loaded from {workflows_dir}")
                return 0
            for workflow in catalog.values():
                tools = ", ".join(workflow.tools.names()) or "-"
                print(
                    f"{workflow.id}\t{workflow.definition.name}\t"
                    f"{len(workflow.definition.nodes)} nodes\ttools: {tools}"
                )
            return 0

        if args.command == "validate":
            failures = 0
            for name in args.names:
                try:
                    workflow = loader.load_one(name)
                except DefinitionError as e:
                    failures += 1
                    print(f"INVALID {name}: {e}")
                    continue
                print(f"OK      {name} ({workflow.id})")
            return 1 if failures else 0

        if args.command == "run":
            script = load_script(Path(args.script)) if args.script else None
            if args.agent == "scripted" and script is None:
                print("--script is required for the scripted agent", file=sys.stderr)
                return 2

            catalog = loader.load(settings.parsed_active_workflows())
            bridge = AgentBridge(catalog, step_budget=settings.step_budget)
            agent = AgentFactory.create(args.agent, script=script)
            result = asyncio.run(
                bridge.run_session(args.workflow_id, agent, step_budget=args.step_budget)
            )
            print(json.dumps(result.to_json(), indent=2, ensure_ascii=False, default=str))
            return 0 if result.ok else 4

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except UnknownWorkflow as e:
        logger.warning(str(e), extra={"workflow_id": e.workflow_id})
        print(str(e), file=sys.stderr)
        return 3

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
