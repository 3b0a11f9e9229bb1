"""Console script shim; the CLI lives in `agent_workflow_engine.engine.main`."""

from __future__ import annotations

from agent_workflow_engine.engine.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
