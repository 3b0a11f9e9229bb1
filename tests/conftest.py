"""Test configuration and fixtures."""

from __future__ import annotations

import copy
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from agent_workflow_engine.engine.workflow.loader import WorkflowCatalog, WorkflowLoader

MORNING_DOCUMENT: dict[str, Any] = {
    "id": "morning_routine",
    "name": "Morning routine",
    "description": "Wake the user, then brief them on today's calendar.",
    "author": "tests",
    "createdAt": "2025-01-06T07:00:00+00:00",
    "state_schema": {
        "user_response_detected": {"type": "boolean", "default": False},
        "wake_attempts": {"type": "integer", "default": 0},
        "calendar_summary": {"type": "string", "default": ""},
        "preferences": {"type": "object", "default": {}},
    },
    "nodes": [
        {
            "id": "wake_user_1",
            "intent": "Gently wake the user.",
            "preferred_actions": ["play_sound", "speak"],
        },
        {
            "id": "wake_user_aggressively",
            "intent": "Wake the user loudly until they respond.",
            "preferred_actions": ["play_sound"],
        },
        {
            "id": "get_todays_calendar_data",
            "intent": "Fetch today's calendar.",
            "preferred_actions": ["get_calendar_events"],
        },
        {
            "id": "morning_message",
            "intent": "Read out the morning message.",
            "preferred_actions": ["speak"],
        },
    ],
    "edges": [
        {"id": "e0", "type": "normal", "source": "START", "target": "wake_user_1"},
        {
            "id": "e1",
            "type": "condition",
            "source": "wake_user_1",
            "state_key": "user_response_detected",
            "target": {"true": "get_todays_calendar_data", "false": "wake_user_aggressively"},
        },
        {
            "id": "e2",
            "type": "condition",
            "source": "wake_user_aggressively",
            "state_key": "user_response_detected",
            "target": {"true": "get_todays_calendar_data", "false": "wake_user_aggressively"},
        },
        {
            "id": "e3",
            "type": "normal",
            "source": "get_todays_calendar_data",
            "target": "morning_message",
        },
        {"id": "e4", "type": "normal", "source": "morning_message", "target": "END"},
    ],
}

MORNING_TOOLS = '''
import asyncio


def play_sound(sound="chime", volume=3):
    """Play a sound."""
    return {"played": sound, "volume": volume}


def speak(text):
    """Say something."""
    return {"spoken": text}


async def get_calendar_events(day=None):
    """List calendar events."""
    await asyncio.sleep(0)
    return {"date": day or "today", "events": ["standup"]}


def _private_helper():
    return None
'''

WriteWorkflow = Callable[..., Path]


@pytest.fixture
def morning_doc() -> dict[str, Any]:
    """A fresh, mutable copy of the morning routine document."""
    return copy.deepcopy(MORNING_DOCUMENT)


@pytest.fixture
def workflows_dir(tmp_path: Path) -> Path:
    path = tmp_path / "workflows"
    path.mkdir()
    return path


@pytest.fixture
def write_workflow(workflows_dir: Path) -> WriteWorkflow:
    """Write `<workflows_dir>/<name>/workflow.json` (+ optional tools.py)."""

    def _write(name: str, document: Any, tools: str | None = None) -> Path:
        root = workflows_dir / name
        root.mkdir(parents=True, exist_ok=True)
        text = document if isinstance(document, str) else json.dumps(document)
        (root / "workflow.json").write_text(text, encoding="utf-8")
        if tools is not None:
            (root / "tools.py").write_text(tools, encoding="utf-8")
        return root

    return _write


@pytest.fixture
def morning_catalog(
    workflows_dir: Path, write_workflow: WriteWorkflow, morning_doc: dict[str, Any]
) -> WorkflowCatalog:
    write_workflow("morning_routine", morning_doc, MORNING_TOOLS)
    catalog = WorkflowLoader(workflows_dir).load(["morning_routine"])
    assert "morning_routine" in catalog
    return catalog


@pytest.fixture
def morning_tools() -> str:
    """Source of a tool module matching the morning routine's preferred actions."""
    return MORNING_TOOLS
