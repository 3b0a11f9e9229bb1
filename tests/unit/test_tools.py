"""Unit tests for tool registries.

A registry resolves names and checks argument shape; it must turn every
problem into an error-shaped result instead of raising.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from pathlib import Path

import pytest
from pydantic import BaseModel, ConfigDict

from agent_workflow_engine.engine.workflow.errors import DefinitionError
from agent_workflow_engine.engine.workflow.tools import (
    ToolRegistry,
    ToolSession,
    load_tool_module,
    to_serializable,
)


def _add(a: int, b: int = 1) -> int:
    """Add two numbers.

    Longer description that is not part of the summary.
    """
    return a + b


def _explode() -> None:
    raise RuntimeError("servo jammed")


async def _async_echo(text: str) -> dict[str, str]:
    await asyncio.sleep(0)
    return {"echo": text}


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry({"add": _add, "explode": _explode, "echo": _async_echo})


def test_invoke_returns_output(registry: ToolRegistry) -> None:
    result = asyncio.run(registry.invoke("add", {"a": 2, "b": 3}))

    assert result.ok
    assert result.output == 5
    assert result.to_json() == {"tool": "add", "ok": True, "output": 5}


def test_invoke_awaits_async_tools(registry: ToolRegistry) -> None:
    result = asyncio.run(registry.invoke("echo", {"text": "hi"}))

    assert result.ok
    assert result.output == {"echo": "hi"}


def test_unknown_tool_is_an_error_result(registry: ToolRegistry) -> None:
    result = asyncio.run(registry.invoke("teleport", {}))

    assert not result.ok
    assert result.error_type == "ToolInvocationError"
    assert "Unknown tool 'teleport'" in (result.error or "")


def test_arguments_are_shape_checked(registry: ToolRegistry) -> None:
    missing = asyncio.run(registry.invoke("add", {"b": 3}))
    extra = asyncio.run(registry.invoke("add", {"a": 1, "c": 2}))
    not_mapping = asyncio.run(registry.invoke("add", ["a"]))  # type: ignore[arg-type]

    for result in (missing, extra, not_mapping):
        assert not result.ok
        assert result.error_type == "ToolInvocationError"


def test_arguments_are_not_semantically_validated(registry: ToolRegistry) -> None:
    result = asyncio.run(registry.invoke("echo", {"text": 42}))

    assert result.ok
    assert result.output == {"echo": 42}


def test_tool_fault_does_not_propagate(registry: ToolRegistry) -> None:
    result = asyncio.run(registry.invoke("explode"))

    assert not result.ok
    assert result.error_type == "ToolInvocationError"
    assert "servo jammed" in (result.error or "")


class _Handle:
    pass


class _HandleReading(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    handle: _Handle


def test_unserializable_output_is_an_error_result() -> None:
    looped: dict[str, object] = {}
    looped["self"] = looped
    registry = ToolRegistry(
        {"read": lambda: _HandleReading(handle=_Handle()), "loop": lambda: looped}
    )

    read = asyncio.run(registry.invoke("read", {}))
    loop = asyncio.run(registry.invoke("loop", {}))

    assert not read.ok
    assert read.error_type == "ToolInvocationError"
    assert "unserializable" in (read.error or "")
    assert not loop.ok
    assert loop.error_type == "ToolInvocationError"


def test_blocking_tool_does_not_stall_the_event_loop() -> None:
    released = threading.Event()

    def wait_for_release() -> bool:
        return released.wait(timeout=5)

    registry = ToolRegistry({"wait": wait_for_release})

    async def release() -> str:
        await asyncio.sleep(0)
        released.set()
        return "released"

    async def scenario() -> list[object]:
        return await asyncio.gather(registry.invoke("wait"), release())

    result, other = asyncio.run(scenario())

    assert other == "released"
    assert result.ok  # type: ignore[attr-defined]
    assert result.output is True  # type: ignore[attr-defined]


def test_registry_is_read_only(registry: ToolRegistry) -> None:
    assert registry.names() == ("add", "echo", "explode")
    with pytest.raises(TypeError):
        registry["new"] = _add  # type: ignore[index]


def test_non_callable_tool_is_rejected() -> None:
    with pytest.raises(DefinitionError):
        ToolRegistry({"bad": 42})  # type: ignore[dict-item]


def test_describe_reports_parameters(registry: ToolRegistry) -> None:
    specs = {spec.name: spec for spec in registry.describe()}

    assert specs["add"].description == "Add two numbers."
    assert specs["add"].parameters == ("a", "b")
    assert specs["add"].required == ("a",)
    assert specs["explode"].parameters == ()


def test_to_serializable_handles_models_and_dataclasses() -> None:
    class Reading(BaseModel):
        value: float

    @dataclass
    class Angle:
        joint: str
        degrees: float

    assert to_serializable(Reading(value=1.5)) == {"value": 1.5}
    assert to_serializable({"a": Angle("elbow", 30.0)}) == {
        "a": {"joint": "elbow", "degrees": 30.0}
    }
    assert to_serializable((1, "x")) == [1, "x"]
    assert to_serializable(Path("/tmp")) == str(Path("/tmp"))


def test_tool_session_records_and_refuses_after_close(registry: ToolRegistry) -> None:
    session = ToolSession(registry=registry, session_id="s1")

    asyncio.run(session.invoke("add", {"a": 1}))
    asyncio.run(session.invoke("nope"))
    calls = session.drain()

    assert [c.name for c in calls] == ["add", "nope"]
    assert [c.result.ok for c in calls] == [True, False]
    assert session.drain() == []

    session.close()
    result = asyncio.run(session.invoke("add", {"a": 1}))
    assert not result.ok
    assert "closed" in (result.error or "")


def test_load_tool_module_collects_public_functions(tmp_path: Path) -> None:
    path = tmp_path / "tools.py"
    path.write_text(
        "from os.path import join\n"
        "def speak(text):\n    return text\n"
        "def _hidden():\n    return None\n",
        encoding="utf-8",
    )

    registry = load_tool_module(path, workflow="wf_public")

    assert registry.names() == ("speak",)


def test_load_tool_module_prefers_explicit_table(tmp_path: Path) -> None:
    path = tmp_path / "tools.py"
    path.write_text(
        "def _impl(text):\n    return text\n"
        "def other():\n    return 1\n"
        "TOOLS = {'say': _impl}\n",
        encoding="utf-8",
    )

    registry = load_tool_module(path, workflow="wf_explicit")

    assert registry.names() == ("say",)


def test_load_tool_module_import_failure_is_definition_error(tmp_path: Path) -> None:
    path = tmp_path / "tools.py"
    path.write_text("raise ImportError('no speaker driver')\n", encoding="utf-8")

    with pytest.raises(DefinitionError, match="no speaker driver"):
        load_tool_module(path, workflow="wf_broken")
