"""Tool tables: name resolution and invocation plumbing.

Tool logic lives in external modules. The registry only resolves names, checks
that the supplied arguments fit the callable's signature, and turns whatever
happens into a :class:`ToolResult` an agent can read. Faults inside a tool are
never propagated.
"""

from __future__ import annotations

import asyncio
import dataclasses
import importlib.util
import inspect
import logging
import sys
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType, ModuleType
from typing import Any

from pydantic import BaseModel

from .errors import DefinitionError, ToolInvocationError

logger = logging.getLogger(__name__)

ToolFunction = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class ToolResult:
    tool: str
    ok: bool
    output: Any = None
    error: str | None = None
    error_type: str | None = None

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {"tool": self.tool, "ok": self.ok}
        if self.ok:
            out["output"] = self.output
        else:
            out["error"] = self.error
            out["error_type"] = self.error_type
        return out

    @staticmethod
    def failure(tool: str, exc: Exception) -> ToolResult:
        return ToolResult(tool=tool, ok=False, error=str(exc), error_type=type(exc).__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """What an agent needs to know to call a tool."""

    name: str
    description: str
    parameters: tuple[str, ...]
    required: tuple[str, ...]

    def to_json(self) -> dict[str, object]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": list(self.parameters),
            "required": list(self.required),
        }


@dataclass(frozen=True, slots=True)
class ToolInvocation:
    name: str
    arguments: dict[str, Any]
    result: ToolResult


def to_serializable(value: Any) -> Any:
    """Best-effort conversion of a tool's return value to JSON-friendly data."""

    if value is None or isinstance(value, str | int | float | bool):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_serializable(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        return {str(k): to_serializable(v) for k, v in value.items()}
    if isinstance(value, list | tuple | set | frozenset):
        return [to_serializable(v) for v in value]
    return str(value)


class ToolRegistry(Mapping[str, ToolFunction]):
    """Read-only name -> callable table for one workflow."""

    def __init__(self, tools: Mapping[str, ToolFunction] | None = None) -> None:
        table: dict[str, ToolFunction] = {}
        for name, fn in (tools or {}).items():
            if not isinstance(name, str) or not name:
                raise DefinitionError(f"Tool names must be non-empty strings, got {name!r}")
            if not callable(fn):
                raise DefinitionError(f"Tool '{name}' is not callable")
            table[name] = fn
        self._tools = MappingProxyType(table)

    def __getitem__(self, name: str) -> ToolFunction:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._tools))

    def describe(self) -> list[ToolSpec]:
        specs: list[ToolSpec] = []
        for name in self.names():
            fn = self._tools[name]
            params: list[str] = []
            required: list[str] = []
            try:
                signature = inspect.signature(fn)
            except (TypeError, ValueError):
                signature = None
            if signature is not None:
                for p in signature.parameters.values():
                    if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD, p.POSITIONAL_ONLY):
                        continue
                    params.append(p.name)
                    if p.default is p.empty:
                        required.append(p.name)
            doc = inspect.getdoc(fn) or ""
            specs.append(
                ToolSpec(
                    name=name,
                    description=doc.splitlines()[0] if doc else "",
                    parameters=tuple(params),
                    required=tuple(required),
                )
            )
        return specs

    def _bind(self, name: str, arguments: Any) -> ToolFunction:
        fn = self._tools.get(name)
        if fn is None:
            raise ToolInvocationError(name, f"Unknown tool '{name}'")
        if not isinstance(arguments, Mapping) or not all(isinstance(k, str) for k in arguments):
            raise ToolInvocationError(name, "Tool arguments must be a mapping of names to values")
        try:
            inspect.signature(fn).bind(**arguments)
        except TypeError as e:
            raise ToolInvocationError(name, f"Invalid arguments for '{name}': {e}") from e
        except ValueError:
            # Builtins without an introspectable signature; let the call decide.
            pass
        return fn

    async def invoke(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResult:
        """Call a tool by name. Always returns a result, never raises."""

        args = {} if arguments is None else arguments
        try:
            fn = self._bind(name, args)
        except ToolInvocationError as e:
            logger.warning("Tool call rejected", extra={"tool": name, "reason": str(e)})
            return ToolResult.failure(name, e)

        try:
            if inspect.iscoroutinefunction(fn):
                output = await fn(**args)
            else:
                # Sync tools run in a worker thread, off the event loop.
                output = await asyncio.to_thread(fn, **args)
                if inspect.isawaitable(output):
                    output = await output
        except Exception as e:
            logger.exception("Tool raised", extra={"tool": name})
            return ToolResult.failure(
                name, ToolInvocationError(name, f"Tool '{name}' failed: {type(e).__name__}: {e}")
            )

        try:
            serialized = to_serializable(output)
        except Exception as e:
            logger.warning(
                "Tool output is not serializable", extra={"tool": name, "reason": str(e)}
            )
            return ToolResult.failure(
                name,
                ToolInvocationError(
                    name,
                    f"Tool '{name}' returned an unserializable value: {type(e).__name__}: {e}",
                ),
            )
        return ToolResult(tool=name, ok=True, output=serialized)


@dataclass
class ToolSession:
    """A per-session view of a registry that records every invocation.

    Once closed, further invocations return an error result.
    """

    registry: ToolRegistry
    session_id: str = ""
    invocations: list[ToolInvocation] = field(default_factory=list)
    closed: bool = False

    @property
    def available(self) -> tuple[str, ...]:
        return self.registry.names()

    async def invoke(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResult:
        args = dict(arguments) if isinstance(arguments, Mapping) else arguments
        if self.closed:
            result = ToolResult.failure(
                name, ToolInvocationError(name, f"Session {self.session_id} is closed")
            )
        else:
            result = await self.registry.invoke(name, args)
        self.invocations.append(
            ToolInvocation(
                name=name,
                arguments=args if isinstance(args, dict) else {},
                result=result,
            )
        )
        return result

    def drain(self) -> list[ToolInvocation]:
        """Return and forget the invocations recorded since the last drain."""

        out, self.invocations = self.invocations, []
        return out

    def close(self) -> None:
        self.closed = True


def _module_tools(module: ModuleType) -> dict[str, ToolFunction]:
    explicit = getattr(module, "TOOLS", None)
    if explicit is not None:
        if not isinstance(explicit, Mapping):
            raise DefinitionError(f"{module.__name__}.TOOLS must be a mapping")
        return dict(explicit)
    return {
        name: obj
        for name, obj in vars(module).items()
        if not name.startswith("_")
        and inspect.isfunction(obj)
        and obj.__module__ == module.__name__
    }


def load_tool_module(path: Path, *, workflow: str) -> ToolRegistry:
    """Import a tool module from a file and build its registry."""

    module_name = f"agent_workflow_engine_tools.{workflow}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise DefinitionError(f"Cannot import tool module {path}", workflow=workflow)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise DefinitionError(
            f"Tool module {path} failed to import: {type(e).__name__}: {e}", workflow=workflow
        ) from e
    try:
        return ToolRegistry(_module_tools(module))
    except DefinitionError as e:
        raise DefinitionError(str(e), workflow=workflow) from e
