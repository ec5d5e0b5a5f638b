"""
aios Tool Registry

Central catalog of backend tools. Each tool is registered once with a
ToolDescriptor (schema, risk hint, dry-run capability) and the backend
that serves it. The registry validates parameters against the declared
schema before anything is dispatched to a backend.

Reads are lock-free. Removing a tool waits until no in-flight
invocation or executing command still references it.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Any

from jsonschema import Draft202012Validator

from aios.core.models import ExecutionMode, RiskLevel
from aios.exceptions import InvalidParameterError, StaleToolReferenceError, ToolRegistrationError
from aios.logging import get_logger
from aios.tools.backends import ToolBackend
from aios.tools.models import ToolDescriptor, ToolRequest, ToolResponse

logger = get_logger("aios.tools.registry")


class RegisteredTool:
    """A descriptor bound to the backend that serves it."""

    def __init__(self, descriptor: ToolDescriptor, backend: ToolBackend):
        self.descriptor = descriptor
        self.backend = backend
        self.validator = Draft202012Validator(descriptor.parameter_schema)

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def risk_hint(self) -> RiskLevel:
        return self.descriptor.risk_hint


class ToolRegistry:
    """Registry of available tools, keyed by validated tool name.

    Declaration order is preserved and used as the final routing tie-break.
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}
        self._in_flight: Counter[str] = Counter()
        self._idle = asyncio.Condition()

    # ─── Mutation ──────────────────────────────────────────

    def register(self, descriptor: ToolDescriptor, backend: ToolBackend) -> RegisteredTool:
        """Register a tool with the backend that serves it.

        Raises ToolRegistrationError if the name is already taken.
        """
        if descriptor.name in self._tools:
            raise ToolRegistrationError(descriptor.name, "already registered")
        Draft202012Validator.check_schema(descriptor.parameter_schema)
        tool = RegisteredTool(descriptor, backend)
        self._tools[descriptor.name] = tool
        logger.info(
            "Registered tool",
            extra={"tool_name": descriptor.name, "risk_level": descriptor.risk_hint.value},
        )
        return tool

    async def register_backend(self, backend: ToolBackend) -> list[ToolDescriptor]:
        """Register every tool a backend advertises."""
        descriptors = await backend.list_tools()
        for descriptor in descriptors:
            self.register(descriptor, backend)
        return descriptors

    async def unregister(self, name: str) -> ToolDescriptor:
        """Remove a tool once nothing in flight references it."""
        if name not in self._tools:
            raise ToolRegistrationError(name, "is not registered")
        async with self._idle:
            await self._idle.wait_for(lambda: self._in_flight[name] == 0)
            tool = self._tools.pop(name, None)
        if tool is None:
            raise ToolRegistrationError(name, "is not registered")
        logger.info("Unregistered tool", extra={"tool_name": name})
        return tool.descriptor

    # ─── Lookup ────────────────────────────────────────────

    def lookup(self, name: str) -> ToolDescriptor | None:
        tool = self._tools.get(name)
        return tool.descriptor if tool else None

    def get(self, name: str) -> RegisteredTool | None:
        return self._tools.get(name)

    def descriptors(self) -> list[ToolDescriptor]:
        """All descriptors in declaration order."""
        return [t.descriptor for t in self._tools.values()]

    def missing(self, names: Iterable[str]) -> list[str]:
        """Names that do not resolve right now."""
        return [n for n in names if n not in self._tools]

    def get_schemas(self) -> list[dict]:
        """Tool schemas in the shape language models expect."""
        return [
            {
                "name": t.descriptor.name,
                "description": t.descriptor.description,
                "input_schema": t.descriptor.parameter_schema,
            }
            for t in self._tools.values()
        ]

    # ─── Parameters ────────────────────────────────────────

    def apply_defaults(self, name: str, params: dict[str, Any]) -> dict[str, Any]:
        """Fill omitted top-level properties that declare a default."""
        descriptor = self._require(name).descriptor
        filled = dict(params)
        for key, prop in descriptor.properties.items():
            if key not in filled and isinstance(prop, dict) and "default" in prop:
                filled[key] = prop["default"]
        return filled

    def missing_required(self, name: str, params: dict[str, Any]) -> list[str]:
        descriptor = self._require(name).descriptor
        return [key for key in descriptor.required if key not in params]

    def validate(self, name: str, params: dict[str, Any]) -> dict[str, Any]:
        """Return params with defaults applied, or raise InvalidParameterError."""
        tool = self._require(name)
        filled = self.apply_defaults(name, params)
        violations = [
            _describe(error)
            for error in sorted(tool.validator.iter_errors(filled), key=lambda e: list(e.path))
        ]
        if violations:
            raise InvalidParameterError(name, violations)
        return filled

    # ─── Invocation ────────────────────────────────────────

    async def invoke(self, name: str, params: dict[str, Any], mode: ExecutionMode) -> ToolResponse:
        """Validate params and dispatch one request to the tool's backend."""
        tool = self._require(name)
        arguments = self.validate(name, params)
        request = ToolRequest(tool_name=name, arguments=arguments, mode=mode)
        async with self.reserve([name]):
            return await tool.backend.invoke(request)

    @asynccontextmanager
    async def reserve(self, names: Iterable[str]) -> AsyncIterator[None]:
        """Hold references so the tools cannot be unregistered meanwhile."""
        held = list(names)
        missing = self.missing(held)
        if missing:
            raise StaleToolReferenceError(missing)
        self._in_flight.update(held)
        try:
            yield
        finally:
            self._in_flight.subtract(held)
            async with self._idle:
                self._idle.notify_all()

    def _require(self, name: str) -> RegisteredTool:
        tool = self._tools.get(name)
        if tool is None:
            raise StaleToolReferenceError([name])
        return tool

    async def aclose(self) -> None:
        """Close every distinct backend."""
        seen: set[int] = set()
        for tool in self._tools.values():
            if id(tool.backend) not in seen:
                seen.add(id(tool.backend))
                await tool.backend.aclose()

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools


def _describe(error) -> str:
    location = ".".join(str(p) for p in error.path)
    return f"{location}: {error.message}" if location else error.message
