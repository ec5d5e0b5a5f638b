"""
aios Tool Server

Hosts a set of local tool handlers behind the tool-invocation protocol.
The same ToolServer can be used three ways:

- in-process, wrapped by InProcessBackend
- as a subprocess speaking JSON lines on stdio (serve_stdio)
- over HTTP as a FastAPI app (create_app)

Handlers receive the validated argument dict. Dry-run handlers must
never perform the mutating operation; a tool without a dry-run handler
answers dry-run requests with an error instead of forwarding them.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from aios.core.models import ExecutionMode
from aios.logging import get_logger
from aios.tools.models import ContentBlock, ToolDescriptor, ToolRequest, ToolResponse

logger = get_logger("aios.tools.server")

ToolHandler = Callable[[dict[str, Any]], Any] | Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass
class LocalTool:
    """A descriptor plus the functions that implement it."""

    descriptor: ToolDescriptor
    execute: ToolHandler
    dry_run: ToolHandler | None = None

    @property
    def name(self) -> str:
        return self.descriptor.name


class ToolServer:
    """Dispatches protocol requests to local handlers."""

    def __init__(self, name: str, tools: Iterable[LocalTool] = ()):
        self.name = name
        self._tools: dict[str, LocalTool] = {}
        for tool in tools:
            self.add(tool)

    def add(self, tool: LocalTool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already served by '{self.name}'")
        if tool.descriptor.dry_run_capable and tool.dry_run is None:
            raise ValueError(f"Tool '{tool.name}' claims dry-run support but has no dry-run handler")
        self._tools[tool.name] = tool

    def list_tools(self) -> list[ToolDescriptor]:
        return [t.descriptor for t in self._tools.values()]

    async def call(self, request: ToolRequest) -> ToolResponse:
        """Run one request and normalize whatever the handler returns."""
        tool = self._tools.get(request.tool_name)
        if tool is None:
            return ToolResponse.from_text(
                f"Unknown tool: {request.tool_name}", is_error=True, request_id=request.id
            )

        if request.mode == ExecutionMode.DRY_RUN:
            if tool.dry_run is None:
                return ToolResponse.from_text(
                    f"Tool '{tool.name}' does not support dry run", is_error=True, request_id=request.id
                )
            handler = tool.dry_run
        else:
            handler = tool.execute

        try:
            result = handler(dict(request.arguments))
            if asyncio.iscoroutine(result):
                result = await result
        except Exception as e:
            logger.warning(
                "Tool handler raised",
                exc_info=True,
                extra={"tool_name": tool.name, "mode": request.mode.value},
            )
            return ToolResponse.from_text(f"Error: {type(e).__name__}: {e}", is_error=True, request_id=request.id)

        return _normalize(result, request.id)

    async def handle_message(self, message: dict[str, Any]) -> dict[str, Any]:
        """Handle one decoded wire message and return the reply object."""
        message_id = message.get("id")
        method = message.get("method", "invoke")

        if method == "list_tools":
            return {
                "id": message_id,
                "tools": [d.model_dump(mode="json") for d in self.list_tools()],
            }

        if method == "invoke":
            try:
                request = ToolRequest.model_validate(message.get("params") or {})
            except ValidationError as e:
                return {"id": message_id, "error": f"Invalid request: {e.error_count()} error(s)"}
            response = await self.call(request)
            return {**response.model_dump(mode="json"), "id": message_id}

        return {"id": message_id, "error": f"Unknown method: {method}"}

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def _normalize(result: Any, request_id: str) -> ToolResponse:
    if isinstance(result, ToolResponse):
        return result.model_copy(update={"id": request_id})
    if isinstance(result, dict | list):
        return ToolResponse(id=request_id, content=[ContentBlock(type="structured", value=result)])
    if isinstance(result, tuple):
        # (text, structured)
        text, structured = result
        return ToolResponse(
            id=request_id,
            content=[
                ContentBlock(type="text", value=str(text)),
                ContentBlock(type="structured", value=structured),
            ],
        )
    return ToolResponse.from_text("" if result is None else str(result), request_id=request_id)


# ─── Stdio transport ────────────────────────────────────────


async def serve_stdio(server: ToolServer, stdin=None, stdout=None) -> None:
    """Serve JSON-line requests until stdin closes."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    loop = asyncio.get_running_loop()
    logger.info("Tool server running on stdio", extra={"event_type": "SERVER_START"})

    while True:
        line = await loop.run_in_executor(None, stdin.readline)
        if not line:
            break
        line = line.strip()
        if not line:
            continue
        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            reply: dict[str, Any] = {"id": None, "error": f"Invalid JSON: {e}"}
        else:
            reply = await server.handle_message(message)
        stdout.write(json.dumps(reply, default=str) + "\n")
        stdout.flush()


def run_stdio(server: ToolServer) -> None:
    """Blocking entry point for `python -m` style tool servers."""
    asyncio.run(serve_stdio(server))


# ─── HTTP transport ─────────────────────────────────────────


def create_app(server: ToolServer):
    """Expose a ToolServer over HTTP.

    Usage:
        uvicorn --factory aios.tools.builtin:create_http_app
    """
    from fastapi import FastAPI

    app = FastAPI(title=f"aios tool server: {server.name}")

    @app.get("/tools")
    async def list_tools() -> list[ToolDescriptor]:
        return server.list_tools()

    @app.post("/invoke")
    async def invoke(request: ToolRequest) -> ToolResponse:
        return await server.call(request)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "server": server.name, "tools": len(server)}

    return app
