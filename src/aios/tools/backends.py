"""
aios Backend Tool Servers

Client side of the tool-invocation protocol. The registry only talks to
ToolBackend, so a tool server can live in-process, in a subprocess
speaking JSON lines over stdio, or behind HTTP without the safety
executor noticing the difference.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from aios.exceptions import BackendProtocolError
from aios.logging import get_logger
from aios.tools.models import ToolDescriptor, ToolRequest, ToolResponse
from aios.tools.server import ToolServer

logger = get_logger("aios.tools.backends")


class ToolBackend(ABC):
    """Anything that can answer ToolRequests."""

    name: str = "backend"

    @abstractmethod
    async def invoke(self, request: ToolRequest) -> ToolResponse:
        """Run one request. Transport problems raise BackendProtocolError."""

    @abstractmethod
    async def list_tools(self) -> list[ToolDescriptor]:
        """Descriptors of every tool this backend serves."""

    async def aclose(self) -> None:
        return None


class InProcessBackend(ToolBackend):
    """Calls a ToolServer directly in the current event loop."""

    def __init__(self, server: ToolServer):
        self._server = server
        self.name = f"inprocess:{server.name}"

    async def invoke(self, request: ToolRequest) -> ToolResponse:
        return await self._server.call(request)

    async def list_tools(self) -> list[ToolDescriptor]:
        return self._server.list_tools()


class SubprocessBackend(ToolBackend):
    """Talks to a tool server process over stdin/stdout JSON lines.

    The process is started lazily and reused. Requests are serialized;
    replies whose id does not match the pending request (left over from a
    request abandoned on timeout) are discarded.
    """

    def __init__(
        self,
        argv: Sequence[str],
        name: str | None = None,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        limit: int = 2**20,
    ):
        if not argv:
            raise ValueError("SubprocessBackend needs a command line")
        self._argv = list(argv)
        self._env = dict(env) if env is not None else None
        self._cwd = cwd
        self._limit = limit
        self._proc: asyncio.subprocess.Process | None = None
        self._lock = asyncio.Lock()
        self._counter = 0
        self.name = name or f"subprocess:{self._argv[0]}"

    async def _ensure_started(self) -> asyncio.subprocess.Process:
        if self._proc is not None and self._proc.returncode is None:
            return self._proc
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self._argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                env=self._env,
                cwd=self._cwd,
                limit=self._limit,
            )
        except OSError as e:
            raise BackendProtocolError(self.name, f"cannot start tool server: {e}") from e
        logger.info("Started tool server process", extra={"event_type": "BACKEND_START"})
        return self._proc

    async def _roundtrip(self, message: dict[str, Any]) -> dict[str, Any]:
        async with self._lock:
            proc = await self._ensure_started()
            assert proc.stdin is not None and proc.stdout is not None
            try:
                proc.stdin.write((json.dumps(message, default=str) + "\n").encode())
                await proc.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                raise BackendProtocolError(self.name, f"tool server closed its input: {e}") from e

            while True:
                try:
                    line = await proc.stdout.readline()
                except ValueError as e:
                    await self._discard(proc)
                    raise BackendProtocolError(self.name, f"reply exceeds {self._limit} bytes") from e
                if not line:
                    raise BackendProtocolError(self.name, "tool server exited without replying")
                try:
                    reply = json.loads(line)
                except json.JSONDecodeError as e:
                    await self._discard(proc)
                    raise BackendProtocolError(self.name, f"malformed reply: {e}") from e
                if not isinstance(reply, dict):
                    await self._discard(proc)
                    raise BackendProtocolError(
                        self.name, f"malformed reply: expected an object, got {type(reply).__name__}"
                    )
                if reply.get("id") == message["id"]:
                    break
                logger.debug("Discarding stale reply", extra={"event_type": "BACKEND_STALE_REPLY"})

        if "error" in reply:
            raise BackendProtocolError(self.name, str(reply["error"]))
        return reply

    async def _discard(self, proc: asyncio.subprocess.Process) -> None:
        """Kill a server whose output can no longer be trusted; the next call restarts it."""
        if self._proc is proc:
            self._proc = None
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._drain(proc), timeout=5.0)
        logger.warning("Killed tool server after a bad reply", extra={"event_type": "BACKEND_RESET"})

    async def _drain(self, proc: asyncio.subprocess.Process) -> None:
        # unread output keeps the pipe open, so wait() would never return
        while await proc.stdout.read(self._limit):
            pass
        await proc.wait()

    def _next_id(self) -> str:
        self._counter += 1
        return f"{self.name}-{self._counter}"

    async def invoke(self, request: ToolRequest) -> ToolResponse:
        reply = await self._roundtrip(
            {"id": self._next_id(), "method": "invoke", "params": request.model_dump(mode="json")}
        )
        reply["id"] = request.id
        try:
            return ToolResponse.model_validate(reply)
        except ValidationError as e:
            raise BackendProtocolError(self.name, f"invalid response: {e.error_count()} error(s)", request.tool_name) from e

    async def list_tools(self) -> list[ToolDescriptor]:
        reply = await self._roundtrip({"id": self._next_id(), "method": "list_tools"})
        try:
            return [ToolDescriptor.model_validate(d) for d in reply.get("tools", [])]
        except ValidationError as e:
            raise BackendProtocolError(self.name, f"invalid tool list: {e.error_count()} error(s)") from e

    async def aclose(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None or proc.returncode is not None:
            return
        if proc.stdin is not None:
            proc.stdin.close()
        try:
            await asyncio.wait_for(proc.wait(), timeout=5.0)
        except TimeoutError:
            proc.kill()
            await proc.wait()


class HttpBackend(ToolBackend):
    """Talks to a remote tool server exposing /tools and /invoke."""

    def __init__(
        self,
        base_url: str = "",
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        name: str | None = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.name = name or f"http:{base_url or self._client.base_url}"

    async def invoke(self, request: ToolRequest) -> ToolResponse:
        try:
            response = await self._client.post("/invoke", json=request.model_dump(mode="json"))
            response.raise_for_status()
            return ToolResponse.model_validate(response.json())
        except httpx.HTTPError as e:
            raise BackendProtocolError(self.name, f"{type(e).__name__}: {e}", request.tool_name) from e
        except (ValidationError, ValueError) as e:
            raise BackendProtocolError(self.name, f"invalid response: {e}", request.tool_name) from e

    async def list_tools(self) -> list[ToolDescriptor]:
        try:
            response = await self._client.get("/tools")
            response.raise_for_status()
            return [ToolDescriptor.model_validate(d) for d in response.json()]
        except httpx.HTTPError as e:
            raise BackendProtocolError(self.name, f"{type(e).__name__}: {e}") from e
        except (ValidationError, ValueError) as e:
            raise BackendProtocolError(self.name, f"invalid tool list: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
