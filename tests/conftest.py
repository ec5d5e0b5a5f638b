"""Shared test fixtures for the aios test suite."""

import asyncio

import pytest

from aios.core.models import ExecutionMode, RiskLevel
from aios.tools.backends import ToolBackend
from aios.tools.builtin import register_all_builtins, system
from aios.tools.models import ToolDescriptor, ToolRequest, ToolResponse
from aios.tools.registry import ToolRegistry


def make_descriptor(
    name: str,
    risk: RiskLevel = RiskLevel.SAFE,
    dry_run_capable: bool = True,
    timeout_seconds: float | None = None,
    safe_interrupt: bool = False,
) -> ToolDescriptor:
    """A small descriptor with one required string parameter, `target`."""
    phrase = name.replace("_", " ")
    return ToolDescriptor(
        name=name,
        description=f"Run {phrase}",
        parameter_schema={
            "type": "object",
            "properties": {
                "target": {"type": "string", "pattern": r"^[a-z0-9.-]+$"},
                "force": {"type": "boolean", "default": False},
            },
            "required": ["target"],
        },
        risk_hint=risk,
        dry_run_capable=dry_run_capable,
        keywords=[phrase],
        parameter_hints={"target": [phrase]},
        timeout_seconds=timeout_seconds,
        safe_interrupt=safe_interrupt,
    )


class RecordingBackend(ToolBackend):
    """Backend double: records every request, replays scripted behavior.

    A script entry may be a ToolResponse, an exception to raise, or a
    callable (sync or async) taking the request.
    """

    def __init__(self):
        self.calls: list[ToolRequest] = []
        self._scripts: dict[tuple[str, ExecutionMode], object] = {}

    def script(self, tool: str, behavior, mode: ExecutionMode = ExecutionMode.EXECUTE) -> None:
        self._scripts[(tool, mode)] = behavior

    async def invoke(self, request: ToolRequest) -> ToolResponse:
        self.calls.append(request)
        behavior = self._scripts.get((request.tool_name, request.mode))
        if callable(behavior) and not isinstance(behavior, type):
            behavior = behavior(request)
            if asyncio.iscoroutine(behavior):
                behavior = await behavior
        if isinstance(behavior, BaseException):
            raise behavior
        if isinstance(behavior, ToolResponse):
            return behavior
        args = ", ".join(f"{k}={v}" for k, v in sorted(request.arguments.items()))
        return ToolResponse.from_text(f"{request.mode.value} {request.tool_name}({args})", request_id=request.id)

    async def list_tools(self) -> list[ToolDescriptor]:
        return []

    def calls_in(self, mode: ExecutionMode) -> list[str]:
        return [c.tool_name for c in self.calls if c.mode == mode]


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def registry(backend):
    """Registry of fake tools covering every risk level."""
    registry = ToolRegistry()
    registry.register(make_descriptor("read_status", RiskLevel.SAFE), backend)
    registry.register(make_descriptor("apply_change", RiskLevel.MODERATE), backend)
    registry.register(make_descriptor("wipe_disk", RiskLevel.DESTRUCTIVE), backend)
    registry.register(make_descriptor("legacy_script", RiskLevel.MODERATE, dry_run_capable=False), backend)
    return registry


@pytest.fixture
def builtin_registry():
    registry = ToolRegistry()
    register_all_builtins(registry)
    return registry


@pytest.fixture
def fake_host(monkeypatch):
    """Pretend to be a 16GB apt-based Linux host; record commands instead of running them."""
    ran: list[list[str]] = []

    async def fake_run_command(argv, timeout=None):
        ran.append(list(argv))
        return system.CommandOutput(list(argv), returncode=0, stdout="done")

    monkeypatch.setattr(system, "run_command", fake_run_command)
    monkeypatch.setattr(system, "detect_package_manager", lambda: "apt")
    monkeypatch.setattr(system, "total_memory_gb", lambda: 16)
    monkeypatch.setattr(system, "free_memory_gb", lambda: 12)
    monkeypatch.setattr(system, "disk_space", lambda path="/": "100G total, 80G available")
    monkeypatch.setattr(
        system,
        "system_info",
        lambda: {
            "os": "Linux",
            "platform": "linux",
            "arch": "x86_64",
            "is_64bit": True,
            "memory_gb": 16,
            "cpus": 4,
        },
    )
    monkeypatch.setattr(system, "privileged", lambda argv: list(argv))
    return ran
