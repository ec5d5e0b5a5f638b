"""Host inspection and command helpers shared by the built-in tools."""

from __future__ import annotations

import asyncio
import os
import platform
import shutil
from collections.abc import Sequence
from dataclasses import dataclass, field

from aios.logging import get_logger
from aios.tools.models import ContentBlock, ToolResponse

logger = get_logger("aios.tools.builtin")

# Probe order matters: first hit wins
PACKAGE_MANAGERS = ("apt", "yum", "dnf", "pacman", "brew", "snap")

MAX_OUTPUT_CHARS = 8000


@dataclass
class CommandOutput:
    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class StepReport:
    """Transcript of a multi-command tool run."""

    outputs: list[CommandOutput] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outputs)

    def to_response(self, summary: str) -> ToolResponse:
        lines = [summary, ""]
        for out in self.outputs:
            status = "ok" if out.ok else f"exit {out.returncode}"
            lines.append(f"$ {' '.join(out.argv)}  [{status}]")
            text = (out.stdout if out.ok else out.stderr or out.stdout).strip()
            if text:
                lines.append(text[-MAX_OUTPUT_CHARS:])
        return ToolResponse(
            content=[
                ContentBlock(type="text", value="\n".join(lines)),
                ContentBlock(
                    type="structured",
                    value={"steps": [{"argv": o.argv, "returncode": o.returncode} for o in self.outputs]},
                ),
            ],
            is_error=not self.ok,
        )


def privileged(argv: Sequence[str]) -> list[str]:
    """Prefix sudo unless already running as root."""
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return list(argv)
    return ["sudo", *argv]


async def run_command(argv: Sequence[str], timeout: float | None = None) -> CommandOutput:
    """Run one command without a shell and capture its output."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return CommandOutput(list(argv), returncode=127, stderr=str(e))

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        return CommandOutput(list(argv), returncode=124, stderr=f"timed out after {timeout}s")
    except asyncio.CancelledError:
        # the child is not killed here and keeps running
        if proc.returncode is None:
            logger.warning(
                "Abandoned %s (pid %d) while it was still running",
                argv[0],
                proc.pid,
                extra={"event_type": "ORPHANED_PROCESS"},
            )
        raise

    return CommandOutput(
        list(argv),
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


async def run_steps(steps: Sequence[Sequence[str]]) -> StepReport:
    """Run commands in order, stopping at the first failure."""
    report = StepReport()
    for argv in steps:
        out = await run_command(argv)
        report.outputs.append(out)
        if not out.ok:
            break
    return report


def detect_package_manager() -> str | None:
    for manager in PACKAGE_MANAGERS:
        if shutil.which(manager):
            return manager
    return None


def total_memory_gb() -> int:
    try:
        pages = os.sysconf("SC_PHYS_PAGES")
        page_size = os.sysconf("SC_PAGE_SIZE")
    except (AttributeError, ValueError, OSError):
        return 0
    return round(pages * page_size / 1024**3)


def free_memory_gb() -> int:
    try:
        pages = os.sysconf("SC_AVPHYS_PAGES")
        page_size = os.sysconf("SC_PAGE_SIZE")
    except (AttributeError, ValueError, OSError):
        return 0
    return round(pages * page_size / 1024**3)


def disk_space(path: str = "/") -> str:
    try:
        usage = shutil.disk_usage(path)
    except OSError:
        return "Unable to determine disk space"
    return f"{usage.total / 1024**3:.0f}G total, {usage.free / 1024**3:.0f}G available"


def system_info() -> dict:
    machine = platform.machine().lower()
    return {
        "os": platform.system(),
        "platform": platform.system().lower(),
        "arch": machine,
        "is_64bit": machine in ("x86_64", "amd64", "aarch64", "arm64"),
        "memory_gb": total_memory_gb(),
        "cpus": os.cpu_count() or 1,
    }
