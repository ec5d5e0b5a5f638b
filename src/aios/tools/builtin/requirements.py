"""check_system_requirements: read-only host check before an install."""

from __future__ import annotations

import platform

from aios.core.models import RiskLevel
from aios.tools.builtin import system
from aios.tools.models import ContentBlock, ToolDescriptor, ToolResponse
from aios.tools.server import LocalTool


def _mark(ok: bool, warn: bool = False) -> str:
    if ok:
        return "[ok]"
    return "[warn]" if warn else "[fail]"


def requirement_lines(software: str, info: dict) -> list[str]:
    """Per-software minimums checked against `info` (see system.system_info)."""
    name = software.lower()
    mem = info["memory_gb"]
    linux = info["platform"] == "linux"
    if name == "oracle":
        return [
            f"{_mark(mem >= 2)} Memory: {mem}GB (min 2GB required)",
            f"{_mark(info['cpus'] >= 1)} CPUs: {info['cpus']} (min 1 required)",
            f"{_mark(mem >= 8, warn=True)} Recommended: 8GB+ RAM",
            f"{_mark(linux)} Linux platform ({info['platform']})",
            f"{_mark(info['is_64bit'])} 64-bit architecture ({info['arch']})",
        ]
    if name == "docker":
        return [
            f"{_mark(linux)} Linux platform ({info['platform']})",
            f"{_mark(mem >= 1)} Memory: {mem}GB (min 1GB required)",
            f"{_mark(info['is_64bit'])} 64-bit architecture ({info['arch']})",
        ]
    if name in ("nginx", "apache"):
        return [
            f"{_mark(True)} Memory: {mem}GB (min 128MB required)",
            f"{_mark(info['cpus'] >= 1)} CPUs: {info['cpus']} (min 1 required)",
            f"{_mark(linux, warn=True)} Linux platform preferred ({info['platform']})",
        ]
    return [
        f"- OS: {info['os']}",
        f"- Platform: {info['platform']}",
        f"- Architecture: {info['arch']}",
        f"- Memory: {mem}GB",
        f"- CPUs: {info['cpus']}",
    ]


def _plan(args: dict) -> ToolResponse:
    checks = ["memory", "cpus", "platform", "architecture"]
    if args["detailed"]:
        checks += ["disk space", "package manager", "free memory"]
    return ToolResponse(
        content=[
            ContentBlock(
                type="text",
                value=f"Would inspect {', '.join(checks)} for {args['software']} (read-only)",
            ),
            ContentBlock(type="structured", value={"estimated_effect": "none (read-only inspection)"}),
        ]
    )


def _check(args: dict) -> ToolResponse:
    software = args["software"]
    info = system.system_info()
    lines = [f"System requirements check for {software.upper()}", ""]
    lines += requirement_lines(software, info)

    if args["detailed"]:
        lines += [
            "",
            "Detailed system information:",
            f"- Hostname: {platform.node()}",
            f"- Free memory: {system.free_memory_gb()}GB",
            f"- Disk space: {system.disk_space('/')}",
            f"- Package manager: {system.detect_package_manager() or 'unknown'}",
            f"- Python: {platform.python_version()}",
        ]
    return ToolResponse(
        content=[
            ContentBlock(type="text", value="\n".join(lines)),
            ContentBlock(type="structured", value={"system": info}),
        ]
    )


CHECK_REQUIREMENTS = ToolDescriptor(
    name="check_system_requirements",
    description="Check system requirements for software installation",
    parameter_schema={
        "type": "object",
        "properties": {
            "software": {
                "type": "string",
                "description": "Software to check requirements for",
            },
            "detailed": {
                "type": "boolean",
                "default": False,
                "description": "Show detailed system information",
            },
        },
        "required": ["software"],
    },
    risk_hint=RiskLevel.SAFE,
    dry_run_capable=True,
    keywords=[
        "check requirements",
        "check system requirements",
        "system requirements",
        "requirements",
        "requirements for",
        "can i install",
    ],
    parameter_hints={
        "software": ["requirements for", "for", "install", "requirements"],
        "detailed": ["detailed", "details", "verbose"],
    },
    timeout_seconds=30.0,
)

CHECK_REQUIREMENTS_TOOL = LocalTool(descriptor=CHECK_REQUIREMENTS, execute=_check, dry_run=_plan)
