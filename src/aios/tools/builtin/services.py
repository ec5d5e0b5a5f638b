"""configure_service: enable and/or start a systemd unit."""

from __future__ import annotations

from aios.core.models import RiskLevel
from aios.tools.builtin import system
from aios.tools.models import ToolDescriptor, ToolResponse
from aios.tools.server import LocalTool


def build_systemctl_argv(service: str, enable: bool, start: bool) -> list[list[str]]:
    if enable and start:
        return [system.privileged(["systemctl", "enable", "--now", service])]
    if enable:
        return [system.privileged(["systemctl", "enable", service])]
    if start:
        return [system.privileged(["systemctl", "start", service])]
    return []


def _plan(args: dict) -> ToolResponse:
    steps = build_systemctl_argv(args["service"], args["enable"], args["start"])
    if not steps:
        return ToolResponse.from_text(f"Nothing to do for {args['service']}: enable and start are both off")
    return ToolResponse.from_text("Would run: " + "; ".join(" ".join(s) for s in steps))


async def _configure(args: dict) -> ToolResponse:
    steps = build_systemctl_argv(args["service"], args["enable"], args["start"])
    report = await system.run_steps(steps)
    verb = "Configured" if report.ok else "Failed to configure"
    return report.to_response(f"{verb} service {args['service']}")


CONFIGURE_SERVICE = ToolDescriptor(
    name="configure_service",
    description="Enable a system service on boot and start it",
    parameter_schema={
        "type": "object",
        "properties": {
            "service": {
                "type": "string",
                "pattern": r"^[A-Za-z0-9][A-Za-z0-9@._-]*$",
                "description": "Service (systemd unit) name",
            },
            "enable": {"type": "boolean", "default": True, "description": "Enable on boot"},
            "start": {"type": "boolean", "default": True, "description": "Start now"},
        },
        "required": ["service"],
    },
    risk_hint=RiskLevel.MODERATE,
    dry_run_capable=True,
    keywords=[
        "enable service",
        "enable the service",
        "start service",
        "restart service",
        "configure service",
        "on boot",
        "at boot",
        "configure auto-start",
        "auto-start",
        "autostart",
        "enable",
    ],
    parameter_hints={
        "service": ["enable the service", "enable service", "service", "enable", "start", "configure"],
    },
    timeout_seconds=120.0,
)

CONFIGURE_SERVICE_TOOL = LocalTool(descriptor=CONFIGURE_SERVICE, execute=_configure, dry_run=_plan)
