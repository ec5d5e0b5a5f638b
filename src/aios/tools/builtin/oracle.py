"""install_oracle_database: full Oracle Database installation and configuration."""

from __future__ import annotations

from aios.core.models import RiskLevel
from aios.tools.builtin import system
from aios.tools.models import ContentBlock, ToolDescriptor, ToolResponse
from aios.tools.server import LocalTool

VERSIONS = ["21c", "19c", "23c"]

# version -> (rpm package, service / init script name)
_EDITIONS = {
    "23c": ("oracle-database-free-23c", "oracle-free-23c"),
    "21c": ("oracle-database-xe-21c", "oracle-xe-21c"),
    "19c": ("oracle-database-ee-19c", "oracledb_ORCLCDB-19c"),
}


def _steps(args: dict, manager: str) -> list[list[str]]:
    version = args["version"]
    install_path = args["install_path"]
    package, service = _EDITIONS[version]
    steps = [
        system.privileged(["groupadd", "-f", "oinstall"]),
        system.privileged(["groupadd", "-f", "dba"]),
        system.privileged(["sh", "-c", "id oracle >/dev/null 2>&1 || useradd -g oinstall -G dba oracle"]),
        system.privileged(["mkdir", "-p", install_path]),
        system.privileged(["chown", "oracle:oinstall", install_path]),
        system.privileged([manager, "install", "-y", package]),
        system.privileged([f"/etc/init.d/{service}", "configure"]),
    ]
    if args["auto_start"]:
        steps.append(system.privileged(["systemctl", "enable", "--now", service]))
    return steps


def _check_memory(args: dict) -> ToolResponse | None:
    available = system.total_memory_gb()
    required = args["memory_gb"]
    if available < required:
        return ToolResponse.from_text(
            "Insufficient memory for Oracle Database installation\n\n"
            f"Required: {required}GB\nAvailable: {available}GB\n\n"
            "Increase memory or reduce the memory_gb parameter.",
            is_error=True,
        )
    return None


def _rpm_manager() -> str:
    manager = system.detect_package_manager()
    return manager if manager in ("dnf", "yum") else "dnf"


def _plan(args: dict) -> ToolResponse:
    refused = _check_memory(args)
    if refused is not None:
        return refused

    info = system.system_info()
    version = args["version"]
    install_path = args["install_path"]
    manager = _rpm_manager()
    step_lines = [
        "Create Oracle user and groups (oinstall, dba)",
        f"Create directory structure at {install_path}",
        f"Install {_EDITIONS[version][0]} with {manager}",
        "Configure the initial database",
        "Configure auto-start service" if args["auto_start"] else "Skip auto-start configuration",
    ]
    text = "\n".join(
        [
            f"Oracle Database {version} installation plan",
            "",
            "System requirements:",
            f"- Memory: {info['memory_gb']}GB available ({args['memory_gb']}GB required)",
            f"- Platform: {info['platform']} {'ok' if info['platform'] == 'linux' else 'UNSUPPORTED'}",
            f"- Architecture: {info['arch']} {'ok' if info['is_64bit'] else 'UNSUPPORTED'}",
            "",
            "Configuration:",
            f"- Memory allocation: {args['memory_gb']}GB",
            f"- Storage allocation: {args['storage_gb']}GB",
            f"- Installation path: {install_path}",
            f"- Auto-start: {'enabled' if args['auto_start'] else 'disabled'}",
            "",
            "Steps:",
            *(f"{i}. {line}" for i, line in enumerate(step_lines, start=1)),
        ]
    )
    return ToolResponse(
        content=[
            ContentBlock(type="text", value=text),
            ContentBlock(
                type="structured",
                value={
                    "commands": [" ".join(s) for s in _steps(args, manager)],
                    "estimated_effect": (
                        f"creates the oracle user, installs Oracle Database {version} under {install_path} "
                        f"with {args['memory_gb']}GB memory and {args['storage_gb']}GB storage"
                    ),
                },
            ),
        ]
    )


async def _install(args: dict) -> ToolResponse:
    refused = _check_memory(args)
    if refused is not None:
        return refused
    report = await system.run_steps(_steps(args, _rpm_manager()))
    verb = "Installed" if report.ok else "Failed to install"
    return report.to_response(f"{verb} Oracle Database {args['version']} at {args['install_path']}")


INSTALL_ORACLE = ToolDescriptor(
    name="install_oracle_database",
    description="Complete Oracle Database installation and configuration",
    parameter_schema={
        "type": "object",
        "properties": {
            "version": {
                "type": "string",
                "enum": VERSIONS,
                "default": "21c",
                "description": "Oracle Database version to install",
            },
            "memory_gb": {
                "type": "number",
                "minimum": 1,
                "default": 8,
                "description": "Memory allocation in GB",
            },
            "storage_gb": {
                "type": "number",
                "minimum": 1,
                "default": 50,
                "description": "Storage allocation in GB",
            },
            "auto_start": {
                "type": "boolean",
                "default": True,
                "description": "Auto-start Oracle services on boot",
            },
            "install_path": {
                "type": "string",
                "format": "path",
                "pattern": r"^/[A-Za-z0-9._/-]*$",
                "default": "/opt/oracle",
                "description": "Installation path",
            },
        },
    },
    risk_hint=RiskLevel.DESTRUCTIVE,
    dry_run_capable=True,
    keywords=[
        "install oracle",
        "install oracle database",
        "oracle database",
        "oracle db",
        "setup oracle",
        "set up oracle",
    ],
    parameter_hints={
        "memory_gb": ["memory", "ram", "mem"],
        "storage_gb": ["storage", "disk"],
        "auto_start": ["auto-start", "auto start", "autostart", "on boot"],
        "install_path": ["path", "into", "in", "at"],
    },
    timeout_seconds=3600.0,
)

INSTALL_ORACLE_TOOL = LocalTool(descriptor=INSTALL_ORACLE, execute=_install, dry_run=_plan)
