"""install_package: install software with package manager auto-detection."""

from __future__ import annotations

from aios.core.models import RiskLevel
from aios.tools.builtin import system
from aios.tools.models import ContentBlock, ToolDescriptor, ToolResponse
from aios.tools.server import LocalTool

MANAGERS = ["auto", "apt", "yum", "dnf", "pacman", "brew", "snap"]


def build_install_argv(
    package: str,
    manager: str,
    version: str | None = None,
    options: list[str] | None = None,
) -> list[str]:
    """Command line for one install, with the manager's version syntax."""
    if manager == "apt":
        argv = system.privileged(["apt", "install", "-y", f"{package}={version}" if version else package])
    elif manager in ("yum", "dnf"):
        argv = system.privileged([manager, "install", "-y", f"{package}-{version}" if version else package])
    elif manager == "pacman":
        argv = system.privileged(["pacman", "-S", "--noconfirm", package])
    elif manager == "brew":
        argv = ["brew", "install", f"{package}@{version}" if version else package]
    elif manager == "snap":
        argv = system.privileged(["snap", "install", package])
    else:
        raise ValueError(f"Unsupported package manager: {manager}")
    return argv + list(options or [])


def _resolve_manager(requested: str) -> str:
    if requested != "auto":
        return requested
    detected = system.detect_package_manager()
    if detected is None:
        raise RuntimeError("No supported package manager found (tried " + ", ".join(system.PACKAGE_MANAGERS) + ")")
    return detected


def _plan(args: dict) -> ToolResponse:
    package = args["package"]
    version = args.get("version")
    manager = _resolve_manager(args.get("manager", "auto"))
    argv = build_install_argv(package, manager, version, args.get("options"))
    command = " ".join(argv)
    target = f"{package} (version {version})" if version else package
    return ToolResponse(
        content=[
            ContentBlock(type="text", value=f"Would install {target} using {manager}: {command}"),
            ContentBlock(
                type="structured",
                value={
                    "command": command,
                    "manager": manager,
                    "estimated_effect": f"installs {target} and its dependencies via {manager}",
                },
            ),
        ]
    )


async def _install(args: dict) -> ToolResponse:
    package = args["package"]
    manager = _resolve_manager(args.get("manager", "auto"))
    argv = build_install_argv(package, manager, args.get("version"), args.get("options"))
    report = await system.run_steps([argv])
    verb = "Installed" if report.ok else "Failed to install"
    return report.to_response(f"{verb} {package} using {manager}")


INSTALL_PACKAGE = ToolDescriptor(
    name="install_package",
    description="Install software packages with auto-detection of package manager",
    parameter_schema={
        "type": "object",
        "properties": {
            "package": {
                "type": "string",
                "pattern": r"^[A-Za-z0-9][A-Za-z0-9+._-]*$",
                "description": "Package name to install",
            },
            "version": {
                "type": "string",
                "pattern": r"^[A-Za-z0-9][A-Za-z0-9+.:~_-]*$",
                "description": "Specific version (optional)",
            },
            "options": {
                "type": "array",
                "items": {"type": "string", "pattern": r"^--?[A-Za-z0-9][A-Za-z0-9=._-]*$"},
                "description": "Additional installation options",
            },
            "manager": {
                "type": "string",
                "enum": MANAGERS,
                "default": "auto",
                "description": "Package manager to use (auto-detected if not specified)",
            },
        },
        "required": ["package"],
    },
    risk_hint=RiskLevel.MODERATE,
    dry_run_capable=True,
    keywords=["install", "install package", "add package", "install the package"],
    parameter_hints={
        "package": ["install package", "install the package", "install", "add package", "package"],
        "version": ["version"],
        "options": ["options", "flags"],
    },
    timeout_seconds=900.0,
)

INSTALL_PACKAGE_TOOL = LocalTool(descriptor=INSTALL_PACKAGE, execute=_install, dry_run=_plan)
