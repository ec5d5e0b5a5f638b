"""setup_web_server: install and configure an nginx and/or apache stack."""

from __future__ import annotations

from aios.core.models import RiskLevel
from aios.tools.builtin import system
from aios.tools.models import ContentBlock, ToolDescriptor, ToolResponse
from aios.tools.server import LocalTool

SERVER_TYPES = ["nginx", "apache", "both"]


def _servers(server_type: str) -> list[str]:
    return ["nginx", "apache"] if server_type == "both" else [server_type]


def _apache_package(manager: str) -> str:
    return "httpd" if manager in ("yum", "dnf") else "apache2"


def _steps(args: dict, manager: str) -> list[list[str]]:
    install = ["install", "-y"] if manager != "pacman" else ["-S", "--noconfirm"]
    steps: list[list[str]] = []
    services: list[str] = []
    for server in _servers(args["server_type"]):
        package = "nginx" if server == "nginx" else _apache_package(manager)
        steps.append(system.privileged([manager, *install, package]))
        services.append(package)

    domain = args.get("domain")
    if args["ssl_enabled"] and domain:
        steps.append(system.privileged([manager, *install, "certbot"]))
        for server in _servers(args["server_type"]):
            steps.append(system.privileged([
                "certbot",
                f"--{server}",
                "-d",
                domain,
                "--non-interactive",
                "--agree-tos",
                "--register-unsafely-without-email",
                "--redirect",
            ]))

    if args["auto_start"]:
        for service in services:
            steps.append(system.privileged(["systemctl", "enable", "--now", service]))
    return steps


def _plan(args: dict) -> ToolResponse:
    server_type = args["server_type"]
    ssl = args["ssl_enabled"]
    domain = args.get("domain")
    manager = system.detect_package_manager() or "apt"

    lines = [
        "Web server setup plan",
        "",
        "Configuration:",
        f"- Server type: {server_type}",
        f"- SSL/TLS: {'enabled' if ssl else 'disabled'}",
    ]
    if domain:
        lines.append(f"- Domain: {domain}")
    lines.append(f"- Auto-start: {'enabled' if args['auto_start'] else 'disabled'}")
    for server in _servers(server_type):
        lines += [
            "",
            f"{server.capitalize()} setup:",
            f"1. Install {server} package",
            "2. Configure virtual host",
            f"3. {f'Set up SSL certificate for {domain}' if ssl and domain else 'Skip SSL configuration'}",
            f"4. {'Enable auto-start' if args['auto_start'] else 'Manual start only'}",
        ]
    if ssl and not domain:
        lines += ["", "SSL requested without a domain: certificate setup will be skipped."]

    return ToolResponse(
        content=[
            ContentBlock(type="text", value="\n".join(lines)),
            ContentBlock(
                type="structured",
                value={
                    "commands": [" ".join(s) for s in _steps(args, manager)],
                    "estimated_effect": (
                        f"installs {server_type}"
                        + (f", issues a certificate for {domain}" if ssl and domain else "")
                        + (" and enables it on boot" if args["auto_start"] else "")
                    ),
                },
            ),
        ]
    )


async def _setup(args: dict) -> ToolResponse:
    manager = system.detect_package_manager()
    if manager is None or manager in ("brew", "snap"):
        return ToolResponse.from_text(
            f"Cannot set up a web server with package manager: {manager or 'none found'}", is_error=True
        )
    report = await system.run_steps(_steps(args, manager))
    verb = "Configured" if report.ok else "Failed to configure"
    return report.to_response(f"{verb} {args['server_type']} web server")


SETUP_WEB_SERVER = ToolDescriptor(
    name="setup_web_server",
    description="Install and configure complete web server stack",
    parameter_schema={
        "type": "object",
        "properties": {
            "server_type": {
                "type": "string",
                "enum": SERVER_TYPES,
                "description": "Web server type to install",
            },
            "ssl_enabled": {
                "type": "boolean",
                "default": True,
                "description": "Enable SSL/TLS configuration",
            },
            "domain": {
                "type": "string",
                "format": "hostname",
                "pattern": r"^[A-Za-z0-9]([A-Za-z0-9-]*[A-Za-z0-9])?(\.[A-Za-z0-9]([A-Za-z0-9-]*[A-Za-z0-9])?)+$",
                "description": "Domain for SSL certificate (required if SSL enabled)",
            },
            "auto_start": {
                "type": "boolean",
                "default": True,
                "description": "Auto-start web server on boot",
            },
        },
        "required": ["server_type"],
    },
    risk_hint=RiskLevel.MODERATE,
    dry_run_capable=True,
    keywords=[
        "web server",
        "webserver",
        "setup web server",
        "setup webserver",
        "setup nginx",
        "set up nginx",
        "setup apache",
        "set up apache",
        "configure nginx",
        "configure apache",
        "enable ssl",
        "enable https",
        "enable tls",
    ],
    parameter_hints={
        "ssl_enabled": ["ssl", "https", "tls"],
        "domain": ["domain"],
        "auto_start": ["auto-start", "auto start", "autostart", "on boot"],
    },
    timeout_seconds=900.0,
)

SETUP_WEB_SERVER_TOOL = LocalTool(descriptor=SETUP_WEB_SERVER, execute=_setup, dry_run=_plan)
