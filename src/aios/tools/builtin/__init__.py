"""
aios Built-in Tools

The installation tool server: package installs, Oracle Database,
web server stacks, requirements checks and service configuration.
Registered in-process by default; `python -m aios.tools.builtin` serves
the same tools over stdio for out-of-process use.
"""

from aios.tools.backends import InProcessBackend
from aios.tools.registry import ToolRegistry
from aios.tools.server import ToolServer, create_app

from aios.tools.builtin.oracle import INSTALL_ORACLE_TOOL
from aios.tools.builtin.packages import INSTALL_PACKAGE_TOOL
from aios.tools.builtin.requirements import CHECK_REQUIREMENTS_TOOL
from aios.tools.builtin.services import CONFIGURE_SERVICE_TOOL
from aios.tools.builtin.web_server import SETUP_WEB_SERVER_TOOL

ALL_BUILTIN_TOOLS = [
    INSTALL_PACKAGE_TOOL,
    INSTALL_ORACLE_TOOL,
    SETUP_WEB_SERVER_TOOL,
    CHECK_REQUIREMENTS_TOOL,
    CONFIGURE_SERVICE_TOOL,
]


def create_installation_server() -> ToolServer:
    return ToolServer("installation", ALL_BUILTIN_TOOLS)


def register_all_builtins(registry: ToolRegistry) -> None:
    """Register all built-in tools with the given registry, served in-process."""
    backend = InProcessBackend(create_installation_server())
    for tool in ALL_BUILTIN_TOOLS:
        registry.register(tool.descriptor, backend)


def create_http_app():
    """FastAPI app serving the built-in tools (uvicorn --factory)."""
    return create_app(create_installation_server())
