"""
aios Tool System

Every backend operation is described by a ToolDescriptor and reached
through the tool-invocation protocol:

    SafetyExecutor → ToolRegistry (schema check) → ToolBackend → ToolServer

Components:
- ToolRegistry: catalog of tools with risk hints and parameter schemas
- ToolBackend: in-process, subprocess (stdio JSON lines) or HTTP client
- ToolServer: hosts local handlers behind the protocol
- Built-in tools: package install, Oracle Database, web server, requirements, services
"""

from aios.tools.backends import HttpBackend, InProcessBackend, SubprocessBackend, ToolBackend
from aios.tools.models import (
    ContentBlock,
    ToolDescriptor,
    ToolName,
    ToolRequest,
    ToolResponse,
)
from aios.tools.registry import RegisteredTool, ToolRegistry
from aios.tools.server import LocalTool, ToolServer, create_app, serve_stdio

__all__ = [
    "ContentBlock",
    "HttpBackend",
    "InProcessBackend",
    "LocalTool",
    "RegisteredTool",
    "SubprocessBackend",
    "ToolBackend",
    "ToolDescriptor",
    "ToolName",
    "ToolRegistry",
    "ToolRequest",
    "ToolResponse",
    "ToolServer",
    "create_app",
    "serve_stdio",
]
