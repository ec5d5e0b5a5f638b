"""Serve the built-in tools over stdio: python -m aios.tools.builtin"""

from aios.logging import configure_logging
from aios.tools.builtin import create_installation_server
from aios.tools.server import run_stdio

if __name__ == "__main__":
    configure_logging(level="WARNING")
    run_stdio(create_installation_server())
