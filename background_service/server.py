"""MCP server exposing control of the supervised command over HTTP."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from .errors import ServiceError
from .supervisor import ProcessSupervisor

# Default port for the HTTP daemon
DEFAULT_PORT = 8080

# Widest UTF-8 encoding of one character
MAX_UTF8_BYTES = 4


def describe_status(sv: ProcessSupervisor) -> dict[str, Any]:
    """Summary of the supervisor's state for tool responses."""
    last = sv.last_exit
    return {
        "command": sv.config.describe(),
        "status": sv.state.value,
        "running": sv.is_running,
        "pid": sv.pid,
        "stop_requested": sv.stop_requested,
        "last_exit_code": last.returncode if last else None,
        "last_exit_requested": last.requested if last else None,
    }


async def handle_start(sv: ProcessSupervisor) -> dict[str, Any]:
    try:
        await sv.start()
    except ServiceError as exc:
        return {**describe_status(sv), "status": "error", "error": str(exc)}
    return describe_status(sv)


async def handle_stop(sv: ProcessSupervisor) -> dict[str, Any]:
    try:
        await sv.stop()
    except (ServiceError, OSError) as exc:
        return {**describe_status(sv), "status": "error", "error": str(exc)}
    return describe_status(sv)


def tail_log(sv: ProcessSupervisor, tail: int = 2000) -> dict[str, Any]:
    """Return the last ``tail`` characters of the command's log file."""
    path = Path(sv.config.log_path)
    if not path.exists():
        return {"log_path": str(path), "output": "", "error": "log file not found"}
    if tail <= 0:
        return {"log_path": str(path), "output": ""}
    with path.open("rb") as fh:
        size = fh.seek(0, os.SEEK_END)
        fh.seek(max(0, size - tail * MAX_UTF8_BYTES))
        data = fh.read()
    text = data.decode("utf-8", errors="replace")
    return {"log_path": str(path), "output": text[-tail:]}


def create_server(
    supervisor: ProcessSupervisor,
    port: int = DEFAULT_PORT,
) -> FastMCP:
    """Create the MCP server bound to one supervisor."""

    sv = supervisor

    mcp = FastMCP(
        name="background-service",
        instructions=(
            f"Controls one background command ({sv.config.describe()}). "
            "Use start_service to launch it, service_status to check it, "
            "read_log to see its output and stop_service to shut it down."
        ),
        host="127.0.0.1",
        port=port,
        stateless_http=True,
    )

    # ------------------------------------------------------------------
    # Tool: start_service
    # ------------------------------------------------------------------
    @mcp.tool()
    async def start_service() -> dict:
        """Start the background command.

        Fails with an error status if it is already running.
        """
        return await handle_start(sv)

    # ------------------------------------------------------------------
    # Tool: stop_service
    # ------------------------------------------------------------------
    @mcp.tool()
    async def stop_service() -> dict:
        """Stop the background command.

        Sends SIGTERM to its process group, or SIGKILL if SIGTERM cannot
        be delivered.  Returns without waiting for the exit.
        """
        return await handle_stop(sv)

    # ------------------------------------------------------------------
    # Tool: service_status
    # ------------------------------------------------------------------
    @mcp.tool()
    async def service_status() -> dict:
        """Report state, PID and the last exit of the background command."""
        return describe_status(sv)

    # ------------------------------------------------------------------
    # Tool: read_log
    # ------------------------------------------------------------------
    @mcp.tool()
    async def read_log(tail: int = 2000) -> dict:
        """Read the tail of the command's combined stdout/stderr log.

        Args:
            tail: Number of characters to return from the end of the log.
        """
        return tail_log(sv, tail)

    return mcp
