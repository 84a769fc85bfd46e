"""Run one supervised command behind an MCP control server over HTTP.

Usage:
    python -m background_service [--port PORT] [--env-file FILE]
                                 [--bin PATH] [--log FILE] [--remove-log]
                                 [-- ARGS...]

The command comes from --bin and the trailing arguments, then from
SERVICE_* variables (optionally loaded from --env-file), and finally
falls back to ``nc -l 9999`` logging to run.log.  On SIGINT/SIGTERM the
command's process group is stopped before the daemon exits.
"""

import argparse
import asyncio
import logging
import os
import signal
from pathlib import Path

import uvicorn

from background_service.config import DEFAULT_LOG_PATH, ServiceConfig
from background_service.errors import (
    InvalidConfigurationError,
    LaunchError,
    NotRunningError,
    ServiceError,
)
from background_service.server import DEFAULT_PORT, create_server
from background_service.supervisor import ProcessSupervisor

log = logging.getLogger(__name__)

DEFAULT_COMMAND = ("nc", "-l", "9999")


def resolve_config(args: argparse.Namespace) -> ServiceConfig:
    """Pick the command from flags, then the environment, then the default."""
    if args.bin:
        return ServiceConfig(
            bin_path=args.bin,
            args=args.args,
            log_path=args.log or DEFAULT_LOG_PATH,
        )
    try:
        config = ServiceConfig.from_env(args.env_file)
    except InvalidConfigurationError:
        # Only a missing binary falls back; a malformed SERVICE_ARGS does not
        if os.getenv("SERVICE_BIN_PATH"):
            raise
        config = ServiceConfig(
            bin_path=DEFAULT_COMMAND[0],
            args=DEFAULT_COMMAND[1:],
        )
    if args.log:
        config = ServiceConfig(config.bin_path, config.args, args.log)
    return config


async def _shutdown_service(supervisor: ProcessSupervisor) -> None:
    try:
        await supervisor.stop()
    except NotRunningError:
        log.info("Service was not running")
        return
    except (ServiceError, OSError) as exc:
        log.error("Failed to stop service: %s", exc)
        return

    try:
        await asyncio.wait_for(supervisor.wait(), timeout=5.0)
    except asyncio.TimeoutError:
        log.warning("Service still exiting after SIGTERM (pid=%s)", supervisor.pid)
    except ServiceError as exc:
        log.warning("%s", exc)


def _remove_log(config: ServiceConfig) -> None:
    try:
        os.remove(config.log_path)
    except FileNotFoundError:
        pass
    else:
        log.info("Removed %s", config.log_path)


async def _run(port: int, config: ServiceConfig, remove_log: bool) -> None:
    supervisor = ProcessSupervisor(config)
    server = create_server(supervisor=supervisor, port=port)

    try:
        await supervisor.start()
    except LaunchError as exc:
        # Keep serving so start_service can retry
        log.error("%s", exc)

    app = server.streamable_http_app()
    uvi_config = uvicorn.Config(
        app, host="127.0.0.1", port=port, log_level="info",
    )
    uvi = uvicorn.Server(uvi_config)

    # Use _serve() instead of serve() to bypass uvicorn's
    # capture_signals() context manager, which would replace the
    # loop signal handlers installed below.
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    serve_task = asyncio.create_task(uvi._serve())

    await shutdown.wait()
    log.info("Signal received — shutting down")

    uvi.should_exit = True
    await serve_task
    log.info("Stopping %s", config.describe())
    await _shutdown_service(supervisor)

    if remove_log:
        _remove_log(config)


def main() -> None:
    parser = argparse.ArgumentParser(description="Background service supervisor daemon")
    parser.add_argument(
        "--port", type=int, default=DEFAULT_PORT,
        help=f"Port to listen on (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--env-file", type=Path, default=None,
        help="Load SERVICE_* variables from this .env file",
    )
    parser.add_argument("--bin", default=None, help="Binary to supervise")
    parser.add_argument(
        "--log", default=None,
        help=f"Log file for the command's output (default: {DEFAULT_LOG_PATH})",
    )
    parser.add_argument(
        "--remove-log", action="store_true",
        help="Delete the log file on shutdown",
    )
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Command arguments")
    args = parser.parse_args()
    if args.args and args.args[0] == "--":
        args.args = args.args[1:]

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [background-service] %(levelname)s %(message)s",
    )

    try:
        config = resolve_config(args)
    except InvalidConfigurationError as exc:
        parser.error(str(exc))
    log.info(
        "Supervising %s, control server on http://127.0.0.1:%d/mcp",
        config.describe(), args.port,
    )
    asyncio.run(_run(args.port, config, args.remove_log))


if __name__ == "__main__":
    main()
