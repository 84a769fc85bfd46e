"""Process Supervisor — keeps one background command alive and stops it by process group."""

from __future__ import annotations

import asyncio
import logging
import os
import signal

from .config import ServiceConfig
from .errors import (
    AlreadyRunningError,
    LaunchError,
    NotRunningError,
    SignalError,
    UnexpectedExitError,
)
from .models import ExitStatus, ServiceState

log = logging.getLogger(__name__)


class ProcessSupervisor:
    """Owns a single external command and its lifecycle.

    ``start`` returns as soon as the OS has spawned the command; ``wait``
    blocks until it exits.  ``stop`` signals the whole process group
    (SIGTERM, escalating to SIGKILL only if SIGTERM cannot be delivered)
    and never waits for the exit itself.

    A supervisor may be started again once its previous process has
    exited.  There is no teardown hook: call ``stop`` before dropping the
    last reference or the child is orphaned.
    """

    def __init__(self, config: ServiceConfig) -> None:
        self.config = config
        self._state = ServiceState.NOT_STARTED
        self._stop_requested = False
        self._process: asyncio.subprocess.Process | None = None
        self._watcher: asyncio.Task[ExitStatus] | None = None
        self._last_exit: ExitStatus | None = None
        # Serialises start/stop/wait decisions and the watcher's exit transition
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    @property
    def pid(self) -> int | None:
        process = self._process
        return process.pid if process is not None else None

    @property
    def last_exit(self) -> ExitStatus | None:
        return self._last_exit

    @property
    def is_running(self) -> bool:
        """Snapshot of liveness; may be stale as soon as it is returned."""
        process = self._process
        return (
            self._state is ServiceState.RUNNING
            and process is not None
            and process.returncode is None
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch the command as the leader of a new process group.

        Raises:
            AlreadyRunningError: a process launched by this supervisor is
                still alive (including one that was stopped but has not
                exited yet).
            LaunchError: the command or its log file could not be opened.
        """
        if self._state is ServiceState.RUNNING:
            raise AlreadyRunningError(f"'{self.config.bin_path}' is already running")

        async with self._lock:
            if self._state is ServiceState.RUNNING or self._process is not None:
                raise AlreadyRunningError(
                    f"'{self.config.bin_path}' is already running"
                )

            self._stop_requested = False

            try:
                # Blocking open on the loop; the log is expected to be a local file
                with open(self.config.log_path, "ab") as sink:
                    process = await asyncio.create_subprocess_exec(
                        self.config.bin_path,
                        *self.config.args,
                        stdin=asyncio.subprocess.DEVNULL,
                        stdout=sink,
                        stderr=asyncio.subprocess.STDOUT,
                        # New process group so stop() reaches the whole tree
                        preexec_fn=os.setsid,
                    )
            except OSError as exc:
                log.error("Failed to start %s: %s", self.config.describe(), exc)
                raise LaunchError(
                    f"Failed to start '{self.config.bin_path}': {exc}"
                ) from exc

            self._process = process
            self._state = ServiceState.RUNNING
            self._watcher = asyncio.create_task(
                self._watch_exit(process),
                name=f"{self.config.bin_path}-waiter",
            )

        log.info("Started %s (pid=%s)", self.config.describe(), process.pid)

    async def stop(self) -> None:
        """Ask the process group to terminate.

        Raises:
            NotRunningError: nothing is running, or another stop() got
                there first.
            OSError: the process group could no longer be resolved; the
                supervisor is marked stopped.
            SignalError: both SIGTERM and SIGKILL failed.
        """
        if self._state is not ServiceState.RUNNING:
            raise NotRunningError("service is not running")

        async with self._lock:
            if self._state is not ServiceState.RUNNING:
                raise NotRunningError("service is not running")

            process = self._process
            if process is None or process.returncode is not None:
                raise NotRunningError("service is not running")

            try:
                pgid = os.getpgid(process.pid)
            except OSError as exc:
                log.warning(
                    "Could not resolve process group of pid %s: %s",
                    process.pid, exc,
                )
                self._state = ServiceState.STOPPED
                raise

            # Must be visible to the exit watcher before any signal lands
            self._stop_requested = True
            log.info("Stopping %s (pgid=%s)", self.config.bin_path, pgid)

            try:
                os.killpg(pgid, signal.SIGTERM)
            except OSError as exc:
                log.warning(
                    "SIGTERM to process group %s failed (%s), sending SIGKILL",
                    pgid, exc,
                )
                try:
                    os.killpg(pgid, signal.SIGKILL)
                except OSError as kill_exc:
                    self._stop_requested = False
                    log.error(
                        "SIGKILL to process group %s failed: %s", pgid, kill_exc
                    )
                    raise SignalError(
                        f"Could not signal process group {pgid}: {kill_exc}",
                        pgid=pgid,
                    ) from kill_exc

            self._state = ServiceState.STOPPED

    async def wait(self) -> int:
        """Block until the current process exits and return its exit code.

        Raises:
            NotRunningError: nothing was ever started.
            UnexpectedExitError: the process failed or was killed without
                a stop() request.
        """
        async with self._lock:
            watcher = self._watcher
        if watcher is None:
            raise NotRunningError("service was never started")

        # Shield so a cancelled wait() leaves the exit watcher alone
        status = await asyncio.shield(watcher)
        if status.unexpected:
            raise UnexpectedExitError(status.returncode)
        return status.returncode

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _watch_exit(self, process: asyncio.subprocess.Process) -> ExitStatus:
        """Wait for process exit and record how it ended."""
        code = await process.wait()
        async with self._lock:
            status = ExitStatus(returncode=code, requested=self._stop_requested)
            self._last_exit = status
            if self._process is process:
                self._process = None
                self._state = ServiceState.STOPPED

        if status.unexpected:
            log.warning(
                "%s (pid=%s) exited without a stop request, code %s",
                self.config.bin_path, process.pid, code,
            )
        else:
            log.info(
                "%s (pid=%s) exited with code %s",
                self.config.bin_path, process.pid, code,
            )
        return status
