"""Errors raised by the background service supervisor."""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for supervisor errors."""


class InvalidConfigurationError(ServiceError, ValueError):
    """The service configuration cannot be used to launch anything."""


class AlreadyRunningError(ServiceError):
    """start() was called while the supervised process is still alive."""


class NotRunningError(ServiceError):
    """There is no live process to stop or wait for."""


class LaunchError(ServiceError):
    """The operating system refused to spawn the command.

    The originating ``OSError`` is available as ``__cause__``.
    """


class SignalError(ServiceError):
    """Neither SIGTERM nor SIGKILL could be delivered to the process group."""

    def __init__(self, message: str, *, pgid: int) -> None:
        super().__init__(message)
        self.pgid = pgid


class UnexpectedExitError(ServiceError):
    """The process exited without being asked to by stop()."""

    def __init__(self, returncode: int) -> None:
        if returncode < 0:
            detail = f"killed by signal {-returncode}"
        else:
            detail = f"exit code {returncode}"
        super().__init__(f"Service exited without a stop request ({detail})")
        self.returncode = returncode
