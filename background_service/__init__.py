"""Background service — supervises one long-running external command.

Launches the command in its own process group with output redirected to
a log file, tracks whether it is alive, and stops it with SIGTERM,
escalating to SIGKILL when SIGTERM cannot be delivered.

Can run standalone behind an MCP control server:
    python -m background_service
"""

from background_service.config import ServiceConfig
from background_service.errors import (
    AlreadyRunningError,
    InvalidConfigurationError,
    LaunchError,
    NotRunningError,
    ServiceError,
    SignalError,
    UnexpectedExitError,
)
from background_service.models import ExitStatus, ServiceState
from background_service.supervisor import ProcessSupervisor

__all__ = [
    "AlreadyRunningError",
    "ExitStatus",
    "InvalidConfigurationError",
    "LaunchError",
    "NotRunningError",
    "ProcessSupervisor",
    "ServiceConfig",
    "ServiceError",
    "ServiceState",
    "SignalError",
    "UnexpectedExitError",
]
