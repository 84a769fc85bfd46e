from __future__ import annotations

import enum
from dataclasses import dataclass


class ServiceState(str, enum.Enum):
    NOT_STARTED = "not_started"  # nothing ever launched by this supervisor
    RUNNING = "running"
    STOPPED = "stopped"          # stopped by request, or exited on its own


@dataclass(frozen=True)
class ExitStatus:
    """How the most recent process ended."""

    returncode: int
    requested: bool  # True when stop() asked for it

    @property
    def unexpected(self) -> bool:
        return not self.requested and self.returncode != 0
