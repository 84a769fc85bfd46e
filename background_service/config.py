from __future__ import annotations

import os
import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .errors import InvalidConfigurationError

DEFAULT_LOG_PATH = "run.log"


@dataclass(frozen=True)
class ServiceConfig:
    bin_path: str
    args: Sequence[str] = ()
    log_path: str = DEFAULT_LOG_PATH

    def __post_init__(self) -> None:
        if not self.bin_path:
            raise InvalidConfigurationError("no command binary path specified")
        if isinstance(self.args, str):
            raise InvalidConfigurationError(
                f"args must be a sequence of strings, not the string {self.args!r}"
            )
        # Frozen: normalise through object.__setattr__
        object.__setattr__(self, "args", tuple(self.args or ()))
        if not self.log_path:
            object.__setattr__(self, "log_path", DEFAULT_LOG_PATH)
        else:
            object.__setattr__(self, "log_path", str(self.log_path))

    @property
    def command(self) -> tuple[str, ...]:
        return (self.bin_path, *self.args)

    def describe(self) -> str:
        """Printable form of the command, e.g. ``nc -l 9999 > run.log``."""
        return f"{shlex.join(self.command)} > {self.log_path}"

    @classmethod
    def from_env(cls, env_path: str | Path | None = None) -> ServiceConfig:
        """Build a config from SERVICE_* variables, loading a .env file first.

        SERVICE_BIN_PATH   binary to run (required)
        SERVICE_ARGS       arguments, split shell-style
        SERVICE_LOG_PATH   combined stdout/stderr destination (default run.log)

        Raises InvalidConfigurationError if SERVICE_BIN_PATH is missing
        or SERVICE_ARGS cannot be split.
        """
        load_dotenv(env_path)

        bin_path = os.getenv("SERVICE_BIN_PATH", "")
        raw_args = os.getenv("SERVICE_ARGS", "")
        try:
            args = shlex.split(raw_args)
        except ValueError as exc:
            raise InvalidConfigurationError(
                f"SERVICE_ARGS is not a valid argument string ({exc}): {raw_args!r}"
            ) from exc
        log_path = os.getenv("SERVICE_LOG_PATH", DEFAULT_LOG_PATH)

        return cls(bin_path=bin_path, args=args, log_path=log_path)
