"""Shared fixtures for background service tests."""

import os
import signal
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

import pytest

from background_service import ProcessSupervisor, ServiceConfig


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "run.log"


@pytest.fixture
def make_supervisor(
    log_path: Path,
) -> Iterator[Callable[..., ProcessSupervisor]]:
    """Build supervisors whose process groups are killed after the test.

    Tests that fail half-way would otherwise leave ``sleep`` processes
    behind.
    """
    created: list[ProcessSupervisor] = []

    def _make(bin_path: str, args: Sequence[str] = ()) -> ProcessSupervisor:
        sv = ProcessSupervisor(
            ServiceConfig(bin_path=bin_path, args=args, log_path=str(log_path))
        )
        created.append(sv)
        return sv

    yield _make

    for sv in created:
        if sv.pid is None:
            continue
        try:
            os.killpg(sv.pid, signal.SIGKILL)
        except OSError:
            pass


def process_alive(pid: int) -> bool:
    """True if pid exists and is not a zombie."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    stat = Path(f"/proc/{pid}/stat")
    try:
        # Field 3 is the state; the command name in field 2 may contain spaces
        state = stat.read_text().rsplit(")", 1)[1].split()[0]
    except (OSError, IndexError):
        return True
    return state != "Z"


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Unset SERVICE_* variables for the test, including any load_dotenv adds."""
    # setenv first so undo restores the original state, even when unset
    for name in ("SERVICE_BIN_PATH", "SERVICE_ARGS", "SERVICE_LOG_PATH"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch
