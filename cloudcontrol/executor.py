"""
cloudcontrol.executor
---------------------
Local poweroff: an optional delay, then one call to the `poweroff` executable.

`PoweroffTask` is the asynchronous variant used by `Async` commands: the
request is acknowledged immediately and the poweroff runs on a detached
daemon thread. Its failure goes to the log only; the process may exit before
the task finishes.
"""

from __future__ import annotations
import signal, subprocess, threading, time
from typing import Callable, Optional, Sequence
from .errors import PoweroffError
from .logger import get_logger

log = get_logger("CC.Executor")

POWEROFF_COMMAND: Sequence[str] = ("poweroff",)

PoweroffFn = Callable[[int], None]


def _describe_returncode(returncode: int) -> str:
    if returncode < 0:
        try:
            name = signal.strsignal(-returncode) or f"signal {-returncode}"
        except ValueError:
            name = f"signal {-returncode}"
        return f"signal: {name.lower()}"
    return f"exit status {returncode}"


def execute_poweroff(poweroff_delay_msec: int = 0, command: Sequence[str] = POWEROFF_COMMAND) -> None:
    """Block for the delay, then power off this machine. Raises PoweroffError."""
    if poweroff_delay_msec > 0:
        time.sleep(poweroff_delay_msec / 1000.0)

    log.warning(f"[POWEROFF] executing {' '.join(command)}")
    try:
        proc = subprocess.run(list(command), capture_output=True)
    except OSError as e:
        raise PoweroffError(f"cannot run {command[0]}: {e}") from e

    if proc.returncode != 0:
        reason = _describe_returncode(proc.returncode)
        stderr = proc.stderr.decode("utf-8", errors="replace").strip()
        if stderr:
            log.error(f"[POWEROFF] {command[0]} stderr: {stderr}")
        raise PoweroffError(reason)


class PoweroffTask:
    """A detached, fire-and-forget poweroff with its own error sink (the log)."""

    def __init__(self, poweroff: PoweroffFn, poweroff_delay_msec: int = 0):
        self.poweroff = poweroff
        self.poweroff_delay_msec = poweroff_delay_msec
        self.error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, name="poweroff-task", daemon=True)

    def start(self) -> "PoweroffTask":
        self._thread.start()
        return self

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def _run(self) -> None:
        try:
            self.poweroff(self.poweroff_delay_msec)
        except Exception as e:
            self.error = e
            log.error(f"[POWEROFF] cannot execute poweroff: {e}")
