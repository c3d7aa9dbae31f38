"""
cloudcontrol.orchestrator
-------------------------
Fan-out over the configured remotes. Peers are contacted one at a time.

Two deliberately different policies:

- collect_status(): check every remote; each failure becomes that remote's
  status string and processing continues.
- poweroff_all_and_self(): command every remote; the first failure aborts
  the fan-out (later remotes are not contacted) and is raised. A remote that
  reports it was killed by a signal while powering off counts as success.
  When all remotes are done the local node powers itself off.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Sequence
import json
import subprocess
from .config import Remote
from .constants import TERMINATED_MARKER, HEALTH_OFFLINE
from .envelope import PoweroffAction, HealthAction, HealthResponse
from .errors import CloudControlError, PeerUnreachable, RemoteError, SigningError
from .executor import PoweroffFn
from .logger import get_logger
from .transport.transport_base import BaseNodeClient

log = get_logger("CC.Orchestrator")


class PingStatus(str, Enum):
    # A failed ping raises PingError; its text becomes the status.
    ONLINE = "online"
    OFFLINE = "offline"


class PingError(CloudControlError):
    pass


PingFn = Callable[[str], PingStatus]


def ping_host(host: str) -> PingStatus:
    """One ICMP echo with a 1s deadline. Exit 1 means no reply."""
    try:
        proc = subprocess.run(
            ["ping", host, "-c", "1", "-w", "1", "-q"],
            capture_output=True,
        )
    except OSError as e:
        raise PingError(f"cannot ping remote: {e}") from e

    if proc.returncode == 0:
        return PingStatus.ONLINE
    if proc.returncode == 1:
        return PingStatus.OFFLINE
    stderr = proc.stderr.decode("utf-8", errors="replace").strip()
    raise PingError(f"cannot ping remote: exit status {proc.returncode} {stderr}".rstrip())


@dataclass
class RemoteStatus:
    host: str
    ping_status: str
    health_status: str

    def to_dict(self):
        return {"Host": self.host, "PingStatus": self.ping_status, "HealthStatus": self.health_status}


class Orchestrator:
    def __init__(
        self,
        client: BaseNodeClient,
        remotes: Sequence[Remote],
        poweroff: PoweroffFn,
        ping: PingFn = ping_host,
    ):
        self.client = client
        self.remotes = list(remotes)
        self.poweroff = poweroff
        self.ping = ping

    # ------------------------------------------------------------------
    # Single remote
    # ------------------------------------------------------------------
    def ping_remote(self, remote: Remote) -> PingStatus:
        return self.ping(remote.host)

    def fetch_remote_health(self, remote: Remote) -> HealthResponse:
        try:
            res = self.client.send(remote.host, HealthAction())
        except PeerUnreachable as e:
            log.error(f"[HEALTH] cannot fetch remote '{remote.host}' health: {e}")
            return HealthResponse(status=HEALTH_OFFLINE)

        if not res.ok:
            raise RemoteError(f"remote returned error: {res.text}", res.status_code, res.text)

        try:
            data = res.json()
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise RemoteError(f"cannot decode JSON response: {e}", res.status_code, res.text) from e
        if not isinstance(data, dict):
            raise RemoteError("cannot decode JSON response: expected an object", res.status_code, res.text)
        return HealthResponse.from_dict(data)

    def poweroff_remote(self, remote: Remote) -> None:
        action = PoweroffAction(async_=remote.async_, poweroff_delay_msec=remote.poweroff_delay_msec)
        res = self.client.send(remote.host, action)
        if res.ok:
            return

        body = res.text
        if TERMINATED_MARKER in body:
            log.info(f"[POWEROFF] remote '{remote.host}' terminated while powering off")
            return
        raise RemoteError(f"remote returned error: {body}", res.status_code, body)

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------
    def collect_status(self) -> List[RemoteStatus]:
        statuses: List[RemoteStatus] = []
        for remote in self.remotes:
            try:
                ping_status = self.ping_remote(remote).value
            except CloudControlError as e:
                ping_status = str(e)

            try:
                health_status = self.fetch_remote_health(remote).status
            except SigningError:
                raise
            except CloudControlError as e:
                log.error(f"[HEALTH] remote '{remote.host}': {e}")
                health_status = str(e)

            statuses.append(RemoteStatus(remote.host, ping_status, health_status))
        return statuses

    def poweroff_all_and_self(self) -> None:
        for remote in self.remotes:
            try:
                self.poweroff_remote(remote)
            except CloudControlError as e:
                log.error(f"[POWEROFF] cannot power off remote '{remote.host}': {e}")
                raise
            log.info(f"[POWEROFF] remote '{remote.host}' accepted poweroff")

        log.warning("[POWEROFF] all remotes done, powering off self")
        self.poweroff(0)
