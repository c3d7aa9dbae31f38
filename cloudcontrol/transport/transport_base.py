from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict
import json
from cloudcontrol.constants import ENDPOINT_POWEROFF, ENDPOINT_HEALTH
from cloudcontrol.envelope import Action

Headers = Dict[str, str]

# Endpoint per action kind.
ENDPOINTS: Dict[str, str] = {
    "poweroff": ENDPOINT_POWEROFF,
    "health": ENDPOINT_HEALTH,
}


@dataclass
class NodeResponse:
    """Raw answer from a peer; interpretation is left to the caller."""
    status_code: int
    body: bytes = b""
    headers: Headers = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


class BaseNodeClient:
    """
    Outbound contract: stamp, sign and deliver one action to one peer host.

    Implementations raise PeerUnreachable for network-level failures and
    SigningError if the local key cannot sign. Nothing is retried.
    """
    name: str = "base"

    def send(self, host: str, action: Action) -> NodeResponse:
        raise NotImplementedError

    def close(self) -> None:
        return

    @staticmethod
    def endpoint_for(action: Action) -> str:
        try:
            return ENDPOINTS[action.kind]
        except KeyError:
            raise ValueError(f"no endpoint for action kind '{action.kind}'") from None
