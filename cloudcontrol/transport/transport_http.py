# cloudcontrol/transport/transport_http.py
from __future__ import annotations
from typing import Optional
import requests
from cryptography.hazmat.primitives.asymmetric import rsa
from cloudcontrol.constants import HTTP_PORT, CLIENT_TIMEOUT_SEC, SIGNATURE_HEADER
from cloudcontrol.crypto import sign
from cloudcontrol.envelope import Action
from cloudcontrol.errors import PeerUnreachable
from cloudcontrol.logger import get_logger
from cloudcontrol.utils import b64e
from .transport_base import BaseNodeClient, NodeResponse

log = get_logger("CC.Transport.HTTP")


class HTTPNodeClient(BaseNodeClient):
    """
    HTTP transport for signed node actions.

    Each call stamps the action with the current time, serializes it once,
    signs exactly those bytes and POSTs them with the base64 signature in
    the X-Signature header.

    Handlers call this concurrently, so by default every call is a standalone
    `requests.post`; a shared `session` is only used when one is injected.
    """
    name = "http"

    def __init__(
        self,
        private_key: rsa.RSAPrivateKey,
        port: int = HTTP_PORT,
        timeout: float = CLIENT_TIMEOUT_SEC,
        session: Optional[requests.Session] = None,
    ):
        self.private_key = private_key
        self.port = port
        self.timeout = timeout
        self.session = session

    def url_for(self, host: str, endpoint: str) -> str:
        return f"http://{host}:{self.port}{endpoint}"

    def send(self, host: str, action: Action) -> NodeResponse:
        endpoint = self.endpoint_for(action)
        body = action.stamp().to_bytes()
        signature = sign(body, self.private_key)

        url = self.url_for(host, endpoint)
        headers = {
            "Content-Type": "application/json",
            SIGNATURE_HEADER: b64e(signature),
        }

        log.debug(f"[HTTP SEND] → {url} | kind={action.kind} bytes={len(body)}")
        try:
            post = self.session.post if self.session is not None else requests.post
            res = post(url, data=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            log.error(f"[HTTP SEND] {url} unreachable: {e}")
            raise PeerUnreachable(f"cannot reach '{host}': {e}") from e

        log.info(f"[HTTP SEND] {url} → {res.status_code} {res.reason}")
        return NodeResponse(
            status_code=res.status_code,
            body=res.content,
            headers=dict(res.headers),
        )

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
