"""
cloudcontrol.service
--------------------
Runs the node's HTTP server on a background thread.

start() returns immediately; stop() asks the server to exit, lets in-flight
requests drain for up to SHUTDOWN_GRACE_SEC and then force-closes.
"""

from __future__ import annotations
import threading
from typing import Optional
import uvicorn
from .constants import HTTP_PORT, SHUTDOWN_GRACE_SEC
from .logger import get_logger
from .node import Node
from .server import create_app

log = get_logger("CC.Service")


class NodeService:
    def __init__(self, node: Node, host: str = "0.0.0.0", port: int = HTTP_PORT,
                 grace_sec: int = SHUTDOWN_GRACE_SEC):
        self.node = node
        self.grace_sec = grace_sec
        self.config = uvicorn.Config(
            create_app(node),
            host=host,
            port=port,
            timeout_graceful_shutdown=grace_sec,
            log_config=None,
        )
        self.server = uvicorn.Server(self.config)
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="cloudcontrol-http", daemon=True)
        self._thread.start()
        log.info(f"[SERVICE] listening on {self.config.host}:{self.config.port}")

    def _run(self) -> None:
        try:
            self.server.run()
        except Exception:
            log.exception("[SERVICE] failed to serve HTTP")

    def stop(self) -> None:
        if self._thread is None:
            return
        self.server.should_exit = True
        self._thread.join(self.grace_sec + 1)
        if self._thread.is_alive():
            log.error("[SERVICE] cannot shut down http server within grace period, forcing exit")
            self.server.force_exit = True
            self._thread.join(1)
        self._thread = None
        self.node.close()
        log.info("[SERVICE] stopped")

    def wait(self) -> None:
        """Block until the server thread exits (e.g. on Ctrl-C handled by stop())."""
        if self._thread is not None:
            self._thread.join()
