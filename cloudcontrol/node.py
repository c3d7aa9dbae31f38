# cloudcontrol/node.py
from __future__ import annotations
from pathlib import Path
from typing import Optional, Union
from .config import Config, load_config, validate_config
from .executor import PoweroffFn, execute_poweroff
from .logger import get_logger
from .orchestrator import Orchestrator, PingFn, ping_host
from .storage import Keypair, TrustedKeySet, load_local_keypair, load_trusted_keys
from .transport.transport_base import BaseNodeClient
from .transport.transport_http import HTTPNodeClient

log = get_logger("CC.Node")


class Node:
    """
    Everything one running node needs, built once at startup and passed
    explicitly to the HTTP surface. Read-only while requests are served.
    """

    def __init__(
        self,
        config: Config,
        keypair: Keypair,
        trusted_keys: TrustedKeySet,
        poweroff: PoweroffFn = execute_poweroff,
        client: Optional[BaseNodeClient] = None,
        ping: PingFn = ping_host,
        webadmin: bool = False,
    ):
        self.config = config
        self.keypair = keypair
        self.trusted_keys = trusted_keys
        self.poweroff = poweroff
        self.client = client or HTTPNodeClient(keypair.private_key)
        self.webadmin = webadmin
        self.orchestrator = Orchestrator(self.client, config.remotes, poweroff, ping=ping)

    @classmethod
    def load(cls, home: Optional[Union[str, Path]] = None, webadmin: bool = False) -> "Node":
        config = load_config(home)
        validate_config(config, webadmin=webadmin)
        keypair = load_local_keypair(config.self_key_dir)
        trusted_keys = load_trusted_keys(config.authorized_keys_dir)
        log.info(
            f"[NODE] loaded config from {config.config_path} "
            f"remotes={len(config.remotes)} trusted_keys={len(trusted_keys)} webadmin={webadmin}"
        )
        return cls(config, keypair, trusted_keys, webadmin=webadmin)

    def close(self) -> None:
        self.client.close()
