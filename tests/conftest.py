from datetime import datetime, timezone
from pathlib import Path
from typing import List

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from cloudcontrol.crypto import public_key_to_pem, sign
from cloudcontrol.config import Config, Remote, WebAdminConfig
from cloudcontrol.constants import SIGNATURE_HEADER
from cloudcontrol.storage import Keypair, TrustedKeySet, TrustedKey
from cloudcontrol.transport.transport_base import BaseNodeClient, NodeResponse
from cloudcontrol.utils import b64e

# 2048-bit keeps the suite fast; production keys are 4096-bit.
TEST_KEY_SIZE = 2048

FIXED_NOW = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def rsa_keys() -> List[rsa.RSAPrivateKey]:
    return [
        rsa.generate_private_key(public_exponent=65537, key_size=TEST_KEY_SIZE)
        for _ in range(3)
    ]


@pytest.fixture
def self_key(rsa_keys) -> rsa.RSAPrivateKey:
    return rsa_keys[0]


@pytest.fixture
def keypair(self_key) -> Keypair:
    return Keypair(private_key=self_key, public_key=self_key.public_key())


@pytest.fixture
def trusted_keys(rsa_keys) -> TrustedKeySet:
    return TrustedKeySet(keys=tuple(
        TrustedKey(path=f"authorized_keys/peer{i}.pub", public_key=k.public_key())
        for i, k in enumerate(rsa_keys)
    ))


@pytest.fixture
def untrusted_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=TEST_KEY_SIZE)


def write_public_key(path: Path, sk: rsa.RSAPrivateKey) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(public_key_to_pem(sk.public_key()))
    return path


def signed_request(action, sk, now=None):
    """Stamp, serialize and sign an action the way a peer would."""
    body = action.stamp(now).to_bytes()
    return body, {SIGNATURE_HEADER: b64e(sign(body, sk)), "Content-Type": "application/json"}


class FakeClient(BaseNodeClient):
    """Scripted outbound client: host -> NodeResponse or exception."""
    name = "fake"

    def __init__(self, script=None):
        self.script = dict(script or {})
        self.calls = []

    def send(self, host, action):
        self.calls.append((host, action))
        outcome = self.script.get(host, NodeResponse(200, b"OK"))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class PoweroffRecorder:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def __call__(self, delay_msec):
        self.calls.append(delay_msec)
        if self.error is not None:
            raise self.error


@pytest.fixture
def poweroff():
    return PoweroffRecorder()


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        webadmin=WebAdminConfig(
            uri_key="uri-key",
            password="secret",
            remotes=[Remote("a.lan"), Remote("b.lan", async_=True, poweroff_delay_msec=250)],
        ),
        home=tmp_path,
    )
