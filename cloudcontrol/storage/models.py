# cloudcontrol/storage/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, Tuple
from cryptography.hazmat.primitives.asymmetric import rsa


@dataclass(frozen=True)
class Keypair:
    """
    The local node's signing keypair.

    The public half is loaded from its own file and is not checked against
    the private half; keeping the two files paired is up to the operator.
    """
    private_key: rsa.RSAPrivateKey
    public_key: rsa.RSAPublicKey


@dataclass(frozen=True)
class TrustedKey:
    path: str
    public_key: rsa.RSAPublicKey


@dataclass(frozen=True)
class TrustedKeySet:
    """Public keys this node accepts signed commands from. Read-only after load."""
    keys: Tuple[TrustedKey, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[rsa.RSAPublicKey]:
        return (k.public_key for k in self.keys)

    def __len__(self) -> int:
        return len(self.keys)

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(k.path for k in self.keys)
