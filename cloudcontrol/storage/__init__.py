# cloudcontrol/storage/__init__.py

from .models import Keypair, TrustedKey, TrustedKeySet
from .key_store import (
    load_local_keypair,
    load_trusted_keys,
    generate_local_keypair,
    load_private_key,
    load_public_key,
)

__all__ = [
    "Keypair",
    "TrustedKey",
    "TrustedKeySet",
    "load_local_keypair",
    "load_trusted_keys",
    "generate_local_keypair",
    "load_private_key",
    "load_public_key",
]
