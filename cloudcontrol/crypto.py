"""
cloudcontrol.crypto
-------------------
Signing primitives for node-to-node commands:

- RSA (PKCS#1 v1.5 over SHA-256): sign / verify the exact request body bytes
- PEM helpers for PKCS#1 "RSA PRIVATE KEY" / "RSA PUBLIC KEY" blocks
- A short public key fingerprint for log lines

Signatures always cover raw transmitted bytes; nothing here re-serializes.
"""

from __future__ import annotations
from typing import Optional
import hashlib
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from .constants import (
    RSA_KEY_SIZE, RSA_PUBLIC_EXPONENT, PEM_PRIVATE_KEY_TYPE, PEM_PUBLIC_KEY_TYPE,
)
from .errors import SigningError, KeyFormatInvalid


# --------- RSA keys ----------
def rsa_generate(key_size: int = RSA_KEY_SIZE) -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=key_size)


def private_key_to_pem(sk: rsa.RSAPrivateKey) -> bytes:
    return sk.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def public_key_to_pem(pk: rsa.RSAPublicKey) -> bytes:
    return pk.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.PKCS1,
    )


def pem_block_type(data: bytes) -> Optional[str]:
    """Return the label of the first PEM block ("RSA PUBLIC KEY", ...) or None."""
    text = data.decode("ascii", errors="replace").lstrip()
    prefix = "-----BEGIN "
    if not text.startswith(prefix):
        return None
    end = text.find("-----", len(prefix))
    if end < 0:
        return None
    return text[len(prefix):end]


def private_key_from_pem(data: bytes, source: str = "<bytes>") -> rsa.RSAPrivateKey:
    block_type = pem_block_type(data)
    if block_type is None:
        raise KeyFormatInvalid(f"cannot decode private key file '{source}'")
    if block_type != PEM_PRIVATE_KEY_TYPE:
        raise KeyFormatInvalid(
            f"expected private key type to be '{PEM_PRIVATE_KEY_TYPE}' but was '{block_type}' in '{source}'"
        )
    try:
        sk = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError) as e:
        raise KeyFormatInvalid(f"cannot parse RSA key in private key file '{source}'") from e
    if not isinstance(sk, rsa.RSAPrivateKey):
        raise KeyFormatInvalid(f"private key file '{source}' does not hold an RSA key")
    return sk


def public_key_from_pem(data: bytes, source: str = "<bytes>") -> rsa.RSAPublicKey:
    block_type = pem_block_type(data)
    if block_type != PEM_PUBLIC_KEY_TYPE:
        raise KeyFormatInvalid(f"cannot decode public key file '{source}'")
    try:
        pk = serialization.load_pem_public_key(data)
    except (ValueError, TypeError) as e:
        raise KeyFormatInvalid(f"cannot parse RSA key in public key file '{source}'") from e
    if not isinstance(pk, rsa.RSAPublicKey):
        raise KeyFormatInvalid(f"public key file '{source}' does not hold an RSA key")
    return pk


# --------- sign / verify ----------
def sign(payload: bytes, sk: rsa.RSAPrivateKey) -> bytes:
    try:
        return sk.sign(payload, padding.PKCS1v15(), hashes.SHA256())
    except (ValueError, TypeError) as e:
        raise SigningError(f"cannot sign message: {e}") from e


def verify(payload: bytes, signature: bytes, pk: rsa.RSAPublicKey) -> bool:
    try:
        pk.verify(signature, payload, padding.PKCS1v15(), hashes.SHA256())
        return True
    except (InvalidSignature, ValueError, TypeError):
        return False


def compute_pubkey_fingerprint(pk: rsa.RSAPublicKey) -> str:
    """
    Hex SHA-256 of the DER (PKCS#1) public key, truncated to 32 chars.
    Names trusted keys in load log lines; trust is by set membership.
    """
    der = pk.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.PKCS1,
    )
    return hashlib.sha256(der).hexdigest()[:32]
