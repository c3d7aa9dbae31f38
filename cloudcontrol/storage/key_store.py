from __future__ import annotations
import os
from pathlib import Path
from typing import List, Union
from cryptography.hazmat.primitives.asymmetric import rsa
from cloudcontrol.constants import (
    SELF_KEY_DIR_NAME, SELF_PRIV_KEY_NAME, SELF_PUB_KEY_NAME, RSA_KEY_SIZE,
)
from cloudcontrol.crypto import (
    rsa_generate, private_key_from_pem, public_key_from_pem,
    private_key_to_pem, public_key_to_pem, compute_pubkey_fingerprint,
)
from cloudcontrol.errors import KeyFileMissing, AlreadyExists, KeyFormatInvalid
from cloudcontrol.logger import get_logger
from .models import Keypair, TrustedKey, TrustedKeySet

PathLike = Union[str, Path]

log = get_logger("CC.KeyStore")


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError as e:
        raise KeyFileMissing(f"cannot open key file '{path}'") from e
    except OSError as e:
        raise KeyFileMissing(f"cannot read key file '{path}': {e}") from e


def load_private_key(path: PathLike) -> rsa.RSAPrivateKey:
    path = Path(path)
    return private_key_from_pem(_read(path), source=str(path))


def load_public_key(path: PathLike) -> rsa.RSAPublicKey:
    path = Path(path)
    return public_key_from_pem(_read(path), source=str(path))


def self_key_paths(key_dir: PathLike) -> tuple[Path, Path]:
    key_dir = Path(key_dir)
    return key_dir / SELF_PRIV_KEY_NAME, key_dir / SELF_PUB_KEY_NAME


def load_local_keypair(key_dir: PathLike = SELF_KEY_DIR_NAME) -> Keypair:
    priv_path, pub_path = self_key_paths(key_dir)
    private_key = load_private_key(priv_path)
    public_key = load_public_key(pub_path)
    return Keypair(private_key=private_key, public_key=public_key)


def load_trusted_keys(directory: PathLike) -> TrustedKeySet:
    """
    Parse every regular file below `directory` as a PKCS#1 RSA public key.
    Sub-directories are descended into; a single bad file fails the whole load.
    """
    root = Path(directory)
    if not root.is_dir():
        raise KeyFileMissing(f"cannot walk directory '{root}'")

    def _raise(err: OSError) -> None:
        raise KeyFileMissing(f"cannot walk directory '{root}': {err}") from err

    entries: List[TrustedKey] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            try:
                key = load_public_key(path)
            except KeyFormatInvalid as e:
                raise KeyFormatInvalid(f"cannot read key at '{path}': {e}") from e
            entries.append(TrustedKey(path=str(path), public_key=key))
            log.info(f"[KEYS] trusted key {path} fpr={compute_pubkey_fingerprint(key)}")

    log.info(f"[KEYS] loaded {len(entries)} trusted key(s) from {root}")
    return TrustedKeySet(keys=tuple(entries))


def _write_new(path: Path, data: bytes) -> None:
    # O_EXCL: never overwrite a key that appeared after the existence check
    fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(data)


def generate_local_keypair(key_dir: PathLike = SELF_KEY_DIR_NAME, key_size: int = RSA_KEY_SIZE) -> Keypair:
    if key_size < RSA_KEY_SIZE:
        raise ValueError(f"key size must be at least {RSA_KEY_SIZE} bits")

    priv_path, pub_path = self_key_paths(key_dir)
    for path in (priv_path, pub_path):
        if path.exists():
            raise AlreadyExists(f"file '{path}' already exists")

    sk = rsa_generate(key_size)
    pk = sk.public_key()

    Path(key_dir).mkdir(mode=0o700, parents=True, exist_ok=True)
    try:
        _write_new(priv_path, private_key_to_pem(sk))
        _write_new(pub_path, public_key_to_pem(pk))
    except FileExistsError as e:
        raise AlreadyExists(f"file '{e.filename}' already exists") from e

    log.info(f"[KEYS] generated {key_size}-bit keypair in {key_dir}")
    return Keypair(private_key=sk, public_key=pk)
