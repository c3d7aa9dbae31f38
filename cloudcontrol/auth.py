"""
cloudcontrol.auth
-----------------
Gatekeeper for every privileged inbound request.

A request is authorized only after all of these pass, in order:

1. the signature header is present and valid base64        -> else Unauthenticated
2. the raw body verifies against *some* trusted public key  -> else Unauthenticated
3. the verified bytes decode into the expected action       -> else BadRequest
4. the action's CurrentTime parses                          -> else BadRequest
5. |now - CurrentTime| < FRESHNESS_WINDOW_SEC               -> else ReplayOrClockSkew

The freshness window is the only replay defense: an identical request is
accepted again for as long as its stamp stays inside the window.
"""

from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional, Type, TypeVar
from cryptography.hazmat.primitives.asymmetric import rsa
from .constants import FRESHNESS_WINDOW_SEC
from .crypto import verify
from .envelope import Action
from .errors import Unauthenticated, ReplayOrClockSkew
from .logger import get_logger
from .utils import b64d, utcnow

A = TypeVar("A", bound=Action)

log = get_logger("CC.Auth")


def decode_signature(header: Optional[str]) -> bytes:
    if not header:
        raise Unauthenticated("missing signature header")
    try:
        signature = b64d(header)
    except ValueError as e:
        raise Unauthenticated("signature header is not valid base64") from e
    if not signature:
        raise Unauthenticated("empty signature")
    return signature


def verify_trusted(body: bytes, signature: bytes, trusted_keys: Iterable[rsa.RSAPublicKey]) -> bool:
    # Membership only: the matching key is not reported back.
    return any(verify(body, signature, key) for key in trusted_keys)


def check_freshness(t: datetime, now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    skew = abs((now - t).total_seconds())
    if skew >= FRESHNESS_WINDOW_SEC:
        raise ReplayOrClockSkew(f"current time deviates too far ({skew:.0f}s)")


def authenticate(
    signature_header: Optional[str],
    body: bytes,
    trusted_keys: Iterable[rsa.RSAPublicKey],
    action_cls: Type[A],
    now: Optional[datetime] = None,
) -> A:
    """Run the full gate over one request and return the authorized action."""
    signature = decode_signature(signature_header)

    if not verify_trusted(body, signature, trusted_keys):
        raise Unauthenticated("signature does not match any trusted key")

    action = action_cls.from_bytes(body)
    check_freshness(action.parse_timestamp(), now)

    log.debug(f"[AUTH] authorized {action_cls.kind} action stamped {action.current_time}")
    return action
