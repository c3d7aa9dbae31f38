"""
cloudcontrol.utils
------------------
Lightweight helpers for base64, RFC 3339 timestamps and compact JSON.
The envelope bytes produced here are the exact bytes that get signed.
"""

from __future__ import annotations
import base64, binascii, json, re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

TS_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_FRACTION = re.compile(r"\.(\d+)(?=[+-]\d\d:\d\d$)")


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")


def b64d(s: str) -> bytes:
    """Strict standard base64 decode; raises ValueError on bad input."""
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"invalid base64: {e}") from e


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_ts(t: Optional[datetime] = None) -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    t = t or utcnow()
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    return t.astimezone(timezone.utc).strftime(TS_FORMAT)


def parse_ts(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp. An explicit offset (or 'Z') is required,
    fractional seconds are accepted.
    """
    text = value.strip()
    if "T" not in text:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat on 3.10 only takes 3 or 6 fraction digits
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text)
    t = datetime.fromisoformat(text)
    if t.tzinfo is None:
        raise ValueError(f"timestamp has no UTC offset: {value!r}")
    return t


def compact_json(obj: Dict[str, Any]) -> bytes:
    # Field order is preserved; the receiver verifies these bytes as sent.
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
