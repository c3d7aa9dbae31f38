"""
cloudcontrol.envelope
---------------------
Actions are the signed payloads exchanged between nodes. Every action carries
a `CurrentTime` stamp set by the sender immediately before signing; the
receiver rejects stale or future stamps.

Wire form is compact JSON with `CurrentTime` first, e.g.

    {"CurrentTime":"2024-05-01T10:00:00Z","Async":true,"PoweroffDelayMsec":500}
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Type, TypeVar
import json
from .errors import BadRequest, TimestampMissing, TimestampFormatInvalid
from .utils import compact_json, format_ts, parse_ts

A = TypeVar("A", bound="Action")


@dataclass
class Action:
    current_time: str = ""

    kind: ClassVar[str] = "action"

    def stamp(self, now: Optional[datetime] = None) -> "Action":
        self.current_time = format_ts(now)
        return self

    def parse_timestamp(self) -> datetime:
        if not self.current_time:
            raise TimestampMissing("no current time set")
        try:
            return parse_ts(self.current_time)
        except ValueError as e:
            raise TimestampFormatInvalid(f"cannot parse current time: {e}") from e

    def fields(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"CurrentTime": self.current_time}
        d.update(self.fields())
        return d

    def to_bytes(self) -> bytes:
        """The bytes that get signed and transmitted, as-is."""
        return compact_json(self.to_dict())

    @classmethod
    def from_dict(cls: Type[A], data: Dict[str, Any]) -> A:
        return cls(current_time=_str_field(data, "CurrentTime"))

    @classmethod
    def from_bytes(cls: Type[A], raw: bytes) -> A:
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise BadRequest(f"cannot JSON decode action: {e}") from e
        if not isinstance(data, dict):
            raise BadRequest("cannot JSON decode action: expected an object")
        return cls.from_dict(data)


@dataclass
class PoweroffAction(Action):
    async_: bool = False
    poweroff_delay_msec: int = 0

    kind: ClassVar[str] = "poweroff"

    def fields(self) -> Dict[str, Any]:
        return {"Async": self.async_, "PoweroffDelayMsec": self.poweroff_delay_msec}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PoweroffAction":
        async_ = data.get("Async", False)
        delay = data.get("PoweroffDelayMsec", 0)
        if not isinstance(async_, bool):
            raise BadRequest("cannot JSON decode action: Async must be a boolean")
        if isinstance(delay, bool) or not isinstance(delay, int):
            raise BadRequest("cannot JSON decode action: PoweroffDelayMsec must be an integer")
        return cls(
            current_time=_str_field(data, "CurrentTime"),
            async_=async_,
            poweroff_delay_msec=delay,
        )


@dataclass
class HealthAction(Action):
    kind: ClassVar[str] = "health"


@dataclass
class HealthResponse:
    status: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"Status": self.status}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HealthResponse":
        return cls(status=str(data.get("Status", "")))


def _str_field(data: Dict[str, Any], name: str) -> str:
    value = data.get(name, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise BadRequest(f"cannot JSON decode action: {name} must be a string")
    return value
