from __future__ import annotations


class CloudControlError(Exception):
    pass


# --------- key store ----------
class KeyFileMissing(CloudControlError):
    pass


class KeyFormatInvalid(CloudControlError):
    pass


class AlreadyExists(CloudControlError):
    pass


# --------- signer ----------
class SigningError(CloudControlError):
    pass


# --------- inbound ----------
class Unauthenticated(CloudControlError):
    """Missing, undecodable or non-matching signature. Never carries detail to the caller."""


class BadRequest(CloudControlError):
    pass


class TimestampMissing(BadRequest):
    pass


class TimestampFormatInvalid(BadRequest):
    pass


class ReplayOrClockSkew(BadRequest):
    pass


# --------- outbound ----------
class PeerUnreachable(CloudControlError):
    pass


class RemoteError(CloudControlError):
    """The peer answered, but not with success."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


# --------- local ----------
class PoweroffError(CloudControlError):
    pass


class ConfigError(CloudControlError):
    pass
