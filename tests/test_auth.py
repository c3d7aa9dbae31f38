from datetime import timedelta

import pytest

from cloudcontrol.auth import authenticate
from cloudcontrol.constants import SIGNATURE_HEADER
from cloudcontrol.envelope import HealthAction, PoweroffAction
from cloudcontrol.errors import BadRequest, ReplayOrClockSkew, Unauthenticated
from cloudcontrol.crypto import sign
from cloudcontrol.utils import b64e
from conftest import FIXED_NOW, signed_request


@pytest.mark.parametrize("index", [0, 1, 2])
def test_accepts_any_trusted_key(rsa_keys, trusted_keys, index):
    body, headers = signed_request(PoweroffAction(async_=True, poweroff_delay_msec=10), rsa_keys[index], FIXED_NOW)
    action = authenticate(headers[SIGNATURE_HEADER], body, trusted_keys, PoweroffAction, now=FIXED_NOW)
    assert action.async_ is True
    assert action.poweroff_delay_msec == 10


def test_rejects_untrusted_signer(untrusted_key, trusted_keys):
    body, headers = signed_request(HealthAction(), untrusted_key, FIXED_NOW)
    with pytest.raises(Unauthenticated):
        authenticate(headers[SIGNATURE_HEADER], body, trusted_keys, HealthAction, now=FIXED_NOW)


@pytest.mark.parametrize("header", [None, "", "%%%not-base64%%%"])
def test_rejects_missing_or_undecodable_signature(trusted_keys, header):
    body = HealthAction().stamp(FIXED_NOW).to_bytes()
    with pytest.raises(Unauthenticated):
        authenticate(header, body, trusted_keys, HealthAction, now=FIXED_NOW)


def test_rejects_modified_body(self_key, trusted_keys):
    body, headers = signed_request(PoweroffAction(async_=False), self_key, FIXED_NOW)
    tampered = body.replace(b"false", b"true")
    with pytest.raises(Unauthenticated):
        authenticate(headers[SIGNATURE_HEADER], tampered, trusted_keys, PoweroffAction, now=FIXED_NOW)


def test_signature_covers_raw_bytes_not_structure(self_key, trusted_keys):
    # Same JSON object, different whitespace: only the signed bytes verify.
    body = b'{"CurrentTime": "2024-05-01T10:00:00Z"}'
    sig = b64e(sign(body, self_key))
    assert authenticate(sig, body, trusted_keys, HealthAction, now=FIXED_NOW)
    with pytest.raises(Unauthenticated):
        authenticate(sig, b'{"CurrentTime":"2024-05-01T10:00:00Z"}', trusted_keys, HealthAction, now=FIXED_NOW)


@pytest.mark.parametrize("skew", [0, 1, 59, -59])
def test_accepts_inside_freshness_window(self_key, trusted_keys, skew):
    body, headers = signed_request(HealthAction(), self_key, FIXED_NOW + timedelta(seconds=skew))
    authenticate(headers[SIGNATURE_HEADER], body, trusted_keys, HealthAction, now=FIXED_NOW)


@pytest.mark.parametrize("skew", [60, -60, 61, 3600])
def test_rejects_outside_freshness_window(self_key, trusted_keys, skew):
    body, headers = signed_request(HealthAction(), self_key, FIXED_NOW + timedelta(seconds=skew))
    with pytest.raises(ReplayOrClockSkew):
        authenticate(headers[SIGNATURE_HEADER], body, trusted_keys, HealthAction, now=FIXED_NOW)


def test_replay_inside_window_is_accepted_again(self_key, trusted_keys):
    body, headers = signed_request(PoweroffAction(), self_key, FIXED_NOW)
    first = authenticate(headers[SIGNATURE_HEADER], body, trusted_keys, PoweroffAction, now=FIXED_NOW)
    later = FIXED_NOW + timedelta(seconds=30)
    second = authenticate(headers[SIGNATURE_HEADER], body, trusted_keys, PoweroffAction, now=later)
    assert first == second


@pytest.mark.parametrize("body", [
    b"not json",
    b"{}",
    b'{"CurrentTime":"garbage"}',
])
def test_signed_but_malformed_body_is_bad_request(self_key, trusted_keys, body):
    sig = b64e(sign(body, self_key))
    with pytest.raises(BadRequest):
        authenticate(sig, body, trusted_keys, HealthAction, now=FIXED_NOW)
