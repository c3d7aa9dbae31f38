import json

import pytest
import requests

from cloudcontrol.auth import authenticate
from cloudcontrol.constants import SIGNATURE_HEADER
from cloudcontrol.envelope import HealthAction, PoweroffAction
from cloudcontrol.errors import PeerUnreachable
from cloudcontrol.transport import HTTPNodeClient


class FakeResponse:
    def __init__(self, status_code=200, content=b"OK", reason="OK"):
        self.status_code = status_code
        self.content = content
        self.reason = reason
        self.headers = {"Content-Type": "text/plain"}


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.posts = []
        self.closed = False

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


def test_send_signs_exact_body(self_key, trusted_keys):
    session = FakeSession()
    client = HTTPNodeClient(self_key, session=session)

    res = client.send("nas.lan", PoweroffAction(async_=True, poweroff_delay_msec=100))
    assert res.ok and res.text == "OK"

    sent = session.posts[0]
    assert sent["url"] == "http://nas.lan:2001/node/execute/poweroff"
    assert sent["timeout"] == 5.0
    assert sent["headers"]["Content-Type"] == "application/json"

    # What the receiver would do with these exact bytes.
    action = authenticate(sent["headers"][SIGNATURE_HEADER], sent["data"], trusted_keys, PoweroffAction)
    assert action.async_ is True and action.poweroff_delay_msec == 100


def test_health_endpoint_and_response_passthrough(self_key):
    session = FakeSession(FakeResponse(200, b'{"Status":"online"}'))
    client = HTTPNodeClient(self_key, port=8080, session=session)

    res = client.send("10.0.0.2", HealthAction())
    assert session.posts[0]["url"] == "http://10.0.0.2:8080/node/health"
    assert json.loads(session.posts[0]["data"]).keys() == {"CurrentTime"}
    assert res.json() == {"Status": "online"}


def test_non_200_is_returned_not_raised(self_key):
    session = FakeSession(FakeResponse(401, b"Unauthorized", "Unauthorized"))
    res = HTTPNodeClient(self_key, session=session).send("x", HealthAction())
    assert res.status_code == 401 and not res.ok


@pytest.mark.parametrize("error", [
    requests.ConnectionError("refused"),
    requests.Timeout("timed out"),
])
def test_connection_errors_become_peer_unreachable(self_key, error):
    session = FakeSession(error=error)
    with pytest.raises(PeerUnreachable):
        HTTPNodeClient(self_key, session=session).send("down.lan", HealthAction())
    assert len(session.posts) == 1  # no retries


def test_close_closes_session(self_key):
    session = FakeSession()
    HTTPNodeClient(self_key, session=session).close()
    assert session.closed


def test_default_client_posts_without_shared_session(self_key, monkeypatch):
    from cloudcontrol.transport import transport_http

    posts = []

    def fake_post(url, data=None, headers=None, timeout=None):
        posts.append(url)
        return FakeResponse()

    monkeypatch.setattr(transport_http.requests, "post", fake_post)
    client = HTTPNodeClient(self_key)
    assert client.session is None

    client.send("a.lan", HealthAction())
    client.send("b.lan", HealthAction())
    client.close()
    assert posts == ["http://a.lan:2001/node/health", "http://b.lan:2001/node/health"]
