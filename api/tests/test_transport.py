from unittest.mock import MagicMock

import pytest
import requests

from app.client.exceptions import SyncAuthError, SyncTransportError
from app.client.transport import SyncApiClient


def make_client(status_code=200, body=None, json_error=None, post_error=None):
    response = MagicMock(status_code=status_code, text="oops")
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = body
    session = MagicMock()
    if post_error is not None:
        session.post.side_effect = post_error
    else:
        session.post.return_value = response
    session.get.return_value = response
    return SyncApiClient("http://server/", access_token="tok", session=session), session


def test_posts_to_stream_url_with_bearer_token():
    client, session = make_client(body={"timestamp": "2024-03-01T10:00:00.000000Z", "processed": []})

    body = client.post_sync("reviews", {"operations": []})

    assert body["processed"] == []
    args, kwargs = session.post.call_args
    assert args[0] == "http://server/api/sync/reviews"
    assert kwargs["headers"]["Authorization"] == "Bearer tok"
    assert kwargs["json"] == {"operations": []}


def test_network_failure_is_a_transport_error():
    client, _ = make_client(post_error=requests.exceptions.ConnectionError("refused"))
    with pytest.raises(SyncTransportError):
        client.post_sync("stats", {"operations": []})


def test_unauthorized_is_an_auth_error():
    client, _ = make_client(status_code=401)
    with pytest.raises(SyncAuthError) as excinfo:
        client.post_sync("stats", {"operations": []})
    assert excinfo.value.status_code == 401


def test_server_error_keeps_status_code():
    client, _ = make_client(status_code=500)
    with pytest.raises(SyncTransportError) as excinfo:
        client.post_sync("vocabulary", {"operations": []})
    assert excinfo.value.status_code == 500


@pytest.mark.parametrize("body", [[], {"processed": []}, {"timestamp": 5}])
def test_unexpected_body_is_rejected(body):
    client, _ = make_client(body=body)
    with pytest.raises(SyncTransportError):
        client.post_sync("reviews", {"operations": []})


def test_undecodable_body_is_rejected():
    client, _ = make_client(json_error=ValueError("not json"))
    with pytest.raises(SyncTransportError):
        client.post_sync("reviews", {"operations": []})


def test_ping():
    client, session = make_client(status_code=200)
    assert client.ping() is True
    assert session.get.call_args[0][0] == "http://server/health"

    session.get.side_effect = requests.exceptions.Timeout("slow")
    assert client.ping() is False
