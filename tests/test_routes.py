"""HTTP routes wired to the relay components."""

import httpx
import pytest
from fastapi.testclient import TestClient

from billrelay.services.relay.credentials import CredentialCache, CredentialProvider
from billrelay.services.relay.main import app, get_callback_forwarder, get_payment_relay
from billrelay.services.relay.service import CallbackForwarder, PaymentRelay


@pytest.fixture()
def internal_calls():
    return []


@pytest.fixture()
def client(make_settings, clock, internal_calls):
    def gateway(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/token":
            return httpx.Response(200, json={"access_token": "tok"})
        return httpx.Response(200, json={"Status": "OK", "echo": request.headers["x-trace-id"]})

    def internal(request: httpx.Request) -> httpx.Response:
        internal_calls.append(str(request.url))
        return httpx.Response(204)

    settings = make_settings(internal_callback_paths={"prod": "/callbacks/prod"})
    gateway_transport = httpx.MockTransport(gateway)
    provider = CredentialProvider(settings, CredentialCache(clock=clock), transport=gateway_transport)
    relay = PaymentRelay(settings, provider, transport=gateway_transport)
    forwarder = CallbackForwarder(settings, transport=httpx.MockTransport(internal))

    app.dependency_overrides[get_payment_relay] = lambda: relay
    app.dependency_overrides[get_callback_forwarder] = lambda: forwarder
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_push_route_relays_gateway_answer(client):
    response = client.post(
        "/relay/push-billpay",
        json={"ReferenceID": "REF1"},
        headers={"x-correlation-id": "corr-1"},
    )

    assert response.status_code == 200
    assert response.json() == {"Status": "OK", "echo": "corr-1"}


@pytest.mark.parametrize(
    ("path", "internal_url"),
    [
        ("/MixByYasPushCallback", "http://internal.test/callbacks/mixbyyas"),
        ("/prod/MixByYasPushCallback", "http://internal.test/callbacks/prod"),
    ],
)
def test_callback_routes_share_one_handler(client, internal_calls, path, internal_url):
    response = client.post(path, json={"ReferenceID": "REF123"})

    assert response.status_code == 200
    assert response.json()["ReferenceID"] == "REF123"
    assert response.json()["ResponseCode"] == "BILLER-18-0000-S"
    assert internal_calls == [internal_url]


def test_unknown_environment_prefix_is_not_routed(client):
    response = client.post("/staging/MixByYasPushCallback", json={"ReferenceID": "REF123"})

    assert response.status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_metrics_exposes_relay_counters(client):
    client.post("/MixByYasPushCallback", json={"ReferenceID": "REF9"})

    body = client.get("/metrics").text

    assert "callback_forward_total" in body
    assert "http_requests_total" in body


@pytest.mark.parametrize(
    ("gateway_answer", "content", "content_type"),
    [
        (httpx.Response(200, json="accepted"), b'"accepted"', "application/json"),
        (
            httpx.Response(202, content=b"<ok/>", headers={"content-type": "application/vnd.gateway+xml"}),
            b"<ok/>",
            "application/vnd.gateway+xml",
        ),
    ],
)
def test_push_route_returns_gateway_bytes_and_content_type(make_settings, clock, gateway_answer, content, content_type):
    def gateway(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/token":
            return httpx.Response(200, json={"access_token": "tok"})
        return gateway_answer

    settings = make_settings()
    transport = httpx.MockTransport(gateway)
    relay = PaymentRelay(settings, CredentialProvider(settings, CredentialCache(clock=clock), transport=transport), transport=transport)
    app.dependency_overrides[get_payment_relay] = lambda: relay
    try:
        response = TestClient(app).post("/relay/push-billpay", json={"ReferenceID": "REF1"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == gateway_answer.status_code
    assert response.content == content
    assert response.headers["content-type"] == content_type
