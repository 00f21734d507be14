import json

import httpx
import pytest

from pawflow.config import Settings
from pawflow.core import NotificationDeliveryException
from pawflow.notifications.infrastructure import (
    CircuitState,
    SmsWebhookClient,
    build_email_transport,
    build_sms_client,
)

WEBHOOK = "https://sms.example.com/hook"


def _client(handler, max_retries=1):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SmsWebhookClient(WEBHOOK, max_retries=max_retries, http_client=http)


@pytest.mark.asyncio
async def test_posts_phone_and_body_as_json():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(202)

    client = _client(handler)
    await client.send("+15550100", "Your groom is done")
    await client.close()

    [request] = requests
    assert str(request.url) == WEBHOOK
    assert json.loads(request.content) == {"to": "+15550100", "body": "Your groom is done"}
    assert client.circuit_state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_retries_then_succeeds():
    responses = iter([httpx.Response(503), httpx.Response(200)])
    client = _client(lambda request: next(responses), max_retries=2)

    await client.send("+15550100", "hi")
    assert client.circuit_state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_non_success_raises_delivery_error():
    client = _client(lambda request: httpx.Response(500))

    with pytest.raises(NotificationDeliveryException) as exc_info:
        await client.send("+15550100", "hi")
    assert exc_info.value.channel == "sms"
    assert "500" in exc_info.value.message


@pytest.mark.asyncio
async def test_transport_error_raises_delivery_error():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    client = _client(handler)
    with pytest.raises(NotificationDeliveryException):
        await client.send("+15550100", "hi")


@pytest.mark.asyncio
async def test_circuit_opens_after_repeated_failures():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    client = _client(handler)
    for _ in range(5):
        with pytest.raises(NotificationDeliveryException):
            await client.send("+15550100", "hi")
    assert client.circuit_state == CircuitState.OPEN

    with pytest.raises(NotificationDeliveryException) as exc_info:
        await client.send("+15550100", "hi")
    assert "circuit breaker open" in exc_info.value.message
    assert len(calls) == 5


def test_transports_are_built_only_when_configured():
    bare = Settings(smtp_host=None, sms_webhook_url=None)
    assert build_email_transport(bare) is None
    assert build_sms_client(bare) is None

    configured = Settings(smtp_host="smtp.example.com", sms_webhook_url=WEBHOOK)
    assert build_email_transport(configured) is not None
    assert isinstance(build_sms_client(configured), SmsWebhookClient)
