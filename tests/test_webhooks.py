from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from mesabot.main import app

VENUE_UUID = "00000000-0000-0000-0000-000000000001"
URL = f"/api/v1/webhooks/telegram/{VENUE_UUID}"


async def _post(**kwargs):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post(URL, **kwargs)


@pytest.fixture
def runtime():
    runtime = MagicMock()
    app.state.runtime = runtime
    yield runtime
    del app.state.runtime


@pytest.mark.asyncio
async def test_text_message_is_queued(runtime):
    resp = await _post(
        json={
            "message": {
                "message_id": 1,
                "text": "hola",
                "chat": {"id": 123},
                "from": {"id": 7, "first_name": "Juan"},
            }
        }
    )

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    [incoming] = runtime.on_message.call_args.args
    assert incoming.venue_id == VENUE_UUID
    assert incoming.address == "123"
    assert incoming.text == "hola"


@pytest.mark.asyncio
async def test_payload_without_message_is_skipped(runtime):
    resp = await _post(json={})

    assert resp.json() == {"ok": True, "skipped": True}
    runtime.on_message.assert_not_called()


@pytest.mark.asyncio
async def test_invalid_json_still_answers_ok(runtime):
    resp = await _post(content=b"{nope", headers={"content-type": "application/json"})

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "error": "invalid_json"}


@pytest.mark.asyncio
async def test_runtime_error_is_reported_in_body(runtime):
    runtime.on_message.side_effect = RuntimeError("queue closed")

    resp = await _post(json={"message": {"message_id": 1, "text": "hola", "chat": {"id": 1}}})

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "error": "queue closed"}


@pytest.mark.asyncio
async def test_invalid_venue_id_is_rejected():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.post("/api/v1/webhooks/telegram/not-a-uuid", json={})

    assert resp.status_code == 422
