# tests/test_webhook.py
"""Tests for the WhatsApp webhook endpoints (api/v1/webhook)."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import PHONE
from nearbuy.api.v1.webhook import get_conversation_manager
from nearbuy.core.config import get_settings
from nearbuy.main import app
from nearbuy.services.conversation import ConversationManager
from nearbuy.services.session import SessionStoreError
from nearbuy.services.whatsapp import SendOutcome


def _update(value):
    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA_ID", "changes": [{"field": "messages", "value": value}]}],
    }


def _text_update(body="hi", message_id="wamid.IN1"):
    return _update({
        "messaging_product": "whatsapp",
        "metadata": {"display_phone_number": "15550000000", "phone_number_id": "1234567890"},
        "contacts": [{"wa_id": PHONE, "profile": {"name": "Asha"}}],
        "messages": [{
            "from": PHONE,
            "id": message_id,
            "timestamp": "1768451400",
            "type": "text",
            "text": {"body": body},
        }],
    })


@pytest.fixture
def manager():
    mock = MagicMock()
    mock.process_message = AsyncMock(return_value=[
        SendOutcome(success=True, message_id="wamid.OUT", status_code=200, attempts=1)
    ])
    return mock


@pytest.fixture
def client(manager):
    app.dependency_overrides[get_conversation_manager] = lambda: manager
    yield TestClient(app)
    app.dependency_overrides.clear()


# ── Verificación ─────────────────────────────────────────


def test_verification_echoes_challenge(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "VERIFY_TOKEN", "verify-me")

    response = client.get(
        "/webhook",
        params={"hub.mode": "subscribe", "hub.challenge": "1158201444", "hub.verify_token": "verify-me"},
    )

    assert response.status_code == 200
    assert response.text == "1158201444"


def test_verification_rejects_wrong_token(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "VERIFY_TOKEN", "verify-me")

    response = client.get(
        "/webhook",
        params={"hub.mode": "subscribe", "hub.challenge": "1", "hub.verify_token": "nope"},
    )

    assert response.status_code == 403


# ── Actualizaciones ──────────────────────────────────────


def test_text_message_is_processed(client, manager):
    response = client.post("/webhook", json=_text_update())

    assert response.status_code == 200
    assert response.json() == {
        "status": "processed",
        "messages": [{"message_id": "wamid.IN1", "sent": 1, "failed": 0}],
    }
    incoming = manager.process_message.await_args.args[0]
    assert incoming.phone == PHONE
    assert incoming.text == "hi"
    assert incoming.profile_name == "Asha"


def test_list_reply_is_normalized(client, manager):
    payload = _update({
        "contacts": [{"wa_id": PHONE}],
        "messages": [{
            "from": PHONE,
            "id": "wamid.IN2",
            "timestamp": "1768451400",
            "type": "interactive",
            "interactive": {
                "type": "list_reply",
                "list_reply": {"id": "page_next_shops:2", "title": "More ➡️ (14 left)"},
            },
        }],
    })

    client.post("/webhook", json=payload)

    incoming = manager.process_message.await_args.args[0]
    assert incoming.selection_id == "page_next_shops:2"
    assert incoming.text is None


def test_shared_location_is_normalized(client, manager):
    payload = _update({
        "messages": [{
            "from": PHONE,
            "id": "wamid.IN3",
            "timestamp": "1768451400",
            "type": "location",
            "location": {"latitude": 9.9312, "longitude": 76.2673},
        }],
    })

    client.post("/webhook", json=payload)

    incoming = manager.process_message.await_args.args[0]
    assert incoming.is_location
    assert incoming.location.latitude == 9.9312


def test_status_updates_are_acknowledged(client, manager):
    payload = _update({
        "statuses": [
            {"id": "wamid.OUT", "status": "delivered", "timestamp": "1768451400", "recipient_id": PHONE},
            {"id": "wamid.OUT", "status": "read", "timestamp": "1768451460", "recipient_id": PHONE},
        ],
    })

    response = client.post("/webhook", json=payload)

    assert response.json() == {"status": "status_received", "count": 2}
    manager.process_message.assert_not_awaited()


def test_empty_update_is_ignored(client, manager):
    response = client.post("/webhook", json=_update({}))

    assert response.json() == {"status": "ignored", "reason": "no_valid_message"}


def test_store_outage_returns_503(client, manager):
    manager.process_message.side_effect = SessionStoreError("Timeout al comunicarse con la API")

    response = client.post("/webhook", json=_text_update())

    assert response.status_code == 503


def test_end_to_end_with_in_memory_engine(sessions, catalog):
    whatsapp = AsyncMock()
    whatsapp.send.return_value = SendOutcome(success=True, message_id="wamid.OUT", status_code=200, attempts=1)
    engine = ConversationManager(sessions=sessions, whatsapp=whatsapp, catalog=catalog)
    app.dependency_overrides[get_conversation_manager] = lambda: engine
    try:
        response = TestClient(app).post("/webhook", json=_text_update("menu"))
    finally:
        app.dependency_overrides.clear()

    assert response.json()["messages"][0]["sent"] == 1
    menu = whatsapp.send.await_args.args[0]
    assert menu.to_api()["interactive"]["type"] == "list"


def test_root(client):
    assert client.get("/").json() == {"message": "NearBuy – WhatsApp"}
