# tests/test_external_clients.py
"""Tests for the NearBuy REST clients (services/external)."""

import json

import httpx
import pytest

from conftest import PHONE
from nearbuy.models.flows import FlowType
from nearbuy.models.session import ConversationSession
from nearbuy.models.shop import ShopCategory
from nearbuy.services.external import ApiSessionStore, ApiShopCatalog, ApiUserDirectory
from nearbuy.services.session import SessionStoreError

API = "/api/v1"


def _http(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _session_row(clock, **overrides):
    session = ConversationSession(phone=PHONE, last_activity_at=clock(), created_at=clock(), **overrides)
    return session.model_dump(mode="json")


# ── Sesiones ─────────────────────────────────────────────


def test_find_returns_session(event_loop, clock):
    row = _session_row(clock, current_flow="offers_browse", current_step="show_offers")

    def handler(request):
        assert request.method == "GET"
        assert request.url.path == f"{API}/conversation-sessions/phone/{PHONE}"
        return httpx.Response(200, json={"data": row})

    store = ApiSessionStore(client=_http(handler))
    session = event_loop.run_until_complete(store.find(PHONE))

    assert session.current_flow == FlowType.OFFERS_BROWSE
    assert session.current_step == "show_offers"


def test_find_missing_session_returns_none(event_loop):
    store = ApiSessionStore(client=_http(lambda request: httpx.Response(404, json={"message": "Not found"})))

    assert event_loop.run_until_complete(store.find(PHONE)) is None


def test_find_server_error_raises(event_loop):
    store = ApiSessionStore(client=_http(lambda request: httpx.Response(500)))

    with pytest.raises(SessionStoreError):
        event_loop.run_until_complete(store.find(PHONE))


def test_connection_error_raises_store_error(event_loop):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    store = ApiSessionStore(client=_http(handler))

    with pytest.raises(SessionStoreError):
        event_loop.run_until_complete(store.find(PHONE))


def test_invalid_session_payload_raises(event_loop):
    store = ApiSessionStore(client=_http(lambda request: httpx.Response(200, json={"data": {"phone": "1"}})))

    with pytest.raises(SessionStoreError):
        event_loop.run_until_complete(store.find(PHONE))


def test_create_posts_initial_session(event_loop, clock):
    sent = []

    def handler(request):
        sent.append(json.loads(request.content))
        return httpx.Response(201, json={"data": sent[0]})

    store = ApiSessionStore(client=_http(handler))
    initial = ConversationSession(phone=PHONE, last_activity_at=clock())
    created = event_loop.run_until_complete(store.create(PHONE, initial))

    assert sent[0]["phone"] == PHONE
    assert sent[0]["current_flow"] == "main_menu"
    assert created.phone == PHONE


def test_create_conflict_returns_existing_row(event_loop, clock):
    row = _session_row(clock, user_id="user-9")

    def handler(request):
        if request.method == "POST":
            return httpx.Response(409, json={"message": "exists"})
        return httpx.Response(200, json={"data": row})

    store = ApiSessionStore(client=_http(handler))
    initial = ConversationSession(phone=PHONE, last_activity_at=clock())
    created = event_loop.run_until_complete(store.create(PHONE, initial))

    assert created.user_id == "user-9"


def test_save_puts_full_state(event_loop, clock):
    sent = []

    def handler(request):
        assert request.method == "PUT"
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={"data": None})

    store = ApiSessionStore(client=_http(handler))
    session = ConversationSession(
        phone=PHONE, last_activity_at=clock(), temp_data={"current_page": 2}
    )
    saved = event_loop.run_until_complete(store.save(session))

    assert sent[0]["temp_data"] == {"current_page": 2}
    assert saved.temp_data == {"current_page": 2}
    assert saved is not session


def test_delete_older_than(event_loop, clock):
    cutoff = clock()

    def handler(request):
        assert request.method == "DELETE"
        assert request.url.params["before"] == cutoff.isoformat()
        return httpx.Response(200, json={"data": {"deleted": 3}})

    store = ApiSessionStore(client=_http(handler))

    assert event_loop.run_until_complete(store.delete_older_than(cutoff)) == 3


def test_delete_without_content(event_loop, clock):
    store = ApiSessionStore(client=_http(lambda request: httpx.Response(204)))

    assert event_loop.run_until_complete(store.delete_older_than(clock())) == 0


# ── Usuarios ─────────────────────────────────────────────


def test_user_lookup(event_loop):
    def handler(request):
        if request.url.path.endswith(PHONE):
            return httpx.Response(200, json={"data": {"_id": "abc123", "name": "Asha"}})
        return httpx.Response(404)

    users = ApiUserDirectory(client=_http(handler))

    assert event_loop.run_until_complete(users.find_user_id_by_phone(PHONE)) == "abc123"
    assert event_loop.run_until_complete(users.find_user_id_by_phone("919800000001")) is None


# ── Tiendas ──────────────────────────────────────────────


def test_list_shops_skips_invalid_rows(event_loop):
    def handler(request):
        assert request.url.params["category"] == "grocery"
        return httpx.Response(200, json={"data": [
            {"id": "g1", "name": "Fresh Mart", "category": "grocery", "latitude": 9.9, "longitude": 76.2},
            {"id": "g2", "name": "", "category": "grocery"},
        ]})

    catalog = ApiShopCatalog(client=_http(handler))
    shops = event_loop.run_until_complete(catalog.list_shops(ShopCategory.GROCERY))

    assert [shop.id for shop in shops] == ["g1"]
    assert shops[0].has_location


def test_shop_errors_degrade_to_empty_results(event_loop):
    catalog = ApiShopCatalog(client=_http(lambda request: httpx.Response(502)))

    assert event_loop.run_until_complete(catalog.list_shops(ShopCategory.BAKERY)) == []
    assert event_loop.run_until_complete(catalog.get_shop("g1")) is None
