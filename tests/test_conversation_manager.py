# tests/test_conversation_manager.py
"""Tests for message orchestration (services/conversation/conversation_manager)."""

from unittest.mock import AsyncMock

import pytest

from conftest import PHONE
from nearbuy.models.flows import FlowType, TempKey
from nearbuy.models.message import IncomingMessage
from nearbuy.models.payload import MessageKind
from nearbuy.services.conversation import ConversationManager
from nearbuy.services.conversation.conversation_manager import GENERIC_ERROR
from nearbuy.services.whatsapp import SendOutcome
from nearbuy.shared.whatsapp import StructuralValidationError

SENT = SendOutcome(success=True, message_id="wamid.OUT", status_code=200, attempts=1)
FAILED = SendOutcome(success=False, error="Rate limit hit", status_code=429, attempts=3)


@pytest.fixture
def whatsapp():
    client = AsyncMock()
    client.send.return_value = SENT
    client.mark_as_read.return_value = True
    return client


@pytest.fixture
def manager(sessions, whatsapp, catalog):
    return ConversationManager(sessions=sessions, whatsapp=whatsapp, catalog=catalog)


def incoming(message_id, text=None, selection_id=None, phone=PHONE):
    return IncomingMessage(
        message_id=message_id,
        phone=phone,
        type="interactive" if selection_id else "text",
        text=text,
        selection_id=selection_id,
    )


def _sent_kinds(whatsapp):
    return [call.args[0].kind for call in whatsapp.send.await_args_list]


def test_greeting_is_answered_with_the_menu(event_loop, manager, whatsapp, store):
    outcomes = event_loop.run_until_complete(manager.process_message(incoming("wamid.1", text="hi")))

    assert outcomes == [SENT]
    assert _sent_kinds(whatsapp) == [MessageKind.LIST]
    whatsapp.mark_as_read.assert_awaited_once_with("wamid.1")
    stored = event_loop.run_until_complete(store.find(PHONE))
    assert stored.last_message_id == "wamid.1"
    assert stored.last_message_type == "text"


def test_duplicate_delivery_is_ignored(event_loop, manager, whatsapp):
    message = incoming("wamid.1", text="hi")

    event_loop.run_until_complete(manager.process_message(message))
    outcomes = event_loop.run_until_complete(manager.process_message(message))

    assert outcomes == []
    assert whatsapp.send.await_count == 1


def test_invalid_phone_is_dropped(event_loop, manager, whatsapp, store):
    outcomes = event_loop.run_until_complete(manager.process_message(incoming("wamid.1", text="hi", phone="123")))

    assert outcomes == []
    whatsapp.send.assert_not_awaited()
    assert len(store) == 0


def test_messages_are_sent_in_order(event_loop, manager, whatsapp):
    event_loop.run_until_complete(manager.process_message(incoming("wamid.1", selection_id="menu_offers_browse")))
    whatsapp.send.reset_mock()

    event_loop.run_until_complete(manager.process_message(incoming("wamid.2", text="cancel")))

    assert _sent_kinds(whatsapp) == [MessageKind.TEXT, MessageKind.LIST]


def test_send_failure_keeps_the_transition(event_loop, manager, whatsapp, store):
    whatsapp.send.return_value = FAILED

    outcomes = event_loop.run_until_complete(
        manager.process_message(incoming("wamid.1", selection_id="menu_offers_browse"))
    )

    assert outcomes == [FAILED]
    stored = event_loop.run_until_complete(store.find(PHONE))
    assert stored.current_flow == FlowType.OFFERS_BROWSE
    assert stored.current_step == "select_category"


def test_expired_flow_is_reset_before_routing(event_loop, manager, sessions, whatsapp, clock):
    session = event_loop.run_until_complete(sessions.get_or_create(PHONE))
    event_loop.run_until_complete(sessions.start_flow(session, FlowType.AGREEMENT_CREATE))
    event_loop.run_until_complete(sessions.set_step(session, "collecting_amount"))
    event_loop.run_until_complete(sessions.set_temp(session, TempKey.AGREEMENT_AMOUNT, "1500"))
    clock.advance(minutes=90)

    event_loop.run_until_complete(manager.process_message(incoming("wamid.9", text="1500")))

    session = event_loop.run_until_complete(sessions.get_or_create(PHONE))
    assert session.current_flow == FlowType.MAIN_MENU
    assert session.temp_data == {}
    assert _sent_kinds(whatsapp) == [MessageKind.LIST]


def test_malformed_outgoing_message_becomes_generic_error(event_loop, manager, whatsapp):
    manager.flow_router.route = AsyncMock(side_effect=StructuralValidationError("4 buttons"))

    outcomes = event_loop.run_until_complete(manager.process_message(incoming("wamid.1", text="hi")))

    assert outcomes == [SENT]
    payload = whatsapp.send.await_args.args[0]
    assert payload.kind == MessageKind.TEXT
    assert payload.body_text == GENERIC_ERROR


def test_close_closes_collaborators(event_loop, manager, whatsapp):
    event_loop.run_until_complete(manager.close())

    whatsapp.close.assert_awaited_once()
