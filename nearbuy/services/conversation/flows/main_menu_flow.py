from typing import List, Optional

from nearbuy.models.flows import ContextKey, FlowType
from nearbuy.models.message import IncomingMessage
from nearbuy.models.payload import ListItem, MessagePayload
from nearbuy.models.session import ConversationSession
from nearbuy.shared.whatsapp import ListMessageBuilder
from .base_flow import BaseFlow

MENU_PREFIX = "menu_"

# Orden del menú principal para usuarios registrados
MENU_FLOWS = (
    FlowType.OFFERS_BROWSE,
    FlowType.PRODUCT_SEARCH,
    FlowType.OFFERS_UPLOAD,
    FlowType.OFFERS_MANAGE,
    FlowType.AGREEMENT_CREATE,
    FlowType.AGREEMENT_LIST,
    FlowType.AGREEMENT_CONFIRM,
    FlowType.SETTINGS,
)

MENU_DESCRIPTIONS = {
    FlowType.REGISTRATION: "Create your free NearBuy account",
    FlowType.OFFERS_BROWSE: "Deals from shops near you",
    FlowType.PRODUCT_SEARCH: "Ask nearby shops for a product",
    FlowType.OFFERS_UPLOAD: "Post a new offer for your shop",
    FlowType.OFFERS_MANAGE: "Edit or remove your offers",
    FlowType.AGREEMENT_CREATE: "Record a new money agreement",
    FlowType.AGREEMENT_LIST: "See your agreements",
    FlowType.AGREEMENT_CONFIRM: "Agreements waiting for you",
    FlowType.SETTINGS: "Language, location, alerts",
}


def menu_item_id(flow: FlowType) -> str:
    return f"{MENU_PREFIX}{flow.value}"


def parse_menu_item_id(item_id: Optional[str]) -> Optional[FlowType]:
    if not item_id or not item_id.startswith(MENU_PREFIX):
        return None
    try:
        return FlowType(item_id[len(MENU_PREFIX):])
    except ValueError:
        return None


class MainMenuFlow(BaseFlow):
    """
    Menú principal. Selecciona el siguiente flujo.
    Los usuarios sin registrar ven primero la opción de registro.
    """

    flow_type = FlowType.MAIN_MENU

    def menu_options(self, session: ConversationSession) -> List[ListItem]:
        flows = list(MENU_FLOWS)
        if not self.sessions.is_registered(session):
            # Registro primero; se ocultan las opciones de tienda
            flows = [FlowType.REGISTRATION] + [
                f for f in flows if f not in (FlowType.OFFERS_UPLOAD, FlowType.OFFERS_MANAGE)
            ]
        return [
            ListItem(id=menu_item_id(flow), title=flow.label, description=MENU_DESCRIPTIONS.get(flow))
            for flow in flows
        ]

    async def start(self, session: ConversationSession) -> List[MessagePayload]:
        if session.current_step != self.flow_type.initial_step:
            await self.sessions.set_flow_step(session, self.flow_type, self.flow_type.initial_step)
        await self.sessions.increment_context(session, ContextKey.MENU_VISITS)
        self.log_step(session.current_step, session.phone)

        greeting = "👋 Welcome to *NearBuy*!" if not self.sessions.is_registered(session) else "🏠 *Main Menu*"
        payload = (
            ListMessageBuilder(session.phone)
            .body(f"{greeting}\n\nWhat would you like to do today?")
            .button_text("📋 Menu")
            .add_section("NearBuy", self.menu_options(session))
            .build()
        )
        return [payload]

    async def handle(self, session: ConversationSession, message: IncomingMessage) -> List[MessagePayload]:
        flow = parse_menu_item_id(message.selection_id)
        if flow is None or flow == FlowType.MAIN_MENU:
            return await self.start(session)

        self.log_step("select", session.phone, f"flow={flow.value}")
        return await self.router.enter_flow(session, flow)
