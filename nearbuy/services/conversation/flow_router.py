import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping

from nearbuy.models.flows import FlowType, TempKey
from nearbuy.models.message import IncomingMessage
from nearbuy.models.payload import MessagePayload
from nearbuy.models.session import ConversationSession
from nearbuy.schemas.phone_schema import mask_phone
from nearbuy.services.session.session_manager import SessionManager
from nearbuy.services.conversation.flows.base_flow import BaseFlow
from nearbuy.shared.whatsapp import TextMessageBuilder, parse_pagination_token

logger = logging.getLogger(__name__)

MENU_KEYWORDS = frozenset({"menu", "home", "hi", "hello", "start", "main_menu"})
HELP_KEYWORDS = frozenset({"help", "?"})
CANCEL_KEYWORDS = frozenset({"cancel", "exit", "stop"})
BACK_KEYWORDS = frozenset({"back"})

# Textos fijos por idioma
ROUTER_TEXTS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "en": MappingProxyType({
        "help": (
            "ℹ️ *NearBuy Help*\n\n"
            "• Type *menu* to see the main menu\n"
            "• Type *back* to go to the previous step\n"
            "• Type *cancel* to stop what you are doing"
        ),
        "cancelled": "👍 Cancelled. Back to the main menu.",
        "unavailable": "🚧 This option is coming soon.",
    }),
    "ml": MappingProxyType({
        "help": (
            "ℹ️ *NearBuy സഹായം*\n\n"
            "• മെനു കാണാൻ *menu* എന്ന് ടൈപ്പ് ചെയ്യൂ\n"
            "• മുൻ ഘട്ടത്തിലേക്ക് *back*\n"
            "• നിർത്താൻ *cancel*"
        ),
        "cancelled": "👍 റദ്ദാക്കി. പ്രധാന മെനുവിലേക്ക്.",
        "unavailable": "🚧 ഈ സേവനം ഉടൻ വരുന്നു.",
    }),
})


class FlowRouter:
    """
    Responsabilidad única: Enrutar mensajes al flujo apropiado.

    Orden: palabras clave globales, ids de continuación de listas
    paginadas y por último el flujo actual de la sesión.
    """

    def __init__(
        self,
        sessions: SessionManager,
        flows: Iterable[BaseFlow],
        texts: Mapping[str, Mapping[str, str]] = ROUTER_TEXTS,
    ):
        self.sessions = sessions
        self.texts = texts
        self.flows: Dict[FlowType, BaseFlow] = {}
        for flow in flows:
            flow.bind(self)
            self.flows[flow.flow_type] = flow
        if FlowType.MAIN_MENU not in self.flows:
            raise ValueError("El router necesita un flujo de menú principal")

    def _text(self, session: ConversationSession, key: str) -> str:
        texts = self.texts.get(session.language) or self.texts["en"]
        return texts[key]

    async def route(self, session: ConversationSession, message: IncomingMessage) -> List[MessagePayload]:
        """
        Decide qué responder a un mensaje.

        Returns:
            List[MessagePayload]: Mensajes a enviar, en orden
        """
        keyword = message.keyword or (message.selection_id or "").lower()

        if keyword in MENU_KEYWORDS:
            return await self.main_menu(session)

        if keyword in HELP_KEYWORDS:
            return [TextMessageBuilder(session.phone).body(self._text(session, "help")).build()]

        if keyword in CANCEL_KEYWORDS:
            logger.info(f"[ROUTER] Cancelación phone={mask_phone(session.phone)} flow={session.current_flow.value}")
            notice = TextMessageBuilder(session.phone).body(self._text(session, "cancelled")).build()
            return [notice, *await self.main_menu(session)]

        if keyword in BACK_KEYWORDS:
            return await self._go_back(session)

        token = parse_pagination_token(message.selection_id)
        if token is not None:
            logger.info(
                f"[ROUTER] Página solicitada phone={mask_phone(session.phone)} "
                f"flow={session.current_flow.value} list={token.list_key} page={token.page}"
            )
            await self.sessions.set_temp(session, TempKey.CURRENT_PAGE, token.page)
            return await self._handler_for(session).show_page(session, token.page, token.list_key)

        handler = self.flows.get(session.current_flow)
        if handler is None:
            return await self._unavailable(session, session.current_flow)
        return await handler.handle(session, message)

    async def enter_flow(self, session: ConversationSession, flow: FlowType) -> List[MessagePayload]:
        """Inicia `flow` desde su paso inicial y muestra su primer mensaje."""
        handler = self.flows.get(flow)
        if handler is None:
            return await self._unavailable(session, flow)
        await self.sessions.start_flow(session, flow)
        return await handler.start(session)

    async def main_menu(self, session: ConversationSession) -> List[MessagePayload]:
        await self.sessions.reset_to_main_menu(session)
        return await self.flows[FlowType.MAIN_MENU].start(session)

    async def _go_back(self, session: ConversationSession) -> List[MessagePayload]:
        restored = await self.sessions.go_back(session)
        if not restored or session.current_flow == FlowType.MAIN_MENU:
            return await self.flows[FlowType.MAIN_MENU].start(session)
        return await self._handler_for(session).prompt(session)

    def _handler_for(self, session: ConversationSession) -> BaseFlow:
        return self.flows.get(session.current_flow) or self.flows[FlowType.MAIN_MENU]

    async def _unavailable(self, session: ConversationSession, flow: FlowType) -> List[MessagePayload]:
        logger.warning(
            f"[ROUTER] Flujo sin manejador phone={mask_phone(session.phone)} flow={flow.value}"
        )
        notice = TextMessageBuilder(session.phone).body(self._text(session, "unavailable")).build()
        return [notice, *await self.main_menu(session)]
