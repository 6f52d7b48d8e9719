import asyncio
import logging
from typing import List, Optional
from weakref import WeakValueDictionary

from pydantic import ValidationError

from nearbuy.models.message import IncomingMessage
from nearbuy.models.payload import MessagePayload
from nearbuy.schemas.phone_schema import mask_phone, normalize_phone
from nearbuy.services.catalog import ShopCatalog
from nearbuy.services.conversation.flow_router import FlowRouter
from nearbuy.services.conversation.flows import MainMenuFlow, OfferBrowseFlow
from nearbuy.services.external import ApiSessionStore, ApiShopCatalog, ApiUserDirectory
from nearbuy.services.session.session_manager import SessionManager
from nearbuy.services.whatsapp import SendOutcome, WhatsAppClient
from nearbuy.shared.whatsapp import StructuralValidationError, TextMessageBuilder

logger = logging.getLogger(__name__)

GENERIC_ERROR = "😕 Something went wrong on our side. Type *menu* to start again."


class ConversationManager:
    """
    Responsabilidad única: Orquestar el procesamiento de conversaciones.
    Coordina sesión, router de flujos y envío de mensajes.
    """

    def __init__(
        self,
        sessions: Optional[SessionManager] = None,
        whatsapp: Optional[WhatsAppClient] = None,
        catalog: Optional[ShopCatalog] = None,
    ):
        """
        Inicializa el gestor de conversaciones.
        Sin colaboradores explícitos usa los clientes de la API de NearBuy.
        """
        self.sessions = sessions or SessionManager(ApiSessionStore(), users=ApiUserDirectory())
        self.whatsapp = whatsapp or WhatsAppClient()
        self.catalog = catalog or ApiShopCatalog()

        self.flow_router = FlowRouter(self.sessions, [
            MainMenuFlow(self.sessions),
            OfferBrowseFlow(self.sessions, self.catalog),
        ])
        # Un mensaje a la vez por teléfono
        self._locks: "WeakValueDictionary[str, asyncio.Lock]" = WeakValueDictionary()

    def _lock_for(self, phone: str) -> asyncio.Lock:
        lock = self._locks.get(phone)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[phone] = lock
        return lock

    async def process_message(self, incoming: IncomingMessage) -> List[SendOutcome]:
        """
        Procesa un mensaje entrante completo.

        Returns:
            List[SendOutcome]: Resultado de cada envío; vacía si el mensaje
            era un duplicado o el teléfono no es válido
        """
        try:
            phone = normalize_phone(incoming.phone)
        except ValidationError:
            logger.warning(f"[CONVERSATION] Teléfono inválido ignorado: {mask_phone(incoming.phone)}")
            return []

        async with self._lock_for(phone):
            session = await self.sessions.get_active_or_reset(phone)

            if self.sessions.is_duplicate_message(session, incoming.message_id):
                logger.info(
                    f"[CONVERSATION] Duplicado ignorado phone={mask_phone(phone)} message_id={incoming.message_id}"
                )
                return []

            await self.sessions.record_message(session, incoming.message_id, incoming.type)
            await self.whatsapp.mark_as_read(incoming.message_id)

            logger.info(
                f"[CONVERSATION] Mensaje phone={mask_phone(phone)} type={incoming.type} "
                f"flow={session.current_flow.value} step={session.current_step}"
            )

            try:
                payloads = await self.flow_router.route(session, incoming)
            except StructuralValidationError as e:
                # Error de programación en un flujo: se registra y se avisa al usuario
                logger.error(f"[CONVERSATION] Mensaje mal construido phone={mask_phone(phone)}: {e}", exc_info=True)
                payloads = [TextMessageBuilder(phone).body(GENERIC_ERROR).build()]

            return await self._send_all(payloads)

    async def _send_all(self, payloads: List[MessagePayload]) -> List[SendOutcome]:
        """Envía en orden. Un fallo no revierte la transición ya hecha."""
        outcomes = []
        for payload in payloads:
            outcome = await self.whatsapp.send(payload)
            if not outcome.success:
                logger.warning(
                    f"[CONVERSATION] Envío fallido phone={mask_phone(payload.recipient)} "
                    f"kind={payload.kind.value} error={outcome.error}"
                )
            outcomes.append(outcome)
        return outcomes

    async def close(self):
        """Cierra los clientes HTTP."""
        for client in (self.sessions.store, self.sessions.users, self.catalog, self.whatsapp):
            close = getattr(client, "close", None)
            if close is not None:
                await close()
