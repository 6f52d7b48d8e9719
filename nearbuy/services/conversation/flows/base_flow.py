from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional
import logging

from nearbuy.models.flows import FlowType
from nearbuy.models.message import IncomingMessage
from nearbuy.models.payload import MessagePayload
from nearbuy.models.session import ConversationSession
from nearbuy.schemas.phone_schema import mask_phone
from nearbuy.services.session.session_manager import SessionManager
from nearbuy.shared.whatsapp import TextMessageBuilder

if TYPE_CHECKING:
    from nearbuy.services.conversation.flow_router import FlowRouter


class BaseFlow(ABC):
    """
    Clase base para todos los flujos de conversación.

    Responsabilidad: Definir interfaz común y utilidades compartidas.
    Cada flujo decide qué mostrar en cada paso; las transiciones se hacen
    siempre a través de SessionManager.
    """

    flow_type: FlowType

    def __init__(self, sessions: SessionManager):
        self.sessions = sessions
        self.router: Optional["FlowRouter"] = None
        self.logger = logging.getLogger(self.__class__.__name__)

    def bind(self, router: "FlowRouter") -> None:
        """Lo llama el router al registrar el flujo."""
        self.router = router

    @abstractmethod
    async def start(self, session: ConversationSession) -> List[MessagePayload]:
        """
        Primer mensaje del flujo. La sesión ya está en el paso inicial.

        Returns:
            List[MessagePayload]: Mensajes a enviar, en orden
        """

    @abstractmethod
    async def handle(self, session: ConversationSession, message: IncomingMessage) -> List[MessagePayload]:
        """Procesa un mensaje según el paso actual de la sesión."""

    async def prompt(self, session: ConversationSession) -> List[MessagePayload]:
        """Vuelve a mostrar el paso actual (p. ej. tras "back")."""
        return await self.start(session)

    async def show_page(
        self,
        session: ConversationSession,
        page: int,
        list_key: Optional[str] = None,
    ) -> List[MessagePayload]:
        """Página `page` de la lista del paso actual. Sin listas paginadas, repite el paso."""
        return await self.prompt(session)

    def log_step(self, step: str, phone: str, detail: str = ""):
        """Utilidad para logging consistente entre flujos."""
        flow_name = self.__class__.__name__.replace('Flow', '').upper()
        self.logger.info(f"[{flow_name}] Paso '{step}' - phone={mask_phone(phone)}")
        if detail:
            self.logger.debug(f"[{flow_name}] {detail}")

    def text(self, session: ConversationSession, body: str, with_hint: bool = True) -> MessagePayload:
        builder = TextMessageBuilder(session.phone).body(body)
        if with_hint:
            builder.append_menu_hint(session.language)
        return builder.build()

    def create_error_response(self, session: ConversationSession, error_message: str) -> MessagePayload:
        """Utilidad para respuestas de error consistentes."""
        return self.text(session, f"❌ {error_message}")
