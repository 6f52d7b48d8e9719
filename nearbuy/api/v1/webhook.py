from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from functools import lru_cache
from nearbuy.core.config import get_settings
from nearbuy.models.message import Contact, IncomingMessage, Status, WebhookPayload
from nearbuy.services.conversation import ConversationManager
from nearbuy.services.session.errors import SessionStoreError
import logging
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook")


@lru_cache
def get_conversation_manager() -> ConversationManager:
    """Instancia global del conversation manager (se crea en la primera petición)."""
    return ConversationManager()

# ============================================================================
# ENDPOINTS PRINCIPALES
# ============================================================================

@router.get("")
async def verify_webhook(
    hub_mode: str = Query("", alias="hub.mode"),
    hub_challenge: str = Query("", alias="hub.challenge"),
    hub_verify_token: str = Query("", alias="hub.verify_token"),
):
    """Verifica el webhook de WhatsApp Business API."""
    verify_token = get_settings().VERIFY_TOKEN
    if hub_mode == "subscribe" and verify_token and hub_verify_token == verify_token:
        return PlainTextResponse(content=hub_challenge, status_code=200)

    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("")
async def receive_update(
    payload: WebhookPayload,
    conversation_manager: ConversationManager = Depends(get_conversation_manager),
):
    """
    Endpoint principal para recibir actualizaciones de WhatsApp.
    Responsabilidad: Orquestación y manejo de errores.
    """
    try:
        # 1. Extraer mensajes del payload
        update = _extract_update(payload)
        if not update:
            return {"status": "ignored", "reason": "no_valid_message"}

        # 2. Manejar actualizaciones de estado si es el caso
        if update["type"] == "status_update":
            return _handle_status_update(update["statuses"])

        # 3. Procesar mensajes de chat
        return await _process_chat_messages(update["messages"], conversation_manager)

    except HTTPException:
        raise
    except SessionStoreError as e:
        logger.error(f"[WEBHOOK] Almacén de sesiones no disponible: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session store unavailable"
        )

# ============================================================================
# FUNCIONES PRIVADAS - EXTRACCIÓN Y VALIDACIÓN
# ============================================================================

def _extract_update(payload: WebhookPayload) -> Optional[Dict[str, Any]]:
    """
    Extrae mensajes o estados del payload de WhatsApp.
    Responsabilidad: Parsing y validación de estructura.
    """
    messages: List[IncomingMessage] = []
    statuses: List[Status] = []

    for entry in payload.entry:
        for change in entry.changes:
            statuses.extend(change.value.statuses)
            contacts = {c.wa_id: c for c in change.value.contacts if c.wa_id}
            for message in change.value.messages:
                contact: Optional[Contact] = contacts.get(message.from_)
                messages.append(IncomingMessage.from_webhook(message, contact))

    if messages:
        return {"type": "chat_message", "messages": messages}
    if statuses:
        return {"type": "status_update", "statuses": statuses}
    return None

# ============================================================================
# FUNCIONES PRIVADAS - PROCESAMIENTO
# ============================================================================

async def _process_chat_messages(messages: List[IncomingMessage], conversation_manager: ConversationManager) -> Dict[str, Any]:
    """
    Procesa los mensajes de chat en orden.
    Los fallos de envío se registran pero no se devuelven a Meta como error.
    """
    processed = []
    for incoming in messages:
        outcomes = await conversation_manager.process_message(incoming)
        processed.append({
            "message_id": incoming.message_id,
            "sent": sum(1 for o in outcomes if o.success),
            "failed": sum(1 for o in outcomes if not o.success),
        })

    return {"status": "processed", "messages": processed}

# ============================================================================
# FUNCIONES PRIVADAS - MANEJO DE ESTADOS
# ============================================================================

def _handle_status_update(statuses: List[Status]) -> Dict[str, Any]:
    """
    Maneja actualizaciones de estado de mensajes desde WhatsApp.
    Responsabilidad: Procesamiento de estados de delivery.
    """
    for status_update in statuses:
        logger.debug(f"[WEBHOOK] Estado actualizado - ID: {status_update.id}, Estado: {status_update.status}")

    return {"status": "status_received", "count": len(statuses)}
