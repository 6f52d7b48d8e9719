import logging
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from nearbuy.models.session import ConversationSession
from nearbuy.schemas.phone_schema import mask_phone
from nearbuy.services.session.errors import SessionStoreError
from nearbuy.services.session.store import SessionStore
from .base_client import BaseClient, NearbuyApiError

logger = logging.getLogger(__name__)


class ApiSessionStore(BaseClient, SessionStore):
    """
    Almacén de sesiones sobre la API REST de NearBuy.
    Responsabilidad única: persistir ConversationSession por teléfono.
    Cualquier fallo HTTP se convierte en SessionStoreError.
    """

    def _parse(self, data) -> ConversationSession:
        try:
            return ConversationSession.model_validate(data)
        except ValidationError as e:
            logger.error(f"[SESSIONS] Respuesta con sesión inválida: {e.error_count()} errores")
            raise SessionStoreError("La API devolvió una sesión inválida") from e

    async def _request(self, method: str, url: str, **kwargs):
        try:
            return await self._make_request(method, url, **kwargs)
        except NearbuyApiError as e:
            raise SessionStoreError(str(e)) from e

    async def find(self, phone: str) -> Optional[ConversationSession]:
        """
        Obtiene la sesión de un teléfono.

        Returns:
            ConversationSession o None si no existe
        """
        response = await self._request("GET", f"conversation-sessions/phone/{phone}")

        if response.status_code == 200:
            return self._parse(response.json().get("data"))
        if response.status_code == 404:
            logger.debug(f"[SESSIONS] Sin sesión para {mask_phone(phone)}")
            return None
        raise SessionStoreError(f"Error obteniendo sesión: {response.status_code}")

    async def create(self, phone: str, initial: ConversationSession) -> ConversationSession:
        """Crea la sesión; con 409 (creada en paralelo) devuelve la existente."""
        response = await self._request(
            "POST", "conversation-sessions", json=initial.model_dump(mode="json")
        )

        if response.status_code in [200, 201]:
            logger.debug(f"[SESSIONS] Sesión creada para {mask_phone(phone)}")
            return self._parse(response.json().get("data"))
        if response.status_code == 409:
            existing = await self.find(phone)
            if existing is not None:
                return existing
        raise SessionStoreError(f"Error creando sesión: {response.status_code}")

    async def save(self, session: ConversationSession) -> ConversationSession:
        response = await self._request(
            "PUT",
            f"conversation-sessions/phone/{session.phone}",
            json=session.model_dump(mode="json"),
        )

        if response.status_code == 200:
            data = response.json().get("data")
            return self._parse(data) if data else session.model_copy(deep=True)
        raise SessionStoreError(f"Error guardando sesión: {response.status_code}")

    async def delete_older_than(self, cutoff: datetime) -> int:
        response = await self._request(
            "DELETE", "conversation-sessions", params={"before": cutoff.isoformat()}
        )

        if response.status_code in [200, 204]:
            if response.status_code == 204:
                return 0
            deleted = int(response.json().get("data", {}).get("deleted", 0))
            logger.debug(f"[SESSIONS] Sesiones eliminadas: {deleted}")
            return deleted
        raise SessionStoreError(f"Error eliminando sesiones: {response.status_code}")
