import logging
from typing import Optional

from nearbuy.schemas.phone_schema import mask_phone
from nearbuy.services.session.store import UserDirectory
from .base_client import BaseClient

logger = logging.getLogger(__name__)


class ApiUserDirectory(BaseClient, UserDirectory):
    """
    Cliente para consultar usuarios registrados.
    Responsabilidad única: resolver teléfono -> usuario.
    """

    async def find_user_id_by_phone(self, phone: str) -> Optional[str]:
        """
        Busca un usuario por número de teléfono.

        Args:
            phone: Teléfono normalizado

        Returns:
            str: ID del usuario o None si no está registrado

        Raises:
            NearbuyApiError: Error de comunicación con la API
        """
        response = await self._make_request("GET", f"users/phone/{phone}")

        if response.status_code == 200:
            user = response.json().get("data") or {}
            user_id = user.get("id") or user.get("_id")
            logger.debug(f"[USERS] Usuario encontrado para {mask_phone(phone)}: {user_id}")
            return str(user_id) if user_id else None

        if response.status_code != 404:
            logger.warning(f"[USERS] Error buscando usuario: {response.status_code}")
        return None
