"""
Contratos de persistencia del motor de sesiones.

El motor sólo necesita: buscar por teléfono, crear, guardar y borrar en
bloque las sesiones inactivas. La política de reintentos pertenece a cada
implementación, no al motor.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional

from nearbuy.models.session import ConversationSession
from nearbuy.schemas.phone_schema import mask_phone

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Almacén durable de sesiones, una fila por teléfono."""

    @abstractmethod
    async def find(self, phone: str) -> Optional[ConversationSession]:
        """Sesión guardada para el teléfono o None."""

    @abstractmethod
    async def create(self, phone: str, initial: ConversationSession) -> ConversationSession:
        """
        Crea la sesión. Si otra petición la creó antes, devuelve la existente
        en lugar de sobreescribirla.
        """

    @abstractmethod
    async def save(self, session: ConversationSession) -> ConversationSession:
        """Guarda el estado completo y devuelve la versión almacenada."""

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime) -> int:
        """Elimina sesiones con última actividad anterior a `cutoff`."""


class InMemorySessionStore(SessionStore):
    """
    Almacén en memoria para desarrollo local y tests.
    Siempre entrega copias profundas: nadie comparte estado con el almacén.
    """

    def __init__(self):
        self._rows: Dict[str, ConversationSession] = {}

    async def find(self, phone: str) -> Optional[ConversationSession]:
        row = self._rows.get(phone)
        return row.model_copy(deep=True) if row else None

    async def create(self, phone: str, initial: ConversationSession) -> ConversationSession:
        existing = self._rows.get(phone)
        if existing:
            logger.debug(f"[STORE] Sesión ya existente para {mask_phone(phone)}")
            return existing.model_copy(deep=True)
        self._rows[phone] = initial.model_copy(deep=True)
        return initial.model_copy(deep=True)

    async def save(self, session: ConversationSession) -> ConversationSession:
        self._rows[session.phone] = session.model_copy(deep=True)
        return session.model_copy(deep=True)

    async def delete_older_than(self, cutoff: datetime) -> int:
        stale = [phone for phone, row in self._rows.items() if row.last_activity_at < cutoff]
        for phone in stale:
            del self._rows[phone]
        return len(stale)

    def __len__(self) -> int:
        return len(self._rows)


class UserDirectory(ABC):
    """Consulta de usuarios registrados por teléfono."""

    @abstractmethod
    async def find_user_id_by_phone(self, phone: str) -> Optional[str]:
        """ID del usuario registrado con ese teléfono o None."""


class InMemoryUserDirectory(UserDirectory):
    """Directorio de usuarios en memoria (teléfono -> id)."""

    def __init__(self, users: Optional[Dict[str, str]] = None):
        self._users = dict(users or {})

    def register(self, phone: str, user_id: str) -> None:
        self._users[phone] = user_id

    async def find_user_id_by_phone(self, phone: str) -> Optional[str]:
        return self._users.get(phone)
