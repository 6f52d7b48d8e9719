"""
Motor de sesiones de conversación: estado (flujo, paso), tiempos de
espera, retroceso y datos temporales y de contexto.
"""

from .errors import InvalidStepError, SessionStoreError
from .store import InMemorySessionStore, InMemoryUserDirectory, SessionStore, UserDirectory
from .session_manager import SessionManager

__all__ = [
    "InvalidStepError",
    "SessionStoreError",
    "SessionStore",
    "InMemorySessionStore",
    "UserDirectory",
    "InMemoryUserDirectory",
    "SessionManager",
]
