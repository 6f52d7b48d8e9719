"""
Máquina de estados de la sesión de conversación.

Única autoridad sobre "en qué flujo y paso está este usuario". Toda mutación
es un leer-modificar-escribir contra la última versión guardada, bajo un
lock por teléfono, y el resultado se copia de vuelta sobre el objeto del
llamador.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
from weakref import WeakValueDictionary

from nearbuy.core.config import SessionConfig, get_session_config
from nearbuy.core.timezone_helper import TimezoneHelper
from nearbuy.models.flows import (
    CONTEXT_KEY_TYPES,
    IDLE_STEPS,
    MAIN_MENU_IDLE_STEP,
    TEMP_KEY_TYPES,
    ContextKey,
    FlowType,
    TempKey,
)
from nearbuy.models.session import ConversationSession, FlowPosition
from nearbuy.schemas.phone_schema import mask_phone, normalize_phone
from nearbuy.services.external.base_client import NearbuyApiError
from nearbuy.services.session.errors import InvalidStepError
from nearbuy.services.session.store import SessionStore, UserDirectory

logger = logging.getLogger(__name__)

ScopedKey = Union[TempKey, ContextKey]


def _expected_type(key: ScopedKey) -> type:
    if isinstance(key, TempKey):
        return TEMP_KEY_TYPES[key]
    if isinstance(key, ContextKey):
        return CONTEXT_KEY_TYPES[key]
    raise TypeError(f"Clave no tipada: {key!r}")


def _check_value(key: ScopedKey, value: Any) -> Any:
    expected = _expected_type(key)
    # bool es subclase de int, pero no es un contador válido
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise TypeError(
            f"La clave '{key.value}' espera {expected.__name__}, recibió {type(value).__name__}"
        )
    return value


def _validated_mapping(values: Optional[Mapping[ScopedKey, Any]]) -> Dict[str, Any]:
    return {key.value: _check_value(key, value) for key, value in (values or {}).items()}


class SessionManager:
    """
    Gestor de sesiones por teléfono.

    Args:
        store: Almacén durable de sesiones
        users: Directorio para vincular usuarios registrados (opcional)
        config: Configuración de tiempos de espera y retención
        clock: Reloj inyectable, por defecto TimezoneHelper.now
    """

    def __init__(
        self,
        store: SessionStore,
        users: Optional[UserDirectory] = None,
        config: Optional[SessionConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.users = users
        self.config = config or get_session_config()
        self.clock = clock or TimezoneHelper.now
        self._locks: "WeakValueDictionary[str, asyncio.Lock]" = WeakValueDictionary()

    # ==================== CONCURRENCIA ====================

    def _lock_for(self, phone: str) -> asyncio.Lock:
        lock = self._locks.get(phone)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[phone] = lock
        return lock

    async def _mutate(
        self,
        session: ConversationSession,
        change: Callable[[ConversationSession], Any],
        stamp: bool = True,
    ) -> Any:
        """
        Aplica `change` sobre la última versión guardada y la persiste.
        Devuelve lo que devuelva `change`. Con stamp=False no refresca
        last_activity_at.
        """
        async with self._lock_for(session.phone):
            latest = await self.store.find(session.phone)
            if latest is None:
                # La fila desapareció (limpieza); se recrea desde la copia local
                latest = session.model_copy(deep=True)
            result = change(latest)
            if stamp:
                latest.last_activity_at = self.clock()
            stored = await self.store.save(latest)
        session.absorb(stored)
        return result

    # ==================== CICLO DE VIDA ====================

    def _new_session(self, phone: str) -> ConversationSession:
        now = self.clock()
        return ConversationSession(
            phone=phone,
            current_flow=FlowType.MAIN_MENU,
            current_step=MAIN_MENU_IDLE_STEP,
            language=self.config.default_language,
            last_activity_at=now,
            created_at=now,
        )

    async def get_or_create(self, phone: str) -> ConversationSession:
        """
        Devuelve la sesión del teléfono o la crea en (main_menu, idle).
        Intenta vincular al usuario registrado si aún no lo está.
        """
        phone = normalize_phone(phone)
        session = await self.store.find(phone)
        if session is None:
            async with self._lock_for(phone):
                session = await self.store.create(phone, self._new_session(phone))
            logger.info(f"[SESSION] Sesión lista phone={mask_phone(phone)}")

        if session.user_id is None:
            await self.try_link_user(session)
        return session

    async def get_active_or_reset(self, phone: str) -> ConversationSession:
        """
        Punto de entrada de cada mensaje entrante: si la sesión expiró y no
        está en reposo se reinicia al menú principal, si no se refresca la
        actividad.
        """
        session = await self.get_or_create(phone)
        if self.has_timed_out(session) and not self.is_idle(session):
            flow, step = session.current_flow, session.current_step
            idle_minutes = TimezoneHelper.minutes_between(session.last_activity_at, self.clock())
            await self.reset_to_main_menu(session)
            logger.info(
                f"[SESSION] Reinicio por inactividad phone={mask_phone(session.phone)} "
                f"flow={flow.value} step={step} idle_min={idle_minutes:.1f} "
                f"timeout_min={self.timeout_for(flow)}"
            )
        else:
            await self.touch(session)
        return session

    async def cleanup_old_sessions(self, days: Optional[int] = None) -> int:
        """Elimina sesiones sin actividad en los últimos `days` días."""
        days = days if days is not None else self.config.retention_days
        cutoff = self.clock() - timedelta(days=days)
        deleted = await self.store.delete_older_than(cutoff)
        logger.info(f"[SESSION] Limpieza de sesiones days={days} deleted={deleted}")
        return deleted

    # ==================== TRANSICIONES ====================

    async def set_flow_step(self, session: ConversationSession, flow: FlowType, step: str) -> ConversationSession:
        """Transición directa a (flow, step). No valida sucesores legales."""
        flow = FlowType(flow)
        if not flow.has_step(step):
            raise InvalidStepError(flow, step)

        def change(row: ConversationSession):
            row.current_flow = flow
            row.current_step = step

        await self._mutate(session, change)
        logger.debug(f"[SESSION] phone={mask_phone(session.phone)} -> {flow.value}/{step}")
        return session

    async def set_step(self, session: ConversationSession, step: str) -> ConversationSession:
        """Cambia de paso dentro del flujo actual."""
        return await self.set_flow_step(session, session.current_flow, step)

    async def start_flow(
        self,
        session: ConversationSession,
        flow: FlowType,
        initial_data: Optional[Mapping[TempKey, Any]] = None,
    ) -> ConversationSession:
        """Entra al paso inicial del flujo y reemplaza los datos temporales."""
        flow = FlowType(flow)
        temp = _validated_mapping(initial_data)

        def change(row: ConversationSession):
            row.current_flow = flow
            row.current_step = flow.initial_step
            row.temp_data = dict(temp)
            row.previous = None

        await self._mutate(session, change)
        logger.info(f"[SESSION] Inicio de flujo phone={mask_phone(session.phone)} flow={flow.value}")
        return session

    async def save_previous_step(self, session: ConversationSession) -> ConversationSession:
        """Guarda la posición actual en la ranura de retroceso (un solo nivel)."""
        def change(row: ConversationSession):
            row.previous = FlowPosition(flow=row.current_flow, step=row.current_step)

        await self._mutate(session, change)
        return session

    async def go_back(self, session: ConversationSession) -> bool:
        """
        Restaura la posición guardada y vacía la ranura.
        Sin posición guardada reinicia al menú principal y devuelve False.
        """
        def change(row: ConversationSession) -> bool:
            if row.previous is None:
                row.current_flow = FlowType.MAIN_MENU
                row.current_step = MAIN_MENU_IDLE_STEP
                row.temp_data = {}
                return False
            row.current_flow = row.previous.flow
            row.current_step = row.previous.step
            row.previous = None
            return True

        restored = await self._mutate(session, change)
        logger.debug(
            f"[SESSION] Retroceso phone={mask_phone(session.phone)} restored={restored} "
            f"-> {session.current_flow.value}/{session.current_step}"
        )
        return restored

    async def reset_to_main_menu(self, session: ConversationSession) -> ConversationSession:
        """Vuelve a (main_menu, idle) y borra los datos temporales."""
        def change(row: ConversationSession):
            row.current_flow = FlowType.MAIN_MENU
            row.current_step = MAIN_MENU_IDLE_STEP
            row.temp_data = {}
            row.previous = None

        await self._mutate(session, change)
        return session

    async def clear_session(self, session: ConversationSession) -> ConversationSession:
        """Como reset_to_main_menu, además borra el contexto y desvincula al usuario."""
        def change(row: ConversationSession):
            row.current_flow = FlowType.MAIN_MENU
            row.current_step = MAIN_MENU_IDLE_STEP
            row.temp_data = {}
            row.context_data = {}
            row.previous = None
            row.user_id = None

        await self._mutate(session, change)
        logger.info(f"[SESSION] Sesión limpiada phone={mask_phone(session.phone)}")
        return session

    # ==================== USUARIO Y ACTIVIDAD ====================

    async def link_user(self, session: ConversationSession, user_id: str) -> ConversationSession:
        """Vincula el usuario sin contar como actividad."""
        def change(row: ConversationSession):
            row.user_id = str(user_id)

        await self._mutate(session, change, stamp=False)
        logger.info(f"[SESSION] Usuario vinculado phone={mask_phone(session.phone)} user_id={user_id}")
        return session

    async def try_link_user(self, session: ConversationSession) -> bool:
        """Vinculación best-effort: no encontrar usuario o un fallo de la API no es fatal."""
        if session.user_id is not None:
            return True
        if self.users is None:
            return False
        try:
            user_id = await self.users.find_user_id_by_phone(session.phone)
        except NearbuyApiError as e:
            logger.warning(f"[SESSION] No se pudo consultar usuario phone={mask_phone(session.phone)}: {e}")
            return False
        if not user_id:
            return False
        await self.link_user(session, user_id)
        return True

    async def touch(self, session: ConversationSession) -> ConversationSession:
        """Refresca last_activity_at."""
        await self._mutate(session, lambda row: None)
        return session

    async def record_message(
        self,
        session: ConversationSession,
        message_id: str,
        message_type: Optional[str] = None,
    ) -> ConversationSession:
        """Registra el último mensaje entrante procesado."""
        def change(row: ConversationSession):
            row.last_message_id = message_id
            row.last_message_type = message_type

        await self._mutate(session, change)
        return session

    async def set_language(self, session: ConversationSession, language: str) -> ConversationSession:
        language = (language or "").strip().lower()
        if len(language) != 2 or not language.isalpha():
            raise ValueError(f"Idioma inválido: {language!r}")

        def change(row: ConversationSession):
            row.language = language

        await self._mutate(session, change)
        return session

    # ==================== DATOS TEMPORALES ====================

    def get_temp(self, session: ConversationSession, key: TempKey, default: Any = None) -> Any:
        _expected_type(key)
        return session.temp_data.get(key.value, default)

    async def set_temp(self, session: ConversationSession, key: TempKey, value: Any) -> ConversationSession:
        await self._set_scoped(session, "temp_data", key, value)
        return session

    async def remove_temp(self, session: ConversationSession, key: TempKey) -> ConversationSession:
        await self._remove_scoped(session, "temp_data", key)
        return session

    async def merge_temp(self, session: ConversationSession, values: Mapping[TempKey, Any]) -> ConversationSession:
        await self._merge_scoped(session, "temp_data", values)
        return session

    async def increment_temp(self, session: ConversationSession, key: TempKey, by: int = 1) -> int:
        return await self._increment_scoped(session, "temp_data", key, by)

    async def append_temp(self, session: ConversationSession, key: TempKey, value: Any) -> List[Any]:
        return await self._append_scoped(session, "temp_data", key, value)

    async def clear_temp(self, session: ConversationSession) -> ConversationSession:
        def change(row: ConversationSession):
            row.temp_data = {}

        await self._mutate(session, change)
        return session

    # ==================== DATOS DE CONTEXTO ====================

    def get_context(self, session: ConversationSession, key: ContextKey, default: Any = None) -> Any:
        _expected_type(key)
        return session.context_data.get(key.value, default)

    async def set_context(self, session: ConversationSession, key: ContextKey, value: Any) -> ConversationSession:
        await self._set_scoped(session, "context_data", key, value)
        return session

    async def remove_context(self, session: ConversationSession, key: ContextKey) -> ConversationSession:
        await self._remove_scoped(session, "context_data", key)
        return session

    async def merge_context(self, session: ConversationSession, values: Mapping[ContextKey, Any]) -> ConversationSession:
        await self._merge_scoped(session, "context_data", values)
        return session

    async def increment_context(self, session: ConversationSession, key: ContextKey, by: int = 1) -> int:
        return await self._increment_scoped(session, "context_data", key, by)

    async def append_context(self, session: ConversationSession, key: ContextKey, value: Any) -> List[Any]:
        return await self._append_scoped(session, "context_data", key, value)

    # Operaciones comunes sobre temp_data / context_data

    async def _set_scoped(self, session, attr: str, key: ScopedKey, value: Any):
        _check_value(key, value)

        def change(row: ConversationSession):
            getattr(row, attr)[key.value] = value

        await self._mutate(session, change)

    async def _remove_scoped(self, session, attr: str, key: ScopedKey):
        _expected_type(key)

        def change(row: ConversationSession):
            getattr(row, attr).pop(key.value, None)

        await self._mutate(session, change)

    async def _merge_scoped(self, session, attr: str, values: Mapping[ScopedKey, Any]):
        validated = _validated_mapping(values)

        def change(row: ConversationSession):
            getattr(row, attr).update(validated)

        await self._mutate(session, change)

    async def _increment_scoped(self, session, attr: str, key: ScopedKey, by: int) -> int:
        if _expected_type(key) is not int:
            raise TypeError(f"La clave '{key.value}' no es un contador")

        def change(row: ConversationSession) -> int:
            data = getattr(row, attr)
            data[key.value] = int(data.get(key.value, 0)) + by
            return data[key.value]

        return await self._mutate(session, change)

    async def _append_scoped(self, session, attr: str, key: ScopedKey, value: Any) -> List[Any]:
        if _expected_type(key) is not list:
            raise TypeError(f"La clave '{key.value}' no es una lista")

        def change(row: ConversationSession) -> List[Any]:
            data = getattr(row, attr)
            items = list(data.get(key.value) or [])
            items.append(value)
            data[key.value] = items
            return list(items)

        return await self._mutate(session, change)

    # ==================== PREDICADOS ====================

    def timeout_for(self, flow: FlowType) -> int:
        """Minutos de inactividad permitidos en el flujo."""
        return self.config.timeout_for(FlowType(flow))

    def has_timed_out(self, session: ConversationSession) -> bool:
        elapsed = TimezoneHelper.minutes_between(session.last_activity_at, self.clock())
        return elapsed >= self.timeout_for(session.current_flow)

    def is_idle(self, session: ConversationSession) -> bool:
        return session.current_step in IDLE_STEPS

    def is_duplicate_message(self, session: ConversationSession, message_id: Optional[str]) -> bool:
        return bool(message_id) and session.last_message_id == message_id

    def is_registered(self, session: ConversationSession) -> bool:
        return session.user_id is not None
