"""
Catálogo cerrado de flujos y pasos de conversación.

Cada flujo declara su conjunto de pasos y su paso inicial. El par
(flujo, paso) es el estado de la máquina de sesiones.
"""
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Tuple


class FlowType(str, Enum):
    """Flujos de primer nivel de la conversación."""
    MAIN_MENU = "main_menu"
    REGISTRATION = "registration"
    SETTINGS = "settings"
    OFFERS_BROWSE = "offers_browse"
    OFFERS_UPLOAD = "offers_upload"
    OFFERS_MANAGE = "offers_manage"
    PRODUCT_SEARCH = "product_search"
    PRODUCT_RESPOND = "product_respond"
    AGREEMENT_CREATE = "agreement_create"
    AGREEMENT_CONFIRM = "agreement_confirm"
    AGREEMENT_LIST = "agreement_list"

    @property
    def steps(self) -> FrozenSet[str]:
        """Pasos declarados para este flujo."""
        return frozenset(FLOW_STEPS[self])

    @property
    def initial_step(self) -> str:
        """Primer paso al iniciar el flujo (siempre miembro de `steps`)."""
        return FLOW_STEPS[self][0]

    @property
    def label(self) -> str:
        return FLOW_LABELS[self]

    def has_step(self, step: str) -> bool:
        return step in FLOW_STEPS[self]


# El primer paso de cada tupla es el paso inicial
FLOW_STEPS: Mapping[FlowType, Tuple[str, ...]] = MappingProxyType({
    FlowType.MAIN_MENU: ("show_menu", "idle", "main_menu"),
    FlowType.REGISTRATION: (
        "ask_type", "ask_name", "ask_location", "ask_shop_name", "ask_shop_category",
        "ask_shop_location", "ask_notification_pref", "confirm", "complete",
    ),
    FlowType.SETTINGS: ("show_settings", "change_language", "change_location", "change_notifications"),
    FlowType.OFFERS_BROWSE: ("select_category", "show_offers", "view_offer", "show_location"),
    FlowType.OFFERS_UPLOAD: ("ask_image", "ask_validity", "done"),
    FlowType.OFFERS_MANAGE: ("show_my_offers", "manage_offer", "delete_confirm", "extend_validity"),
    FlowType.PRODUCT_SEARCH: (
        "ask_category", "ask_description", "ask_image", "ask_radius", "confirm",
        "waiting", "view_responses", "response_detail", "close_request",
    ),
    FlowType.PRODUCT_RESPOND: (
        "view_request", "respond_availability", "respond_price", "respond_image",
        "respond_notes", "confirm_response", "response_sent",
    ),
    FlowType.AGREEMENT_CREATE: (
        "ask_direction", "ask_other_party_phone", "ask_other_party_name", "collecting_amount",
        "ask_purpose", "ask_description", "ask_due_date", "review", "done",
    ),
    FlowType.AGREEMENT_CONFIRM: ("show_pending", "view_pending", "awaiting_confirm", "confirm_done"),
    FlowType.AGREEMENT_LIST: ("show_list", "view_detail", "mark_complete"),
})

FLOW_LABELS: Mapping[FlowType, str] = MappingProxyType({
    FlowType.MAIN_MENU: "🏠 Main Menu",
    FlowType.REGISTRATION: "📝 Registration",
    FlowType.SETTINGS: "⚙️ Settings",
    FlowType.OFFERS_BROWSE: "🛍️ Browse Offers",
    FlowType.OFFERS_UPLOAD: "📤 Upload Offer",
    FlowType.OFFERS_MANAGE: "📊 Manage Offers",
    FlowType.PRODUCT_SEARCH: "🔍 Search Product",
    FlowType.PRODUCT_RESPOND: "📦 Respond",
    FlowType.AGREEMENT_CREATE: "📝 New Agreement",
    FlowType.AGREEMENT_CONFIRM: "✅ Confirm Agreement",
    FlowType.AGREEMENT_LIST: "📋 My Agreements",
})

# Pasos "en reposo": exentos del reinicio por inactividad
IDLE_STEPS: FrozenSet[str] = frozenset({"idle", "show_menu", "main_menu"})

MAIN_MENU_IDLE_STEP = "idle"


class TempKey(str, Enum):
    """
    Claves de datos temporales (se borran al cambiar de flujo).
    El tipo de cada valor está declarado en TEMP_KEY_TYPES.
    """
    SELECTED_CATEGORY = "selected_category"
    SELECTED_SHOP_ID = "selected_shop_id"
    SELECTED_OFFER_ID = "selected_offer_id"
    CURRENT_PAGE = "current_page"
    SEARCH_QUERY = "search_query"
    SEARCH_RADIUS_KM = "search_radius_km"
    REG_USER_TYPE = "reg_user_type"
    REG_NAME = "reg_name"
    AGREEMENT_DIRECTION = "agreement_direction"
    AGREEMENT_AMOUNT = "agreement_amount"
    OTHER_PARTY_PHONE = "other_party_phone"
    OTHER_PARTY_NAME = "other_party_name"
    AGREEMENT_PURPOSE = "agreement_purpose"
    AGREEMENT_DUE_DATE = "agreement_due_date"
    INVALID_ATTEMPTS = "invalid_attempts"
    VIEWED_ITEM_IDS = "viewed_item_ids"


class ContextKey(str, Enum):
    """Claves de datos de contexto (sobreviven a los cambios de flujo)."""
    LAST_CATEGORY = "last_category"
    LAST_RADIUS_KM = "last_radius_km"
    LAST_LOCATION = "last_location"
    SEARCH_HISTORY = "search_history"
    MENU_VISITS = "menu_visits"


TEMP_KEY_TYPES: Mapping[TempKey, type] = MappingProxyType({
    TempKey.SELECTED_CATEGORY: str,
    TempKey.SELECTED_SHOP_ID: str,
    TempKey.SELECTED_OFFER_ID: str,
    TempKey.CURRENT_PAGE: int,
    TempKey.SEARCH_QUERY: str,
    TempKey.SEARCH_RADIUS_KM: int,
    TempKey.REG_USER_TYPE: str,
    TempKey.REG_NAME: str,
    TempKey.AGREEMENT_DIRECTION: str,
    # Importe como texto decimal: el almacén serializa en JSON
    TempKey.AGREEMENT_AMOUNT: str,
    TempKey.OTHER_PARTY_PHONE: str,
    TempKey.OTHER_PARTY_NAME: str,
    TempKey.AGREEMENT_PURPOSE: str,
    TempKey.AGREEMENT_DUE_DATE: str,
    TempKey.INVALID_ATTEMPTS: int,
    TempKey.VIEWED_ITEM_IDS: list,
})

CONTEXT_KEY_TYPES: Mapping[ContextKey, type] = MappingProxyType({
    ContextKey.LAST_CATEGORY: str,
    ContextKey.LAST_RADIUS_KM: int,
    ContextKey.LAST_LOCATION: dict,
    ContextKey.SEARCH_HISTORY: list,
    ContextKey.MENU_VISITS: int,
})
