from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field
import os

from nearbuy.models.flows import FlowType

load_dotenv(Path(__file__).resolve().parents[2] / ".env")

class Settings:
    # WhatsApp Cloud API settings
    META_TOKEN: str = os.getenv("META_BOT_TOKEN")
    PHONE_ID: str = os.getenv("META_NUMBER_ID")
    VERIFY_TOKEN: str = os.getenv("META_VERIFY_TOKEN")
    GRAPH_API_VERSION: str = os.getenv("META_VERSION", "v18.0")
    BASE_URL: str = f"https://graph.facebook.com/{GRAPH_API_VERSION}"
    SEND_ATTEMPTS: int = int(os.getenv("WHATSAPP_SEND_ATTEMPTS", "3"))
    RETRY_DELAY_MS: int = int(os.getenv("WHATSAPP_RETRY_DELAY_MS", "1000"))

    # NearBuy backend API settings
    API_URL: str = os.getenv("API_URL", "http://localhost")
    API_PORT: str = os.getenv("API_PORT", "8000")
    API_VERSION: str = os.getenv("API_VERSION", "1")
    API_TOKEN: str = os.getenv("API_TOKEN", "")

    # Conversación
    TIMEZONE: str = os.getenv("NEARBUY_TIMEZONE", "Asia/Kolkata")
    DEFAULT_LANGUAGE: str = os.getenv("NEARBUY_DEFAULT_LANGUAGE", "en")
    COUNTRY_CODE: str = os.getenv("NEARBUY_COUNTRY_CODE", "91")
    SESSION_TIMEOUT_MINUTES: int = int(os.getenv("NEARBUY_SESSION_TIMEOUT", "30"))
    SESSION_CLEANUP_DAYS: int = int(os.getenv("NEARBUY_SESSION_CLEANUP_DAYS", "7"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

@lru_cache
def get_settings() -> Settings:
    return Settings()


# Flujos con tiempos de permanencia largos (formularios de varios campos)
FLOW_TIMEOUT_OVERRIDES: Mapping[FlowType, int] = MappingProxyType({
    FlowType.REGISTRATION: 60,
    FlowType.AGREEMENT_CREATE: 60,
    FlowType.OFFERS_UPLOAD: 45,
    FlowType.PRODUCT_SEARCH: 45,
})


class SessionConfig(BaseModel):
    """
    Configuración inmutable del motor de sesiones.
    Se construye una vez al arrancar y se inyecta en SessionManager.
    """
    model_config = ConfigDict(frozen=True)

    timeout_minutes: int = Field(30, gt=0)
    flow_timeouts: Mapping[FlowType, int] = Field(default_factory=lambda: FLOW_TIMEOUT_OVERRIDES)
    retention_days: int = Field(7, gt=0)
    default_language: str = Field("en", min_length=2, max_length=2)
    country_code: str = "91"

    def timeout_for(self, flow: FlowType) -> int:
        """Minutos de inactividad permitidos para un flujo."""
        return self.flow_timeouts.get(flow, self.timeout_minutes)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionConfig":
        return cls(
            timeout_minutes=settings.SESSION_TIMEOUT_MINUTES,
            retention_days=settings.SESSION_CLEANUP_DAYS,
            default_language=settings.DEFAULT_LANGUAGE,
            country_code=settings.COUNTRY_CODE,
        )


@lru_cache
def get_session_config() -> SessionConfig:
    return SessionConfig.from_settings(get_settings())
