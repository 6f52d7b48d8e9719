"""
Módulo de clientes externos para la API de NearBuy.
"""

from .base_client import BaseClient, NearbuyApiError
from .sessions_api import ApiSessionStore
from .users_api import ApiUserDirectory
from .shops_api import ApiShopCatalog

__all__ = [
    "BaseClient",
    "NearbuyApiError",
    "ApiSessionStore",
    "ApiUserDirectory",
    "ApiShopCatalog",
]
