from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from nearbuy.models.shop import Shop, ShopCategory


class ShopCatalog(ABC):
    """Consulta de tiendas para los flujos de navegación."""

    @abstractmethod
    async def list_shops(self, category: ShopCategory) -> List[Shop]:
        """Tiendas de la categoría, ya ordenadas para mostrar."""

    @abstractmethod
    async def get_shop(self, shop_id: str) -> Optional[Shop]:
        """Tienda por id o None."""


class InMemoryShopCatalog(ShopCatalog):
    def __init__(self, shops: Optional[List[Shop]] = None):
        self._shops: Dict[str, Shop] = {shop.id: shop for shop in shops or []}

    def add(self, shop: Shop) -> None:
        self._shops[shop.id] = shop

    async def list_shops(self, category: ShopCategory) -> List[Shop]:
        return [shop for shop in self._shops.values() if shop.category == category]

    async def get_shop(self, shop_id: str) -> Optional[Shop]:
        return self._shops.get(shop_id)
