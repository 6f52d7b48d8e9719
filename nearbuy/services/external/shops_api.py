import logging
from typing import List, Optional

from pydantic import ValidationError

from nearbuy.models.shop import Shop, ShopCategory
from nearbuy.services.catalog import ShopCatalog
from .base_client import BaseClient, NearbuyApiError

logger = logging.getLogger(__name__)


class ApiShopCatalog(BaseClient, ShopCatalog):
    """
    Cliente para consultar tiendas.
    Responsabilidad única: listar y obtener tiendas de la API de NearBuy.
    """

    async def list_shops(self, category: ShopCategory) -> List[Shop]:
        """
        Obtiene las tiendas de una categoría.

        Args:
            category: Categoría de tienda

        Returns:
            List[Shop]: Tiendas encontradas (vacía si hay error)
        """
        try:
            response = await self._make_request("GET", "shops", params={"category": category.value})

            if response.status_code == 200:
                rows = response.json().get("data", [])
                shops = []
                for row in rows:
                    try:
                        shops.append(Shop.model_validate(row))
                    except ValidationError as e:
                        logger.warning(f"[SHOPS] Tienda inválida ignorada {row.get('id')}: {e.error_count()} errores")
                logger.debug(f"[SHOPS] Tiendas en {category.value}: {len(shops)} encontradas")
                return shops
            else:
                logger.error(f"[SHOPS] Error obteniendo tiendas: {response.status_code}")
                return []

        except NearbuyApiError as e:
            logger.error(f"[SHOPS] Error obteniendo tiendas de {category.value}: {e}")
            return []

    async def get_shop(self, shop_id: str) -> Optional[Shop]:
        try:
            response = await self._make_request("GET", f"shops/{shop_id}")

            if response.status_code == 200:
                return Shop.model_validate(response.json().get("data"))
            if response.status_code != 404:
                logger.error(f"[SHOPS] Error obteniendo tienda {shop_id}: {response.status_code}")
            return None

        except (NearbuyApiError, ValidationError) as e:
            logger.error(f"[SHOPS] Error obteniendo tienda {shop_id}: {e}")
            return None
