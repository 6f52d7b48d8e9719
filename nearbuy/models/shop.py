from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ShopCategory(str, Enum):
    GROCERY = "grocery"
    ELECTRONICS = "electronics"
    CLOTHES = "clothes"
    MEDICAL = "medical"
    FURNITURE = "furniture"
    MOBILE = "mobile"
    APPLIANCES = "appliances"
    HARDWARE = "hardware"
    RESTAURANT = "restaurant"
    BAKERY = "bakery"
    STATIONERY = "stationery"
    BEAUTY = "beauty"
    AUTOMOTIVE = "automotive"
    JEWELRY = "jewelry"
    SPORTS = "sports"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    ShopCategory.GROCERY: "🛒 Grocery Store",
    ShopCategory.ELECTRONICS: "📺 Electronics",
    ShopCategory.CLOTHES: "👕 Clothing & Fashion",
    ShopCategory.MEDICAL: "💊 Medical / Pharmacy",
    ShopCategory.FURNITURE: "🛋️ Furniture",
    ShopCategory.MOBILE: "📱 Mobile & Accessories",
    ShopCategory.APPLIANCES: "🔌 Home Appliances",
    ShopCategory.HARDWARE: "🔧 Hardware Store",
    ShopCategory.RESTAURANT: "🍽️ Restaurant & Food",
    ShopCategory.BAKERY: "🥐 Bakery",
    ShopCategory.STATIONERY: "📚 Stationery & Books",
    ShopCategory.BEAUTY: "💄 Beauty & Salon",
    ShopCategory.AUTOMOTIVE: "🚗 Automotive",
    ShopCategory.JEWELRY: "💍 Jewelry",
    ShopCategory.SPORTS: "⚽ Sports & Fitness",
    ShopCategory.OTHER: "🏪 Other",
}


class Shop(BaseModel):
    id: str
    name: str = Field(..., min_length=1)
    category: ShopCategory = ShopCategory.OTHER
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    distance_km: Optional[float] = None
    offer_count: int = 0

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def summary(self) -> str:
        """Descripción corta para el item de lista."""
        parts = []
        if self.distance_km is not None:
            parts.append(f"{self.distance_km:.1f} km")
        if self.offer_count:
            parts.append(f"{self.offer_count} offers")
        if self.address:
            parts.append(self.address)
        return " · ".join(parts)
