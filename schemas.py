from __future__ import annotations
from typing import Any, List, Optional
from pydantic import BaseModel, Field

# Mousse & Melts Schemas
# Each collection document maps to one model; "_id" is exposed as "id".

CATEGORIES: List[str] = ["Cupcakes", "Sundaes", "Cakes & Pastries", "Breads", "Coffee & Shakes"]
ALL_CATEGORY = "All"

class Product(BaseModel):
    id: str
    name: str
    description: str = ""
    price: float = Field(0, ge=0)
    sale_price: Optional[float] = None
    category: str = "Cupcakes"
    image: str = ""
    is_best_seller: bool = False
    display_order: Optional[int] = None

class CartItem(Product):
    quantity: int = Field(1, ge=1)

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> "CartItem":
        return cls(**product.model_dump(), quantity=quantity)

    def as_product(self) -> Product:
        return Product(**self.model_dump(exclude={"quantity"}))

class Coupon(BaseModel):
    id: str
    code: str
    discount_percent: float = Field(0, ge=0, le=100)
    active: bool = True

class AppliedCoupon(BaseModel):
    code: str
    discount_percent: float

class Announcement(BaseModel):
    text: str = ""
    active: bool = False
    is_marquee: bool = False

class HeroConfig(BaseModel):
    title: str = ""
    subtitle: str = ""
    price: float = 0
    image: str = ""
    linked_product_id: Optional[str] = None

class AppSettings(BaseModel):
    announcement: Announcement = Field(default_factory=Announcement)
    hero: HeroConfig = Field(default_factory=HeroConfig)

class Stats(BaseModel):
    total_visits: int = 0
    leads_generated: int = 0
    active_products: int = 0

INITIAL_PRODUCTS: List[dict] = [
    {
        "id": "c1",
        "name": "Oreo Cupcake",
        "description": "A soft, moist chocolate cupcake topped with creamy Oreo frosting.",
        "price": 250,
        "sale_price": 200,
        "category": "Cupcakes",
        "image": "https://images.unsplash.com/photo-1595188619379-31741db45714?auto=format&fit=crop&q=80&w=800",
        "is_best_seller": True,
    },
    {
        "id": "c2",
        "name": "Red Velvet Cupcake",
        "description": "A rich, velvety cupcake with a hint of cocoa.",
        "price": 250,
        "category": "Cupcakes",
        "image": "https://images.unsplash.com/photo-1614707267537-b85aaf00c4b7?auto=format&fit=crop&q=80&w=800",
        "is_best_seller": True,
    },
]

INITIAL_SETTINGS: dict = {
    "announcement": {
        "text": "GRAND OPENING SPECIAL: 20% OFF ALL ORDERS",
        "active": True,
        "is_marquee": True,
    },
    "hero": {
        "title": "Sweetness, Elevated.",
        "subtitle": "Experience the art of baking.",
        "price": 250,
        "image": "https://images.unsplash.com/photo-1614707267537-b85aaf00c4b7?auto=format&fit=crop&q=80&w=800",
        "linked_product_id": "c2",
    },
}

def initial_products() -> List[Product]:
    return [Product(**p) for p in INITIAL_PRODUCTS]

def default_settings() -> AppSettings:
    return AppSettings.model_validate(INITIAL_SETTINGS)

def merge_settings(data: Optional[dict[str, Any]]) -> AppSettings:
    """Deep-merge a stored settings document over the defaults.

    Only the two known sections are merged; each falls back to the default
    section when the stored value is missing or not a mapping.
    """
    data = data or {}
    merged: dict[str, Any] = {}
    for section, defaults in INITIAL_SETTINGS.items():
        stored = data.get(section)
        merged[section] = {**defaults, **(stored if isinstance(stored, dict) else {})}
    return AppSettings.model_validate(merged)
