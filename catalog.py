from __future__ import annotations
import random
from typing import Any, Iterable, Optional
from urllib.parse import urlparse

from checkout import line_price
from schemas import ALL_CATEGORY, CATEGORIES, AppSettings, CartItem, Product, Stats
from store import AppState

PLACEHOLDER_IMAGE = "https://placehold.co/400?text=Invalid+URL"
DEFAULT_HERO_TITLE = "Sweetness, Elevated."

def categories() -> list[str]:
    return [ALL_CATEGORY, *CATEGORIES]

def filter_by_category(products: Iterable[Product], category: Optional[str] = None) -> list[Product]:
    if not category or category == ALL_CATEGORY:
        return list(products)
    return [p for p in products if p.category == category]

def image_or_placeholder(url: Optional[str]) -> str:
    if not url:
        return PLACEHOLDER_IMAGE
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return PLACEHOLDER_IMAGE
    return url

def product_card(product: Product) -> dict[str, Any]:
    price = line_price(product)
    on_sale = price != float(product.price)
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "category": product.category,
        "image": image_or_placeholder(product.image),
        "price": price,
        "original_price": float(product.price) if on_sale else None,
        "on_sale": on_sale,
        "is_best_seller": product.is_best_seller,
    }

def catalog_view(products: Iterable[Product], category: Optional[str] = None) -> dict[str, Any]:
    selected = category or ALL_CATEGORY
    return {
        "category": selected,
        "categories": categories(),
        "products": [product_card(p) for p in filter_by_category(products, selected)],
    }

def resolve_hero(app_settings: AppSettings, products: Iterable[Product]) -> dict[str, Any]:
    hero = app_settings.hero
    title = hero.title or DEFAULT_HERO_TITLE
    head, _, tail = title.partition(",")
    linked = None
    if hero.linked_product_id:
        linked = next((p for p in products if p.id == hero.linked_product_id), None)
    return {
        "title": title,
        "title_parts": [head, tail],
        "subtitle": hero.subtitle,
        "price": hero.price,
        "image": image_or_placeholder(hero.image),
        "linked_product": product_card(linked) if linked else None,
    }

def hero_action(state: AppState) -> dict[str, Any]:
    """Add the hero's linked product to the cart, or fall back to the menu."""
    product_id = state.settings.hero.linked_product_id
    product = state.find_product(product_id) if product_id else None
    if product is None:
        return {"action": "scroll_to_menu", "product": None}
    state.add_to_cart(product)
    return {"action": "added_to_cart", "product": product}

def announcement_banner(app_settings: AppSettings) -> Optional[dict[str, Any]]:
    announcement = app_settings.announcement
    if not announcement.active or not announcement.text:
        return None
    return {"text": announcement.text, "is_marquee": announcement.is_marquee}

def recommended_products(
    products: Iterable[Product],
    cart: Iterable[CartItem],
    limit: int = 4,
    rng: Optional[random.Random] = None,
) -> list[Product]:
    in_cart = {item.id for item in cart}
    candidates = [p for p in products if p.id not in in_cart]
    (rng or random).shuffle(candidates)
    return candidates[:limit]

def dashboard(stats: Stats) -> dict[str, int]:
    return {
        "total_visits": stats.total_visits,
        "leads_generated": stats.leads_generated,
        "active_products": stats.active_products,
    }
