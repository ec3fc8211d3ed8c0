from __future__ import annotations
import asyncio
import logging
from typing import Any, Callable, Optional

import database
from checkout import (
    CartTotals,
    ChatHandoff,
    compose_order_message,
    compose_quick_order_message,
    compute_totals,
    find_coupon,
    whatsapp_link,
)
from config import settings
from errors import CheckoutError, CouponError
from notifications import CartNotification
from schemas import AppliedCoupon, AppSettings, CartItem, Coupon, Product, Stats, default_settings

logger = logging.getLogger(__name__)

# Client routes
ROUTES: dict[str, str] = {
    "/": "home",
    "/login": "login",
    "/admin": "admin",
    "/cart": "cart",
    "/checkout": "checkout",
    "/our-story": "our-story",
}
ADMIN_ROUTES = frozenset({"/login", "/admin"})

class Router:
    """Path history for one visitor; back/forward replay it like popstate."""

    def __init__(self, path: str = "/") -> None:
        self._history: list[str] = [path or "/"]
        self._index = 0

    @property
    def current_path(self) -> str:
        return self._history[self._index]

    @property
    def page(self) -> str:
        return ROUTES.get(self.current_path, "home")

    @property
    def is_admin_route(self) -> bool:
        return self.current_path in ADMIN_ROUTES

    def navigate(self, path: str) -> str:
        path = path or "/"
        del self._history[self._index + 1:]
        self._history.append(path)
        self._index += 1
        return path

    def back(self) -> str:
        if self._index > 0:
            self._index -= 1
        return self.current_path

    def forward(self) -> str:
        if self._index < len(self._history) - 1:
            self._index += 1
        return self.current_path

class AppState:
    """Everything one storefront visitor sees and edits.

    Views read from it; only its methods change it.
    """

    def __init__(self, path: str = "/") -> None:
        self.cart: list[CartItem] = []
        self.is_cart_open = False
        self.products: list[Product] = []
        self.settings: AppSettings = default_settings()
        self.coupons: list[Coupon] = []
        self.stats = Stats()
        self.is_admin = False
        self.is_loading = True
        self.last_added_item: Optional[Product] = None
        self.applied_coupon: Optional[AppliedCoupon] = None
        self.router = Router(path)
        self.notification = CartNotification(on_close=self.clear_last_added_item)
        self._listeners: list[Callable[["AppState"], None]] = []
        self._background: set[asyncio.Task] = set()

    # Data

    def subscribe(self, callback: Callable[["AppState"], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def initialize(self) -> None:
        self.is_loading = True
        try:
            await database.increment_visits()
            await self.refresh_data()
        finally:
            self.is_loading = False

    async def refresh_data(self) -> bool:
        try:
            products, app_settings, stats, coupons = await asyncio.gather(
                database.get_products(),
                database.get_settings(),
                database.get_stats(),
                database.get_coupons(),
            )
        except Exception:
            logger.exception("Failed to refresh data")
            return False
        self.products = products
        self.settings = app_settings
        self.stats = stats
        self.coupons = coupons
        for callback in list(self._listeners):
            callback(self)
        return True

    def find_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    def _spawn(self, coro: Any) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def record_checkout(self) -> None:
        self._spawn(database.increment_leads())
        await self.refresh_data()

    async def flush_background(self) -> None:
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # Cart

    def add_to_cart(self, product: Product) -> CartItem:
        existing = self._line(product.id)
        if existing is not None:
            existing.quantity += 1
        else:
            existing = CartItem.from_product(product)
            self.cart.append(existing)
        self.last_added_item = product
        return existing

    def _line(self, product_id: str) -> Optional[CartItem]:
        return next((item for item in self.cart if item.id == product_id), None)

    def remove_from_cart(self, product_id: str) -> None:
        self.cart = [item for item in self.cart if item.id != product_id]

    def update_quantity(self, product_id: str, delta: int) -> Optional[CartItem]:
        item = self._line(product_id)
        if item is not None and item.quantity + delta > 0:
            item.quantity += delta
        return item

    def clear_cart(self) -> None:
        self.cart = []

    def clear_last_added_item(self) -> None:
        self.last_added_item = None

    def toggle_cart(self, open: Optional[bool] = None) -> bool:
        self.is_cart_open = (not self.is_cart_open) if open is None else open
        return self.is_cart_open

    # Coupon & checkout

    def apply_coupon(self, code: str) -> AppliedCoupon:
        if not code or not code.strip():
            raise CouponError("Please enter a coupon code")
        if self.applied_coupon is not None:
            raise CouponError("Remove the applied coupon before using another one")
        coupon = find_coupon(self.coupons, code)
        if coupon is None:
            raise CouponError("Invalid or expired coupon code")
        self.applied_coupon = AppliedCoupon(code=coupon.code, discount_percent=coupon.discount_percent)
        return self.applied_coupon

    def remove_coupon(self) -> None:
        self.applied_coupon = None

    def totals(self) -> CartTotals:
        return compute_totals(self.cart, self.applied_coupon)

    async def checkout(self, customer_name: str, address: str) -> ChatHandoff:
        if not self.cart:
            raise CheckoutError("Your cart is empty")
        if not customer_name.strip() or not address.strip():
            raise CheckoutError("Please fill in your name and address")
        await self.record_checkout()
        message = compose_order_message(
            self.cart,
            customer_name.strip(),
            address.strip(),
            self.applied_coupon,
            store_name=settings.STORE_NAME,
        )
        handoff = ChatHandoff(url=whatsapp_link(settings.WHATSAPP_NUMBER, message), message=message)
        logger.info("Checkout handed off to chat for %d item(s)", len(self.cart))
        self.clear_cart()
        self.remove_coupon()
        self.navigate("/")
        return handoff

    async def quick_checkout(self) -> ChatHandoff:
        if not self.cart:
            raise CheckoutError("Your cart is empty")
        await self.record_checkout()
        message = compose_quick_order_message(self.cart, store_name=settings.STORE_NAME)
        logger.info("Quick checkout handed off to chat for %d item(s)", len(self.cart))
        return ChatHandoff(url=whatsapp_link(settings.WHATSAPP_NUMBER, message), message=message)

    # Router & session flags

    @property
    def current_path(self) -> str:
        return self.router.current_path

    def navigate(self, path: str) -> str:
        return self.router.navigate(path)

    def back(self) -> str:
        return self.router.back()

    def forward(self) -> str:
        return self.router.forward()

    def login_admin(self) -> None:
        self.is_admin = True

    def logout_admin(self) -> None:
        self.is_admin = False

    def snapshot(self) -> dict[str, Any]:
        totals = self.totals()
        return {
            "current_path": self.current_path,
            "page": self.router.page,
            "is_admin_route": self.router.is_admin_route,
            "is_loading": self.is_loading,
            "is_admin": self.is_admin,
            "is_cart_open": self.is_cart_open,
            "cart": [item.model_dump() for item in self.cart],
            "totals": {
                "subtotal": totals.subtotal,
                "discount": totals.discount,
                "total": totals.total,
                "item_count": totals.item_count,
            },
            "applied_coupon": self.applied_coupon.model_dump() if self.applied_coupon else None,
            "last_added_item": self.last_added_item.model_dump() if self.last_added_item else None,
            "notification": self.notification.to_dict(),
        }
