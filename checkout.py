from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import quote

from schemas import AppliedCoupon, CartItem, Coupon, Product

# Cart & checkout math. Everything here is recomputed from cart + coupon state.

WHATSAPP_BASE_URL = "https://wa.me"
# characters encodeURIComponent leaves alone
_URI_SAFE = "-_.!~*'()"

@dataclass(frozen=True)
class CartTotals:
    subtotal: float
    discount: float
    total: float
    item_count: int

@dataclass(frozen=True)
class ChatHandoff:
    """Deep link into the chat checkout channel.

    Opening it is best-effort; nothing is ever read back from the channel.
    """
    url: str
    message: str

def line_price(product: Product) -> float:
    sale = product.sale_price
    if isinstance(sale, (int, float)) and not isinstance(sale, bool) and sale > 0:
        return float(sale)
    return float(product.price)

def cart_subtotal(items: Iterable[CartItem]) -> float:
    return sum(line_price(item) * item.quantity for item in items)

def item_count(items: Iterable[CartItem]) -> int:
    return sum(item.quantity for item in items)

def find_coupon(coupons: Iterable[Coupon], code: str) -> Optional[Coupon]:
    wanted = code.strip().lower()
    for coupon in coupons:
        if coupon.active and coupon.code.strip().lower() == wanted:
            return coupon
    return None

def compute_totals(items: list[CartItem], applied: Optional[AppliedCoupon] = None) -> CartTotals:
    subtotal = cart_subtotal(items)
    discount = subtotal * applied.discount_percent / 100 if applied else 0.0
    return CartTotals(
        subtotal=subtotal,
        discount=discount,
        total=subtotal - discount,
        item_count=item_count(items),
    )

def _amount(value: float) -> str:
    # whole rupees print without decimals
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"

def compose_order_message(
    items: list[CartItem],
    customer_name: str,
    address: str,
    applied: Optional[AppliedCoupon] = None,
    store_name: str = "Mousse & Melts",
) -> str:
    totals = compute_totals(items, applied)
    item_lines = "\n".join(
        f"• {item.quantity}x {item.name} (Rs. {_amount(line_price(item) * item.quantity)})"
        for item in items
    )
    message = f"*🛍️ NEW ORDER from {store_name}*\n\n"
    message += f"*Customer:* {customer_name}\n"
    message += f"*Address:* {address}\n\n"
    message += f"*📦 Order Details:*\n{item_lines}\n\n"
    if applied:
        message += f"*Coupon:* {applied.code} (-{_amount(applied.discount_percent)}%)\n"
        message += f"*Subtotal:* Rs. {totals.subtotal:.0f}\n"
        message += f"*Discount:* Rs. {totals.discount:.0f}\n"
    message += f"*Total:* Rs. {totals.total:.0f}\n\n"
    message += "Thank you! 🎂"
    return message

def _unit_price(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(float(value))

def compose_quick_order_message(items: list[CartItem], store_name: str = "Mousse & Melts") -> str:
    """Order draft sent straight from the cart drawer.

    Lists unit prices and the pre-coupon subtotal; the customer types the
    delivery address into the chat.
    """
    item_lines = "\n".join(
        f"• {item.quantity}x {item.name} (Rs. {_unit_price(line_price(item))})"
        for item in items
    )
    message = f"*Hello {store_name}!* 👋\nI'd like to place an order:\n\n{item_lines}\n\n"
    message += f"*Total Estimate: Rs. {cart_subtotal(items):.2f}*\n\n"
    message += "My Delivery Address:\n[Please type address here]"
    return message

def whatsapp_link(number: str, message: str) -> str:
    return f"{WHATSAPP_BASE_URL}/{number}?text={quote(message, safe=_URI_SAFE)}"
