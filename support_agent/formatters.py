"""
Plain-text rendering of inventory hits for answers that skip the model.
"""
from typing import Any, Dict, List, Optional

EBOOKS_LINK = "/products/ebooks"


def format_price(price: Any, is_free: bool = False) -> str:
    if is_free:
        return "Free"
    try:
        amount = float(price)
    except (TypeError, ValueError):
        return "Price on request"
    if amount <= 0:
        return "Free"
    if amount.is_integer():
        return f"₦{int(amount):,}"
    return f"₦{amount:,.2f}"


def product_link(product: Dict[str, Any]) -> str:
    return f"/products/{product.get('category') or 'books'}/{product.get('id')}"


def format_ebook(ebook: Dict[str, Any]) -> str:
    line = f"📘 {ebook.get('title', 'Untitled')}"
    if ebook.get("author"):
        line += f" by {ebook['author']}"
    price = format_price(ebook.get("price"), bool(ebook.get("is_free")))
    return f"{line} ({price}) - {EBOOKS_LINK}"


def format_product(product: Dict[str, Any]) -> str:
    price = format_price(product.get("price"))
    stock = product.get("stock_quantity")
    availability = ""
    if stock is not None:
        availability = ", in stock" if stock > 0 else ", out of stock"
    return f"🛒 {product.get('name', 'Unnamed product')} ({price}{availability}) - {product_link(product)}"


def format_inventory_answer(query: str, result: Dict[str, Any]) -> Optional[str]:
    """Answer text for an inventory hit, or None when nothing matched."""
    ebooks: List[Dict[str, Any]] = result.get("ebooks") or []
    products: List[Dict[str, Any]] = result.get("products") or []
    if not ebooks and not products:
        return None

    lines = [f"Good news! Here's what I found for \"{query}\":"]
    lines.extend(format_ebook(e) for e in ebooks)
    lines.extend(format_product(p) for p in products)
    lines.append("Would you like help with anything else? 😊")
    return "\n".join(lines)
