"""
pricing.py — Server-side Order Pricing

The charge for an order is always computed here from the jar size and the
quantity; any amount sent by the storefront page is ignored.
"""

import math
from typing import Any, Optional, Union

# Unit prices in KES per jar
JAR_PRICES = {
    "250g": 300,
    "500g": 550,
    "1kg": 1000,
}


def calculate_amount(jar_size: Any, quantity: Any) -> Optional[Union[int, float]]:
    """
    Computes the total charge for an order.

    Args:
        jar_size: Size selector, one of the keys of `JAR_PRICES`.
        quantity: Number of jars; numeric strings such as "2" are accepted.

    Returns:
        The total (int when the result is whole), or None if the size is unknown
        or the quantity is not a finite number greater than zero.
    """
    unit_price = JAR_PRICES.get(jar_size) if isinstance(jar_size, str) else None
    if unit_price is None or isinstance(quantity, bool):
        return None

    try:
        qty = float(quantity)
    except (TypeError, ValueError):
        return None

    if not math.isfinite(qty) or qty <= 0:
        return None

    amount = unit_price * qty
    return int(amount) if amount.is_integer() else amount
