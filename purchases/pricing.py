"""Order totals, fee splits, license keys and payment signatures.

Everything here is pure: no database, no network.
"""
import hashlib
import hmac
import secrets
import string
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Tuple

from .exceptions import InvalidSignatureError

DEFAULT_PLATFORM_FEE_PERCENT = Decimal('10')
CENTS = Decimal('0.01')
LICENSE_ALPHABET = string.ascii_uppercase + string.digits
LICENSE_GROUPS = 4
LICENSE_GROUP_SIZE = 4


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_order_total(prices: Iterable[Any], discount: Any = 0) -> Decimal:
    """Sum item prices minus discount, floored at zero."""
    total = sum((to_decimal(p) for p in prices), Decimal('0'))
    return max(Decimal('0'), total - to_decimal(discount or 0))


def to_minor_units(amount: Any) -> int:
    """Convert a major-unit amount to minor units (paise), rounding half up."""
    return int((to_decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def calculate_platform_fee(amount: Any, percent: Any = DEFAULT_PLATFORM_FEE_PERCENT) -> Tuple[Decimal, Decimal]:
    """Split an item amount into (platform_fee, creator_earnings)."""
    amount = to_decimal(amount)
    fee = (amount * to_decimal(percent) / 100).quantize(CENTS, rounding=ROUND_HALF_UP)
    return fee, amount - fee


def generate_license_key() -> str:
    """Random key of the form XXXX-XXXX-XXXX-XXXX."""
    return '-'.join(
        ''.join(secrets.choice(LICENSE_ALPHABET) for _ in range(LICENSE_GROUP_SIZE))
        for _ in range(LICENSE_GROUPS)
    )


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Hex HMAC-SHA256 of ``order_id|payment_id`` keyed by the provider secret."""
    body = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> None:
    """Check a payment signature in constant time.

    Raises:
        InvalidSignatureError: If the signature does not match
    """
    expected = compute_signature(order_id, payment_id, secret)
    if not signature or not hmac.compare_digest(expected, str(signature)):
        raise InvalidSignatureError("Invalid payment signature")


def line_items(
    products: Iterable[Dict[str, Any]],
    primary_id: Any = None,
    variant: Dict[str, Any] = None,
    discount_amount: Any = 0,
    discount_code_id: Any = None,
    fee_percent: Any = DEFAULT_PLATFORM_FEE_PERCENT
) -> list:
    """Build the pending purchase rows for an order.

    The variant price replaces the product price for the primary item, and the
    discount fields are recorded only on the primary item.
    """
    items = []
    for product in products:
        is_primary = primary_id is not None and product['id'] == primary_id
        amount = to_decimal(variant['price'] if is_primary and variant else product['price'])
        fee, earnings = calculate_platform_fee(amount, fee_percent)
        items.append({
            'product_id': product['id'],
            'seller_id': product['creator_id'],
            'variant_id': variant['id'] if is_primary and variant else None,
            'amount': amount,
            'platform_fee': fee,
            'creator_earnings': earnings,
            'license_key': generate_license_key(),
            'discount_code_id': discount_code_id if is_primary else None,
            'discount_amount': to_decimal(discount_amount or 0) if is_primary else Decimal('0'),
        })
    return items
