"""Purchases module for Razorpay checkout and payment reconciliation.

This module handles:
- Creating a Razorpay order for one product (optionally a variant) or a cart
- Recording one pending purchase per item under the shared order id
- Verifying the payment signature and completing the order's purchases
- Purchase reads for buyers and sellers
"""
import asyncio
import functools
import logging
import time
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from config import settings_conf
from payments import RazorpayClient, RazorpayError, PaymentsNotConfiguredError
from products.repository import ProductRepository
from roles import is_admin
from .exceptions import (
    PurchaseError,
    InvalidOrderError,
    NotFoundError,
    OrderCreationError,
    InvalidSignatureError,
    PaymentsDisabledError,
    AccessDeniedError,
)
from .pricing import (
    compute_order_total,
    to_minor_units,
    calculate_platform_fee,
    generate_license_key,
    compute_signature,
    verify_signature,
    line_items,
    DEFAULT_PLATFORM_FEE_PERCENT,
)
from .repository import PurchaseRepository

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = 'INR'
PLATFORM_FEE_PERCENT = Decimal(str(settings_conf.get('platform_fee_percent', DEFAULT_PLATFORM_FEE_PERCENT)))


class PurchaseManager:
    """Manages checkout orders and purchase records."""

    def __init__(
        self,
        purchases: Optional[PurchaseRepository] = None,
        products: Optional[ProductRepository] = None,
        razorpay: Optional[RazorpayClient] = None,
        fee_percent: Decimal = PLATFORM_FEE_PERCENT
    ):
        self.purchases = purchases or PurchaseRepository()
        self.products = products or ProductRepository()
        self.razorpay = razorpay or RazorpayClient()
        self.fee_percent = fee_percent

    async def _load_products(self, product_ids: List[UUID]) -> List[Dict[str, Any]]:
        products = []
        for product_id in product_ids:
            product = await self.products.get(product_id)
            if not product or not product.get('is_active', True):
                raise NotFoundError(f"Product {product_id} not found")
            products.append(product)
        return products

    async def create_order(
        self,
        customer: Dict[str, Any],
        product_id: Optional[UUID] = None,
        product_ids: Optional[List[UUID]] = None,
        variant_id: Optional[UUID] = None,
        discount_amount: Any = 0,
        discount_code_id: Optional[UUID] = None
    ) -> Dict[str, Any]:
        """Create a Razorpay order and its pending purchases.

        Args:
            customer: The buying profile
            product_id: A single product to buy
            product_ids: A cart of products to buy
            variant_id: Variant of the single product, overriding its price
            discount_amount: Amount subtracted from the order total
            discount_code_id: Discount code recorded on the primary item

        Returns:
            Dict with order_id, amount (minor units), currency, purchase_id,
            purchase_ids and the public key_id for the checkout widget

        Raises:
            InvalidOrderError: If the request is malformed
            NotFoundError: If a product or variant does not exist
            OrderCreationError: If Razorpay refuses the order
            PaymentsDisabledError: If Razorpay is not configured
        """
        if customer.get('is_restricted'):
            raise InvalidOrderError("Account is restricted from purchasing")
        if bool(product_id) == bool(product_ids):
            raise InvalidOrderError("Specify exactly one of product_id or product_ids")
        if product_ids and variant_id:
            raise InvalidOrderError("variant_id is only allowed with a single product_id")

        try:
            discount = Decimal(str(discount_amount or 0))
        except ArithmeticError:
            raise InvalidOrderError("discount_amount must be a number")
        if discount < 0:
            raise InvalidOrderError("discount_amount cannot be negative")

        if not self.razorpay.enabled:
            raise PaymentsDisabledError("Payments are not configured")

        products = await self._load_products([product_id] if product_id else list(product_ids))

        variant = None
        if variant_id:
            variant = await self.products.get_variant(variant_id)
            if not variant or not variant.get('is_active', True) or variant['product_id'] != product_id:
                raise NotFoundError(f"Variant {variant_id} not found")

        currencies = {p.get('currency') or DEFAULT_CURRENCY for p in products}
        if len(currencies) > 1:
            raise InvalidOrderError("All products in an order must share a currency")
        currency = currencies.pop()

        items = line_items(
            products,
            primary_id=product_id,
            variant=variant,
            discount_amount=discount,
            discount_code_id=discount_code_id,
            fee_percent=self.fee_percent
        )
        total = compute_order_total([item['amount'] for item in items], discount)
        amount = to_minor_units(total)
        receipt = f"receipt_{int(time.time() * 1000)}"

        loop = asyncio.get_running_loop()
        try:
            order = await loop.run_in_executor(
                None,
                functools.partial(
                    self.razorpay.create_order,
                    amount,
                    currency,
                    receipt,
                    {'customer_id': str(customer['id'])}
                )
            )
        except PaymentsNotConfiguredError as e:
            raise PaymentsDisabledError(str(e))
        except RazorpayError as e:
            logger.error(f"Razorpay order creation failed: {e}")
            raise OrderCreationError(str(e))

        purchase_ids = []
        try:
            for item in items:
                purchase = await self.purchases.create({
                    **item,
                    'customer_id': customer['id'],
                    'currency': currency,
                    'payment_provider': 'razorpay',
                    'razorpay_order_id': order['id'],
                    'status': 'pending'
                })
                purchase_ids.append(purchase['id'])
        except Exception as e:
            # The provider order already exists; it expires unpaid on its own
            logger.error(f"Error recording purchases for order {order['id']}: {e}")
            raise PurchaseError(f"Failed to create purchase record: {str(e)}")

        logger.info(
            f"Created order {order['id']} for customer {customer['id']}: "
            f"{len(purchase_ids)} item(s), {total} {currency}"
        )

        return {
            'order_id': order['id'],
            'amount': order.get('amount', amount),
            'currency': order.get('currency', currency),
            'purchase_id': purchase_ids[0],
            'purchase_ids': purchase_ids,
            'key_id': self.razorpay.key_id
        }

    async def verify_payment(self, order_id: str, payment_id: str, signature: str) -> List[Dict[str, Any]]:
        """Verify a Razorpay payment and complete the order's purchases.

        Purchases that are already completed are returned unchanged, so a
        repeated verification is a no-op.

        Raises:
            InvalidSignatureError: If the signature does not match
            NotFoundError: If no purchases carry the order id
        """
        if not (order_id and payment_id and signature):
            raise InvalidOrderError("order_id, payment_id and signature are required")
        if not self.razorpay.key_secret:
            raise PaymentsDisabledError("Payments are not configured")

        verify_signature(order_id, payment_id, signature, self.razorpay.key_secret)

        try:
            purchases = await self.purchases.list_by_order(order_id)
        except Exception as e:
            logger.error(f"Error loading purchases for order {order_id}: {e}")
            raise PurchaseError(f"Failed to load purchases: {str(e)}")

        if not purchases:
            raise NotFoundError(f"No purchases found for order {order_id}")

        completed = []
        purchased_at = datetime.utcnow()
        try:
            for purchase in purchases:
                if purchase['status'] == 'completed':
                    completed.append(purchase)
                    continue
                updated = await self.purchases.complete(purchase['id'], payment_id, purchased_at)
                # A concurrent verification may have completed it first
                completed.append(updated or await self.purchases.get(purchase['id']))
        except Exception as e:
            logger.error(f"Error completing purchases for order {order_id}: {e}")
            raise PurchaseError(f"Failed to update purchases: {str(e)}")

        logger.info(f"Verified payment {payment_id} for order {order_id}")
        return completed

    async def get_purchase(self, purchase_id: UUID, viewer: Dict[str, Any]) -> Dict[str, Any]:
        """Get a purchase visible to its buyer, its seller or an admin."""
        purchase = await self.purchases.get(purchase_id)
        if not purchase:
            raise NotFoundError(f"Purchase {purchase_id} not found")
        if viewer['id'] not in (purchase['customer_id'], purchase['seller_id']) and not is_admin(viewer):
            raise AccessDeniedError("Not authorized to view this purchase")
        return purchase

    async def get_my_purchases(self, customer: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self.purchases.list_by_customer(customer['id'])

    async def get_creator_sales(self, seller: Dict[str, Any]) -> Dict[str, Any]:
        """Completed sales of a seller with revenue totals."""
        sales = await self.purchases.list_by_seller(seller['id'])
        return {
            'sales': sales,
            'total_sales': len(sales),
            'total_revenue': sum((Decimal(str(s['amount'])) for s in sales), Decimal('0')),
            'total_earnings': sum((Decimal(str(s['creator_earnings'])) for s in sales), Decimal('0'))
        }

    async def check_purchase(self, customer: Dict[str, Any], product_id: UUID) -> Dict[str, Any]:
        purchase = await self.purchases.find_completed(customer['id'], product_id)
        return {'purchased': purchase is not None, 'purchase': purchase}

    async def get_purchases_by_order(self, order_id: str, customer: Dict[str, Any]) -> List[Dict[str, Any]]:
        purchases = [
            p for p in await self.purchases.list_by_order(order_id)
            if p['customer_id'] == customer['id'] or is_admin(customer)
        ]
        if not purchases:
            raise NotFoundError(f"No purchases found for order {order_id}")
        return purchases


__all__ = [
    'PurchaseManager',
    'PurchaseRepository',
    'PurchaseError',
    'InvalidOrderError',
    'NotFoundError',
    'OrderCreationError',
    'InvalidSignatureError',
    'PaymentsDisabledError',
    'AccessDeniedError',
    'compute_order_total',
    'to_minor_units',
    'calculate_platform_fee',
    'generate_license_key',
    'compute_signature',
    'verify_signature',
    'line_items',
]
