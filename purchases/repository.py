"""SQL access to purchases."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from database import PoolRepository, row_to_dict, rows_to_dicts, build_update

PURCHASE_COLUMNS = [
    'customer_id', 'product_id', 'seller_id', 'variant_id', 'amount',
    'currency', 'platform_fee', 'creator_earnings', 'payment_provider',
    'razorpay_order_id', 'status', 'license_key', 'discount_code_id',
    'discount_amount'
]
UPDATE_FIELDS = {'status', 'razorpay_payment_id', 'purchased_at'}


class PurchaseRepository(PoolRepository):
    """Typed CRUD access to purchases."""

    async def get(self, purchase_id: UUID) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                'SELECT * FROM purchases WHERE id = $1',
                purchase_id
            ))

    async def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        await self.ensure_pool()
        values = [fields.get(column) for column in PURCHASE_COLUMNS]
        placeholders = ', '.join(f'${i}' for i in range(1, len(PURCHASE_COLUMNS) + 1))
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                f'''
                INSERT INTO purchases ({', '.join(PURCHASE_COLUMNS)})
                VALUES ({placeholders})
                RETURNING *
                ''',
                *values
            ))

    async def list_by_order(self, order_id: str) -> List[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return rows_to_dicts(await conn.fetch(
                '''
                SELECT * FROM purchases
                WHERE razorpay_order_id = $1
                ORDER BY created_at
                ''',
                order_id
            ))

    async def complete(self, purchase_id: UUID, payment_id: str, purchased_at: datetime) -> Optional[Dict[str, Any]]:
        """Mark a pending purchase completed; completed rows are left as they are."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                '''
                UPDATE purchases
                SET status = 'completed',
                    razorpay_payment_id = $2,
                    purchased_at = $3
                WHERE id = $1 AND status = 'pending'
                RETURNING *
                ''',
                purchase_id,
                payment_id,
                purchased_at
            ))

    async def update(self, purchase_id: UUID, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        query, params = build_update('purchases', fields, UPDATE_FIELDS)
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(query, purchase_id, *params))

    async def list_by_customer(self, customer_id: UUID) -> List[Dict[str, Any]]:
        """Completed purchases of a customer, with product details."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return rows_to_dicts(await conn.fetch(
                '''
                SELECT pu.*, p.name AS product_name, p.thumbnail_url AS product_thumbnail
                FROM purchases pu
                LEFT JOIN products p ON p.id = pu.product_id
                WHERE pu.customer_id = $1 AND pu.status = 'completed'
                ORDER BY pu.purchased_at DESC NULLS LAST
                ''',
                customer_id
            ))

    async def list_by_seller(self, seller_id: UUID) -> List[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return rows_to_dicts(await conn.fetch(
                '''
                SELECT pu.*, p.name AS product_name
                FROM purchases pu
                LEFT JOIN products p ON p.id = pu.product_id
                WHERE pu.seller_id = $1 AND pu.status = 'completed'
                ORDER BY pu.purchased_at DESC NULLS LAST
                ''',
                seller_id
            ))

    async def find_completed(self, customer_id: UUID, product_id: UUID) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                '''
                SELECT * FROM purchases
                WHERE customer_id = $1 AND product_id = $2
                AND status = 'completed'
                LIMIT 1
                ''',
                customer_id,
                product_id
            ))

    async def totals(self) -> Dict[str, Any]:
        """Count and revenue of completed purchases."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                '''
                SELECT
                    COUNT(*) AS completed,
                    COALESCE(SUM(amount), 0) AS revenue,
                    COALESCE(SUM(platform_fee), 0) AS platform_fees
                FROM purchases
                WHERE status = 'completed'
                '''
            )
            return {
                'completed': row['completed'],
                'revenue': Decimal(row['revenue']),
                'platform_fees': Decimal(row['platform_fees'])
            }
