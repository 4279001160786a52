"""SQL access to products, variants, files and reports."""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from database import PoolRepository, row_to_dict, rows_to_dicts, build_update

PRODUCT_FIELDS = {
    'name', 'description', 'short_description', 'long_description', 'price',
    'currency', 'categories', 'tags', 'thumbnail_url', 'preview_images',
    'preview_videos', 'page_color', 'is_active', 'is_featured'
}
VARIANT_FIELDS = {'name', 'description', 'price', 'is_active'}
REPORT_FIELDS = {'status', 'admin_notes', 'reviewed_by', 'reviewed_at'}

SORT_ORDERS = {
    'newest': 'created_at DESC',
    'oldest': 'created_at ASC',
    'price_asc': 'price ASC, created_at DESC',
    'price_desc': 'price DESC, created_at DESC',
}


class ProductRepository(PoolRepository):
    """Typed CRUD access to products and their variants and files."""

    async def get(self, product_id: UUID) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                'SELECT * FROM products WHERE id = $1',
                product_id
            ))

    async def list(
        self,
        offset: int = 0,
        limit: int = 20,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
        is_active: Optional[bool] = True,
        creator_id: Optional[UUID] = None
    ) -> Tuple[List[Dict[str, Any]], int]:
        """List products newest first with the unpaginated total."""
        await self.ensure_pool()
        where = '''
            WHERE ($1::TEXT IS NULL OR $1 = ANY(categories))
            AND ($2::BOOLEAN IS NULL OR is_featured = $2)
            AND ($3::BOOLEAN IS NULL OR is_active = $3)
            AND ($4::UUID IS NULL OR creator_id = $4)
        '''
        params = [category, featured, is_active, creator_id]
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f'''
                SELECT * FROM products
                {where}
                ORDER BY created_at DESC
                LIMIT $5 OFFSET $6
                ''',
                *params, limit, offset
            )
            total = await conn.fetchval(f'SELECT COUNT(*) FROM products {where}', *params)
            return rows_to_dicts(rows), total

    async def search(
        self,
        q: Optional[str] = None,
        category: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        sort: str = 'newest',
        offset: int = 0,
        limit: int = 20
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Search active products by text, category and price range."""
        await self.ensure_pool()
        pattern = f"%{q}%" if q else None
        where = '''
            WHERE is_active
            AND ($1::TEXT IS NULL
                 OR name ILIKE $1
                 OR description ILIKE $1
                 OR short_description ILIKE $1
                 OR array_to_string(tags, ' ') ILIKE $1)
            AND ($2::TEXT IS NULL OR $2 = ANY(categories))
            AND ($3::DECIMAL IS NULL OR price >= $3)
            AND ($4::DECIMAL IS NULL OR price <= $4)
        '''
        params = [pattern, category, min_price, max_price]
        order = SORT_ORDERS.get(sort, SORT_ORDERS['newest'])
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f'''
                SELECT * FROM products
                {where}
                ORDER BY {order}
                LIMIT $5 OFFSET $6
                ''',
                *params, limit, offset
            )
            total = await conn.fetchval(f'SELECT COUNT(*) FROM products {where}', *params)
            return rows_to_dicts(rows), total

    async def count(self, is_active: Optional[bool] = None) -> int:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                'SELECT COUNT(*) FROM products WHERE ($1::BOOLEAN IS NULL OR is_active = $1)',
                is_active
            )

    async def _insert_product(self, conn, fields: Dict[str, Any]) -> Dict[str, Any]:
        columns = ['creator_id'] + [c for c in fields if c in PRODUCT_FIELDS or c == 'id']
        values = [fields[c] for c in columns]
        placeholders = ', '.join(f'${i}' for i in range(1, len(columns) + 1))
        return row_to_dict(await conn.fetchrow(
            f'''
            INSERT INTO products ({', '.join(columns)})
            VALUES ({placeholders})
            RETURNING *
            ''',
            *values
        ))

    async def _insert_file(self, conn, product_id: UUID, stored: Dict[str, Any]) -> Dict[str, Any]:
        return row_to_dict(await conn.fetchrow(
            '''
            INSERT INTO product_files (
                product_id, file_name, file_path, file_size, content_type
            ) VALUES ($1, $2, $3, $4, $5)
            RETURNING *
            ''',
            product_id,
            stored['name'],
            stored['path'],
            stored['size'],
            stored['content_type']
        ))

    async def create_with_files(self, fields: Dict[str, Any], files: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Insert a product and its downloadable files in one transaction."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                product = await self._insert_product(conn, fields)
                product['files'] = [
                    await self._insert_file(conn, product['id'], stored)
                    for stored in files
                ]
        return product

    async def update(self, product_id: UUID, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        query, params = build_update('products', fields, PRODUCT_FIELDS)
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(query, product_id, *params))

    async def list_files(self, product_id: UUID) -> List[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return rows_to_dicts(await conn.fetch(
                '''
                SELECT id, product_id, file_name, file_size, content_type, created_at
                FROM product_files
                WHERE product_id = $1
                ORDER BY created_at
                ''',
                product_id
            ))

    async def add_file(self, product_id: UUID, stored: Dict[str, Any]) -> Dict[str, Any]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return await self._insert_file(conn, product_id, stored)

    async def get_variant(self, variant_id: UUID) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                'SELECT * FROM product_variants WHERE id = $1',
                variant_id
            ))

    async def list_variants(self, product_id: UUID) -> List[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return rows_to_dicts(await conn.fetch(
                '''
                SELECT * FROM product_variants
                WHERE product_id = $1 AND is_active
                ORDER BY price ASC
                ''',
                product_id
            ))

    async def create_variant(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                '''
                INSERT INTO product_variants (product_id, name, description, price)
                VALUES ($1, $2, $3, $4)
                RETURNING *
                ''',
                fields['product_id'],
                fields['name'],
                fields.get('description'),
                fields['price']
            ))

    async def update_variant(self, variant_id: UUID, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        query, params = build_update('product_variants', fields, VARIANT_FIELDS)
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(query, variant_id, *params))

    async def delete_variant(self, variant_id: UUID) -> bool:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                'DELETE FROM product_variants WHERE id = $1',
                variant_id
            )
            return result.endswith(' 1')


class ReportRepository(PoolRepository):
    """Typed CRUD access to product reports."""

    async def get(self, report_id: UUID) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                'SELECT * FROM product_reports WHERE id = $1',
                report_id
            ))

    async def find_pending(self, product_id: UUID, reporter_id: UUID) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                '''
                SELECT * FROM product_reports
                WHERE product_id = $1 AND reporter_id = $2
                AND status = 'pending'
                ''',
                product_id,
                reporter_id
            ))

    async def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                '''
                INSERT INTO product_reports (
                    product_id, reporter_id, reason, description, status
                ) VALUES ($1, $2, $3, $4, 'pending')
                RETURNING *
                ''',
                fields['product_id'],
                fields['reporter_id'],
                fields['reason'],
                fields.get('description')
            ))

    async def list(
        self,
        status: Optional[str] = None,
        offset: int = 0,
        limit: int = 20
    ) -> Tuple[List[Dict[str, Any]], int]:
        """List reports newest first, joined with the reported product's name."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT r.*, p.name AS product_name, p.is_active AS product_is_active
                FROM product_reports r
                LEFT JOIN products p ON p.id = r.product_id
                WHERE ($1::TEXT IS NULL OR r.status = $1)
                ORDER BY r.created_at DESC
                LIMIT $2 OFFSET $3
                ''',
                status,
                limit,
                offset
            )
            total = await conn.fetchval(
                'SELECT COUNT(*) FROM product_reports WHERE ($1::TEXT IS NULL OR status = $1)',
                status
            )
            return rows_to_dicts(rows), total

    async def update(self, report_id: UUID, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        query, params = build_update('product_reports', fields, REPORT_FIELDS)
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(query, report_id, *params))

    async def count(self, status: Optional[str] = None) -> int:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                'SELECT COUNT(*) FROM product_reports WHERE ($1::TEXT IS NULL OR status = $1)',
                status
            )
