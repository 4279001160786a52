"""SQL access to contact messages."""
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from database import PoolRepository, row_to_dict, rows_to_dicts, build_update

UPDATE_FIELDS = {'status', 'reply_message', 'replied_at', 'replied_by'}


class ContactRepository(PoolRepository):

    async def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                '''
                INSERT INTO contact_messages (name, email, subject, message)
                VALUES ($1, $2, $3, $4)
                RETURNING *
                ''',
                fields['name'],
                fields['email'],
                fields.get('subject'),
                fields['message']
            ))

    async def get(self, message_id: UUID) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                'SELECT * FROM contact_messages WHERE id = $1',
                message_id
            ))

    async def list(self, offset: int = 0, limit: int = 20) -> Tuple[List[Dict[str, Any]], int]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT * FROM contact_messages
                ORDER BY created_at DESC
                LIMIT $1 OFFSET $2
                ''',
                limit,
                offset
            )
            total = await conn.fetchval('SELECT COUNT(*) FROM contact_messages')
            return rows_to_dicts(rows), total

    async def update(self, message_id: UUID, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        query, params = build_update('contact_messages', fields, UPDATE_FIELDS)
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(query, message_id, *params))

    async def count(self, status: Optional[str] = None) -> int:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                'SELECT COUNT(*) FROM contact_messages WHERE ($1::TEXT IS NULL OR status = $1)',
                status
            )
