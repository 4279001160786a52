"""Profile storage.

Profiles are the user accounts of the marketplace. The repository is the only
code that issues SQL against the ``profiles`` table.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from database import PoolRepository, row_to_dict, rows_to_dicts, build_update

logger = logging.getLogger(__name__)

# Columns safe to return to clients
PUBLIC_FIELDS = (
    'id', 'email', 'name', 'username', 'display_name', 'bio', 'avatar_url',
    'roles', 'is_verified_seller', 'show_admin_badge', 'is_active',
    'is_restricted', 'created_at', 'updated_at'
)

# Columns that may be written after creation
MUTABLE_FIELDS = {
    'name', 'username', 'display_name', 'bio', 'avatar_url', 'roles',
    'is_verified_seller', 'show_admin_badge', 'is_active', 'is_restricted',
    'password_hash'
}


def public_profile(profile: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Strip private columns such as the password hash."""
    if profile is None:
        return None
    return {key: profile.get(key) for key in PUBLIC_FIELDS if key in profile}


class ProfileRepository(PoolRepository):
    """Typed CRUD access to profiles."""

    async def get(self, profile_id: UUID) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                'SELECT * FROM profiles WHERE id = $1',
                profile_id
            ))

    async def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                'SELECT * FROM profiles WHERE lower(email) = lower($1)',
                email
            ))

    async def get_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                'SELECT * FROM profiles WHERE lower(username) = lower($1)',
                username
            ))

    async def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                '''
                INSERT INTO profiles (
                    email, password_hash, name, username, roles
                ) VALUES ($1, $2, $3, $4, $5)
                RETURNING *
                ''',
                fields['email'],
                fields['password_hash'],
                fields.get('name'),
                fields.get('username'),
                fields.get('roles', ['customer'])
            ))

    async def update(self, profile_id: UUID, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        query, params = build_update('profiles', fields, MUTABLE_FIELDS)
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(query, profile_id, *params))

    async def list(
        self,
        offset: int = 0,
        limit: int = 20,
        role: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], int]:
        """List profiles newest first, optionally only those holding ``role``."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT *
                FROM profiles
                WHERE ($1::TEXT IS NULL OR $1 = ANY(roles))
                ORDER BY created_at DESC
                LIMIT $2 OFFSET $3
                ''',
                role,
                limit,
                offset
            )
            total = await conn.fetchval(
                'SELECT COUNT(*) FROM profiles WHERE ($1::TEXT IS NULL OR $1 = ANY(roles))',
                role
            )
            return rows_to_dicts(rows), total

    async def count(self) -> int:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return await conn.fetchval('SELECT COUNT(*) FROM profiles')


__all__ = ['ProfileRepository', 'public_profile', 'PUBLIC_FIELDS', 'MUTABLE_FIELDS']
