"""Session storage for issued JWTs."""
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from database import PoolRepository, row_to_dict


class SessionRepository(PoolRepository):
    """Server-side session rows, so a logout can revoke a still-valid token."""

    async def create(
        self,
        profile_id: UUID,
        token: str,
        expires_at: datetime,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> Dict[str, Any]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                '''
                INSERT INTO auth_sessions (
                    profile_id, token, expires_at,
                    user_agent, ip_address
                ) VALUES ($1, $2, $3, $4, $5)
                RETURNING *
                ''',
                profile_id,
                token,
                expires_at,
                user_agent,
                ip_address
            ))

    async def get_active(self, profile_id: UUID, token: str) -> Optional[Dict[str, Any]]:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            return row_to_dict(await conn.fetchrow(
                '''
                SELECT *
                FROM auth_sessions
                WHERE profile_id = $1 AND token = $2
                AND NOT revoked
                ''',
                profile_id,
                token
            ))

    async def touch(self, profile_id: UUID, token: str) -> None:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            await conn.execute(
                '''
                UPDATE auth_sessions
                SET last_used_at = now()
                WHERE profile_id = $1 AND token = $2
                ''',
                profile_id,
                token
            )

    async def revoke_all(self, profile_id: UUID) -> None:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            await conn.execute(
                '''
                UPDATE auth_sessions
                SET
                    revoked = true,
                    revoked_at = now()
                WHERE profile_id = $1
                AND NOT revoked
                ''',
                profile_id
            )
