"""System health endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status
from typing import Optional
from datetime import datetime
from pydantic import BaseModel
import psutil
from redis.exceptions import RedisError

from config import feature_enabled
from database import get_pool
import ratelimit

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/system",
    tags=["System"]
)

class SystemHealth(BaseModel):
    """Model for system health data."""
    status: str
    boot_time: datetime
    cpu_usage: float
    memory_usage: float
    disk_usage: float
    active_connections: Optional[int] = None
    database_status: str
    redis_status: str
    integrations: dict


async def check_database():
    """Return (status, active connection count) of the database."""
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            active = await conn.fetchval(
                '''
                SELECT COUNT(*)
                FROM pg_stat_activity
                WHERE state = 'active'
                '''
            )
        return "connected", active
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return "unavailable", None


async def check_redis() -> str:
    redis = ratelimit.limiters['api'].redis
    if redis is None:
        return "disabled"
    try:
        await redis.ping()
        return "connected"
    except (RedisError, OSError):
        return "unavailable"


@router.get("/health")
async def get_system_health() -> SystemHealth:
    """Get system health status.

    Returns:
        SystemHealth object containing host, database and Redis status
    """
    try:
        cpu_percent = psutil.cpu_percent()
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage('/')

        db_status, active_connections = await check_database()
        redis_status = await check_redis()

        healthy = db_status == "connected" and redis_status != "unavailable" and cpu_percent < 80
        return SystemHealth(
            status="healthy" if healthy else "degraded",
            boot_time=datetime.fromtimestamp(psutil.boot_time()),
            cpu_usage=cpu_percent,
            memory_usage=memory.percent,
            disk_usage=disk.percent,
            active_connections=active_connections,
            database_status=db_status,
            redis_status=redis_status,
            integrations={
                name: feature_enabled(name)
                for name in ('razorpay', 'smtp', 'gemini', 'redis')
            }
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
