"""System health endpoints."""

from fastapi import APIRouter
from typing import Optional
from pydantic import BaseModel
import logging
import time
import psutil

from database import get_pool
from ..responses import ok
from ..websockets import manager as websocket_manager

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/system",
    tags=["System"]
)

# CPU usage above this marks the system degraded
CPU_DEGRADED_PERCENT = 80

class SystemHealth(BaseModel):
    """Model for system health data."""
    status: str
    uptime: float
    cpu_usage: float
    memory_usage: float
    disk_usage: float
    database_status: str
    database_connections: Optional[int] = None
    websocket_connections: int

@router.get("/health")
async def get_system_health():
    """Get system health status.
    
    Returns:
        SystemHealth data inside the response envelope
    """
    # Gather system metrics
    cpu_percent = psutil.cpu_percent()
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage('/')
    uptime = time.time() - psutil.Process().create_time()
    
    # Get database status
    db_status = "connected"
    db_connections = None
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval('SELECT 1')
        db_connections = pool.get_size()
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "unavailable"
    
    healthy = db_status == "connected" and cpu_percent < CPU_DEGRADED_PERCENT
    health = SystemHealth(
        status="healthy" if healthy else "degraded",
        uptime=uptime,
        cpu_usage=cpu_percent,
        memory_usage=memory.percent,
        disk_usage=disk.percent,
        database_status=db_status,
        database_connections=db_connections,
        websocket_connections=websocket_manager.count()
    )
    return ok(health.model_dump())

# Export the router
__all__ = ['router']
