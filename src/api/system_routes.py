"""
System health and monitoring API routes
"""

from fastapi import APIRouter
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

def create_system_routes(db_manager, config):
    """Create system monitoring routes"""
    router = APIRouter(prefix="/api", tags=["system"])
    
    @router.get("/system/health")
    async def system_health():
        """System health check"""
        try:
            database_ok = await db_manager.is_healthy()
            suggestions = config.get('suggestions', {})
            automation = config.get('automation', {})
            
            return {
                "status": "healthy" if database_ok else "degraded",
                "database": "connected" if database_ok else "unavailable",
                "suggestions": {
                    "enabled": suggestions.get('enabled', False),
                    "model": suggestions.get('model')
                },
                "automation": {
                    "enabled": automation.get('enabled', False)
                },
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
            
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return {
                "status": "unhealthy", 
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
            
    return router
