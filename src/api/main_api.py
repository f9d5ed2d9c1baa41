"""
Main FastAPI application setup
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict
import logging

from .system_routes import create_system_routes
from .router_routes import create_router_routes

logger = logging.getLogger(__name__)


class RouterAPI:
    """HTTP API for router discovery, smart login and remote actions"""
    
    def __init__(self, router_service, database_manager, config: Dict):
        self.service = router_service
        self.db = database_manager
        self.config = config
        self.app = FastAPI(
            title="Router Connect Server",
            description="Router discovery, credential acquisition and remote administration",
            version="1.0.0"
        )
        self._setup_middleware()
        self._setup_routes()

    def _setup_middleware(self):
        origins = self.config.get('api', {}).get('cors_origins', [])
        if origins:
            self.app.add_middleware(
                CORSMiddleware,
                allow_origins=origins,
                allow_methods=["*"],
                allow_headers=["*"]
            )
            logger.info(f"CORS enabled for {len(origins)} origin(s)")

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        self.app.include_router(create_system_routes(self.db, self.config))
        self.app.include_router(create_router_routes(self.service))
