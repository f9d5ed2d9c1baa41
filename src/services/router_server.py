"""
Router Server - builds the components and runs the API
"""

import logging
from typing import Optional

import uvicorn

from config_loader import load_config, setup_logging
from database.manager import DatabaseManager
from api.main_api import RouterAPI
from services.router_service import create_router_service

logger = logging.getLogger(__name__)

class RouterServer:
    """Main server: database pool, router service and HTTP API"""
    
    def __init__(self, config_path: Optional[str] = None):
        self.config = load_config(config_path)
        setup_logging(self.config)
        
        self.db = DatabaseManager(self.config)
        self.service = create_router_service(self.config, self.db)
        self.api = RouterAPI(self.service, self.db, self.config)
        self.api_server: Optional[uvicorn.Server] = None
        self.running = False
        
    async def start(self):
        """Initialize the database and serve the API until stopped"""
        logger.info("Starting router connect server...")
        
        try:
            await self.db.initialize()
            logger.info("Database initialized successfully")
            
            self.running = True
            await self._start_api_server()
            
        except Exception as e:
            logger.error(f"Server startup failed: {e}")
            await self.stop()
            raise
    
    async def stop(self):
        """Stop all server services gracefully"""
        if not self.running and self.db.pool is None:
            return
        logger.info("Stopping server...")
        self.running = False
        
        if self.api_server:
            self.api_server.should_exit = True
        
        await self.db.close()
        self.db.pool = None
        logger.info("Server stopped")

    async def _start_api_server(self):
        """Start the FastAPI server"""
        config = uvicorn.Config(
            self.api.app,
            host=self.config['api']['host'],
            port=self.config['api']['port'],
            log_level="info",
            access_log=False  # We handle our own logging
        )
        
        self.api_server = uvicorn.Server(config)
        
        logger.info(f"Starting API server on {self.config['api']['host']}:{self.config['api']['port']}")
        logger.info(f"API documentation: http://localhost:{self.config['api']['port']}/docs")
        
        if self.config['suggestions'].get('enabled'):
            logger.info(f"Credential suggestions enabled ({self.config['suggestions'].get('model')})")
        else:
            logger.info("Credential suggestions disabled - fallback credentials only")
        
        if self.config['automation'].get('enabled'):
            logger.info(f"Remote actions via automation service at {self.config['automation']['base_url']}")
        else:
            logger.info("Automation service disabled - reboot, speed test and device listing unavailable")
        
        await self.api_server.serve()
