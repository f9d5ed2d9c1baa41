"""
ASGI entry point for uvicorn
This module exposes the FastAPI app for use with uvicorn command line
"""

import logging

from config_loader import load_config, setup_logging
from database.manager import DatabaseManager
from api.main_api import RouterAPI
from services.router_service import create_router_service

# Load configuration (CONFIG_FILE env var or config/config.yaml)
config = load_config()
setup_logging(config)

logger = logging.getLogger(__name__)

logger.info("Initializing application components...")

db = DatabaseManager(config)
service = create_router_service(config, db)
api = RouterAPI(service, db, config)

# Expose the FastAPI app for uvicorn
app = api.app

@app.on_event("startup")
async def startup_event():
    """Initialize database on startup"""
    logger.info("Starting up application...")
    await db.initialize()
    logger.info("Database initialized")

@app.on_event("shutdown")
async def shutdown_event():
    """Clean up resources on shutdown"""
    logger.info("Shutting down application...")
    await db.close()
    logger.info("Application shut down complete")

logger.info("ASGI app ready for uvicorn")
