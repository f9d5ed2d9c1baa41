"""
API module for router discovery and administration
"""

from .main_api import RouterAPI
from .router_routes import create_router_routes
from .system_routes import create_system_routes

__all__ = ['RouterAPI', 'create_router_routes', 'create_system_routes']
