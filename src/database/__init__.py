"""
Database module for router records
"""

from .manager import DatabaseManager
from .models import RouterRecord, _convert_ip_address

__all__ = ['DatabaseManager', 'RouterRecord', '_convert_ip_address']
