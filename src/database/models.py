"""
Database models and data structures
"""

import ipaddress
from typing import Dict, Optional, Any
from dataclasses import dataclass
from datetime import datetime

def _convert_ip_address(ip_addr) -> str:
    """Convert IPv4Address or other IP types to string for JSON serialization"""
    if isinstance(ip_addr, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return str(ip_addr)
    return str(ip_addr) if ip_addr else "0.0.0.0"

@dataclass
class RouterRecord:
    """Database record for a user's router and its verified credentials"""
    user_id: str
    ip_address: str
    username: Optional[str] = None
    password: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self, include_password: bool = False) -> Dict[str, Any]:
        data = {
            "userId": self.user_id,
            "ipAddress": self.ip_address,
            "username": self.username,
            "brand": self.brand,
            "model": self.model,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None
        }
        if include_password:
            data["password"] = self.password
        return data
