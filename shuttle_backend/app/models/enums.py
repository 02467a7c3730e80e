"""
User roles enumeration.

Defines the role types for the shuttle tracking system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        ADMIN: Organization administrator, sees every route
        DRIVER: Operates vehicles and reports GPS positions
        RIDER: Views live positions and ETAs
    """
    ADMIN = "ADMIN"
    DRIVER = "DRIVER"
    RIDER = "RIDER"
