"""Route modules for the admin service.

- health: liveness check
- sync: device-facing snapshot upload and override download
- admin: device inventory and override pushes
"""

from codewith.server.routes.admin import router as admin_router
from codewith.server.routes.health import router as health_router
from codewith.server.routes.sync import router as sync_router

__all__ = ["admin_router", "health_router", "sync_router"]
