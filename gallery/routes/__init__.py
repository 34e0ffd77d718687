from gallery.routes.admin import router as admin_router
from gallery.routes.photos import router as photos_router
from gallery.routes.storage import router as storage_router

__all__ = [
    "admin_router",
    "photos_router",
    "storage_router",
]
