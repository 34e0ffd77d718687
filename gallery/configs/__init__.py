from gallery.configs.settings import (
    SERVE_ROUTE_PREFIX,
    Settings,
    pool_kwargs,
    settings,
)

__all__ = [
    "SERVE_ROUTE_PREFIX",
    "Settings",
    "pool_kwargs",
    "settings",
]
